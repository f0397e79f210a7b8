from aws_cdk import Names
from constructs import Construct


def generate_physical_name_v2(
    resource: Construct,
    prefix: str,
    *,
    max_length: int = 256,
    lower: bool = False,
    separator: str = '',
) -> str:
    """
    Generate a deterministic physical name for a resource, unique within the app.

    The name is the prefix, then the separator, then a unique suffix derived from the construct path. Services
    like OpenSearch Serverless cap policy and collection names at 32 lower-case characters, so the unique part is
    trimmed to whatever room the prefix leaves.

    :param resource: The construct to name
    :param prefix: A human-readable prefix for the name
    :param max_length: The maximum length of the full name
    :param lower: Whether to lower-case the full name
    :param separator: Separator between the prefix and the unique part
    :return: The generated name
    """
    max_name_length = max_length - len(prefix + separator)
    if max_name_length <= 0:
        raise ValueError(f'Prefix ({prefix}) and separator ({separator}) are too long for max_length ({max_length})')

    unique_name = Names.unique_resource_name(resource, max_length=max_name_length, separator=separator)
    name = f'{prefix}{separator}{unique_name}'
    if len(name) > max_length:
        raise ValueError(f'Generated physical name {name} exceeds max_length ({max_length})')

    return name.lower() if lower else name
