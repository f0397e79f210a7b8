from textwrap import dedent

from aws_cdk import Aspects
from aws_cdk import Stack as CdkStack
from cdk_nag import AwsSolutionsChecks, HIPAASecurityChecks, NagSuppressions


class StandardTags(dict):
    """Enforces three required tags for all stacks"""

    def __init__(self, *, project: str, service: str, environment: str, **kwargs):
        super().__init__(Project=project, Service=service, Environment=environment, **kwargs)


class Stack(CdkStack):
    def __init__(self, *args, standard_tags: StandardTags, environment_name: str, **kwargs):
        super().__init__(*args, tags=standard_tags, **kwargs)
        self.environment_name = environment_name
        self.standard_tags = standard_tags
        # AWS-recommended rule sets for best practice and to help with (but not guarantee) HIPAA compliance
        Aspects.of(self).add(AwsSolutionsChecks())
        Aspects.of(self).add(HIPAASecurityChecks())

        NagSuppressions.add_stack_suppressions(
            self,
            suppressions=[
                {
                    'id': 'HIPAA.Security-IAMNoInlinePolicy',
                    'reason': dedent("""
                    CDK grants attach narrowly scoped statements directly to the principal that needs them, as
                    inline policies. The one permission shared between principals, API access to a collection, is
                    modeled as a managed policy.
                    """),
                },
                {
                    'id': 'HIPAA.Security-LambdaConcurrency',
                    'reason': 'The lambdas in this app will share account-wide concurrency limits',
                },
            ],
        )
