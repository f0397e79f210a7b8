import json
import os
from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict

from aws_cdk import CustomResource, Resource, Stack
from aws_cdk.aws_lambda import Runtime
from aws_cdk.aws_opensearchserverless import CfnAccessPolicy
from constructs import Construct

from common_constructs.custom_resource_provider import build_custom_resource_provider
from common_constructs.physical_name import generate_physical_name_v2
from opensearchserverless import CharacterFilterType, TokenFilterType, TokenizerType, VectorCollection

DEFAULT_ENGINE = 'faiss'
DEFAULT_SPACE_TYPE = 'l2'
DEFAULT_METHOD_NAME = 'hnsw'
DEFAULT_NUMBER_OF_SHARDS = 2
DEFAULT_EF_SEARCH = 512

HANDLER_CODE_PATH_CONTEXT_KEY = 'opensearch_index_handler_code_path'


@dataclass(frozen=True)
class MetadataManagementFieldProps:
    """Metadata field definition"""

    mapping_field: str
    data_type: str
    filterable: bool


@dataclass(frozen=True)
class Analyzer:
    """Text analyzer applied to the index"""

    character_filters: list[CharacterFilterType]
    tokenizer: TokenizerType
    token_filters: list[TokenFilterType]


class VectorIndexProps(TypedDict):
    """Keyword arguments accepted by VectorIndex"""

    collection: VectorCollection
    index_name: str
    vector_field: str
    vector_dimensions: int
    mappings: list[MetadataManagementFieldProps]
    analyzer: NotRequired[Analyzer | None]
    engine: NotRequired[str | None]
    space_type: NotRequired[str | None]
    method_name: NotRequired[str | None]
    parameters: NotRequired[dict[str, Any] | None]
    number_of_shards: NotRequired[int | None]
    ef_search: NotRequired[int | None]
    custom_settings: NotRequired[dict[str, Any] | None]


# Shared by every VectorIndex in a stack. The handler that manages the index through the OpenSearch Serverless
# data plane is deployed from its own code asset.
OpenSearchIndexCRProvider = build_custom_resource_provider(
    provider_name='OpenSearchIndexCRProvider',
    code_path=os.path.join('lambdas', 'opensearch-serverless-custom-resources'),
    handler='index.handler',
    runtime=Runtime.PYTHON_3_12,
    code_path_context_key=HANDLER_CODE_PATH_CONTEXT_KEY,
)


class VectorIndex(Resource):
    """
    Vector index deployed on an OpenSearch Serverless collection.

    The index itself is created, updated and deleted by a CloudFormation custom resource. This construct grants the
    custom resource provider access to the collection, then declares the custom resource so that it is only created
    after the collection and every policy it relies on.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        collection: VectorCollection,
        index_name: str,
        vector_field: str,
        vector_dimensions: int,
        mappings: list[MetadataManagementFieldProps],
        analyzer: Analyzer | None = None,
        engine: str | None = None,
        space_type: str | None = None,
        method_name: str | None = None,
        parameters: dict[str, Any] | None = None,
        number_of_shards: int | None = None,
        ef_search: int | None = None,
        custom_settings: dict[str, Any] | None = None,
    ):
        """
        :param scope: The scope of the construct
        :param construct_id: The id of the construct
        :param collection: The collection to create the index in
        :param index_name: Name of the index
        :param vector_field: Name of the vector field
        :param vector_dimensions: Number of dimensions in the vector
        :param mappings: Metadata fields to map in the index
        :param analyzer: Text analyzer for the index. No analyzer by default.
        :param engine: Vector search engine, 'faiss' by default
        :param space_type: Vector space type, 'l2' by default
        :param method_name: Vector search method, 'hnsw' by default
        :param parameters: Additional vector search method parameters
        :param number_of_shards: Number of shards for the index, 2 by default
        :param ef_search: The ef_search parameter for vector search, 512 by default
        :param custom_settings: Additional index settings
        """
        super().__init__(scope, construct_id)

        self.index_name = index_name
        self.vector_field = vector_field
        self.vector_dimensions = vector_dimensions

        cr_provider = OpenSearchIndexCRProvider.get_provider(self)
        cr_provider.role.add_managed_policy(collection.aoss_policy)

        self.manage_index_policy = CfnAccessPolicy(
            self,
            'ManageIndexPolicy',
            name=generate_physical_name_v2(self, 'ManageIndexPolicy', max_length=32, lower=True),
            type='data',
            policy=json.dumps(
                [
                    {
                        'Rules': [
                            {
                                'Resource': [f'index/{collection.collection_name}/*'],
                                'Permission': [
                                    'aoss:DescribeIndex',
                                    'aoss:CreateIndex',
                                    'aoss:DeleteIndex',
                                    'aoss:UpdateIndex',
                                ],
                                'ResourceType': 'index',
                            },
                            {
                                'Resource': [f'collection/{collection.collection_name}'],
                                'Permission': ['aoss:DescribeCollectionItems'],
                                'ResourceType': 'collection',
                            },
                        ],
                        'Principal': [cr_provider.role.role_arn],
                        'Description': '',
                    }
                ]
            ),
        )

        properties = {
            'CollectionName': collection.collection_name,
            'Endpoint': f'{collection.collection_id}.{Stack.of(self).region}.aoss.amazonaws.com',
            'IndexName': index_name,
            'VectorField': vector_field,
            'VectorDimension': vector_dimensions,
            'Engine': engine or DEFAULT_ENGINE,
            'SpaceType': space_type or DEFAULT_SPACE_TYPE,
            'MethodName': method_name or DEFAULT_METHOD_NAME,
            'Parameters': _compact_json(parameters or {}),
            'NumberOfShards': number_of_shards or DEFAULT_NUMBER_OF_SHARDS,
            'EfSearch': ef_search or DEFAULT_EF_SEARCH,
            'CustomSettings': _compact_json(custom_settings or {}),
            'MetadataManagement': [
                {
                    'MappingField': mapping.mapping_field,
                    'DataType': mapping.data_type,
                    'Filterable': mapping.filterable,
                }
                for mapping in mappings
            ],
        }
        if analyzer is not None:
            properties['Analyzer'] = {
                'CharacterFilters': [CharacterFilterType(f).value for f in analyzer.character_filters],
                'Tokenizer': TokenizerType(analyzer.tokenizer).value,
                'TokenFilters': [TokenFilterType(f).value for f in analyzer.token_filters],
            }

        self.custom_resource = CustomResource(
            self,
            'VectorIndex',
            service_token=cr_provider.service_token,
            properties=properties,
            resource_type='Custom::OpenSearchIndex',
        )

        self.custom_resource.node.add_dependency(self.manage_index_policy)
        self.custom_resource.node.add_dependency(collection)
        self.custom_resource.node.add_dependency(collection.data_access_policy)


def _compact_json(value: dict[str, Any]) -> str:
    return json.dumps(value, separators=(',', ':'))
