import json
import os
from unittest.mock import patch

from aws_cdk.assertions import Annotations, Match, Template
from aws_cdk.aws_opensearchserverless import CfnAccessPolicy, CfnCollection, CfnSecurityPolicy

from tests.base import TEST_ACCOUNT_ID, TEST_REGION, TstConstruct

CDK_JSON_PATH = os.path.join(os.path.dirname(__file__), '..', '..', 'cdk.json')
DATA_ACCESS_ROLE_ARN = f'arn:aws:iam::{TEST_ACCOUNT_ID}:role/knowledge-base-role'


class TestVectorSearchStack(TstConstruct):
    """
    Test cases for the VectorSearchStack, as configured by the app's cdk.json context.
    """

    def get_context(self) -> dict:
        with open(CDK_JSON_PATH) as f:
            context = json.load(f)['context']
        context['opensearch_index_handler_code_path'] = self.handler_code_path
        context['vector_search']['data_access_role_arns'] = [DATA_ACCESS_ROLE_ARN]
        return context

    @patch.dict(os.environ, {'CDK_DEFAULT_ACCOUNT': TEST_ACCOUNT_ID, 'CDK_DEFAULT_REGION': TEST_REGION})
    def _when_testing_app(self, context: dict):
        from app import VectorSearchApp

        return VectorSearchApp(context=context)

    def test_synthesizes_collection_and_index(self):
        app = self._when_testing_app(self.get_context())
        stack = app.vector_search_stack
        template = Template.from_stack(stack)

        template.resource_count_is(CfnCollection.CFN_RESOURCE_TYPE_NAME, 1)
        template.resource_count_is(CfnSecurityPolicy.CFN_RESOURCE_TYPE_NAME, 2)
        # Collection data access plus index management
        template.resource_count_is(CfnAccessPolicy.CFN_RESOURCE_TYPE_NAME, 2)
        template.resource_count_is('Custom::OpenSearchIndex', 1)

        template.has_resource_properties(
            CfnCollection.CFN_RESOURCE_TYPE_NAME,
            {
                'Type': 'VECTORSEARCH',
                'StandbyReplicas': 'DISABLED',
                'Description': 'Vector store for document embeddings',
                'Tags': Match.array_with([{'Key': 'Environment', 'Value': 'sandbox'}]),
            },
        )
        template.has_resource_properties(
            'Custom::OpenSearchIndex',
            {
                'CollectionName': stack.collection.collection_name,
                'IndexName': 'documents-index',
                'VectorField': 'embedding',
                'VectorDimension': 1024,
                'Engine': 'faiss',
                'SpaceType': 'l2',
                'MethodName': 'hnsw',
                'NumberOfShards': 2,
                'EfSearch': 512,
                'MetadataManagement': [
                    {'MappingField': 'AMAZON_BEDROCK_TEXT_CHUNK', 'DataType': 'text', 'Filterable': True},
                    {'MappingField': 'AMAZON_BEDROCK_METADATA', 'DataType': 'text', 'Filterable': False},
                ],
                'Analyzer': Match.absent(),
            },
        )
        template.has_output('IndexName', {'Value': 'documents-index'})

    def test_no_error_annotations(self):
        app = self._when_testing_app(self.get_context())
        stack = app.vector_search_stack

        errors = Annotations.from_stack(stack).find_error('*', Match.string_like_regexp('.*'))
        self.assertEqual(0, len(errors), msg='\n'.join(f'{err.id}: {err.entry.data.strip()}' for err in errors))

    def test_requires_data_access_roles(self):
        context = self.get_context()
        context['vector_search']['data_access_role_arns'] = []

        with self.assertRaises(ValueError) as cm:
            self._when_testing_app(context)

        self.assertIn('data_access_role_arns', str(cm.exception))

    def test_data_access_roles_and_analyzer_from_context(self):
        context = self.get_context()
        context['vector_search']['index']['analyzer'] = {
            'character_filters': ['icu_normalizer'],
            'tokenizer': 'kuromoji_tokenizer',
            'token_filters': ['kuromoji_baseform', 'ja_stop'],
        }
        app = self._when_testing_app(context)
        stack = app.vector_search_stack
        template = Template.from_stack(stack)

        data_access_policy = template.find_resources(CfnAccessPolicy.CFN_RESOURCE_TYPE_NAME)[
            stack.get_logical_id(stack.collection.data_access_policy)
        ]['Properties']
        self.assertEqual(
            [DATA_ACCESS_ROLE_ARN],
            json.loads(data_access_policy['Policy'])[0]['Principal'],
        )
        template.has_resource_properties(
            'Custom::OpenSearchIndex',
            {
                'Analyzer': {
                    'CharacterFilters': ['icu_normalizer'],
                    'Tokenizer': 'kuromoji_tokenizer',
                    'TokenFilters': ['kuromoji_baseform', 'ja_stop'],
                },
            },
        )

    def test_index_settings_missing_from_context_use_defaults(self):
        from opensearch_vectorindex import vector_index

        context = self.get_context()
        context['vector_search']['index'] = {
            'index_name': 'minimal-index',
            'vector_field': 'embedding',
            'vector_dimensions': 256,
            'number_of_shards': 4,
        }
        app = self._when_testing_app(context)
        template = Template.from_stack(app.vector_search_stack)

        template.has_resource_properties(
            'Custom::OpenSearchIndex',
            {
                'IndexName': 'minimal-index',
                'VectorDimension': 256,
                'Engine': vector_index.DEFAULT_ENGINE,
                'SpaceType': vector_index.DEFAULT_SPACE_TYPE,
                'MethodName': vector_index.DEFAULT_METHOD_NAME,
                'NumberOfShards': 4,
                'EfSearch': vector_index.DEFAULT_EF_SEARCH,
                'MetadataManagement': [],
            },
        )
