from aws_cdk import CfnOutput
from aws_cdk.aws_iam import Role
from constructs import Construct

from common_constructs.stack import Stack
from opensearch_vectorindex import Analyzer, MetadataManagementFieldProps, VectorIndex, VectorIndexProps
from opensearchserverless import (
    CharacterFilterType,
    StandbyReplicas,
    TokenFilterType,
    TokenizerType,
    VectorCollection,
)


class VectorSearchStack(Stack):
    """
    A vector search collection and index, configured from the `vector_search` context block.
    """

    def __init__(self, scope: Construct, construct_id: str, *, vector_search_context: dict, **kwargs):
        super().__init__(scope, construct_id, **kwargs)

        collection_context = vector_search_context.get('collection', {})
        self.collection = VectorCollection(
            self,
            'VectorCollection',
            collection_name=collection_context.get('collection_name'),
            description=collection_context.get('description'),
            standby_replicas=StandbyReplicas(collection_context.get('standby_replicas', StandbyReplicas.ENABLED)),
            tags=dict(self.standard_tags),
        )

        # A data access policy with no principals is rejected by OpenSearch Serverless at deploy time
        data_access_role_arns = vector_search_context.get('data_access_role_arns', [])
        if not data_access_role_arns:
            raise ValueError(
                'The vector_search context must list at least one role ARN in data_access_role_arns to grant access '
                'to the collection.'
            )
        for i, role_arn in enumerate(data_access_role_arns):
            self.collection.grant_data_access(Role.from_role_arn(self, f'DataAccessRole{i}', role_arn))

        self.vector_index = VectorIndex(self, 'VectorIndex', **self._get_index_props(vector_search_context['index']))

        CfnOutput(self, 'CollectionName', value=self.collection.collection_name)
        CfnOutput(self, 'CollectionEndpoint', value=self.collection.collection.attr_collection_endpoint)
        CfnOutput(self, 'IndexName', value=self.vector_index.index_name)

    def _get_index_props(self, index_context: dict) -> VectorIndexProps:
        props: VectorIndexProps = {
            'collection': self.collection,
            'index_name': index_context['index_name'],
            'vector_field': index_context['vector_field'],
            'vector_dimensions': index_context['vector_dimensions'],
            'mappings': [MetadataManagementFieldProps(**mapping) for mapping in index_context.get('mappings', [])],
            'analyzer': self._get_analyzer(index_context.get('analyzer')),
        }
        # Settings left out of the context fall back to the VectorIndex defaults
        for key in (
            'engine',
            'space_type',
            'method_name',
            'parameters',
            'number_of_shards',
            'ef_search',
            'custom_settings',
        ):
            if key in index_context:
                props[key] = index_context[key]
        return props

    @staticmethod
    def _get_analyzer(analyzer_context: dict | None) -> Analyzer | None:
        if analyzer_context is None:
            return None
        return Analyzer(
            character_filters=[CharacterFilterType(f) for f in analyzer_context.get('character_filters', [])],
            tokenizer=TokenizerType(analyzer_context['tokenizer']),
            token_filters=[TokenFilterType(f) for f in analyzer_context.get('token_filters', [])],
        )
