from opensearch_vectorindex.vector_index import (
    Analyzer,
    MetadataManagementFieldProps,
    OpenSearchIndexCRProvider,
    VectorIndex,
    VectorIndexProps,
)

__all__ = [
    'Analyzer',
    'MetadataManagementFieldProps',
    'OpenSearchIndexCRProvider',
    'VectorIndex',
    'VectorIndexProps',
]
