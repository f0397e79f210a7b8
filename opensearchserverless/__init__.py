from opensearchserverless.analysis_plugins import CharacterFilterType, TokenFilterType, TokenizerType
from opensearchserverless.vector_collection import StandbyReplicas, VectorCollection

__all__ = [
    'CharacterFilterType',
    'StandbyReplicas',
    'TokenFilterType',
    'TokenizerType',
    'VectorCollection',
]
