"""
Text analysis plugins available to OpenSearch Serverless vector search collections.

See https://docs.aws.amazon.com/opensearch-service/latest/developerguide/serverless-genref.html#serverless-plugins
"""

from enum import StrEnum


class CharacterFilterType(StrEnum):
    ICU_NORMALIZER = 'icu_normalizer'


class TokenizerType(StrEnum):
    KUROMOJI_TOKENIZER = 'kuromoji_tokenizer'
    ICU_TOKENIZER = 'icu_tokenizer'


class TokenFilterType(StrEnum):
    KUROMOJI_BASEFORM = 'kuromoji_baseform'
    KUROMOJI_PART_OF_SPEECH = 'kuromoji_part_of_speech'
    KUROMOJI_STEMMER = 'kuromoji_stemmer'
    CJK_WIDTH = 'cjk_width'
    JA_STOP = 'ja_stop'
    LOWERCASE = 'lowercase'
    ICU_FOLDING = 'icu_folding'
