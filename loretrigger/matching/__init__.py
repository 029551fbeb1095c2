"""
Entry matching

Text strategies (exact, contains, fuzzy, semantic) plus metadata strategies
(temporal, emotional), combined by max and scaled by entry weight.
"""

from loretrigger.matching.match_engine import MatchEngine, message_window
from loretrigger.matching.similarity import (
    CachedSimilarity,
    EmbeddingSimilarity,
    SimilarityProvider,
    TokenOverlapSimilarity,
)
from loretrigger.matching.synonyms import SynonymDictionary
