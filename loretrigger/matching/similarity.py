"""
Pluggable semantic similarity for the semantic match strategy.

The engine never embeds text itself. Hosts inject a SimilarityProvider; the
engine wraps it in CachedSimilarity so each (message, keyword) pair is only
scored once.
"""

import asyncio
import hashlib
import inspect
from collections import OrderedDict
from typing import Awaitable, Callable, Dict, Protocol, Sequence, Union, runtime_checkable

import numpy as np
from loguru import logger

from loretrigger.matching.text_similarity import tokenize


@runtime_checkable
class SimilarityProvider(Protocol):
    """Anything that can score two strings in [0, 1]"""

    async def similarity(self, a: str, b: str) -> float:
        ...


EmbedFn = Callable[[str], Union[Sequence[float], np.ndarray, Awaitable[Sequence[float]]]]


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine similarity clipped to [0, 1]"""
    norm = float(np.linalg.norm(a) * np.linalg.norm(b))
    if norm == 0.0:
        return 0.0
    return max(0.0, min(1.0, float(np.dot(a, b)) / norm))


class TokenOverlapSimilarity:
    """
    Jaccard overlap of word tokens.

    Deterministic and dependency free; useful offline and as a test double.
    """

    async def similarity(self, a: str, b: str) -> float:
        left, right = set(tokenize(a, min_length=1)), set(tokenize(b, min_length=1))
        if not left or not right:
            return 0.0
        return len(left & right) / len(left | right)


class EmbeddingSimilarity:
    """
    Cosine similarity over vectors from a host-supplied embedding function.

    The embed function may be sync or async. Vectors are memoized per text.
    """

    def __init__(self, embed: EmbedFn, max_cached_vectors: int = 2048):
        self._embed = embed
        self._vectors: OrderedDict[str, np.ndarray] = OrderedDict()
        self._max_cached_vectors = max_cached_vectors

    async def _vector(self, text: str) -> np.ndarray:
        if text in self._vectors:
            self._vectors.move_to_end(text)
            return self._vectors[text]

        raw = self._embed(text)
        if inspect.isawaitable(raw):
            raw = await raw
        vec = np.asarray(raw, dtype=np.float32)

        self._vectors[text] = vec
        while len(self._vectors) > self._max_cached_vectors:
            self._vectors.popitem(last=False)
        return vec

    async def similarity(self, a: str, b: str) -> float:
        va, vb = await asyncio.gather(self._vector(a), self._vector(b))
        return cosine_similarity(va, vb)


class CachedSimilarity:
    """LRU cache in front of a SimilarityProvider, keyed by (message, keyword)"""

    def __init__(self, provider: SimilarityProvider, max_size: int = 4096):
        self.provider = provider
        self.max_size = max_size
        self._cache: OrderedDict[str, float] = OrderedDict()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def _cache_key(message: str, keyword: str) -> str:
        content = f"{len(message)}:{message}\x00{keyword}"
        return hashlib.md5(content.encode()).hexdigest()

    async def similarity(self, message: str, keyword: str) -> float:
        key = self._cache_key(message, keyword)
        if key in self._cache:
            self.hits += 1
            self._cache.move_to_end(key)
            return self._cache[key]

        self.misses += 1
        score = float(await self.provider.similarity(message, keyword))
        score = max(0.0, min(1.0, score))

        self._cache[key] = score
        while len(self._cache) > self.max_size:
            self._cache.popitem(last=False)
        return score

    def clear(self) -> int:
        """Clear the cache. Returns count cleared."""
        count = len(self._cache)
        self._cache.clear()
        logger.debug("Similarity cache cleared ({count} entries)", count=count)
        return count

    def stats(self) -> Dict[str, int]:
        return {"size": len(self._cache), "hits": self.hits, "misses": self.misses}
