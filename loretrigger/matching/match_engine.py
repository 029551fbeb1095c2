"""
Match Engine - scores every triggerable entry against the live conversation.

Text strategies (one per config):
- exact:    1.0 when a whole message equals the keyword
- contains: 0.8 when a message contains the keyword
- fuzzy:    normalized edit-distance similarity, gated by fuzzy_threshold
- semantic: injected similarity provider, gated by semantic_threshold

Metadata strategies (opt-in) score the entry itself:
- temporal:  exp(-age_days * time_decay_factor)
- emotional: emotional_context overlap with the current emotional state

The entry's raw score is the maximum over every keyword/message pair and every
enabled metadata strategy, then multiplied by the entry weight.
"""

import math
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from loguru import logger

from loretrigger.core.config import MatchConfig, MatchStrategy
from loretrigger.core.models import ChatMessage, ConversationContext, Match, MatchType, TriggerEntry
from loretrigger.matching.similarity import CachedSimilarity, SimilarityProvider
from loretrigger.matching.synonyms import SynonymDictionary
from loretrigger.matching.text_similarity import find_positions, normalize, similarity

EXACT_SCORE = 1.0
CONTAINS_SCORE = 0.8
EMOTION_MATCH_SCORE = 0.5
SECONDS_PER_DAY = 86400.0


@dataclass(frozen=True)
class _Keyword:
    text: str
    is_primary: bool
    order: int


@dataclass
class _Candidate:
    """Best keyword/message pair seen so far for one entry"""

    score: float = 0.0
    keyword: Optional[_Keyword] = None
    message_index: int = -1
    positions: List[int] = field(default_factory=list)

    def rank_key(self) -> Tuple[float, bool, int, int]:
        # Higher wins: score, then primary keys, then earliest message, then earliest keyword
        kw = self.keyword
        return (
            self.score,
            bool(kw and kw.is_primary),
            -self.message_index,
            -(kw.order if kw else 0),
        )


def message_window(ctx: ConversationContext, history_length: int) -> List[ChatMessage]:
    """Last history_length history messages, current message appended last"""
    history = ctx.conversation_history[-history_length:] if history_length > 0 else []
    return [*history, ctx.current_message]


class MatchEngine:
    """
    Multi-strategy scorer.

    Stateless apart from the similarity cache: identical inputs give
    identical scores as long as the similarity provider is deterministic.
    """

    def __init__(
        self,
        similarity_provider: Optional[SimilarityProvider] = None,
        cache_size: int = 4096,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.similarity = (
            CachedSimilarity(similarity_provider, max_size=cache_size)
            if similarity_provider is not None
            else None
        )
        self.clock = clock
        self._synonyms: Optional[SynonymDictionary] = None
        self._synonym_source: Optional[dict] = None
        logger.info(
            "MatchEngine initialized (semantic provider: {provider})",
            provider=type(similarity_provider).__name__ if similarity_provider else "none",
        )

    async def match(
        self,
        entries: Sequence[TriggerEntry],
        ctx: ConversationContext,
        cfg: MatchConfig,
    ) -> List[Match]:
        """
        Score all non-constant entries.

        Args:
            entries: Candidate entries (constants are ignored)
            ctx: Live conversation
            cfg: Match configuration

        Returns:
            One Match per entry whose weighted score is positive and reaches
            cfg.relevance_threshold, in input order
        """
        messages = message_window(ctx, cfg.check_history_length)
        matches = []

        for entry in entries:
            if entry.is_constant:
                continue
            match = await self.match_entry(entry, messages, ctx, cfg)
            if match is not None:
                matches.append(match)

        if cfg.debug_mode:
            logger.debug(
                "Matched {matched}/{total} entries over {messages} messages",
                matched=len(matches),
                total=len(entries),
                messages=len(messages),
            )
        return matches

    async def match_entry(
        self,
        entry: TriggerEntry,
        messages: Sequence[ChatMessage],
        ctx: ConversationContext,
        cfg: MatchConfig,
    ) -> Optional[Match]:
        keywords = self._candidate_keywords(entry, cfg)
        if not keywords:
            return None

        best = _Candidate()
        for keyword in keywords:
            for index, message in enumerate(messages):
                score, positions = await self._score_pair(message.content, keyword.text, cfg)
                if score <= 0:
                    continue
                candidate = _Candidate(score, keyword, index, positions)
                if best.keyword is None or candidate.rank_key() > best.rank_key():
                    best = candidate

        raw_score = best.score
        match_type = self._text_match_type(best.keyword, cfg)
        matched_keyword = best.keyword.text if best.keyword else ""
        positions = best.positions
        matched_messages = [messages[best.message_index]] if best.keyword else []

        if cfg.enable_temporal:
            temporal = self.temporal_score(entry)
            if temporal > raw_score:
                raw_score, match_type = temporal, MatchType.TEMPORAL
                matched_keyword, positions, matched_messages = "", [], []

        if cfg.enable_emotional:
            emotional = self.emotional_score(entry, ctx)
            if emotional > raw_score:
                raw_score, match_type = emotional, MatchType.EMOTIONAL
                matched_keyword, positions, matched_messages = ctx.emotional_state or "", [], []

        score = raw_score * entry.weight
        if score <= 0 or score < cfg.relevance_threshold:
            return None

        return Match(
            entry=entry,
            matched_keyword=matched_keyword,
            match_type=match_type,
            score=score,
            positions=positions,
            matched_messages=matched_messages,
        )

    # ------------------------------------------------------------------
    # Text strategies
    # ------------------------------------------------------------------

    async def _score_pair(
        self, content: str, keyword: str, cfg: MatchConfig
    ) -> Tuple[float, List[int]]:
        if not content:
            return 0.0, []

        text = normalize(content, cfg.case_sensitive)
        key = normalize(keyword, cfg.case_sensitive)
        strategy = cfg.match_strategy

        if strategy == MatchStrategy.EXACT:
            if text == key:
                return EXACT_SCORE, [0]
            return 0.0, []

        if strategy == MatchStrategy.CONTAINS:
            positions = find_positions(content, keyword, cfg.case_sensitive)
            return (CONTAINS_SCORE, positions) if positions else (0.0, [])

        if strategy == MatchStrategy.FUZZY:
            score = similarity(text, key)
            if score >= cfg.fuzzy_threshold:
                return score, find_positions(content, keyword, cfg.case_sensitive)
            return 0.0, []

        if strategy == MatchStrategy.SEMANTIC:
            if self.similarity is None:
                return 0.0, []
            score = await self.similarity.similarity(content, keyword)
            if score >= cfg.semantic_threshold:
                return score, find_positions(content, keyword, cfg.case_sensitive)
            return 0.0, []

        return 0.0, []

    @staticmethod
    def _text_match_type(keyword: Optional[_Keyword], cfg: MatchConfig) -> MatchType:
        if cfg.match_strategy == MatchStrategy.FUZZY:
            return MatchType.FUZZY
        if cfg.match_strategy == MatchStrategy.SEMANTIC:
            return MatchType.SEMANTIC
        if keyword is not None and not keyword.is_primary:
            return MatchType.SECONDARY
        return MatchType.PRIMARY

    def _candidate_keywords(self, entry: TriggerEntry, cfg: MatchConfig) -> List[_Keyword]:
        keywords: List[_Keyword] = []
        seen = set()

        def add(text: str, is_primary: bool) -> None:
            if text in seen:
                return
            seen.add(text)
            keywords.append(_Keyword(text, is_primary, len(keywords)))

        synonyms = self._synonym_dictionary(cfg) if cfg.enable_synonyms else None
        for keys, is_primary in ((entry.primary_keys, True), (entry.secondary_keys, False)):
            for key in keys:
                add(key, is_primary)
                if synonyms is not None:
                    for synonym in synonyms.expand(key):
                        add(synonym, is_primary)
        return keywords

    def _synonym_dictionary(self, cfg: MatchConfig) -> SynonymDictionary:
        if self._synonyms is None or self._synonym_source != cfg.custom_synonyms:
            self._synonyms = SynonymDictionary(cfg.custom_synonyms)
            self._synonym_source = dict(cfg.custom_synonyms)
        return self._synonyms

    # ------------------------------------------------------------------
    # Metadata strategies
    # ------------------------------------------------------------------

    def temporal_score(self, entry: TriggerEntry) -> float:
        """Recency decay; entries without a timestamp score 0"""
        if entry.timestamp is None:
            return 0.0
        age_days = max(0.0, self.clock() - entry.timestamp) / SECONDS_PER_DAY
        return math.exp(-age_days * max(0.0, entry.time_decay_factor))

    @staticmethod
    def emotional_score(entry: TriggerEntry, ctx: ConversationContext) -> float:
        """Overlap between the entry's emotional context and the current state"""
        if not ctx.emotional_state or not entry.emotional_context:
            return 0.0
        state = ctx.emotional_state.casefold()
        hits = sum(1 for emotion in entry.emotional_context if emotion.casefold() == state)
        return min(1.0, hits * EMOTION_MATCH_SCORE * entry.emotional_weight)
