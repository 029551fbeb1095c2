"""
Trigger Engine - orchestrates the retrieval pipeline for one conversation.

    message -> prune history -> window -> MatchEngine -> TriggerValidator -> rank
            -> InjectionBuilder -> StatsTracker -> injection history

Load-time errors propagate. Per-message errors are logged and turned into an
empty InjectionResult so the caller's turn can proceed.
"""

import asyncio
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set, Union

from loguru import logger

from loretrigger.core.config import InjectionConfig, MatchConfig, settings
from loretrigger.core.models import (
    ChatMessage,
    ConversationContext,
    CooldownRecord,
    EngineState,
    InjectionResult,
    InjectionType,
    Match,
    TriggerDebugInfo,
    TriggerEntry,
)
from loretrigger.matching.match_engine import MatchEngine, message_window
from loretrigger.matching.similarity import SimilarityProvider
from loretrigger.pipeline.injection_builder import InjectionBuilder
from loretrigger.pipeline.ranker import constant_action, rank
from loretrigger.pipeline.stats_tracker import StatsTracker
from loretrigger.pipeline.validator import TriggerValidator

MessageLike = Union[ChatMessage, str, Dict[str, Any]]
EntryLike = Union[TriggerEntry, Dict[str, Any]]


def _to_message(message: MessageLike) -> ChatMessage:
    if isinstance(message, ChatMessage):
        return message
    if isinstance(message, str):
        return ChatMessage(content=message)
    return ChatMessage.model_validate(message)


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


class TriggerEngine:
    """
    Owns one EngineState and is its only writer.

    State is mutated only by load_entries, process_message,
    cleanup_expired_history and reset_statistics. Concurrent process_message
    calls on one instance race on history and stats unless the engine is
    built with serialize_calls=True, which queues them behind an asyncio.Lock.
    """

    def __init__(
        self,
        config: Optional[MatchConfig] = None,
        injection_config: Optional[InjectionConfig] = None,
        similarity_provider: Optional[SimilarityProvider] = None,
        clock: Callable[[], float] = time.time,
        serialize_calls: bool = False,
    ) -> None:
        self.config = config or settings.match_config()
        self.injection_config = injection_config or settings.injection_config()
        self.clock = clock

        self.match_engine = MatchEngine(
            similarity_provider,
            cache_size=settings.SIMILARITY_CACHE_SIZE,
            clock=clock,
        )
        self.validator = TriggerValidator()
        self.builder = InjectionBuilder()
        self.stats_tracker = StatsTracker()

        self.state = EngineState(last_updated=clock())
        self._lock: Optional[asyncio.Lock] = asyncio.Lock() if serialize_calls else None
        self.messages_processed = 0

        logger.info(
            "TriggerEngine initialized (strategy={strategy}, max_inject={max_inject})",
            strategy=self.config.match_strategy.value,
            max_inject=self.config.max_inject_entries,
        )

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_entries(self, entries: Iterable[EntryLike]) -> int:
        """
        Replace the loaded corpus.

        Raw dicts are validated into TriggerEntry; invalid input raises
        pydantic.ValidationError and duplicate ids raise ValueError.

        Returns:
            Number of entries loaded
        """
        try:
            parsed = [
                e if isinstance(e, TriggerEntry) else TriggerEntry.model_validate(e)
                for e in entries
            ]
            seen: Set[str] = set()
            for entry in parsed:
                if entry.id in seen:
                    raise ValueError(f"Duplicate entry id: {entry.id}")
                seen.add(entry.id)
        except Exception as e:
            logger.error(f"Failed to load entries: {e}")
            raise

        # sorted() is stable: equal priorities keep corpus order
        parsed.sort(key=lambda e: (not e.is_constant, -e.priority))

        self.state.loaded_entries = parsed
        self.state.last_updated = self.clock()

        constants = sum(1 for e in parsed if e.is_constant)
        logger.info(
            "Loaded {total} entries ({constants} constant, {triggered} triggered)",
            total=len(parsed),
            constants=constants,
            triggered=len(parsed) - constants,
        )
        return len(parsed)

    def load_from(
        self,
        repository: Any,
        adapter: Optional[Callable[[Dict[str, Any]], Optional[TriggerEntry]]] = None,
    ) -> int:
        """
        Load through an EntryRepository and an optional raw -> TriggerEntry adapter.

        Adapters may return None for records that should not be loaded.
        """
        raws = repository.load()
        if adapter is None:
            return self.load_entries(raws)
        entries = [entry for entry in (adapter(raw) for raw in raws) if entry is not None]
        return self.load_entries(entries)

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    async def process_message(
        self,
        message: MessageLike,
        history: Sequence[MessageLike] = (),
        *,
        context: Optional[ConversationContext] = None,
    ) -> InjectionResult:
        """
        Run the full pipeline for one incoming message.

        Args:
            message: The new message (ignored when context is given)
            history: Earlier messages, most recent last
            context: Fully specified conversation context

        Returns:
            InjectionResult; empty on any internal failure
        """
        if self._lock is not None:
            async with self._lock:
                return await self._process(message, history, context)
        return await self._process(message, history, context)

    async def _process(
        self,
        message: MessageLike,
        history: Sequence[MessageLike],
        context: Optional[ConversationContext],
    ) -> InjectionResult:
        start = time.perf_counter()
        debug = TriggerDebugInfo()
        cfg = self.config

        if not cfg.enabled:
            return InjectionResult.empty(_elapsed_ms(start), debug)

        self.messages_processed += 1

        try:
            stage = time.perf_counter()
            ctx = context or ConversationContext(
                current_message=_to_message(message),
                conversation_history=[_to_message(m) for m in history],
            )
            now = self.clock()
            self.cleanup_expired_history(now)
            debug.messages_checked = len(message_window(ctx, cfg.check_history_length))
            debug.candidates_count = len(self.state.loaded_entries)
            debug.performance.parse_time = _elapsed_ms(stage)

            valid = await self._collect_matches(ctx, cfg, now, debug)

            stage = time.perf_counter()
            actions, dropped = rank(valid, self.state.constant_entries, cfg)
            debug.skipped_entries.extend(dropped)
            result = self.builder.build(actions, self.injection_config, debug)
            debug.performance.injection_time = _elapsed_ms(stage)

            result.duration = _elapsed_ms(start)
            self._record(result, now)

            if cfg.debug_mode:
                logger.debug(
                    "Processed message in {duration:.2f}ms: injected {injected}, skipped {skipped}",
                    duration=result.duration,
                    injected=result.injected_count,
                    skipped=result.skipped_count,
                )
            return result

        except Exception:
            logger.exception("Failed to process message; returning empty injection")
            return InjectionResult.empty(_elapsed_ms(start), debug)

    async def _collect_matches(
        self,
        ctx: ConversationContext,
        cfg: MatchConfig,
        now: float,
        debug: TriggerDebugInfo,
    ) -> List[Match]:
        """
        Match and validate, recursing into newly triggered entry bodies.

        Each pass only considers entries not matched by an earlier pass, so an
        entry is matched, validated and injected at most once per message.
        """
        triggerable = self.state.triggerable_entries
        valid: List[Match] = []
        decided: Set[str] = set()
        fed: Set[str] = set()
        pass_ctx = ctx

        for depth in range(cfg.max_recursive_depth + 1):
            candidates = [e for e in triggerable if e.id not in decided]

            stage = time.perf_counter()
            matches = await self.match_engine.match(candidates, pass_ctx, cfg)
            debug.performance.match_time += _elapsed_ms(stage)
            debug.matched_triggers.extend(matches)

            stage = time.perf_counter()
            passed, skipped = self.validator.validate(matches, pass_ctx, self.state, cfg, now)
            debug.performance.filter_time += _elapsed_ms(stage)
            debug.skipped_entries.extend(skipped)

            decided.update(m.entry_id for m in matches)
            valid.extend(passed)

            if depth == cfg.max_recursive_depth:
                break

            selected, _ = rank(valid, [], cfg)
            new = [a for a in selected if a.entry_id not in fed and a.entry is not None]
            fed.update(a.entry_id for a in new)
            text = "\n\n".join(a.entry.content for a in new if a.entry.content.strip())
            if not text:
                break

            pass_ctx = pass_ctx.model_copy(update={
                "conversation_history": [*pass_ctx.conversation_history, pass_ctx.current_message],
                "current_message": ChatMessage(role="assistant", content=text, timestamp=now),
            })
            debug.recursion_depth = depth + 1

        return valid

    def _record(self, result: InjectionResult, now: float) -> None:
        """Fold a finished run into stats and injection history"""
        self.state.stats = self.stats_tracker.update(
            self.state.stats, result, self.state.last_updated, now
        )

        for action in result.actions:
            if not action.temporary or not action.duration_messages:
                continue
            ttl = max(
                self.config.injection_cooldown,
                action.duration_messages * self.config.history_ttl_per_message,
            )
            self.state.injection_history.append(CooldownRecord(
                entry_id=action.entry_id,
                injected_at=now,
                expire_at=now + ttl,
                trigger_keyword=action.matched_keyword,
                injection_type=action.type,
            ))

        self.state.active_triggers = [
            a.entry_id for a in result.actions if a.type == InjectionType.TRIGGERED
        ]
        self.state.last_updated = now

    # ------------------------------------------------------------------
    # Maintenance and inspection
    # ------------------------------------------------------------------

    def cleanup_expired_history(self, now: Optional[float] = None) -> int:
        """Drop history records past their expiry. Returns count removed."""
        now = self.clock() if now is None else now
        before = len(self.state.injection_history)
        self.state.injection_history = [
            r for r in self.state.injection_history if r.expire_at >= now
        ]
        removed = before - len(self.state.injection_history)
        if removed:
            logger.debug("Pruned {removed} expired history records", removed=removed)
        return removed

    def reset_statistics(self) -> None:
        self.state.stats = self.stats_tracker.reset()
        logger.info("Trigger statistics reset")

    def get_state(self) -> EngineState:
        """Deep copy of the current state"""
        return self.state.model_copy(deep=True)

    def get_constant_content(self) -> str:
        """Rendered constant entries, independent of any message"""
        actions = [constant_action(e) for e in self.state.constant_entries]
        return self.builder.build(actions, self.injection_config).constant_content

    def update_config(
        self,
        match: Optional[Union[MatchConfig, Dict[str, Any]]] = None,
        injection: Optional[Union[InjectionConfig, Dict[str, Any]]] = None,
    ) -> None:
        """Replace or partially update the configuration (dicts are merged and re-validated)"""
        if isinstance(match, MatchConfig):
            self.config = match
        elif match:
            self.config = MatchConfig.model_validate({**self.config.model_dump(), **match})

        if isinstance(injection, InjectionConfig):
            self.injection_config = injection
        elif injection:
            self.injection_config = InjectionConfig.model_validate(
                {**self.injection_config.model_dump(), **injection}
            )
        logger.info("TriggerEngine configuration updated")
