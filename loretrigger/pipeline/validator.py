"""
Validator - filters matches before ranking.

Checks, in order, stopping at the first failure:
1. Cooldown (recent injection of the same entry)
2. Selective conditions (required ones enforced, others only logged)
3. Context requirements (all must hold)

Rejections are diagnostics, not errors.
"""

import re
from typing import List, Optional, Sequence, Tuple, Union

from loguru import logger

from loretrigger.core.config import MatchConfig
from loretrigger.core.models import (
    ChatMessage,
    ContextRequirement,
    ConversationContext,
    EngineState,
    Match,
    SelectiveCondition,
    SkipReason,
    SkippedEntry,
    TriggerEntry,
)
from loretrigger.matching.match_engine import message_window
from loretrigger.matching.text_similarity import find_positions

SELECTIVE_LOGIC_PREFIX = "selective_logic_"

# World-book secondary key logic
AND_ANY = 0
NOT_ALL = 1
NOT_ANY = 2
AND_ALL = 3


def _as_list(value: Union[str, List[str], int, float]) -> List[str]:
    if isinstance(value, list):
        return [str(v) for v in value]
    return [str(value)]


def _regex_search(pattern: str, text: str) -> bool:
    try:
        return re.search(pattern, text, re.IGNORECASE) is not None
    except re.error:
        logger.warning("Invalid pattern in entry gate: {pattern}", pattern=pattern)
        return False


def _compare_text(actual: str, expected: str, operator: str) -> bool:
    if operator == "contains":
        return expected.casefold() in actual.casefold()
    if operator == "matches":
        return _regex_search(expected, actual)
    return actual.casefold() == expected.casefold()


def _compare_number(actual: float, expected: float, operator: str, default: str) -> bool:
    if operator not in ("gte", "lte", "eq"):
        operator = default
    if operator == "gte":
        return actual >= expected
    if operator == "lte":
        return actual <= expected
    return actual == expected


class TriggerValidator:
    """
    Stateless gatekeeper; reads EngineState, never mutates it or the entries.
    """

    def validate(
        self,
        matches: Sequence[Match],
        ctx: ConversationContext,
        state: EngineState,
        cfg: MatchConfig,
        now: float,
    ) -> Tuple[List[Match], List[SkippedEntry]]:
        """
        Args:
            matches: Scored matches
            ctx: Live conversation
            state: Engine state (injection history is read for cooldowns)
            cfg: Match configuration
            now: Current time (epoch seconds)

        Returns:
            (surviving matches in input order, skipped entries with reasons)
        """
        window = message_window(ctx, cfg.check_history_length)
        valid: List[Match] = []
        skipped: List[SkippedEntry] = []

        for match in matches:
            entry = match.entry
            reason: Optional[SkipReason] = None

            if self.in_cooldown(entry.id, state, cfg, now):
                reason = SkipReason.COOLDOWN
            elif not self.check_selective_conditions(entry, ctx, window, cfg):
                reason = SkipReason.SELECTIVE_CONDITION
            elif not self.check_context_requirements(entry, ctx, state, now):
                reason = SkipReason.CONTEXT_REQUIREMENT

            if reason is None:
                valid.append(match)
                continue

            skipped.append(SkippedEntry(entry_id=entry.id, reason=reason))
            if cfg.debug_mode:
                logger.debug(
                    "Skipped entry {entry_id}: {reason}",
                    entry_id=entry.id,
                    reason=reason.value,
                )

        return valid, skipped

    # ------------------------------------------------------------------
    # Cooldown
    # ------------------------------------------------------------------

    @staticmethod
    def in_cooldown(entry_id: str, state: EngineState, cfg: MatchConfig, now: float) -> bool:
        return any(
            record.entry_id == entry_id and now - record.injected_at < cfg.injection_cooldown
            for record in state.injection_history
        )

    # ------------------------------------------------------------------
    # Selective conditions
    # ------------------------------------------------------------------

    def check_selective_conditions(
        self,
        entry: TriggerEntry,
        ctx: ConversationContext,
        window: Sequence[ChatMessage],
        cfg: MatchConfig,
    ) -> bool:
        for condition in entry.selective_conditions:
            result = self.evaluate_condition(condition, entry, ctx, window, cfg)
            if condition.required and not result:
                return False
            if not condition.required and not result and cfg.debug_mode:
                logger.debug(
                    "Optional condition {type}={value} not met for entry {entry_id}",
                    type=condition.type,
                    value=condition.value,
                    entry_id=entry.id,
                )
        return True

    def evaluate_condition(
        self,
        condition: SelectiveCondition,
        entry: TriggerEntry,
        ctx: ConversationContext,
        window: Sequence[ChatMessage],
        cfg: MatchConfig,
    ) -> bool:
        if condition.type == "custom" and isinstance(condition.value, str) \
                and condition.value.startswith(SELECTIVE_LOGIC_PREFIX):
            return self._evaluate_selective_logic(condition.value, entry, window, cfg)

        attribute = ctx.attributes.get(condition.type)
        if attribute is None:
            # Nothing to compare against: permissive
            return True

        actual = _as_list(attribute)
        expected = _as_list(condition.value)
        op = condition.operator

        if op in ("equals", "in"):
            return any(_compare_text(a, e, "eq") for a in actual for e in expected)
        if op == "not_in":
            return not any(_compare_text(a, e, "eq") for a in actual for e in expected)
        if op == "contains":
            return any(_compare_text(a, e, "contains") for a in actual for e in expected)
        if op == "matches":
            return any(_compare_text(a, e, "matches") for a in actual for e in expected)
        return True

    @staticmethod
    def _evaluate_selective_logic(
        value: str,
        entry: TriggerEntry,
        window: Sequence[ChatMessage],
        cfg: MatchConfig,
    ) -> bool:
        if not entry.secondary_keys:
            return True
        try:
            logic = int(value[len(SELECTIVE_LOGIC_PREFIX):])
        except ValueError:
            return True

        text = "\n".join(m.content for m in window)
        present = [bool(find_positions(text, key, cfg.case_sensitive)) for key in entry.secondary_keys]

        if logic == AND_ANY:
            return any(present)
        if logic == NOT_ALL:
            return not all(present)
        if logic == NOT_ANY:
            return not any(present)
        if logic == AND_ALL:
            return all(present)
        return True

    # ------------------------------------------------------------------
    # Context requirements
    # ------------------------------------------------------------------

    def check_context_requirements(
        self,
        entry: TriggerEntry,
        ctx: ConversationContext,
        state: EngineState,
        now: float,
    ) -> bool:
        return all(
            self.evaluate_requirement(requirement, entry, ctx, state, now)
            for requirement in entry.context_requirements
        )

    def evaluate_requirement(
        self,
        requirement: ContextRequirement,
        entry: TriggerEntry,
        ctx: ConversationContext,
        state: EngineState,
        now: float,
    ) -> bool:
        kind = requirement.type
        op = requirement.operator

        if kind in ("min_messages", "max_messages", "time_since_last"):
            try:
                expected = float(requirement.value)
            except (TypeError, ValueError):
                logger.warning(
                    "Unparsable {kind} requirement on entry {entry_id}: {value!r}",
                    kind=kind,
                    entry_id=entry.id,
                    value=requirement.value,
                )
                return False

            if kind == "min_messages":
                return _compare_number(len(ctx.conversation_history), expected, op, "gte")
            if kind == "max_messages":
                return _compare_number(len(ctx.conversation_history), expected, op, "lte")

            last = state.last_injection(entry.id)
            if last is None:
                return True
            return _compare_number(now - last, expected, op, "gte")

        if kind == "user_role":
            return _compare_text(ctx.current_message.role, str(requirement.value), op)

        if kind == "conversation_topic":
            topics = [t for t in (ctx.current_topic, *sorted(ctx.context_keywords)) if t]
            if not topics:
                return False
            return any(_compare_text(topic, str(requirement.value), op) for topic in topics)

        return True
