"""Ranker - orders validated matches and enforces injection quotas"""

from typing import Dict, List, Sequence, Tuple

from loguru import logger

from loretrigger.core.config import MatchConfig
from loretrigger.core.models import (
    InjectionAction,
    InjectionType,
    Match,
    SkipReason,
    SkippedEntry,
    TriggerEntry,
)


def constant_action(entry: TriggerEntry) -> InjectionAction:
    return InjectionAction(
        type=InjectionType.CONSTANT,
        entry_id=entry.id,
        temporary=False,
        priority=entry.priority,
        category=entry.category,
        entry=entry,
    )


def triggered_action(match: Match, cfg: MatchConfig) -> InjectionAction:
    entry = match.entry
    return InjectionAction(
        type=InjectionType.TRIGGERED,
        entry_id=entry.id,
        temporary=True,
        duration_messages=cfg.triggered_duration_messages,
        priority=entry.priority,
        category=entry.category,
        score=match.score,
        matched_keyword=match.matched_keyword,
        match_type=match.match_type,
        entry=entry,
    )


def sort_matches(matches: Sequence[Match]) -> List[Match]:
    """Descending by (priority, score); equal keys keep input order"""
    return sorted(matches, key=lambda m: (m.entry.priority, m.score), reverse=True)


def rank(
    matches: Sequence[Match],
    constants: Sequence[TriggerEntry],
    cfg: MatchConfig,
) -> Tuple[List[InjectionAction], List[SkippedEntry]]:
    """
    Turn validated matches into injection actions.

    1. Sort by priority, then score
    2. Keep the first max_inject_entries
    3. Drop entries whose category already reached its cap
    4. Prepend every constant entry (never counted against the caps)

    Returns:
        (constant actions followed by triggered actions, dropped entries)
    """
    ordered = sort_matches(matches)
    skipped: List[SkippedEntry] = []

    capped = ordered[: cfg.max_inject_entries]
    for match in ordered[cfg.max_inject_entries:]:
        skipped.append(SkippedEntry(entry_id=match.entry_id, reason=SkipReason.GLOBAL_CAP))

    counts: Dict[str, int] = {}
    selected: List[Match] = []
    for match in capped:
        category = match.entry.category
        limit = cfg.max_per_category.get(category)
        if limit is not None and counts.get(category, 0) >= limit:
            skipped.append(SkippedEntry(entry_id=match.entry_id, reason=SkipReason.CATEGORY_CAP))
            continue
        counts[category] = counts.get(category, 0) + 1
        selected.append(match)

    actions = [constant_action(entry) for entry in constants]
    actions.extend(triggered_action(match, cfg) for match in selected)

    if cfg.debug_mode:
        logger.debug(
            "Ranked {selected}/{candidates} matches (+{constants} constants), dropped {dropped}",
            selected=len(selected),
            candidates=len(ordered),
            constants=len(constants),
            dropped=len(skipped),
        )
    return actions, skipped
