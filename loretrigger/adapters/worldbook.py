"""
World-book adapter.

Maps SillyTavern-style lore records onto TriggerEntry:

    uid                   -> id
    key / keysecondary    -> primary_keys / secondary_keys
    constant              -> is_constant
    order | displayIndex  -> priority
    groupWeight           -> weight
    group                 -> category + optional tag condition
    selective + selectiveLogic -> required custom condition
    depth | scanDepth     -> min_messages requirement
"""

from typing import Any, Dict, Iterable, List, Optional, Union

from loguru import logger

from loretrigger.core.models import ContextRequirement, SelectiveCondition, TriggerEntry
from loretrigger.pipeline.validator import SELECTIVE_LOGIC_PREFIX

WORLDBOOK_CATEGORY = "worldbook"

# Weights in world books are expressed on a 0-100 scale
GROUP_WEIGHT_SCALE = 100.0


def _number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def to_trigger_entry(raw: Dict[str, Any]) -> TriggerEntry:
    """Convert one world-book record. Unparsable numbers fall back to defaults."""
    uid = raw.get("uid", raw.get("id"))
    if uid is None:
        raise ValueError("World-book entry without uid")

    group = raw.get("group")
    group = group.strip() if isinstance(group, str) else ""

    conditions: List[SelectiveCondition] = []
    if group:
        conditions.append(SelectiveCondition(type="tag", value=group))
    if raw.get("selective") and raw.get("keysecondary"):
        logic = int(_number(raw.get("selectiveLogic")) or 0)
        conditions.append(SelectiveCondition(
            type="custom",
            value=f"{SELECTIVE_LOGIC_PREFIX}{logic}",
            required=True,
        ))

    requirements: List[ContextRequirement] = []
    # depth wins; a missing or zero depth falls through to scanDepth
    scan_depth = _number(raw.get("depth")) or _number(raw.get("scanDepth"))
    if scan_depth is not None and scan_depth > 0:
        requirements.append(ContextRequirement(type="min_messages", value=int(scan_depth)))

    priority = _number(raw.get("order"))
    if priority is None:
        priority = _number(raw.get("displayIndex"))

    weight = _number(raw.get("groupWeight"))

    return TriggerEntry(
        id=uid,
        category=group or WORLDBOOK_CATEGORY,
        comment=raw.get("comment") or None,
        primary_keys=raw.get("key"),
        secondary_keys=raw.get("keysecondary"),
        is_constant=bool(raw.get("constant", False)),
        priority=int(priority or 0),
        weight=max(weight, 0.0) / GROUP_WEIGHT_SCALE if weight is not None else 1.0,
        selective_conditions=conditions,
        context_requirements=requirements,
        content=raw.get("content"),
        payload={k: v for k, v in raw.items() if k not in ("content",)},
    )


def iter_raw_entries(
    worldbook: Union[Dict[str, Any], Iterable[Dict[str, Any]]],
) -> List[Dict[str, Any]]:
    """Accept a list of records, a uid -> record mapping, or {"entries": ...}"""
    if isinstance(worldbook, dict):
        entries = worldbook.get("entries", worldbook)
        if isinstance(entries, dict):
            return [e for e in entries.values() if isinstance(e, dict)]
        return [e for e in entries if isinstance(e, dict)]
    return [e for e in worldbook if isinstance(e, dict)]


def to_trigger_entries(
    worldbook: Union[Dict[str, Any], Iterable[Dict[str, Any]]],
) -> List[TriggerEntry]:
    """Convert a whole world book, skipping disabled records"""
    entries = []
    skipped = 0
    for raw in iter_raw_entries(worldbook):
        if raw.get("disable") or raw.get("disabled"):
            skipped += 1
            continue
        entries.append(to_trigger_entry(raw))

    logger.debug(
        "Converted {count} world-book entries ({skipped} disabled)",
        count=len(entries),
        skipped=skipped,
    )
    return entries
