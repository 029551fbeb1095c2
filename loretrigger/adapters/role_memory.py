"""
Role-memory adapter.

Maps a character's memory records (episodic, semantic, trait, goal) onto
TriggerEntry. Timestamps arrive in milliseconds.
"""

from typing import Any, Dict

from loretrigger.core.models import TriggerEntry

ROLE_MEMORY_CATEGORY_CAPS: Dict[str, int] = {
    "episodic": 3,
    "semantic": 2,
    "trait": 5,
    "goal": 3,
}

MS_PER_SECOND = 1000.0


def _float(value: Any, default: float) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def to_trigger_entry(raw: Dict[str, Any]) -> TriggerEntry:
    timestamp = raw.get("timestamp")
    timestamp_s = _float(timestamp, 0.0) / MS_PER_SECOND if timestamp is not None else None

    metadata = raw.get("metadata")
    return TriggerEntry(
        id=raw["id"],
        category=raw.get("type") or "episodic",
        primary_keys=raw.get("keywords"),
        secondary_keys=raw.get("relatedTopics"),
        is_constant=bool(raw.get("isConstant", False)),
        priority=int(_float(raw.get("priority"), 0.0)),
        weight=max(_float(raw.get("relevanceWeight"), 1.0), 0.0),
        content=raw.get("content"),
        emotional_context=raw.get("emotionalContext"),
        related_topics=raw.get("relatedTopics"),
        timestamp=timestamp_s or None,
        time_decay_factor=_float(raw.get("timeDecayFactor"), 0.0),
        emotional_weight=_float(raw.get("emotionalWeight"), 1.0),
        payload=dict(metadata) if isinstance(metadata, dict) else {},
    )
