"""Core data models for the lore trigger engine"""

import time
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MatchType(str, Enum):
    """How a match was produced"""

    PRIMARY = "primary"
    SECONDARY = "secondary"
    FUZZY = "fuzzy"
    SEMANTIC = "semantic"
    TEMPORAL = "temporal"
    EMOTIONAL = "emotional"


class InjectionType(str, Enum):
    """Kinds of injection actions"""

    CONSTANT = "constant"
    TRIGGERED = "triggered"


class SkipReason(str, Enum):
    """Why a matched entry did not make it into the prompt"""

    COOLDOWN = "cooldown"
    SELECTIVE_CONDITION = "selective_condition"
    CONTEXT_REQUIREMENT = "context_requirement"
    GLOBAL_CAP = "global_cap"
    CATEGORY_CAP = "category_cap"
    LENGTH_BUDGET = "length_budget"


def _as_str_list(value: Any) -> list[str]:
    """Normalize loose key/tag input into a list of non-empty strings"""
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple, set)):
        return []
    result = []
    for item in value:
        if item is None:
            continue
        text = str(item).strip()
        if text:
            result.append(text)
    return result


class ChatMessage(BaseModel):
    """A single conversation turn"""

    role: str = "user"
    content: str = ""
    timestamp: Optional[float] = None

    @field_validator("content", mode="before")
    @classmethod
    def _none_content(cls, value: Any) -> Any:
        return "" if value is None else value


class SelectiveCondition(BaseModel):
    """
    Gate evaluated against the conversation's attributes.

    Types: tag, character, user, scenario, custom. Unknown types pass.
    """

    type: str
    value: Union[str, list[str]] = ""
    operator: str = "equals"  # equals | contains | matches | in | not_in
    required: bool = False


class ContextRequirement(BaseModel):
    """
    Structural requirement on the conversation.

    Types: min_messages, max_messages, time_since_last, user_role,
    conversation_topic. Unknown types pass.
    """

    type: str
    value: Union[int, float, str] = 0
    operator: str = "gte"  # gte | lte | eq | contains | matches


class TriggerEntry(BaseModel):
    """
    A unit of injectable knowledge: a world-book lore entry or a role memory.

    Frozen once built; the engine only ever reorders and references entries.
    An entry without primary and secondary keys can never be matched and is
    only injected when constant.
    """

    model_config = ConfigDict(frozen=True)

    # ========== IDENTITY ==========
    id: str
    category: str = "default"
    comment: Optional[str] = None

    # ========== TRIGGERING ==========
    primary_keys: list[str] = Field(default_factory=list)
    secondary_keys: list[str] = Field(default_factory=list)
    is_constant: bool = False
    priority: int = 0
    weight: float = Field(default=1.0, ge=0.0)

    # ========== GATES ==========
    selective_conditions: list[SelectiveCondition] = Field(default_factory=list)
    context_requirements: list[ContextRequirement] = Field(default_factory=list)

    # ========== BODY ==========
    content: str = ""

    # ========== MEMORY METADATA ==========
    emotional_context: list[str] = Field(default_factory=list)
    related_topics: list[str] = Field(default_factory=list)
    timestamp: Optional[float] = None  # epoch seconds
    time_decay_factor: float = 0.0
    emotional_weight: float = 1.0

    # Category-specific extras (raw world-book fields, memory metadata, ...)
    payload: dict[str, Any] = Field(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(int(value))
        return value

    @field_validator(
        "primary_keys", "secondary_keys", "emotional_context", "related_topics",
        mode="before",
    )
    @classmethod
    def _normalize_lists(cls, value: Any) -> list[str]:
        return _as_str_list(value)

    @field_validator("content", mode="before")
    @classmethod
    def _none_content(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def all_keys(self) -> list[str]:
        return [*self.primary_keys, *self.secondary_keys]

    @property
    def is_matchable(self) -> bool:
        return bool(self.primary_keys or self.secondary_keys)

    @property
    def title(self) -> str:
        """Display title: comment, first primary key, or a numbered fallback"""
        if self.comment:
            return self.comment
        if self.primary_keys:
            return self.primary_keys[0]
        return f"entry #{self.id}"


class ConversationContext(BaseModel):
    """Everything the engine knows about the live conversation"""

    current_message: ChatMessage
    conversation_history: list[ChatMessage] = Field(default_factory=list)
    context_keywords: set[str] = Field(default_factory=set)
    current_topic: Optional[str] = None
    emotional_state: Optional[str] = None

    # Values selective conditions are checked against, keyed by condition type
    attributes: dict[str, Union[str, list[str]]] = Field(default_factory=dict)


class Match(BaseModel):
    """Best scoring hit for one entry"""

    entry: TriggerEntry
    matched_keyword: str = ""
    match_type: MatchType
    score: float = Field(ge=0.0)
    positions: list[int] = Field(default_factory=list)
    matched_messages: list[ChatMessage] = Field(default_factory=list)

    @property
    def entry_id(self) -> str:
        return self.entry.id


class InjectionAction(BaseModel):
    """One entry scheduled for injection"""

    type: InjectionType
    entry_id: str
    content: str = ""
    temporary: bool = False
    duration_messages: Optional[int] = None
    priority: int = 0
    category: str = "default"
    score: float = 1.0
    matched_keyword: str = ""
    match_type: Optional[MatchType] = None

    entry: Optional[TriggerEntry] = Field(default=None, exclude=True, repr=False)


class CooldownRecord(BaseModel):
    """Injection history record used for rate limiting"""

    entry_id: str
    injected_at: float
    expire_at: float
    trigger_keyword: str = ""
    injection_type: InjectionType = InjectionType.TRIGGERED


class SkippedEntry(BaseModel):
    entry_id: str
    reason: SkipReason


class PerformanceTimings(BaseModel):
    """Stage timings in milliseconds"""

    parse_time: float = 0.0
    match_time: float = 0.0
    filter_time: float = 0.0
    injection_time: float = 0.0


class TriggerDebugInfo(BaseModel):
    """Diagnostics for one pipeline run"""

    messages_checked: int = 0
    candidates_count: int = 0
    matched_triggers: list[Match] = Field(default_factory=list)
    skipped_entries: list[SkippedEntry] = Field(default_factory=list)
    performance: PerformanceTimings = Field(default_factory=PerformanceTimings)
    recursion_depth: int = 0


class InjectionResult(BaseModel):
    """What the prompt assembler consumes"""

    actions: list[InjectionAction] = Field(default_factory=list)
    constant_content: str = ""
    triggered_content: str = ""
    full_content: str = ""
    injected_count: int = 0
    skipped_count: int = 0
    duration: float = 0.0  # milliseconds
    match_type_counts: dict[MatchType, int] = Field(default_factory=dict)
    debug_info: TriggerDebugInfo = Field(default_factory=TriggerDebugInfo)

    @classmethod
    def empty(
        cls,
        duration: float = 0.0,
        debug_info: Optional[TriggerDebugInfo] = None,
    ) -> "InjectionResult":
        return cls(duration=duration, debug_info=debug_info or TriggerDebugInfo())

    @property
    def triggered_actions(self) -> list[InjectionAction]:
        return [a for a in self.actions if a.type == InjectionType.TRIGGERED]

    @property
    def constant_actions(self) -> list[InjectionAction]:
        return [a for a in self.actions if a.type == InjectionType.CONSTANT]


class PopularEntry(BaseModel):
    entry_id: str
    title: str
    trigger_count: int = 0


class TriggerStats(BaseModel):
    """Running counters kept across messages"""

    total_triggers: int = 0
    today_triggers: int = 0
    popular_entries: list[PopularEntry] = Field(default_factory=list)
    avg_response_time: float = 0.0  # milliseconds


class EngineState(BaseModel):
    """
    Everything one engine instance mutates.

    loaded_entries is ordered constants first, then by descending priority.
    """

    loaded_entries: list[TriggerEntry] = Field(default_factory=list)
    active_triggers: list[str] = Field(default_factory=list)
    injection_history: list[CooldownRecord] = Field(default_factory=list)
    stats: TriggerStats = Field(default_factory=TriggerStats)
    last_updated: float = Field(default_factory=time.time)

    @property
    def constant_entries(self) -> list[TriggerEntry]:
        return [e for e in self.loaded_entries if e.is_constant]

    @property
    def triggerable_entries(self) -> list[TriggerEntry]:
        return [e for e in self.loaded_entries if not e.is_constant]

    def last_injection(self, entry_id: str) -> Optional[float]:
        times = [r.injected_at for r in self.injection_history if r.entry_id == entry_id]
        return max(times) if times else None
