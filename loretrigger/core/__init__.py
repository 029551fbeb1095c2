"""Core data models and configuration"""

from loretrigger.core.config import (
    InjectionConfig,
    MatchConfig,
    MatchStrategy,
    RealTimeOptions,
    settings,
)
from loretrigger.core.models import (
    ChatMessage,
    ContextRequirement,
    ConversationContext,
    CooldownRecord,
    EngineState,
    InjectionAction,
    InjectionResult,
    InjectionType,
    Match,
    MatchType,
    SelectiveCondition,
    SkipReason,
    SkippedEntry,
    TriggerDebugInfo,
    TriggerEntry,
    TriggerStats,
)

__all__ = [
    "InjectionConfig",
    "MatchConfig",
    "MatchStrategy",
    "RealTimeOptions",
    "settings",
    "ChatMessage",
    "ContextRequirement",
    "ConversationContext",
    "CooldownRecord",
    "EngineState",
    "InjectionAction",
    "InjectionResult",
    "InjectionType",
    "Match",
    "MatchType",
    "SelectiveCondition",
    "SkipReason",
    "SkippedEntry",
    "TriggerDebugInfo",
    "TriggerEntry",
    "TriggerStats",
]
