"""
Lore Trigger Engine

Decides, per incoming chat message, which world-book lore entries and role
memories are relevant, ranks them under injection budgets, and renders the
chosen ones into prompt-ready text.
"""

from loretrigger.core.config import InjectionConfig, MatchConfig, MatchStrategy, RealTimeOptions
from loretrigger.core.models import (
    ChatMessage,
    ConversationContext,
    InjectionResult,
    MatchType,
    TriggerEntry,
)
from loretrigger.pipeline.engine import TriggerEngine
from loretrigger.pipeline.realtime import RealTimeScheduler

__version__ = "0.1.0"

__all__ = [
    "ChatMessage",
    "ConversationContext",
    "InjectionConfig",
    "InjectionResult",
    "MatchConfig",
    "MatchStrategy",
    "MatchType",
    "RealTimeOptions",
    "RealTimeScheduler",
    "TriggerEngine",
    "TriggerEntry",
]
