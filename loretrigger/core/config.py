"""Configuration management using Pydantic Settings"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MatchStrategy(str, Enum):
    """Text scoring strategy applied to every keyword/message pair"""

    EXACT = "exact"
    CONTAINS = "contains"
    FUZZY = "fuzzy"
    SEMANTIC = "semantic"


DEFAULT_SEPARATOR = "\n\n---\n\n"

DEFAULT_CATEGORY_LABELS: dict[str, str] = {
    "episodic": "Episodic Memories",
    "semantic": "Semantic Memories",
    "trait": "Trait Memories",
    "goal": "Goal Memories",
    "worldbook": "World Lore",
    "default": "Related Entries",
}


class MatchConfig(BaseModel):
    """Matching, validation and ranking knobs for one engine"""

    enabled: bool = True
    match_strategy: MatchStrategy = MatchStrategy.CONTAINS
    case_sensitive: bool = False
    fuzzy_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    semantic_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    check_history_length: int = Field(default=5, ge=0)
    max_inject_entries: int = Field(default=10, ge=0)
    injection_cooldown: float = Field(default=30.0, ge=0.0)  # seconds
    debug_mode: bool = False

    # Metadata strategies, combined with the text score by max
    enable_temporal: bool = False
    enable_emotional: bool = False

    enable_synonyms: bool = False
    custom_synonyms: dict[str, list[str]] = Field(default_factory=dict)

    # compared against the weighted score, which may exceed 1, so no upper bound
    relevance_threshold: float = Field(default=0.0, ge=0.0)
    max_per_category: dict[str, int] = Field(default_factory=dict)
    triggered_duration_messages: int = Field(default=5, ge=1)
    history_ttl_per_message: float = Field(default=1.0, ge=0.0)  # seconds
    max_recursive_depth: int = Field(default=0, ge=0)


class InjectionConfig(BaseModel):
    """How chosen entries are rendered into prompt text"""

    separator: str = DEFAULT_SEPARATOR
    separate_by_type: bool = False
    category_labels: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_CATEGORY_LABELS)
    )
    show_timestamps: bool = False
    show_source: bool = False
    show_keywords: bool = True
    template: Optional[str] = None
    max_total_length: Optional[int] = Field(default=None, ge=0)

    def label_for(self, category: str) -> str:
        return self.category_labels.get(category, category)


class RealTimeOptions(BaseModel):
    """Debounced streaming invocation"""

    enabled: bool = False
    debounce_delay: float = Field(default=0.5, gt=0.0)  # seconds
    min_trigger_interval: float = Field(default=0.1, ge=0.0)  # seconds
    allow_concurrent: bool = False


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # Matching
    MATCH_STRATEGY: MatchStrategy = MatchStrategy.CONTAINS
    CASE_SENSITIVE: bool = False
    FUZZY_THRESHOLD: float = 0.7
    SEMANTIC_THRESHOLD: float = 0.6
    CHECK_HISTORY_LENGTH: int = 5
    MAX_INJECT_ENTRIES: int = 10
    INJECTION_COOLDOWN_SECONDS: float = 30.0
    TRIGGERED_DURATION_MESSAGES: int = 5
    MAX_RECURSIVE_DEPTH: int = 0
    DEBUG_MODE: bool = False

    # Streaming
    REALTIME_ENABLED: bool = False
    REALTIME_DEBOUNCE_DELAY: float = 0.5
    REALTIME_MIN_TRIGGER_INTERVAL: float = 0.1
    REALTIME_ALLOW_CONCURRENT: bool = False

    # Semantic similarity cache (entries)
    SIMILARITY_CACHE_SIZE: int = 4096

    def match_config(self) -> MatchConfig:
        return MatchConfig(
            match_strategy=self.MATCH_STRATEGY,
            case_sensitive=self.CASE_SENSITIVE,
            fuzzy_threshold=self.FUZZY_THRESHOLD,
            semantic_threshold=self.SEMANTIC_THRESHOLD,
            check_history_length=self.CHECK_HISTORY_LENGTH,
            max_inject_entries=self.MAX_INJECT_ENTRIES,
            injection_cooldown=self.INJECTION_COOLDOWN_SECONDS,
            triggered_duration_messages=self.TRIGGERED_DURATION_MESSAGES,
            max_recursive_depth=self.MAX_RECURSIVE_DEPTH,
            debug_mode=self.DEBUG_MODE,
        )

    def injection_config(self) -> InjectionConfig:
        return InjectionConfig()

    def realtime_options(self) -> RealTimeOptions:
        return RealTimeOptions(
            enabled=self.REALTIME_ENABLED,
            debounce_delay=self.REALTIME_DEBOUNCE_DELAY,
            min_trigger_interval=self.REALTIME_MIN_TRIGGER_INTERVAL,
            allow_concurrent=self.REALTIME_ALLOW_CONCURRENT,
        )


settings = Settings()
