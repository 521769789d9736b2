"""Configuration models."""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ..models.judgment import ConfidenceTier

DEFAULT_KNOWN_ENTITIES = [
    "apollo",
    "ares",
    "blackrock",
    "blackstone",
    "carlyle",
    "fidelity",
    "geo",
    "goldman sachs",
    "hps",
    "jpmorgan",
    "kkr",
    "morgan stanley",
    "oaktree",
    "pantheon",
    "golub",
    "owl rock",
    "blue owl",
    "sixth street",
    "antares",
    "hamilton lane",
]

DEFAULT_TRANSACTION_KEYWORDS = [
    "credit",
    "facility",
    "loan",
    "fund",
    "capital",
    "financing",
    "debt",
    "investment",
    "acquisition",
    "rating",
    "notes",
    "raises",
    "closes",
    "secures",
]


class PostgresConfig(BaseModel):
    """Postgres configuration."""

    host: str = Field("localhost", description="Database host")
    port: int = Field(5432, description="Database port")
    database: str = Field("deals", description="Database name")
    user: str = Field("dealdedup", description="Database user")
    password: Optional[str] = Field(None, description="Database password")
    password_env: Optional[str] = Field(None, description="Environment variable for password")
    table: str = Field("deals", description="Table holding the articles")


class DetectionConfig(BaseModel):
    """Feature extraction and similarity settings."""

    similarity_strategy: str = Field("multi_signal", description="multi_signal or word_overlap")
    entity_strategy: str = Field("known_entities", description="known_entities or capitalized")
    known_entities: List[str] = Field(default_factory=lambda: list(DEFAULT_KNOWN_ENTITIES))
    transaction_keywords: List[str] = Field(
        default_factory=lambda: list(DEFAULT_TRANSACTION_KEYWORDS)
    )
    min_word_length: int = Field(4, ge=1, description="Shorter title words are ignored")
    word_overlap_threshold: float = Field(0.70, ge=0.0, le=1.0)
    amount_tolerance: float = Field(0.01, ge=0.0, le=0.5, description="Relative tolerance")
    max_date_gap_days: int = Field(30, ge=0, description="Pairs further apart are never scored")

    @field_validator("similarity_strategy")
    @classmethod
    def validate_similarity_strategy(cls, v: str) -> str:
        if v not in ("multi_signal", "word_overlap"):
            raise ValueError(f"Unknown similarity strategy: {v}")
        return v

    @field_validator("entity_strategy")
    @classmethod
    def validate_entity_strategy(cls, v: str) -> str:
        if v not in ("known_entities", "capitalized"):
            raise ValueError(f"Unknown entity strategy: {v}")
        return v


class QualityConfig(BaseModel):
    """Weights of the additive article quality score."""

    title_min_length: int = Field(20, ge=0)
    title_bonus: float = Field(20.0, ge=0.0)
    summary_min_length: int = Field(100, ge=0)
    summary_bonus: float = Field(15.0, ge=0.0)
    formatting_bonus: float = Field(8.0, ge=0.0)
    engagement_multiplier: float = Field(3.0, ge=0.0)
    recency_max_bonus: float = Field(5.0, ge=0.0)
    recency_half_life_hours: float = Field(24.0, gt=0.0)


class CleanupConfig(BaseModel):
    """Orchestrator pacing, batching and escalation settings."""

    default_days: int = Field(3, ge=1, description="Default look-back for recent windows")
    batch_size: int = Field(100, ge=1, description="Pair comparisons per batch")
    batch_delay_seconds: float = Field(0.5, ge=0.0)
    delete_delay_seconds: float = Field(0.3, ge=0.0)
    store_timeout_seconds: float = Field(30.0, gt=0.0)
    semantic_enabled: bool = Field(True)
    semantic_timeout_seconds: float = Field(10.0, gt=0.0)
    max_semantic_calls: int = Field(50, ge=0)
    inconclusive_min: float = Field(0.70, ge=0.0, le=1.0)
    inconclusive_max: float = Field(0.80, ge=0.0, le=1.0)
    check_days: int = Field(30, ge=1, description="Look-back for pre-insert duplicate checks")

    @field_validator("inconclusive_max")
    @classmethod
    def validate_band(cls, v: float, info) -> float:
        """Inconclusive band must not be inverted."""
        low = info.data.get("inconclusive_min", 0.70)
        if v < low:
            raise ValueError(f"inconclusive_max ({v}) must be >= inconclusive_min ({low})")
        return v


class SafetyConfig(BaseModel):
    """Limits enforced before any destructive action."""

    max_deletions: int = Field(10, ge=0, description="Max redundant articles resolved per run")
    max_groups: Optional[int] = Field(None, ge=0, description="Max groups resolved per run")
    min_confidence_tier: ConfidenceTier = Field(ConfidenceTier.MEDIUM_HIGH)
    confirmation_token: Optional[str] = Field(None, description="Expected token (prefer env)")
    confirmation_token_env: Optional[str] = Field(
        "DEALDEDUP_CONFIRM_TOKEN", description="Environment variable holding the token"
    )


class LLMConfig(BaseModel):
    """LLM provider configuration for semantic comparison."""

    provider: str = Field("openai", description="LLM provider (openai, mock, none)")
    model: str = Field("gpt-4o-mini", description="Model name")
    api_key_env: Optional[str] = Field("OPENAI_API_KEY", description="Environment variable for API key")
    api_key: Optional[str] = Field(None, description="API key (prefer api_key_env)")
    base_url: Optional[str] = Field(None, description="Base URL for API (e.g., for Ollama)")


class LoggingConfig(BaseModel):
    """Logging behavior."""

    level: str = Field("INFO")
    file: Optional[str] = Field(None, description="Optional log file path")


class ConfigModel(BaseModel):
    """Main configuration model."""

    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    quality: QualityConfig = Field(default_factory=QualityConfig)
    cleanup: CleanupConfig = Field(default_factory=CleanupConfig)
    safety: SafetyConfig = Field(default_factory=SafetyConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
