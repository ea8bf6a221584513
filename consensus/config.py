"""
Consensus Engine Configuration Management

Centralized configuration using Pydantic Settings for type-safe environment
variable loading with validation. All variables use the ``CONSENSUS_`` prefix,
e.g. ``CONSENSUS_MAX_VOTERS=250``.
"""

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CONSENSUS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ═══════════════════════════════════════════════════════════════
    # APPLICATION
    # ═══════════════════════════════════════════════════════════════
    app_name: str = Field(default="consensus-engine", description="Application name")
    app_env: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Environment"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_json: bool | None = Field(
        default=None,
        description="Render logs as JSON (defaults to True in production)",
    )

    # ═══════════════════════════════════════════════════════════════
    # VOTER RESOLUTION
    # ═══════════════════════════════════════════════════════════════
    max_voters: int = Field(
        default=500, ge=1, description="Maximum size of a resolved voter set"
    )
    allow_empty_voter_set: bool = Field(
        default=False, description="Allow decisions with zero required voters"
    )
    system_account_ids: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["USLACKBOT"],
        description="Platform system accounts never counted as voters",
    )
    membership_page_size: int = Field(
        default=200, ge=1, le=1000, description="Page size for membership lookups"
    )

    # ═══════════════════════════════════════════════════════════════
    # OUTCOME POLICY
    # ═══════════════════════════════════════════════════════════════
    simple_majority_threshold: float = Field(
        default=0.5, ge=0.0, lt=1.0, description="Yes share that must be exceeded"
    )
    supermajority_threshold: float = Field(
        default=0.66, gt=0.5, le=1.0, description="Yes share of required voters needed"
    )
    finalize_on_deadlock: bool = Field(
        default=False,
        description="Finalize early once the outcome is mathematically fixed",
    )
    default_deadline_business_days: int = Field(
        default=5, ge=1, le=60, description="Default voting window in business days"
    )

    # ═══════════════════════════════════════════════════════════════
    # NEO4J DATABASE
    # ═══════════════════════════════════════════════════════════════
    neo4j_uri: str = Field(default="bolt://localhost:7687", description="Neo4j URI")
    neo4j_user: str = Field(default="neo4j", description="Neo4j username")
    neo4j_password: str = Field(default="", description="Neo4j password")
    neo4j_database: str = Field(default="neo4j", description="Neo4j database name")
    neo4j_max_connection_lifetime: int = Field(
        default=3600, description="Max connection lifetime in seconds"
    )
    neo4j_max_connection_pool_size: int = Field(
        default=50, ge=1, description="Max connection pool size"
    )
    neo4j_connection_timeout: int = Field(
        default=30, ge=1, description="Connection timeout in seconds"
    )
    store_retry_attempts: int = Field(
        default=3, ge=1, le=10, description="Attempts per store statement on transient errors"
    )
    store_retry_max_wait: float = Field(
        default=10.0, ge=0, description="Upper bound on backoff between store attempts"
    )

    # ═══════════════════════════════════════════════════════════════
    # MEMBERSHIP DIRECTORY (Slack Web API)
    # ═══════════════════════════════════════════════════════════════
    slack_api_base_url: str = Field(
        default="https://slack.com/api", description="Slack Web API base URL"
    )
    slack_bot_token: str | None = Field(default=None, description="Slack bot token")
    slack_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Timeout for directory HTTP calls"
    )
    membership_lookup_concurrency: int = Field(
        default=10, ge=1, le=100, description="Concurrent per-account lookups"
    )
    slack_max_retry_after: float = Field(
        default=30.0, ge=0, description="Longest Retry-After honored on HTTP 429"
    )

    @field_validator("system_account_ids", mode="before")
    @classmethod
    def split_system_accounts(cls, v: object) -> object:
        """Accept a comma-separated string from the environment."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @model_validator(mode="after")
    def validate_thresholds(self) -> "Settings":
        if self.supermajority_threshold <= self.simple_majority_threshold:
            raise ValueError(
                "supermajority_threshold must be greater than simple_majority_threshold"
            )
        return self

    @property
    def json_logs(self) -> bool:
        """Whether logs should be rendered as JSON."""
        if self.log_json is not None:
            return self.log_json
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Singleton settings instance
settings = get_settings()
