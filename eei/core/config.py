"""
Core configuration and settings for the EEI auditor.
"""

import json
from functools import lru_cache
from typing import Any, Literal

from pydantic import Field, RedisDsn, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "EEI Auditor"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = Field(default=["http://localhost:5173", "http://localhost:3000"])

    # Redis (job records + drift history)
    redis_url: RedisDsn = Field(default="redis://localhost:6379/0")
    job_ttl_seconds: int = 60 * 60 * 24
    job_lease_seconds: int = 120
    drift_max_snapshots: int = 500  # 0 keeps every snapshot

    # Static crawl
    static_timeout: float = 20.0
    max_redirects: int = 5
    static_retries: int = 1  # extra attempts on transient network errors
    respect_robots_txt: bool = False  # disallowed URLs fail as blocked
    static_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) eei-crawl/1.0 Safari/537.36"
    )

    # Rendered crawl
    render_enabled: bool = True
    rendered_timeout: float = 45.0
    ai_user_agents: list[str] = Field(
        default=[
            "Mozilla/5.0 (compatible; GPTBot/1.0; +https://openai.com/gptbot)",
            "ClaudeBot/1.0 (+https://www.anthropic.com/claudebot)",
            "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)",
            "Mozilla/5.0 (compatible; eei-crawl/1.0)",
        ]
    )

    # Escalation heuristic (static -> rendered)
    escalate_min_words: int = 200
    escalate_max_scripts: int = 60

    # Lite crawl delegate (empty = crawl locally)
    lite_crawl_url: str | None = None
    lite_crawl_timeout: float = 15.0

    # Surface discovery
    discovery_timeout: float = 15.0
    max_surfaces: int = 4

    # Batch orchestration
    chunk_size: int = 5
    time_budget_seconds: float = 50.0
    entity_timeout_seconds: float = 40.0
    cooldown_seconds: float = 0.5
    requeue_delay_seconds: float = 1.0

    # Ad-hoc pool
    pool_concurrency: int = 6
    pool_max_urls: int = 100

    # Datasets
    datasets_path: str = "./data"

    @field_validator("cors_origins", "ai_user_agents", mode="before")
    @classmethod
    def parse_list(cls, v: Any) -> list[str]:
        """Parse list settings from a JSON string if needed."""
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                # If not valid JSON, treat as comma-separated
                return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("entity_timeout_seconds")
    @classmethod
    def validate_entity_timeout(cls, v: float) -> float:
        """Per-entity timeout must be positive."""
        if v <= 0:
            raise ValueError("entity_timeout_seconds must be positive")
        return v

    @model_validator(mode="after")
    def validate_batch_timing(self) -> "Settings":
        """
        An entity must fit inside one invocation, and the lease must outlive
        the longest invocation (budget plus one overrunning entity).
        """
        if self.entity_timeout_seconds >= self.time_budget_seconds:
            raise ValueError("entity_timeout_seconds must be less than time_budget_seconds")
        if self.job_lease_seconds <= self.time_budget_seconds + self.entity_timeout_seconds:
            raise ValueError(
                "job_lease_seconds must exceed time_budget_seconds + entity_timeout_seconds"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
