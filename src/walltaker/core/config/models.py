"""
Configuration Models

Pydantic models for type-safe configuration management with validation,
defaults, and field documentation.
"""

from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict


class SearchConfig(BaseModel):
    """Configuration for the upstream imageboard search API."""

    base_url: str = Field(
        default="https://e621.net",
        description="Base URL of the search API (posts.json is appended)"
    )
    user_agent: str = Field(
        default="walltaker.joi.how (by ailurus on e621)",
        description="Identifying User-Agent header sent with every request"
    )
    request_timeout: float = Field(
        default=10.0,
        ge=1.0,
        le=120.0,
        description="Per-request HTTP timeout in seconds"
    )
    fetch_timeout: float = Field(
        default=15.0,
        ge=1.0,
        le=300.0,
        description="Upper bound for a whole fetch, including queueing, in seconds"
    )
    default_limit: int = Field(
        default=15,
        ge=1,
        le=320,
        description="Default number of posts requested per search"
    )
    count_limit: int = Field(
        default=150,
        ge=1,
        le=320,
        description="Number of posts requested when estimating a link's pool size"
    )
    max_workers: int = Field(
        default=8,
        ge=1,
        le=64,
        description="Maximum concurrent upstream fetches"
    )

    @field_validator('base_url')
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an http(s) URL and drop trailing slashes."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError("base_url must start with http:// or https://")
        return v.rstrip('/')

    @model_validator(mode='after')
    def validate_timeouts(self):
        """The fetch bound must leave room for at least one request."""
        if self.fetch_timeout < self.request_timeout:
            raise ValueError("fetch_timeout must not be shorter than request_timeout")
        return self


class CacheSettings(BaseModel):
    """Configuration for the tag results cache."""

    enabled: bool = Field(
        default=True,
        description="Cache upstream results"
    )
    memory_cache_size: int = Field(
        default=1000,
        ge=1,
        description="Maximum entries held in memory"
    )
    default_ttl: float = Field(
        default=2700.0,
        gt=0,
        description="TTL for regular tag results in seconds (45 minutes)"
    )
    random_order_ttl: float = Field(
        default=60.0,
        gt=0,
        description="TTL for queries containing order:random in seconds"
    )
    enable_disk_cache: bool = Field(
        default=False,
        description="Persist cache entries on disk as well"
    )
    cache_dir: Optional[Path] = Field(
        default=None,
        description="Disk cache directory (defaults to a temp directory)"
    )

    @model_validator(mode='after')
    def validate_ttls(self):
        """Random ordering must never be cached longer than stable results."""
        if self.random_order_ttl > self.default_ttl:
            raise ValueError("random_order_ttl must not exceed default_ttl")
        return self


class HistoryConfig(BaseModel):
    """Configuration for the link history store."""

    db_path: Path = Field(
        default=Path(".walltaker") / "history.db",
        description="SQLite database holding past link content"
    )
    max_connections: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Connection pool size"
    )


class AppConfig(BaseModel):
    """Top-level application configuration."""

    model_config = ConfigDict(validate_assignment=True, extra='forbid')

    version: str = Field(default="0.2.0", description="Configuration schema version")
    verbose: bool = Field(default=False, description="Enable verbose logging")
    search: SearchConfig = Field(default_factory=SearchConfig)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
