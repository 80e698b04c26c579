"""Pydantic configuration models with validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]

DEFAULT_MANIFEST_BASE_URL = "https://raw.githubusercontent.com/yoruix/nuvio-providers/main"


def _normalize_path(value: Any) -> Path:
    """
    Normalize a path-like value without causing filesystem side-effects.

    This function MUST NOT create directories or files.
    """
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise TypeError(f"Expected path-like value, got: {type(value)!r}")


class CacheConfig(BaseModel):
    """Cache storage configuration (backend-agnostic)."""

    backend: Literal["memory", "diskcache", "redis"] = Field(
        default="memory",
        description="Cache backend: 'memory', 'diskcache' (SQLite) or 'redis'",
    )

    # Diskcache settings
    directory: Path = Field(
        default=Path("./.cache/streamgarr"),
        alias="dir",
        description="Diskcache SQLite DB path",
    )

    # Redis settings
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL (only when backend=redis)",
    )

    stale_retention_seconds: int = Field(
        default=604_800,
        description="How long expired entries are kept as stale fallbacks.",
    )
    max_concurrent: int = Field(
        default=10,
        description="Max parallel cache ops (semaphore limit)",
    )

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("directory", mode="before")
    @classmethod
    def _validate_dir(cls, v: Any) -> Path:
        return _normalize_path(v)

    @field_validator("stale_retention_seconds")
    @classmethod
    def _validate_retention(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("stale_retention_seconds must be > 0")
        return v


class ProvidersConfig(BaseModel):
    """Provider catalog, plugin loading and aggregation settings."""

    manifest_base_url: str = Field(
        default=DEFAULT_MANIFEST_BASE_URL,
        description="Base URL of the remote provider registry (manifest.json lives here).",
    )
    manifest_ttl_seconds: int = Field(
        default=300,
        description="TTL of the cached remote manifest.",
    )
    manifest_fetch_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for fetching manifest.json.",
    )
    code_ttl_seconds: int = Field(
        default=600,
        description="TTL of cached plugin source code.",
    )
    code_fetch_timeout_seconds: float = Field(
        default=15.0,
        description="Timeout for fetching one plugin source file.",
    )
    identifier_ttl_seconds: int = Field(
        default=86_400,
        description="TTL of IMDb -> TMDB id mappings and TMDB title lookups.",
    )
    site_cache_ttl_seconds: int = Field(
        default=1800,
        description="TTL of native provider site-search / episode-index caches.",
    )
    provider_timeout_seconds: float = Field(
        default=30.0,
        description="Per-provider wall-clock bound inside one aggregation.",
    )
    max_concurrent_providers: int = Field(
        default=0,
        description="Max providers queried in parallel. 0 = unbounded.",
    )
    disabled: list[str] = Field(
        default_factory=list,
        description="Provider ids removed from the catalog.",
    )

    @field_validator(
        "manifest_fetch_timeout_seconds",
        "code_fetch_timeout_seconds",
        "provider_timeout_seconds",
    )
    @classmethod
    def _validate_timeouts(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be > 0")
        return v

    @field_validator("max_concurrent_providers")
    @classmethod
    def _validate_concurrency(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_concurrent_providers must be >= 0")
        return v

    @field_validator("disabled", mode="before")
    @classmethod
    def _split_disabled(cls, v: Any) -> Any:
        # Env vars arrive as "a,b,c".
        if isinstance(v, str):
            return [p.strip() for p in v.split(",") if p.strip()]
        return v


class SandboxConfig(BaseModel):
    """Limits applied to sandboxed plugin execution."""

    timeout_seconds: float = Field(
        default=30.0,
        description="Wall-clock bound for loading a plugin and for each call.",
    )
    fetch_timeout_seconds: float = Field(
        default=15.0,
        description="Timeout for one HTTP request issued by plugin code.",
    )
    max_workers: int = Field(
        default=8,
        description="Worker threads running plugin code.",
    )
    max_response_bytes: int = Field(
        default=5_000_000,
        description="Response bodies larger than this are refused.",
    )

    @field_validator("timeout_seconds", "fetch_timeout_seconds")
    @classmethod
    def _validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("sandbox timeouts must be > 0")
        return v

    @field_validator("max_workers", "max_response_bytes")
    @classmethod
    def _validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be > 0")
        return v


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (http/logging/cache/providers/sandbox).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    # General
    app_name: str = Field(default="streamgarr", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # HTTP client (YAML section: http.*)
    http_timeout_seconds: float = Field(
        default=20.0,
        validation_alias=AliasChoices(
            "http_timeout_seconds",
            AliasPath("http", "timeout_seconds"),
        ),
        description="Default timeout for outgoing HTTP requests.",
    )
    http_follow_redirects: bool = Field(
        default=True,
        validation_alias=AliasChoices(
            "http_follow_redirects",
            AliasPath("http", "follow_redirects"),
        ),
        description="Whether HTTP client follows redirects.",
    )
    http_user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),
        validation_alias=AliasChoices(
            "http_user_agent",
            AliasPath("http", "user_agent"),
        ),
        description="User-Agent for outgoing HTTP requests.",
    )

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    # TMDB API key (identifier resolution + native provider title lookup)
    tmdb_api_key: str | None = Field(
        default=None,
        description="TMDB API key. Without it only tmdb:<id> requests resolve.",
    )

    cache: CacheConfig = Field(default_factory=CacheConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    sandbox: SandboxConfig = Field(default_factory=SandboxConfig)

    @field_validator("http_timeout_seconds")
    @classmethod
    def _validate_http_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("http_timeout_seconds must be > 0")
        return v

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """
        Dump configuration in the sectioned shape used by config.yaml/docs.
        """
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "http": {
                "timeout_seconds": self.http_timeout_seconds,
                "follow_redirects": self.http_follow_redirects,
                "user_agent": self.http_user_agent,
            },
            "logging": {"level": self.log_level, "format": self.log_format},
            "cache": {
                "backend": self.cache.backend,
                "dir": str(self.cache.directory),
                "redis_url": self.cache.redis_url,
                "stale_retention_seconds": self.cache.stale_retention_seconds,
                "max_concurrent": self.cache.max_concurrent,
            },
            "providers": self.providers.model_dump(),
            "sandbox": self.sandbox.model_dump(),
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    Intended usage:
    - load.py creates EnvOverrides() to read STREAMGARR_* variables,
      converts to dict of set values, merges into YAML/defaults,
      then validates AppConfig.

    Supported env var examples (flat, explicit):
    - STREAMGARR_MANIFEST_BASE_URL
    - STREAMGARR_PROVIDER_TIMEOUT_SECONDS
    - STREAMGARR_CACHE_BACKEND
    - STREAMGARR_LOG_LEVEL
    - STREAMGARR_TMDB_API_KEY
    """

    model_config = SettingsConfigDict(
        env_prefix="STREAMGARR_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    http_timeout_seconds: Optional[float] = None
    http_follow_redirects: Optional[bool] = None
    http_user_agent: Optional[str] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    cache_backend: Optional[Literal["memory", "diskcache", "redis"]] = None
    cache_dir: Optional[Path] = None
    cache_redis_url: Optional[str] = None

    manifest_base_url: Optional[str] = None
    provider_timeout_seconds: Optional[float] = None
    max_concurrent_providers: Optional[int] = None
    disabled_providers: Optional[str] = None

    sandbox_timeout_seconds: Optional[float] = None
    sandbox_max_workers: Optional[int] = None

    tmdb_api_key: Optional[str] = None

    @field_validator("cache_dir", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Any:
        if v is None:
            return None
        return _normalize_path(v)

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)
