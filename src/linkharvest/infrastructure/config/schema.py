"""Pydantic configuration models with validation."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)


class ResolverConfig(BaseModel):
    """Caller-provided options for one resolution pipeline.

    This is the only configuration the library core reads.
    """

    require_referer: bool = Field(
        default=False,
        description=(
            "Send a referer on every page fetch. Falls back to the page "
            "origin when the caller supplied none."
        ),
    )
    follow_redirects: bool = Field(
        default=True,
        description="Follow redirects when fetching the initial page.",
    )
    timeout_ms: int = Field(
        default=15_000,
        description="Per-fetch timeout in milliseconds.",
    )
    max_concurrent_hops: int = Field(
        default=4,
        description="Max candidate hops fetched in parallel per request.",
    )
    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        description="User-Agent for outgoing page fetches.",
    )
    mirror_bases: dict[str, str] = Field(
        default_factory=dict,
        description=(
            "Live base URL per strategy name (e.g. hubcloud -> "
            "https://hubcloud.foo). Rewrites the input URL's origin."
        ),
    )

    @field_validator("timeout_ms")
    @classmethod
    def _validate_timeout(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("timeout_ms must be > 0")
        return v

    @field_validator("max_concurrent_hops")
    @classmethod
    def _validate_hops(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_concurrent_hops must be >= 1")
        return v

    @field_validator("mirror_bases")
    @classmethod
    def _strip_mirror_slashes(cls, v: dict[str, str]) -> dict[str, str]:
        return {name: base.rstrip("/") for name, base in v.items()}

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (logging/resolver).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    app_name: str = Field(default="linkharvest", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
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

    # Resolver pipeline (YAML section: resolver.*)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)

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
            "logging": {"level": self.log_level, "format": self.log_format},
            "resolver": self.resolver.model_dump(),
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    load.py creates EnvOverrides() to read LINKHARVEST_* variables, converts
    them to a dict of set values and merges that into YAML/defaults before
    validating AppConfig.

    Supported env var examples (flat, explicit):
    - LINKHARVEST_LOG_LEVEL
    - LINKHARVEST_RESOLVER_TIMEOUT_MS
    - LINKHARVEST_RESOLVER_USER_AGENT
    """

    model_config = SettingsConfigDict(
        env_prefix="LINKHARVEST_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    resolver_require_referer: Optional[bool] = None
    resolver_follow_redirects: Optional[bool] = None
    resolver_timeout_ms: Optional[int] = None
    resolver_max_concurrent_hops: Optional[int] = None
    resolver_user_agent: Optional[str] = None

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)
