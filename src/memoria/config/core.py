# src/memoria/config/core.py

"""Core configuration schema and resolution.

- Single source of truth for configuration schema (Settings)
- Immutable runtime payload (FrozenConfig)
- Pure data resolution with audit tracking (SourceMap)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import cache
from typing import TYPE_CHECKING, Any, Literal, overload

from pydantic import (
    BaseModel,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from memoria.circuit_breaker import CircuitBreaker
from memoria.errors import ConfigurationError
from memoria.memory_errors import ErrorKind
from memoria.retry import NO_RETRY, RetryStrategy

if TYPE_CHECKING:
    from collections.abc import Mapping

# --- Schema (Pydantic wall) ---


class Settings(BaseModel):
    """Pydantic schema for configuration validation and defaults.

    Durations are in seconds.
    """

    service_url: str | None = Field(default=None)
    timeout_s: float = Field(default=30.0, gt=0)

    # Retry executor
    retry_enabled: bool = Field(default=True)
    max_attempts: int = Field(default=3, ge=1)
    initial_delay_s: float = Field(default=1.0, ge=0)
    max_delay_s: float = Field(default=10.0, ge=0)
    backoff_factor: float = Field(default=2.0, ge=1)
    retryable_errors: frozenset[ErrorKind] = Field(
        default=frozenset({ErrorKind.NETWORK_ERROR, ErrorKind.PROCESSING_FAILED})
    )
    retry_jitter: bool = Field(default=False)

    # Circuit breaker
    breaker_enabled: bool = Field(default=True)
    breaker_threshold: int = Field(default=5, ge=1)
    breaker_timeout_s: float = Field(default=60.0, ge=0)

    model_config = {"extra": "forbid"}

    @field_validator("service_url", mode="before")
    @classmethod
    def normalize_service_url(cls, v: Any) -> Any:
        """Trim whitespace and trailing slashes; map empty to None."""
        if isinstance(v, str):
            s = v.strip().rstrip("/")
            return s or None
        return v

    @field_validator("service_url")
    @classmethod
    def validate_service_url_scheme(cls, v: str | None) -> str | None:
        """Require an http or https URL."""
        if v is not None and not v.startswith(("http://", "https://")):
            raise ValueError("service_url must start with http:// or https://")
        return v

    @field_validator("retryable_errors", mode="before")
    @classmethod
    def split_retryable_errors(cls, v: Any) -> Any:
        """Accept a comma-separated string (env vars) as well as sequences."""
        if isinstance(v, str):
            return frozenset(part.strip() for part in v.split(",") if part.strip())
        return v

    @model_validator(mode="after")
    def validate_delay_ceiling(self) -> Settings:
        """Keep the retry delay ceiling at or above the initial delay."""
        if self.max_delay_s < self.initial_delay_s:
            raise ValueError("max_delay_s must be >= initial_delay_s")
        return self


@cache
def _default_settings() -> dict[str, Any]:
    return Settings().model_dump()


# --- Immutable runtime payload ---


@dataclass(frozen=True)
class FrozenConfig:
    """Validated configuration that flows into sessions."""

    service_url: str | None
    timeout_s: float
    retry_enabled: bool
    max_attempts: int
    initial_delay_s: float
    max_delay_s: float
    backoff_factor: float
    retryable_errors: frozenset[ErrorKind]
    retry_jitter: bool
    breaker_enabled: bool
    breaker_threshold: int
    breaker_timeout_s: float

    def retry_strategy(self) -> RetryStrategy:
        """Build the retry strategy; a single-pass strategy when retries are off."""
        if not self.retry_enabled:
            return NO_RETRY
        return RetryStrategy(
            max_attempts=self.max_attempts,
            initial_delay_s=self.initial_delay_s,
            max_delay_s=self.max_delay_s,
            backoff_factor=self.backoff_factor,
            retryable_errors=self.retryable_errors,
            jitter=self.retry_jitter,
        )

    def circuit_breaker(self, *, name: str | None = None) -> CircuitBreaker | None:
        """Build a fresh breaker, or None when the breaker is disabled."""
        if not self.breaker_enabled:
            return None
        return CircuitBreaker(
            threshold=self.breaker_threshold,
            timeout_s=self.breaker_timeout_s,
            name=name,
        )


# --- Audit types ---


class Origin(str, Enum):
    """Source origin for configuration field values."""

    DEFAULT = "default"
    PROJECT = "project"
    ENV = "env"
    OVERRIDES = "overrides"


@dataclass(frozen=True)
class FieldOrigin:
    """Tracks the origin and context of a configuration field value."""

    origin: Origin
    env_key: str | None = None  # e.g., "MEMORIA_SERVICE_URL"
    file: str | None = None  # e.g., "./pyproject.toml"


SourceMap = dict[str, FieldOrigin]


# --- Public resolution API ---


@overload
def resolve_config(
    overrides: Mapping[str, Any] | None = ...,
    *,
    explain: Literal[True],
) -> tuple[FrozenConfig, SourceMap]: ...


@overload
def resolve_config(
    overrides: Mapping[str, Any] | None = ...,
    *,
    explain: Literal[False] = ...,
) -> FrozenConfig: ...


def resolve_config(
    overrides: Mapping[str, Any] | None = None,
    *,
    explain: bool = False,
) -> FrozenConfig | tuple[FrozenConfig, SourceMap]:
    """Resolve configuration from all sources into a FrozenConfig.

    Precedence: defaults < pyproject ``[tool.memoria]`` < ``MEMORIA_*`` env <
    overrides.

    Args:
        overrides: Programmatic configuration overrides.
        explain: If True, return ``(config, source_map)`` for audit.

    Raises:
        ConfigurationError: If configuration validation fails.
    """
    from .loaders import load_dotenv_once, load_env, load_pyproject

    load_dotenv_once()

    merged, sources = _resolve_layers(
        overrides=overrides or {},
        env=load_env(),
        project=load_pyproject(),
    )

    try:
        settings = Settings.model_validate(merged)
    except ValidationError as e:
        err = e.errors()[0]
        loc = ".".join(str(part) for part in err.get("loc", ()))
        msg = err.get("msg") or "invalid value"
        if msg.startswith("Value error, "):
            msg = msg[13:]
        where = f"{loc}: " if loc else ""
        raise ConfigurationError(
            f"Configuration validation failed: {where}{msg}",
            hint="Check MEMORIA_* environment variables and [tool.memoria] in pyproject.toml.",
        ) from e

    frozen = _freeze(settings)
    return (frozen, sources) if explain else frozen


# --- Internal helpers ---


def _freeze(settings: Settings) -> FrozenConfig:
    return FrozenConfig(**settings.model_dump())


def _resolve_layers(
    *,
    overrides: Mapping[str, Any],
    env: Mapping[str, Any],
    project: Mapping[str, Any],
) -> tuple[dict[str, Any], SourceMap]:
    """Merge layers with last-wins precedence, recording each field's origin."""
    from .loaders import ENV_PREFIX, get_pyproject_path

    layers = [
        (Origin.PROJECT, project),
        (Origin.ENV, env),
        (Origin.OVERRIDES, overrides),
    ]

    out: dict[str, Any] = {}
    src: SourceMap = {}

    for k, v in _default_settings().items():
        out[k] = v
        src[k] = FieldOrigin(origin=Origin.DEFAULT)

    for origin, payload in layers:
        for k, v in payload.items():
            out[k] = v
            if origin is Origin.ENV:
                src[k] = FieldOrigin(origin=origin, env_key=f"{ENV_PREFIX}{k.upper()}")
            elif origin is Origin.PROJECT:
                src[k] = FieldOrigin(origin=origin, file=str(get_pyproject_path()))
            else:
                src[k] = FieldOrigin(origin=origin)

    return out, src


def audit_lines(sources: SourceMap) -> list[str]:
    """Produce human-readable origin lines per field."""
    lines: list[str] = []
    for field in sorted(sources):
        where = sources[field]
        match where.origin:
            case Origin.ENV:
                label = f"env:{where.env_key}"
            case Origin.PROJECT:
                label = f"file:{where.file or 'pyproject.toml'}"
            case _:
                label = where.origin.value
        lines.append(f"{field}: {label}")
    return lines


def was_field_overridden(sources: SourceMap, field: str) -> bool:
    """Return True if a field's value did not come from defaults."""
    fo = sources.get(field)
    return bool(fo and fo.origin is not Origin.DEFAULT)
