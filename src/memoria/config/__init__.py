# src/memoria/config/__init__.py

"""Configuration management for memoria.

Resolve once, freeze, then flow: configuration is resolved at session
creation into an immutable FrozenConfig.

Key exports:
- resolve_config: Main API for configuration resolution
- FrozenConfig: Immutable configuration payload
- Settings: Pydantic schema for validation and defaults
"""

# ruff: noqa: I001

from .core import (
    FrozenConfig,
    Origin,
    FieldOrigin,
    Settings,
    SourceMap,
    audit_lines,
    resolve_config,
    was_field_overridden,
)
from .loaders import ENV_PREFIX, get_pyproject_path

__all__ = [  # noqa: RUF022
    "resolve_config",
    "FrozenConfig",
    "Settings",
    "Origin",
    "FieldOrigin",
    "SourceMap",
    "audit_lines",
    "was_field_overridden",
    "ENV_PREFIX",
    "get_pyproject_path",
]
