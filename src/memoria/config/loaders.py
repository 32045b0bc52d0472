# src/memoria/config/loaders.py

"""Configuration loaders for environment and files.

Pure data loading: each loader returns a plain dict that the resolver merges
and then validates against ``Settings``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
import tomllib
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

CONFIG_TOOL_NAME = "memoria"
ENV_PREFIX = "MEMORIA_"
PYPROJECT_PATH_VAR = "MEMORIA_PYPROJECT_PATH"

_DOTENV_LOADED: bool = False


def load_dotenv_once() -> None:
    """Load a ``.env`` file into the environment the first time it is called."""
    global _DOTENV_LOADED
    if _DOTENV_LOADED:
        return
    from dotenv import load_dotenv

    load_dotenv()
    _DOTENV_LOADED = True


def _known_fields() -> set[str]:
    from .core import Settings  # local import keeps loaders import-light

    return set(Settings.model_fields)


def load_env() -> Mapping[str, Any]:
    """Load configuration from ``MEMORIA_*`` environment variables.

    Only variables naming a ``Settings`` field are read; others (for example
    ``MEMORIA_TELEMETRY``) steer other subsystems and are skipped. Values stay
    strings and are coerced by the schema.
    """
    known = _known_fields()
    config: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        if field_name in known:
            config[field_name] = value
    return config


def get_pyproject_path() -> Path:
    """Return the project file path, honoring ``MEMORIA_PYPROJECT_PATH``."""
    override = os.environ.get(PYPROJECT_PATH_VAR)
    if override:
        return Path(override).expanduser()
    return Path.cwd() / "pyproject.toml"


def _read_toml(path: Path) -> dict[str, Any]:
    """Read a TOML file, returning an empty dict when missing or invalid."""
    if not path.exists():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("Ignoring unreadable config file %s: %s", path, e)
        return {}


def load_pyproject() -> Mapping[str, Any]:
    """Load the ``[tool.memoria]`` table from the project's pyproject.toml."""
    data = _read_toml(get_pyproject_path())
    section = data.get("tool", {}).get(CONFIG_TOOL_NAME, {})
    if not isinstance(section, dict):
        return {}
    return dict(section)
