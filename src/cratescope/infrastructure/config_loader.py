"""TOML configuration file loader.

Keys may sit at the top level or under a ``[cratescope]`` table::

    [cratescope]
    target_dir = "game/src"
    output_dir = "out"
    exclude = ["**/generated/**"]
    workers = 8

Relative paths are resolved against the directory of the config file.
"""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from cratescope.domain.exceptions import ConfigError

SECTION = "cratescope"

_PATH_KEYS = frozenset({"target_dir", "output_dir"})
_STR_TUPLE_KEYS = frozenset({"extensions", "exclude"})
_KNOWN_KEYS = frozenset(
    {"target_dir", "output_dir", "extensions", "exclude", "crate_name", "workers", "generated_at"}
)


def load_config(path: Path) -> dict[str, Any]:
    """Read a config file into AnalysisConfig keyword arguments.

    Only keys present in the file are returned, so callers can layer
    command-line values on top.

    Args:
        path: TOML file

    Returns:
        Mapping of AnalysisConfig field name → value

    Raises:
        ConfigError: File unreadable, invalid TOML, unknown key or wrong type
    """
    try:
        with path.open("rb") as fh:
            data = tomllib.load(fh)
    except OSError as e:
        raise ConfigError("config", f"cannot read {path}: {e.strerror or e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError("config", f"invalid TOML in {path}: {e}") from e

    section = data.get(SECTION, data)
    if not isinstance(section, Mapping):
        raise ConfigError(SECTION, "must be a table")

    base = path.parent
    values: dict[str, Any] = {}
    for key, value in section.items():
        if key not in _KNOWN_KEYS:
            raise ConfigError(key, "unknown configuration key")
        values[key] = _convert(key, value, base)
    return values


def _convert(key: str, value: object, base: Path) -> object:
    if key in _PATH_KEYS:
        if not isinstance(value, str):
            raise ConfigError(key, "must be a string")
        candidate = Path(value)
        return candidate if candidate.is_absolute() else base / candidate

    if key in _STR_TUPLE_KEYS:
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigError(key, "must be a list of strings")
        return tuple(value)

    if key == "workers":
        # bool is an int subclass
        if not isinstance(value, int) or isinstance(value, bool):
            raise ConfigError(key, "must be an integer")
        return value

    if not isinstance(value, str):
        raise ConfigError(key, "must be a string")
    return value
