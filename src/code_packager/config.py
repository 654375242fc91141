"""
TOML-based config file loading for code-packager.

Searches for `.code-packager.toml`, `code-packager.toml`, or
`pyproject.toml [tool.code-packager]` walking up from the current directory.
Config values are merged with CLI flags using three-way precedence: explicit
CLI flags > config file > built-in defaults. The `add` and `ignore` lists are
combined instead, config entries first.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, TypeVar, cast

if sys.version_info >= (3, 11):
    import tomllib  # pyright: ignore[reportUnreachable]
else:
    import tomli as tomllib  # type: ignore[no-redef]  # pyright: ignore[reportUnreachable]

from code_packager.errors import FatalConfigError

TOOL_NAME = "code-packager"


@dataclass
class CodePackagerConfig:
    """
    Parsed config from a TOML file. Fields are `None` when not set, so the
    merge can tell "not configured" apart from "set to the default".
    """

    input: str | None = None
    output: str | None = None
    add: list[str] | None = None
    ignore: list[str] | None = None
    rule: str | None = None
    rule_separator: str | None = None


# Config file search order (first match wins within each directory level)
_CONFIG_FILENAMES = [f".{TOOL_NAME}.toml", f"{TOOL_NAME}.toml", "pyproject.toml"]

# Mapping from TOML keys to Python field names, where they differ
_KEY_ALIASES: dict[str, str] = {
    "rule-separator": "rule_separator",
    "input-dir": "input",
    "output-file": "output",
    "extra-files": "add",
    "ignore-patterns": "ignore",
}

# Fields combined with CLI values rather than overridden by them
_LIST_FIELDS = {"add", "ignore"}

_VALID_FIELDS = {f.name for f in fields(CodePackagerConfig)}


def find_config_file(start_dir: Path) -> Path | None:
    """
    Walk up from `start_dir` looking for a config file. Returns the first
    found, or `None`. `pyproject.toml` only counts if it has a
    `[tool.code-packager]` table.
    """
    current = start_dir.resolve()
    while True:
        for filename in _CONFIG_FILENAMES:
            candidate = current / filename
            if candidate.is_file():
                if filename == "pyproject.toml":
                    if _pyproject_has_section(candidate):
                        return candidate
                else:
                    return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent
    return None


def _pyproject_has_section(path: Path) -> bool:
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
        return TOOL_NAME in data.get("tool", {})
    except (tomllib.TOMLDecodeError, OSError, UnicodeDecodeError):
        return False


def load_config(config_path: Path) -> CodePackagerConfig:
    """
    Load a `CodePackagerConfig` from a TOML file. Raises `FatalConfigError`
    if the file cannot be read or parsed, or a value has the wrong type.
    """
    try:
        data = tomllib.loads(config_path.read_text(encoding="utf-8"))
    except (tomllib.TOMLDecodeError, OSError, UnicodeDecodeError) as e:
        raise FatalConfigError(f"Cannot load config file {config_path}: {e}") from e

    if config_path.name == "pyproject.toml":
        data = data.get("tool", {}).get(TOOL_NAME, {})

    return _parse_config_data(data, config_path)


def _parse_config_data(data: dict[str, Any], source: Path | None = None) -> CodePackagerConfig:
    """Parse a flat or sectioned TOML dict into `CodePackagerConfig`."""
    flat: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, dict):
            for sub_key, sub_value in cast(dict[str, Any], value).items():
                flat[sub_key] = sub_value
        else:
            flat[key] = value

    mapped: dict[str, Any] = {}
    for key, value in flat.items():
        name = _KEY_ALIASES.get(key, key.replace("-", "_"))
        if name not in _VALID_FIELDS:
            continue
        if name in _LIST_FIELDS:
            if isinstance(value, str):
                value = [value]
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise FatalConfigError(f"Config key {key!r} must be a list of strings ({source})")
        elif not isinstance(value, str):
            raise FatalConfigError(f"Config key {key!r} must be a string ({source})")
        mapped[name] = value

    return CodePackagerConfig(**mapped)


_T = TypeVar("_T")


def merge_cli_with_config(
    cli_opts: _T,
    config: CodePackagerConfig | None,
    explicit_flags: set[str],
) -> _T:
    """
    Apply config values to CLI options that were not given explicitly.
    `add` and `ignore` are prepended to the CLI lists instead.
    """
    if config is None:
        return cli_opts

    for cfg_field in fields(CodePackagerConfig):
        cfg_value = getattr(config, cfg_field.name)
        if cfg_value is None or not hasattr(cli_opts, cfg_field.name):
            continue

        if cfg_field.name in _LIST_FIELDS:
            setattr(cli_opts, cfg_field.name, list(cfg_value) + getattr(cli_opts, cfg_field.name))
            continue

        if cfg_field.name in explicit_flags:
            continue

        setattr(cli_opts, cfg_field.name, cfg_value)

    return cli_opts
