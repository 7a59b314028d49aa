"""
replay-harness — runtime config loader.

File: src/replay_harness/config/loader.py
Last updated: 2026-10-18

Purpose
- Assemble the effective ``replay.toml`` settings for one CLI invocation.

What should be included in this file
- Layering: built-in defaults, then the TOML file, then ``REPLAY_*`` env vars,
  then CLI flags. Later layers win.
- Env var names derived from the default settings tree
  (``gate.retry_once`` -> ``REPLAY_GATE_RETRY_ONCE``) and typed like the default.
- Path settings anchored to the directory holding the config file.

Functional requirements
- A missing ``replay.toml`` in the working directory means defaults; a missing
  file passed with ``--config`` is a load error.
- The file layer is validated on its own so that file mistakes are reported
  against the file, before env vars or flags can mask them.
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Callable, Iterator, Mapping
from pathlib import Path
from typing import Any, Final

from replay_harness.config.schema import (
    DEFAULT_CONFIG,
    PATH_FIELDS,
    assert_valid_config,
    default_config,
    merge_config,
)
from replay_harness.utils.stable_json import stable_json_line

DEFAULT_CONFIG_FILE: Final[str] = "replay.toml"
ENV_PREFIX: Final[str] = "REPLAY_"

_TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "t", "yes", "y", "on"})
_FALSY: Final[frozenset[str]] = frozenset({"0", "false", "f", "no", "n", "off"})


class ConfigLoadError(ValueError):
    """The config file could not be read, or an env/CLI override has the wrong shape."""


def load_config(
    config_path: str | Path | None = None,
    *,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Return the validated effective config; see the module docstring for layering."""

    if config_path is None:
        source = (Path.cwd() / DEFAULT_CONFIG_FILE).resolve()
        file_layer = _read_toml(source) if source.is_file() else {}
    else:
        source = Path(config_path).expanduser().resolve()
        if not source.exists():
            raise ConfigLoadError(f"config file not found: {source}")
        file_layer = _read_toml(source)

    effective = assert_valid_config(merge_config(default_config(), file_layer))
    effective = merge_config(effective, _env_layer(os.environ if environ is None else environ))
    effective = merge_config(effective, _cli_layer(cli_overrides or {}))
    effective = assert_valid_config(effective)
    return assert_valid_config(normalize_paths(effective, base_dir=source.parent))


def env_var_name(dotted: str) -> str:
    return ENV_PREFIX + dotted.replace(".", "_").upper()


def normalize_paths(config: Mapping[str, object], *, base_dir: Path) -> dict[str, Any]:
    """Make every non-empty path setting absolute, relative ones anchored at ``base_dir``."""

    anchored = merge_config({}, config)
    for field in PATH_FIELDS:
        section = anchored.get(field[0])
        if not isinstance(section, dict):
            continue
        raw = section.get(field[1])
        if isinstance(raw, str) and raw:
            section[field[1]] = _anchor(raw, base_dir)
    return anchored


def dump_effective_config(config: Mapping[str, object]) -> str:
    return stable_json_line(config)


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _default_leaves(
    node: Mapping[str, object], prefix: str = ""
) -> Iterator[tuple[str, object]]:
    for key in sorted(node):
        dotted = f"{prefix}{key}"
        value = node[key]
        if isinstance(value, Mapping):
            yield from _default_leaves(value, f"{dotted}.")
        else:
            yield dotted, value


def _env_layer(environ: Mapping[str, str]) -> dict[str, Any]:
    found: dict[str, object] = {}
    for dotted, default in _default_leaves(DEFAULT_CONFIG):
        name = env_var_name(dotted)
        raw = environ.get(name)
        if raw is None:
            continue
        coerce = _COERCERS.get(type(default))
        if coerce is None:
            continue
        try:
            found[dotted] = coerce(raw.strip())
        except ValueError as exc:
            raise ConfigLoadError(f"{name} -> {dotted}: {exc}") from exc
    return _nest(found)


def _cli_layer(overrides: Mapping[str, object]) -> dict[str, Any]:
    present = {key: value for key, value in overrides.items() if value is not None}
    for key in present:
        if not all(key.split(".")):
            raise ConfigLoadError(f"invalid CLI override key {key!r}")
    return _nest(present)


def _nest(flat: Mapping[str, object]) -> dict[str, Any]:
    tree: dict[str, Any] = {}
    for dotted in sorted(flat):
        *parents, leaf = dotted.split(".")
        node = tree
        for part in parents:
            node = node.setdefault(part, {})
        node[leaf] = flat[dotted]
    return tree


def _parse_bool(text: str) -> bool:
    lowered = text.lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ValueError("must be a boolean (true/false/1/0/yes/no/on/off)")


def _parse_int(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        raise ValueError("must be an integer") from None


_COERCERS: Final[dict[type, Callable[[str], object]]] = {
    bool: _parse_bool,
    int: _parse_int,
    str: str,
}


def _anchor(raw: str, base_dir: Path) -> str:
    candidate = Path(os.path.expandvars(raw)).expanduser()
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    return Path(os.path.normpath(candidate)).as_posix()


__all__ = [
    "ConfigLoadError",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "dump_effective_config",
    "env_var_name",
    "load_config",
    "normalize_paths",
]
