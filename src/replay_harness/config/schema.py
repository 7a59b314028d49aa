"""
replay-harness — configuration schema and validation.

File: src/replay_harness/config/schema.py
Last updated: 2026-10-18

Purpose
- Built-in ``replay.toml`` defaults and the validator every config layer passes through.

What should be included in this file
- One reader per ``[section]`` table (meta, paths, gate, runner, logging).
- Deep-merge used to stack config layers.

Functional requirements
- Every problem is reported at once, each as ``section.key: message``.
- Empty strings mean "unset" for the optional path and entrypoint settings.
- ``meta.schema_version`` other than the supported version fails with guidance.
"""

from __future__ import annotations

import copy
import logging
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, TypedDict

from replay_harness.constants import CONFIG_SCHEMA_VERSION

ConfigSchemaVersion: Final[int] = CONFIG_SCHEMA_VERSION
GATE_MODES: Final[tuple[str, ...]] = ("strict", "warn", "info")

_ENTRYPOINT_PATTERN = re.compile(r"^[A-Za-z_][\w.]*:[A-Za-z_][\w.]*$")

# Path settings anchored to the config file directory by the loader.
PATH_FIELDS: Final[tuple[tuple[str, ...], ...]] = (
    ("paths", "scenarios"),
    ("paths", "comparator_profile"),
    ("paths", "output_root"),
    ("paths", "goldens_root"),
    ("paths", "legacy_runs_root"),
    ("logging", "log_dir"),
)


class MetaConfig(TypedDict):
    schema_version: int


class PathsConfig(TypedDict):
    scenarios: str
    comparator_profile: str
    output_root: str
    goldens_root: str
    legacy_runs_root: str


class GateConfig(TypedDict):
    mode: str
    retry_once: bool
    emit_github_annotations: bool


class RunnerConfig(TypedDict):
    entrypoint: str


class LoggingSectionConfig(TypedDict):
    level: str
    log_dir: str


class ReplayConfig(TypedDict):
    meta: MetaConfig
    paths: PathsConfig
    gate: GateConfig
    runner: RunnerConfig
    logging: LoggingSectionConfig


DEFAULT_CONFIG: Final[ReplayConfig] = {
    "meta": {
        "schema_version": ConfigSchemaVersion,
    },
    "paths": {
        "scenarios": "replay/scenarios.json",
        "comparator_profile": "",
        "output_root": ".replay-runs",
        "goldens_root": "replay/goldens",
        "legacy_runs_root": "",
    },
    "gate": {
        "mode": "warn",
        "retry_once": False,
        "emit_github_annotations": False,
    },
    "runner": {
        "entrypoint": "",
    },
    "logging": {
        "level": "INFO",
        "log_dir": "",
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    path: str
    message: str

    def render(self) -> str:
        return f"- {self.path}: {self.message}"


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """``config`` is the normalized payload, or ``None`` when ``issues`` is non-empty."""

    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...] = ()

    @property
    def is_valid(self) -> bool:
        return self.config is not None


class ConfigValidationError(ValueError):
    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        lines = [issue.render() for issue in self.issues] or ["- <root>: validation failed"]
        super().__init__("invalid config:\n" + "\n".join(lines))


class _SectionReader:
    """Reads one ``[section]`` table and files issues under ``section.key``."""

    def __init__(
        self,
        name: str,
        table: Mapping[object, object],
        issues: list[ConfigValidationIssue],
        *,
        known: frozenset[str],
        required: frozenset[str],
    ) -> None:
        self._name = name
        self._table = table
        self._issues = issues
        for key in sorted(table, key=str):
            if key not in known:
                self.fail(str(key), "unknown field")
        for key in sorted(required - set(table)):
            self.fail(key, "missing required field")

    def fail(self, key: str, message: str) -> None:
        self._issues.append(ConfigValidationIssue(f"{self._name}.{key}", message))

    def text(self, key: str, *, default: str | None = None) -> str | None:
        """Stripped string value; empty is only allowed when ``default`` is ``""``."""

        raw = self._table.get(key, default)
        if raw is None:
            return None
        if not isinstance(raw, str):
            self.fail(key, f"expected string, got {type(raw).__name__}")
            return None
        value = raw.strip()
        if not value and default != "":
            self.fail(key, "must not be empty")
            return None
        if "\x00" in value:
            self.fail(key, "must not contain NUL bytes")
            return None
        return value

    def flag(self, key: str, *, default: bool) -> bool | None:
        raw = self._table.get(key, default)
        if isinstance(raw, bool):
            return raw
        self.fail(key, f"expected boolean, got {type(raw).__name__}")
        return None

    def integer(self, key: str, *, minimum: int) -> int | None:
        raw = self._table.get(key)
        if raw is None:
            return None
        if isinstance(raw, bool) or not isinstance(raw, int):
            self.fail(key, f"expected integer, got {type(raw).__name__}")
            return None
        if raw < minimum:
            self.fail(key, f"must be >= {minimum}")
            return None
        return raw


def default_config() -> ReplayConfig:
    return copy.deepcopy(DEFAULT_CONFIG)


def migration_guidance(found_version: int) -> str:
    """Tell the user which side (config or runtime) has to move for ``found_version``."""

    if found_version < ConfigSchemaVersion:
        return (
            f"schema version {found_version} is older than supported {ConfigSchemaVersion}; "
            "upgrade replay.toml to the current schema"
        )
    if found_version > ConfigSchemaVersion:
        return (
            f"schema version {found_version} is newer than supported {ConfigSchemaVersion}; "
            "upgrade the replay-harness runtime"
        )
    return "schema version is current"


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Copy of ``base`` with ``overlay`` applied; tables merge key by key, leaves replace."""

    merged = _plain(base)
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, dict):
            merged[key] = merge_config(current, value)
        else:
            merged[key] = _plain(value)
    return merged


def validate_config(config: Mapping[str, object] | object) -> ConfigValidationResult:
    issues: list[ConfigValidationIssue] = []
    if not isinstance(config, Mapping):
        issue = ConfigValidationIssue("<root>", f"expected object, got {type(config).__name__}")
        return ConfigValidationResult(config=None, issues=(issue,))

    for key in sorted(config, key=str):
        if key not in _SECTIONS:
            issues.append(ConfigValidationIssue(str(key), "unknown field"))

    normalized: dict[str, Any] = {}
    for name in sorted(_SECTIONS):
        known, required, read = _SECTIONS[name]
        table = config.get(name)
        if table is None:
            issues.append(ConfigValidationIssue(name, "missing required field"))
        elif not isinstance(table, Mapping):
            issues.append(
                ConfigValidationIssue(name, f"expected object, got {type(table).__name__}")
            )
        else:
            reader = _SectionReader(name, table, issues, known=known, required=required)
            normalized[name] = read(reader)

    if issues:
        return ConfigValidationResult(config=None, issues=tuple(issues))
    return ConfigValidationResult(config=normalized)


def assert_valid_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Normalized config, or ``ConfigValidationError`` listing every issue."""

    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def _read_meta(reader: _SectionReader) -> dict[str, Any]:
    version = reader.integer("schema_version", minimum=1)
    if version is None:
        return {}
    if version != ConfigSchemaVersion:
        reader.fail("schema_version", migration_guidance(version))
    return {"schema_version": version}


def _read_paths(reader: _SectionReader) -> dict[str, Any]:
    values = {
        "scenarios": reader.text("scenarios"),
        "output_root": reader.text("output_root"),
        "goldens_root": reader.text("goldens_root"),
        "comparator_profile": reader.text("comparator_profile", default=""),
        "legacy_runs_root": reader.text("legacy_runs_root", default=""),
    }
    return {key: value for key, value in values.items() if value is not None}


def _read_gate(reader: _SectionReader) -> dict[str, Any]:
    out: dict[str, Any] = {}
    mode = reader.text("mode")
    if mode is not None:
        if mode.lower() in GATE_MODES:
            out["mode"] = mode.lower()
        else:
            expected = ", ".join(GATE_MODES)
            reader.fail("mode", f"invalid value {mode!r}; expected one of: {expected}")
    for key in ("retry_once", "emit_github_annotations"):
        flag = reader.flag(key, default=False)
        if flag is not None:
            out[key] = flag
    return out


def _read_runner(reader: _SectionReader) -> dict[str, Any]:
    entrypoint = reader.text("entrypoint", default="")
    if entrypoint is None:
        return {}
    if entrypoint and not _ENTRYPOINT_PATTERN.fullmatch(entrypoint):
        reader.fail("entrypoint", "must be a 'package.module:attribute' reference")
        return {}
    return {"entrypoint": entrypoint}


def _read_logging(reader: _SectionReader) -> dict[str, Any]:
    out: dict[str, Any] = {}
    level = reader.text("level", default="INFO")
    if level is not None:
        if isinstance(logging.getLevelName(level.upper()), int):
            out["level"] = level.upper()
        else:
            reader.fail("level", f"unsupported logging level {level!r}")
    log_dir = reader.text("log_dir", default="")
    if log_dir is not None:
        out["log_dir"] = log_dir
    return out


_SectionRule = tuple[frozenset[str], frozenset[str], Callable[[_SectionReader], dict[str, Any]]]

_REQUIRED_PATHS: Final[frozenset[str]] = frozenset({"scenarios", "output_root", "goldens_root"})

# section -> (known keys, required keys, reader)
_SECTIONS: Final[dict[str, _SectionRule]] = {
    "meta": (frozenset({"schema_version"}), frozenset({"schema_version"}), _read_meta),
    "paths": (
        _REQUIRED_PATHS | {"comparator_profile", "legacy_runs_root"},
        _REQUIRED_PATHS,
        _read_paths,
    ),
    "gate": (
        frozenset({"mode", "retry_once", "emit_github_annotations"}),
        frozenset({"mode"}),
        _read_gate,
    ),
    "runner": (frozenset({"entrypoint"}), frozenset(), _read_runner),
    "logging": (frozenset({"level", "log_dir"}), frozenset(), _read_logging),
}


def _plain(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


__all__ = [
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "GATE_MODES",
    "PATH_FIELDS",
    "ReplayConfig",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "migration_guidance",
    "validate_config",
]
