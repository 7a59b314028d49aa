"""
replay-harness config package public API.

File: src/replay_harness/config/__init__.py
Last updated: 2026-10-18

Purpose
- Export config loading/validation entrypoints and public error types.

Functional requirements
- Support loading from ``replay.toml`` + ``REPLAY_`` env overrides.
- Fail fast with clear structured validation/load errors.
"""

from replay_harness.config.loader import (
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    ConfigLoadError,
    dump_effective_config,
    env_var_name,
    load_config,
    normalize_paths,
)
from replay_harness.config.schema import (
    DEFAULT_CONFIG,
    GATE_MODES,
    PATH_FIELDS,
    ConfigSchemaVersion,
    ConfigValidationError,
    ConfigValidationIssue,
    ConfigValidationResult,
    ReplayConfig,
    assert_valid_config,
    default_config,
    merge_config,
    migration_guidance,
    validate_config,
)

__all__ = [
    "ConfigLoadError",
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "GATE_MODES",
    "PATH_FIELDS",
    "ReplayConfig",
    "assert_valid_config",
    "default_config",
    "dump_effective_config",
    "env_var_name",
    "load_config",
    "merge_config",
    "migration_guidance",
    "normalize_paths",
    "validate_config",
]
