"""
replay-harness — unit tests for config loading

File: tests/unit/config/test_replay_config.py
Last updated: 2026-10-18

Purpose
- Validate deterministic config loading from defaults, TOML, env overrides, and CLI overrides.

What this test file should cover
- Precedence: CLI > env > file > defaults.
- Env var coercion and rejection of malformed values.
- Path normalization relative to the config file.
- Schema validation failures with field paths.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from replay_harness.config import (
    ConfigLoadError,
    ConfigValidationError,
    dump_effective_config,
    env_var_name,
    load_config,
)


def _write_config(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def test_defaults_without_config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)

    loaded = load_config(environ={})

    assert loaded["gate"] == {"mode": "warn", "retry_once": False, "emit_github_annotations": False}
    assert loaded["paths"]["output_root"] == (tmp_path / ".replay-runs").resolve().as_posix()
    assert loaded["paths"]["comparator_profile"] == ""
    assert loaded["runner"]["entrypoint"] == ""


def test_precedence_default_file_env_cli(tmp_path: Path) -> None:
    config_path = tmp_path / "replay.toml"
    _write_config(config_path, '[gate]\nmode = "info"\n')

    file_loaded = load_config(config_path, environ={})
    env_loaded = load_config(config_path, environ={"REPLAY_GATE_MODE": "strict"})
    cli_loaded = load_config(
        config_path,
        environ={"REPLAY_GATE_MODE": "strict"},
        cli_overrides={"gate.mode": "warn", "gate.retry_once": None},
    )

    assert file_loaded["gate"]["mode"] == "info"
    assert env_loaded["gate"]["mode"] == "strict"
    assert cli_loaded["gate"]["mode"] == "warn"
    assert cli_loaded["gate"]["retry_once"] is False


def test_env_boolean_coercion(tmp_path: Path) -> None:
    config_path = tmp_path / "replay.toml"
    _write_config(config_path, "")

    loaded = load_config(config_path, environ={"REPLAY_GATE_RETRY_ONCE": "yes"})
    assert loaded["gate"]["retry_once"] is True

    with pytest.raises(ConfigLoadError, match="REPLAY_GATE_RETRY_ONCE"):
        load_config(config_path, environ={"REPLAY_GATE_RETRY_ONCE": "maybe"})


def test_paths_are_normalized_relative_to_config_file(tmp_path: Path) -> None:
    config_path = tmp_path / "ci" / "replay.toml"
    _write_config(
        config_path,
        '[paths]\nscenarios = "suites/core.yaml"\noutput_root = "../out"\n'
        'goldens_root = "/abs/goldens"\n',
    )

    loaded = load_config(config_path, environ={})
    root = tmp_path.resolve()

    assert loaded["paths"]["scenarios"] == (root / "ci" / "suites" / "core.yaml").as_posix()
    assert loaded["paths"]["output_root"] == (root / "out").as_posix()
    assert loaded["paths"]["goldens_root"] == "/abs/goldens"
    assert loaded["paths"]["legacy_runs_root"] == ""


def test_invalid_values_report_field_paths(tmp_path: Path) -> None:
    config_path = tmp_path / "replay.toml"
    _write_config(
        config_path,
        '[gate]\nmode = "loud"\n\n[runner]\nentrypoint = "not an entrypoint"\n\n[extra]\nkey = 1\n',
    )

    with pytest.raises(ConfigValidationError) as excinfo:
        load_config(config_path, environ={})

    paths = {issue.path for issue in excinfo.value.issues}
    assert {"gate.mode", "runner.entrypoint", "extra"} <= paths


def test_schema_version_mismatch_includes_guidance(tmp_path: Path) -> None:
    config_path = tmp_path / "replay.toml"
    _write_config(config_path, "[meta]\nschema_version = 2\n")

    with pytest.raises(ConfigValidationError, match="newer than supported"):
        load_config(config_path, environ={})


def test_missing_explicit_config_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError, match="config file not found"):
        load_config(tmp_path / "absent.toml", environ={})


def test_invalid_toml_is_a_load_error(tmp_path: Path) -> None:
    config_path = tmp_path / "replay.toml"
    _write_config(config_path, "[gate\nmode = ")

    with pytest.raises(ConfigLoadError, match="invalid TOML"):
        load_config(config_path, environ={})


def test_dump_effective_config_is_stable(tmp_path: Path) -> None:
    config_path = tmp_path / "replay.toml"
    _write_config(config_path, "")

    first = dump_effective_config(load_config(config_path, environ={}))
    second = dump_effective_config(load_config(config_path, environ={}))

    assert first == second
    assert first.startswith('{"gate":')


def test_env_var_names_follow_settings_tree(tmp_path: Path) -> None:
    assert env_var_name("gate.emit_github_annotations") == "REPLAY_GATE_EMIT_GITHUB_ANNOTATIONS"

    config_path = tmp_path / "replay.toml"
    _write_config(config_path, "")
    loaded = load_config(
        config_path,
        environ={"REPLAY_RUNNER_ENTRYPOINT": " pkg.mod:Runner ", "REPLAY_UNKNOWN_KEY": "x"},
    )

    assert loaded["runner"]["entrypoint"] == "pkg.mod:Runner"
