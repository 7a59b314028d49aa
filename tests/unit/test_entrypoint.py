"""
replay-harness — unit tests for the process entrypoint

File: tests/unit/test_entrypoint.py
Last updated: 2026-10-18

Purpose
- Validate exit-code routing at the CLI boundary and deterministic environment defaults.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from replay_harness.config import ConfigLoadError
from replay_harness.main import ExitCode, apply_deterministic_environment, cli_entrypoint

PINNED_ENV = ("TZ", "LANG", "LC_ALL")


@pytest.fixture(autouse=True)
def _pinned_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in PINNED_ENV:
        monkeypatch.setenv(name, "C")


def _patch_run_cli(monkeypatch: pytest.MonkeyPatch, exc: BaseException) -> None:
    def _raise(argv: object) -> int:
        raise exc

    monkeypatch.setattr("replay_harness.ui.cli.run_cli", _raise)


def test_missing_config_exits_with_config_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    code = cli_entrypoint(["list-scenarios", "--config", str(tmp_path / "nope.toml")])

    assert code == ExitCode.CONFIG_ERROR
    assert "config file not found" in capsys.readouterr().err


def test_argparse_usage_error_is_preserved(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli_entrypoint([]) == ExitCode.CONFIG_ERROR
    assert "usage:" in capsys.readouterr().err


@pytest.mark.parametrize(
    "exc",
    [
        ValueError("bad value"),
        FileNotFoundError("missing.json"),
        ConfigLoadError("broken config"),
    ],
)
def test_known_failures_route_to_config_error(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str], exc: BaseException
) -> None:
    _patch_run_cli(monkeypatch, exc)

    assert cli_entrypoint(["run"]) == ExitCode.CONFIG_ERROR
    err = capsys.readouterr().err
    assert str(exc) in err
    assert "Traceback" not in err


def test_chained_cause_is_inspected(monkeypatch: pytest.MonkeyPatch) -> None:
    wrapped = RuntimeError("wrapper")
    wrapped.__cause__ = ConfigLoadError("root cause")
    _patch_run_cli(monkeypatch, wrapped)

    assert cli_entrypoint(["run"]) == ExitCode.CONFIG_ERROR


def test_unexpected_failure_is_internal_error(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    _patch_run_cli(monkeypatch, RuntimeError("kaboom"))

    assert cli_entrypoint(["run"]) == ExitCode.INTERNAL_ERROR
    err = capsys.readouterr().err
    assert "Traceback" in err
    assert "kaboom" in err


def test_unknown_exit_codes_are_normalized(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("replay_harness.ui.cli.run_cli", lambda argv: 7)

    assert cli_entrypoint(["run"]) == ExitCode.INTERNAL_ERROR


def test_deterministic_environment_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in PINNED_ENV:
        monkeypatch.delenv(name)
    monkeypatch.setenv("TZ", "Europe/Oslo")

    apply_deterministic_environment()

    assert os.environ["TZ"] == "Europe/Oslo"
    assert os.environ["LANG"] == "C.UTF-8"
    assert os.environ["LC_ALL"] == "C.UTF-8"
