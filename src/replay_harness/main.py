"""Process entrypoint for ``replay-harness`` and ``python -m replay_harness``."""

from __future__ import annotations

import os
import sys
import traceback
from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

# Exceptions the user can fix by changing inputs; reported without a traceback.
_USAGE_FAILURES: tuple[type[BaseException], ...] = (
    FileNotFoundError,
    NotADirectoryError,
    PermissionError,
    ValueError,
)


class ExitCode(IntEnum):
    """Exit codes CI pipelines key on."""

    SUCCESS = 0
    GATE_FAILED = 1
    CONFIG_ERROR = 2
    INTERNAL_ERROR = 4


def cli_entrypoint(argv: Sequence[str] | None = None) -> int:
    apply_deterministic_environment()
    try:
        from replay_harness.ui.cli import run_cli

        return _as_exit_code(run_cli(argv))
    except SystemExit as exc:
        return _as_exit_code(exc.code)
    except BaseException as exc:  # noqa: BLE001 - every failure maps to an exit code here.
        code = classify_failure(exc)
        if code is ExitCode.INTERNAL_ERROR:
            traceback.print_exception(exc, file=sys.stderr)
        else:
            _stderr(str(exc).strip() or type(exc).__name__)
        return int(code)


def apply_deterministic_environment() -> None:
    """Default TZ and locale for captures; values the caller exported are kept."""

    os.environ.setdefault("TZ", "UTC")
    os.environ.setdefault("LANG", "C.UTF-8")
    os.environ.setdefault("LC_ALL", os.environ["LANG"])


def classify_failure(exc: BaseException) -> ExitCode:
    """CONFIG_ERROR if any exception in the cause chain is a usage failure."""

    from replay_harness.config import ConfigLoadError, ConfigValidationError
    from replay_harness.domain import ReplayHarnessError

    known = (ConfigLoadError, ConfigValidationError, ReplayHarnessError, *_USAGE_FAILURES)
    if any(isinstance(link, known) for link in _cause_chain(exc)):
        return ExitCode.CONFIG_ERROR
    return ExitCode.INTERNAL_ERROR


def _cause_chain(exc: BaseException) -> Iterator[BaseException]:
    visited: set[int] = set()
    link: BaseException | None = exc
    while link is not None and id(link) not in visited:
        visited.add(id(link))
        yield link
        if link.__cause__ is not None:
            link = link.__cause__
        elif link.__suppress_context__:
            link = None
        else:
            link = link.__context__


def _as_exit_code(raw: object) -> int:
    if raw is None:
        return int(ExitCode.SUCCESS)
    if isinstance(raw, int) and raw in {code.value for code in ExitCode}:
        return raw
    if isinstance(raw, str) and raw.strip():
        _stderr(raw.strip())
    return int(ExitCode.INTERNAL_ERROR)


def _stderr(message: str) -> None:
    print(message.rstrip("\n"), file=sys.stderr)


__all__ = ["ExitCode", "apply_deterministic_environment", "classify_failure", "cli_entrypoint"]
