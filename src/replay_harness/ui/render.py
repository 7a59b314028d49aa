"""Plain-text output for the replay-harness CLI.

File: src/replay_harness/ui/render.py
Last updated: 2026-10-18

Purpose
- Keep stdout lines stable so CI logs and tests can match them.
- Color only the final gate status, and only on a TTY without ``NO_COLOR``
  or ``--no-color``.
"""

from __future__ import annotations

import os
import sys
from typing import TextIO

_STATUS_COLORS = {"PASS": "32", "WARN": "33", "INFO": "36", "FAIL": "31"}


class CLIRenderer:
    def __init__(
        self, *, no_color: bool = False, verbose: bool = False, stream: TextIO | None = None
    ) -> None:
        self.verbose = verbose
        self._stream = stream
        isatty = getattr(self._out, "isatty", None)
        self._color = (
            not no_color and not os.environ.get("NO_COLOR") and callable(isatty) and isatty()
        )

    @property
    def _out(self) -> TextIO:
        # Resolved per call so pytest's capsys swap of sys.stdout is honored.
        return self._stream if self._stream is not None else sys.stdout

    def text(self, line: str) -> None:
        print(line, file=self._out)

    def kv(self, key: str, value: object) -> None:
        print(f"{key}: {value}", file=self._out)

    def block(self, text: str) -> None:
        print(text, file=self._out)

    def detail(self, line: str) -> None:
        """Indented line shown only with ``--verbose``."""

        if self.verbose:
            print(f"  {line}", file=self._out)

    def status(self, label: str, status: str) -> None:
        code = _STATUS_COLORS.get(status)
        shown = f"\033[{code}m{status}\033[0m" if self._color and code else status
        print(f"{label}: {shown}", file=self._out)


def create_renderer(
    *, no_color: bool = False, verbose: bool = False, stream: TextIO | None = None
) -> CLIRenderer:
    return CLIRenderer(no_color=no_color, verbose=verbose, stream=stream)


__all__ = ["CLIRenderer", "create_renderer"]
