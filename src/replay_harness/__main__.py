"""Module entrypoint for ``python -m replay_harness``."""

from __future__ import annotations

from replay_harness.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
