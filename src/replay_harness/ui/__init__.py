"""UI package exports for the CLI router and terminal rendering."""

from replay_harness.ui.cli import CLIError, build_parser, run_cli
from replay_harness.ui.render import CLIRenderer, create_renderer

__all__ = [
    "CLIError",
    "CLIRenderer",
    "build_parser",
    "create_renderer",
    "run_cli",
]
