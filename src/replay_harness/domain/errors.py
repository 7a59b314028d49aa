"""Fatal error types raised by replay-harness core operations."""

from __future__ import annotations


class ReplayHarnessError(Exception):
    """Base class for replay-harness failures."""


class SchemaValidationError(ReplayHarnessError, ValueError):
    """A scenario or scenario suite is structurally invalid."""


class ArtifactResolutionError(ReplayHarnessError, ValueError):
    """No baseline or candidate artifact could be resolved."""


class ProfileMismatchError(ReplayHarnessError, ValueError):
    """An artifact carries a profile other than the one the operation requires."""

    def __init__(self, expected: str, actual: str, *, source: str | None = None) -> None:
        self.expected = expected
        self.actual = actual
        self.source = source
        where = f" in {source}" if source else ""
        super().__init__(
            f"artifact profile mismatch{where}: expected {expected!r}, got {actual!r}"
        )


__all__ = [
    "ArtifactResolutionError",
    "ProfileMismatchError",
    "ReplayHarnessError",
    "SchemaValidationError",
]
