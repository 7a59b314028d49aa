"""UTC clock helpers producing millisecond ISO-8601 ``Z`` timestamps."""

from __future__ import annotations

from datetime import UTC, datetime


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


def iso_utc(moment: datetime | None = None) -> str:
    """Format ``moment`` (default: now) as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""

    value = (moment or utc_now()).astimezone(UTC)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def epoch_ms(moment: datetime | None = None) -> int:
    return int((moment or utc_now()).timestamp() * 1000)


__all__ = ["epoch_ms", "iso_utc", "utc_now"]
