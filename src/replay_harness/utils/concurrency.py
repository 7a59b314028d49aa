"""Timeout enforcement around the injected scenario runner."""

from __future__ import annotations

import asyncio
import inspect
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable

T = TypeVar("T")


class RunTimeoutError(TimeoutError):
    """The declared ``run_timeout_ms`` budget expired before the runner returned."""

    def __init__(self, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(f"scenario runner exceeded run_timeout_ms={timeout_ms}")


async def run_with_timeout(awaitable: Awaitable[T], timeout_ms: int | None) -> T:
    """Await ``awaitable``, bounded by ``timeout_ms`` when a budget is declared.

    Only budget expiry raises ``RunTimeoutError``; the pending work is cancelled
    first. A ``TimeoutError`` raised by the runner itself propagates unchanged.
    """
    if timeout_ms is None:
        return await awaitable
    if timeout_ms <= 0:
        _close_unscheduled_coroutine(awaitable)
        raise ValueError("timeout_ms must be > 0")

    budget = asyncio.timeout(timeout_ms / 1000)
    try:
        async with budget:
            return await awaitable
    except TimeoutError as exc:
        if not budget.expired():
            raise
        raise RunTimeoutError(timeout_ms) from exc


def _close_unscheduled_coroutine(awaitable: Awaitable[object]) -> None:
    # Raw coroutine objects rejected before scheduling must be closed explicitly.
    if inspect.iscoroutine(awaitable):
        awaitable.close()


__all__ = ["RunTimeoutError", "run_with_timeout"]
