"""Condition polling against a shared deadline.

Every wait in the installer goes through ``poll_until``: the condition is
checked immediately and then every ``interval`` seconds until it holds or the
deadline passes. Deadlines are absolute event loop times, so one deadline can
bound a whole installation.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from olminstall.olm.errors import NotReadyError


Condition = Callable[[], Awaitable[bool]]


def deadline_after(seconds: float | None) -> float | None:
    """Absolute deadline ``seconds`` from now, or None for no deadline."""
    if seconds is None:
        return None
    return asyncio.get_running_loop().time() + seconds


def deadline_expired(deadline: float | None) -> bool:
    """Whether ``deadline`` has already passed."""
    return deadline is not None and asyncio.get_running_loop().time() >= deadline


async def poll_until(
    condition: Condition,
    *,
    interval: float,
    deadline: float | None = None,
    description: str = "condition",
) -> None:
    """Wait until ``condition`` returns True.

    Args:
        condition: Async predicate. An exception it raises aborts the poll.
        interval: Seconds between checks.
        deadline: Absolute loop time to give up at (None waits forever).
        description: What is being waited for, used in the timeout message.

    Raises:
        NotReadyError: The deadline passed before the condition held.
        asyncio.CancelledError: The calling task was cancelled.
    """
    if deadline_expired(deadline):
        raise NotReadyError(f"timed out waiting for {description}: deadline exceeded")

    timeout = asyncio.timeout_at(deadline)
    try:
        async with timeout:
            while not await condition():
                await asyncio.sleep(interval)
    except TimeoutError as e:
        if not timeout.expired():
            raise
        raise NotReadyError(f"timed out waiting for {description}") from e


__all__ = ["Condition", "deadline_after", "deadline_expired", "poll_until"]
