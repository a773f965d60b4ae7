"""Optimistic-concurrency retry for updates to shared resources.

Another controller may write a resource between our read and our update.
The server then rejects the update as stale and the whole
fetch-mutate-update cycle is repeated with backoff.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from olminstall.kubernetes.store import ResourceStore
from olminstall.observability.logging import get_logger
from olminstall.olm.errors import ResourceVersionConflictError
from olminstall.olm.models import ResourceKind


log = get_logger(__name__)

T = TypeVar("T")

DEFAULT_ATTEMPTS = 5
DEFAULT_INITIAL_BACKOFF_SECONDS = 0.01
DEFAULT_MAX_BACKOFF_SECONDS = 1.0


async def retry_on_conflict(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int = DEFAULT_ATTEMPTS,
    initial_backoff: float = DEFAULT_INITIAL_BACKOFF_SECONDS,
    max_backoff: float = DEFAULT_MAX_BACKOFF_SECONDS,
    on_retry: Callable[[int], None] | None = None,
) -> T:
    """Run ``operation``, repeating it while it fails with a version conflict.

    Args:
        operation: Complete fetch-mutate-update cycle; re-run from scratch.
        attempts: Total attempts including the first.
        initial_backoff: First wait between attempts in seconds.
        max_backoff: Ceiling for the exponential wait.
        on_retry: Called with the failed attempt number before each retry.

    Raises:
        ResourceVersionConflictError: The last conflict once attempts run out.
        Any other error from ``operation`` immediately.
    """

    def _before_sleep(retry_state: RetryCallState) -> None:
        log.debug(
            "resource_version_conflict_retry",
            attempt=retry_state.attempt_number,
            max_attempts=attempts,
        )
        if on_retry is not None:
            on_retry(retry_state.attempt_number)

    retrying = AsyncRetrying(
        retry=retry_if_exception_type(ResourceVersionConflictError),
        stop=stop_after_attempt(attempts),
        wait=wait_exponential_jitter(initial=initial_backoff, max=max_backoff, jitter=initial_backoff),
        before_sleep=_before_sleep,
        reraise=True,
    )

    async for attempt in retrying:
        with attempt:
            result = await operation()
    return result


async def update_with_retry(
    store: ResourceStore,
    kind: ResourceKind,
    namespace: str,
    name: str,
    mutate: Callable[[dict[str, Any]], None],
    **retry_options: Any,
) -> dict[str, Any]:
    """Fetch a resource, apply ``mutate`` in place and write it back.

    The write carries the fetched ``resourceVersion``, so the store rejects it
    if the resource changed in between; the cycle is then retried.

    Returns:
        The resource as stored after the successful update.
    """

    async def _cycle() -> dict[str, Any]:
        current = await store.get(kind, namespace, name)
        mutate(current)
        return await store.update(kind, current)

    return await retry_on_conflict(_cycle, **retry_options)


__all__ = ["retry_on_conflict", "update_with_retry"]
