"""Unit tests for deadline-bounded polling."""

from __future__ import annotations

import asyncio

import pytest

from olminstall.kubernetes.polling import deadline_after, deadline_expired, poll_until
from olminstall.olm.errors import NotReadyError


class Counter:
    """Condition that becomes true after a number of checks."""

    def __init__(self, true_after: int | None) -> None:
        self.true_after = true_after
        self.calls = 0

    async def __call__(self) -> bool:
        self.calls += 1
        return self.true_after is not None and self.calls >= self.true_after


class TestDeadlines:
    """Tests for deadline helpers."""

    @pytest.mark.asyncio
    async def test_no_deadline(self) -> None:
        """None means no deadline."""
        assert deadline_after(None) is None
        assert deadline_expired(None) is False

    @pytest.mark.asyncio
    async def test_future_deadline(self) -> None:
        """A deadline in the future has not expired."""
        assert deadline_expired(deadline_after(10.0)) is False

    @pytest.mark.asyncio
    async def test_past_deadline(self) -> None:
        """A deadline in the past has expired."""
        assert deadline_expired(asyncio.get_running_loop().time() - 0.001) is True


class TestPollUntil:
    """Tests for poll_until."""

    @pytest.mark.asyncio
    async def test_condition_already_true(self) -> None:
        """A condition that holds immediately is checked once."""
        condition = Counter(true_after=1)

        await poll_until(condition, interval=10.0, deadline=deadline_after(1.0))

        assert condition.calls == 1

    @pytest.mark.asyncio
    async def test_polls_until_true(self) -> None:
        """The condition is re-checked every interval."""
        condition = Counter(true_after=4)

        await poll_until(condition, interval=0.001, deadline=deadline_after(5.0))

        assert condition.calls == 4

    @pytest.mark.asyncio
    async def test_without_deadline(self) -> None:
        """No deadline polls until the condition holds."""
        condition = Counter(true_after=3)

        await poll_until(condition, interval=0.001)

        assert condition.calls == 3

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        """A condition that never holds times out."""
        condition = Counter(true_after=None)

        with pytest.raises(NotReadyError, match="timed out waiting for CSV testns/op"):
            await poll_until(
                condition, interval=0.01, deadline=deadline_after(0.05), description="CSV testns/op"
            )

        assert condition.calls >= 1

    @pytest.mark.asyncio
    async def test_expired_deadline_does_not_check(self) -> None:
        """An expired deadline fails before the first check."""
        condition = Counter(true_after=1)

        with pytest.raises(NotReadyError, match="deadline exceeded"):
            await poll_until(
                condition, interval=0.01, deadline=asyncio.get_running_loop().time() - 1
            )

        assert condition.calls == 0

    @pytest.mark.asyncio
    async def test_condition_error_aborts(self) -> None:
        """Errors from the condition propagate unchanged."""

        async def failing() -> bool:
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            await poll_until(failing, interval=0.01, deadline=deadline_after(1.0))

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self) -> None:
        """Cancelling the waiting task is not turned into a timeout."""
        condition = Counter(true_after=None)
        task = asyncio.create_task(
            poll_until(condition, interval=0.01, deadline=deadline_after(10.0))
        )
        await asyncio.sleep(0.03)

        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

    @pytest.mark.asyncio
    async def test_shared_deadline(self) -> None:
        """Sequential waits draw from the same deadline."""
        deadline = deadline_after(0.1)
        await poll_until(Counter(true_after=1), interval=0.01, deadline=deadline)
        await asyncio.sleep(0.12)

        with pytest.raises(NotReadyError):
            await poll_until(Counter(true_after=1), interval=0.01, deadline=deadline)
