"""Suspension primitive: wait until a predicate over the snapshot stream holds."""

from __future__ import annotations

import inspect
import logging
from typing import Awaitable, Callable, Union

from tickbot.adapters.state_source import StateSnapshotSource
from tickbot.clock import Clock, SystemClock
from tickbot.models import WorldSnapshot

Predicate = Callable[[WorldSnapshot], Union[bool, Awaitable[bool]]]


class ConditionTimeout(TimeoutError):
    """Raised when a predicate did not hold within its window."""

    def __init__(self, timeout: float, last_snapshot: WorldSnapshot | None) -> None:
        super().__init__(f"Condition not met within {timeout:.2f}s")
        self.timeout = timeout
        self.last_snapshot = last_snapshot


class TickCooldown:
    """Allows a side effect at most once every ``ticks`` ticks."""

    def __init__(self, ticks: int) -> None:
        self._ticks = ticks
        self._last_tick: int | None = None

    def ready(self, tick: int) -> bool:
        if self._last_tick is not None and tick - self._last_tick < self._ticks:
            return False
        self._last_tick = tick
        return True


async def evaluate(predicate: Predicate, snapshot: WorldSnapshot) -> bool:
    """Run a sync or async predicate."""
    outcome = predicate(snapshot)
    if inspect.isawaitable(outcome):
        outcome = await outcome
    return bool(outcome)


class ConditionWaiter:
    """Polls the snapshot source; all library waiting goes through this class."""

    def __init__(
        self,
        source: StateSnapshotSource,
        *,
        clock: Clock | None = None,
        poll_interval_seconds: float = 0.15,
        logger: logging.Logger | None = None,
    ) -> None:
        self._source = source
        self._clock = clock or SystemClock()
        self._poll_interval_seconds = poll_interval_seconds
        self._logger = logger or logging.getLogger("tickbot.waiter")

    @property
    def clock(self) -> Clock:
        return self._clock

    def now(self) -> float:
        return self._clock.monotonic()

    async def wait_for_condition(self, predicate: Predicate, timeout: float) -> WorldSnapshot:
        """Return the first snapshot satisfying ``predicate`` within ``timeout`` seconds.

        ``None`` snapshots (session not yet synced) count as "not satisfied".
        The deadline is checked before each evaluation, so nothing observed
        after the window closes is ever returned.
        """
        deadline = self._clock.monotonic() + timeout
        last: WorldSnapshot | None = None
        while True:
            if self._clock.monotonic() > deadline:
                self._logger.debug("condition_timeout", extra={"timeout": timeout})
                raise ConditionTimeout(timeout, last)

            snapshot = self._source.get_state()
            if snapshot is not None:
                last = snapshot
                if await evaluate(predicate, snapshot):
                    return snapshot

            remaining = deadline - self._clock.monotonic()
            if remaining <= 0:
                raise ConditionTimeout(timeout, last)
            await self._source.wait_for_state_change(min(remaining, self._poll_interval_seconds))

    async def wait_for_next_tick(self, timeout: float) -> bool:
        """Wait for any newer snapshot; ``False`` when none arrived in time."""
        before = self._source.get_state()
        start_tick = before.tick if before is not None else None
        try:
            await self.wait_for_condition(
                lambda snapshot: start_tick is None or snapshot.tick > start_tick,
                timeout,
            )
        except ConditionTimeout:
            return False
        return True

    async def pause(self, seconds: float) -> None:
        await self._clock.sleep(seconds)
