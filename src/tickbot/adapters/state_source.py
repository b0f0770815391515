"""Boundary for the polled world-state producer.

The surrounding system owns the connection and pushes each decoded snapshot
into an ``InMemoryStateSource``; the porcelain layer only reads from it.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

from tickbot.models import WorldSnapshot


class StateSnapshotSource(Protocol):
    """Read-only handle on the latest world snapshot."""

    def get_state(self) -> WorldSnapshot | None:
        """Return the most recent snapshot, or ``None`` before the session syncs."""

    async def wait_for_state_change(self, timeout: float) -> bool:
        """Wait up to ``timeout`` seconds for a newer snapshot; ``False`` if none arrived."""


class InMemoryStateSource:
    """Latest-value holder that wakes waiters whenever a snapshot is published."""

    def __init__(self, initial: WorldSnapshot | None = None) -> None:
        self._latest = initial
        self._changed = asyncio.Event()

    def get_state(self) -> WorldSnapshot | None:
        return self._latest

    def publish(self, snapshot: WorldSnapshot) -> None:
        if self._latest is not None and snapshot.tick <= self._latest.tick:
            raise ValueError(f"Snapshot tick did not advance: {snapshot.tick} <= {self._latest.tick}")
        self._latest = snapshot
        self._changed.set()

    def reset(self) -> None:
        """Forget the current snapshot, e.g. after a disconnect."""
        self._latest = None

    async def wait_for_state_change(self, timeout: float) -> bool:
        self._changed.clear()
        try:
            await asyncio.wait_for(self._changed.wait(), timeout=max(0.0, timeout))
        except asyncio.TimeoutError:
            return False
        return True
