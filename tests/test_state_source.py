from __future__ import annotations

import asyncio

import pytest

from tickbot.adapters import InMemoryStateSource
from tickbot.models import WorldSnapshot


def test_publish_wakes_waiter() -> None:
    async def _run() -> bool:
        source = InMemoryStateSource()
        waiter = asyncio.create_task(source.wait_for_state_change(1.0))
        await asyncio.sleep(0)
        source.publish(WorldSnapshot(tick=1))
        return await waiter

    assert asyncio.run(_run()) is True


def test_wait_without_publish_times_out() -> None:
    source = InMemoryStateSource(WorldSnapshot(tick=3))

    assert asyncio.run(source.wait_for_state_change(0.01)) is False
    assert source.get_state().tick == 3


def test_publish_rejects_older_tick() -> None:
    source = InMemoryStateSource(WorldSnapshot(tick=5))

    with pytest.raises(ValueError):
        source.publish(WorldSnapshot(tick=4))


def test_reset_forgets_snapshot() -> None:
    source = InMemoryStateSource(WorldSnapshot(tick=5))
    source.reset()

    assert source.get_state() is None
    source.publish(WorldSnapshot(tick=1))
    assert source.get_state().tick == 1


def test_publish_rejects_repeated_tick() -> None:
    source = InMemoryStateSource(WorldSnapshot(tick=5))

    with pytest.raises(ValueError):
        source.publish(WorldSnapshot(tick=5))
    assert source.get_state().tick == 5
