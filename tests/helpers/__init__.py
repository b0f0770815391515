from __future__ import annotations

from typing import Any

from tickbot.bot import Bot
from tickbot.config import Settings
from tickbot.journal import InMemoryActionJournal

from .world_sim import FakeClock, FakeWorld, loc, npc, options, skill, straight_path


def make_bot(world: FakeWorld, **overrides: Any) -> Bot:
    """Bot over ``world`` with default timings and an in-memory journal."""
    return Bot(
        world,
        world,
        settings=Settings(**overrides),
        clock=world.clock,
        journal=InMemoryActionJournal(),
    )


__all__ = ["FakeClock", "FakeWorld", "loc", "make_bot", "npc", "options", "skill", "straight_path"]
