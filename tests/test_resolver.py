from __future__ import annotations

import re

from tickbot.models import GroundItem, InventoryItem, NearbyLoc, WorldSnapshot
from tickbot.resolver import EntityResolver
from tickbot.targets import Pattern, Resolved
from tests.helpers import FakeWorld, loc, npc


def _resolver(**fields) -> tuple[FakeWorld, EntityResolver]:
    world = FakeWorld(WorldSnapshot(tick=1, **fields))
    return world, EntityResolver(world)


def test_resolve_npc_picks_nearest_match() -> None:
    _, resolver = _resolver(
        nearby_npcs=(npc(1, "Goblin", 0, 0, 6, "Attack"), npc(2, "Goblin", 0, 0, 2, "Attack"), npc(3, "Man", 0, 0, 1))
    )

    assert resolver.resolve_npc(Pattern("goblin")).index == 2


def test_plain_text_is_a_literal_not_a_regex() -> None:
    _, resolver = _resolver(nearby_locs=(loc(1, "Tree", 0, 0, 1), loc(2, "Oak tree", 0, 0, 2)))

    assert resolver.resolve_loc(Pattern("tr.e")) is None
    assert resolver.resolve_loc(Pattern(re.compile(r"tr.e", re.IGNORECASE))).id == 1


def test_resolve_inventory_picks_lowest_slot() -> None:
    _, resolver = _resolver(inventory=(InventoryItem(7, 1511, "Logs"), InventoryItem(2, 1521, "Oak logs")))

    assert resolver.resolve_inventory_item(Pattern("logs")).slot == 2


def test_resolved_handle_is_returned_unchanged() -> None:
    _, resolver = _resolver()
    stale = InventoryItem(4, 995, "Coins", 10)

    assert resolver.resolve_inventory_item(Resolved(stale)) is stale
    assert resolver.resolve_inventory_item(None) is None


def test_refresh_loc_follows_door_state_change_at_same_tile() -> None:
    closed = loc(1530, "Door", 5, 5, 1, "Open")
    world, resolver = _resolver(nearby_locs=(closed,))
    world.update(nearby_locs=(NearbyLoc(1531, "Door", 5, 5, 1),))

    assert resolver.refresh_loc(closed) is None
    assert resolver.refresh_loc(closed, Pattern("door")).id == 1531


def test_refresh_ground_item_matches_tile_and_id() -> None:
    coins = GroundItem(995, "Coins", 3, 4, 2)
    world, resolver = _resolver(ground_items=(coins,))

    assert resolver.refresh_ground_item(coins) == coins
    world.update(ground_items=(GroundItem(995, "Coins", 3, 5, 2),))
    assert resolver.refresh_ground_item(coins) is None


def test_resolver_without_state_returns_none() -> None:
    world = FakeWorld(WorldSnapshot(tick=0), synced_at_tick=10)
    resolver = EntityResolver(world)

    assert resolver.resolve_npc(Pattern("goblin")) is None
    assert resolver.resolve_bank_item(0) is None
