"""Resolves caller targets against the live snapshot."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TypeVar

from tickbot.adapters.state_source import StateSnapshotSource
from tickbot.models import BankItem, GroundItem, InventoryItem, NearbyLoc, NearbyNpc, ShopItem
from tickbot.targets import Pattern, Resolved, Target

E = TypeVar("E")


class EntityResolver:
    """One lookup per entity kind.

    A ``Resolved`` handle is returned unchanged; a ``Pattern`` is matched fresh
    against the current snapshot. ``None`` means nothing matched and is never
    papered over by widening the pattern.
    """

    def __init__(self, source: StateSnapshotSource) -> None:
        self._source = source

    def resolve_npc(self, target: Target[NearbyNpc] | None) -> NearbyNpc | None:
        snapshot = self._source.get_state()
        return self._resolve(target, snapshot.nearby_npcs if snapshot else (), nearest=True)

    def resolve_loc(self, target: Target[NearbyLoc] | None) -> NearbyLoc | None:
        snapshot = self._source.get_state()
        return self._resolve(target, snapshot.nearby_locs if snapshot else (), nearest=True)

    def resolve_ground_item(self, target: Target[GroundItem] | None) -> GroundItem | None:
        snapshot = self._source.get_state()
        return self._resolve(target, snapshot.ground_items if snapshot else (), nearest=True)

    def resolve_inventory_item(self, target: Target[InventoryItem] | None) -> InventoryItem | None:
        snapshot = self._source.get_state()
        return self._resolve(target, snapshot.inventory if snapshot else (), nearest=False)

    def resolve_equipment_item(self, target: Target[InventoryItem] | None) -> InventoryItem | None:
        snapshot = self._source.get_state()
        return self._resolve(target, snapshot.equipment if snapshot else (), nearest=False)

    def resolve_bank_item(self, target: Target[BankItem] | int | None) -> BankItem | None:
        snapshot = self._source.get_state()
        items = snapshot.bank.items if snapshot else ()
        if isinstance(target, int):
            return next((item for item in items if item.slot == target), None)
        return self._resolve(target, items, nearest=False)

    def resolve_shop_item(
        self,
        target: Resolved[ShopItem] | Target[InventoryItem] | None,
        items: Iterable[ShopItem],
    ) -> ShopItem | None:
        """Match within a shop listing; a resolved handle is looked up by item id."""
        items = tuple(items)
        if isinstance(target, Resolved):
            return next((item for item in items if item.id == target.entity.id), None)
        return self._resolve(target, items, nearest=False)

    # Re-resolution by identity after an await boundary.

    def refresh_npc(self, npc: NearbyNpc) -> NearbyNpc | None:
        snapshot = self._source.get_state()
        if snapshot is None:
            return None
        return next((n for n in snapshot.nearby_npcs if n.index == npc.index), None)

    def refresh_loc(self, loc: NearbyLoc, pattern: Pattern | None = None) -> NearbyLoc | None:
        """Find the loc at the same tile; its id may differ (e.g. an opened door)."""
        snapshot = self._source.get_state()
        if snapshot is None:
            return None
        for candidate in snapshot.nearby_locs:
            if candidate.x != loc.x or candidate.z != loc.z:
                continue
            if pattern is None and candidate.id != loc.id:
                continue
            if pattern is not None and not pattern.matches(candidate.name):
                continue
            return candidate
        return None

    def refresh_ground_item(self, item: GroundItem) -> GroundItem | None:
        snapshot = self._source.get_state()
        if snapshot is None:
            return None
        return next(
            (g for g in snapshot.ground_items if g.x == item.x and g.z == item.z and g.id == item.id),
            None,
        )

    @staticmethod
    def _resolve(target: Target[E] | None, candidates: Iterable[E], *, nearest: bool) -> E | None:
        if target is None:
            return None
        if isinstance(target, Resolved):
            return target.entity

        regex = target.compile()
        matches = [entity for entity in candidates if regex.search(getattr(entity, "name"))]
        if not matches:
            return None
        if nearest:
            return min(matches, key=lambda entity: getattr(entity, "distance"))
        return min(matches, key=lambda entity: getattr(entity, "slot"))
