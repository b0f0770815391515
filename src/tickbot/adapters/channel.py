"""Boundary for the intent-only command transport."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol


@dataclass(slots=True)
class CommandAck:
    """Local validation result of a sent command; never proof of remote completion."""

    success: bool
    message: str = ""


@dataclass(frozen=True, slots=True)
class Waypoint:
    x: int
    z: int


@dataclass(slots=True)
class PathResult:
    success: bool
    waypoints: list[Waypoint] = field(default_factory=list)
    message: str = ""


class CommandChannel(Protocol):
    """Primitive commands accepted by the remote session.

    Every method only queues intent. Whether it took effect must be read back
    from later snapshots.
    """

    async def send_walk(self, x: int, z: int, running: bool = True) -> CommandAck: ...

    async def send_find_path(self, x: int, z: int, max_waypoints: int = 500) -> PathResult: ...

    async def send_interact_npc(self, npc_index: int, option_index: int) -> CommandAck: ...

    async def send_interact_loc(self, x: int, z: int, loc_id: int, option_index: int) -> CommandAck: ...

    async def send_use_item(self, slot: int, option_index: int) -> CommandAck: ...

    async def send_use_equipment_item(self, slot: int, option_index: int) -> CommandAck: ...

    async def send_use_item_on_item(self, source_slot: int, target_slot: int) -> CommandAck: ...

    async def send_use_item_on_loc(self, slot: int, x: int, z: int, loc_id: int) -> CommandAck: ...

    async def send_pickup(self, x: int, z: int, item_id: int) -> CommandAck: ...

    async def send_drop_item(self, slot: int) -> CommandAck: ...

    async def send_click_dialog(self, option_index: int = 0) -> CommandAck: ...

    async def send_bank_deposit(self, slot: int, amount: int) -> CommandAck: ...

    async def send_bank_withdraw(self, slot: int, amount: int) -> CommandAck: ...

    async def send_close_modal(self) -> CommandAck: ...

    async def send_shop_buy(self, slot: int, amount: int) -> CommandAck: ...

    async def send_shop_sell(self, slot: int, amount: int) -> CommandAck: ...

    async def send_close_shop(self) -> CommandAck: ...

    async def send_set_combat_style(self, style: int) -> CommandAck: ...

    async def send_spell_on_npc(self, npc_index: int, spell_component: int) -> CommandAck: ...
