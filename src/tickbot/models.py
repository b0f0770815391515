"""Immutable world snapshot types produced by the snapshot source."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class InteractOption:
    """One right-click option on an entity, with the index the server expects."""

    text: str
    op_index: int


@dataclass(frozen=True, slots=True)
class PlayerState:
    name: str
    x: int
    z: int
    animation: int = -1
    in_combat: bool = False
    combat_style: int = 0


@dataclass(frozen=True, slots=True)
class SkillState:
    name: str
    level: int
    base_level: int
    experience: int


@dataclass(frozen=True, slots=True)
class InventoryItem:
    slot: int
    id: int
    name: str
    count: int = 1
    options: tuple[InteractOption, ...] = ()

    def option(self, pattern: str) -> InteractOption | None:
        return _find_option(self.options, pattern)


@dataclass(frozen=True, slots=True)
class NearbyNpc:
    index: int
    id: int
    name: str
    x: int
    z: int
    distance: float
    options: tuple[InteractOption, ...] = ()

    def option(self, pattern: str) -> InteractOption | None:
        return _find_option(self.options, pattern)


@dataclass(frozen=True, slots=True)
class NearbyLoc:
    id: int
    name: str
    x: int
    z: int
    distance: float
    options: tuple[InteractOption, ...] = ()

    def option(self, pattern: str) -> InteractOption | None:
        return _find_option(self.options, pattern)


@dataclass(frozen=True, slots=True)
class GroundItem:
    id: int
    name: str
    x: int
    z: int
    distance: float
    count: int = 1


@dataclass(frozen=True, slots=True)
class ShopItem:
    slot: int
    id: int
    name: str
    count: int
    base_cost: int = 0


@dataclass(frozen=True, slots=True)
class BankItem:
    slot: int
    id: int
    name: str
    count: int


@dataclass(frozen=True, slots=True)
class DialogOption:
    index: int
    text: str


@dataclass(frozen=True, slots=True)
class DialogState:
    is_open: bool = False
    text: str = ""
    options: tuple[DialogOption, ...] = ()


@dataclass(frozen=True, slots=True)
class ShopState:
    is_open: bool = False
    title: str = ""
    shop_items: tuple[ShopItem, ...] = ()
    player_items: tuple[ShopItem, ...] = ()


@dataclass(frozen=True, slots=True)
class BankState:
    is_open: bool = False
    interface_id: int | None = None
    items: tuple[BankItem, ...] = ()


@dataclass(frozen=True, slots=True)
class GameMessage:
    tick: int
    text: str


@dataclass(frozen=True, slots=True)
class WorldSnapshot:
    """Point-in-time view of the session; superseded by the next poll."""

    tick: int
    player: PlayerState | None = None
    inventory: tuple[InventoryItem, ...] = ()
    equipment: tuple[InventoryItem, ...] = ()
    skills: tuple[SkillState, ...] = ()
    nearby_npcs: tuple[NearbyNpc, ...] = ()
    nearby_locs: tuple[NearbyLoc, ...] = ()
    ground_items: tuple[GroundItem, ...] = ()
    dialog: DialogState = field(default_factory=DialogState)
    shop: ShopState = field(default_factory=ShopState)
    bank: BankState = field(default_factory=BankState)
    messages: tuple[GameMessage, ...] = ()

    def skill(self, name: str) -> SkillState | None:
        lowered = name.lower()
        for skill in self.skills:
            if skill.name.lower() == lowered:
                return skill
        return None

    def experience(self, skill_name: str) -> int:
        skill = self.skill(skill_name)
        return skill.experience if skill else 0

    def count_of(self, item_id: int) -> int:
        """Total quantity of ``item_id`` across all inventory stacks."""
        return sum(item.count for item in self.inventory if item.id == item_id)

    def messages_since(self, tick: int) -> list[GameMessage]:
        """Messages stamped strictly after ``tick``."""
        return [message for message in self.messages if message.tick > tick]

    def distance_to(self, x: int, z: int) -> float | None:
        if self.player is None:
            return None
        return math.dist((self.player.x, self.player.z), (x, z))


def _find_option(options: tuple[InteractOption, ...], pattern: str) -> InteractOption | None:
    regex = re.compile(pattern, re.IGNORECASE)
    for option in options:
        if regex.search(option.text):
            return option
    return None
