"""Structured outcomes returned by every porcelain operation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class FailureReason(str, Enum):
    """Closed taxonomy of expected failure modes."""

    TARGET_NOT_FOUND = "target_not_found"
    NO_OPTION = "no_option"
    OUT_OF_REACH = "out_of_reach"
    CANT_REACH = "cant_reach"
    ALREADY_IN_COMBAT = "already_in_combat"
    ALREADY_OPEN = "already_open"
    INVENTORY_FULL = "inventory_full"
    TIMEOUT = "timeout"
    REJECTED = "rejected"
    NOT_BUYABLE_HERE = "not_buyable_here"
    NOT_BUYABLE_ANYWHERE = "not_buyable_anywhere"
    NOT_TRADEABLE = "not_tradeable"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    OUT_OF_STOCK = "out_of_stock"
    WALK_FAILED = "walk_failed"
    STUCK = "stuck"
    NO_LONGER_VISIBLE = "no_longer_visible"
    NOT_OPEN = "not_open"
    NO_RUNES = "no_runes"
    NO_TOOL = "no_tool"
    BAD_LOCATION = "bad_location"
    REQUIREMENT_NOT_MET = "requirement_not_met"
    COMMAND_REJECTED = "command_rejected"
    NO_STATE = "no_state"

    @property
    def is_rejection(self) -> bool:
        """True for shop/bank refusals conveyed by the server."""
        return self in _REJECTIONS


_REJECTIONS = frozenset(
    {
        FailureReason.REJECTED,
        FailureReason.NOT_BUYABLE_HERE,
        FailureReason.NOT_BUYABLE_ANYWHERE,
        FailureReason.NOT_TRADEABLE,
        FailureReason.INSUFFICIENT_FUNDS,
        FailureReason.OUT_OF_STOCK,
    }
)


@dataclass(slots=True)
class ActionResult:
    success: bool
    message: str
    reason: FailureReason | None = None
    payload: Any = None

    @property
    def rejected(self) -> bool:
        return self.reason is not None and self.reason.is_rejection

    @classmethod
    def ok(cls, message: str, payload: Any = None, **extra: Any) -> ActionResult:
        return cls(True, message, None, payload, **extra)

    @classmethod
    def fail(cls, reason: FailureReason, message: str, payload: Any = None, **extra: Any) -> ActionResult:
        return cls(False, message, reason, payload, **extra)


@dataclass(slots=True)
class TransferResult(ActionResult):
    """Bank/shop outcome carrying the measured quantity moved."""

    amount: int = 0


@dataclass(slots=True)
class SkillResult(ActionResult):
    xp_gained: int = 0
    hit: bool = False


@dataclass(slots=True)
class EatResult(ActionResult):
    hp_gained: int = 0
