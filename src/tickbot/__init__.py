"""Verified, failure-classified actions over a polled tick-based game session."""

from .bot import Bot
from .classifier import FailureClassifier
from .results import ActionResult, EatResult, FailureReason, SkillResult, TransferResult
from .targets import Pattern, Resolved

__all__ = [
    "ActionResult",
    "Bot",
    "EatResult",
    "FailureClassifier",
    "FailureReason",
    "Pattern",
    "Resolved",
    "SkillResult",
    "TransferResult",
]
