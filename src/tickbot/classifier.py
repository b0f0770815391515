"""Maps transient chat messages to failure reasons, per action.

Chat text is the only channel through which the server reports most refusals,
and its wording drifts between game revisions, so the rules live in data that
can be replaced from a JSON file without touching the executor.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, model_validator

from tickbot.models import WorldSnapshot
from tickbot.results import FailureReason


class ClassifierConfigError(ValueError):
    """Raised when a rules file cannot be parsed or validated."""


class MessageRule(BaseModel):
    """Matches a lower-cased message containing any of ``any_of`` and all of ``all_of``."""

    reason: FailureReason
    any_of: list[str] = Field(default_factory=list)
    all_of: list[str] = Field(default_factory=list)
    message: str | None = None

    @model_validator(mode="after")
    def _has_terms(self) -> MessageRule:
        if not self.any_of and not self.all_of:
            raise ValueError("a rule needs at least one phrase in any_of or all_of")
        self.any_of = [phrase.lower() for phrase in self.any_of]
        self.all_of = [phrase.lower() for phrase in self.all_of]
        return self

    def matches(self, text: str) -> bool:
        lowered = text.lower()
        if self.any_of and not any(phrase in lowered for phrase in self.any_of):
            return False
        return all(phrase in lowered for phrase in self.all_of)


class ClassifierRules(BaseModel):
    actions: dict[str, list[MessageRule]] = Field(default_factory=dict)


_REACH = ["can't reach", "cannot reach"]

DEFAULT_RULES: dict[str, list[dict]] = {
    "attack": [
        {"reason": "out_of_reach", "any_of": _REACH},
        {"reason": "already_in_combat", "any_of": ["someone else is fighting", "already under attack"]},
    ],
    "pickup": [
        {"reason": "cant_reach", "any_of": _REACH},
        {"reason": "inventory_full", "all_of": ["inventory", "full"]},
    ],
    "door": [
        {"reason": "cant_reach", "any_of": _REACH},
    ],
    "chop": [
        {"reason": "no_tool", "any_of": ["do not have an axe", "don't have an axe", "need an axe"]},
        {"reason": "requirement_not_met", "any_of": ["woodcutting level"]},
        {"reason": "inventory_full", "all_of": ["inventory", "full"]},
    ],
    "burn": [
        {"reason": "bad_location", "any_of": ["can't light a fire", "you need to move", "can't do that here"]},
    ],
    "talk": [
        {"reason": "cant_reach", "any_of": _REACH},
    ],
    "equip": [
        {"reason": "requirement_not_met", "any_of": ["you need", "to wear this", "to wield this"]},
    ],
    "unequip": [
        {"reason": "inventory_full", "all_of": ["inventory", "full"]},
    ],
    "cast": [
        {"reason": "out_of_reach", "any_of": _REACH},
        {"reason": "no_runes", "any_of": ["do not have enough", "don't have enough"]},
    ],
    "use_on_loc": [
        {"reason": "cant_reach", "any_of": _REACH},
        {"reason": "rejected", "any_of": ["nothing interesting happens"]},
    ],
    "buy": [
        {"reason": "insufficient_funds", "any_of": ["don't have enough coins", "do not have enough coins"]},
        {"reason": "out_of_stock", "any_of": ["out of stock", "run out of stock"]},
        {"reason": "inventory_full", "all_of": ["inventory", "full"]},
    ],
    # Order matters: the generic "can't sell this item" must come last.
    "sell": [
        {"reason": "not_buyable_here", "any_of": ["can't sell this item to this shop"]},
        {"reason": "not_buyable_anywhere", "any_of": ["can't sell this item to a shop"]},
        {"reason": "not_tradeable", "any_of": ["can't sell this item"]},
    ],
}


class FailureClassifier:
    """First matching rule wins; messages are scanned oldest first."""

    def __init__(self, rules: ClassifierRules | None = None) -> None:
        self._rules = rules or ClassifierRules.model_validate({"actions": DEFAULT_RULES})

    @classmethod
    def from_file(cls, path: str | Path, *, merge_defaults: bool = True) -> FailureClassifier:
        """Load rules from JSON shaped like ``{"actions": {"attack": [...]}}``.

        With ``merge_defaults`` an action listed in the file replaces only that
        action's default rules.
        """
        try:
            payload = json.loads(Path(path).read_text(encoding="utf-8"))
            loaded = ClassifierRules.model_validate(payload)
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            raise ClassifierConfigError(f"Invalid classifier rules in {path}: {exc}") from exc

        if not merge_defaults:
            return cls(loaded)

        merged = ClassifierRules.model_validate({"actions": DEFAULT_RULES})
        merged.actions.update(loaded.actions)
        return cls(merged)

    @property
    def rules(self) -> ClassifierRules:
        return self._rules

    def rules_for(self, action: str) -> list[MessageRule]:
        return self._rules.actions.get(action, [])

    def classify_text(self, action: str, text: str) -> MessageRule | None:
        for rule in self.rules_for(action):
            if rule.matches(text):
                return rule
        return None

    def classify(self, action: str, snapshot: WorldSnapshot, *, since_tick: int) -> MessageRule | None:
        """Return the rule matched by the first message newer than ``since_tick``."""
        for message in sorted(snapshot.messages_since(since_tick), key=lambda m: m.tick):
            rule = self.classify_text(action, message.text)
            if rule is not None:
                return rule
        return None
