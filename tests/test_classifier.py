from __future__ import annotations

import json
from pathlib import Path

import pytest

from tickbot.classifier import ClassifierConfigError, FailureClassifier, MessageRule
from tickbot.models import GameMessage, WorldSnapshot
from tickbot.results import FailureReason


def test_sell_rules_prefer_the_most_specific_phrase() -> None:
    classifier = FailureClassifier()

    assert classifier.classify_text("sell", "You can't sell this item to this shop.").reason is FailureReason.NOT_BUYABLE_HERE
    assert classifier.classify_text("sell", "You can't sell this item to a shop.").reason is FailureReason.NOT_BUYABLE_ANYWHERE
    assert classifier.classify_text("sell", "You can't sell this item.").reason is FailureReason.NOT_TRADEABLE


def test_classify_only_considers_messages_after_start_tick() -> None:
    classifier = FailureClassifier()
    snapshot = WorldSnapshot(
        tick=11, messages=(GameMessage(10, "I can't reach that!"), GameMessage(11, "Welcome to the game."))
    )

    assert classifier.classify("attack", snapshot, since_tick=10) is None
    assert classifier.classify("attack", snapshot, since_tick=9).reason is FailureReason.OUT_OF_REACH


def test_rules_are_scoped_per_action() -> None:
    classifier = FailureClassifier()

    assert classifier.classify_text("pickup", "I can't reach that!").reason is FailureReason.CANT_REACH
    assert classifier.classify_text("eat", "I can't reach that!") is None


def test_all_of_requires_every_phrase() -> None:
    rule = MessageRule(reason=FailureReason.INVENTORY_FULL, all_of=["Inventory", "FULL"])

    assert rule.matches("Your inventory is full.")
    assert not rule.matches("Your inventory is nearly empty.")


def test_rule_without_phrases_is_invalid() -> None:
    with pytest.raises(ValueError):
        MessageRule(reason=FailureReason.REJECTED)


def test_from_file_replaces_only_listed_actions(tmp_path: Path) -> None:
    path = tmp_path / "rules.json"
    path.write_text(
        json.dumps({"actions": {"attack": [{"reason": "already_in_combat", "any_of": ["is busy fighting"]}]}}),
        encoding="utf-8",
    )

    classifier = FailureClassifier.from_file(path)

    assert classifier.classify_text("attack", "The goblin is busy fighting.").reason is FailureReason.ALREADY_IN_COMBAT
    assert classifier.classify_text("attack", "I can't reach that!") is None
    assert classifier.classify_text("pickup", "I can't reach that!").reason is FailureReason.CANT_REACH


def test_from_file_without_defaults(tmp_path: Path) -> None:
    path = tmp_path / "rules.json"
    path.write_text(json.dumps({"actions": {"door": [{"reason": "rejected", "any_of": ["locked"]}]}}), encoding="utf-8")

    classifier = FailureClassifier.from_file(path, merge_defaults=False)

    assert classifier.rules_for("pickup") == []
    assert classifier.classify_text("door", "The door is locked.").reason is FailureReason.REJECTED


def test_from_file_rejects_unknown_reason(tmp_path: Path) -> None:
    path = tmp_path / "rules.json"
    path.write_text(json.dumps({"actions": {"door": [{"reason": "haunted", "any_of": ["boo"]}]}}), encoding="utf-8")

    with pytest.raises(ClassifierConfigError):
        FailureClassifier.from_file(path)
