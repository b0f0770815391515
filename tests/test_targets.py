from __future__ import annotations

import re

import pytest

from tickbot.models import InventoryItem
from tickbot.targets import Pattern, Resolved, as_target, describe


def test_as_target_wraps_text_and_regex() -> None:
    assert as_target("Logs") == Pattern("Logs")
    compiled = re.compile("^tree$")
    assert as_target(compiled).compile() is compiled


def test_as_target_uses_default_for_none() -> None:
    default = Pattern("door")

    assert as_target(None, default) is default
    assert as_target(None) is None


def test_as_target_rejects_bare_entities() -> None:
    with pytest.raises(TypeError):
        as_target(InventoryItem(0, 1511, "Logs"))


def test_pattern_text_matches_case_insensitively() -> None:
    assert Pattern("BRONZE AXE").matches("Bronze axe")
    assert not Pattern("axe+").matches("Bronze axe")


def test_describe_names_the_target() -> None:
    assert describe(Resolved(InventoryItem(0, 1511, "Logs"))) == "Logs"
    assert describe(Pattern(re.compile("gate|door"))) == "gate|door"
    assert describe(None) == "<none>"
