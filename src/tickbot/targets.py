"""Caller-supplied targets: an already resolved handle or a pattern to resolve fresh."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Resolved(Generic[T]):
    """A handle the caller resolved this tick; used as-is."""

    entity: T


@dataclass(frozen=True, slots=True)
class Pattern:
    """Name pattern resolved against the current snapshot.

    Plain text matches as a case-insensitive literal substring; a compiled
    regex is used exactly as given.
    """

    text: str | re.Pattern[str]

    def compile(self) -> re.Pattern[str]:
        if isinstance(self.text, re.Pattern):
            return self.text
        return re.compile(re.escape(self.text), re.IGNORECASE)

    def matches(self, name: str) -> bool:
        return bool(self.compile().search(name))

    def __str__(self) -> str:
        return self.text.pattern if isinstance(self.text, re.Pattern) else self.text


Target = Union[Resolved[T], Pattern]
TargetLike = Union[Resolved[T], Pattern, str, re.Pattern, None]


def as_target(value: TargetLike, default: Pattern | None = None) -> Target | None:
    """Coerce public-API input into a ``Target``; ``None`` falls back to ``default``."""
    if value is None:
        return default
    if isinstance(value, (Resolved, Pattern)):
        return value
    if isinstance(value, (str, re.Pattern)):
        return Pattern(value)
    raise TypeError(f"Unsupported target {value!r}; wrap resolved entities in Resolved(...)")


def describe(target: Target | None) -> str:
    if target is None:
        return "<none>"
    if isinstance(target, Resolved):
        return getattr(target.entity, "name", repr(target.entity))
    return str(target)
