"""Pattern model and its mini-notation text.

Grammar::

    Cycle := "[" Slice (" " Slice)* "]"
    Slice := Rest | Note | Chord
    Rest  := "~" | "~@" N
    Note  := PitchName ["@" N]
    Chord := "[" Note ("," Note)* "]"

A pattern is the space-joined sequence of its cycles; an empty pattern
renders as the empty string.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class RestToken:
    span: int = 1

    @property
    def slots(self) -> int:
        return self.span

    def render(self) -> str:
        return "~" if self.span == 1 else f"~@{self.span}"


@dataclass(frozen=True)
class NoteToken:
    name: str
    span: int = 1

    @property
    def slots(self) -> int:
        return self.span

    def render(self) -> str:
        return self.name if self.span == 1 else f"{self.name}@{self.span}"


@dataclass(frozen=True)
class ChordToken:
    """Simultaneous notes; occupies one slot, members keep their own lengths."""

    notes: tuple[NoteToken, ...]

    @property
    def slots(self) -> int:
        return 1

    def render(self) -> str:
        return "[" + ",".join(n.render() for n in self.notes) + "]"


Token = Union[RestToken, NoteToken, ChordToken]


@dataclass
class Measure:
    slices: int
    tokens: list[Token] = field(default_factory=list)

    @property
    def is_rest(self) -> bool:
        return all(isinstance(t, RestToken) for t in self.tokens)

    @property
    def slot_count(self) -> int:
        return sum(t.slots for t in self.tokens)

    def render(self) -> str:
        if self.is_rest:
            return "[" + RestToken(self.slices).render() + "]"
        return "[" + " ".join(t.render() for t in self.tokens) + "]"


@dataclass
class Pattern:
    slices_per_measure: int
    measures: list[Measure] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.measures)

    def cycles(self) -> list[str]:
        return [m.render() for m in self.measures]


def render_pattern(pattern: Pattern) -> str:
    """Render *pattern* as space-joined cycles ("" when empty)."""
    return " ".join(pattern.cycles())
