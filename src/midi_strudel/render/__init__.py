"""Render package: pattern text and Strudel source templates."""

from midi_strudel.render.pattern import (
    ChordToken,
    Measure,
    NoteToken,
    Pattern,
    RestToken,
    render_pattern,
)

__all__ = [
    "ChordToken",
    "Measure",
    "NoteToken",
    "Pattern",
    "RestToken",
    "render_pattern",
]
