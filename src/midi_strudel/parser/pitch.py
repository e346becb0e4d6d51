"""Pitch names in lowercase scientific notation.

Strudel pattern notes are written ``c4``, ``d#5``, ``bb3``. Middle C is
``c4`` = MIDI 60. Black keys are always spelled with sharps on output.
"""

from __future__ import annotations

import re

from midi_strudel.errors import ValidationError

# Semitone offsets for natural notes (C-based)
_NOTE_OFFSETS: dict[str, int] = {
    "c": 0,
    "d": 2,
    "e": 4,
    "f": 5,
    "g": 7,
    "a": 9,
    "b": 11,
}

_ACCIDENTAL_OFFSETS: dict[str, int] = {
    "": 0,
    "#": 1,
    "b": -1,
}

# Note letter, optional accidental, octave (possibly negative)
_PITCH_RE = re.compile(r"^([A-Ga-g])(#|b)?(-?\d+)$")

# MIDI number mod 12 -> pitch class, sharps for black keys
_PITCH_CLASSES: list[str] = [
    "c", "c#", "d", "d#", "e", "f", "f#", "g", "g#", "a", "a#", "b",
]


def note_name(midi_number: int) -> str:
    """Return the lowercase name of MIDI note *midi_number* (``60 -> "c4"``).

    Raises
    ------
    ValidationError
        If *midi_number* is outside 0-127.
    """
    if midi_number < 0 or midi_number > 127:
        raise ValidationError(f"MIDI number {midi_number} out of range (0-127)")
    octave = (midi_number // 12) - 1
    return f"{_PITCH_CLASSES[midi_number % 12]}{octave}"


def parse_pitch_name(s: str) -> int:
    """Parse a pitch name such as ``"c4"``, ``"D#5"`` or ``"bb3"`` to a MIDI number."""
    m = _PITCH_RE.match(s.strip())
    if not m:
        raise ValidationError(f"Cannot parse pitch: '{s}'")

    letter = m.group(1).lower()
    accidental = m.group(2) or ""
    octave = int(m.group(3))

    midi_number = (octave + 1) * 12 + _NOTE_OFFSETS[letter] + _ACCIDENTAL_OFFSETS[accidental]
    if midi_number < 0 or midi_number > 127:
        raise ValidationError(
            f"Computed MIDI number {midi_number} out of range (0-127) "
            f"for pitch '{s}'"
        )
    return midi_number
