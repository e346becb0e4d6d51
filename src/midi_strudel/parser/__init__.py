"""Parser package: pitch name conversion."""

from midi_strudel.parser.pitch import note_name, parse_pitch_name

__all__ = [
    "note_name",
    "parse_pitch_name",
]
