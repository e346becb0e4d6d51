"""Custom exception hierarchy for midi-strudel."""

from __future__ import annotations


class MidiStrudelError(Exception):
    """Base exception for all midi-strudel errors."""


class ValidationError(MidiStrudelError, ValueError):
    """Invalid input (division, pitch, quantization level, etc.).

    Subclasses both MidiStrudelError and ValueError so generic
    ``except ValueError`` handlers keep working.
    """


class SerializationError(MidiStrudelError):
    """Error while reading a MIDI file."""


class UnsupportedOperationError(MidiStrudelError):
    """The input is valid MIDI but uses a feature the converter cannot handle."""


class AmbiguousTimeSignatureError(UnsupportedOperationError):
    """More than one distinct time signature was found in the file."""

    def __init__(self, ticks: list[int]) -> None:
        self.ticks = list(ticks)
        positions = ", ".join(str(t) for t in self.ticks)
        super().__init__(
            f"Multiple time signatures detected ({len(self.ticks)} changes at "
            f"ticks: {positions}). Only single time signature files are "
            f"supported. Split the MIDI file by time signature before conversion."
        )


class TrackSelectionError(MidiStrudelError, IndexError):
    """Requested track index is outside the file's track list."""

    def __init__(self, index: int, track_count: int) -> None:
        self.index = index
        self.track_count = track_count
        super().__init__(
            f"Track index {index} out of bounds. File has {track_count} track(s)."
        )


class EmptyTrackError(MidiStrudelError, ValueError):
    """A selected track (or every track) has no note events."""
