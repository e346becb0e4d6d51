"""Typed event stream decoded from a Standard MIDI File.

Every event carries an absolute tick. Channel-voice events keep their raw
status nibble and data bytes; meta events keep their type byte and raw
payload so the extractors can decode them without reaching back into the
file parser.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from midi_strudel.errors import ValidationError

# ---------------------------------------------------------------------------
# Status / meta type constants
# ---------------------------------------------------------------------------

NOTE_OFF = 0x80
NOTE_ON = 0x90
POLY_AFTERTOUCH = 0xA0
CONTROL_CHANGE = 0xB0
PROGRAM_CHANGE = 0xC0
CHANNEL_AFTERTOUCH = 0xD0
PITCH_BEND = 0xE0

META_SEQUENCE_NUMBER = 0x00
META_TEXT = 0x01
META_COPYRIGHT = 0x02
META_TRACK_NAME = 0x03
META_INSTRUMENT_NAME = 0x04
META_LYRIC = 0x05
META_MARKER = 0x06
META_CUE_POINT = 0x07
META_CHANNEL_PREFIX = 0x20
META_END_OF_TRACK = 0x2F
META_SET_TEMPO = 0x51
META_SMPTE_OFFSET = 0x54
META_TIME_SIGNATURE = 0x58
META_KEY_SIGNATURE = 0x59

DEFAULT_MICROS_PER_QUARTER = 500_000  # 120 BPM


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChannelEvent:
    """A channel-voice message at an absolute tick."""

    tick: int
    status: int     # command nibble, e.g. 0x90
    channel: int    # 0-15
    data1: int = 0  # pitch / controller / program / bend LSB
    data2: int = 0  # velocity / value / bend MSB

    def __post_init__(self) -> None:
        if self.tick < 0:
            raise ValidationError(f"Negative tick {self.tick}")
        if not 0 <= self.channel <= 15:
            raise ValidationError(f"Channel {self.channel} out of range (0-15)")
        for value in (self.data1, self.data2):
            if not 0 <= value <= 127:
                raise ValidationError(
                    f"Data byte {value} out of range (0-127) at tick {self.tick}"
                )

    @property
    def is_note_on(self) -> bool:
        return self.status == NOTE_ON and self.data2 > 0

    @property
    def is_note_off(self) -> bool:
        """Note-off, including the note-on velocity 0 convention."""
        return self.status == NOTE_OFF or (self.status == NOTE_ON and self.data2 == 0)


@dataclass(frozen=True)
class MetaEvent:
    """A meta event: type byte plus raw payload."""

    tick: int
    type_byte: int
    data: bytes = field(default=b"")

    def __post_init__(self) -> None:
        if self.tick < 0:
            raise ValidationError(f"Negative tick {self.tick}")


RawEvent = Union[ChannelEvent, MetaEvent]


@dataclass
class DecodedFile:
    """Decoded file: division plus one event list per track."""

    division: int
    tracks: list[list[RawEvent]] = field(default_factory=list)
    format: int = 1

    def __post_init__(self) -> None:
        if self.division <= 0:
            raise ValidationError(
                f"Division must be a positive ticks-per-quarter value, got {self.division}"
            )


# ---------------------------------------------------------------------------
# Builders (used by tests and by callers that synthesise streams)
# ---------------------------------------------------------------------------

def note_on(tick: int, pitch: int, velocity: int = 100, channel: int = 0) -> ChannelEvent:
    return ChannelEvent(tick=tick, status=NOTE_ON, channel=channel, data1=pitch, data2=velocity)


def note_off(tick: int, pitch: int, channel: int = 0) -> ChannelEvent:
    return ChannelEvent(tick=tick, status=NOTE_OFF, channel=channel, data1=pitch, data2=0)


def tempo_event(tick: int, micros_per_quarter: int) -> MetaEvent:
    """Build a set-tempo meta event with a 24-bit big-endian payload."""
    return MetaEvent(tick, META_SET_TEMPO, micros_per_quarter.to_bytes(3, "big"))


def time_signature_event(tick: int, numerator: int, denominator: int) -> MetaEvent:
    """Build a time-signature meta event (denominator given as its real value)."""
    power = denominator.bit_length() - 1
    return MetaEvent(tick, META_TIME_SIGNATURE, bytes([numerator, power, 24, 8]))
