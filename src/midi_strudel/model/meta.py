"""Classification of non-pitch events into typed records.

Tempo events are collected by the tempo map and end-of-track markers carry
no information, so both classify to ``None``. Meta types that are not
recognised become :class:`UnknownMeta` records holding a hex dump of the
payload instead of being dropped.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

import pretty_midi

from midi_strudel.errors import AmbiguousTimeSignatureError, ValidationError
from midi_strudel.model.events import (
    CONTROL_CHANGE,
    META_COPYRIGHT,
    META_CUE_POINT,
    META_END_OF_TRACK,
    META_INSTRUMENT_NAME,
    META_KEY_SIGNATURE,
    META_LYRIC,
    META_MARKER,
    META_SET_TEMPO,
    META_TEXT,
    META_TIME_SIGNATURE,
    META_TRACK_NAME,
    PITCH_BEND,
    PROGRAM_CHANGE,
    ChannelEvent,
    MetaEvent,
)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TimeSignature:
    tick: int
    numerator: int
    denominator: int  # actual value (4, not power-of-2)
    clocks_per_click: int = 24
    notated_32nd_per_beat: int = 8

    def __str__(self) -> str:
        return f"{self.numerator}/{self.denominator}"


@dataclass(frozen=True)
class KeySignature:
    tick: int
    sharps_flats: int  # -7 (7 flats) .. 7 (7 sharps)
    minor: bool

    @property
    def key_number(self) -> int:
        """pretty_midi key number: 0-11 major, 12-23 minor, C-based."""
        tonic = (self.sharps_flats * 7) % 12
        if self.minor:
            return (tonic + 9) % 12 + 12
        return tonic

    @property
    def key_name(self) -> str:
        """Human key name such as ``"D Major"`` or ``"A minor"``."""
        return pretty_midi.key_number_to_key_name(self.key_number)


@dataclass(frozen=True)
class TextEvent:
    tick: int
    kind: str  # text, copyright, track_name, instrument_name, lyric, marker, cue_point
    text: str


@dataclass(frozen=True)
class UnknownMeta:
    tick: int
    type_byte: int
    hex: str


@dataclass(frozen=True)
class ControlChange:
    tick: int
    channel: int
    controller: int  # 0-127
    value: int  # 0-127


@dataclass(frozen=True)
class ProgramChange:
    tick: int
    channel: int
    program: int  # 0-127


@dataclass(frozen=True)
class PitchBend:
    tick: int
    channel: int
    value: int  # -8192 to 8191


MetaRecord = Union[TimeSignature, KeySignature, TextEvent, UnknownMeta]
ControlRecord = Union[ControlChange, ProgramChange, PitchBend]

_TEXT_KINDS: dict[int, str] = {
    META_TEXT: "text",
    META_COPYRIGHT: "copyright",
    META_TRACK_NAME: "track_name",
    META_INSTRUMENT_NAME: "instrument_name",
    META_LYRIC: "lyric",
    META_MARKER: "marker",
    META_CUE_POINT: "cue_point",
}

DEFAULT_TIME_SIGNATURE = TimeSignature(tick=0, numerator=4, denominator=4)


# ---------------------------------------------------------------------------
# Decoders
# ---------------------------------------------------------------------------

def decode_time_signature(tick: int, data: bytes) -> TimeSignature:
    """Numerator is literal; the denominator byte is a power of two."""
    if len(data) < 2:
        raise ValidationError(
            f"Time signature payload too short ({len(data)} bytes) at tick {tick}"
        )
    clocks = data[2] if len(data) > 2 else 24
    notated = data[3] if len(data) > 3 else 8
    return TimeSignature(
        tick=tick,
        numerator=data[0],
        denominator=1 << data[1],
        clocks_per_click=clocks,
        notated_32nd_per_beat=notated,
    )


def decode_key_signature(tick: int, data: bytes) -> KeySignature:
    """Signed sharps/flats count followed by a major (0) / minor (1) flag."""
    if len(data) < 2:
        raise ValidationError(
            f"Key signature payload too short ({len(data)} bytes) at tick {tick}"
        )
    sharps_flats = int.from_bytes(data[0:1], "big", signed=True)
    return KeySignature(tick=tick, sharps_flats=sharps_flats, minor=data[1] == 1)


def classify_meta(event: MetaEvent) -> MetaRecord | None:
    """Turn a meta event into a typed record."""
    type_byte = event.type_byte
    if type_byte in (META_SET_TEMPO, META_END_OF_TRACK):
        return None
    if type_byte == META_TIME_SIGNATURE:
        return decode_time_signature(event.tick, event.data)
    if type_byte == META_KEY_SIGNATURE:
        return decode_key_signature(event.tick, event.data)
    kind = _TEXT_KINDS.get(type_byte)
    if kind is not None:
        return TextEvent(event.tick, kind, event.data.decode("latin-1"))
    return UnknownMeta(event.tick, type_byte, event.data.hex())


def classify_channel(event: ChannelEvent) -> ControlRecord | None:
    """Turn a control-type channel event into a record (notes give None)."""
    if event.status == CONTROL_CHANGE:
        return ControlChange(event.tick, event.channel, event.data1, event.data2)
    if event.status == PROGRAM_CHANGE:
        return ProgramChange(event.tick, event.channel, event.data1)
    if event.status == PITCH_BEND:
        return PitchBend(event.tick, event.channel, ((event.data2 << 7) | event.data1) - 8192)
    return None


# ---------------------------------------------------------------------------
# Time signature validation
# ---------------------------------------------------------------------------

def resolve_time_signature(signatures: list[TimeSignature]) -> TimeSignature:
    """Return the file's single effective time signature.

    No time signature means 4/4. Events that repeat the same signature on
    the same tick (as happens when several tracks carry a copy) count once;
    anything more is rejected.
    """
    if not signatures:
        return DEFAULT_TIME_SIGNATURE

    distinct: list[TimeSignature] = []
    seen: set[tuple[int, int, int]] = set()
    for sig in sorted(signatures, key=lambda s: s.tick):
        key = (sig.tick, sig.numerator, sig.denominator)
        if key not in seen:
            seen.add(key)
            distinct.append(sig)

    if len(distinct) > 1:
        raise AmbiguousTimeSignatureError([s.tick for s in distinct])
    return distinct[0]
