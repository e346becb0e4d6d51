"""Tempo map: file-global tempo changes and tick <-> seconds conversion.

Tempo changes are collected from every track, since a set-tempo event
applies to the whole file regardless of which track carries it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from midi_strudel.errors import ValidationError
from midi_strudel.model.events import (
    DEFAULT_MICROS_PER_QUARTER,
    META_SET_TEMPO,
    MetaEvent,
    RawEvent,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TempoChange:
    tick: int
    micros_per_quarter: int

    @property
    def bpm(self) -> float:
        return 60_000_000 / self.micros_per_quarter


def decode_tempo(data: bytes) -> int:
    """Decode a set-tempo payload: 24-bit big-endian microseconds per quarter."""
    if len(data) < 3:
        raise ValidationError(f"Set-tempo payload too short ({len(data)} bytes)")
    return (data[0] << 16) | (data[1] << 8) | data[2]


class TempoMap:
    """Ordered tempo changes plus the file's division (ticks per quarter).

    Entries are sorted by tick with a stable sort, so several changes on the
    same tick keep their encounter order and the last one is the effective
    tempo from that tick on.
    """

    def __init__(self, changes: Iterable[TempoChange], division: int) -> None:
        if division <= 0:
            raise ValidationError(f"Division must be > 0, got {division}")
        ordered = sorted(changes, key=lambda c: c.tick)
        if not ordered:
            ordered = [TempoChange(tick=0, micros_per_quarter=DEFAULT_MICROS_PER_QUARTER)]
        for change in ordered:
            if change.micros_per_quarter <= 0:
                raise ValidationError(
                    f"Tempo at tick {change.tick} must be > 0 microseconds per quarter"
                )
        self._changes: tuple[TempoChange, ...] = tuple(ordered)
        self.division = division

    # -- Construction -------------------------------------------------------

    @classmethod
    def build(cls, tracks: Iterable[Iterable[RawEvent]], division: int) -> TempoMap:
        """Collect set-tempo events from all *tracks* into a tempo map."""
        changes: list[TempoChange] = []
        for events in tracks:
            for event in events:
                if isinstance(event, MetaEvent) and event.type_byte == META_SET_TEMPO:
                    changes.append(TempoChange(event.tick, decode_tempo(event.data)))
        if not changes:
            logger.debug("No tempo events found; using default 120 BPM")
        return cls(changes, division)

    # -- Accessors ----------------------------------------------------------

    @property
    def changes(self) -> tuple[TempoChange, ...]:
        return self._changes

    @property
    def initial_bpm(self) -> float:
        """BPM of the first entry (the tempo quantization grids are built on)."""
        return self._changes[0].bpm

    def bpm_at(self, tick: int) -> float:
        """Effective BPM at *tick* (default tempo before the first change)."""
        micros = DEFAULT_MICROS_PER_QUARTER
        for change in self._changes:
            if change.tick > tick:
                break
            micros = change.micros_per_quarter
        return 60_000_000 / micros

    def __len__(self) -> int:
        return len(self._changes)

    def __iter__(self):
        return iter(self._changes)

    def __repr__(self) -> str:
        return f"TempoMap(division={self.division}, changes={list(self._changes)!r})"

    # -- Conversion ---------------------------------------------------------

    def _segment_seconds(self, ticks: int, micros_per_quarter: int) -> float:
        return (ticks * micros_per_quarter) / (self.division * 1_000_000)

    def ticks_to_seconds(self, tick: int) -> float:
        """Elapsed seconds at absolute *tick*.

        Each completed segment between two tempo changes contributes its
        length at the tempo active at the start of that segment; the
        remainder is measured at the last tempo reached. Ticks before the
        first change use the default tempo.
        """
        if tick <= 0:
            return 0.0

        seconds = 0.0
        current_tick = 0
        current_micros = DEFAULT_MICROS_PER_QUARTER
        for change in self._changes:
            if tick <= change.tick:
                break
            seconds += self._segment_seconds(change.tick - current_tick, current_micros)
            current_tick = change.tick
            current_micros = change.micros_per_quarter

        return seconds + self._segment_seconds(tick - current_tick, current_micros)

    def seconds_to_ticks(self, seconds: float) -> int:
        """Convert *seconds* to the nearest absolute tick."""
        if seconds <= 0:
            return 0

        elapsed = 0.0
        current_tick = 0
        current_micros = DEFAULT_MICROS_PER_QUARTER
        for change in self._changes:
            region = self._segment_seconds(change.tick - current_tick, current_micros)
            if elapsed + region >= seconds:
                break
            elapsed += region
            current_tick = change.tick
            current_micros = change.micros_per_quarter

        ticks_in_region = (seconds - elapsed) * self.division * 1_000_000 / current_micros
        return round(current_tick + ticks_in_region)
