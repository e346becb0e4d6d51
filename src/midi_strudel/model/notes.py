"""Note pairing: turn note-on / note-off events into Note records.

Pending onsets are kept in an explicit table keyed by
``(channel << 8) | pitch``. A second note-on for a key that is still
sounding replaces the pending onset (last onset wins). Note-offs without a
pending onset, and onsets still pending at the end of the track, are
dropped without error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from midi_strudel.model.events import ChannelEvent, RawEvent
from midi_strudel.model.tempo import TempoMap
from midi_strudel.parser.pitch import note_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Note:
    pitch: int              # 0-127
    velocity: int           # 1-127
    channel: int            # 0-15
    onset_tick: int
    duration_ticks: int
    onset_seconds: float
    duration_seconds: float

    @property
    def name(self) -> str:
        """Lowercase pitch name, e.g. ``"c4"``."""
        return note_name(self.pitch)

    @property
    def end_tick(self) -> int:
        return self.onset_tick + self.duration_ticks


@dataclass(frozen=True)
class PendingOnset:
    tick: int
    velocity: int


def pending_key(channel: int, pitch: int) -> int:
    return (channel << 8) | pitch


class PendingOnsets:
    """Open note-ons waiting for their note-off, keyed by channel and pitch."""

    def __init__(self) -> None:
        self._table: dict[int, PendingOnset] = {}
        self.replaced = 0

    def open(self, channel: int, pitch: int, tick: int, velocity: int) -> None:
        """Record an onset; an existing onset for the same key is discarded."""
        key = pending_key(channel, pitch)
        if key in self._table:
            self.replaced += 1
        self._table[key] = PendingOnset(tick, velocity)

    def close(self, channel: int, pitch: int) -> PendingOnset | None:
        """Remove and return the onset for this key, or None if there is none."""
        return self._table.pop(pending_key(channel, pitch), None)

    def __len__(self) -> int:
        return len(self._table)


def pair_notes(events: Iterable[RawEvent], tempo_map: TempoMap) -> list[Note]:
    """Pair note-on / note-off events from one track into Notes.

    Notes are returned in the order their closing event is encountered,
    not by onset. Callers that need onset order must sort.
    """
    pending = PendingOnsets()
    notes: list[Note] = []
    orphan_offs = 0

    for event in events:
        if not isinstance(event, ChannelEvent):
            continue
        if event.is_note_on:
            pending.open(event.channel, event.data1, event.tick, event.data2)
        elif event.is_note_off:
            onset = pending.close(event.channel, event.data1)
            if onset is None:
                orphan_offs += 1
                continue
            onset_seconds = tempo_map.ticks_to_seconds(onset.tick)
            off_seconds = tempo_map.ticks_to_seconds(event.tick)
            notes.append(Note(
                pitch=event.data1,
                velocity=onset.velocity,
                channel=event.channel,
                onset_tick=onset.tick,
                duration_ticks=event.tick - onset.tick,
                onset_seconds=onset_seconds,
                duration_seconds=off_seconds - onset_seconds,
            ))

    if orphan_offs or pending.replaced or len(pending):
        logger.debug(
            "Dropped unpaired events: %d note-off(s) without onset, "
            "%d retriggered onset(s), %d unclosed onset(s)",
            orphan_offs, pending.replaced, len(pending),
        )
    return notes
