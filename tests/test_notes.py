"""Tests for note pairing: note-on / note-off events -> Note records."""

from __future__ import annotations

import pytest

from midi_strudel.errors import ValidationError
from midi_strudel.model.events import (
    NOTE_ON,
    ChannelEvent,
    MetaEvent,
    note_off,
    note_on,
    tempo_event,
)
from midi_strudel.model.notes import Note, PendingOnsets, pair_notes, pending_key
from midi_strudel.model.tempo import TempoChange, TempoMap

PPQN = 480
TEMPO_120 = TempoMap([], PPQN)


def _key(note: Note) -> tuple[int, int]:
    return (note.onset_tick, note.pitch)


def _to_events(notes: list[Note]) -> list[ChannelEvent]:
    """Regenerate an event stream from notes (offs before ons on the same tick)."""
    events: list[tuple[int, int, ChannelEvent]] = []
    for n in notes:
        events.append((n.onset_tick, 1, note_on(n.onset_tick, n.pitch, n.velocity, n.channel)))
        events.append((n.end_tick, 0, note_off(n.end_tick, n.pitch, n.channel)))
    return [e for _, _, e in sorted(events, key=lambda item: (item[0], item[1]))]


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class TestChannelEvent:
    def test_velocity_zero_is_note_off(self):
        event = ChannelEvent(tick=0, status=NOTE_ON, channel=0, data1=60, data2=0)
        assert event.is_note_off
        assert not event.is_note_on

    def test_note_on(self):
        event = note_on(0, 60, velocity=1)
        assert event.is_note_on
        assert not event.is_note_off

    def test_out_of_range_data(self):
        with pytest.raises(ValidationError):
            ChannelEvent(tick=0, status=NOTE_ON, channel=0, data1=128, data2=64)

    def test_out_of_range_channel(self):
        with pytest.raises(ValidationError):
            note_on(0, 60, channel=16)

    def test_negative_tick(self):
        with pytest.raises(ValidationError):
            note_on(-1, 60)


# ---------------------------------------------------------------------------
# PendingOnsets
# ---------------------------------------------------------------------------


class TestPendingOnsets:
    def test_key_layout(self):
        assert pending_key(1, 60) == (1 << 8) | 60

    def test_open_close(self):
        table = PendingOnsets()
        table.open(0, 60, 100, 90)
        assert len(table) == 1
        onset = table.close(0, 60)
        assert (onset.tick, onset.velocity) == (100, 90)
        assert len(table) == 0

    def test_close_missing(self):
        assert PendingOnsets().close(0, 60) is None

    def test_reopen_replaces(self):
        table = PendingOnsets()
        table.open(0, 60, 0, 90)
        table.open(0, 60, 240, 100)
        assert table.replaced == 1
        assert table.close(0, 60).tick == 240


# ---------------------------------------------------------------------------
# pair_notes
# ---------------------------------------------------------------------------


class TestPairNotes:
    def test_basic_pair(self):
        notes = pair_notes([note_on(0, 60, 90), note_off(480, 60)], TEMPO_120)
        assert len(notes) == 1
        n = notes[0]
        assert (n.pitch, n.velocity, n.onset_tick, n.duration_ticks) == (60, 90, 0, 480)
        assert n.onset_seconds == 0.0
        assert n.duration_seconds == pytest.approx(0.5)
        assert n.name == "c4"

    def test_velocity_zero_closes(self):
        events = [
            note_on(0, 64),
            ChannelEvent(tick=240, status=NOTE_ON, channel=0, data1=64, data2=0),
        ]
        notes = pair_notes(events, TEMPO_120)
        assert [(n.pitch, n.duration_ticks) for n in notes] == [(64, 240)]

    def test_zero_duration_note(self):
        events = [
            note_on(100, 60),
            ChannelEvent(tick=100, status=NOTE_ON, channel=0, data1=60, data2=0),
        ]
        notes = pair_notes(events, TEMPO_120)
        assert len(notes) == 1
        assert notes[0].duration_ticks == 0
        assert notes[0].duration_seconds == 0.0

    def test_orphan_note_off_dropped(self):
        assert pair_notes([note_off(100, 60)], TEMPO_120) == []

    def test_unclosed_onset_dropped(self):
        events = [note_on(0, 60), note_on(0, 64), note_off(480, 64)]
        notes = pair_notes(events, TEMPO_120)
        assert [n.pitch for n in notes] == [64]

    def test_retrigger_last_onset_wins(self):
        events = [note_on(0, 60, 90), note_on(240, 60, 100), note_off(480, 60)]
        notes = pair_notes(events, TEMPO_120)
        assert len(notes) == 1
        assert (notes[0].onset_tick, notes[0].velocity, notes[0].duration_ticks) == (240, 100, 240)

    def test_channels_are_separate(self):
        events = [
            note_on(0, 60, channel=0),
            note_on(0, 60, channel=1),
            note_off(240, 60, channel=1),
            note_off(480, 60, channel=0),
        ]
        notes = pair_notes(events, TEMPO_120)
        assert [(n.channel, n.duration_ticks) for n in notes] == [(1, 240), (0, 480)]

    def test_closing_order(self):
        events = [note_on(0, 60), note_on(0, 64), note_off(240, 64), note_off(480, 60)]
        assert [n.pitch for n in pair_notes(events, TEMPO_120)] == [64, 60]

    def test_non_note_events_ignored(self):
        events = [
            MetaEvent(0, 0x03, b"Piano"),
            ChannelEvent(tick=0, status=0xB0, channel=0, data1=7, data2=100),
            note_on(0, 60),
            note_off(480, 60),
        ]
        assert len(pair_notes(events, TEMPO_120)) == 1

    def test_seconds_follow_tempo_map(self):
        tm = TempoMap([TempoChange(0, 500_000), TempoChange(960, 250_000)], PPQN)
        notes = pair_notes([note_on(480, 60), note_off(1440, 60)], tm)
        n = notes[0]
        assert n.onset_seconds == pytest.approx(0.5)
        # 480 ticks at 0.5 s/quarter + 480 ticks at 0.25 s/quarter
        assert n.duration_seconds == pytest.approx(0.75)

    def test_tempo_meta_in_stream_is_ignored(self):
        events = [tempo_event(0, 250_000), note_on(0, 60), note_off(480, 60)]
        # Pairing uses the supplied map, not events in the stream
        assert pair_notes(events, TEMPO_120)[0].duration_seconds == pytest.approx(0.5)

    def test_pairing_is_idempotent(self):
        events = [
            note_on(0, 60), note_on(0, 64), note_on(120, 67),
            note_off(240, 64), note_off(480, 60), note_off(600, 67),
            note_on(600, 60), note_off(900, 60),
        ]
        first = sorted(pair_notes(events, TEMPO_120), key=_key)
        second = sorted(pair_notes(_to_events(first), TEMPO_120), key=_key)
        assert first == second
