"""Tests for decoding mido files and serializing analysed documents."""

from __future__ import annotations

import json

import mido
import pytest

from midi_strudel.errors import EmptyTrackError, SerializationError, ValidationError
from midi_strudel.model.document import analyze, duration_stats
from midi_strudel.model.events import (
    META_SET_TEMPO,
    META_TRACK_NAME,
    NOTE_ON,
    ChannelEvent,
    DecodedFile,
    MetaEvent,
)
from midi_strudel.serialization.deserialize import (
    decode_midi_file,
    decode_track,
    document_from_json,
    load_document,
    load_midi,
)
from midi_strudel.serialization.serialize import document_to_json


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


class TestDecodeTrack:
    def test_absolute_ticks(self, build_midi):
        mid = build_midi([[
            (0, mido.Message("note_on", note=60, velocity=100)),
            (480, mido.Message("note_off", note=60, velocity=0)),
            (960, mido.Message("note_on", note=62, velocity=90)),
        ]])
        events = decode_track(mid.tracks[0])
        assert [e.tick for e in events] == [0, 480, 960, 960]  # + end_of_track

    def test_meta_payload(self, build_midi):
        mid = build_midi([[
            (0, mido.MetaMessage("set_tempo", tempo=500_000)),
            (0, mido.MetaMessage("track_name", name="Lead")),
        ]])
        events = decode_track(mid.tracks[0])
        assert events[0] == MetaEvent(0, META_SET_TEMPO, b"\x07\xa1\x20")
        assert events[1] == MetaEvent(0, META_TRACK_NAME, b"Lead")

    def test_note_on_velocity_zero_kept_raw(self, build_midi):
        mid = build_midi([[(10, mido.Message("note_on", note=60, velocity=0, channel=3))]])
        event = decode_track(mid.tracks[0])[0]
        assert event == ChannelEvent(tick=10, status=NOTE_ON, channel=3, data1=60, data2=0)
        assert event.is_note_off

    def test_pitchwheel_bytes(self, build_midi):
        mid = build_midi([[(0, mido.Message("pitchwheel", pitch=0))]])
        event = decode_track(mid.tracks[0])[0]
        assert (event.status, event.data1, event.data2) == (0xE0, 0, 64)

    def test_sysex_skipped(self, build_midi):
        mid = build_midi([[(0, mido.Message("sysex", data=[1, 2, 3]))]])
        events = decode_track(mid.tracks[0])
        assert all(not isinstance(e, ChannelEvent) for e in events)
        assert len(events) == 1  # end_of_track


class TestDecodeMidiFile:
    def test_division_and_tracks(self, scale_midi):
        decoded = decode_midi_file(scale_midi)
        assert decoded.division == 480
        assert decoded.format == 1
        assert len(decoded.tracks) == 1

    def test_invalid_division(self):
        with pytest.raises(ValidationError):
            DecodedFile(division=0)

    def test_load_roundtrip(self, scale_midi, write_midi):
        decoded = load_midi(str(write_midi(scale_midi)))
        assert len(analyze(decoded).tracks[0].notes) == 4

    def test_load_garbage(self, tmp_path):
        path = tmp_path / "bad.mid"
        path.write_bytes(b"definitely not midi")
        with pytest.raises(SerializationError):
            load_midi(str(path))

    def test_load_missing(self, tmp_path):
        with pytest.raises(SerializationError):
            load_midi(str(tmp_path / "missing.mid"))

    def test_load_invalid_key_signature(self, write_raw_midi):
        # ten sharps: mido rejects the key while reading
        path = write_raw_midi(bytes([0x00, 0xFF, 0x59, 0x02, 0x0A, 0x00, 0x00, 0xFF, 0x2F, 0x00]))
        with pytest.raises(SerializationError):
            load_midi(str(path))


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------


class TestAnalyze:
    def test_tempo_from_other_track(self, build_midi, quarters):
        mid = build_midi([
            quarters([60]),
            [(0, mido.MetaMessage("set_tempo", tempo=250_000))],
        ])
        doc = analyze(decode_midi_file(mid))
        note = doc.tracks[0].notes[0]
        assert note.duration_seconds == pytest.approx(0.25)

    def test_track_metadata(self, build_midi, quarters):
        mid = build_midi([
            [
                (0, mido.MetaMessage("track_name", name="Strings")),
                (0, mido.MetaMessage("track_name", name="Ignored")),
                (0, mido.MetaMessage("marker", text="Intro")),
                (0, mido.MetaMessage("sequencer_specific", data=(0, 1))),
                (0, mido.Message("program_change", program=48)),
                (0, mido.Message("control_change", control=7, value=100)),
                (240, mido.Message("pitchwheel", pitch=4096)),
            ] + quarters([60, 64]),
        ])
        track = analyze(decode_midi_file(mid)).tracks[0]
        assert track.name == "Strings"
        assert track.label == "Strings"
        assert [t.kind for t in track.texts] == ["track_name", "track_name", "marker"]
        assert track.unknown[0].hex == "0001"
        assert track.program_changes[0].program == 48
        assert track.control_changes[0].controller == 7
        assert track.pitch_bends[0].value == 4096
        assert len(track.notes) == 2

    def test_unnamed_label(self, build_midi, quarters):
        doc = analyze(decode_midi_file(build_midi([quarters([60])])))
        assert doc.tracks[0].label == "Track 0"

    def test_signatures_and_length(self, build_midi, quarters):
        mid = build_midi([
            [
                (0, mido.MetaMessage("time_signature", numerator=6, denominator=8)),
                (0, mido.MetaMessage("key_signature", key="D")),
            ],
            quarters([60, 62, 64]),
        ])
        doc = analyze(decode_midi_file(mid))
        assert str(doc.time_signature) == "6/8"
        assert doc.key_signatures[0].key_name == "D Major"
        assert doc.total_ticks == 1440
        assert doc.duration_seconds == pytest.approx(1.5)


class TestDurationStats:
    def test_summary(self, build_midi):
        mid = build_midi([[
            (0, mido.Message("note_on", note=60, velocity=100)),
            (240, mido.Message("note_off", note=60)),
            (240, mido.Message("note_on", note=62, velocity=100)),
            (720, mido.Message("note_off", note=62)),
            (720, mido.Message("note_on", note=64, velocity=100)),
            (1680, mido.Message("note_off", note=64)),
        ]])
        notes = analyze(decode_midi_file(mid)).tracks[0].notes
        stats = duration_stats(notes, slice_seconds=0.125)
        assert stats.count == 3
        assert stats.shortest_seconds == pytest.approx(0.25)
        assert stats.longest_seconds == pytest.approx(1.0)
        assert stats.median_seconds == pytest.approx(0.5)
        assert stats.median_slices == pytest.approx(4.0)

    def test_empty(self):
        with pytest.raises(EmptyTrackError):
            duration_stats([])


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------


class TestDocumentToJson:
    def test_structure(self, scale_midi):
        doc = analyze(decode_midi_file(scale_midi))
        data = json.loads(document_to_json(doc))
        assert set(data) == {"file", "metadata", "tracks"}
        assert data["metadata"]["tempo_map"] == [
            {"tick": 0, "micros_per_quarter": 500_000, "bpm": 120.0}
        ]
        assert data["metadata"]["time_signatures"] == [
            {"tick": 0, "numerator": 4, "denominator": 4}
        ]
        first = data["tracks"][0]["notes"][0]
        assert first == {
            "tick": 0,
            "time_seconds": 0.0,
            "channel": 0,
            "note": 60,
            "name": "c4",
            "velocity": 100,
            "duration_ticks": 480,
            "duration_seconds": 0.5,
        }

    def test_unknown_meta_listed(self, build_midi):
        mid = build_midi([[(0, mido.MetaMessage("sequencer_specific", data=(0x7D,)))]])
        data = json.loads(document_to_json(analyze(decode_midi_file(mid))))
        assert data["tracks"][0]["meta"] == [{"tick": 0, "type": "unknown_0x7f", "data": "7d"}]

    def test_ticks_only(self, scale_midi):
        doc = analyze(decode_midi_file(scale_midi))
        data = json.loads(document_to_json(doc, time_unit="ticks"))
        first = data["tracks"][0]["notes"][0]
        assert "time_seconds" not in first
        assert "duration_seconds" not in first
        assert first["duration_ticks"] == 480

    def test_without_meta(self, scale_midi):
        doc = analyze(decode_midi_file(scale_midi))
        data = json.loads(document_to_json(doc, include_meta=False))
        assert "meta" not in data["tracks"][0]
        assert data["tracks"][0]["name"] == "Piano"

    def test_unknown_time_unit(self, scale_midi):
        doc = analyze(decode_midi_file(scale_midi))
        with pytest.raises(ValidationError):
            document_to_json(doc, time_unit="beats")


class TestDocumentFromJson:
    def test_rebuilds_document(self, build_midi, quarters):
        mid = build_midi([
            [
                (0, mido.MetaMessage("set_tempo", tempo=600_000)),
                (0, mido.MetaMessage("time_signature", numerator=3, denominator=4)),
                (0, mido.MetaMessage("key_signature", key="Em")),
                (0, mido.MetaMessage("track_name", name="Lead")),
                (0, mido.Message("program_change", program=24, channel=2)),
            ] + quarters([64, 67], channel=2),
        ])
        original = analyze(decode_midi_file(mid))
        doc = document_from_json(document_to_json(original))
        assert doc.division == 480
        assert doc.total_ticks == original.total_ticks
        assert doc.tempo_map.bpm_at(0) == pytest.approx(100.0)
        assert doc.time_signature.numerator == 3
        assert doc.key_signatures[0].key_name == "E minor"
        track = doc.tracks[0]
        assert track.name == "Lead"
        assert track.program_changes[0].program == 24
        assert [(n.pitch, n.channel, n.onset_tick, n.duration_ticks) for n in track.notes] == [
            (64, 2, 0, 480),
            (67, 2, 480, 480),
        ]
        assert track.notes[1].onset_seconds == pytest.approx(0.6)

    def test_ticks_only_dump_recomputes_seconds(self, scale_midi):
        doc = document_from_json(
            document_to_json(analyze(decode_midi_file(scale_midi)), time_unit="ticks")
        )
        second = doc.tracks[0].notes[1]
        assert second.onset_seconds == pytest.approx(0.5)
        assert second.duration_seconds == pytest.approx(0.5)

    def test_unknown_meta_kept(self, build_midi):
        mid = build_midi([[(0, mido.MetaMessage("sequencer_specific", data=(0x7D,)))]])
        doc = document_from_json(document_to_json(analyze(decode_midi_file(mid))))
        unknown = doc.tracks[0].unknown[0]
        assert (unknown.type_byte, unknown.hex) == (0x7F, "7d")

    def test_invalid_json(self):
        with pytest.raises(SerializationError):
            document_from_json("{not json")

    def test_not_an_object(self):
        with pytest.raises(SerializationError):
            document_from_json("[1, 2, 3]")

    def test_missing_file_section(self):
        with pytest.raises(SerializationError):
            document_from_json(json.dumps({"metadata": {}, "tracks": []}))

    def test_note_out_of_range(self, scale_midi):
        data = json.loads(document_to_json(analyze(decode_midi_file(scale_midi))))
        data["tracks"][0]["notes"][0]["note"] = 128
        with pytest.raises(ValidationError):
            document_from_json(json.dumps(data))

    def test_load_document_dispatch(self, scale_midi, write_midi, tmp_path):
        midi_path = write_midi(scale_midi)
        json_path = tmp_path / "song.json"
        json_path.write_text(document_to_json(load_document(midi_path)), encoding="utf-8")
        assert [n.name for n in load_document(json_path).tracks[0].notes] == ["c4", "d4", "e4", "f4"]
