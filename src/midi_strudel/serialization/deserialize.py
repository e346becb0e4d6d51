"""Read input files: .mid with mido, or a JSON document written by ``parse``.

Usage::

    from midi_strudel.serialization.deserialize import load_document, load_midi

    decoded = load_midi("/path/to/file.mid")
    decoded = decode_midi_file(mido.MidiFile(...))
    doc = load_document("/path/to/file.json")  # or .mid
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import mido

from midi_strudel.errors import SerializationError, ValidationError
from midi_strudel.model.document import MidiDocument, TrackData, analyze
from midi_strudel.model.events import ChannelEvent, DecodedFile, MetaEvent, RawEvent
from midi_strudel.model.meta import (
    ControlChange,
    KeySignature,
    PitchBend,
    ProgramChange,
    TextEvent,
    TimeSignature,
    UnknownMeta,
)
from midi_strudel.model.notes import Note
from midi_strudel.model.tempo import TempoChange, TempoMap

logger = logging.getLogger(__name__)


def _meta_payload(msg: mido.MetaMessage) -> tuple[int, bytes]:
    """Split a meta message's encoded bytes into (type byte, payload)."""
    raw = msg.bytes()  # 0xFF, type, variable-length size, payload
    i = 2
    while raw[i] & 0x80:
        i += 1
    return raw[1], bytes(raw[i + 1:])


def _channel_event(tick: int, msg: mido.Message) -> ChannelEvent:
    raw = msg.bytes()
    status = raw[0]
    return ChannelEvent(
        tick=tick,
        status=status & 0xF0,
        channel=status & 0x0F,
        data1=raw[1] if len(raw) > 1 else 0,
        data2=raw[2] if len(raw) > 2 else 0,
    )


def decode_track(track: mido.MidiTrack) -> list[RawEvent]:
    """Walk a track converting delta times to absolute-tick events."""
    events: list[RawEvent] = []
    abs_tick = 0
    for msg in track:
        abs_tick += msg.time
        if msg.is_meta:
            type_byte, data = _meta_payload(msg)
            events.append(MetaEvent(abs_tick, type_byte, data))
        elif msg.type == "sysex":
            continue
        elif hasattr(msg, "channel"):
            events.append(_channel_event(abs_tick, msg))
    return events


def decode_midi_file(mid: mido.MidiFile) -> DecodedFile:
    """Convert an in-memory :class:`mido.MidiFile` to a :class:`DecodedFile`."""
    division = mid.ticks_per_beat
    if division is None or division <= 0 or division & 0x8000:
        raise ValidationError(
            f"Unsupported division {division}: only ticks-per-quarter timing is supported"
        )
    tracks = [decode_track(track) for track in mid.tracks]
    logger.debug(
        "Decoded format %d file: division=%d, %d track(s)",
        mid.type, division, len(tracks),
    )
    return DecodedFile(division=division, tracks=tracks, format=mid.type)


def load_midi(path: str) -> DecodedFile:
    """Load a ``.mid`` file from *path*."""
    try:
        mid = mido.MidiFile(filename=path)
    except (OSError, EOFError, ValueError, KeyError, mido.KeySignatureError) as exc:
        raise SerializationError(f"Failed to read MIDI file '{path}': {exc}") from exc
    return decode_midi_file(mid)


# ---------------------------------------------------------------------------
# JSON documents
# ---------------------------------------------------------------------------

def _note_from_dict(entry: dict[str, Any], tempo_map: TempoMap) -> Note:
    # Seconds are recomputed from ticks so edited or tick-only dumps stay consistent.
    pitch = int(entry["note"])
    if not 0 <= pitch <= 127:
        raise ValidationError(f"Note {pitch} at tick {entry['tick']} out of range (0-127)")
    tick = int(entry["tick"])
    duration = int(entry["duration_ticks"])
    if tick < 0 or duration < 0:
        raise ValidationError(f"Note at tick {tick} has a negative position or duration")
    onset_seconds = tempo_map.ticks_to_seconds(tick)
    return Note(
        pitch=pitch,
        velocity=int(entry.get("velocity", 100)),
        channel=int(entry.get("channel", 0)),
        onset_tick=tick,
        duration_ticks=duration,
        onset_seconds=onset_seconds,
        duration_seconds=tempo_map.ticks_to_seconds(tick + duration) - onset_seconds,
    )


def _track_from_dict(entry: dict[str, Any], tempo_map: TempoMap) -> TrackData:
    track = TrackData(index=int(entry["index"]), name=str(entry.get("name") or ""))
    track.notes = [_note_from_dict(n, tempo_map) for n in entry.get("notes", [])]
    track.program_changes = [
        ProgramChange(int(pc["tick"]), int(pc["channel"]), int(pc["program"]))
        for pc in entry.get("program_changes", [])
    ]
    track.control_changes = [
        ControlChange(int(cc["tick"]), int(cc["channel"]), int(cc["controller"]), int(cc["value"]))
        for cc in entry.get("control_changes", [])
    ]
    track.pitch_bends = [
        PitchBend(int(pb["tick"]), int(pb["channel"]), int(pb["value"]))
        for pb in entry.get("pitch_bends", [])
    ]
    for meta in entry.get("meta", []):
        kind = str(meta["type"])
        if kind.startswith("unknown_0x"):
            track.unknown.append(UnknownMeta(int(meta["tick"]), int(kind[10:], 16), meta["data"]))
        else:
            track.texts.append(TextEvent(int(meta["tick"]), kind, str(meta["text"])))
    return track


def _document_from_dict(data: dict[str, Any]) -> MidiDocument:
    file_info = data["file"]
    metadata = data.get("metadata", {})
    division = int(file_info["division"])
    tempo_map = TempoMap(
        [
            TempoChange(int(t["tick"]), int(t["micros_per_quarter"]))
            for t in metadata.get("tempo_map", [])
        ],
        division,
    )
    doc = MidiDocument(
        division=division,
        tempo_map=tempo_map,
        format=int(file_info.get("format", 1)),
        time_signatures=sorted(
            (
                TimeSignature(int(ts["tick"]), int(ts["numerator"]), int(ts["denominator"]))
                for ts in metadata.get("time_signatures", [])
            ),
            key=lambda ts: ts.tick,
        ),
        key_signatures=[
            KeySignature(int(ks["tick"]), int(ks["sharps_flats"]), bool(ks["minor"]))
            for ks in metadata.get("key_signatures", [])
        ],
        tracks=[_track_from_dict(t, tempo_map) for t in data["tracks"]],
    )
    last_note = max((n.end_tick for t in doc.tracks for n in t.notes), default=0)
    doc.total_ticks = max(int(file_info.get("total_ticks", 0)), last_note)
    return doc


def document_from_json(text: str) -> MidiDocument:
    """Rebuild a :class:`MidiDocument` from JSON written by ``document_to_json``.

    Both time units are accepted: note timing is taken from ticks and the
    tempo map, so per-note seconds in the input are ignored.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SerializationError(f"Invalid JSON document: {exc}") from exc
    if not isinstance(data, dict):
        raise SerializationError("JSON document must be an object")
    try:
        doc = _document_from_dict(data)
    except ValidationError:
        raise
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise SerializationError(f"Malformed JSON document: missing or invalid field {exc}") from exc
    logger.debug("Loaded JSON document: %d track(s)", len(doc.tracks))
    return doc


def load_document(path: str | Path) -> MidiDocument:
    """Load and analyse *path*: ``.json`` dumps are read back, anything else as MIDI."""
    path = Path(path)
    if path.suffix.lower() != ".json":
        return analyze(load_midi(str(path)))
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SerializationError(f"Failed to read JSON file '{path}': {exc}") from exc
    return document_from_json(text)
