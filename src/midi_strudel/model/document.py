"""File-level analysis: tempo map, global meta, and per-track data.

``analyze`` makes one pass per track after the tempo map has been fully
built from all tracks, so every track sees the same read-only tempo map.
"""

from __future__ import annotations

import logging
import statistics
from dataclasses import dataclass, field

from midi_strudel.errors import EmptyTrackError, ValidationError
from midi_strudel.model.events import ChannelEvent, DecodedFile, MetaEvent
from midi_strudel.model.meta import (
    ControlChange,
    KeySignature,
    PitchBend,
    ProgramChange,
    TextEvent,
    TimeSignature,
    UnknownMeta,
    classify_channel,
    classify_meta,
    resolve_time_signature,
)
from midi_strudel.model.notes import Note, pair_notes
from midi_strudel.model.tempo import TempoMap

logger = logging.getLogger(__name__)

TIME_UNITS = ("seconds", "ticks")


@dataclass
class TrackData:
    index: int
    name: str = ""
    notes: list[Note] = field(default_factory=list)
    program_changes: list[ProgramChange] = field(default_factory=list)
    control_changes: list[ControlChange] = field(default_factory=list)
    pitch_bends: list[PitchBend] = field(default_factory=list)
    texts: list[TextEvent] = field(default_factory=list)
    unknown: list[UnknownMeta] = field(default_factory=list)

    @property
    def label(self) -> str:
        return self.name or f"Track {self.index}"


@dataclass(frozen=True)
class NoteDurationStats:
    count: int
    shortest_seconds: float
    longest_seconds: float
    mean_seconds: float
    median_seconds: float
    median_slices: float | None = None


@dataclass
class MidiDocument:
    division: int
    tempo_map: TempoMap
    format: int = 1
    time_signatures: list[TimeSignature] = field(default_factory=list)
    key_signatures: list[KeySignature] = field(default_factory=list)
    tracks: list[TrackData] = field(default_factory=list)
    total_ticks: int = 0

    @property
    def duration_seconds(self) -> float:
        return self.tempo_map.ticks_to_seconds(self.total_ticks)

    @property
    def time_signature(self) -> TimeSignature:
        """The single effective time signature (raises if ambiguous)."""
        return resolve_time_signature(self.time_signatures)

    def to_dict(self, time_unit: str = "seconds", include_meta: bool = True) -> dict:
        """JSON-ready view of the document.

        *time_unit* ``"ticks"`` leaves out per-note seconds; *include_meta*
        False leaves out each track's text and unknown meta events.
        """
        if time_unit not in TIME_UNITS:
            raise ValidationError(
                f"Unknown time unit '{time_unit}'; expected one of: {', '.join(TIME_UNITS)}"
            )
        return {
            "file": {
                "format": self.format,
                "division": self.division,
                "total_ticks": self.total_ticks,
                "duration_seconds": round(self.duration_seconds, 6),
            },
            "metadata": {
                "tempo_map": [
                    {
                        "tick": c.tick,
                        "micros_per_quarter": c.micros_per_quarter,
                        "bpm": round(c.bpm, 3),
                    }
                    for c in self.tempo_map
                ],
                "time_signatures": [
                    {"tick": ts.tick, "numerator": ts.numerator, "denominator": ts.denominator}
                    for ts in self.time_signatures
                ],
                "key_signatures": [
                    {
                        "tick": ks.tick,
                        "sharps_flats": ks.sharps_flats,
                        "minor": ks.minor,
                        "key": ks.key_name,
                    }
                    for ks in self.key_signatures
                ],
            },
            "tracks": [_track_to_dict(t, time_unit, include_meta) for t in self.tracks],
        }


def _note_to_dict(note: Note, time_unit: str) -> dict:
    entry = {
        "tick": note.onset_tick,
        "time_seconds": round(note.onset_seconds, 6),
        "channel": note.channel,
        "note": note.pitch,
        "name": note.name,
        "velocity": note.velocity,
        "duration_ticks": note.duration_ticks,
        "duration_seconds": round(note.duration_seconds, 6),
    }
    if time_unit == "ticks":
        del entry["time_seconds"], entry["duration_seconds"]
    return entry


def _track_to_dict(track: TrackData, time_unit: str, include_meta: bool) -> dict:
    notes = sorted(track.notes, key=lambda n: (n.onset_tick, n.pitch))
    out = {
        "index": track.index,
        "name": track.name,
        "program_changes": [
            {"tick": pc.tick, "channel": pc.channel, "program": pc.program}
            for pc in track.program_changes
        ],
        "notes": [_note_to_dict(n, time_unit) for n in notes],
        "control_changes": [
            {"tick": cc.tick, "channel": cc.channel, "controller": cc.controller, "value": cc.value}
            for cc in track.control_changes
        ],
        "pitch_bends": [
            {"tick": pb.tick, "channel": pb.channel, "value": pb.value}
            for pb in track.pitch_bends
        ],
    }
    if include_meta:
        out["meta"] = [
            {"tick": te.tick, "type": te.kind, "text": te.text} for te in track.texts
        ] + [
            {"tick": um.tick, "type": f"unknown_0x{um.type_byte:02x}", "data": um.hex}
            for um in track.unknown
        ]
    return out


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

def analyze(decoded: DecodedFile) -> MidiDocument:
    """Build a :class:`MidiDocument` from a decoded event stream."""
    tempo_map = TempoMap.build(decoded.tracks, decoded.division)
    doc = MidiDocument(
        division=decoded.division,
        tempo_map=tempo_map,
        format=decoded.format,
    )

    for index, events in enumerate(decoded.tracks):
        track = TrackData(index=index)
        for event in events:
            doc.total_ticks = max(doc.total_ticks, event.tick)
            if isinstance(event, MetaEvent):
                record = classify_meta(event)
                if isinstance(record, TimeSignature):
                    doc.time_signatures.append(record)
                elif isinstance(record, KeySignature):
                    doc.key_signatures.append(record)
                elif isinstance(record, TextEvent):
                    if record.kind == "track_name" and not track.name:
                        track.name = record.text
                    track.texts.append(record)
                elif isinstance(record, UnknownMeta):
                    track.unknown.append(record)
            elif isinstance(event, ChannelEvent):
                record = classify_channel(event)
                if isinstance(record, ProgramChange):
                    track.program_changes.append(record)
                elif isinstance(record, ControlChange):
                    track.control_changes.append(record)
                elif isinstance(record, PitchBend):
                    track.pitch_bends.append(record)
        track.notes = pair_notes(events, tempo_map)
        logger.debug("Track %d (%s): %d notes", index, track.label, len(track.notes))
        doc.tracks.append(track)

    doc.time_signatures.sort(key=lambda ts: ts.tick)
    doc.key_signatures.sort(key=lambda ks: ks.tick)
    return doc


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------

def duration_stats(
    notes: list[Note],
    slice_seconds: float | None = None,
) -> NoteDurationStats:
    """Summarise note durations; *slice_seconds* adds the median in grid slices."""
    if not notes:
        raise EmptyTrackError("Cannot compute duration statistics for an empty note list")
    durations = [n.duration_seconds for n in notes]
    median = statistics.median(durations)
    return NoteDurationStats(
        count=len(durations),
        shortest_seconds=min(durations),
        longest_seconds=max(durations),
        mean_seconds=statistics.fmean(durations),
        median_seconds=median,
        median_slices=median / slice_seconds if slice_seconds else None,
    )
