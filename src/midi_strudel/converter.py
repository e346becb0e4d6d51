"""Convert an analysed MIDI document into Strudel source.

The tempo map and the validated time signature are fixed before any
track is quantized; each track is then converted independently against
those shared read-only values.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from midi_strudel.errors import EmptyTrackError, TrackSelectionError
from midi_strudel.lib.gm_instruments import program_to_sound
from midi_strudel.model.document import MidiDocument, TrackData, duration_stats
from midi_strudel.quantize.engine import measures_needed, quantize
from midi_strudel.quantize.grid import QuantizationGrid, default_quantization
from midi_strudel.render.template import (
    RenderContext,
    TrackPattern,
    render_multitrack_file,
    render_track_file,
)
from midi_strudel.serialization.deserialize import load_document

logger = logging.getLogger(__name__)


@dataclass
class ConversionOptions:
    tempo: float | None = None          # BPM override
    track_index: int = 0
    quantization: int | None = None     # None -> default for the time signature
    polyphony: bool = True
    all_tracks: bool = False
    room: float = 0.2
    sounds: dict[int, str] = field(default_factory=dict)
    converted: datetime.date | None = None

    @classmethod
    def from_config(cls, config: Mapping[str, Any], **overrides: Any) -> ConversionOptions:
        """Build options from a config dict; non-None *overrides* win."""
        values: dict[str, Any] = {
            "quantization": config.get("quantization"),
            "polyphony": bool(config.get("polyphony", True)),
            "room": float(config.get("room", 0.2)),
            "sounds": dict(config.get("sounds") or {}),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def _tempo(doc: MidiDocument, options: ConversionOptions) -> float:
    if options.tempo is not None:
        return float(options.tempo)
    return doc.tempo_map.initial_bpm


def _grid(doc: MidiDocument, options: ConversionOptions) -> QuantizationGrid:
    sig = doc.time_signature
    quantization = options.quantization
    if quantization is None:
        quantization = default_quantization(sig.numerator, sig.denominator)
    grid = QuantizationGrid(
        quantization=quantization,
        numerator=sig.numerator,
        denominator=sig.denominator,
        bpm=_tempo(doc, options),
    )
    logger.debug(
        "Grid: %s at %.3f BPM, quantization %d, %d slices/measure, %.4fs per slice",
        sig, grid.bpm, grid.quantization, grid.slices_per_measure, grid.slice_seconds,
    )
    return grid


def _context(
    source: str,
    grid: QuantizationGrid,
    options: ConversionOptions,
) -> RenderContext:
    return RenderContext(
        source=source,
        bpm=grid.bpm,
        numerator=grid.numerator,
        denominator=grid.denominator,
        quantization=grid.quantization,
        slices_per_measure=grid.slices_per_measure,
        quantization_source="override" if options.quantization is not None else "default",
        polyphonic=options.polyphony,
        room=options.room,
        converted=options.converted,
    )


def _sound(track: TrackData, options: ConversionOptions) -> str:
    if not track.program_changes:
        return program_to_sound(None)
    first = track.program_changes[0]
    return program_to_sound(first.program, first.channel, options.sounds)


def _track_pattern(
    track: TrackData,
    grid: QuantizationGrid,
    options: ConversionOptions,
    total_measures: int,
) -> TrackPattern:
    pattern = quantize(
        track.notes,
        grid,
        polyphonic=options.polyphony,
        total_measures=total_measures,
    )
    return TrackPattern(
        index=track.index,
        name=track.name,
        sound=_sound(track, options),
        pattern=pattern,
        stats=duration_stats(track.notes, grid.slice_seconds),
    )


def select_track(doc: MidiDocument, index: int) -> TrackData:
    """Return track *index*, rejecting out-of-range indices and empty tracks."""
    if index < 0 or index >= len(doc.tracks):
        raise TrackSelectionError(index, len(doc.tracks))
    track = doc.tracks[index]
    if not track.notes:
        raise EmptyTrackError(f"Track {index} ({track.name}) has no note events.")
    return track


def convert_document(
    doc: MidiDocument,
    source: str,
    options: ConversionOptions | None = None,
) -> str:
    """Convert *doc* to Strudel source; *source* is the name shown in the header."""
    options = options or ConversionOptions()
    if options.all_tracks:
        return _convert_all(doc, source, options)
    return _convert_single(doc, source, options)


def _convert_single(doc: MidiDocument, source: str, options: ConversionOptions) -> str:
    grid = _grid(doc, options)
    track = select_track(doc, options.track_index)
    total = measures_needed(track.notes, grid)
    logger.debug("Track %d needs %d measure(s)", track.index, total)
    return render_track_file(
        _context(source, grid, options),
        _track_pattern(track, grid, options, total),
    )


def _convert_all(doc: MidiDocument, source: str, options: ConversionOptions) -> str:
    grid = _grid(doc, options)

    candidates = [t for t in doc.tracks if t.notes]
    if not candidates:
        raise EmptyTrackError(
            f"No tracks with note events found. File has {len(doc.tracks)} "
            f"track(s) but all are empty."
        )

    # Every track gets the same cycle count so the stacked patterns stay aligned.
    total = max(measures_needed(t.notes, grid) for t in candidates)
    logger.debug("%d track(s) with notes, %d measure(s) each", len(candidates), total)

    patterns = [_track_pattern(t, grid, options, total) for t in candidates]
    return render_multitrack_file(_context(source, grid, options), patterns, len(doc.tracks))


def convert_file(path: str | Path, options: ConversionOptions | None = None) -> str:
    """Read *path* (a MIDI file or a JSON dump from ``parse``) and convert it."""
    path = Path(path)
    doc = load_document(path)
    return convert_document(doc, path.name, options)
