"""Quantization engine: snap a track's notes onto the measure grid.

Two modes:

- **polyphonic** (default): every note is kept at its nearest grid
  position; notes sharing a position form a chord.
- **non-polyphonic**: one note per slice. A note claims a slice only when
  it covers more than half of it; contested slices go to the longer note
  (first writer keeps ties). Equal neighbouring slices are merged.

Both modes give every note at least one slice.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from itertools import groupby
from typing import Sequence

from midi_strudel.errors import ValidationError
from midi_strudel.model.notes import Note
from midi_strudel.quantize.grid import QuantizationGrid
from midi_strudel.render.pattern import (
    ChordToken,
    Measure,
    NoteToken,
    Pattern,
    RestToken,
)

logger = logging.getLogger(__name__)


def _by_onset(notes: Sequence[Note]) -> list[Note]:
    # Pairing yields notes in closing order; stable sort keeps ties in that order.
    return sorted(notes, key=lambda n: n.onset_tick)


def measures_needed(notes: Sequence[Note], grid: QuantizationGrid) -> int:
    """Measures required to hold the latest note onset (0 for no notes)."""
    if not notes:
        return 0
    max_position = max(grid.position(n.onset_seconds) for n in notes)
    return max_position // grid.slices_per_measure + 1


def quantize(
    notes: Sequence[Note],
    grid: QuantizationGrid,
    polyphonic: bool = True,
    total_measures: int | None = None,
) -> Pattern:
    """Quantize *notes* into a :class:`Pattern` of *total_measures* cycles.

    Parameters
    ----------
    notes : sequence of Note
        One track's notes, in any order.
    grid : QuantizationGrid
        Slice layout (quantization level, time signature, tempo).
    polyphonic : bool
        Keep simultaneous notes as chords (True) or one note per slice.
    total_measures : int, optional
        Cycle count shared by all tracks of a file. Derived from the
        latest onset when omitted.

    Returns
    -------
    Pattern
        Empty (no measures) when *notes* is empty.
    """
    if not notes:
        return Pattern(grid.slices_per_measure)

    if total_measures is None:
        total_measures = measures_needed(notes, grid)
    elif total_measures < 1:
        raise ValidationError(f"total_measures must be >= 1, got {total_measures}")

    ordered = _by_onset(notes)
    if polyphonic:
        return _polyphonic(ordered, grid, total_measures)
    return _monophonic(ordered, grid, total_measures)


# ---------------------------------------------------------------------------
# Polyphonic
# ---------------------------------------------------------------------------

def _polyphonic(notes: list[Note], grid: QuantizationGrid, total_measures: int) -> Pattern:
    spm = grid.slices_per_measure
    limit = spm * total_measures
    occupied: dict[int, list[NoteToken]] = defaultdict(list)
    beyond = 0

    for note in notes:
        position = grid.position(note.onset_seconds)
        if position >= limit:
            beyond += 1
            continue
        occupied[position].append(
            NoteToken(note.name, grid.slice_count(note.duration_seconds))
        )

    if beyond:
        logger.debug("%d note(s) start after measure %d and were left out", beyond, total_measures)

    pattern = Pattern(spm)
    for m in range(total_measures):
        start = m * spm
        end = start + spm
        measure = Measure(spm)
        i = start
        while i < end:
            group = occupied.get(i)
            if group is not None and len(group) > 1:
                measure.tokens.append(ChordToken(tuple(group)))
                i += 1
                continue

            following = i + 1
            while following < end and following not in occupied:
                following += 1

            if group is None:
                measure.tokens.append(RestToken(following - i))
                i = following
            else:
                # A single note extends over the empty slices after it.
                span = min(group[0].span, following - i)
                measure.tokens.append(NoteToken(group[0].name, span))
                i += span
        pattern.measures.append(measure)
    return pattern


# ---------------------------------------------------------------------------
# Non-polyphonic
# ---------------------------------------------------------------------------

def _claim(slices: list[Note | None], index: int, note: Note) -> None:
    current = slices[index]
    if current is None or note.duration_seconds > current.duration_seconds:
        slices[index] = note


def _monophonic(notes: list[Note], grid: QuantizationGrid, total_measures: int) -> Pattern:
    spm = grid.slices_per_measure
    size = spm * total_measures
    slice_seconds = grid.slice_seconds
    slices: list[Note | None] = [None] * size

    for note in notes:
        start = note.onset_seconds
        end = start + note.duration_seconds
        first = max(0, math.floor(start / slice_seconds))
        last = min(size, math.ceil(end / slice_seconds))

        has_majority = False
        for index in range(first, last):
            overlap = (
                min(end, (index + 1) * slice_seconds)
                - max(start, index * slice_seconds)
            )
            if overlap > slice_seconds / 2:
                has_majority = True
                _claim(slices, index, note)

        if not has_majority:
            # Too short to cover half a slice: fall back to its nearest slice.
            index = grid.position(start)
            if index < size:
                _claim(slices, index, note)

    pattern = Pattern(spm)
    for m in range(total_measures):
        names = [n.name if n is not None else None for n in slices[m * spm:(m + 1) * spm]]
        measure = Measure(spm)
        for name, run in groupby(names):
            count = len(list(run))
            if name is None:
                measure.tokens.append(RestToken(count))
            else:
                measure.tokens.append(NoteToken(name, count))
        pattern.measures.append(measure)
    return pattern
