"""Strudel source file templates for converted tracks."""

from __future__ import annotations

import datetime
from dataclasses import dataclass

from midi_strudel.model.document import NoteDurationStats
from midi_strudel.render.pattern import Pattern

_GRID_MEANINGS: dict[int, str] = {
    6: "6 = quarter-note triplets, @3 = half note, @6 = whole note",
    8: "8 = eighth notes, @2 = quarter note, @4 = half note",
    12: "12 = triplet eighths, @3 = quarter note, @6 = half note",
    16: "16 = sixteenth notes, @4 = quarter note, @8 = half note",
    24: "24 = triplet sixteenths, @6 = quarter note, @12 = half note",
    32: "32 = thirty-second notes, @8 = quarter note, @16 = half note",
}


@dataclass(frozen=True)
class RenderContext:
    """File-wide values shown in the header and used for setcpm."""

    source: str
    bpm: float
    numerator: int
    denominator: int
    quantization: int
    slices_per_measure: int
    quantization_source: str = "default"  # or "override"
    polyphonic: bool = True
    room: float = 0.2
    converted: datetime.date | None = None

    @property
    def beats_per_cycle(self) -> int:
        return max(1, self.numerator * 4 // self.denominator)


@dataclass(frozen=True)
class TrackPattern:
    index: int
    name: str
    sound: str
    pattern: Pattern
    stats: NoteDurationStats | None = None

    @property
    def variable(self) -> str:
        return f"track_{self.index}"


def grid_meaning(quantization: int, slices_per_measure: int) -> str:
    """Describe what one slice and common ``@N`` lengths mean."""
    meaning = _GRID_MEANINGS.get(quantization)
    if meaning is not None:
        return meaning
    return (
        f"{slices_per_measure} slices per measure, "
        f"@{quantization // 4} = quarter note, @{quantization // 2} = half note"
    )


def format_bpm(bpm: float) -> str:
    if float(bpm).is_integer():
        return str(int(bpm))
    return f"{bpm:.3f}".rstrip("0").rstrip(".")


def _stats_line(stats: NoteDurationStats) -> str:
    return (
        f"{stats.count} notes, shortest {stats.shortest_seconds:.3f}s, "
        f"longest {stats.longest_seconds:.3f}s"
    )


def _header(ctx: RenderContext, title: str, track_lines: list[str]) -> list[str]:
    converted = ctx.converted or datetime.date.today()
    lines = [
        f'/* "{title}" */',
        "/**",
        f"Source: {ctx.source}",
        f"Tempo: {format_bpm(ctx.bpm)} BPM",
        f"Time signature: {ctx.numerator}/{ctx.denominator}",
        f"Quantization: {ctx.quantization} ({ctx.quantization_source}); "
        f"{grid_meaning(ctx.quantization, ctx.slices_per_measure)}",
        f"Slices per measure: {ctx.slices_per_measure}",
        f"Mode: {'polyphonic' if ctx.polyphonic else 'non-polyphonic'}",
    ]
    lines.extend(track_lines)
    lines.append(f"Converted: {converted.isoformat()}")
    lines.append("**/")
    return lines


def _track_block(track: TrackPattern) -> list[str]:
    cycles = "\n".join(track.pattern.cycles())
    return [
        f"let {track.variable} = note(`<",
        cycles,
        f'>`).sound("{track.sound}")',
    ]


def _describe(track: TrackPattern) -> str:
    line = f"Track: {track.index}"
    if track.name:
        line += f" ({track.name})"
    if track.stats is not None:
        line += f" - {_stats_line(track.stats)}"
    return line


def render_track_file(ctx: RenderContext, track: TrackPattern) -> str:
    """Render a Strudel file playing a single track."""
    lines = _header(ctx, track.variable, [_describe(track)])
    lines.append("")
    lines.append(f"setcpm({format_bpm(ctx.bpm)}/{ctx.beats_per_cycle})")
    lines.append("")
    lines.extend(_track_block(track))
    lines.append("")
    lines.append(f"{track.variable}.room({ctx.room})")
    return "\n".join(lines) + "\n"


def render_multitrack_file(
    ctx: RenderContext,
    tracks: list[TrackPattern],
    total_tracks: int,
) -> str:
    """Render a Strudel file stacking several tracks of equal cycle length."""
    track_lines = [f"Tracks: {len(tracks)} of {total_tracks} (empty tracks skipped)"]
    track_lines.extend(f"  {_describe(t)} -> {t.sound}" for t in tracks)
    stem = ctx.source.rsplit(".", 1)[0] if "." in ctx.source else ctx.source
    lines = _header(ctx, stem, track_lines)
    lines.append("")
    lines.append(f"setcpm({format_bpm(ctx.bpm)}/{ctx.beats_per_cycle})")
    for track in tracks:
        lines.append("")
        lines.extend(_track_block(track))
    lines.append("")
    lines.append("stack(")
    lines.append(",\n".join(f"  {t.variable}" for t in tracks))
    lines.append(f").room({ctx.room})")
    return "\n".join(lines) + "\n"
