"""Compact text summaries of an analysed MIDI document."""

from __future__ import annotations

from midi_strudel.errors import UnsupportedOperationError
from midi_strudel.model.document import MidiDocument, TrackData, duration_stats


def format_time_signatures(doc: MidiDocument) -> str:
    if not doc.time_signatures:
        return "4/4 (default)"
    try:
        return str(doc.time_signature)
    except UnsupportedOperationError:
        changes = ", ".join(f"{ts} @{ts.tick}" for ts in doc.time_signatures)
        return f"{changes} (multiple, not convertible)"


def format_document(doc: MidiDocument) -> str:
    """Format file-level information followed by one line per track."""
    minutes = int(doc.duration_seconds) // 60
    seconds = doc.duration_seconds - minutes * 60
    tempos = ", ".join(
        f"{c.bpm:.1f}@{c.tick}" for c in doc.tempo_map
    )
    keys = ", ".join(ks.key_name for ks in doc.key_signatures) or "none"

    lines = [
        f"Format: {doc.format}",
        f"  Division: {doc.division} ticks/quarter",
        f"  Tempo: {tempos}",
        f"  Time sig: {format_time_signatures(doc)}",
        f"  Key: {keys}",
        f"  Duration: {minutes}:{seconds:05.2f} ({doc.total_ticks} ticks)",
        f"Tracks ({len(doc.tracks)}):",
    ]
    lines.extend(format_track(t) for t in doc.tracks)
    return "\n".join(lines)


def format_track(track: TrackData) -> str:
    """One-line summary of a track."""
    line = (
        f"  {track.index}. {track.label} | {len(track.notes)} notes, "
        f"{len(track.control_changes)} cc, {len(track.pitch_bends)} bend"
    )
    if track.program_changes:
        first = track.program_changes[0]
        line += f" | program:{first.program} ch:{first.channel + 1}"
    if track.notes:
        stats = duration_stats(track.notes)
        low = min(track.notes, key=lambda n: n.pitch)
        high = max(track.notes, key=lambda n: n.pitch)
        line += (
            f" | {low.name}-{high.name}"
            f" | dur {stats.shortest_seconds:.3f}-{stats.longest_seconds:.3f}s"
        )
    return line
