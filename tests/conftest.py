"""Shared test fixtures: in-memory MIDI files built with mido."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import mido
import pytest

PPQN = 480

# (absolute tick, message) pairs; one list per track
TrackSpec = list[tuple[int, "mido.Message | mido.MetaMessage"]]


def _to_track(messages: TrackSpec) -> mido.MidiTrack:
    """Convert absolute-tick messages to a delta-time mido track."""
    track = mido.MidiTrack()
    prev = 0
    for abs_tick, msg in sorted(messages, key=lambda pair: pair[0]):
        track.append(msg.copy(time=abs_tick - prev))
        prev = abs_tick
    track.append(mido.MetaMessage("end_of_track", time=0))
    return track


def _quarters(pitches: list[int], start: int = 0, channel: int = 0) -> TrackSpec:
    """Consecutive quarter notes, one per pitch."""
    out: TrackSpec = []
    for i, pitch in enumerate(pitches):
        tick = start + i * PPQN
        out.append((tick, mido.Message("note_on", note=pitch, velocity=100, channel=channel)))
        out.append((tick + PPQN, mido.Message("note_off", note=pitch, velocity=0, channel=channel)))
    return out


@pytest.fixture
def build_midi() -> Callable[..., mido.MidiFile]:
    """Factory: ``build_midi([track_spec, ...], ticks_per_beat=480)``."""

    def _build(tracks: list[TrackSpec], ticks_per_beat: int = PPQN) -> mido.MidiFile:
        mid = mido.MidiFile(type=1, ticks_per_beat=ticks_per_beat)
        for messages in tracks:
            mid.tracks.append(_to_track(messages))
        return mid

    return _build


@pytest.fixture
def quarters() -> Callable[..., TrackSpec]:
    """Factory for a track spec of consecutive quarter notes."""
    return _quarters


@pytest.fixture
def scale_midi(build_midi) -> mido.MidiFile:
    """120 BPM, 4/4: c4 d4 e4 f4 as quarter notes in one track."""
    return build_midi([
        [
            (0, mido.MetaMessage("set_tempo", tempo=500_000)),
            (0, mido.MetaMessage("time_signature", numerator=4, denominator=4)),
            (0, mido.MetaMessage("track_name", name="Piano")),
        ] + _quarters([60, 62, 64, 65]),
    ])


@pytest.fixture
def write_midi(tmp_path: Path) -> Callable[[mido.MidiFile, str], Path]:
    """Save a mido file under tmp_path and return its path."""

    def _write(mid: mido.MidiFile, name: str = "song.mid") -> Path:
        path = tmp_path / name
        mid.save(str(path))
        return path

    return _write


@pytest.fixture
def write_raw_midi(tmp_path: Path) -> Callable[[bytes, str], Path]:
    """Write a single-track format 1 file around raw track bytes.

    Lets tests store events mido refuses to build, such as an out-of-range
    key signature.
    """

    def _write(track: bytes, name: str = "raw.mid") -> Path:
        header = (
            b"MThd" + (6).to_bytes(4, "big")
            + (1).to_bytes(2, "big") + (1).to_bytes(2, "big") + PPQN.to_bytes(2, "big")
        )
        path = tmp_path / name
        path.write_bytes(header + b"MTrk" + len(track).to_bytes(4, "big") + track)
        return path

    return _write
