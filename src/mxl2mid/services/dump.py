from __future__ import annotations

from pathlib import Path

import mido

from mxl2mid.common.config import DEFAULT_CHARSET


def describe_midi(path: Path, charset: str | None = DEFAULT_CHARSET) -> list[str]:
    """One line for the header, one per track, and one per message with its absolute tick."""
    mid = mido.MidiFile(path.as_posix(), charset=charset or "utf-8")
    lines = [f"type={mid.type} tracks={len(mid.tracks)} ticks_per_beat={mid.ticks_per_beat}"]
    for i, track in enumerate(mid.tracks):
        lines.append(f"track {i}: {len(track)} messages")
        tick = 0
        for msg in track:
            tick += msg.time
            lines.append(f"  {tick:>8} {msg!r}")
    return lines
