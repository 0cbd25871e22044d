from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import BinaryIO

from mxl2mid.midi.binary import u16be, u32be
from mxl2mid.midi.track import Track

HEADER_CHUNK_ID = b"MThd"
HEADER_LENGTH = 6
FORMAT_MULTI_TRACK = 1


@dataclass(frozen=True)
class MidiFile:
    """Standard MIDI File: header chunk plus track chunks in order."""

    division: int
    tracks: Sequence[Track]
    format: int = FORMAT_MULTI_TRACK

    def header_bytes(self) -> bytes:
        return (
            HEADER_CHUNK_ID
            + u32be(HEADER_LENGTH)
            + u16be(self.format)
            + u16be(len(self.tracks))
            + u16be(self.division)
        )

    def to_bytes(self) -> bytes:
        return self.header_bytes() + b"".join(t.to_bytes() for t in self.tracks)

    def write_to(self, fh: BinaryIO) -> int:
        """Write the whole file in one call. Returns the number of bytes written."""
        data = self.to_bytes()
        fh.write(data)
        return len(data)
