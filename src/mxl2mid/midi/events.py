from __future__ import annotations

import math
from dataclasses import dataclass
from enum import IntEnum

from mxl2mid.common.errors import MidiEncodingError

META = 0xFF
MAX_TEXT_BYTES = 0xFF
MAX_TEMPO_USEC = 0xFFFFFF

# log2 of each supported time signature denominator
_DENOMINATOR_POWERS: dict[int, int] = {1 << p: p for p in range(8)}


class TextKind(IntEnum):
    TEXT = 0x01
    COPYRIGHT = 0x02
    TRACK_NAME = 0x03
    INSTRUMENT_NAME = 0x04
    LYRIC = 0x05
    MARKER = 0x06
    CUE_POINT = 0x07


def _check_data_byte(name: str, value: int) -> None:
    if not 0 <= value <= 0xFF:
        raise MidiEncodingError(f"{name} does not fit a byte: {value}")


@dataclass(frozen=True)
class NoteOn:
    channel: int
    key: int
    velocity: int

    def size(self) -> int:
        return 3

    def to_bytes(self) -> bytes:
        return bytes((0x90 | (self.channel & 0x0F), self.key & 0x7F, self.velocity & 0x7F))


@dataclass(frozen=True)
class NoteOff:
    channel: int
    key: int
    velocity: int = 0

    def size(self) -> int:
        return 3

    def to_bytes(self) -> bytes:
        return bytes((0x80 | (self.channel & 0x0F), self.key & 0x7F, self.velocity & 0x7F))


@dataclass(frozen=True)
class Tempo:
    """Set-tempo meta event. bpm is quarter notes per minute."""

    bpm: float

    def __post_init__(self) -> None:
        if not self.bpm > 0 or math.isinf(self.bpm):
            raise MidiEncodingError(f"Tempo must be a positive number of BPM: {self.bpm}")
        if not 1 <= self.microseconds_per_quarter <= MAX_TEMPO_USEC:
            raise MidiEncodingError(f"Tempo out of range for MIDI: {self.bpm} BPM")

    @property
    def microseconds_per_quarter(self) -> int:
        return round(60_000_000 / self.bpm)

    def size(self) -> int:
        return 6

    def to_bytes(self) -> bytes:
        usec = self.microseconds_per_quarter
        return bytes((META, 0x51, 0x03, (usec >> 16) & 0xFF, (usec >> 8) & 0xFF, usec & 0xFF))


@dataclass(frozen=True)
class TimeSignatureEvent:
    numerator: int
    denominator: int

    def __post_init__(self) -> None:
        _check_data_byte("Time signature numerator", self.numerator)
        if self.denominator not in _DENOMINATOR_POWERS:
            raise MidiEncodingError(
                f"Unsupported denominator of the time signature: {self.denominator}"
            )

    def size(self) -> int:
        return 7

    def to_bytes(self) -> bytes:
        # 24 MIDI clocks per metronome click, 8 32nd notes per quarter
        return bytes(
            (META, 0x58, 0x04, self.numerator, _DENOMINATOR_POWERS[self.denominator], 0x18, 0x08)
        )


@dataclass(frozen=True)
class Text:
    """Text-like meta event; data is the already transcoded payload."""

    kind: TextKind
    data: bytes

    def __post_init__(self) -> None:
        if len(self.data) > MAX_TEXT_BYTES:
            raise MidiEncodingError(
                f"Text event payload is {len(self.data)} bytes, limit is {MAX_TEXT_BYTES}"
            )

    def size(self) -> int:
        return 3 + len(self.data)

    def to_bytes(self) -> bytes:
        return bytes((META, int(self.kind), len(self.data))) + self.data


@dataclass(frozen=True)
class EndOfTrack:
    def size(self) -> int:
        return 3

    def to_bytes(self) -> bytes:
        return b"\xff\x2f\x00"


MidiEvent = NoteOn | NoteOff | Tempo | TimeSignatureEvent | Text | EndOfTrack
