from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from mxl2mid.common.errors import MidiEncodingError
from mxl2mid.midi.binary import encode_vlq, u32be, vlq_size
from mxl2mid.midi.events import EndOfTrack, MidiEvent

TRACK_CHUNK_ID = b"MTrk"


@dataclass(frozen=True)
class DeltaEvent:
    delta: int
    event: MidiEvent

    def size(self) -> int:
        return vlq_size(self.delta) + self.event.size()

    def to_bytes(self) -> bytes:
        return encode_vlq(self.delta) + self.event.to_bytes()


class Track:
    """An immutable event list closed by a single end-of-track event."""

    def __init__(self, events: Iterable[DeltaEvent]) -> None:
        self.events: tuple[DeltaEvent, ...] = tuple(events)
        ends = [i for i, de in enumerate(self.events) if isinstance(de.event, EndOfTrack)]
        if ends != [len(self.events) - 1]:
            raise MidiEncodingError("Track must end with exactly one end-of-track event.")

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self) -> Iterator[DeltaEvent]:
        return iter(self.events)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Track):
            return NotImplemented
        return self.events == other.events

    def __repr__(self) -> str:
        return f"Track({list(self.events)!r})"

    def payload_size(self) -> int:
        return sum(de.size() for de in self.events)

    def to_bytes(self) -> bytes:
        payload = b"".join(de.to_bytes() for de in self.events)
        size = self.payload_size()
        if len(payload) != size:
            raise MidiEncodingError(
                f"Track payload is {len(payload)} bytes, expected {size}"
            )
        return TRACK_CHUNK_ID + u32be(size) + payload


class TrackBuilder:
    """
    Collects events with relative timing.

    Time added with add_delta_time() accumulates until the next add_event(),
    which stamps the event with the accumulated ticks and starts over from 0.
    """

    def __init__(self) -> None:
        self._pending = 0
        self._events: list[DeltaEvent] = []

    @property
    def pending(self) -> int:
        return self._pending

    def add_delta_time(self, ticks: int) -> None:
        if ticks < 0:
            raise MidiEncodingError(f"Negative delta time: {ticks}")
        self._pending += ticks

    def add_event(self, event: MidiEvent) -> None:
        self._events.append(DeltaEvent(self._pending, event))
        self._pending = 0

    def build(self) -> Track:
        return Track(self._events)
