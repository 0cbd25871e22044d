from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field

Step = Literal["A", "B", "C", "D", "E", "F", "G"]

STEP_SEMITONES: dict[str, int] = {
    "C": 0,
    "D": 2,
    "E": 4,
    "F": 5,
    "G": 7,
    "A": 9,
    "B": 11,
}


class Pitch(BaseModel):
    step: Step
    octave: int
    alter: int = 0

    def key(self) -> int:
        """MIDI key number, middle C (C4) being 60."""
        return STEP_SEMITONES[self.step] + (self.octave + 1) * 12 + self.alter


class TimeSignature(BaseModel):
    beats: int = 0
    beat_type: int = 0


class Attributes(BaseModel):
    divisions: int = 0
    time: TimeSignature | None = None


class Sound(BaseModel):
    kind: Literal["sound"] = "sound"
    tempo: float


class Note(BaseModel):
    kind: Literal["note"] = "note"
    duration: int = Field(default=0, ge=0)
    pitch: Pitch | None = None
    rest: bool = False
    tie_start: bool = False
    tie_stop: bool = False
    lyric: str | None = None


MeasureEvent = Annotated[Sound | Note, Field(discriminator="kind")]


class Measure(BaseModel):
    number: int = 0
    attributes: Attributes | None = None
    events: list[MeasureEvent] = []


class Part(BaseModel):
    id: str = ""
    measures: list[Measure] = []


class Score(BaseModel):
    title: str | None = None
    parts: list[Part] = []

    def find_divisions(self) -> int:
        """First non-zero divisions value in document order, 0 if none is set."""
        for part in self.parts:
            for measure in part.measures:
                if measure.attributes is not None and measure.attributes.divisions:
                    return measure.attributes.divisions
        return 0
