from __future__ import annotations

from mxl2mid.common.errors import MalformedScoreError
from mxl2mid.common.logging import log
from mxl2mid.common.score import Note, Part, Score, Sound
from mxl2mid.common.text import TextEncoder
from mxl2mid.midi.document import MidiFile
from mxl2mid.midi.events import (
    EndOfTrack,
    NoteOff,
    NoteOn,
    Tempo,
    Text,
    TextKind,
    TimeSignatureEvent,
)
from mxl2mid.midi.track import Track, TrackBuilder

CHANNEL = 0
NOTE_ON_VELOCITY = 100
NOTE_OFF_VELOCITY = 0


def build_conductor_track(part: Part) -> Track:
    """Time signatures and tempo changes; notes only advance time."""
    tr = TrackBuilder()
    for measure in part.measures:
        attrs = measure.attributes
        if attrs is not None and attrs.time is not None and attrs.time.beats:
            tr.add_event(
                TimeSignatureEvent(
                    numerator=attrs.time.beats,
                    denominator=attrs.time.beat_type,
                )
            )
        for event in measure.events:
            if isinstance(event, Sound):
                tr.add_event(Tempo(bpm=event.tempo))
            elif isinstance(event, Note):
                tr.add_delta_time(event.duration)

    tr.add_event(EndOfTrack())
    return tr.build()


def build_performance_track(part: Part, text_encoder: TextEncoder) -> Track:
    """
    Lyrics and notes.

    A tied chain sounds once: the first segment carries the lyric and the
    note-on, the last segment the note-off, and the segments in between
    only add their duration. Rests never emit events.
    """
    tr = TrackBuilder()
    for measure in part.measures:
        for event in measure.events:
            if not isinstance(event, Note):
                continue
            if event.rest or event.pitch is None:
                tr.add_delta_time(event.duration)
                continue

            key = event.pitch.key()
            if not event.tie_stop:
                tr.add_event(
                    Text(
                        kind=TextKind.LYRIC,
                        data=text_encoder.encode(event.lyric or ""),
                    )
                )
                tr.add_event(NoteOn(channel=CHANNEL, key=key, velocity=NOTE_ON_VELOCITY))

            tr.add_delta_time(event.duration)
            if not event.tie_start:
                tr.add_event(NoteOff(channel=CHANNEL, key=key, velocity=NOTE_OFF_VELOCITY))

    tr.add_event(EndOfTrack())
    return tr.build()


def score_to_midi(score: Score, text_encoder: TextEncoder) -> MidiFile:
    """
    Translate the first part of score into a two-track format 1 MIDI file.

    Track 0 is the conductor track (time signatures, tempo), track 1 holds
    lyrics and notes. Lyric text is transcoded with text_encoder.
    """
    if not score.parts:
        raise MalformedScoreError("Score has no parts.")
    part = score.parts[0]
    if len(score.parts) > 1:
        log.debug("extra_parts_ignored", parts=len(score.parts), used=part.id)

    return MidiFile(
        division=score.find_divisions(),
        tracks=(build_conductor_track(part), build_performance_track(part, text_encoder)),
    )
