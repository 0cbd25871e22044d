from pathlib import Path

import pytest

from mxl2mid.common.score import Attributes, Measure, Note, Part, Pitch, Score, Sound, TimeSignature

CEVIO_XML = """<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE score-partwise PUBLIC "-//Recordare//DTD MusicXML 2.0 Partwise//EN" "http://www.musicxml.org/dtds/partwise.dtd">
<score-partwise>
  <work><work-title>Test Song</work-title></work>
  <identification>
    <encoding><software>CeVIO Creative Studio</software></encoding>
  </identification>
  <part-list>
    <score-part id="P1"><part-name>Song</part-name></score-part>
  </part-list>
  <part id="P1">
    <measure number="1">
      <attributes>
        <divisions>480</divisions>
        <key><fifths>0</fifths></key>
        <time><beats>4</beats><beat-type>4</beat-type></time>
        <clef><sign>G</sign><line>2</line></clef>
      </attributes>
      <sound tempo="120"/>
      <note>
        <pitch><step>C</step><octave>4</octave></pitch>
        <duration>480</duration>
        <voice>1</voice>
        <type>quarter</type>
        <lyric><syllabic>single</syllabic><text>ら</text></lyric>
      </note>
      <note>
        <rest/>
        <duration>480</duration>
        <voice>1</voice>
        <type>quarter</type>
      </note>
      <note>
        <pitch><step>E</step><octave>4</octave></pitch>
        <duration>960</duration>
        <voice>1</voice>
        <type>half</type>
        <tie type="start"/>
        <lyric><syllabic>single</syllabic><text>ら</text></lyric>
      </note>
    </measure>
    <measure number="2">
      <note>
        <pitch><step>E</step><octave>4</octave></pitch>
        <duration>960</duration>
        <voice>1</voice>
        <type>half</type>
        <tie type="stop"/>
      </note>
      <direction><sound tempo="90"/></direction>
      <note>
        <pitch><step>F</step><alter>1</alter><octave>4</octave></pitch>
        <duration>960</duration>
        <voice>1</voice>
        <type>half</type>
        <lyric><syllabic>single</syllabic><text>ら</text></lyric>
      </note>
    </measure>
  </part>
</score-partwise>
"""


@pytest.fixture
def cevio_xml() -> str:
    return CEVIO_XML


@pytest.fixture
def cevio_file(tmp_path: Path) -> Path:
    p = tmp_path / "song.musicxml"
    p.write_bytes(CEVIO_XML.encode("utf-8"))
    return p


def note(
    step: str,
    octave: int,
    duration: int,
    *,
    alter: int = 0,
    lyric: str | None = None,
    tie_start: bool = False,
    tie_stop: bool = False,
) -> Note:
    return Note(
        duration=duration,
        pitch=Pitch(step=step, octave=octave, alter=alter),  # type: ignore[arg-type]
        tie_start=tie_start,
        tie_stop=tie_stop,
        lyric=lyric,
    )


def rest(duration: int) -> Note:
    return Note(duration=duration, rest=True)


def measure(
    *events: Note | Sound,
    divisions: int = 0,
    time: tuple[int, int] | None = None,
    number: int = 1,
) -> Measure:
    attrs = None
    if divisions or time:
        attrs = Attributes(
            divisions=divisions,
            time=TimeSignature(beats=time[0], beat_type=time[1]) if time else None,
        )
    return Measure(number=number, attributes=attrs, events=list(events))


def score(*measures: Measure) -> Score:
    return Score(parts=[Part(id="P1", measures=list(measures))])
