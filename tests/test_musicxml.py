import io
import zipfile

import pytest

from mxl2mid.common.errors import MalformedScoreError
from mxl2mid.common.score import Note, Sound
from mxl2mid.data.musicxml import load_score, parse_musicxml


def _wrap(measures: str) -> bytes:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<score-partwise><part id="P1">' + measures + "</part></score-partwise>"
    ).encode("utf-8")


def test_parse_cevio_score(cevio_xml: str) -> None:
    score = parse_musicxml(cevio_xml.encode("utf-8"))

    assert score.title == "Test Song"
    assert len(score.parts) == 1
    m1, m2 = score.parts[0].measures
    assert m1.number == 1
    assert m1.attributes is not None
    assert m1.attributes.divisions == 480
    assert m1.attributes.time is not None
    assert (m1.attributes.time.beats, m1.attributes.time.beat_type) == (4, 4)

    assert isinstance(m1.events[0], Sound) and m1.events[0].tempo == 120
    c4, r, e4 = m1.events[1:]
    assert isinstance(c4, Note) and c4.pitch is not None
    assert c4.pitch.key() == 60 and c4.duration == 480 and c4.lyric == "ら"
    assert isinstance(r, Note) and r.rest and r.pitch is None
    assert isinstance(e4, Note) and e4.tie_start and not e4.tie_stop

    # the tempo inside <direction> is not a measure-level sound
    assert m2.attributes is None
    assert [type(e) for e in m2.events] == [Note, Note]
    e4_end, fis = m2.events
    assert isinstance(e4_end, Note) and e4_end.tie_stop and e4_end.lyric is None
    assert isinstance(fis, Note) and fis.pitch is not None and fis.pitch.key() == 66


def test_shift_jis_document_decodes(cevio_xml: str) -> None:
    sjis = cevio_xml.replace('encoding="UTF-8"', 'encoding="Shift_JIS"').encode("shift_jis")
    assert parse_musicxml(sjis) == parse_musicxml(cevio_xml.encode("utf-8"))


def test_mxl_archive(cevio_xml: str, tmp_path) -> None:
    path = tmp_path / "song.mxl"
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr(
            "META-INF/container.xml",
            '<?xml version="1.0" encoding="UTF-8"?>'
            "<container><rootfiles>"
            '<rootfile full-path="scores/song.xml" media-type="application/vnd.recordare.musicxml+xml"/>'
            "</rootfiles></container>",
        )
        zf.writestr("scores/song.xml", cevio_xml.encode("utf-8"))

    assert load_score(path) == parse_musicxml(cevio_xml.encode("utf-8"))


def test_mxl_archive_without_container(cevio_xml: str) -> None:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        zf.writestr("song.musicxml", cevio_xml.encode("utf-8"))
    assert parse_musicxml(buf.getvalue()).title == "Test Song"


def test_tie_types() -> None:
    score = parse_musicxml(
        _wrap(
            '<measure number="1">'
            "<note><pitch><step>C</step><octave>4</octave></pitch><duration>1</duration>"
            '<tie type="stop"/><tie type="start"/></note>'
            "<note><pitch><step>C</step><octave>4</octave></pitch><duration>1</duration>"
            '<tie type="continue"/></note>'
            "</measure>"
        )
    )
    both, other = score.parts[0].measures[0].events
    assert isinstance(both, Note) and both.tie_start and both.tie_stop
    assert isinstance(other, Note) and not other.tie_start and not other.tie_stop


def test_chord_and_grace_notes_are_dropped() -> None:
    score = parse_musicxml(
        _wrap(
            '<measure number="1">'
            "<note><pitch><step>C</step><octave>4</octave></pitch><duration>4</duration></note>"
            "<note><chord/><pitch><step>E</step><octave>4</octave></pitch><duration>4</duration></note>"
            "<note><grace/><pitch><step>D</step><octave>4</octave></pitch></note>"
            "</measure>"
        )
    )
    events = score.parts[0].measures[0].events
    assert len(events) == 1


def test_out_of_range_numbers_fall_back_to_defaults() -> None:
    score = parse_musicxml(
        _wrap(
            '<measure number="1">'
            "<note><pitch><step>C</step><octave>1e400</octave></pitch>"
            "<duration>1e400</duration></note>"
            "<note><rest/><duration>-inf</duration></note>"
            "</measure>"
        )
    )
    pitched, r = score.parts[0].measures[0].events
    assert isinstance(pitched, Note) and pitched.duration == 0
    assert pitched.pitch is not None and pitched.pitch.octave == 4
    assert isinstance(r, Note) and r.duration == 0


def test_lyric_text_is_kept_verbatim() -> None:
    score = parse_musicxml(
        _wrap(
            '<measure number="1">'
            "<note><pitch><step>C</step><octave>4</octave></pitch><duration>1</duration>"
            "<lyric><text> ら </text></lyric></note>"
            "<note><pitch><step>C</step><octave>4</octave></pitch><duration>1</duration>"
            "<lyric><text>  </text></lyric></note>"
            "</measure>"
        )
    )
    padded, blank = score.parts[0].measures[0].events
    assert isinstance(padded, Note) and padded.lyric == " ら "
    assert isinstance(blank, Note) and blank.lyric == "  "


def test_sound_without_tempo_is_skipped() -> None:
    score = parse_musicxml(_wrap('<measure number="1"><sound dynamics="80"/></measure>'))
    assert score.parts[0].measures[0].events == []


def test_attributes_merge_within_measure() -> None:
    score = parse_musicxml(
        _wrap(
            '<measure number="1">'
            "<attributes><divisions>960</divisions></attributes>"
            "<attributes><time><beats>3</beats><beat-type>8</beat-type></time></attributes>"
            "</measure>"
        )
    )
    attrs = score.parts[0].measures[0].attributes
    assert attrs is not None
    assert attrs.divisions == 960
    assert attrs.time is not None and attrs.time.beat_type == 8


@pytest.mark.parametrize(
    "data",
    [
        b"not xml at all",
        b"<score-timewise/>",
        _wrap('<measure number="1"><note><pitch><step>H</step><octave>4</octave></pitch></note></measure>'),
        _wrap('<measure number="1"><sound tempo="fast"/></measure>'),
        b"PK\x03\x04 broken archive",
        b'<?xml version="1.0" encoding="no-such-charset"?><score-partwise/>',
    ],
)
def test_malformed_input(data: bytes) -> None:
    with pytest.raises(MalformedScoreError):
        parse_musicxml(data)
