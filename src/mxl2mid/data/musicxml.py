from __future__ import annotations

import codecs
import io
import re
import xml.etree.ElementTree as ET
import zipfile
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from mxl2mid.common.errors import MalformedScoreError
from mxl2mid.common.logging import log
from mxl2mid.common.score import (
    Attributes,
    Measure,
    Note,
    Part,
    Pitch,
    Score,
    Sound,
    TimeSignature,
)

SUPPORTED_EXT = {".musicxml", ".xml", ".mxl"}

_ZIP_MAGIC = b"PK\x03\x04"
_XML_DECL = re.compile(rb"^\s*<\?xml[^>]*?\?>", re.DOTALL)
_DECL_ENCODING = re.compile(rb"""encoding\s*=\s*["']([A-Za-z0-9._:-]+)["']""")
# encodings expat decodes by itself
_EXPAT_NATIVE = {"utf_8", "utf_16", "ascii", "latin_1", "iso8859_1"}


def _safe_int(v: Any, default: int) -> int:
    try:
        return int(v)  # type: ignore[arg-type]
    except Exception:
        return default


def _number(v: str | None, default: int = 0) -> int:
    """Integer from element text, tolerating decimals like '480.0'."""
    if v is None:
        return default
    try:
        return int(round(float(v.strip())))
    except (ValueError, OverflowError):
        return default


def _child_text(el: ET.Element, path: str) -> str | None:
    found = el.find(path)
    if found is None or found.text is None:
        return None
    return found.text.strip()


def _read_mxl(data: bytes) -> bytes:
    """Return the root score document of a compressed .mxl archive."""
    try:
        with zipfile.ZipFile(io.BytesIO(data), "r") as zf:
            names = zf.namelist()
            rootfile: str | None = None
            if "META-INF/container.xml" in names:
                container = ET.fromstring(zf.read("META-INF/container.xml"))
                for el in container.iter():
                    if el.tag.rsplit("}", 1)[-1] == "rootfile" and el.get("full-path"):
                        rootfile = el.get("full-path")
                        break
            if rootfile is None:
                candidates = [
                    n
                    for n in names
                    if not n.startswith("META-INF/")
                    and Path(n).suffix.lower() in {".xml", ".musicxml"}
                ]
                if not candidates:
                    raise MalformedScoreError("No score document inside the .mxl archive.")
                rootfile = candidates[0]
            return zf.read(rootfile)
    except zipfile.BadZipFile as err:
        raise MalformedScoreError(f"Broken .mxl archive: {err}") from err
    except KeyError as err:
        raise MalformedScoreError(f"Missing file inside the .mxl archive: {err}") from err
    except ET.ParseError as err:
        raise MalformedScoreError(f"Broken META-INF/container.xml: {err}") from err


def _parse_root(data: bytes) -> ET.Element:
    """
    Parse XML bytes, decoding legacy charsets (e.g. Shift_JIS) through Python
    codecs since expat only understands a handful of encodings.
    """
    source: bytes | str = data
    decl = _XML_DECL.match(data)
    if decl is not None:
        m = _DECL_ENCODING.search(decl.group(0))
        if m is not None:
            label = m.group(1).decode("ascii")
            try:
                name = codecs.lookup(label).name.replace("-", "_")
            except LookupError as err:
                raise MalformedScoreError(f"Unknown XML encoding: {label}") from err
            if name not in _EXPAT_NATIVE:
                try:
                    source = data[decl.end() :].decode(label)
                except UnicodeDecodeError as err:
                    raise MalformedScoreError(f"Score is not valid {label}: {err}") from err
    try:
        return ET.fromstring(source)
    except ET.ParseError as err:
        raise MalformedScoreError(f"Invalid MusicXML: {err}") from err


def _parse_attributes(el: ET.Element, attrs: Attributes | None) -> Attributes:
    attrs = attrs.model_copy() if attrs is not None else Attributes()
    divisions = _number(_child_text(el, "divisions"))
    if divisions:
        attrs.divisions = divisions
    time_el = el.find("time")
    if time_el is not None:
        # compound signatures like "3+2" are not representable and stay 0
        attrs.time = TimeSignature(
            beats=_safe_int(_child_text(time_el, "beats"), 0),
            beat_type=_safe_int(_child_text(time_el, "beat-type"), 0),
        )
    return attrs


def _parse_note(el: ET.Element, measure_no: int) -> Note | None:
    if el.find("chord") is not None:
        log.warning("chord_note_dropped", measure=measure_no)
        return None
    if el.find("grace") is not None:
        log.debug("grace_note_dropped", measure=measure_no)
        return None

    pitch: Pitch | None = None
    pitch_el = el.find("pitch")
    if pitch_el is not None:
        pitch = Pitch(
            step=(_child_text(pitch_el, "step") or "").upper(),  # type: ignore[arg-type]
            octave=_number(_child_text(pitch_el, "octave"), 4),
            alter=_number(_child_text(pitch_el, "alter")),
        )

    tie_types = {t.get("type") for t in el.findall("tie")}
    lyric: str | None = None
    lyric_el = el.find("lyric")
    if lyric_el is not None:
        # syllable text is kept as written, surrounding spaces included
        text_el = lyric_el.find("text")
        lyric = text_el.text if text_el is not None else None

    return Note(
        duration=max(0, _number(_child_text(el, "duration"))),
        pitch=pitch,
        rest=el.find("rest") is not None,
        tie_start="start" in tie_types,
        tie_stop="stop" in tie_types,
        lyric=lyric,
    )


def _parse_measure(el: ET.Element) -> Measure:
    number = _safe_int(el.get("number"), 0)
    attrs: Attributes | None = None
    events: list[Sound | Note] = []
    for child in el:
        if child.tag == "attributes":
            attrs = _parse_attributes(child, attrs)
        elif child.tag == "sound":
            tempo = child.get("tempo")
            if tempo is not None:
                try:
                    events.append(Sound(tempo=float(tempo)))
                except ValueError as err:
                    raise MalformedScoreError(
                        f"Invalid tempo {tempo!r} in measure {number}"
                    ) from err
        elif child.tag == "note":
            note = _parse_note(child, number)
            if note is not None:
                events.append(note)
    return Measure(number=number, attributes=attrs, events=events)


def parse_musicxml(data: bytes) -> Score:
    """
    Decode a partwise MusicXML document (plain or .mxl archive) into a Score.

    Only what the converter needs is kept: divisions, time signatures,
    measure-level tempo marks, and note duration/pitch/rest/tie/lyric.
    """
    if data.startswith(_ZIP_MAGIC):
        data = _read_mxl(data)
    root = _parse_root(data)
    if root.tag != "score-partwise":
        raise MalformedScoreError(f"Unsupported MusicXML root element: <{root.tag}>")

    title = _child_text(root, "work/work-title") or _child_text(root, "movement-title")
    try:
        parts = [
            Part(
                id=part_el.get("id", ""),
                measures=[_parse_measure(m) for m in part_el.findall("measure")],
            )
            for part_el in root.findall("part")
        ]
    except ValidationError as err:
        raise MalformedScoreError(f"Invalid MusicXML content: {err}") from err

    return Score(title=title, parts=parts)


def load_score(path: Path) -> Score:
    score = parse_musicxml(path.read_bytes())
    log.debug(
        "score_loaded",
        file=str(path),
        parts=len(score.parts),
        measures=sum(len(p.measures) for p in score.parts),
    )
    return score
