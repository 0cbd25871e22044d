from __future__ import annotations

import os
import tempfile
from pathlib import Path

from mxl2mid.common.config import DEFAULT_CHARSET
from mxl2mid.common.logging import log
from mxl2mid.common.text import resolve_text_encoder
from mxl2mid.data.musicxml import load_score, parse_musicxml
from mxl2mid.translate.builder import score_to_midi


def convert_bytes(data: bytes, charset: str | None = DEFAULT_CHARSET) -> bytes:
    """MusicXML (or .mxl) bytes in, Standard MIDI File bytes out."""
    score = parse_musicxml(data)
    return score_to_midi(score, resolve_text_encoder(charset)).to_bytes()


def default_output_path(in_path: Path) -> Path:
    return in_path.with_name(in_path.name + ".mid")


def write_atomic(out_path: Path, data: bytes) -> None:
    """Write data to out_path via a temporary sibling so readers never see a partial file."""
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=out_path.parent, prefix=f".{out_path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.replace(tmp_name, out_path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def convert_file(
    in_path: Path,
    out_path: Path | None = None,
    charset: str | None = DEFAULT_CHARSET,
) -> Path:
    """
    Convert one MusicXML file to MIDI.

    Args:
        in_path: .musicxml/.xml/.mxl input.
        out_path: destination; defaults to the input name with ".mid" appended.
        charset: output charset of lyric text, None for raw UTF-8.

    Returns:
        The path of the written MIDI file.
    """
    out = out_path or default_output_path(in_path)
    text_encoder = resolve_text_encoder(charset)
    score = load_score(in_path)
    midi = score_to_midi(score, text_encoder)
    data = midi.to_bytes()
    write_atomic(out, data)
    log.info(
        "convert_file_done",
        input=str(in_path),
        output=str(out),
        division=midi.division,
        events=[len(t) for t in midi.tracks],
        bytes=len(data),
    )
    return out
