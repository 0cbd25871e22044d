from __future__ import annotations

from concurrent.futures import ProcessPoolExecutor, as_completed
from pathlib import Path

from mxl2mid.common.config import DEFAULT_CHARSET
from mxl2mid.common.logging import log
from mxl2mid.common.text import resolve_text_encoder
from mxl2mid.data.musicxml import SUPPORTED_EXT
from mxl2mid.services.convert import convert_file


def _gather_files(in_dir: Path) -> list[Path]:
    return sorted(
        p for p in in_dir.rglob("*") if p.is_file() and p.suffix.lower() in SUPPORTED_EXT
    )


def _output_for(in_path: Path, in_dir: Path, out_dir: Path) -> Path:
    # a.xml and a.musicxml must not share one output
    rel = in_path.relative_to(in_dir)
    return out_dir / rel.parent / f"{rel.name}.mid"


def _should_skip(in_path: Path, out_path: Path, skip_if_exists: bool) -> bool:
    if not skip_if_exists or not out_path.exists():
        return False
    # incremental: skip if output is newer or same mtime
    return out_path.stat().st_mtime >= in_path.stat().st_mtime


def _process_one(args: tuple[Path, Path, str | None]) -> tuple[Path, bool, str | None]:
    """
    Worker for parallel conversion.
    Returns (in_path, ok, error_msg); failures leave <stem>.error.txt next to the output.
    """
    in_path, out_path, charset = args
    try:
        convert_file(in_path, out_path, charset=charset)
        return in_path, True, None
    except Exception as e:
        err_path = out_path.with_suffix(".error.txt")
        err_path.parent.mkdir(parents=True, exist_ok=True)
        err_path.write_text(f"{type(e).__name__}: {e}", encoding="utf-8")
        return in_path, False, str(e)


def convert_folder(
    in_dir: Path,
    out_dir: Path,
    *,
    jobs: int = 1,
    skip_if_exists: bool = True,
    charset: str | None = DEFAULT_CHARSET,
) -> dict[str, int]:
    """
    Convert every MusicXML/MXL file under in_dir, mirroring the folder layout.

    Args:
        jobs: parallel workers (>=1)
        skip_if_exists: skip files whose .mid is up to date
        charset: output charset of lyric text

    Returns:
        {"converted", "failed", "skipped", "total"}
    """
    # fail on a bad charset before spawning any worker
    resolve_text_encoder(charset)

    out_dir.mkdir(parents=True, exist_ok=True)
    files = _gather_files(in_dir)

    candidates: list[tuple[Path, Path, str | None]] = []
    for p in files:
        out_path = _output_for(p, in_dir, out_dir)
        if _should_skip(p, out_path, skip_if_exists):
            continue
        candidates.append((p, out_path, charset))

    summary = {
        "converted": 0,
        "failed": 0,
        "skipped": len(files) - len(candidates),
        "total": len(files),
    }
    if not candidates:
        log.info("convert_folder_no_candidates", in_dir=str(in_dir))
        return summary

    # single-process
    if jobs <= 1:
        for a in candidates:
            path, success, err = _process_one(a)
            _tally(summary, path, success, err)
        return summary

    with ProcessPoolExecutor(max_workers=jobs) as ex:
        futs = [ex.submit(_process_one, a) for a in candidates]
        for i, fut in enumerate(as_completed(futs), start=1):
            path, success, err = fut.result()
            _tally(summary, path, success, err)
            if i % 50 == 0:
                log.info("convert_folder_progress", done=i, total=len(futs))
    return summary


def _tally(summary: dict[str, int], path: Path, success: bool, err: str | None) -> None:
    if success:
        summary["converted"] += 1
    else:
        summary["failed"] += 1
        log.warning("convert_failed", file=str(path), error=err)
