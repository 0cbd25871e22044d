from __future__ import annotations

import logging
from pathlib import Path

import typer
from pydantic import ValidationError

from mxl2mid.common.config import AppConfig, load_yaml
from mxl2mid.common.errors import ConfigError, Mxl2MidError
from mxl2mid.common.logging import add_file_logging, log, setup_logging
from mxl2mid.services.batch import convert_folder
from mxl2mid.services.convert import convert_file
from mxl2mid.services.dump import describe_midi

app = typer.Typer(
    help=(
        "MusicXML to MIDI converter. "
        "Supports MusicXML written by CeVIO Creative Studio (single part, lyrics, ties)."
    )
)

OPT_VERBOSE = typer.Option(False, "--verbose", "-v", help="Verbose JSON logs.")
OPT_CONFIG = typer.Option(None, "--config", "-c", help="YAML config (charset, jobs, skip_if_exists).")
OPT_CHARSET = typer.Option(
    None,
    "--charset",
    help="Charset of lyric text in the output MIDI (default: Shift_JIS). Use 'utf-8' for raw text.",
)

ARG_INFILE = typer.Argument(..., help="MusicXML (.musicxml, .xml) or compressed .mxl file.")
ARG_OUTFILE = typer.Argument(None, help="Output MIDI file (default: <infile>.mid).")

ARG_IN_DIR = typer.Argument(..., help="Folder with MusicXML files.")
ARG_OUT_DIR = typer.Argument(..., help="Folder to write MIDI files.")
OPT_JOBS = typer.Option(None, "--jobs", "-j", help="Parallel workers for conversion.")
OPT_SKIP = typer.Option(
    None,
    "--skip-if-exists/--no-skip-if-exists",
    help="Skip files with up-to-date outputs.",
)

ARG_MIDI = typer.Argument(..., help="MIDI file to list.")


def _effective_config(config: Path | None, **overrides: object) -> AppConfig:
    """Config file values, overridden by the CLI options that were given."""
    cfg = load_yaml(config) if config else AppConfig()
    updates = {k: v for k, v in overrides.items() if v is not None}
    try:
        return AppConfig.model_validate({**cfg.model_dump(), **updates})
    except ValidationError as err:
        raise ConfigError(f"Invalid option: {err}") from err


@app.callback()
def main(verbose: bool = OPT_VERBOSE) -> None:
    setup_logging(logging.DEBUG if verbose else logging.INFO)
    if verbose:
        log.info("verbose_enabled")


@app.command("convert")
def convert(
    infile: Path = ARG_INFILE,
    outfile: Path | None = ARG_OUTFILE,
    charset: str | None = OPT_CHARSET,
    config: Path | None = OPT_CONFIG,
) -> None:
    """Convert one MusicXML file to a two-track MIDI file."""
    try:
        cfg = _effective_config(config, charset=charset)
        log.info(
            "convert_start",
            input=str(infile),
            output=str(outfile) if outfile else None,
            charset=cfg.charset,
        )
        out = convert_file(infile, outfile, charset=cfg.charset)
    except (Mxl2MidError, OSError) as err:
        log.error("convert_failed", input=str(infile), error=str(err))
        typer.echo(f"error: {err}", err=True)
        raise typer.Exit(code=1) from err
    typer.echo(str(out))


@app.command("convert-dir")
def convert_dir(
    in_dir: Path = ARG_IN_DIR,
    out_dir: Path = ARG_OUT_DIR,
    charset: str | None = OPT_CHARSET,
    jobs: int | None = OPT_JOBS,
    skip_if_exists: bool | None = OPT_SKIP,
    config: Path | None = OPT_CONFIG,
) -> None:
    """Convert every MusicXML/MXL file in a folder."""
    try:
        cfg = _effective_config(config, charset=charset, jobs=jobs, skip_if_exists=skip_if_exists)
    except (Mxl2MidError, OSError) as err:
        typer.echo(f"error: {err}", err=True)
        raise typer.Exit(code=1) from err

    add_file_logging(out_dir / "logs" / "convert.jsonl")
    log.info(
        "convert_dir_start",
        input=str(in_dir),
        out=str(out_dir),
        charset=cfg.charset,
        jobs=cfg.jobs,
        skip_if_exists=cfg.skip_if_exists,
    )
    try:
        summary = convert_folder(
            in_dir,
            out_dir,
            jobs=cfg.jobs,
            skip_if_exists=cfg.skip_if_exists,
            charset=cfg.charset,
        )
    except Mxl2MidError as err:
        typer.echo(f"error: {err}", err=True)
        raise typer.Exit(code=1) from err
    log.info("convert_dir_done", **summary)
    typer.echo(
        f"converted={summary['converted']} failed={summary['failed']} "
        f"skipped={summary['skipped']} total={summary['total']}"
    )
    if summary["failed"]:
        raise typer.Exit(code=1)


@app.command("inspect")
def inspect(
    midi_file: Path = ARG_MIDI,
    charset: str | None = OPT_CHARSET,
    config: Path | None = OPT_CONFIG,
) -> None:
    """List the tracks and messages of a MIDI file."""
    try:
        cfg = _effective_config(config, charset=charset)
        lines = describe_midi(midi_file, charset=cfg.charset)
    except (Mxl2MidError, OSError, EOFError) as err:
        typer.echo(f"error: {err}", err=True)
        raise typer.Exit(code=1) from err
    for line in lines:
        typer.echo(line)


if __name__ == "__main__":
    app()
