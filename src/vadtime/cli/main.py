from __future__ import annotations

import json
from pathlib import Path
from typing import NoReturn

import typer

from vadtime.config.settings import Settings
from vadtime.domain.job import Job
from vadtime.domain.segments import build_sequence
from vadtime.domain.workspace import Workspace
from vadtime.exceptions import ErrorCategory, VadTimeError
from vadtime.pipeline import Pipeline
from vadtime.services.merge import merge_segments
from vadtime.services.vad import load_segments
from vadtime.utils.doctor import run_doctor
from vadtime.utils.logging import configure_logging, get_logger

app = typer.Typer(add_completion=False)
log = get_logger(__name__)


def _fail(err: VadTimeError) -> NoReturn:
    typer.echo(f"{err.label()}: {err.message}", err=True)
    raise typer.Exit(code=err.exit_code or 1)


def _resolve_workdir(workdir: str | None) -> Path:
    settings = Settings()
    return Path(workdir or settings.workdir).expanduser().resolve()


def _load_run_manifest(path: Path) -> dict | None:
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        return None


def _list_runs(workdir: Path) -> list[Path]:
    if not workdir.exists():
        return []
    candidates = []
    for run_dir in workdir.iterdir():
        if not run_dir.is_dir():
            continue
        if not (run_dir / "run.json").exists():
            continue
        candidates.append(run_dir)
    candidates.sort(key=lambda p: (p / "run.json").stat().st_mtime, reverse=True)
    return candidates


def _resolve_run_dir(workdir: Path, run_id: str) -> Path:
    if run_id == "latest":
        runs_list = _list_runs(workdir)
        if not runs_list:
            raise typer.BadParameter("No runs found.")
        return runs_list[0]
    return workdir / run_id


def _collect_cli_overrides(
    *,
    strategy: str | None = None,
    max_gap: float | None = None,
    min_duration: float | None = None,
    language: str | None = None,
    segments: str | None = None,
) -> dict[str, str]:
    overrides: dict[str, str] = {}
    if strategy is not None:
        overrides["strategy"] = strategy
    if max_gap is not None:
        overrides["max_gap_seconds"] = str(max_gap)
    if min_duration is not None:
        overrides["min_duration_seconds"] = str(min_duration)
    if language is not None:
        overrides["language"] = language
    if segments is not None:
        overrides["segments"] = segments
    return overrides


def _load_sequence(path: str, centiseconds: bool):
    return build_sequence(load_segments(path, centiseconds=centiseconds))


@app.command()
def transcribe(
    audio: str = typer.Argument(..., help="Source recording."),
    segments: str = typer.Option(None, help="Pre-detected segments (.json in seconds or VAD text); skips VAD."),
    output: str = typer.Option(None, help="Output SRT path (default: <run dir>/transcribed.srt)."),
    strategy: str = typer.Option(None, help="Extraction strategy: segments, concatenated."),
    max_gap: float = typer.Option(None, help="Merge gap in seconds (overrides config)."),
    min_duration: float = typer.Option(None, help="Minimum merged duration in seconds (overrides config)."),
    language: str = typer.Option(None, help="Recognition language code (overrides config)."),
    centiseconds: bool = typer.Option(False, help="Segment text file values are centiseconds."),
    workdir: str = typer.Option(None, help="Workdir for outputs (overrides config)."),
    log_level: str = typer.Option(None, help="Log level (overrides config)."),
) -> None:
    """Transcribe a recording into a time-aligned SRT."""
    settings = Settings()

    # Apply CLI overrides on top of env/.env settings
    if strategy is not None:
        settings.strategy = strategy
    if max_gap is not None:
        settings.max_gap_seconds = max_gap
    if min_duration is not None:
        settings.min_duration_seconds = min_duration
    if language is not None:
        settings.language = language
    if workdir is not None:
        settings.workdir = workdir

    configure_logging(log_level or settings.log_level)

    try:
        flat = load_segments(segments, centiseconds=centiseconds) if segments else None
    except VadTimeError as err:
        _fail(err)

    workspace = Workspace.create(settings.workdir)
    job = Job(
        settings=settings,
        workspace=workspace,
        audio_path=Path(audio),
        output_path=Path(output) if output else None,
        cli_overrides=_collect_cli_overrides(
            strategy=strategy,
            max_gap=max_gap,
            min_duration=min_duration,
            language=language,
            segments=segments,
        ),
    )
    result = Pipeline().run(job, segments=flat)

    typer.echo(result.summary())
    if not result.success:
        _fail(
            VadTimeError(
                result.error_message or "transcription failed",
                category=ErrorCategory(result.error_category or "runtime"),
                exit_code=result.exit_code or 1,
            )
        )
    typer.echo(f"Done. run_id={workspace.run_id}")


@app.command()
def merge(
    segments_file: str = typer.Argument(..., help="Segments (.json in seconds or VAD text)."),
    max_gap: float = typer.Option(None, help="Merge gap in seconds (overrides config)."),
    min_duration: float = typer.Option(None, help="Minimum merged duration in seconds (overrides config)."),
    centiseconds: bool = typer.Option(False, help="Text file values are centiseconds."),
    json_output: bool = typer.Option(False, "--json", help="Output merged segments as JSON."),
) -> None:
    """Merge a segment list and print the result."""
    settings = Settings()
    gap = settings.max_gap_seconds if max_gap is None else max_gap
    min_dur = settings.min_duration_seconds if min_duration is None else min_duration

    try:
        original = _load_sequence(segments_file, centiseconds)
        merged = merge_segments(original, gap, min_dur)
    except VadTimeError as err:
        _fail(err)

    if json_output:
        payload = [
            {
                "index": m.index,
                "start_ms": m.start_ms,
                "end_ms": m.end_ms,
                "sources": [s.index for s in m.sources],
            }
            for m in merged
        ]
        typer.echo(json.dumps(payload, indent=2))
        return

    typer.echo(f"Merged {len(original)} segments into {len(merged)}:")
    for m in merged:
        typer.echo(f"{m}  <- {', '.join(str(s.index) for s in m.sources)}")


@app.command()
def stats(
    segments_file: str = typer.Argument(..., help="Segments (.json in seconds or VAD text)."),
    centiseconds: bool = typer.Option(False, help="Text file values are centiseconds."),
) -> None:
    """Print gap statistics for a segment list."""
    try:
        sequence = _load_sequence(segments_file, centiseconds)
    except VadTimeError as err:
        _fail(err)

    for key, value in sequence.gap_stats().items():
        shown = f"{value:.2f}" if isinstance(value, float) else ("n/a" if value is None else value)
        typer.echo(f"{key}\t{shown}")
    if not sequence.is_well_formed():
        typer.echo("warning: segments overlap or are out of order", err=True)


@app.command()
def config() -> None:
    """Print resolved config."""
    s = Settings()
    typer.echo(json.dumps(s.to_public_dict(), indent=2))


@app.command()
def runs(
    workdir: str = typer.Option(None, help="Workdir for outputs (overrides config)."),
    limit: int = typer.Option(5, help="Limit number of runs shown."),
    json_output: bool = typer.Option(False, "--json", help="Output runs as JSON."),
) -> None:
    """List recent runs."""
    root = _resolve_workdir(workdir)
    runs_list = _list_runs(root)
    if limit is not None and limit > 0:
        runs_list = runs_list[:limit]

    rows = []
    for run_dir in runs_list:
        manifest = _load_run_manifest(run_dir / "run.json")
        if not manifest:
            continue
        srt_path = manifest.get("subtitles_path")
        rows.append(
            {
                "run_id": run_dir.name,
                "started_at": manifest.get("started_at"),
                "duration_seconds_total": manifest.get("duration_seconds_total"),
                "success": bool(manifest.get("success")),
                "srt_present": bool(srt_path and Path(srt_path).exists()),
                "path": str(run_dir),
            }
        )

    if json_output:
        typer.echo(json.dumps(rows, indent=2))
        return

    typer.echo("run_id\tstarted_at\tduration_s\tsuccess\tsrt_present\tpath")
    for row in rows:
        duration = row["duration_seconds_total"]
        duration_str = f"{duration:.2f}" if isinstance(duration, (float, int)) else "n/a"
        typer.echo(
            f"{row['run_id']}\t{row['started_at'] or 'n/a'}\t{duration_str}\t"
            f"{str(row['success']).lower()}\t{str(row['srt_present']).lower()}\t{row['path']}"
        )


@app.command()
def inspect(
    run_id: str = typer.Argument(..., help="Run id or 'latest'."),
    workdir: str = typer.Option(None, help="Workdir for outputs (overrides config)."),
) -> None:
    """Pretty-print run.json for a run."""
    root = _resolve_workdir(workdir)
    run_dir = _resolve_run_dir(root, run_id)

    manifest = _load_run_manifest(run_dir / "run.json")
    if manifest is None:
        raise typer.BadParameter(f"run.json not found for run_id '{run_dir.name}'.")
    typer.echo(json.dumps(manifest, indent=2))


@app.command()
def doctor() -> None:
    """Run environment diagnostics."""
    settings = Settings()
    try:
        code = run_doctor(settings)
    except VadTimeError as err:
        _fail(err)
    raise typer.Exit(code=code)


def _main() -> None:
    app()


if __name__ == "__main__":
    _main()
