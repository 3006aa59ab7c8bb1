from __future__ import annotations

import json
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from pydantic import BaseModel

from vadtime.domain.job import Job
from vadtime.domain.result import GeneratedFile, PipelineResult
from vadtime.utils.timing import StepTiming


def _iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat()


def _file_entry(entry: GeneratedFile) -> dict[str, Any]:
    return {
        "path": str(entry.path),
        "category": entry.category,
        "description": entry.description,
        "size_bytes": entry.size_bytes,
        "created_at": _iso(entry.created_at) if entry.created_at else None,
    }


def _find_repo_root(start: Path) -> Path | None:
    current = start
    for _ in range(6):
        if (current / ".git").exists():
            return current
        if current.parent == current:
            break
        current = current.parent
    return None


def _git_commit() -> str | None:
    root = _find_repo_root(Path(__file__).resolve())
    if root is None:
        return None
    try:
        proc = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            cwd=str(root),
            capture_output=True,
            text=True,
        )
    except OSError:
        return None
    if proc.returncode != 0:
        return None
    value = proc.stdout.strip()
    return value or None


def _serialize_steps(steps: Iterable[StepTiming]) -> list[dict[str, Any]]:
    serialized = []
    for step in steps:
        serialized.append(
            {
                "name": step.name,
                "started_at": _iso(step.started_at),
                "finished_at": _iso(step.finished_at),
                "duration_s": step.duration_s,
                "ok": step.ok,
            }
        )
    return serialized


class _StepModel(BaseModel):
    name: str
    started_at: str
    finished_at: str
    duration_s: float
    ok: bool = True


class _FileModel(BaseModel):
    path: str
    category: str
    description: str = ""
    size_bytes: int | None = None
    created_at: str | None = None


class RunManifest(BaseModel):
    run_id: str
    started_at: str
    finished_at: str
    duration_seconds_total: float
    git_commit: str | None = None
    settings_public: dict[str, Any]
    cli_overrides: dict[str, str]
    input_path: str
    success: bool
    error_message: str | None = None
    error_category: str | None = None
    failed_stage: str | None = None
    counts: dict[str, int]
    steps: list[_StepModel]
    stage_seconds: dict[str, float]
    subtitles_path: str | None = None
    files: list[_FileModel]


def validate_run_manifest(payload: dict[str, Any]) -> RunManifest:
    """Check a run.json payload; raises ValueError naming the offending fields."""
    return RunManifest.model_validate(payload)


def build_run_manifest(
    *,
    job: Job,
    result: PipelineResult,
    steps: Iterable[StepTiming],
    started_at: datetime,
    finished_at: datetime,
) -> dict[str, Any]:
    return {
        "run_id": job.workspace.run_id,
        "started_at": _iso(started_at),
        "finished_at": _iso(finished_at),
        "duration_seconds_total": (finished_at - started_at).total_seconds(),
        "git_commit": _git_commit(),
        "settings_public": job.settings.to_public_dict(),
        "cli_overrides": job.cli_overrides,
        "input_path": str(result.input_path),
        "success": result.success,
        "error_message": result.error_message,
        "error_category": result.error_category,
        "failed_stage": result.failed_stage,
        "counts": {
            "detected": result.detected_count,
            "merged": result.merged_count,
            "extracted": result.extracted_count,
            "transcribed": result.transcribed_count,
        },
        "steps": _serialize_steps(steps),
        "stage_seconds": result.stage_seconds,
        "subtitles_path": str(result.subtitles_path) if result.subtitles_path else None,
        "files": [_file_entry(f) for f in result.files],
    }


def write_run_manifest(
    *,
    job: Job,
    result: PipelineResult,
    steps: Iterable[StepTiming],
    started_at: datetime,
    finished_at: datetime,
) -> Path:
    payload = build_run_manifest(
        job=job,
        result=result,
        steps=steps,
        started_at=started_at,
        finished_at=finished_at,
    )
    validate_run_manifest(payload)
    out = job.workspace.run_manifest
    out.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return out
