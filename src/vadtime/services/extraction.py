"""
Audio extraction for merged speech segments.

Responsibilities:
- Turn merged segments into ffmpeg extraction requests (`plan_extraction`)
- Run those requests one at a time, failing the run on the first error
- Build the single concatenated clip used by the alternate strategy

Does NOT:
- Decide segment boundaries (services.merge does)
- Retry failed extractions; every clip is a required input
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from vadtime.domain.segments import SpeechSequence
from vadtime.exceptions import ExtractionError, InputValidationError
from vadtime.utils import ffmpeg
from vadtime.utils.checks import require_input_file
from vadtime.utils.logging import resolve_logger

DEFAULT_PREFIX = "merged_segment"

Runner = Callable[[list], object]


@dataclass(frozen=True)
class ExtractionRequest:
    index: int
    start_seconds: float
    duration_seconds: float
    output_path: Path

    @property
    def output_name(self) -> str:
        return self.output_path.stem


@dataclass(frozen=True)
class ExtractionPlan:
    source: Path
    requests: Tuple[ExtractionRequest, ...] = field(default=())

    @property
    def use_source_directly(self) -> bool:
        return not self.requests

    @property
    def clip_paths(self) -> List[Path]:
        if self.use_source_directly:
            return [self.source]
        return [r.output_path for r in self.requests]


def plan_extraction(
    merged: SpeechSequence,
    *,
    source: str | Path,
    output_dir: str | Path,
    prefix: str = DEFAULT_PREFIX,
) -> ExtractionPlan:
    """
    Plan one extraction per merged segment.

    A single merged segment spans all detected speech, so the source file is
    transcribed as-is and no request is produced.
    """
    if len(merged) == 0:
        raise InputValidationError("No merged segments to extract.")
    source_path = require_input_file(source, what="source recording")

    if len(merged) == 1:
        return ExtractionPlan(source=source_path)

    out_dir = Path(output_dir)
    requests = tuple(
        ExtractionRequest(
            index=interval.index,
            start_seconds=interval.start_ms / 1000,
            duration_seconds=interval.duration_ms / 1000,
            output_path=out_dir / f"{prefix}_{interval.index:03d}.wav",
        )
        for interval in merged
    )
    return ExtractionPlan(source=source_path, requests=requests)


def extract_segments(
    plan: ExtractionPlan,
    *,
    run: Runner = ffmpeg.run_ffmpeg,
    log: Optional[logging.Logger] = None,
) -> List[Path]:
    """Run every request in order and return the clip paths to transcribe."""
    log = resolve_logger(log, __name__)
    if plan.use_source_directly:
        log.info("Single merged segment; transcribing source directly: %s", plan.source)
        return [plan.source]

    require_input_file(plan.source, what="source recording")
    out_dir = plan.requests[0].output_path.parent
    out_dir.mkdir(parents=True, exist_ok=True)

    log.info("Extracting %d segments from %s -> %s", len(plan.requests), plan.source, out_dir)
    extracted: List[Path] = []
    for request in plan.requests:
        cmd = ffmpeg.build_extract_segment_cmd(
            plan.source,
            request.output_path,
            start_seconds=request.start_seconds,
            duration_seconds=request.duration_seconds,
        )
        log.debug(
            "Extracting segment %d: %.2fs +%.2fs -> %s",
            request.index,
            request.start_seconds,
            request.duration_seconds,
            request.output_path,
        )
        try:
            run(cmd)
        except ExtractionError:
            raise
        except Exception as exc:
            raise ExtractionError(f"Extraction of segment {request.index} failed: {exc}") from exc
        if not request.output_path.exists():
            raise ExtractionError(
                f"Extraction of segment {request.index} produced no file: {request.output_path}"
            )
        extracted.append(request.output_path)

    log.info("Extracted %d segments", len(extracted))
    return extracted


def build_concatenated_clip(
    merged: SpeechSequence,
    *,
    source: str | Path,
    output_path: str | Path,
    run: Runner = ffmpeg.run_ffmpeg,
    log: Optional[logging.Logger] = None,
) -> Path:
    """Trim every merged window out of `source` and join them into one PCM clip."""
    log = resolve_logger(log, __name__)
    if len(merged) == 0:
        raise InputValidationError("No merged segments to concatenate.")
    source_path = require_input_file(source, what="source recording")
    out = Path(output_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    windows = [(m.start_ms / 1000, m.end_ms / 1000) for m in merged]
    cmd = ffmpeg.build_concat_segments_cmd(source_path, out, windows=windows)
    log.info("Concatenating %d merged segments -> %s", len(windows), out)
    try:
        run(cmd)
    except ExtractionError:
        raise
    except Exception as exc:
        raise ExtractionError(f"Concatenation failed: {exc}") from exc
    if not out.exists():
        raise ExtractionError(f"Concatenation produced no file: {out}")
    return out
