from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Iterable, Sequence

from vadtime.exceptions import ExtractionError, VadTimeError
from vadtime.utils.checks import require_binary


def ensure_ffmpeg() -> None:
    require_binary("ffmpeg")


def build_extract_segment_cmd(
    source: str | Path,
    out: str | Path,
    *,
    start_seconds: float,
    duration_seconds: float,
) -> list[str]:
    # -ss after -i: decode-accurate seek, the clip must start on the VAD boundary.
    return [
        "ffmpeg",
        "-y",
        "-hide_banner",
        "-loglevel",
        "error",
        "-i",
        str(source),
        "-ss",
        f"{start_seconds:.3f}",
        "-t",
        f"{duration_seconds:.3f}",
        "-c:a",
        "pcm_s16le",
        str(out),
    ]


def build_concat_filter(windows: Sequence[tuple[float, float]]) -> str:
    """Filter graph that trims each (start_s, end_s) window and concatenates them."""
    if not windows:
        raise VadTimeError("At least one window is required to build a concat filter.")
    count = len(windows)
    split_outputs = "".join(f"[s{i}]" for i in range(count))
    parts = [f"[0:a]asplit={count}{split_outputs}"]
    for i, (start, end) in enumerate(windows):
        parts.append(f"[s{i}]atrim={start:.3f}:{end:.3f},asetpts=PTS-STARTPTS[a{i}]")
    labels = "".join(f"[a{i}]" for i in range(count))
    parts.append(f"{labels}concat=n={count}:v=0:a=1[out]")
    return ";".join(parts)


def build_concat_segments_cmd(
    source: str | Path,
    out: str | Path,
    *,
    windows: Iterable[tuple[float, float]],
) -> list[str]:
    return [
        "ffmpeg",
        "-y",
        "-hide_banner",
        "-loglevel",
        "error",
        "-i",
        str(source),
        "-filter_complex",
        build_concat_filter(list(windows)),
        "-map",
        "[out]",
        "-c:a",
        "pcm_s16le",
        str(out),
    ]


def run_ffmpeg(cmd: list[str]) -> subprocess.CompletedProcess[str]:
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True)
    except FileNotFoundError as exc:
        raise ExtractionError(f"ffmpeg could not be started: {exc}") from exc
    if proc.returncode != 0:
        raise ExtractionError(
            f"ffmpeg failed with exit code {proc.returncode}.\n"
            f"STDOUT:\n{proc.stdout}\n\n"
            f"STDERR:\n{proc.stderr}"
        )
    return proc

