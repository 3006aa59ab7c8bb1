from __future__ import annotations

from pathlib import Path
from typing import Iterable, List

from vadtime.domain.subtitles import SubtitleEntry


def format_srt_time(ms: float) -> str:
    # ms -> "HH:MM:SS,mmm"
    total = int(round(max(ms, 0.0)))
    hh, rem = divmod(total, 3_600_000)
    mm, rem = divmod(rem, 60_000)
    ss, mmm = divmod(rem, 1000)
    return f"{hh:02d}:{mm:02d}:{ss:02d},{mmm:03d}"


def render_srt(entries: Iterable[SubtitleEntry]) -> str:
    blocks: List[str] = []
    for entry in entries:
        blocks.append(
            "\n".join(
                [
                    str(entry.index),
                    f"{format_srt_time(entry.start_ms)} --> {format_srt_time(entry.end_ms)}",
                    entry.text,
                ]
            )
        )
    if not blocks:
        return ""
    return "\n\n".join(blocks) + "\n"


def write_srt(entries: Iterable[SubtitleEntry], path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_srt(entries), encoding="utf-8")
    return path

