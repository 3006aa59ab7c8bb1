from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple


@dataclass(frozen=True)
class RecognizedSpan:
    """Recognizer output for one clip; times are relative to the clip's start."""

    index: int
    start_ms: float
    end_ms: float
    text: str = ""


@dataclass(frozen=True)
class SubtitleEntry:
    """Final subtitle cue; times are absolute in the source recording."""

    index: int
    start_ms: float
    end_ms: float
    text: str = ""


@dataclass(frozen=True)
class ClipTranscription:
    clip_path: Path
    spans: Tuple[RecognizedSpan, ...] = field(default=())
    success: bool = True
    error: Optional[str] = None

    @property
    def text(self) -> str:
        return join_span_text(self.spans)


def join_span_text(spans) -> str:
    """Join span texts with single spaces, skipping blank ones."""
    parts = [str(span.text).strip() for span in spans]
    return " ".join(p for p in parts if p)
