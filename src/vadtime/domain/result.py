from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from vadtime.utils.timing import utc_now


@dataclass(frozen=True)
class GeneratedFile:
    path: Path
    category: str
    description: str = ""
    size_bytes: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass
class PipelineResult:
    """
    Record of one pipeline run.

    Stages fill it in as they go; `Pipeline.run` finalizes `total_seconds`
    whether the run succeeded or not.
    """

    input_path: Path
    success: bool = False
    error_message: Optional[str] = None
    error_category: Optional[str] = None
    failed_stage: Optional[str] = None
    exit_code: int = 0

    detected_count: int = 0
    merged_count: int = 0
    extracted_count: int = 0
    transcribed_count: int = 0

    stage_seconds: Dict[str, float] = field(default_factory=dict)
    total_seconds: Optional[float] = None

    files: List[GeneratedFile] = field(default_factory=list)
    subtitles_path: Optional[Path] = None
    vad_output_path: Optional[Path] = None
    segments_dir: Optional[Path] = None
    segments_srt_dir: Optional[Path] = None

    def add_file(self, path: Path, category: str, description: str = "") -> GeneratedFile:
        path = Path(path)
        size = path.stat().st_size if path.exists() else None
        entry = GeneratedFile(
            path=path,
            category=category,
            description=description,
            size_bytes=size,
            created_at=utc_now(),
        )
        self.files.append(entry)
        return entry

    def files_by_category(self, category: str) -> List[GeneratedFile]:
        return [f for f in self.files if f.category == category]

    def summary(self) -> str:
        lines = [
            "=== Transcription summary ===",
            f"Status: {'success' if self.success else 'failed'}",
            f"Input: {self.input_path}",
            f"Detected segments: {self.detected_count}",
            f"Merged segments: {self.merged_count}",
            f"Extracted segments: {self.extracted_count}",
            f"Transcribed clips: {self.transcribed_count}",
            f"Generated files: {len(self.files)}",
        ]
        if self.total_seconds is not None:
            lines.append(f"Total time: {self.total_seconds:.2f}s")
        if self.subtitles_path is not None:
            lines.append(f"Subtitles: {self.subtitles_path}")
        if not self.success and self.error_message:
            stage = f" (stage: {self.failed_stage})" if self.failed_stage else ""
            lines.append(f"Error: {self.error_message}{stage}")
        return "\n".join(lines)
