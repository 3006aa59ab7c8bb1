from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from vadtime.config.settings import Settings
from vadtime.domain.workspace import Workspace


@dataclass
class Job:
    """Execution context for one recording: settings, workspace and target paths."""

    settings: Settings
    workspace: Workspace
    audio_path: Path
    output_path: Optional[Path] = None
    cli_overrides: dict[str, str] = field(default_factory=dict)

    @property
    def subtitles_path(self) -> Path:
        return self.output_path or self.workspace.subtitles_srt
