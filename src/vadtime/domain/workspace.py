from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import uuid


@dataclass(frozen=True)
class Workspace:
    root: Path
    run_id: str

    @classmethod
    def create(cls, workdir: str, run_id: str | None = None) -> "Workspace":
        rid = run_id or uuid.uuid4().hex[:12]
        root = Path(workdir).expanduser().resolve() / rid
        root.mkdir(parents=True, exist_ok=True)
        return cls(root=root, run_id=rid)

    def path(self, name: str) -> Path:
        p = self.root / name
        p.parent.mkdir(parents=True, exist_ok=True)
        return p

    @property
    def vad_output_txt(self) -> Path:
        return self.path("vad_output.txt")

    # Clip directories are created by whichever stage first writes into them.
    @property
    def segments_dir(self) -> Path:
        return self.root / "segments"

    @property
    def segments_srt_dir(self) -> Path:
        return self.root / "segments_srt"

    @property
    def merged_audio_wav(self) -> Path:
        return self.path("merged_audio.wav")

    @property
    def subtitles_srt(self) -> Path:
        return self.path("transcribed.srt")

    @property
    def run_manifest(self) -> Path:
        return self.path("run.json")
