"""
Voice activity detection adapter.

Responsibilities:
- Run the whisper.cpp speech-segment detector as a subprocess
- Parse its text output into (index, start_ms, end_ms) triples
- Load and save pre-computed segment lists (text or JSON)

Does NOT:
- Implement detection itself
- Merge or reorder segments

Notes:
- The detector prints values labelled as seconds that are really
  centiseconds. `parse_vad_output(centiseconds=True)` converts them to ms
  with a factor of 10; files written by `format_vad_output` are real seconds
  and are read back with `centiseconds=False`.
"""

from __future__ import annotations

import json
import logging
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from vadtime.config.settings import Settings
from vadtime.domain.segments import SpeechSequence
from vadtime.exceptions import ConfigurationError, InputValidationError, VadTimeError
from vadtime.utils.checks import require_binary, require_input_file, require_model
from vadtime.utils.logging import get_logger, resolve_logger

log = get_logger(__name__)

SEGMENT_LINE_RE = re.compile(r"Speech segment (\d+): start = ([\d.]+), end = ([\d.]+)")

Triple = Tuple[int, float, float]


def parse_vad_output(text: str, *, centiseconds: bool = True) -> List[Triple]:
    factor = 10.0 if centiseconds else 1000.0
    segments: List[Triple] = []
    for line in text.splitlines():
        match = SEGMENT_LINE_RE.search(line)
        if not match:
            continue
        segments.append(
            (
                int(match.group(1)),
                float(match.group(2)) * factor,
                float(match.group(3)) * factor,
            )
        )
    return segments


def format_vad_output(sequence: SpeechSequence) -> str:
    lines = [
        f"Speech segment {s.index}: start = {s.start_seconds:.2f}, end = {s.end_seconds:.2f}"
        for s in sequence
    ]
    return "\n".join(lines) + ("\n" if lines else "")


def save_segments(sequence: SpeechSequence, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(format_vad_output(sequence), encoding="utf-8")
    return path


def _triples_from_json(payload) -> List[Triple]:
    items = payload.get("segments", []) if isinstance(payload, dict) else payload
    if not isinstance(items, list):
        raise InputValidationError("Segment JSON must be a list or contain a 'segments' list.")
    triples: List[Triple] = []
    for i, item in enumerate(items):
        try:
            if isinstance(item, dict):
                if item.get("is_speech") is False:
                    continue
                triples.append((int(item.get("index", i)), float(item["start"]) * 1000, float(item["end"]) * 1000))
            else:
                index, start, end = item
                triples.append((int(index), float(start) * 1000, float(end) * 1000))
        except (KeyError, TypeError, ValueError) as exc:
            raise InputValidationError(f"Malformed segment #{i} in JSON: {item!r}") from exc
    return triples


def load_segments(path: str | Path, *, centiseconds: bool = False) -> List[Triple]:
    """
    Read segments from a `.json` file (seconds) or a detector-style text file.

    `centiseconds` applies only to the text format.
    """
    p = require_input_file(path, what="segment file")
    content = p.read_text(encoding="utf-8")
    if p.suffix.lower() == ".json":
        try:
            payload = json.loads(content)
        except json.JSONDecodeError as exc:
            raise InputValidationError(f"Invalid segment JSON in {p}: {exc}") from exc
        return _triples_from_json(payload)
    return parse_vad_output(content, centiseconds=centiseconds)


@dataclass
class WhisperCppVadDetector:
    binary: str
    model_path: str
    threshold: float = 0.5
    min_speech_ms: int = 250
    min_silence_ms: int = 100
    max_speech_s: Optional[float] = 15.0
    speech_pad_ms: int = 30
    samples_overlap: float = 0.10
    threads: int = 4
    use_gpu: bool = False
    centiseconds: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "WhisperCppVadDetector":
        return cls(
            binary=settings.vad_binary,
            model_path=settings.vad_model_path,
            threshold=settings.vad_threshold,
            min_speech_ms=settings.vad_min_speech_ms,
            min_silence_ms=settings.vad_min_silence_ms,
            max_speech_s=settings.vad_max_speech_s,
            speech_pad_ms=settings.vad_speech_pad_ms,
            samples_overlap=settings.vad_samples_overlap,
            threads=settings.vad_threads,
            use_gpu=settings.vad_use_gpu,
            centiseconds=settings.vad_centiseconds,
        )

    def build_cmd(self, audio_path: str | Path, *, binary: str | None = None) -> list[str]:
        cmd = [
            binary or self.binary,
            "-f",
            str(audio_path),
            "--vad-model",
            str(self.model_path),
            "--vad-threshold",
            f"{self.threshold:.2f}",
            "--vad-min-speech-duration-ms",
            str(self.min_speech_ms),
            "--vad-min-silence-duration-ms",
            str(self.min_silence_ms),
            "--vad-speech-pad-ms",
            str(self.speech_pad_ms),
            "--vad-samples-overlap",
            f"{self.samples_overlap:.2f}",
            "-t",
            str(self.threads),
        ]
        if self.max_speech_s is not None:
            cmd += ["--vad-max-speech-duration-s", f"{self.max_speech_s:.2f}"]
        if self.use_gpu:
            cmd.append("-ug")
        return cmd

    def detect(self, audio_path: str | Path, *, log: Optional[logging.Logger] = None) -> List[Triple]:
        log = resolve_logger(log, __name__)
        if not 0.0 <= self.threshold <= 1.0:
            raise ConfigurationError("VAD threshold must be between 0.0 and 1.0.")
        audio = require_input_file(audio_path, what="audio file")
        require_model(self.model_path, what="VAD model")
        binary = require_binary(self.binary)

        cmd = self.build_cmd(audio, binary=binary)
        log.info(
            "Running VAD on %s (threshold=%.2f, min_speech=%dms, min_silence=%dms)",
            audio,
            self.threshold,
            self.min_speech_ms,
            self.min_silence_ms,
        )
        log.debug("VAD command: %s", " ".join(cmd))
        proc = subprocess.run(cmd, capture_output=True, text=True)
        if proc.returncode != 0:
            raise VadTimeError(f"VAD failed with exit code {proc.returncode}: {proc.stderr.strip()}")

        # The detector reports segments on either stream depending on build.
        output = (proc.stdout or "") + (proc.stderr or "")
        if not output.strip():
            raise VadTimeError("VAD returned no output.")
        segments = parse_vad_output(output, centiseconds=self.centiseconds)
        log.info("Detected %d speech segments", len(segments))
        return segments
