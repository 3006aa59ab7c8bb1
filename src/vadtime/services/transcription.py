"""
Concurrent speech recognition over extracted clips.

Responsibilities:
- Adapt recognizer engines (faster-whisper, OpenAI) to one `Recognizer` protocol
- Fan out one recognition call per clip and join them all (`transcribe_all`)
- Keep results in clip order and record per-clip failures

Does NOT:
- Cancel sibling calls when one clip fails
- Impose timeouts beyond the engine's own
- Map clip-relative times back to the recording (services.reassembly does)
"""

from __future__ import annotations

import asyncio
import logging
import os
import threading
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from vadtime.config.settings import Settings
from vadtime.domain.subtitles import ClipTranscription, RecognizedSpan, SubtitleEntry
from vadtime.exceptions import ConfigurationError, DependencyMissingError
from vadtime.utils.logging import get_logger, resolve_logger
from vadtime.utils.srt import write_srt

log = get_logger(__name__)


class Recognizer(Protocol):
    def transcribe(self, clip_path: Path, *, temperature: float = 0.0) -> List[RecognizedSpan]: ...


def _spans_from_segments(segments) -> List[RecognizedSpan]:
    """Convert object-like or dict-like (start, end, text) segments in seconds."""
    spans: List[RecognizedSpan] = []
    for i, seg in enumerate(segments, start=1):
        if isinstance(seg, dict):
            start, end, text = seg["start"], seg["end"], seg.get("text", "")
        else:
            start, end, text = seg.start, seg.end, getattr(seg, "text", "")
        spans.append(
            RecognizedSpan(
                index=i,
                start_ms=float(start) * 1000,
                end_ms=float(end) * 1000,
                text=str(text or "").strip(),
            )
        )
    return spans


class FasterWhisperRecognizer:
    """faster-whisper backend; the model is loaded on first use and then shared."""

    def __init__(
        self,
        model: str = "base",
        *,
        device: str = "cpu",
        compute_type: str = "int8",
        language: str | None = None,
    ) -> None:
        try:
            from faster_whisper import WhisperModel  # type: ignore
        except ImportError as exc:
            raise DependencyMissingError(
                "faster-whisper not installed; install the 'whisper' extra to transcribe locally."
            ) from exc
        self._model_cls = WhisperModel
        self._model_name = model
        self._device = device
        self._compute_type = compute_type
        self._language = language
        self._model = None
        self._model_lock = threading.Lock()

    def _load(self):
        # Clips arrive on worker threads; only one of them may build the model.
        if self._model is None:
            with self._model_lock:
                if self._model is None:
                    self._model = self._model_cls(
                        self._model_name,
                        device=self._device,
                        compute_type=self._compute_type,
                    )
        return self._model

    def transcribe(self, clip_path: Path, *, temperature: float = 0.0) -> List[RecognizedSpan]:
        model = self._load()
        segments, _info = model.transcribe(
            str(clip_path),
            language=self._language,
            temperature=temperature,
        )
        return _spans_from_segments(list(segments))


class OpenAIRecognizer:
    """
    OpenAI transcription backend.

    Uses `response_format="verbose_json"` to obtain segment timestamps.
    """

    def __init__(self, api_key: str, model: str = "whisper-1", *, language: str | None = None) -> None:
        try:
            from openai import OpenAI  # local import
        except ImportError as exc:
            raise DependencyMissingError("openai not installed; cannot use the openai backend.") from exc

        self._client = OpenAI(api_key=api_key)
        self._model = model
        self._language = language

    def transcribe(self, clip_path: Path, *, temperature: float = 0.0) -> List[RecognizedSpan]:
        kwargs = {
            "model": self._model,
            "response_format": "verbose_json",
            "temperature": temperature,
        }
        if self._language:
            kwargs["language"] = self._language
        with Path(clip_path).open("rb") as f:
            resp = self._client.audio.transcriptions.create(file=f, **kwargs)

        segments = getattr(resp, "segments", None)
        if segments is None and isinstance(resp, dict):
            segments = resp.get("segments")
        if not segments:
            text = getattr(resp, "text", None)
            if text is None and isinstance(resp, dict):
                text = resp.get("text")
            duration = getattr(resp, "duration", None) or 0.0
            return [RecognizedSpan(index=1, start_ms=0.0, end_ms=float(duration) * 1000, text=str(text or "").strip())]
        return _spans_from_segments(segments)


def create_recognizer(settings: Settings) -> Recognizer:
    if settings.asr_backend == "faster-whisper":
        log.info("Recognizer: faster-whisper (%s on %s)", settings.whisper_model, settings.whisper_device)
        return FasterWhisperRecognizer(
            settings.whisper_model,
            device=settings.whisper_device,
            compute_type=settings.whisper_compute_type,
            language=settings.language,
        )
    if settings.asr_backend == "openai":
        api_key = os.getenv("VADTIME_OPENAI_API_KEY") or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ConfigurationError("VADTIME_OPENAI_API_KEY is required for the openai backend.")
        log.info("Recognizer: OpenAI transcription (%s)", settings.openai_model)
        return OpenAIRecognizer(api_key, settings.openai_model, language=settings.language)
    raise ConfigurationError(f"Unknown asr_backend '{settings.asr_backend}'.")


async def _transcribe_one(
    clip_path: Path,
    recognizer: Recognizer,
    *,
    temperature: float,
    semaphore: Optional[asyncio.Semaphore],
    log: logging.Logger,
) -> ClipTranscription:
    try:
        if not clip_path.exists():
            raise FileNotFoundError(f"clip not found: {clip_path}")
        if semaphore is None:
            spans = await asyncio.to_thread(recognizer.transcribe, clip_path, temperature=temperature)
        else:
            async with semaphore:
                spans = await asyncio.to_thread(recognizer.transcribe, clip_path, temperature=temperature)
    except Exception as exc:
        log.error("Transcription failed for %s: %s", clip_path, exc)
        return ClipTranscription(clip_path=clip_path, spans=(), success=False, error=str(exc))
    return ClipTranscription(clip_path=clip_path, spans=tuple(spans), success=True)


async def transcribe_all_async(
    clip_paths: Sequence[str | Path],
    recognizer: Recognizer,
    *,
    temperature: float = 0.0,
    max_concurrency: int | None = None,
    log: Optional[logging.Logger] = None,
) -> List[ClipTranscription]:
    log = resolve_logger(log, __name__)
    semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None
    paths = [Path(p) for p in clip_paths]
    results = await asyncio.gather(
        *(
            _transcribe_one(p, recognizer, temperature=temperature, semaphore=semaphore, log=log)
            for p in paths
        )
    )
    succeeded = sum(1 for r in results if r.success)
    log.info("Transcribed %d/%d clips", succeeded, len(results))
    return list(results)


def transcribe_all(
    clip_paths: Sequence[str | Path],
    recognizer: Recognizer,
    *,
    temperature: float = 0.0,
    max_concurrency: int | None = None,
    log: Optional[logging.Logger] = None,
) -> List[ClipTranscription]:
    """
    Transcribe every clip concurrently and wait for all of them.

    The result list is aligned with `clip_paths`. A clip whose call raises is
    returned with `success=False` and no spans; this function itself does not
    raise for per-clip failures.
    """
    return asyncio.run(
        transcribe_all_async(
            clip_paths,
            recognizer,
            temperature=temperature,
            max_concurrency=max_concurrency,
            log=log,
        )
    )


def write_clip_srt(transcription: ClipTranscription, out_dir: Path) -> Path:
    """Persist one clip's spans as an SRT named after the clip."""
    entries = [
        SubtitleEntry(index=i, start_ms=span.start_ms, end_ms=span.end_ms, text=span.text)
        for i, span in enumerate(transcription.spans, start=1)
    ]
    return write_srt(entries, Path(out_dir) / f"{transcription.clip_path.stem}.srt")
