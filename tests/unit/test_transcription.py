from __future__ import annotations

import sys
import threading
import time
from pathlib import Path
from types import SimpleNamespace

import pytest

from vadtime.config.settings import Settings
from vadtime.domain.subtitles import RecognizedSpan
from vadtime.exceptions import ConfigurationError
from vadtime.services import transcription
from vadtime.services.transcription import (
    _spans_from_segments,
    create_recognizer,
    transcribe_all,
    write_clip_srt,
)


class FakeRecognizer:
    def __init__(self, fail_on: str | None = None, delay: float = 0.0) -> None:
        self.fail_on = fail_on
        self.delay = delay
        self.calls: list[Path] = []
        self.active = 0
        self.peak = 0
        self._lock = threading.Lock()

    def transcribe(self, clip_path: Path, *, temperature: float = 0.0):
        with self._lock:
            self.calls.append(clip_path)
            self.active += 1
            self.peak = max(self.peak, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            if clip_path.name == self.fail_on:
                raise RuntimeError("engine crashed")
            return [RecognizedSpan(index=1, start_ms=0, end_ms=500, text=f"text of {clip_path.stem}")]
        finally:
            with self._lock:
                self.active -= 1


def _clips(tmp_path: Path, count: int) -> list[Path]:
    paths = []
    for i in range(count):
        p = tmp_path / f"merged_segment_{i:03d}.wav"
        p.write_bytes(b"clip")
        paths.append(p)
    return paths


def test_failure_of_one_clip_keeps_order_and_siblings(tmp_path: Path) -> None:
    clips = _clips(tmp_path, 5)
    recognizer = FakeRecognizer(fail_on="merged_segment_002.wav")

    results = transcribe_all(clips, recognizer)

    assert [r.clip_path for r in results] == clips
    assert [r.success for r in results] == [True, True, False, True, True]
    assert results[2].spans == ()
    assert "engine crashed" in (results[2].error or "")
    assert results[4].text == "text of merged_segment_004"
    assert len(recognizer.calls) == 5


def test_missing_clip_is_recorded_as_failure(tmp_path: Path) -> None:
    clips = _clips(tmp_path, 1) + [tmp_path / "gone.wav"]
    results = transcribe_all(clips, FakeRecognizer())

    assert [r.success for r in results] == [True, False]


def test_max_concurrency_caps_parallel_calls(tmp_path: Path) -> None:
    clips = _clips(tmp_path, 6)
    recognizer = FakeRecognizer(delay=0.05)

    results = transcribe_all(clips, recognizer, max_concurrency=2)

    assert all(r.success for r in results)
    assert recognizer.peak <= 2


def test_empty_clip_list() -> None:
    assert transcribe_all([], FakeRecognizer()) == []


def test_spans_from_segments_accepts_objects_and_dicts() -> None:
    spans = _spans_from_segments(
        [
            SimpleNamespace(start=0.5, end=1.25, text=" hello "),
            {"start": 2, "end": 3, "text": "world"},
        ]
    )
    assert spans[0] == RecognizedSpan(index=1, start_ms=500.0, end_ms=1250.0, text="hello")
    assert spans[1].index == 2
    assert spans[1].start_ms == 2000.0


def test_openai_backend_requires_api_key(monkeypatch) -> None:
    monkeypatch.delenv("VADTIME_OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    settings = Settings()
    settings.asr_backend = "openai"

    with pytest.raises(ConfigurationError):
        create_recognizer(settings)


def test_create_recognizer_uses_faster_whisper(monkeypatch) -> None:
    created = {}

    class FakeFW:
        def __init__(self, model, **kwargs):  # noqa: ANN001, ANN003
            created["model"] = model
            created.update(kwargs)

    monkeypatch.setattr(transcription, "FasterWhisperRecognizer", FakeFW)
    settings = Settings()
    settings.whisper_model = "small"
    settings.language = "fr"

    recognizer = create_recognizer(settings)

    assert isinstance(recognizer, FakeFW)
    assert created["model"] == "small"
    assert created["language"] == "fr"


def test_faster_whisper_model_built_once_across_concurrent_clips(monkeypatch, tmp_path: Path) -> None:
    built: list[str] = []
    built_lock = threading.Lock()

    class SlowWhisperModel:
        def __init__(self, name, **kwargs):  # noqa: ANN001, ANN003
            time.sleep(0.05)
            with built_lock:
                built.append(name)

        def transcribe(self, path, **kwargs):  # noqa: ANN001, ANN003
            return iter([SimpleNamespace(start=0.0, end=0.5, text="hi")]), None

    monkeypatch.setitem(sys.modules, "faster_whisper", SimpleNamespace(WhisperModel=SlowWhisperModel))
    recognizer = transcription.FasterWhisperRecognizer("base")

    results = transcribe_all(_clips(tmp_path, 6), recognizer)

    assert all(r.success for r in results)
    assert built == ["base"]


def test_write_clip_srt(tmp_path: Path) -> None:
    clip = tmp_path / "merged_segment_001.wav"
    result = transcription.ClipTranscription(
        clip_path=clip,
        spans=(RecognizedSpan(index=1, start_ms=0, end_ms=1500, text="bonjour"),),
    )
    out = write_clip_srt(result, tmp_path / "segments_srt")

    assert out.name == "merged_segment_001.srt"
    assert "00:00:00,000 --> 00:00:01,500" in out.read_text(encoding="utf-8")
