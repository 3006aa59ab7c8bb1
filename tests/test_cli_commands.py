from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from vadtime.cli.main import app
from vadtime.domain.result import PipelineResult


def _segments_file(tmp_path: Path) -> Path:
    path = tmp_path / "segments.json"
    path.write_text(
        json.dumps(
            [
                {"index": 0, "start": 0.0, "end": 1.0},
                {"index": 1, "start": 1.4, "end": 2.0},
                {"index": 2, "start": 6.0, "end": 8.0},
            ]
        ),
        encoding="utf-8",
    )
    return path


def test_merge_json(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["merge", str(_segments_file(tmp_path)), "--json"])

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert [(m["start_ms"], m["end_ms"]) for m in payload] == [(0.0, 2000.0), (6000.0, 8000.0)]
    assert payload[0]["sources"] == [0, 1]


def test_merge_text_with_larger_gap(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["merge", str(_segments_file(tmp_path)), "--max-gap", "5"])

    assert result.exit_code == 0
    assert "Merged 3 segments into 1:" in result.output
    assert "0: 0.00s - 8.00s" in result.output


def test_merge_centiseconds_text(tmp_path: Path) -> None:
    path = tmp_path / "vad.txt"
    path.write_text(
        "Speech segment 0: start = 0.00, end = 50.00\nSpeech segment 1: start = 700.00, end = 900.00\n",
        encoding="utf-8",
    )
    runner = CliRunner()
    result = runner.invoke(app, ["merge", str(path), "--centiseconds", "--json"])

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert [(m["start_ms"], m["end_ms"]) for m in payload] == [(0.0, 500.0), (7000.0, 9000.0)]


def test_stats(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["stats", str(_segments_file(tmp_path))])

    assert result.exit_code == 0
    assert "count\t3" in result.output
    assert "max_gap_seconds\t4.00" in result.output


def test_config_prints_public_settings() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["config"])

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert "max_gap_seconds" in payload
    assert "strategy" in payload


def test_transcribe_passes_segments_and_overrides(monkeypatch, tmp_path: Path) -> None:
    import vadtime.cli.main as cli_main

    seen = {}

    class FakePipeline:
        def run(self, job, *, segments=None):  # noqa: ANN001
            seen["job"] = job
            seen["segments"] = segments
            return PipelineResult(input_path=job.audio_path, success=True)

    monkeypatch.setattr(cli_main, "Pipeline", FakePipeline)
    audio = tmp_path / "talk.wav"
    audio.write_bytes(b"RIFF")

    runner = CliRunner()
    result = runner.invoke(
        app,
        [
            "transcribe",
            str(audio),
            "--segments",
            str(_segments_file(tmp_path)),
            "--max-gap",
            "3",
            "--output",
            str(tmp_path / "out.srt"),
            "--workdir",
            str(tmp_path / ".vadtime"),
        ],
    )

    assert result.exit_code == 0
    assert "Done. run_id=" in result.output
    job = seen["job"]
    assert job.settings.max_gap_seconds == 3.0
    assert job.output_path == tmp_path / "out.srt"
    assert job.cli_overrides["max_gap_seconds"] == "3.0"
    assert seen["segments"][2] == (2, 6000.0, 8000.0)
