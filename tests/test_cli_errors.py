from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from vadtime.cli.main import app
from vadtime.exceptions import DependencyMissingError


def test_cli_reports_config_error(tmp_path: Path) -> None:
    audio = tmp_path / "talk.wav"
    audio.write_bytes(b"RIFF")

    runner = CliRunner(mix_stderr=False)
    result = runner.invoke(
        app,
        [
            "transcribe",
            str(audio),
            "--strategy",
            "bogus",
            "--workdir",
            str(tmp_path / ".vadtime"),
        ],
    )

    assert result.exit_code == 2
    assert "Configuration error: Invalid strategy 'bogus'" in result.stderr


def test_cli_reports_missing_audio(tmp_path: Path) -> None:
    runner = CliRunner(mix_stderr=False)
    result = runner.invoke(
        app,
        [
            "transcribe",
            str(tmp_path / "missing.wav"),
            "--workdir",
            str(tmp_path / ".vadtime"),
        ],
    )

    assert result.exit_code == 4
    assert "Input error: Source recording not found" in result.stderr


def test_cli_reports_dependency_error(monkeypatch) -> None:
    import vadtime.cli.main as cli_main

    def fake_run_doctor(_settings):  # noqa: ANN001
        raise DependencyMissingError("ffmpeg missing")

    monkeypatch.setattr(cli_main, "run_doctor", fake_run_doctor)

    runner = CliRunner(mix_stderr=False)
    result = runner.invoke(app, ["doctor"])

    assert result.exit_code == 3
    assert "Dependency error: ffmpeg missing" in result.stderr


def test_cli_merge_missing_file(tmp_path: Path) -> None:
    runner = CliRunner(mix_stderr=False)
    result = runner.invoke(app, ["merge", str(tmp_path / "none.json")])

    assert result.exit_code == 4
    assert "Input error" in result.stderr
