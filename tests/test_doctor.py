from __future__ import annotations

from vadtime.config.settings import Settings
from vadtime.utils import doctor


def _patch_common(monkeypatch, *, modules_ok: bool = True) -> None:
    monkeypatch.setattr(doctor, "_check_writable", lambda _: True)
    monkeypatch.setattr(doctor, "_module_available", lambda _: modules_ok)
    monkeypatch.setattr(doctor, "_get_version", lambda: "0.0.0")
    monkeypatch.setattr(doctor, "_binary_found", lambda _: True)


def test_doctor_all_ok(monkeypatch, capsys) -> None:
    def fake_run(cmd):  # noqa: ANN001
        if cmd[0] == "ffmpeg":
            return 0, "ffmpeg version x"
        return 0, ""

    monkeypatch.setattr(doctor, "_run_cmd", fake_run)
    _patch_common(monkeypatch)

    settings = Settings()
    code = doctor.run_doctor(settings)
    out = capsys.readouterr().out

    assert code == 0
    assert "ffmpeg version x" in out
    assert "faster-whisper (available)" in out


def test_doctor_missing_ffmpeg(monkeypatch, capsys) -> None:
    def fake_run(cmd):  # noqa: ANN001
        if cmd[0] == "ffmpeg":
            return 1, ""
        return 0, ""

    monkeypatch.setattr(doctor, "_run_cmd", fake_run)
    _patch_common(monkeypatch)

    code = doctor.run_doctor(Settings())
    assert code == 1
    hint = doctor._ffmpeg_hint()  # noqa: SLF001
    assert hint in capsys.readouterr().out


def test_doctor_missing_recognizer_library(monkeypatch) -> None:
    monkeypatch.setattr(doctor, "_run_cmd", lambda cmd: (0, "ok"))
    _patch_common(monkeypatch, modules_ok=False)

    assert doctor.run_doctor(Settings()) == 1


def test_doctor_missing_vad_is_a_warning(monkeypatch, capsys) -> None:
    monkeypatch.setattr(doctor, "_run_cmd", lambda cmd: (0, "ok"))
    _patch_common(monkeypatch)
    monkeypatch.setattr(doctor, "_binary_found", lambda _: False)

    assert doctor.run_doctor(Settings()) == 0
    assert "VAD binary" in capsys.readouterr().out
