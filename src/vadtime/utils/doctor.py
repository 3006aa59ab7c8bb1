from __future__ import annotations

import importlib
import os
import shutil
import sys
import tempfile
from pathlib import Path

from vadtime.config.settings import Settings


def _run_cmd(cmd: list[str]) -> tuple[int, str]:
    import subprocess

    try:
        proc = subprocess.run(cmd, capture_output=True, text=True)
    except FileNotFoundError:
        return 1, ""
    return proc.returncode, proc.stdout.strip() or proc.stderr.strip()


def _module_available(name: str) -> bool:
    try:
        importlib.import_module(name)
    except Exception:
        return False
    return True


def _check_writable(path: Path) -> bool:
    try:
        path.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=path, delete=True):
            return True
    except OSError:
        return False


def _get_version() -> str:
    try:
        import importlib.metadata

        return importlib.metadata.version("vadtime")
    except Exception:
        return "unknown"


def _ffmpeg_hint() -> str:
    if sys.platform.startswith("darwin"):
        return "Install ffmpeg: brew install ffmpeg"
    if sys.platform.startswith("win"):
        return "Install ffmpeg: winget install ffmpeg"
    return "Install ffmpeg: sudo apt-get install ffmpeg"


def _binary_found(binary: str) -> bool:
    return Path(binary).is_file() or shutil.which(binary) is not None


def _status_line(ok: bool, label: str, detail: str = "") -> str:
    icon = "✅" if ok else "❌"
    return f"{icon} {label}{detail}"


def _warn_line(label: str, detail: str = "") -> str:
    return f"⚠️ {label}{detail}"


def run_doctor(settings: Settings) -> int:
    """Print environment diagnostics; returns 1 when a required tool is missing."""
    required_ok = True
    lines: list[str] = []

    lines.append("VadTime Doctor")
    lines.append("")

    python_version = sys.version.split()[0]
    lines.append(_status_line(True, "Python", f": {python_version}"))
    lines.append(_status_line(True, "VadTime version", f": {_get_version()}"))

    workdir = Path(settings.workdir).expanduser().resolve()
    writable = _check_writable(workdir)
    if not writable:
        required_ok = False
    lines.append(_status_line(writable, "Workdir writable", f": {workdir}"))

    code, out = _run_cmd(["ffmpeg", "-version"])
    if code != 0:
        required_ok = False
        lines.append(_status_line(False, "ffmpeg", " (not found)"))
        lines.append(_ffmpeg_hint())
    else:
        first_line = out.splitlines()[0] if out else "available"
        lines.append(_status_line(True, "ffmpeg", f": {first_line}"))

    # VAD is optional when segments are supplied up front.
    if _binary_found(settings.vad_binary):
        lines.append(_status_line(True, "VAD binary", f": {settings.vad_binary}"))
    else:
        lines.append(_warn_line("VAD binary", f" (not found: {settings.vad_binary})"))
    if Path(settings.vad_model_path).expanduser().is_file():
        lines.append(_status_line(True, "VAD model", f": {settings.vad_model_path}"))
    else:
        lines.append(_warn_line("VAD model", f" (missing: {settings.vad_model_path})"))

    if settings.asr_backend == "faster-whisper":
        available = _module_available("faster_whisper")
        if not available:
            required_ok = False
        lines.append(
            _status_line(available, "faster-whisper", " (available)" if available else " (not installed)")
        )
    else:
        available = _module_available("openai")
        if not available:
            required_ok = False
        lines.append(_status_line(available, "openai", " (available)" if available else " (not installed)"))
        api_key = os.getenv("VADTIME_OPENAI_API_KEY") or os.getenv("OPENAI_API_KEY")
        if not api_key:
            required_ok = False
        lines.append(_status_line(bool(api_key), "OpenAI API key", ": set" if api_key else ": missing"))

    lines.append(
        _status_line(
            True,
            "Strategy/backend/language",
            f": {settings.strategy} / {settings.asr_backend} / {settings.language or 'auto'}",
        )
    )

    print("\n".join(lines))
    return 0 if required_ok else 1
