from __future__ import annotations

import shutil
from pathlib import Path

from vadtime.exceptions import DependencyMissingError, InputValidationError


def require_binary(binary: str) -> str:
    """Resolve `binary` on PATH (or as a direct path) or fail."""
    candidate = Path(binary)
    if candidate.is_file():
        return str(candidate)
    resolved = shutil.which(binary)
    if resolved is None:
        raise DependencyMissingError(
            f"Missing required dependency '{binary}'. Install it and try again."
        )
    return resolved


def require_model(path: str | Path, *, what: str = "model") -> Path:
    p = Path(path)
    if not p.is_file():
        raise DependencyMissingError(f"{what.capitalize()} file not found: {p}")
    return p


def require_input_file(path: str | Path, *, what: str = "input file") -> Path:
    p = Path(path)
    if not p.is_file():
        raise InputValidationError(f"{what.capitalize()} not found: {p}")
    return p
