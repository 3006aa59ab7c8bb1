from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorCategory(str, Enum):
    CONFIG = "config"
    DEPENDENCY = "dependency"
    INPUT = "input"
    RUNTIME = "runtime"


DEFAULT_EXIT_CODES: dict[ErrorCategory, int] = {
    ErrorCategory.RUNTIME: 1,
    ErrorCategory.CONFIG: 2,
    ErrorCategory.DEPENDENCY: 3,
    ErrorCategory.INPUT: 4,
}


@dataclass
class VadTimeError(Exception):
    """Base exception for VadTime with standardized categories."""

    message: str
    category: ErrorCategory = ErrorCategory.RUNTIME
    exit_code: int | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)
        if self.exit_code is None:
            self.exit_code = DEFAULT_EXIT_CODES.get(self.category, 1)

    def __str__(self) -> str:
        return self.message

    def label(self) -> str:
        return {
            ErrorCategory.CONFIG: "Configuration error",
            ErrorCategory.DEPENDENCY: "Dependency error",
            ErrorCategory.INPUT: "Input error",
            ErrorCategory.RUNTIME: "Runtime error",
        }.get(self.category, "Error")


class DependencyMissingError(VadTimeError):
    """Raised when a required external dependency is missing."""

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(
            message,
            category=ErrorCategory.DEPENDENCY,
            exit_code=exit_code,
        )


class ConfigurationError(VadTimeError):
    """Raised when configuration is invalid."""

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(
            message,
            category=ErrorCategory.CONFIG,
            exit_code=exit_code,
        )


class InputValidationError(VadTimeError):
    """Raised when the source recording or segment list is unusable."""

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(
            message,
            category=ErrorCategory.INPUT,
            exit_code=exit_code,
        )


class ExtractionError(VadTimeError):
    """Raised when a clip could not be cut from the source recording."""

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(message, exit_code=exit_code)


class ConsistencyError(VadTimeError):
    """Raised when per-clip results cannot be lined up with merged segments."""

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(message, exit_code=exit_code)
