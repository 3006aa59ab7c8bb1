from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from vadtime.exceptions import ConfigurationError

STRATEGIES = ("segments", "concatenated")
ASR_BACKENDS = ("faster-whisper", "openai")


class Settings(BaseSettings):
    """
    Runtime configuration for VadTime.

    All settings are loaded from environment variables with the
    `VADTIME_` prefix and optional `.env` support. The OpenAI key is read straight from the
    environment and never becomes a field.
    """

    model_config = SettingsConfigDict(
        env_prefix="VADTIME_",
        env_file=".env",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Runtime
    # ------------------------------------------------------------------
    workdir: str = Field(
        default=".vadtime",
        description="Root directory for per-run outputs.",
    )
    strategy: str = Field(
        default="segments",
        description="Extraction strategy: segments (one clip per merged segment) or concatenated.",
    )
    keep_intermediate_files: bool = Field(
        default=True,
        description="Keep extracted clips and per-clip SRT files after the run.",
    )

    # ------------------------------------------------------------------
    # Segment merging
    # ------------------------------------------------------------------
    max_gap_seconds: float = Field(
        default=2.0,
        description="Silence gaps shorter than this are merged across.",
    )
    min_duration_seconds: float = Field(
        default=1.0,
        description="Windows shorter than this are extended across gaps up to twice max_gap_seconds.",
    )
    mapping_gap_seconds: float = Field(
        default=1.0,
        description="Gap that closes a group when mapping merged segments back to originals.",
    )

    # ------------------------------------------------------------------
    # Voice activity detection (whisper.cpp)
    # ------------------------------------------------------------------
    vad_binary: str = Field(
        default="whisper-vad-speech-segments",
        description="whisper.cpp VAD executable name or path.",
    )
    vad_model_path: str = Field(
        default="models/ggml-silero-v6.2.0-vad.bin",
        description="Silero VAD model in ggml format.",
    )
    vad_threshold: float = Field(default=0.5, description="Speech probability threshold (0-1).")
    vad_min_speech_ms: int = Field(default=250, description="Minimum speech duration in ms.")
    vad_min_silence_ms: int = Field(default=100, description="Minimum silence duration in ms.")
    vad_max_speech_s: float | None = Field(default=15.0, description="Maximum speech duration in seconds.")
    vad_speech_pad_ms: int = Field(default=30, description="Padding added around speech in ms.")
    vad_samples_overlap: float = Field(default=0.10, description="Overlap between analysis windows.")
    vad_threads: int = Field(default=4, description="Detector thread count.")
    vad_use_gpu: bool = Field(default=False, description="Let the detector use the GPU.")
    vad_centiseconds: bool = Field(
        default=True,
        description="Detector text output is in centiseconds (multiply by 10 for ms).",
    )

    # ------------------------------------------------------------------
    # Recognition
    # ------------------------------------------------------------------
    asr_backend: str = Field(
        default="faster-whisper",
        description="Speech recognizer: faster-whisper or openai.",
    )
    whisper_model: str = Field(default="base", description="faster-whisper model size or path.")
    whisper_device: str = Field(default="cpu", description="faster-whisper device.")
    whisper_compute_type: str = Field(default="int8", description="faster-whisper compute type.")
    openai_model: str = Field(default="whisper-1", description="OpenAI transcription model.")
    language: str | None = Field(
        default=None,
        description="Language code passed to the recognizer (None = auto-detect).",
    )
    temperature: float = Field(default=0.0, description="Sampling temperature for recognition.")
    max_concurrency: int | None = Field(
        default=None,
        description="Cap on concurrent recognition calls (None = all at once).",
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR).",
    )

    def validate_for_run(self) -> None:
        if self.strategy not in STRATEGIES:
            raise ConfigurationError(
                f"Invalid strategy '{self.strategy}'; use one of: {', '.join(STRATEGIES)}."
            )
        if self.asr_backend not in ASR_BACKENDS:
            raise ConfigurationError(
                f"Invalid asr_backend '{self.asr_backend}'; use one of: {', '.join(ASR_BACKENDS)}."
            )
        if self.max_gap_seconds < 0:
            raise ConfigurationError("max_gap_seconds must not be negative.")
        if self.min_duration_seconds < 0:
            raise ConfigurationError("min_duration_seconds must not be negative.")
        if self.mapping_gap_seconds < 0:
            raise ConfigurationError("mapping_gap_seconds must not be negative.")
        if not 0.0 <= self.vad_threshold <= 1.0:
            raise ConfigurationError("vad_threshold must be between 0.0 and 1.0.")
        if self.vad_min_speech_ms < 0 or self.vad_min_silence_ms < 0:
            raise ConfigurationError("VAD durations must not be negative.")
        if self.vad_threads < 1:
            raise ConfigurationError("vad_threads must be at least 1.")
        if self.temperature < 0:
            raise ConfigurationError("temperature must not be negative.")
        if self.max_concurrency is not None and self.max_concurrency < 1:
            raise ConfigurationError("max_concurrency must be at least 1.")

    # ------------------------------------------------------------------
    # Public / safe export
    # ------------------------------------------------------------------
    def to_public_dict(self) -> dict:
        """
        Return a dictionary of non-sensitive settings suitable
        for logging or CLI display.
        """
        return {
            "workdir": self.workdir,
            "strategy": self.strategy,
            "keep_intermediate_files": self.keep_intermediate_files,
            "max_gap_seconds": self.max_gap_seconds,
            "min_duration_seconds": self.min_duration_seconds,
            "mapping_gap_seconds": self.mapping_gap_seconds,
            "vad_binary": self.vad_binary,
            "vad_model_path": self.vad_model_path,
            "vad_threshold": self.vad_threshold,
            "vad_min_speech_ms": self.vad_min_speech_ms,
            "vad_min_silence_ms": self.vad_min_silence_ms,
            "vad_max_speech_s": self.vad_max_speech_s,
            "vad_speech_pad_ms": self.vad_speech_pad_ms,
            "vad_samples_overlap": self.vad_samples_overlap,
            "vad_threads": self.vad_threads,
            "vad_use_gpu": self.vad_use_gpu,
            "vad_centiseconds": self.vad_centiseconds,
            "asr_backend": self.asr_backend,
            "whisper_model": self.whisper_model,
            "whisper_device": self.whisper_device,
            "whisper_compute_type": self.whisper_compute_type,
            "openai_model": self.openai_model,
            "language": self.language,
            "temperature": self.temperature,
            "max_concurrency": self.max_concurrency,
            "log_level": self.log_level,
        }
