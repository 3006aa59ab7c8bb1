"""Speech-segment merging and timeline-preserving transcription."""

__version__ = "0.1.0"
