"""
Timestamp correction for the concatenated-clip strategy.

When every merged window is cut out and joined into one clip, the recognizer
reports times relative to that clip. Each merged window occupies a known
stretch of the clip, so a span inside it is moved back to the recording by
that window's offset.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from vadtime.domain.segments import MergedInterval, SpeechSequence
from vadtime.domain.subtitles import RecognizedSpan, SubtitleEntry
from vadtime.exceptions import InputValidationError
from vadtime.services.merge import MAPPING_GAP_SECONDS, map_merged_to_originals
from vadtime.utils.logging import resolve_logger


@dataclass(frozen=True)
class ClipWindow:
    interval: MergedInterval
    relative_start_ms: float
    relative_end_ms: float
    original_start_ms: float

    @property
    def offset_ms(self) -> float:
        return self.original_start_ms - self.relative_start_ms

    def contains(self, relative_ms: float) -> bool:
        return self.relative_start_ms <= relative_ms <= self.relative_end_ms


def build_clip_windows(
    original: SpeechSequence,
    merged: SpeechSequence,
    *,
    gap_threshold_seconds: float = MAPPING_GAP_SECONDS,
    log: Optional[logging.Logger] = None,
) -> List[ClipWindow]:
    log = resolve_logger(log, __name__)
    mapping = map_merged_to_originals(
        original,
        merged,
        gap_threshold_seconds=gap_threshold_seconds,
        log=log,
    )

    windows: List[ClipWindow] = []
    clock = 0.0
    for interval in merged:
        relative_start = clock
        relative_end = clock + interval.duration_ms
        # The window's audio is in the clip whether or not it maps back.
        clock = relative_end

        group = mapping.get(interval)
        if not group:
            log.warning("Merged segment %d has no original segments", interval.index)
            continue

        window = ClipWindow(
            interval=interval,
            relative_start_ms=relative_start,
            relative_end_ms=relative_end,
            original_start_ms=group[0].start_ms,
        )
        log.debug(
            "Merged segment %d: original start %.0fms, relative %.0f-%.0fms, offset %.0fms",
            interval.index,
            window.original_start_ms,
            relative_start,
            relative_end,
            window.offset_ms,
        )
        windows.append(window)
    return windows


def correct_timestamps(
    spans: Iterable[RecognizedSpan],
    original: SpeechSequence,
    merged: SpeechSequence,
    *,
    gap_threshold_seconds: float = MAPPING_GAP_SECONDS,
    log: Optional[logging.Logger] = None,
) -> List[SubtitleEntry]:
    """
    Shift clip-relative spans back onto the original timeline.

    A span belongs to the first window whose relative range contains its
    start. Spans outside every window are kept with their times unchanged.
    Entries are numbered from 1 in span order.
    """
    log = resolve_logger(log, __name__)
    spans = list(spans)
    if not spans:
        raise InputValidationError("No recognized spans to correct.")
    if len(original) == 0:
        raise InputValidationError("No original segments provided.")
    if len(merged) == 0:
        raise InputValidationError("No merged segments provided.")

    windows = build_clip_windows(
        original,
        merged,
        gap_threshold_seconds=gap_threshold_seconds,
        log=log,
    )

    corrected: List[SubtitleEntry] = []
    for position, span in enumerate(spans, start=1):
        window = next((w for w in windows if w.contains(span.start_ms)), None)
        if window is None:
            log.warning("No merged segment found for span %d; leaving it uncorrected", span.index)
            corrected.append(
                SubtitleEntry(index=position, start_ms=span.start_ms, end_ms=span.end_ms, text=span.text)
            )
            continue
        corrected.append(
            SubtitleEntry(
                index=position,
                start_ms=span.start_ms + window.offset_ms,
                end_ms=span.end_ms + window.offset_ms,
                text=span.text,
            )
        )
    return corrected
