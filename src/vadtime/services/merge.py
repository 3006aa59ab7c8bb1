"""
Gap-based merging of detected speech intervals.

Responsibilities:
- Fold adjacent intervals into larger transcription units (`merge_segments`)
- Recover which originals a merged interval covers (`map_merged_to_originals`)

Does NOT:
- Touch audio (extraction and concatenation live in services.extraction)
- Reorder input; both functions assume a time-sorted sequence
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from vadtime.domain.segments import MergedInterval, SpeechInterval, SpeechSequence
from vadtime.exceptions import ConfigurationError
from vadtime.utils.logging import resolve_logger

DEFAULT_MAX_GAP_SECONDS = 2.0
DEFAULT_MIN_DURATION_SECONDS = 1.0
MAPPING_GAP_SECONDS = 1.0


def merge_segments(
    sequence: SpeechSequence,
    max_gap_seconds: float = DEFAULT_MAX_GAP_SECONDS,
    min_duration_seconds: float = DEFAULT_MIN_DURATION_SECONDS,
    *,
    log: Optional[logging.Logger] = None,
) -> SpeechSequence[MergedInterval]:
    """
    Merge intervals in one greedy left-to-right pass.

    A window keeps absorbing the next interval while the silence before it is
    shorter than `max_gap_seconds`. A window still shorter than
    `min_duration_seconds` is extended across gaps up to twice that limit.

    Returns a new sequence indexed from 0; the input is left untouched.
    """
    log = resolve_logger(log, __name__)
    if max_gap_seconds < 0:
        raise ConfigurationError("max_gap_seconds must not be negative.")
    if min_duration_seconds < 0:
        raise ConfigurationError("min_duration_seconds must not be negative.")

    min_duration_ms = min_duration_seconds * 1000
    merged: List[MergedInterval] = []
    position = 0
    count = len(sequence)

    while position < count:
        first = sequence[position]
        merged_start = first.start_ms
        merged_end = first.end_ms
        sources = [first]

        while position + 1 < count:
            gap = sequence.gap_to_next(position) / 1000
            window_ms = merged_end - merged_start

            if window_ms < min_duration_ms:
                should_merge = gap < max_gap_seconds * 2
                if should_merge:
                    log.debug(
                        "Segment %s too short (%.2fs < %.2fs), forcing merge across %.2fs gap",
                        sequence[position].index,
                        window_ms / 1000,
                        min_duration_seconds,
                        gap,
                    )
            else:
                should_merge = gap < max_gap_seconds

            if not should_merge:
                break
            position += 1
            merged_end = sequence[position].end_ms
            sources.append(sequence[position])

        merged.append(
            MergedInterval(
                index=len(merged),
                start_ms=merged_start,
                end_ms=merged_end,
                sources=tuple(sources),
            )
        )
        position += 1

    log.info(
        "Merged %d segments into %d (max_gap=%.2fs, min_duration=%.2fs)",
        count,
        len(merged),
        max_gap_seconds,
        min_duration_seconds,
    )
    return SpeechSequence(merged)


def map_merged_to_originals(
    original: SpeechSequence,
    merged: SpeechSequence,
    *,
    gap_threshold_seconds: float = MAPPING_GAP_SECONDS,
    log: Optional[logging.Logger] = None,
) -> Dict[MergedInterval, List[SpeechInterval]]:
    """
    Group original intervals under merged intervals by re-walking the gaps.

    A group closes at the last original or before a gap of at least
    `gap_threshold_seconds`. The grouping only matches what `merge_segments`
    produced when the threshold equals its `max_gap_seconds` and no short
    window was force-extended; callers that need the exact grouping should
    read `MergedInterval.sources` instead.
    """
    log = resolve_logger(log, __name__)
    mapping: Dict[MergedInterval, List[SpeechInterval]] = {}
    position = 0
    count = len(original)

    for interval in merged:
        if position >= count:
            break
        group: List[SpeechInterval] = []
        while position < count:
            group.append(original[position])
            last = position + 1 >= count
            gap = original.gap_to_next(position) / 1000
            position += 1
            if last or gap >= gap_threshold_seconds:
                break
        mapping[interval] = group

    unmapped = len(merged) - len(mapping)
    if unmapped:
        log.warning("%d merged segments have no original segments mapped to them", unmapped)
    return mapping
