"""
Reassembly of per-clip recognition results onto the source timeline.

Each merged segment becomes exactly one subtitle entry timed by the segment
itself; the recognizer's clip-relative timings are not used.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from vadtime.domain.segments import SpeechSequence
from vadtime.domain.subtitles import ClipTranscription, RecognizedSpan, SubtitleEntry, join_span_text
from vadtime.exceptions import ConsistencyError
from vadtime.utils.logging import resolve_logger


def reassemble(
    merged: SpeechSequence,
    per_clip_spans: Sequence[Iterable[RecognizedSpan]],
    *,
    log: Optional[logging.Logger] = None,
) -> List[SubtitleEntry]:
    """
    Build one entry per merged segment, numbered from 1.

    `per_clip_spans[i]` must hold the spans recognized for `merged[i]`. Empty
    or failed clips still yield an entry, with empty text.
    """
    log = resolve_logger(log, __name__)
    if len(per_clip_spans) != len(merged):
        raise ConsistencyError(
            f"Subtitle list count ({len(per_clip_spans)}) does not match "
            f"merged segment count ({len(merged)})."
        )

    entries: List[SubtitleEntry] = []
    for position, (interval, spans) in enumerate(zip(merged, per_clip_spans)):
        text = join_span_text(spans)
        if not text:
            log.debug("Merged segment %d has no recognized text", interval.index)
        entries.append(
            SubtitleEntry(
                index=position + 1,
                start_ms=interval.start_ms,
                end_ms=interval.end_ms,
                text=text,
            )
        )
    log.info("Reassembled %d subtitle entries", len(entries))
    return entries


def spans_by_clip(transcriptions: Sequence[ClipTranscription]) -> List[tuple]:
    """Per-clip span lists in clip order; failed clips contribute nothing."""
    return [t.spans if t.success else () for t in transcriptions]
