from __future__ import annotations

from pathlib import Path

import pytest

from vadtime.domain.segments import build_sequence
from vadtime.domain.subtitles import ClipTranscription, RecognizedSpan
from vadtime.exceptions import ConsistencyError
from vadtime.services.merge import merge_segments
from vadtime.services.reassembly import reassemble, spans_by_clip


def _merged():
    return merge_segments(
        build_sequence([(0, 0, 1500), (1, 5000, 7250), (2, 12000, 14000)]),
        2.0,
        1.0,
    )


def test_one_entry_per_merged_interval_with_interval_times() -> None:
    merged = _merged()
    per_clip = [
        [RecognizedSpan(1, 0, 400, "hello"), RecognizedSpan(2, 400, 900, " "), RecognizedSpan(3, 900, 1200, "there")],
        [],
        [RecognizedSpan(1, 10, 20, "bye")],
    ]

    entries = reassemble(merged, per_clip)

    assert [e.index for e in entries] == [1, 2, 3]
    assert entries[0].text == "hello there"
    assert entries[1].text == ""
    assert (entries[1].start_ms, entries[1].end_ms) == (5000.0, 7250.0)
    assert (entries[2].start_ms, entries[2].end_ms) == (12000.0, 14000.0)


def test_count_mismatch_raises() -> None:
    with pytest.raises(ConsistencyError):
        reassemble(_merged(), [[], []])


def test_failed_clips_become_empty_entries() -> None:
    clips = [
        ClipTranscription(Path("a.wav"), spans=(RecognizedSpan(1, 0, 1, "one"),)),
        ClipTranscription(Path("b.wav"), success=False, error="boom"),
        ClipTranscription(Path("c.wav"), spans=(RecognizedSpan(1, 0, 1, "three"),)),
    ]

    entries = reassemble(_merged(), spans_by_clip(clips))

    assert [e.text for e in entries] == ["one", "", "three"]
