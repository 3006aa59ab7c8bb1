from __future__ import annotations

import pytest

from vadtime.domain.segments import MergedInterval, SpeechInterval, SpeechSequence, build_sequence


def test_build_sequence_keeps_order_and_declared_indices() -> None:
    seq = build_sequence([(3, 0, 1000), (7, 1500, 2000), (9, 2100, 2600)])

    assert [s.index for s in seq] == [3, 7, 9]
    assert seq.as_tuples() == [(3, 0.0, 1000.0), (7, 1500.0, 2000.0), (9, 2100.0, 2600.0)]


def test_build_sequence_empty_input() -> None:
    seq = build_sequence([])
    assert len(seq) == 0
    assert seq.gaps() == []
    assert seq.is_well_formed() is True


def test_navigation_is_mutually_consistent() -> None:
    seq = build_sequence([(0, 0, 1000), (1, 1400, 2000), (2, 2100, 2600)])

    assert seq.previous(0) is None
    assert seq.next(2) is None
    for position in range(len(seq) - 1):
        assert seq.next(position) is seq[position + 1]
        assert seq.previous(position + 1) is seq[position]


def test_gap_to_next() -> None:
    seq = build_sequence([(0, 0, 1000), (1, 1400, 2000)])
    assert seq.gap_to_next(0) == 400.0
    assert seq.gap_to_next(1) == 0.0
    with pytest.raises(IndexError):
        seq.gap_to_next(5)


def test_interval_derived_values() -> None:
    interval = SpeechInterval(index=0, start_ms=1500, end_ms=4000)
    assert interval.duration_ms == 2500
    assert interval.start_seconds == 1.5
    assert interval.duration_seconds == 2.5
    assert str(interval) == "0: 1.50s - 4.00s (duration: 2.50s)"


def test_sequence_is_immutable_and_hashable() -> None:
    seq = build_sequence([(0, 0, 1000)])
    with pytest.raises(TypeError):
        seq[0] = SpeechInterval(0, 0, 1)  # type: ignore[index]
    with pytest.raises(AttributeError):
        seq[0].start_ms = 5  # type: ignore[misc]
    assert hash(seq) == hash(build_sequence([(0, 0, 1000)]))


def test_slice_returns_sequence() -> None:
    seq = build_sequence([(0, 0, 1000), (1, 1400, 2000), (2, 2100, 2600)])
    tail = seq[1:]
    assert isinstance(tail, SpeechSequence)
    assert tail.previous(0) is None
    assert tail[0].index == 1


def test_is_well_formed_detects_overlap() -> None:
    assert build_sequence([(0, 0, 1000), (1, 900, 2000)]).is_well_formed() is False
    assert build_sequence([(0, 1000, 1000)]).is_well_formed() is False


def test_gap_stats() -> None:
    seq = build_sequence([(0, 0, 1000), (1, 1500, 2000), (2, 4000, 5000)])
    stats = seq.gap_stats()

    assert stats["count"] == 3
    assert stats["total_speech_seconds"] == pytest.approx(2.5)
    assert stats["gap_count"] == 2
    assert stats["min_gap_seconds"] == pytest.approx(0.5)
    assert stats["max_gap_seconds"] == pytest.approx(2.0)
    assert stats["avg_gap_seconds"] == pytest.approx(1.25)


def test_merged_interval_equality_ignores_sources() -> None:
    a = MergedInterval(index=0, start_ms=0, end_ms=10, sources=(SpeechInterval(0, 0, 10),))
    b = MergedInterval(index=0, start_ms=0, end_ms=10)
    assert a == b
    assert {a: 1}[b] == 1
