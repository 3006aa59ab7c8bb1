"""
Speech interval model.

A recording's detected speech is held as an ordered, immutable sequence of
intervals. Neighbour navigation is answered by the owning sequence from
positions, so intervals carry no links of their own and a sequence can be
shared freely between threads.

Times are float milliseconds in the time base of the sequence's recording.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, Iterable, Iterator, Optional, Sequence, Tuple, TypeVar, overload


@dataclass(frozen=True)
class SpeechInterval:
    index: int
    start_ms: float
    end_ms: float

    @property
    def duration_ms(self) -> float:
        return self.end_ms - self.start_ms

    @property
    def start_seconds(self) -> float:
        return self.start_ms / 1000

    @property
    def end_seconds(self) -> float:
        return self.end_ms / 1000

    @property
    def duration_seconds(self) -> float:
        return self.duration_ms / 1000

    def as_tuple(self) -> Tuple[int, float, float]:
        return (self.index, self.start_ms, self.end_ms)

    def __str__(self) -> str:
        return (
            f"{self.index}: {self.start_seconds:.2f}s - {self.end_seconds:.2f}s "
            f"(duration: {self.duration_seconds:.2f}s)"
        )


@dataclass(frozen=True)
class MergedInterval(SpeechInterval):
    """A run of one or more original intervals treated as one transcription unit."""

    sources: Tuple[SpeechInterval, ...] = field(default=(), compare=False, repr=False)


T = TypeVar("T", bound=SpeechInterval)


class SpeechSequence(Sequence[T], Generic[T]):
    """
    Read-only ordered sequence of intervals.

    `previous`, `next` and `gap_to_next` take a position in this sequence,
    which is not necessarily the interval's declared `index`.
    """

    __slots__ = ("_items",)

    def __init__(self, items: Iterable[T] = ()) -> None:
        self._items: Tuple[T, ...] = tuple(items)

    @overload
    def __getitem__(self, position: int) -> T: ...

    @overload
    def __getitem__(self, position: slice) -> "SpeechSequence[T]": ...

    def __getitem__(self, position):
        if isinstance(position, slice):
            return SpeechSequence(self._items[position])
        return self._items[position]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SpeechSequence):
            return NotImplemented
        return self._items == other._items

    def __hash__(self) -> int:
        return hash(self._items)

    def __repr__(self) -> str:
        return f"SpeechSequence({list(self._items)!r})"

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------
    def previous(self, position: int) -> Optional[T]:
        self._check(position)
        return self._items[position - 1] if position > 0 else None

    def next(self, position: int) -> Optional[T]:
        self._check(position)
        return self._items[position + 1] if position + 1 < len(self._items) else None

    def gap_to_next(self, position: int) -> float:
        nxt = self.next(position)
        if nxt is None:
            return 0.0
        return nxt.start_ms - self._items[position].end_ms

    def _check(self, position: int) -> None:
        if not 0 <= position < len(self._items):
            raise IndexError(f"position {position} out of range for {len(self._items)} intervals")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def gaps(self) -> list[float]:
        return [self.gap_to_next(i) for i in range(len(self._items) - 1)]

    @property
    def total_speech_ms(self) -> float:
        return sum(item.duration_ms for item in self._items)

    def as_tuples(self) -> list[Tuple[int, float, float]]:
        return [item.as_tuple() for item in self._items]

    def is_well_formed(self) -> bool:
        """True when every interval is positive and none starts before its predecessor ends."""
        for position, item in enumerate(self._items):
            if item.start_ms < 0 or item.end_ms <= item.start_ms:
                return False
            if position and item.start_ms < self._items[position - 1].end_ms:
                return False
        return True

    def gap_stats(self) -> dict:
        gaps = [g for g in self.gaps() if g > 0]
        return {
            "count": len(self._items),
            "total_speech_seconds": self.total_speech_ms / 1000,
            "total_gap_seconds": sum(gaps) / 1000,
            "gap_count": len(gaps),
            "min_gap_seconds": min(gaps) / 1000 if gaps else None,
            "max_gap_seconds": max(gaps) / 1000 if gaps else None,
            "avg_gap_seconds": (sum(gaps) / len(gaps)) / 1000 if gaps else None,
        }


def build_sequence(flat: Iterable[Sequence[float]]) -> SpeechSequence[SpeechInterval]:
    """
    Build a sequence from `(index, start_ms, end_ms)` triples.

    Input order and declared indices are kept as given; the input is expected
    to be time-sorted already.
    """
    return SpeechSequence(
        SpeechInterval(index=int(index), start_ms=float(start), end_ms=float(end))
        for index, start, end in flat
    )
