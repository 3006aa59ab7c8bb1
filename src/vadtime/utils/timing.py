from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Iterator, List, Optional

from vadtime.utils.logging import resolve_logger

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class StepTiming:
    name: str
    started_at: datetime
    finished_at: datetime
    ok: bool = True

    @property
    def duration_s(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()


class StepTimer:
    """Wall-clock timings of named pipeline stages, including ones that raised."""

    def __init__(self, *, clock: Clock = utc_now, log: Optional[logging.Logger] = None) -> None:
        self._clock = clock
        self._log = resolve_logger(log, __name__)
        self.steps: List[StepTiming] = []

    @property
    def clock(self) -> Clock:
        return self._clock

    @contextmanager
    def step(self, name: str) -> Iterator[None]:
        started_at = self._clock()
        ok = False
        try:
            yield
            ok = True
        finally:
            timing = StepTiming(name=name, started_at=started_at, finished_at=self._clock(), ok=ok)
            self.steps.append(timing)
            self._log.info("Stage %s %s in %.2fs", name, "finished" if ok else "failed", timing.duration_s)

    def durations(self) -> Dict[str, float]:
        # A stage recorded twice accumulates.
        totals: Dict[str, float] = {}
        for step in self.steps:
            totals[step.name] = totals.get(step.name, 0.0) + step.duration_s
        return totals

    def failed_step(self) -> Optional[str]:
        return next((s.name for s in self.steps if not s.ok), None)
