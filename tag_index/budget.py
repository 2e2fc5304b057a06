"""Cooperative time budget shared by the indexing phases."""

from __future__ import annotations

import time
from collections.abc import Callable


class Deadline:
    """Tracks elapsed time for one invocation and decides when to suspend.

    Phases call `should_suspend` at their safe points (between elements while
    gathering, between tags and entries while writing) and `mark_progress`
    after each unit of work. An invocation never suspends before it has done
    at least one unit of work, so repeated invocations always move forward.

    Args:
        clock: Source of monotonic time in seconds.

    Examples:
        deadline = Deadline()
        if deadline.should_suspend(config.gather_budget):
            ...
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self.started = clock()
        self.progressed = False

    def elapsed(self) -> float:
        return self._clock() - self.started

    def should_suspend(self, budget: float) -> bool:
        return self.progressed and self.elapsed() > budget

    def mark_progress(self) -> None:
        self.progressed = True
