"""
Stage timings for Result.timing.

Fits record where their time goes: the QR solve for OLS, the θ search
and final PLS solve for mixed models, the checks for an LRT.
"""

import time
from contextlib import contextmanager
from typing import Iterator


class Timer:
    """
    Wall-clock timer with named, accumulating sections.

    Usage:
        timer = Timer()
        timer.start()
        with timer.section('optimization'):
            opt = minimize(objective, theta0, method='L-BFGS-B')
        timer.stop()
        timer.result()   # {'total_seconds': ..., 'optimization': ...}
    """

    def __init__(self) -> None:
        self._started: float | None = None
        self._total: float | None = None
        self._sections: dict[str, float] = {}

    def start(self) -> None:
        self._started = time.perf_counter()

    def stop(self) -> None:
        if self._started is None:
            raise RuntimeError("Timer.stop() called before start()")
        self._total = time.perf_counter() - self._started

    @contextmanager
    def section(self, name: str) -> Iterator[None]:
        """Time the enclosed block; a repeated name adds to its total."""
        t0 = time.perf_counter()
        try:
            yield
        finally:
            self._sections[name] = self._sections.get(name, 0.0) + time.perf_counter() - t0

    def result(self) -> dict[str, float]:
        """
        Returns:
            {'total_seconds': total, <section>: seconds, ...}

        Raises:
            RuntimeError: If the timer was never stopped
        """
        if self._total is None:
            raise RuntimeError("Timer.result() called before stop()")
        return {'total_seconds': self._total, **self._sections}


@contextmanager
def timed() -> Iterator[Timer]:
    """
    Time a whole block:

        with timed() as timer:
            model = lmer(formula, data)
        timer.result()['total_seconds']
    """
    timer = Timer()
    timer.start()
    try:
        yield timer
    finally:
        timer.stop()
