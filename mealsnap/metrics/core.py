"""In-memory metrics store for the intake pipeline.

Counts and bounded sample windows keyed by metric name plus tags. The
pipeline records a handful of events per upload, so a single lock guards
everything. ``snapshot()`` renders series names in Prometheus text style
(``name{key="value"}``) for whichever exporter the host process uses.
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import asdict, dataclass
from threading import Lock
from typing import Deque, Dict, Sequence, Tuple

SeriesKey = Tuple[str, Tuple[Tuple[str, str], ...]]

DEFAULT_WINDOW = 2000


def series_key(name: str, tags: Dict[str, str]) -> SeriesKey:
    return name, tuple(sorted(tags.items()))


def render_series(key: SeriesKey) -> str:
    name, tags = key
    if not tags:
        return name
    labels = ",".join(f'{k}="{v}"' for k, v in tags)
    return f"{name}{{{labels}}}"


@dataclass(frozen=True)
class SampleSummary:
    """Aggregates over the retained samples of one series."""

    count: int = 0
    mean: float = 0.0
    p95: float = 0.0
    min: float = 0.0
    max: float = 0.0

    @classmethod
    def of(cls, samples: Sequence[float]) -> "SampleSummary":
        if not samples:
            return cls()
        ordered = sorted(samples)
        count = len(ordered)
        return cls(
            count=count,
            mean=sum(ordered) / count,
            p95=ordered[int(0.95 * (count - 1))],
            min=ordered[0],
            max=ordered[-1],
        )


class IntakeMetrics:
    """
    Counters and latency/size samples for one process.

    Example:
        >>> metrics = IntakeMetrics()
        >>> metrics.increment("mealsnap_cache_lookups_total", result="hit")
        >>> metrics.count("mealsnap_cache_lookups_total", result="hit")
        1
    """

    def __init__(self, window: int = DEFAULT_WINDOW) -> None:
        if window <= 0:
            raise ValueError("window must be positive")
        self.window = window
        self._counts: Dict[SeriesKey, int] = {}
        self._samples: Dict[SeriesKey, Deque[float]] = {}
        self._lock = Lock()

    def increment(self, name: str, amount: int = 1, **tags: str) -> None:
        key = series_key(name, tags)
        with self._lock:
            self._counts[key] = self._counts.get(key, 0) + amount

    def observe(self, name: str, value: float, **tags: str) -> None:
        """Record one sample; the oldest drops out once the window is full."""
        key = series_key(name, tags)
        with self._lock:
            samples = self._samples.get(key)
            if samples is None:
                samples = self._samples[key] = deque(maxlen=self.window)
            samples.append(value)

    def count(self, name: str, **tags: str) -> int:
        """Current count, 0 for a series never incremented."""
        with self._lock:
            return self._counts.get(series_key(name, tags), 0)

    def summary(self, name: str, **tags: str) -> SampleSummary:
        with self._lock:
            samples = list(self._samples.get(series_key(name, tags), ()))
        return SampleSummary.of(samples)

    def snapshot(self) -> Dict[str, object]:
        with self._lock:
            counts = dict(self._counts)
            samples = {key: list(values) for key, values in self._samples.items()}
        return {
            "counters": {render_series(key): value for key, value in counts.items()},
            "histograms": {
                render_series(key): asdict(SampleSummary.of(values))
                for key, values in samples.items()
            },
            "generated_at": time.time(),
        }

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()
            self._samples.clear()


registry = IntakeMetrics()
