# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# metrics.py
# -----------------------------------------------------------------------------
# Purpose:
#   Statistical trackers for one replication (Counter, Tally, Aggregate,
#   TimeWeightedQueueStats) and the across-replication ConfidenceCalculator.
#
# Design notes:
#   - Trackers never read the clock themselves; callers pass the simulated
#     time so a tracker can be driven from tests without an Env.
#   - Summaries return JSON-serializable dicts for easy tabulation.
#
# Usage:
#   from shopsim.metrics import Counter, Tally, ConfidenceCalculator
# -----------------------------------------------------------------------------

from __future__ import annotations
import logging, math
from typing import Dict, Optional
from scipy.stats import t as student_t

logger = logging.getLogger(__name__)


class Counter:
    """Monotonic integer accumulator (total customers, balks, ...)."""
    def __init__(self, name: str):
        self.name = name
        self.value: int = 0

    def update(self, n: int = 1):
        if n < 0:
            raise ValueError(f"Counter {self.name!r} cannot be decremented (got {n})")
        self.value += n

    def __repr__(self):
        return f"Counter({self.name!r}, value={self.value})"


class Aggregate:
    """Plain running sum, e.g. today's operating cost."""
    def __init__(self, name: str):
        self.name = name
        self.value: float = 0.0

    def update(self, amount: float):
        self.value += amount

    def __repr__(self):
        return f"Aggregate({self.name!r}, value={self.value:.2f})"


class Tally:
    """Running mean/variance/min/max over scalar observations.

    Uses Welford's update so long runs stay numerically stable. The
    variance is the sample variance (n - 1 in the denominator).
    """
    def __init__(self, name: str):
        self.name = name
        self.reset()

    def reset(self):
        self.observations: int = 0
        self._mean = 0.0
        self._m2 = 0.0
        self.minimum: Optional[float] = None
        self.maximum: Optional[float] = None

    def update(self, x: float):
        x = float(x)
        self.observations += 1
        delta = x - self._mean
        self._mean += delta / self.observations
        self._m2 += delta * (x - self._mean)
        self.minimum = x if self.minimum is None else min(self.minimum, x)
        self.maximum = x if self.maximum is None else max(self.maximum, x)

    @property
    def mean(self) -> float:
        if self.observations == 0:
            logger.debug("Tally %r has no observations; mean reported as 0.0", self.name)
            return 0.0
        return self._mean

    @property
    def variance(self) -> float:
        if self.observations < 2:
            return 0.0
        return self._m2 / (self.observations - 1)

    @property
    def std_dev(self) -> float:
        return math.sqrt(self.variance)


class TimeWeightedQueueStats:
    """Integral of a queue's length over simulated time.

    update() must be called with the *new* length every time the length
    changes; the area under the step function is accumulated lazily.
    """
    def __init__(self, name: str, start_time: float = 0.0, length: int = 0):
        self.name = name
        self.start_time = start_time
        self.last_change = start_time
        self.length = length
        self.max_length = length
        self._area = 0.0

    def update(self, now: float, length: int):
        dt = now - self.last_change
        if dt > 0:
            self._area += self.length * dt
        self.last_change = now
        self.length = length
        if length > self.max_length:
            self.max_length = length

    def area(self, now: float) -> float:
        return self._area + self.length * max(now - self.last_change, 0.0)

    def average_length(self, now: float) -> float:
        span = now - self.start_time
        if span <= 0:
            return float(self.length)
        return self.area(now) / span


class ConfidenceCalculator(Tally):
    """Collects one scalar per replication and reports a CI for the mean.

    The interval uses the Student t critical value with n - 1 degrees of
    freedom. With fewer than two observations the half-width is 0, so the
    bounds collapse onto the mean.
    """
    def __init__(self, name: str, confidence_level: float = 0.95):
        if not 0.0 < confidence_level < 1.0:
            raise ValueError(f"confidence_level must be in (0, 1), got {confidence_level}")
        super().__init__(name)
        self.confidence_level = confidence_level

    def half_width(self) -> float:
        n = self.observations
        if n < 2:
            return 0.0
        alpha = 1.0 - self.confidence_level
        tcrit = student_t.ppf(1.0 - alpha / 2.0, n - 1)
        return float(tcrit) * (self.std_dev / math.sqrt(n))

    @property
    def lower(self) -> float:
        return self.mean - self.half_width()

    @property
    def upper(self) -> float:
        return self.mean + self.half_width()

    def summary(self) -> Dict:
        half = self.half_width()
        return {
            "name": self.name,
            "observations": self.observations,
            "mean": self.mean,
            "std_dev": self.std_dev,
            "min": self.minimum,
            "max": self.maximum,
            "confidence_level": self.confidence_level,
            "lower": self.mean - half,
            "upper": self.mean + half,
        }
