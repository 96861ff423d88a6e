# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# distributions.py
# -----------------------------------------------------------------------------
# Purpose:
#   Seeded variate generators: exponential, Bernoulli, discrete uniform.
#
# Design notes:
#   - Each generator owns a private random.Random stream. StreamFactory hands
#     out those streams from one replication seed, so changing how often one
#     generator is sampled never shifts another generator's sequence.
#   - No module-level random state is touched; replications can run side by
#     side in one process.
#
# Usage:
#   streams = StreamFactory(seed)
#   fix = Exponential("Mechanic Fix Times", 8/60, streams.stream())
# -----------------------------------------------------------------------------

from __future__ import annotations
import random


class StreamFactory:
    """Derives independent per-generator streams from one seed."""
    def __init__(self, seed: int):
        self.seed = seed
        self._seeder = random.Random(seed)

    def stream(self) -> random.Random:
        return random.Random(self._seeder.getrandbits(64))


class Exponential:
    """Exponential variates parameterized by their mean (not the rate)."""
    def __init__(self, name: str, mean: float, rng: random.Random):
        if mean < 0:
            raise ValueError(f"{name}: mean must be >= 0, got {mean}")
        self.name = name
        self.mean = float(mean)
        self.rng = rng

    def sample(self) -> float:
        if self.mean == 0.0:
            return 0.0
        return self.rng.expovariate(1.0 / self.mean)


class Bernoulli:
    """True with probability `p`."""
    def __init__(self, name: str, p: float, rng: random.Random):
        if not 0.0 <= p <= 1.0:
            raise ValueError(f"{name}: probability must be in [0, 1], got {p}")
        self.name = name
        self.p = float(p)
        self.rng = rng

    def sample(self) -> bool:
        return self.rng.random() < self.p


class DiscreteUniform:
    """Integers in [low, high], both ends inclusive."""
    def __init__(self, name: str, low: int, high: int, rng: random.Random):
        if low > high:
            raise ValueError(f"{name}: low ({low}) must not exceed high ({high})")
        self.name = name
        self.low = int(low)
        self.high = int(high)
        self.rng = rng

    def sample(self) -> int:
        return self.rng.randint(self.low, self.high)
