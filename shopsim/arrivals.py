# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# arrivals.py
# -----------------------------------------------------------------------------
# Purpose:
#   Generate exogenous customer arrivals while the shop is open. The mean
#   interarrival time is piecewise constant over time-of-day bands.
#
# Design notes:
#   - Bands are given by their edges in hours since opening; with edges
#     [2, 8] the bands are [0, 2), [2, 8) and [8, close). The last band is
#     open-ended so the generator never runs out of a distribution.
#   - The Generator does not wait for the shop to drain; it simply stops
#     creating customers once the clock has reached closing time.
#
# Usage:
#   schedule = ArrivalSchedule.from_config(cfg["arrivals"], streams)
#   Generator(shop).process  -> activate at time 0
# -----------------------------------------------------------------------------

from __future__ import annotations
from bisect import bisect_right
from typing import Dict, List, Sequence
from .distributions import Exponential, StreamFactory
from .entities import Customer


class ArrivalSchedule:
    """Time-banded exponential interarrival times."""
    def __init__(self, edges: Sequence[float], dists: Sequence[Exponential]):
        if len(dists) != len(edges) + 1:
            raise ValueError(f"need {len(edges) + 1} interarrival distributions for edges {list(edges)}, got {len(dists)}")
        self.edges: List[float] = [float(e) for e in edges]
        self.dists: List[Exponential] = list(dists)

    @classmethod
    def from_config(cls, arrivals_cfg: Dict, streams: StreamFactory) -> "ArrivalSchedule":
        edges = arrivals_cfg["band_edges_hours"]
        means = arrivals_cfg["interarrival_mean_hours"]
        if len(means) != len(edges) + 1:
            raise ValueError(f"need {len(edges) + 1} interarrival means for edges {list(edges)}, got {len(means)}")
        bounds = [0.0] + [float(e) for e in edges] + [None]
        dists = []
        for i, mean in enumerate(means):
            lo, hi = bounds[i], bounds[i + 1]
            label = f"{lo:g}h+" if hi is None else f"{lo:g}-{hi:g}h"
            dists.append(Exponential(f"{label} Interarrival Times", mean, streams.stream()))
        return cls(edges, dists)

    def band(self, now: float) -> int:
        return bisect_right(self.edges, now)

    def sample(self, now: float) -> float:
        return self.dists[self.band(now)].sample()


class Generator:
    """Arrival process: one new Customer per sampled gap until closing."""
    name = "Generator"

    def __init__(self, shop):
        self.shop = shop
        self.process = shop.env.process(self)

    def life_cycle(self):
        shop = self.shop
        env = shop.env
        while env.t < shop.operation_hours:
            gap = shop.interarrivals.sample(env.t)
            yield env.hold(self.process, gap)
            customer = Customer(shop, arrival_time=env.t)
            env.activate(customer.process)
