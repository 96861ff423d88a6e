# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# replications.py
# -----------------------------------------------------------------------------
# Purpose:
#   Run N independent days with deterministic, evenly spaced seeds, reject
#   any invalid day, and fold the valid snapshots into one
#   ConfidenceCalculator per reported metric.
#
# Design notes:
#   - Replication i (1-based) uses seed = base_seed + seed_stride * i.
#   - The first invalid replication aborts the whole batch with a
#     ReplicationError; skipping it would bias the aggregate.
#   - workers > 1 runs days in a process pool. Snapshots are still folded in
#     replication order, so the aggregate matches the sequential run.
#
# Usage:
#   results = run_replications(cfg)
#   for row in results.summaries(): ...
# -----------------------------------------------------------------------------

from __future__ import annotations
import copy, logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple
from .config import resolve
from .metrics import ConfidenceCalculator
from .simulation import DaySnapshot, run_one_day

logger = logging.getLogger(__name__)


class ReplicationError(RuntimeError):
    """A replication produced values that cannot enter the aggregate."""
    def __init__(self, replication: int, seed: int, reasons: List[str]):
        self.replication = replication
        self.seed = seed
        self.reasons = list(reasons)
        super().__init__(f"replication {replication} (seed {seed}) failed validation: " + "; ".join(self.reasons))


# key, display name, extractor -- in report order
METRICS: Tuple[Tuple[str, str, Callable[[DaySnapshot], Optional[float]]], ...] = (
    ("daily_cost", "Daily Operating Cost", lambda s: s.total_cost),
    ("total_customers", "Average Total Customers", lambda s: s.total_customers),
    ("balked", "Average Balked Customers", lambda s: s.total_balked),
    ("lost", "Average Lost Customers", lambda s: s.total_lost),
    ("fully_fixed", "Average Fully Fixed", lambda s: s.fully_fixed),
    ("response_time", "Average Response Time", lambda s: s.mean_response_time),
    ("mechanic_utilization", "Mechanic Utilization Rate", lambda s: s.mechanic_utilization),
    ("specialist_utilization", "Specialist Utilization Rate", lambda s: s.specialist_utilization),
    ("waiting_for_mechanic", "Average in Waiting Room", lambda s: s.mean_waiting_for_mechanic),
)

_CHECKED_FIELDS = (
    "total_cost", "total_customers", "total_balked", "total_lost", "fully_fixed",
    "mean_response_time", "mean_waiting_for_mechanic",
    "mechanic_utilization", "specialist_utilization",
)

REPLICATION_HEADER = (
    "        Daily   Total      Balked     Lost       Fully Fixed     Response     Waiting\n"
    "Repl.#  Cost    Customers  Customers  Customers  Cars            Time (avg)   Time (AVG)\n"
    + "-" * 92
)


def replication_seeds(base_seed: int, replications: int, stride: int = 2) -> List[int]:
    return [base_seed + stride * i for i in range(1, replications + 1)]


def validate_snapshot(snap: DaySnapshot, operation_hours: float) -> List[str]:
    """Return the reasons `snap` is invalid (empty list when it is fine)."""
    reasons = []
    if snap.end_time < operation_hours:
        reasons.append(f"stopped at t={snap.end_time:.3f} before closing time {operation_hours}")
    if snap.in_system_at_end:
        reasons.append(f"{snap.in_system_at_end} customer(s) still in the shop when the run stopped")
    for name in _CHECKED_FIELDS:
        val = getattr(snap, name)
        if val is not None and val < 0:
            reasons.append(f"{name} is negative ({val})")
    return reasons


def format_replication_line(index: int, snap: DaySnapshot) -> str:
    return (f"{index:6d}: {snap.total_cost:<6.0f} {snap.total_customers:<9d}  {snap.total_balked:<9d}  "
            f"{snap.total_lost:<9d}  {snap.fully_fixed:<14d}  {snap.mean_response_time:<12.3f} "
            f"{snap.mean_waiting_for_mechanic:<15.3f}")


@dataclass
class ReplicationResults:
    confidence_level: float
    calculators: Dict[str, ConfidenceCalculator] = field(default_factory=dict)
    snapshots: List[DaySnapshot] = field(default_factory=list)

    @classmethod
    def empty(cls, confidence_level: float) -> "ReplicationResults":
        calcs = {key: ConfidenceCalculator(label, confidence_level) for key, label, _ in METRICS}
        return cls(confidence_level, calcs)

    def add(self, snap: DaySnapshot):
        for key, _, extract in METRICS:
            val = extract(snap)
            if val is None:
                # undefined utilization: leave it out rather than report 0 or NaN
                continue
            self.calculators[key].update(val)
        self.snapshots.append(snap)

    def __getitem__(self, key: str) -> ConfidenceCalculator:
        return self.calculators[key]

    def summaries(self) -> List[Dict]:
        return [self.calculators[key].summary() for key, _, _ in METRICS]

    def per_replication_lines(self) -> List[str]:
        lines = REPLICATION_HEADER.splitlines()
        lines += [format_replication_line(i, s) for i, s in enumerate(self.snapshots, start=1)]
        return lines


def run_replications(cfg: Optional[Dict] = None, replications: Optional[int] = None,
                     workers: Optional[int] = None) -> ReplicationResults:
    cfg = resolve(cfg)
    exp = cfg["experiments"]
    n = int(replications if replications is not None else exp["replications"])
    seeds = replication_seeds(cfg["sim"]["seed"], n, exp.get("seed_stride", 2))
    day_cfgs = []
    for seed in seeds:
        day_cfg = copy.deepcopy(cfg)
        day_cfg["sim"]["seed"] = seed
        day_cfgs.append(day_cfg)

    logger.info("running %d replications (seeds %d..%d)", n, seeds[0], seeds[-1])
    if workers and workers > 1:
        with ProcessPoolExecutor(max_workers=workers) as pool:
            try:
                return _collect(cfg, pool.map(run_one_day, day_cfgs))
            except ReplicationError:
                # the batch is void; don't wait for days that haven't started
                pool.shutdown(wait=False, cancel_futures=True)
                raise
    return _collect(cfg, (run_one_day(c) for c in day_cfgs))


def _collect(cfg: Dict, snaps) -> ReplicationResults:
    results = ReplicationResults.empty(cfg["experiments"]["confidence_level"])
    hours = cfg["sim"]["operation_hours"]
    for index, snap in enumerate(snaps, start=1):
        reasons = validate_snapshot(snap, hours)
        if reasons:
            logger.error("replication %d (seed %d) rejected: %s", index, snap.seed, "; ".join(reasons))
            raise ReplicationError(index, snap.seed, reasons)
        results.add(snap)
        logger.debug("replication %d (seed %d): cost=%.2f customers=%d",
                     index, snap.seed, snap.total_cost, snap.total_customers)
    logger.info("finished %d replications", len(results.snapshots))
    return results
