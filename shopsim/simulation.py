# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# simulation.py
# -----------------------------------------------------------------------------
# Purpose:
#   Simulate a single replication ("one business day"): build the shop,
#   start the permanent staff and the arrival generator, run the event loop
#   until the shop has closed and drained, and return a result snapshot.
#
# Design notes:
#   - The run continues past closing time until the last customer has left;
#     the stop condition is checked after every event, not on a timer.
#   - Replication bookkeeping (seeds, validation, CIs) lives in
#     replications.py.
#
# Usage:
#   from shopsim.simulation import run_one_day
#   snap = run_one_day(cfg)
# -----------------------------------------------------------------------------

from __future__ import annotations
import logging
from dataclasses import dataclass, asdict
from typing import Dict, Optional
from .config import resolve
from .shop import Shop
from .arrivals import Generator
from .entities import Mechanic, Specialist, Outcome
from . import policies

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DaySnapshot:
    """Final metric values of one completed replication."""
    seed: int
    end_time: float
    total_cost: float
    total_customers: int
    total_balked: int
    total_lost: int
    fully_fixed: int
    lost_at_stall: int
    lost_after_referral: int
    fixed_by_mechanic: int
    fixed_by_specialist: int
    mean_response_time: float
    mean_waiting_for_mechanic: float
    max_waiting_for_mechanic: int
    mean_waiting_for_specialist: float
    mechanic_utilization: Optional[float]     # None when the idle queue was never used
    specialist_utilization: Optional[float]
    in_system_at_end: int = 0                 # customers still in the shop when the run stopped

    def as_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_shop(cls, shop: Shop) -> "DaySnapshot":
        outcomes = shop.outcomes
        mech_util = policies.idle_utilization(shop.idle_mechanics.max_length,
                                              shop.idle_mechanics.average_length())
        spec_util = policies.idle_utilization(shop.idle_specialists.max_length,
                                              shop.idle_specialists.average_length())
        return cls(
            seed=shop.seed,
            end_time=shop.env.t,
            total_cost=shop.cost.value,
            total_customers=shop.total_customers.value,
            total_balked=shop.total_balked.value,
            total_lost=shop.total_lost.value,
            fully_fixed=shop.fully_fixed.value,
            lost_at_stall=outcomes[Outcome.LOST_AT_STALL].value,
            lost_after_referral=outcomes[Outcome.LOST_AFTER_REFERRAL].value,
            fixed_by_mechanic=outcomes[Outcome.FIXED_BY_MECHANIC].value,
            fixed_by_specialist=outcomes[Outcome.FIXED_BY_SPECIALIST].value,
            mean_response_time=shop.response_times.mean,
            mean_waiting_for_mechanic=shop.waiting_for_mechanic.average_length(),
            max_waiting_for_mechanic=shop.waiting_for_mechanic.max_length,
            mean_waiting_for_specialist=shop.waiting_for_specialist.average_length(),
            mechanic_utilization=mech_util,
            specialist_utilization=spec_util,
            in_system_at_end=len(shop.in_system),
        )


def open_shop(shop: Shop):
    """Initial schedules: staff clock in idle, arrivals start, stalls are paid for."""
    env = shop.env
    for i in range(shop.num_mechanics):
        mechanic = Mechanic(shop, index=i + 1)
        shop.mechanics.append(mechanic)
        shop.idle_mechanics.insert(mechanic)
        env.activate(mechanic.process)
    for i in range(shop.num_specialists):
        specialist = Specialist(shop, index=i + 1)
        shop.specialists.append(specialist)
        shop.idle_specialists.insert(specialist)
        env.activate(specialist.process)
    env.activate(Generator(shop).process)
    shop.cost.update(shop.num_stalls * shop.stall_cost)


def simulate_day(cfg: Optional[Dict] = None) -> Shop:
    """Run one replication and hand back the finished Shop (queues, trace, ...)."""
    shop = Shop(resolve(cfg))
    open_shop(shop)
    shop.env.run(stop=shop.closed_and_empty)
    logger.debug("seed %s: closed at t=%.3f with %d customers", shop.seed, shop.env.t,
                 shop.total_customers.value)
    return shop


def run_one_day(cfg: Optional[Dict] = None) -> DaySnapshot:
    snap = DaySnapshot.from_shop(simulate_day(cfg))
    if snap.mechanic_utilization is None or snap.specialist_utilization is None:
        logger.warning("seed %s: utilization undefined (an idle queue stayed empty all day)", snap.seed)
    return snap
