# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# shop.py
# -----------------------------------------------------------------------------
# Purpose:
#   Per-replication context: the Env, every queue, tracker and variate
#   generator, the stall counter and the cost aggregate. Entities receive the
#   Shop in their constructor and reach shared state only through it.
#
# Design notes:
#   - Keep side-effect methods (note_*, settle, claim/release_stall) here so
#     every counter/cost update for one business event happens in one place.
#   - Variate streams are drawn from StreamFactory in a fixed order; do not
#     reorder the constructor without accepting new random sequences.
#   - The optional trace is the event log used to replay invariants in tests.
#
# Usage:
#   shop = Shop(resolve(cfg))
# -----------------------------------------------------------------------------

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional
from .queues import Env, ProcessQueue
from .metrics import Counter, Tally, Aggregate
from .distributions import StreamFactory, Exponential, Bernoulli, DiscreteUniform
from .arrivals import ArrivalSchedule
from .entities import Outcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TraceEntry:
    time: float
    kind: str                  # arrive | balk | start_mechanic | refer | ... (see Shop.record)
    customer: Optional[int]
    stalls_in_use: int
    cost: float
    waiting: int               # waiting-for-mechanic length after the event
    idle_mechanics: int


_OUTCOME_KINDS = {
    Outcome.BALKED: "balk",
    Outcome.LOST_AT_STALL: "lost_stall",
    Outcome.LOST_AFTER_REFERRAL: "lost_referral",
    Outcome.FIXED_BY_MECHANIC: "fixed_mechanic",
    Outcome.FIXED_BY_SPECIALIST: "fixed_specialist",
}


class Shop:
    def __init__(self, cfg: Dict, env: Optional[Env] = None):
        self.cfg = cfg
        self.env = env or Env()
        self.seed = cfg["sim"]["seed"]
        self.operation_hours = float(cfg["sim"]["operation_hours"])

        mech = cfg["mechanics"]
        spec = cfg["specialists"]
        cust = cfg["customers"]
        self.num_mechanics = int(mech["count"])
        self.mechanic_salary = mech["salary"]
        self.mechanic_commission = mech["commission"]
        self.referral_patience = mech["referral_patience_hours"]
        self.num_specialists = int(spec["count"])
        self.specialist_salary = spec["salary"]
        self.specialist_commission = spec["commission"]
        self.num_stalls = int(cfg["stalls"]["count"])
        self.stall_cost = cfg["stalls"]["cost"]
        self.loss_cost = cust["loss_cost"]

        # Sources of randomness
        streams = StreamFactory(self.seed)
        self.interarrivals = ArrivalSchedule.from_config(cfg["arrivals"], streams)
        self.mechanic_fix_times = Exponential("Mechanic Fix Times", mech["fix_time_mean_hours"], streams.stream())
        self.specialist_fix_times = Exponential("Specialist Fix Times", spec["fix_time_mean_hours"], streams.stream())
        self.mechanic_referral = Bernoulli("Mechanic Referral", mech["referral_rate"], streams.stream())
        self.balk_determiner = DiscreteUniform("Balk Determiner", cust["balk_low"], cust["balk_high"], streams.stream())

        # Structures
        self.idle_mechanics = ProcessQueue(self.env, "Idle Mechanic Queue")
        self.idle_specialists = ProcessQueue(self.env, "Idle Specialist Queue")
        self.waiting_for_mechanic = ProcessQueue(self.env, "Mechanic Waiting Queue")
        self.waiting_for_specialist = ProcessQueue(self.env, "Specialist Waiting Queue")
        self.in_system = ProcessQueue(self.env, "Total People in Shop")

        # Trackers
        self.total_customers = Counter("Total Customers")
        self.total_balked = Counter("Total Balked")
        self.total_lost = Counter("Total Lost")
        self.fully_fixed = Counter("Fully Fixed")
        self.outcomes: Dict[Outcome, Counter] = {o: Counter(o.value) for o in Outcome}
        self.response_times = Tally("Response Times")
        self.cost = Aggregate("Today's Cost")
        self.stalls_in_use = 0
        self.mechanics: List = []
        self.specialists: List = []

        self.trace: Optional[List[TraceEntry]] = [] if cfg["sim"].get("trace") else None
        self._next_cid = 0

    def next_customer_id(self) -> int:
        self._next_cid += 1
        return self._next_cid

    def note_arrival(self, customer):
        self.total_customers.update()
        self.in_system.insert(customer)
        self.waiting_for_mechanic.insert(customer)
        self.record("arrive", customer)

    def settle(self, customer, outcome: Outcome):
        """Give `customer` its terminal outcome and book counts and costs for it."""
        if customer.outcome is not None:
            raise RuntimeError(f"{customer.name} already settled as {customer.outcome.value}")
        customer.outcome = outcome
        logger.debug("t=%.4f %s -> %s", self.env.t, customer.name, outcome.value)
        self.outcomes[outcome].update()
        if outcome.is_fixed:
            self.fully_fixed.update()
            self.response_times.update(self.env.t - customer.arrival_time)
        else:
            if outcome is Outcome.BALKED:
                self.total_balked.update()
            else:
                self.total_lost.update()
            self.cost.update(self.loss_cost)
        self.record(_OUTCOME_KINDS[outcome], customer)

    def claim_stall(self, customer):
        if self.stalls_in_use >= self.num_stalls:
            raise RuntimeError(f"{customer.name} claimed a stall with all {self.num_stalls} in use")
        self.stalls_in_use += 1
        self.record("claim_stall", customer)

    def release_stall(self, customer):
        if self.stalls_in_use <= 0:
            raise RuntimeError(f"{customer.name} released a stall while none were in use")
        self.stalls_in_use -= 1

    def closed_and_empty(self) -> bool:
        """Stop condition: past closing time with nobody left in the shop."""
        return self.env.t > self.operation_hours and self.in_system.is_empty()

    def record(self, kind: str, customer=None):
        if self.trace is None:
            return
        self.trace.append(TraceEntry(
            time=self.env.t,
            kind=kind,
            customer=getattr(customer, "cid", None),
            stalls_in_use=self.stalls_in_use,
            cost=self.cost.value,
            waiting=len(self.waiting_for_mechanic),
            idle_mechanics=len(self.idle_mechanics),
        ))
