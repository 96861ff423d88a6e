# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# entities.py
# -----------------------------------------------------------------------------
# Purpose:
#   Entity life cycles for the auto-repair shop DES: Customer, Mechanic,
#   Specialist, plus the Outcome tag that ends every customer's visit.
#
# Design notes:
#   - Each entity wraps itself in a Process (shop.env.process(self)) and
#     exposes life_cycle(), a generator that yields env.hold/env.passivate.
#   - Shared state (queues, trackers, variates, stalls) lives on the Shop
#     context passed to every constructor; nothing here is global.
#   - Mechanics and specialists are permanent: their loops never return.
#   - A customer's outcome is set by whoever settles it (itself on balk or a
#     full stall, the mechanic, or the specialist); an unset outcome after a
#     wake-up means the customer still needs the specialist stage.
#
# Usage:
#   from shopsim.entities import Customer, Mechanic, Specialist, Outcome
# -----------------------------------------------------------------------------

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional
from . import policies


class Outcome(Enum):
    BALKED = "balked"
    LOST_AT_STALL = "lost_at_stall"
    LOST_AFTER_REFERRAL = "lost_after_referral"
    FIXED_BY_MECHANIC = "fixed_by_mechanic"
    FIXED_BY_SPECIALIST = "fixed_by_specialist"

    @property
    def is_fixed(self) -> bool:
        return self in (Outcome.FIXED_BY_MECHANIC, Outcome.FIXED_BY_SPECIALIST)

    @property
    def is_lost(self) -> bool:
        return self in (Outcome.LOST_AT_STALL, Outcome.LOST_AFTER_REFERRAL)


@dataclass(eq=False)
class Customer:
    shop: Any
    arrival_time: float
    cid: int = field(init=False, default=0)
    outcome: Optional[Outcome] = None     # terminal state, None while still being served
    process: Any = field(init=False, repr=False)

    def __post_init__(self):
        self.cid = self.shop.next_customer_id()
        self.name = f"Customer#{self.cid}"
        self.process = self.shop.env.process(self)

    @property
    def finished(self) -> bool:
        return self.outcome is not None

    def life_cycle(self):
        """
        1. Enter the shop and join the waiting-for-mechanic line
        2. Wake an idle mechanic, or possibly balk at the length of the line
        3. Wait; the mechanic either settles the visit or refers us on
        4. Claim a stall (or leave if every stall is taken) and wake a specialist
        5. Wait for the specialist, who does all of the final bookkeeping
        """
        shop = self.shop
        env = shop.env
        shop.note_arrival(self)

        if not shop.idle_mechanics.is_empty():
            mechanic = shop.idle_mechanics.remove_first()
            env.activate(mechanic.process)
        else:
            threshold = shop.balk_determiner.sample()
            if policies.should_balk(threshold, len(shop.waiting_for_mechanic)):
                shop.waiting_for_mechanic.remove(self)
                shop.settle(self, Outcome.BALKED)
                shop.in_system.remove(self)
                return

        yield env.passivate(self.process)

        # Fixed by the mechanic, or referred too late and gone elsewhere.
        if self.finished:
            shop.in_system.remove(self)
            return

        if not policies.stall_available(shop.stalls_in_use, shop.num_stalls):
            shop.waiting_for_specialist.remove(self)
            shop.settle(self, Outcome.LOST_AT_STALL)
            shop.in_system.remove(self)
            return

        shop.claim_stall(self)
        if not shop.idle_specialists.is_empty():
            specialist = shop.idle_specialists.remove_first()
            env.activate(specialist.process)

        yield env.passivate(self.process)


@dataclass(eq=False)
class Mechanic:
    shop: Any
    index: int = 0
    served: int = 0
    process: Any = field(init=False, repr=False)

    def __post_init__(self):
        self.name = f"Mechanic#{self.index}"
        self.process = self.shop.env.process(self)

    def life_cycle(self):
        """
        Salary is charged once when the mechanic clocks in, then:
          1. No car waiting -> join the idle line and passivate
          2. Otherwise take the next car and hold for the repair time
          3. Fix it, refer it to a specialist, or lose it if the referral
             comes after the customer's patience has run out
          4. Wake the customer and collect the commission
        """
        shop = self.shop
        env = shop.env
        shop.cost.update(shop.mechanic_salary)
        while True:
            if shop.waiting_for_mechanic.is_empty():
                shop.idle_mechanics.insert(self)
                yield env.passivate(self.process)
                continue

            customer = shop.waiting_for_mechanic.remove_first()
            shop.record("start_mechanic", customer)
            yield env.hold(self.process, shop.mechanic_fix_times.sample())

            if shop.mechanic_referral.sample():
                elapsed = env.t - customer.arrival_time
                if policies.referral_defects(elapsed, shop.referral_patience):
                    shop.settle(customer, Outcome.LOST_AFTER_REFERRAL)
                else:
                    shop.waiting_for_specialist.insert(customer)
                    shop.record("refer", customer)
            else:
                shop.settle(customer, Outcome.FIXED_BY_MECHANIC)

            env.activate(customer.process)
            self.served += 1
            shop.cost.update(shop.mechanic_commission)


@dataclass(eq=False)
class Specialist:
    shop: Any
    index: int = 0
    served: int = 0
    process: Any = field(init=False, repr=False)

    def __post_init__(self):
        self.name = f"Specialist#{self.index}"
        self.process = self.shop.env.process(self)

    def life_cycle(self):
        """Same loop as the mechanic, on the specialist line; never refers on."""
        shop = self.shop
        env = shop.env
        shop.cost.update(shop.specialist_salary)
        while True:
            if shop.waiting_for_specialist.is_empty():
                shop.idle_specialists.insert(self)
                yield env.passivate(self.process)
                continue

            customer = shop.waiting_for_specialist.remove_first()
            shop.record("start_specialist", customer)
            yield env.hold(self.process, shop.specialist_fix_times.sample())

            shop.settle(customer, Outcome.FIXED_BY_SPECIALIST)
            shop.in_system.remove(customer)
            shop.release_stall(customer)
            env.activate(customer.process)
            self.served += 1
            shop.cost.update(shop.specialist_commission)
