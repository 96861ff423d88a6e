# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# policies.py
# -----------------------------------------------------------------------------
# Purpose:
#   Business rules of the shop as pure functions: balking, referral
#   defection, stall capacity, and the idle-queue utilization proxy.
#
# Design notes:
#   - Keep pure functions to ease testing (policy -> decision).
#   - Life cycles in entities.py sample the randomness and pass it in.
#
# Usage:
#   from shopsim.policies import should_balk
# -----------------------------------------------------------------------------

from __future__ import annotations
from typing import Optional


def should_balk(threshold: int, waiting_len: int) -> bool:
    """
    Decide whether an arriving customer leaves without waiting.

    `waiting_len` is the waiting-for-mechanic length *including* the arriving
    customer, so one is subtracted before comparing against the sampled
    threshold. With thresholds drawn from [1, 8], nobody balks at an empty
    line and everybody balks once eight others are already waiting.
    """
    ahead = waiting_len - 1
    return threshold <= ahead


def referral_defects(elapsed: float, patience: float) -> bool:
    """A referred customer who has already been in the shop longer than
    `patience` hours goes to a competitor instead of the specialist."""
    return elapsed > patience


def stall_available(stalls_in_use: int, num_stalls: int) -> bool:
    return stalls_in_use < num_stalls


def idle_utilization(max_idle: float, mean_idle: float) -> Optional[float]:
    """
    Busy-fraction proxy from idle-queue statistics:
        (max idle length - mean idle length) / max idle length

    Returns None when the idle queue never held anybody (max == 0); the
    ratio is undefined there and must not be reported as a number.
    """
    if max_idle <= 0:
        return None
    return (max_idle - mean_idle) / max_idle
