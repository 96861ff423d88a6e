"""
experiments/scenarios.py

Holds scenario definitions (decision variables) to sweep during experiments.
Add staffing levels, stall counts, and opening hours here.
"""

from __future__ import annotations

BASELINE = {
    "name": "baseline",
    "overrides": {},  # override config keys here per scenario
}

TWO_MECHANICS = {
    "name": "two_mechanics",
    "overrides": {
        "mechanics": {"count": 2},
    },
}

EXTRA_STALL = {
    "name": "extra_stall",
    "overrides": {
        "specialists": {"count": 2},
        "stalls": {"count": 2},
    },
}

LONG_DAY = {
    "name": "long_day",
    "overrides": {
        "sim": {"operation_hours": 10},
        "mechanics": {"count": 2, "salary": 200.0},
        "specialists": {"count": 2, "salary": 400.0},
        "stalls": {"count": 2},
    },
}

SCENARIOS = [BASELINE, TWO_MECHANICS, EXTRA_STALL, LONG_DAY]
