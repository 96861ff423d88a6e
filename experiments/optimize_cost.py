"""
experiments/optimize_cost.py

Coordinate-descent style search over staffing decisions (mechanics,
specialists, stalls) to find the configuration with the lowest mean daily
operating cost. Instead of an exhaustive Cartesian grid, this walks one
decision dimension at a time while holding the others fixed.
"""

from __future__ import annotations
import copy, logging
from typing import Dict, List, Tuple

from shopsim.config import load_cfg, apply_overrides
from shopsim.replications import run_replications
from experiments.scenarios import SCENARIOS

# (config section, key) -> inclusive integer bounds of the search
STAFFING_CHOICES: Dict[Tuple[str, str], Tuple[int, int]] = {
    ("mechanics", "count"): (1, 10),
    ("specialists", "count"): (1, 5),
    ("stalls", "count"): (1, 5),
}
COORDINATE_PASSES = 2

# Which scenarios to optimize (match names in scenarios.py).
SELECTED_SCENARIOS = ["baseline"]


def int_grid(bounds: Tuple[int, int], step: int = 1) -> List[int]:
    """Generate integer grid values within [lo, hi] inclusive with stride=step."""
    lo, hi = bounds
    stride = max(1, int(step))
    vals = list(range(int(lo), int(hi) + 1, stride))
    if vals and vals[-1] != hi:
        vals.append(hi)
    return vals


def evaluate(cfg: Dict, replications: int) -> float:
    """Mean daily cost over `replications` days (same seeds for every candidate)."""
    results = run_replications(cfg, replications=replications)
    return results["daily_cost"].mean


def coord_descent(base_cfg: Dict, passes: int, replications: int) -> Tuple[float, Dict]:
    """
    For each staffing dimension, sweep its grid while holding the others fixed
    and keep the value with the lowest mean cost. Every candidate reuses the
    same seed stream, so comparisons use common random numbers.
    """
    current = copy.deepcopy(base_cfg)
    for (section, key), (lo, hi) in STAFFING_CHOICES.items():
        current[section][key] = int(min(max(current[section][key], lo), hi))
    best_cost = evaluate(current, replications)
    for _ in range(max(1, passes)):
        for (section, key), bounds in STAFFING_CHOICES.items():
            best_val = current[section][key]
            local_best = best_cost
            for val in int_grid(bounds):
                if val == best_val:
                    continue
                cand = apply_overrides(current, {section: {key: val}})
                cost = evaluate(cand, replications)
                if cost < local_best:
                    local_best = cost
                    best_val = val
            current[section][key] = best_val
            best_cost = local_best
    return best_cost, current


def search(passes: int = COORDINATE_PASSES, scenario_names: List[str] = SELECTED_SCENARIOS):
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")
    base = load_cfg()
    replications = int(base["experiments"].get("search_replications", 20))
    sc_index = {sc["name"]: sc for sc in SCENARIOS}
    for sc_name in scenario_names or list(sc_index):
        sc = sc_index.get(sc_name)
        if sc is None:
            print(f"[warn] scenario '{sc_name}' not found; skipping.")
            continue
        print(f"\n=== Searching scenario: {sc['name']} ===")
        best_cost, best_cfg = coord_descent(apply_overrides(base, sc["overrides"]), passes, replications)
        print(f"  Best mean daily cost (over {replications} replications): ${best_cost:,.2f}")
        for section, key in STAFFING_CHOICES:
            print(f"    {section}.{key} = {best_cfg[section][key]}")


if __name__ == "__main__":
    search()
