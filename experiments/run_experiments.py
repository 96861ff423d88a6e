"""
experiments/run_experiments.py

Experiment harness that loads the baseline config, applies scenario overrides,
runs multiple daily replications, and reports KPIs with confidence intervals.
The script is intentionally lightweight so we can tweak scenarios or plug in
other analysis pipelines as needed.
"""

from __future__ import annotations
import logging, os, sys
from typing import Dict, List, Optional

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from shopsim.config import ROOT, load_cfg, apply_overrides
from shopsim.replications import ReplicationError, ReplicationResults, run_replications
from experiments.scenarios import SCENARIOS

logger = logging.getLogger(__name__)

OUT_DIR = os.path.join(ROOT, "experiments", "output")


def format_summary_table(results: ReplicationResults) -> List[str]:
    """One row per metric: OBS, MEAN, STD. DEV, MIN, MAX, CONF. LEVEL, CONF. LOWER/UPPER."""
    lines = [
        f"  {'TITLE':<30} {'OBS':>5} {'MEAN':>10} {'STD. DEV':>10} {'MIN':>10} {'MAX':>10}"
        f" {'CONF.':>6} {'LOWER':>10} {'UPPER':>10}",
    ]
    for row in results.summaries():
        lo = row["min"] if row["min"] is not None else float("nan")
        hi = row["max"] if row["max"] is not None else float("nan")
        lines.append(
            f"  {row['name']:<30} {row['observations']:>5d} {row['mean']:>10.3f} {row['std_dev']:>10.3f}"
            f" {lo:>10.3f} {hi:>10.3f} {row['confidence_level']:>6.2f} {row['lower']:>10.3f} {row['upper']:>10.3f}"
        )
    return lines


def plot_cost_by_seed(all_costs: List[Dict], out_dir: str = OUT_DIR) -> Optional[str]:
    """
    Persist a PNG with one line per scenario: daily operating cost against
    the replication seed, so outlier days are easy to spot.
    """
    if not all_costs:
        return None
    plt.figure(figsize=(9, 5))
    for entry in all_costs:
        plt.plot(entry["seeds"], entry["costs"], linewidth=1.2, label=entry["name"])
    plt.xlabel("Replication seed")
    plt.ylabel("Daily operating cost ($)")
    plt.title("Daily operating cost by replication")
    plt.grid(True, linestyle="--", alpha=0.4)
    plt.legend()
    os.makedirs(out_dir, exist_ok=True)
    out_path = os.path.join(out_dir, "daily_cost_by_seed.png")
    plt.tight_layout()
    plt.savefig(out_path, dpi=160)
    plt.close()
    return out_path


def main(config_path: Optional[str] = None, workers: Optional[int] = None) -> int:
    """Entry point: drive all scenarios, replications, and report KPIs."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    cfg = load_cfg(config_path)
    exp_cfg = cfg["experiments"]
    level_pct = exp_cfg["confidence_level"] * 100.0

    all_costs: List[Dict] = []
    for sc in SCENARIOS:
        sc_cfg = apply_overrides(cfg, sc["overrides"])
        try:
            results = run_replications(sc_cfg, workers=workers)
        except ReplicationError as err:
            # The batch is void; the caller decides whether to rerun.
            print(f"Scenario: {sc['name']} aborted: {err}")
            return 1
        all_costs.append({
            "name": sc["name"],
            "seeds": [s.seed for s in results.snapshots],
            "costs": [s.total_cost for s in results.snapshots],
        })

        n = len(results.snapshots)
        print(f"Scenario: {sc['name']} (replications={n}, {level_pct:.1f}% CI)")
        for line in format_summary_table(results):
            print(line)
        if sc_cfg["experiments"].get("per_replication_output"):
            print("  Output per replication:")
            for line in results.per_replication_lines():
                print(f"  {line}")
        print("-")

    plot_path = plot_cost_by_seed(all_costs)
    if plot_path:
        print(f"\nDaily cost plot saved to: {plot_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
