# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# config.py
# -----------------------------------------------------------------------------
# Purpose:
#   Load the YAML configuration, merge scenario overrides on top of the
#   built-in defaults, and reject configurations the model cannot run.
#
# Design notes:
#   - Times are in HOURS throughout (the Env clock is in hours).
#   - Zero stalls are legal, and so are zero specialists when no referral can
#     reach a stall; the unused idle queue reports undefined utilization.
#
# Usage:
#   cfg = load_cfg()                      # config/baseline.yaml + defaults
#   cfg = apply_overrides(cfg, {"stalls": {"count": 2}})
# -----------------------------------------------------------------------------

from __future__ import annotations
import copy, os
from typing import Dict, Optional
import yaml

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
BASELINE_PATH = os.path.join(ROOT, "config", "baseline.yaml")


class ConfigError(ValueError):
    """Configuration value the model cannot run with."""


DEFAULTS: Dict = {
    "sim": {
        "operation_hours": 6,
        "seed": 979,
        "trace": False,
    },
    "arrivals": {
        "band_edges_hours": [2.0, 8.0],
        # opening-2h, 2h-8h, 8h-close
        "interarrival_mean_hours": [15.0 / 60, 6.0 / 60, 9.0 / 60],
    },
    "mechanics": {
        "count": 1,
        "salary": 100.0,
        "commission": 10.0,
        "fix_time_mean_hours": 8.0 / 60,
        "referral_rate": 0.4,
        "referral_patience_hours": 0.5,
    },
    "specialists": {
        "count": 1,
        "salary": 300.0,
        "commission": 100.0,
        "fix_time_mean_hours": 25.0 / 60,
    },
    "stalls": {
        "count": 1,
        "cost": 100.0,
    },
    "customers": {
        "loss_cost": 400.0,
        "balk_low": 1,
        "balk_high": 8,
    },
    "experiments": {
        "replications": 100,
        "confidence_level": 0.95,
        "per_replication_output": True,
        "seed_stride": 2,
        "search_replications": 20,
    },
}


def apply_overrides(cfg: Dict, overrides: Optional[Dict]) -> Dict:
    """Apply scenario overrides (recursive merge) on top of the base config."""
    new = copy.deepcopy(cfg)

    def _merge(dst: Dict, src: Dict):
        for key, val in src.items():
            if isinstance(val, dict) and isinstance(dst.get(key), dict):
                _merge(dst[key], val)
            else:
                dst[key] = copy.deepcopy(val)

    _merge(new, overrides or {})
    return new


def resolve(cfg: Optional[Dict] = None) -> Dict:
    """Fill every key the model reads from DEFAULTS and validate the result."""
    full = apply_overrides(DEFAULTS, cfg)
    validate_config(full)
    return full


def load_cfg(path: Optional[str] = None) -> Dict:
    path = path or BASELINE_PATH
    with open(path, "r") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: top level must be a mapping, got {type(raw).__name__}")
    return resolve(raw)


def validate_config(cfg: Dict):
    """Raise ConfigError on the first invalid value found."""
    sim = cfg["sim"]
    if sim["operation_hours"] <= 0:
        raise ConfigError(f"sim.operation_hours must be > 0, got {sim['operation_hours']}")

    arr = cfg["arrivals"]
    edges = list(arr["band_edges_hours"])
    means = list(arr["interarrival_mean_hours"])
    if any(b <= a for a, b in zip(edges, edges[1:])) or any(e <= 0 for e in edges):
        raise ConfigError(f"arrivals.band_edges_hours must be positive and increasing, got {edges}")
    if len(means) != len(edges) + 1:
        raise ConfigError(
            f"arrivals.interarrival_mean_hours needs {len(edges) + 1} values for {len(edges)} edges, got {len(means)}"
        )
    if any(m <= 0 for m in means):
        raise ConfigError(f"arrivals.interarrival_mean_hours must be > 0, got {means}")

    for section in ("mechanics", "specialists"):
        sec = cfg[section]
        for key in ("count", "salary", "commission", "fix_time_mean_hours"):
            if sec[key] < 0:
                raise ConfigError(f"{section}.{key} must be >= 0, got {sec[key]}")
    mech = cfg["mechanics"]
    if not 0.0 <= mech["referral_rate"] <= 1.0:
        raise ConfigError(f"mechanics.referral_rate must be in [0, 1], got {mech['referral_rate']}")
    if mech["referral_patience_hours"] < 0:
        raise ConfigError(f"mechanics.referral_patience_hours must be >= 0, got {mech['referral_patience_hours']}")

    for key in ("count", "cost"):
        if cfg["stalls"][key] < 0:
            raise ConfigError(f"stalls.{key} must be >= 0, got {cfg['stalls'][key]}")

    # Every customer who stays must be able to leave, or the day never drains.
    if mech["count"] < 1:
        raise ConfigError(f"mechanics.count must be >= 1, got {mech['count']}")
    if cfg["specialists"]["count"] < 1 and cfg["stalls"]["count"] > 0 and mech["referral_rate"] > 0:
        raise ConfigError(
            "specialists.count must be >= 1 when referrals can claim a stall "
            f"(stalls.count={cfg['stalls']['count']}, mechanics.referral_rate={mech['referral_rate']})"
        )

    cust = cfg["customers"]
    if cust["loss_cost"] < 0:
        raise ConfigError(f"customers.loss_cost must be >= 0, got {cust['loss_cost']}")
    if cust["balk_low"] > cust["balk_high"]:
        raise ConfigError(f"customers.balk_low ({cust['balk_low']}) exceeds balk_high ({cust['balk_high']})")

    exp = cfg["experiments"]
    if exp["replications"] < 1:
        raise ConfigError(f"experiments.replications must be >= 1, got {exp['replications']}")
    if not 0.0 < exp["confidence_level"] < 1.0:
        raise ConfigError(f"experiments.confidence_level must be in (0, 1), got {exp['confidence_level']}")
