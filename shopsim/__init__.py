"""
shopsim package initializer.

This package contains the process-oriented simulation engine, queueing
structures, entity life cycles, business-rule policies and statistics used
by the auto-repair shop model (generalist mechanics feeding specialist
stalls), plus the replication driver that turns single days into
confidence intervals.
"""
__all__ = [
    "queues", "metrics", "distributions", "policies", "entities",
    "arrivals", "shop", "simulation", "replications", "config",
]
