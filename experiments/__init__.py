"""Experiment harness: scenario sweeps, CI reports and staffing search."""
