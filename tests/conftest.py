import pytest

from shopsim.config import DEFAULTS, apply_overrides


@pytest.fixture
def base_cfg():
    """Baseline shop with the event trace switched on and a short batch."""
    return apply_overrides(DEFAULTS, {
        "sim": {"trace": True},
        "experiments": {"replications": 5},
    })


def with_seed(cfg, seed):
    return apply_overrides(cfg, {"sim": {"seed": seed}})
