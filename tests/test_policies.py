import pytest

from shopsim import policies


@pytest.mark.parametrize("threshold, waiting_len, balks", [
    (1, 1, False),   # alone in line
    (1, 2, True),
    (2, 2, False),
    (8, 8, False),
    (8, 9, True),    # eight already waiting: everybody balks
])
def test_should_balk_excludes_the_arriving_customer(threshold, waiting_len, balks):
    assert policies.should_balk(threshold, waiting_len) is balks


def test_referral_defects_only_past_patience():
    assert not policies.referral_defects(0.5, 0.5)
    assert policies.referral_defects(0.5001, 0.5)


def test_stall_available():
    assert policies.stall_available(0, 1)
    assert not policies.stall_available(1, 1)
    assert not policies.stall_available(0, 0)


def test_idle_utilization():
    assert policies.idle_utilization(1, 0.25) == pytest.approx(0.75)
    assert policies.idle_utilization(2, 2.0) == 0.0
    assert policies.idle_utilization(0, 0.0) is None
