from collections import defaultdict

import pytest

from shopsim.config import DEFAULTS, apply_overrides
from shopsim.entities import Customer
from shopsim.replications import validate_snapshot
from shopsim.shop import Shop
from shopsim.simulation import DaySnapshot, open_shop, run_one_day, simulate_day

from conftest import with_seed

OUTCOME_KINDS = {"balk", "lost_stall", "lost_referral", "fixed_mechanic", "fixed_specialist"}
SEEDS = [981, 983, 985, 987, 989]

BUSY_SHOP = {
    "sim": {"operation_hours": 10},
    "mechanics": {"count": 3},
    "specialists": {"count": 2},
    "stalls": {"count": 2},
}


def _outcomes_by_customer(trace):
    outcomes = defaultdict(list)
    for e in trace:
        if e.kind in OUTCOME_KINDS:
            outcomes[e.customer].append(e.kind)
    return outcomes


@pytest.fixture(params=[{}, BUSY_SHOP], ids=["baseline", "busy"])
def shop_cfg(request, base_cfg):
    return apply_overrides(base_cfg, request.param)


@pytest.mark.parametrize("seed", SEEDS)
def test_stalls_in_use_stay_within_capacity(shop_cfg, seed):
    shop = simulate_day(with_seed(shop_cfg, seed))
    assert all(0 <= e.stalls_in_use <= shop.num_stalls for e in shop.trace)
    assert shop.stalls_in_use == 0


@pytest.mark.parametrize("seed", SEEDS)
def test_every_customer_has_exactly_one_outcome(shop_cfg, seed):
    shop = simulate_day(with_seed(shop_cfg, seed))
    arrived = {e.customer for e in shop.trace if e.kind == "arrive"}
    outcomes = _outcomes_by_customer(shop.trace)
    assert set(outcomes) == arrived
    assert all(len(kinds) == 1 for kinds in outcomes.values())


@pytest.mark.parametrize("seed", SEEDS)
def test_counts_add_up_once_the_shop_is_empty(shop_cfg, seed):
    snap = run_one_day(with_seed(shop_cfg, seed))
    assert snap.total_customers == snap.total_balked + snap.total_lost + snap.fully_fixed
    assert snap.total_lost == snap.lost_at_stall + snap.lost_after_referral
    assert snap.fully_fixed == snap.fixed_by_mechanic + snap.fixed_by_specialist


@pytest.mark.parametrize("seed", SEEDS)
def test_cost_never_decreases(shop_cfg, seed):
    shop = simulate_day(with_seed(shop_cfg, seed))
    costs = [e.cost for e in shop.trace]
    assert all(b >= a for a, b in zip(costs, costs[1:]))


@pytest.mark.parametrize("seed", SEEDS)
def test_cost_accounting(shop_cfg, seed):
    cfg = with_seed(shop_cfg, seed)
    snap = run_one_day(cfg)
    mech, spec = cfg["mechanics"], cfg["specialists"]
    seen_by_mechanic = snap.total_customers - snap.total_balked
    expected = (
        cfg["stalls"]["count"] * cfg["stalls"]["cost"]
        + mech["count"] * mech["salary"]
        + spec["count"] * spec["salary"]
        + (snap.total_balked + snap.total_lost) * cfg["customers"]["loss_cost"]
        + seen_by_mechanic * mech["commission"]
        + snap.fixed_by_specialist * spec["commission"]
    )
    assert snap.total_cost == pytest.approx(expected)


@pytest.mark.parametrize("seed", SEEDS)
def test_run_ends_after_closing_with_nobody_inside(shop_cfg, seed):
    shop = simulate_day(with_seed(shop_cfg, seed))
    assert shop.env.t > shop.operation_hours
    assert shop.in_system.is_empty()
    assert shop.waiting_for_mechanic.is_empty()
    assert shop.waiting_for_specialist.is_empty()


def test_same_seed_same_snapshot(base_cfg):
    cfg = with_seed(base_cfg, 991)
    assert run_one_day(cfg) == run_one_day(cfg)
    assert run_one_day(cfg) != run_one_day(with_seed(base_cfg, 993))


def test_snapshot_values_are_sane(base_cfg):
    snap = run_one_day(with_seed(base_cfg, 981))
    assert snap.total_customers > 0
    assert snap.mean_response_time > 0
    assert 0.0 <= snap.mechanic_utilization <= 1.0
    assert 0.0 <= snap.specialist_utilization <= 1.0
    assert snap.max_waiting_for_mechanic >= snap.mean_waiting_for_mechanic >= 0.0
    d = snap.as_dict()
    assert d["seed"] == 981
    assert d["total_cost"] == snap.total_cost


def test_scenario_single_servers_is_reproducible(base_cfg):
    cfg = apply_overrides(base_cfg, {
        "sim": {"operation_hours": 6, "seed": 1234},
        "mechanics": {"count": 1},
        "specialists": {"count": 1},
        "stalls": {"count": 1},
    })
    first, second = run_one_day(cfg), run_one_day(cfg)
    assert first.total_customers == second.total_customers
    assert first.total_cost == second.total_cost
    assert first == second


@pytest.mark.parametrize("seed", SEEDS)
def test_scenario_always_balk_when_anybody_is_waiting(base_cfg, seed):
    cfg = apply_overrides(base_cfg, {"customers": {"balk_low": 1, "balk_high": 1}})
    shop = simulate_day(with_seed(cfg, seed))
    outcomes = _outcomes_by_customer(shop.trace)
    for e in shop.trace:
        if e.kind != "arrive":
            continue
        someone_ahead = e.waiting >= 2 and e.idle_mechanics == 0
        assert (outcomes[e.customer] == ["balk"]) is someone_ahead


def test_scenario_always_balk_busy_day_has_balks(base_cfg):
    cfg = apply_overrides(base_cfg, {"customers": {"balk_low": 1, "balk_high": 1}})
    assert sum(run_one_day(with_seed(cfg, s)).total_balked for s in SEEDS) > 0


def test_scenario_no_balks_when_mechanics_are_always_idle(base_cfg):
    cfg = apply_overrides(base_cfg, {
        "customers": {"balk_low": 1, "balk_high": 1},
        "mechanics": {"count": 40},
    })
    for seed in SEEDS:
        shop = simulate_day(with_seed(cfg, seed))
        assert all(e.idle_mechanics > 0 for e in shop.trace if e.kind == "arrive")
        assert shop.total_balked.value == 0


@pytest.mark.parametrize("seed", SEEDS)
def test_scenario_no_referrals(base_cfg, seed):
    cfg = apply_overrides(base_cfg, {"mechanics": {"referral_rate": 0.0}})
    shop = simulate_day(with_seed(cfg, seed))
    snap = run_one_day(with_seed(cfg, seed))
    assert snap.total_lost == 0
    assert snap.lost_after_referral == 0
    assert snap.fixed_by_specialist == 0
    assert snap.fully_fixed == snap.fixed_by_mechanic == snap.total_customers - snap.total_balked
    assert not any(e.kind == "refer" for e in shop.trace)


@pytest.mark.parametrize("seed", SEEDS)
def test_scenario_no_stalls(base_cfg, seed):
    cfg = apply_overrides(base_cfg, {"stalls": {"count": 0}})
    shop = simulate_day(with_seed(cfg, seed))
    referred = sum(1 for e in shop.trace if e.kind == "refer")
    lost_at_stall = sum(1 for e in shop.trace if e.kind == "lost_stall")
    assert referred == lost_at_stall
    assert not any(e.kind in ("start_specialist", "claim_stall", "fixed_specialist") for e in shop.trace)
    assert all(s.served == 0 for s in shop.specialists)
    snap = run_one_day(with_seed(cfg, seed))
    assert snap.fixed_by_specialist == 0
    assert snap.specialist_utilization == 0.0


def test_utilization_is_undefined_without_staff(base_cfg):
    cfg = apply_overrides(base_cfg, {
        "specialists": {"count": 0},
        "mechanics": {"referral_rate": 0.0},
    })
    snap = run_one_day(cfg)
    assert snap.specialist_utilization is None
    assert snap.mechanic_utilization is not None


def test_trace_is_off_by_default(base_cfg):
    cfg = apply_overrides(base_cfg, {"sim": {"trace": False}})
    assert simulate_day(cfg).trace is None


def _run_unchecked(overrides):
    # builds the day directly so staffing that validate_config refuses can still be observed
    shop = Shop(apply_overrides(DEFAULTS, overrides))
    open_shop(shop)
    shop.env.run(stop=shop.closed_and_empty)
    return shop, DaySnapshot.from_shop(shop)


def test_referral_without_specialists_strands_a_customer():
    shop, snap = _run_unchecked({
        "specialists": {"count": 0},
        "mechanics": {"referral_rate": 1.0, "referral_patience_hours": 100.0},
    })
    assert shop.stalls_in_use == 1
    assert snap.in_system_at_end == len(shop.in_system) >= 1
    assert snap.total_customers > snap.total_balked + snap.total_lost + snap.fully_fixed
    assert any("still in the shop" in r for r in validate_snapshot(snap, shop.operation_hours))


def test_no_mechanics_strands_every_customer_who_stays():
    shop, snap = _run_unchecked({"mechanics": {"count": 0}})
    assert snap.fully_fixed == 0
    assert snap.in_system_at_end == snap.total_customers - snap.total_balked >= 1
    assert any("still in the shop" in r for r in validate_snapshot(snap, shop.operation_hours))


def test_drained_day_reports_an_empty_shop(base_cfg):
    snap = run_one_day(base_cfg)
    assert snap.in_system_at_end == 0
    assert snap.total_customers == snap.total_balked + snap.total_lost + snap.fully_fixed


def test_customer_ids_come_from_the_shop():
    shop = Shop(apply_overrides(DEFAULTS, {}))
    first = Customer(shop, arrival_time=0.0)
    second = Customer(shop, arrival_time=0.5)
    assert (first.cid, second.cid) == (1, 2)
    assert second.name == "Customer#2"
    with pytest.raises(TypeError):
        Customer(shop, arrival_time=1.0, cid=5)
