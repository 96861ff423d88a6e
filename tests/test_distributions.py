import random

import pytest

from shopsim.distributions import Bernoulli, DiscreteUniform, Exponential, StreamFactory


def _draws(seed, n=50):
    streams = StreamFactory(seed)
    exp = Exponential("e", 0.5, streams.stream())
    return [exp.sample() for _ in range(n)]


def test_same_seed_same_sequence():
    assert _draws(981) == _draws(981)
    assert _draws(981) != _draws(983)


def test_streams_are_independent_of_each_other():
    streams = StreamFactory(7)
    a, b = streams.stream(), streams.stream()
    assert [a.random() for _ in range(5)] != [b.random() for _ in range(5)]


def test_exponential_mean():
    exp = Exponential("e", 2.0, random.Random(1))
    samples = [exp.sample() for _ in range(20000)]
    assert all(s >= 0 for s in samples)
    assert sum(samples) / len(samples) == pytest.approx(2.0, rel=0.03)


def test_exponential_zero_mean_is_degenerate():
    assert Exponential("e", 0.0, random.Random(1)).sample() == 0.0


def test_bernoulli_extremes():
    never = Bernoulli("b", 0.0, random.Random(1))
    always = Bernoulli("b", 1.0, random.Random(1))
    assert not any(never.sample() for _ in range(500))
    assert all(always.sample() for _ in range(500))


def test_discrete_uniform_bounds_are_inclusive():
    du = DiscreteUniform("balk", 1, 8, random.Random(3))
    seen = {du.sample() for _ in range(2000)}
    assert seen == set(range(1, 9))
    one = DiscreteUniform("balk", 1, 1, random.Random(3))
    assert {one.sample() for _ in range(50)} == {1}


def test_invalid_parameters():
    rng = random.Random(0)
    with pytest.raises(ValueError):
        Exponential("e", -1.0, rng)
    with pytest.raises(ValueError):
        Bernoulli("b", 1.2, rng)
    with pytest.raises(ValueError):
        DiscreteUniform("u", 5, 4, rng)
