import pytest

from horizonx.ema import EMA


def test_value_is_zero_before_any_sample():
    assert EMA(0.5).value() == 0.0


def test_first_sample_seeds_value():
    ema = EMA(0.3)
    assert ema.add(42.0) == 42.0
    assert ema.value() == 42.0


def test_second_sample_blends_with_alpha():
    ema = EMA(0.5)
    ema.add(10.0)
    assert ema.add(20.0) == pytest.approx(15.0)


def test_alpha_one_tracks_latest_sample():
    ema = EMA(1.0)
    for sample in (3.0, 9.0, -4.0):
        assert ema.add(sample) == sample


def test_alpha_zero_keeps_first_sample():
    ema = EMA(0.0)
    ema.add(7.0)
    for sample in (100.0, -50.0, 3.0):
        assert ema.add(sample) == 7.0


def test_average_stays_between_extremes():
    ema = EMA(0.3)
    samples = [5.0, 80.0, 12.0, 60.0, 33.0]
    for sample in samples:
        result = ema.add(sample)
        assert min(samples) <= result <= max(samples)
    assert ema.value() == result


def test_constant_input_is_fixed_point():
    ema = EMA(0.5)
    for _ in range(10):
        assert ema.add(25.0) == pytest.approx(25.0)