import types

import pytest

from pursuit_control.lookahead import Lookahead


def _lookahead() -> Lookahead:
    return Lookahead(min_distance=12.0, max_distance=24.0, min_speed=9.0, max_speed=120.0)


def test_distance_clamped_outside_speed_range() -> None:
    lookahead = _lookahead()
    assert lookahead.distance_for(0.0) == 12.0
    assert lookahead.distance_for(9.0) == 12.0
    assert lookahead.distance_for(120.0) == 24.0
    assert lookahead.distance_for(500.0) == 24.0


def test_distance_interpolates_linearly() -> None:
    assert _lookahead().distance_for(64.5) == pytest.approx(18.0)


def test_distance_is_monotonic_in_speed() -> None:
    lookahead = _lookahead()
    distances = [lookahead.distance_for(v) for v in range(0, 150, 5)]
    assert distances == sorted(distances)


def test_zero_width_speed_range() -> None:
    lookahead = Lookahead(10.0, 20.0, 50.0, 50.0)
    assert lookahead.distance_for(49.0) == 10.0
    assert lookahead.distance_for(51.0) == 20.0


@pytest.mark.parametrize(
    "args",
    [
        (0.0, 24.0, 9.0, 120.0),
        (12.0, 6.0, 9.0, 120.0),
        (12.0, 24.0, 120.0, 9.0),
    ],
)
def test_invalid_parameters_rejected(args) -> None:
    with pytest.raises(ValueError):
        Lookahead(*args)


def test_from_config_module() -> None:
    config = types.SimpleNamespace(
        LOOKAHEAD_MIN_DISTANCE=6.0,
        LOOKAHEAD_MAX_DISTANCE=30.0,
        LOOKAHEAD_MIN_SPEED=0.0,
        LOOKAHEAD_MAX_SPEED=100.0,
    )
    lookahead = Lookahead.from_config(config)
    assert lookahead.distance_for(50.0) == pytest.approx(18.0)
    assert Lookahead.from_config().min_distance > 0.0
