"""
Tests for the per-dot motion update.
"""
import math
import random

import pytest

from rdk_motion.aperture import create_aperture
from rdk_motion.dots import Movement, coherent_direction
from rdk_motion.motion import (
    ReinsertMode,
    UnknownReinsertModeError,
    movement_distance,
    parse_reinsert_mode,
    reinsert,
    update_dot,
)
from conftest import make_dot

UP = coherent_direction(0)
RIGHT = coherent_direction(90)


@pytest.fixture
def circle(rng):
    return create_aperture("circle", 200, 200, 0, 0, rng=rng)


def step(dot, aperture, distance=5.0, delta=10.0, lifetime=-1, mode="opposite", margin=0.0,
         direction=RIGHT, reassign=None, rng=None):
    return update_dot(dot, distance, delta, lifetime, aperture, mode, margin, direction, reassign, rng=rng)


class TestLifetime:

    def test_expired_dot_respawns_without_moving(self, circle, rng):
        dot = make_dot(0, 0, life_count=95)
        updated = step(dot, circle, distance=5, delta=10, lifetime=100, rng=rng)
        assert updated.life_count == 0
        assert (updated.x, updated.y) != (5, 0)
        assert not circle.is_outside(updated.x, updated.y, 0)

    def test_live_dot_ages_and_moves(self, circle):
        dot = make_dot(0, 0, life_count=50)
        updated = step(dot, circle, distance=5, delta=10, lifetime=100)
        assert updated.life_count == 60
        assert (updated.x, updated.y) == pytest.approx((5, 0))

    def test_infinite_lifetime_never_respawns(self, circle):
        dot = make_dot(0, 0, life_count=1e9)
        updated = step(dot, circle, lifetime=-1)
        assert updated.life_count == 1e9 + 10

    def test_input_dot_is_not_modified(self, circle):
        dot = make_dot(0, 0)
        step(dot, circle)
        assert (dot.x, dot.y, dot.life_count) == (0, 0, 0)


class TestMovements:

    def test_coherent_follows_signal(self, circle):
        updated = step(make_dot(0, 0), circle, distance=4, direction=UP)
        assert (updated.x, updated.y) == pytest.approx((0, -4))

    def test_opposite_moves_against_signal(self, circle):
        updated = step(make_dot(0, 0, Movement.OPPOSITE), circle, distance=4, direction=UP)
        assert (updated.x, updated.y) == pytest.approx((0, 4))

    def test_random_direction_keeps_its_heading(self, circle):
        dot = make_dot(0, 0, Movement.RANDOM_DIRECTION, direction=(0.6, -0.8))
        updated = step(step(dot, circle, distance=10), circle, distance=10)
        assert (updated.x, updated.y) == pytest.approx((12, -16))

    def test_random_walk_moves_exact_distance(self, circle, rng):
        updated = step(make_dot(0, 0, Movement.RANDOM_WALK), circle, distance=7, rng=rng)
        assert math.hypot(updated.x, updated.y) == pytest.approx(7)

    def test_random_teleport_lands_inside(self, circle):
        for _ in range(100):
            updated = step(make_dot(99, 0, Movement.RANDOM_TELEPORT), circle, distance=50)
            assert not circle.is_outside(updated.x, updated.y, 0)

    def test_reassignment_switches_movement(self, circle, rng):
        dot = make_dot(0, 0, Movement.COHERENT)
        updated = step(dot, circle, distance=3, reassign=Movement.RANDOM_DIRECTION, rng=rng)
        assert updated.movement is Movement.RANDOM_DIRECTION
        assert math.hypot(updated.random_dir_x, updated.random_dir_y) == pytest.approx(1)
        assert (updated.x, updated.y) == pytest.approx(
            (3 * updated.random_dir_x, 3 * updated.random_dir_y)
        )

    def test_distance_is_frame_rate_independent(self):
        assert movement_distance(60, 1000 / 60) == pytest.approx(1)
        assert movement_distance(60, 1000 / 120) * 2 == pytest.approx(1)


class TestBoundary:

    def test_exit_right_reenters_left_with_opposite(self, circle):
        updated = step(make_dot(98, 0), circle, distance=5, mode="opposite")
        assert (updated.x, updated.y) == pytest.approx((-100, 0))

    def test_margin_delays_reinsertion(self, circle):
        updated = step(make_dot(98, 0), circle, distance=3, margin=2)
        assert (updated.x, updated.y) == pytest.approx((101, 0))

    def test_wrap_mode(self, rng):
        square = create_aperture("square", 200, 200, 0, 0, rng=rng)
        updated = step(make_dot(98, 10), square, distance=5, mode=ReinsertMode.WRAP)
        assert (updated.x, updated.y) == pytest.approx((-97, 10))

    def test_opposite_simple_mode(self, circle):
        updated = step(make_dot(98, 0), circle, distance=5, mode="oppositeSimple")
        assert (updated.x, updated.y) == pytest.approx((-100, 0))

    def test_random_mode(self, circle):
        updated = step(make_dot(98, 0), circle, distance=5, mode="random")
        assert not circle.is_outside(updated.x, updated.y, 0)

    def test_dot_stays_within_margin_after_any_update(self):
        rng = random.Random(99)
        for shape in ("circle", "ellipse", "square", "rectangle"):
            aperture = create_aperture(shape, 300, 200, 0, 0, rng=rng)
            for mode in ReinsertMode:
                if mode is ReinsertMode.WRAP and shape in ("circle", "ellipse"):
                    # Wraps on the bounding box, whose corners lie outside an ellipse.
                    continue
                dot = make_dot(0, 0, Movement.RANDOM_WALK)
                for _ in range(300):
                    dot = step(dot, aperture, distance=20, mode=mode, margin=2, rng=rng)
                    assert not aperture.is_outside(dot.x, dot.y, 2 + 1e-9)

    def test_unknown_mode_is_fatal(self, circle):
        with pytest.raises(UnknownReinsertModeError):
            step(make_dot(98, 0), circle, distance=5, mode="bounce")

    def test_unknown_mode_only_matters_on_exit(self, circle):
        updated = step(make_dot(0, 0), circle, distance=5, mode="bounce")
        assert (updated.x, updated.y) == pytest.approx((5, 0))

    def test_parse_reinsert_mode(self):
        assert parse_reinsert_mode("wrap") is ReinsertMode.WRAP
        with pytest.raises(UnknownReinsertModeError, match="Expected one of"):
            parse_reinsert_mode("bounce")

    def test_reinsert_dispatch(self, circle):
        dot = make_dot(150, 0)
        assert reinsert(dot, circle, ReinsertMode.OPPOSITE_SIMPLE, 1, 0) == pytest.approx((-100, 0))
