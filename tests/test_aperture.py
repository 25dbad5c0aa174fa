"""
Tests for aperture geometry and the reinsertion policies.
"""
import math

import pytest

from rdk_motion.aperture import (
    ApertureShape,
    EllipticalAperture,
    RectangularAperture,
    create_aperture,
    parse_shape,
)
from conftest import make_dot


class TestCreateAperture:

    def test_circle_uses_width_for_both_axes(self):
        aperture = create_aperture("circle", 300, 100, 10, 20)
        assert isinstance(aperture, EllipticalAperture)
        assert aperture.horizontal_axis == 150
        assert aperture.vertical_axis == 150

    def test_square_uses_width_for_both_axes(self):
        aperture = create_aperture(ApertureShape.SQUARE, 300, 100, 10, 20)
        assert isinstance(aperture, RectangularAperture)
        assert aperture.vertical_axis == 150

    def test_rectangle_keeps_both_extents(self):
        aperture = create_aperture("rectangle", 300, 100, 10, 20)
        assert (aperture.horizontal_axis, aperture.vertical_axis) == (150, 50)

    def test_unknown_shape_raises(self):
        with pytest.raises(ValueError, match="triangle"):
            parse_shape("triangle")


class TestRandomPoint:

    def test_samples_are_inside(self, any_aperture):
        for _ in range(2000):
            x, y = any_aperture.random_point()
            assert not any_aperture.is_outside(x, y, 0)

    def test_ellipse_samples_cover_the_area(self, ellipse):
        # Area-uniform sampling puts about a quarter of the points inside half the radius.
        inner = 0
        n = 4000
        for _ in range(n):
            x, y = ellipse.random_point()
            if (x / 100) ** 2 + (y / 50) ** 2 <= 0.25:
                inner += 1
        assert 0.2 < inner / n < 0.3


class TestIsOutside:

    def test_ellipse_boundary_and_margin(self, ellipse):
        assert not ellipse.is_outside(100, 0, 0)
        assert ellipse.is_outside(101, 0, 0)
        assert not ellipse.is_outside(101, 0, 2)

    def test_rectangle_any_axis(self, rectangle):
        assert not rectangle.is_outside(100, 50, 0)
        assert rectangle.is_outside(100.5, 0, 0)
        assert rectangle.is_outside(0, -50.5, 0)
        assert not rectangle.is_outside(0, -50.5, 1)

    def test_repeated_calls_agree(self, any_aperture):
        for point in [(400, 300), (560, 300), (400, 420), (0, 0)]:
            assert any_aperture.is_outside(*point, 2) == any_aperture.is_outside(*point, 2)


class TestOppositePosition:

    def test_ellipse_rightward_exit_reenters_left(self, ellipse):
        dot = make_dot(100, 0)
        x, y = ellipse.opposite_position(dot, 1, 0)
        assert x == pytest.approx(-100)
        assert y == pytest.approx(0)

    def test_ellipse_keeps_vertical_offset_for_horizontal_travel(self):
        circle = create_aperture("circle", 200, 200, 0, 0)
        dot = make_dot(math.sqrt(100**2 - 60**2) + 1, 60)
        x, y = circle.opposite_position(dot, 1, 0)
        assert y == pytest.approx(60)
        assert x == pytest.approx(-80)

    def test_ellipse_direction_is_normalised(self, ellipse):
        dot = make_dot(0, 51)
        assert ellipse.opposite_position(dot, 0, 5) == pytest.approx((0, -50))

    def test_ellipse_degenerate_direction_falls_back(self, ellipse):
        dot = make_dot(0, 60)
        assert ellipse.opposite_position(dot, 0, 0) == ellipse.opposite_position_simple(dot)
        assert ellipse.opposite_position(dot) == ellipse.opposite_position_simple(dot)

    def test_ellipse_missed_ray_falls_back(self, ellipse):
        # Moving horizontally well above the ellipse: the ray never crosses it.
        dot = make_dot(0, 80)
        assert ellipse.opposite_position(dot, 1, 0) == ellipse.opposite_position_simple(dot)

    def test_rectangle_rightward_exit_reenters_left(self, rectangle):
        dot = make_dot(101, 20)
        assert rectangle.opposite_position(dot, 1, 0) == pytest.approx((-100, 20))

    def test_rectangle_diagonal_exit(self, rectangle):
        dot = make_dot(101, 51)
        x, y = rectangle.opposite_position(dot, 1, 1)
        assert not rectangle.is_outside(x, y, 1e-9)
        assert y == pytest.approx(-50)
        assert x == pytest.approx(0)

    def test_rectangle_vertical_exit_reenters_at_far_edge(self, rectangle):
        dot = make_dot(30, -52)
        assert rectangle.opposite_position(dot, 0, -1) == pytest.approx((30, 50))

    def test_rectangle_degenerate_direction_falls_back(self, rectangle):
        dot = make_dot(120, 0)
        assert rectangle.opposite_position(dot, 0, 0) == (-100, 0)


class TestOppositePositionSimple:

    def test_ellipse_mirror_inside(self, ellipse):
        assert ellipse.opposite_position_simple(make_dot(10, 20)) == (-10, -20)

    def test_ellipse_mirror_clamped_to_boundary(self, ellipse):
        x, y = ellipse.opposite_position_simple(make_dot(150, 0))
        assert (x, y) == pytest.approx((-100, 0))

    def test_rectangle_flips_only_out_of_range_axes(self, rectangle):
        assert rectangle.opposite_position_simple(make_dot(120, 10)) == (-100, 10)
        assert rectangle.opposite_position_simple(make_dot(-5, -70)) == (-5, 50)
        assert rectangle.opposite_position_simple(make_dot(-120, 70)) == (100, -50)


class TestWrap:

    @pytest.mark.parametrize(
        "point",
        [(0, 0), (1000, -1000), (-37.5, 812.25), (550, 400), (250, 200), (399.9, 299.9)],
    )
    def test_wrap_lands_in_bounding_box(self, any_aperture, point):
        x, y = any_aperture.wrap(*point)
        h = any_aperture.horizontal_axis
        v = any_aperture.vertical_axis
        assert any_aperture.center_x - h <= x < any_aperture.center_x + h
        assert any_aperture.center_y - v <= y < any_aperture.center_y + v

    def test_wrap_inside_is_fixed_point(self, rectangle):
        assert rectangle.wrap(10, -20) == pytest.approx((10, -20))

    def test_wrap_is_toroidal(self, rectangle):
        assert rectangle.wrap(110, 0) == pytest.approx((-90, 0))
        assert rectangle.wrap(0, -60) == pytest.approx((0, 40))


class TestRenderingGeometry:

    def test_clip_region_matches_extent(self, ellipse, rectangle):
        assert ellipse.clip_region().kind == "ellipse"
        assert (ellipse.clip_region().width, ellipse.clip_region().height) == (200, 100)
        assert rectangle.clip_region().kind == "rectangle"

    def test_border_is_expanded_by_half_the_line_width(self, ellipse, rectangle):
        outline = ellipse.border_outline(4)
        assert (outline.width, outline.height) == (204, 104)
        outline = rectangle.border_outline(4)
        assert (outline.width, outline.height) == (204, 104)
        assert outline.line_width == 4
