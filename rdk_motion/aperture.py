"""Aperture geometry for the random dot kinematogram.

The aperture is the region in which dots live and are drawn.  Four shapes are
supported, but they collapse onto two geometric families: circles and ellipses
are handled by :class:`EllipticalAperture`, squares and rectangles by
:class:`RectangularAperture`.  Both families expose the same operations (see
:class:`Aperture`) so the motion code never needs to know which one it is
talking to.

All coordinates are surface pixels with the origin in the top-left corner and
``y`` growing downward.  Keeping this module free of PsychoPy makes it possible
to test the geometry without opening a window.
"""
from __future__ import annotations

import enum
import math
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Protocol, Tuple

if TYPE_CHECKING:
    from .dots import Dot

Point = Tuple[float, float]

# Directions shorter than this are treated as "no direction" for ray casting.
DEGENERATE_DIRECTION_EPS: float = 1e-10


class ApertureShape(str, enum.Enum):
    """Shapes accepted by :func:`create_aperture`."""

    CIRCLE = "circle"
    ELLIPSE = "ellipse"
    SQUARE = "square"
    RECTANGLE = "rectangle"


def parse_shape(value: "str | ApertureShape") -> ApertureShape:
    """Return ``value`` as an :class:`ApertureShape`."""

    try:
        return ApertureShape(value)
    except ValueError as exc:
        choices = ", ".join(shape.value for shape in ApertureShape)
        raise ValueError(f"Unknown aperture shape '{value}'. Expected one of: {choices}") from exc


@dataclass(frozen=True)
class ClipRegion:
    """Geometry handed to the renderer to restrict drawing to the aperture."""

    kind: str
    center_x: float
    center_y: float
    width: float
    height: float


@dataclass(frozen=True)
class BorderOutline:
    """Geometry for stroking the aperture boundary."""

    kind: str
    center_x: float
    center_y: float
    width: float
    height: float
    line_width: float


class Aperture(Protocol):
    """Capabilities shared by every aperture family."""

    center_x: float
    center_y: float
    horizontal_axis: float
    vertical_axis: float

    def random_point(self) -> Point: ...

    def is_outside(self, x: float, y: float, margin: float) -> bool: ...

    def opposite_position(
        self, dot: "Dot", dir_x: Optional[float] = None, dir_y: Optional[float] = None
    ) -> Point: ...

    def opposite_position_simple(self, dot: "Dot") -> Point: ...

    def wrap(self, x: float, y: float) -> Point: ...

    def clip_region(self) -> ClipRegion: ...

    def border_outline(self, line_width: float) -> BorderOutline: ...


def _wrap_on_bounds(
    x: float,
    y: float,
    center_x: float,
    center_y: float,
    horizontal_axis: float,
    vertical_axis: float,
) -> Point:
    """Toroidal wrap on the bounding box; each axis wraps independently."""

    width = horizontal_axis * 2
    height = vertical_axis * 2
    left = center_x - horizontal_axis
    top = center_y - vertical_axis
    # Python's % is floored, so the result is already in [0, width).
    return (x - left) % width + left, (y - top) % height + top


# ---------------------------------------------------------------------------
# Elliptical family (circle, ellipse)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EllipticalAperture:
    """Circle or ellipse centred on ``(center_x, center_y)``."""

    center_x: float
    center_y: float
    horizontal_axis: float
    vertical_axis: float
    rng: random.Random = field(default_factory=random.Random, compare=False, repr=False)

    def random_point(self) -> Point:
        """Return a point uniformly distributed over the ellipse area."""

        phi = self.rng.uniform(-math.pi, math.pi)
        rho = math.sqrt(self.rng.random())
        return (
            math.cos(phi) * rho * self.horizontal_axis + self.center_x,
            math.sin(phi) * rho * self.vertical_axis + self.center_y,
        )

    def is_outside(self, x: float, y: float, margin: float) -> bool:
        dx = (x - self.center_x) / (self.horizontal_axis + margin)
        dy = (y - self.center_y) / (self.vertical_axis + margin)
        return dx * dx + dy * dy > 1

    def opposite_position(
        self, dot: "Dot", dir_x: Optional[float] = None, dir_y: Optional[float] = None
    ) -> Point:
        """Re-enter the ellipse on the far side along the line of travel.

        The ray ``P(t) = dot - d * t`` is followed backwards from the dot's
        current position and the far intersection with the boundary is used,
        so the dot keeps its heading as if it had passed straight through.
        Falls back to :meth:`opposite_position_simple` when the direction is
        missing or degenerate, or when no usable intersection exists.
        """

        if dir_x is not None and dir_y is not None:
            mag_sq = dir_x * dir_x + dir_y * dir_y
            if mag_sq > DEGENERATE_DIRECTION_EPS:
                mag = math.sqrt(mag_sq)
                dx = dir_x / mag
                dy = dir_y / mag

                x_rel = dot.x - self.center_x
                y_rel = dot.y - self.center_y
                a2 = self.horizontal_axis * self.horizontal_axis
                b2 = self.vertical_axis * self.vertical_axis

                a = (dx * dx) / a2 + (dy * dy) / b2
                b = (x_rel * dx) / a2 + (y_rel * dy) / b2
                c = (x_rel * x_rel) / a2 + (y_rel * y_rel) / b2 - 1

                discriminant = b * b - a * c
                if discriminant >= 0:
                    t = (b + math.sqrt(discriminant)) / a
                    if t > 0 and math.isfinite(t):
                        return dot.x - dx * t, dot.y - dy * t
        return self.opposite_position_simple(dot)

    def opposite_position_simple(self, dot: "Dot") -> Point:
        """Mirror through the centre, clamping onto the boundary if needed."""

        mirrored_x = 2 * self.center_x - dot.x
        mirrored_y = 2 * self.center_y - dot.y
        mx = (mirrored_x - self.center_x) / self.horizontal_axis
        my = (mirrored_y - self.center_y) / self.vertical_axis
        dist = math.sqrt(mx * mx + my * my)
        if dist > 1:
            return (
                self.center_x + (mx / dist) * self.horizontal_axis,
                self.center_y + (my / dist) * self.vertical_axis,
            )
        return mirrored_x, mirrored_y

    def wrap(self, x: float, y: float) -> Point:
        return _wrap_on_bounds(
            x, y, self.center_x, self.center_y, self.horizontal_axis, self.vertical_axis
        )

    def clip_region(self) -> ClipRegion:
        return ClipRegion(
            kind="ellipse",
            center_x=self.center_x,
            center_y=self.center_y,
            width=self.horizontal_axis * 2,
            height=self.vertical_axis * 2,
        )

    def border_outline(self, line_width: float) -> BorderOutline:
        half = line_width / 2
        return BorderOutline(
            kind="ellipse",
            center_x=self.center_x,
            center_y=self.center_y,
            width=(self.horizontal_axis + half) * 2,
            height=(self.vertical_axis + half) * 2,
            line_width=line_width,
        )


def _slab(origin: float, direction: float, low: float, high: float) -> Optional[Point]:
    """Return the ray parameters ``(t_near, t_far)`` for one axis slab.

    A ray parallel to the slab is unbounded along it when it starts between
    the two planes and never crosses it otherwise (``None``).
    """

    if direction == 0:
        if low <= origin <= high:
            return -math.inf, math.inf
        return None
    t1 = (low - origin) / direction
    t2 = (high - origin) / direction
    return min(t1, t2), max(t1, t2)


# ---------------------------------------------------------------------------
# Rectangular family (square, rectangle)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RectangularAperture:
    """Axis-aligned square or rectangle centred on ``(center_x, center_y)``."""

    center_x: float
    center_y: float
    horizontal_axis: float
    vertical_axis: float
    rng: random.Random = field(default_factory=random.Random, compare=False, repr=False)

    @property
    def left(self) -> float:
        return self.center_x - self.horizontal_axis

    @property
    def right(self) -> float:
        return self.center_x + self.horizontal_axis

    @property
    def top(self) -> float:
        return self.center_y - self.vertical_axis

    @property
    def bottom(self) -> float:
        return self.center_y + self.vertical_axis

    def random_point(self) -> Point:
        return (
            self.rng.uniform(self.left, self.right),
            self.rng.uniform(self.top, self.bottom),
        )

    def is_outside(self, x: float, y: float, margin: float) -> bool:
        eff_h = self.horizontal_axis + margin
        eff_v = self.vertical_axis + margin
        return (
            x < self.center_x - eff_h
            or x > self.center_x + eff_h
            or y < self.center_y - eff_v
            or y > self.center_y + eff_v
        )

    def opposite_position(
        self, dot: "Dot", dir_x: Optional[float] = None, dir_y: Optional[float] = None
    ) -> Point:
        """Re-enter the rectangle on the far side using the slab method.

        The backward ray from the dot is intersected with both slabs and the
        exit (far) parameter is used as the reinsertion point.
        """

        if dir_x is None or dir_y is None:
            return self.opposite_position_simple(dot)

        mag = math.sqrt(dir_x * dir_x + dir_y * dir_y)
        if mag < DEGENERATE_DIRECTION_EPS:
            return self.opposite_position_simple(dot)

        dx = -dir_x / mag
        dy = -dir_y / mag

        x_slab = _slab(dot.x, dx, self.left, self.right)
        y_slab = _slab(dot.y, dy, self.top, self.bottom)
        if x_slab is None or y_slab is None:
            return self.opposite_position_simple(dot)

        t_enter = max(x_slab[0], y_slab[0])
        t_exit = min(x_slab[1], y_slab[1])

        if t_exit > 0 and t_enter <= t_exit and math.isfinite(t_exit):
            return dot.x + dx * t_exit, dot.y + dy * t_exit
        return self.opposite_position_simple(dot)

    def opposite_position_simple(self, dot: "Dot") -> Point:
        """Flip every out-of-range coordinate to the opposite edge."""

        x, y = dot.x, dot.y
        if dot.x < self.left:
            x = self.right
        elif dot.x > self.right:
            x = self.left
        if dot.y < self.top:
            y = self.bottom
        elif dot.y > self.bottom:
            y = self.top
        return x, y

    def wrap(self, x: float, y: float) -> Point:
        return _wrap_on_bounds(
            x, y, self.center_x, self.center_y, self.horizontal_axis, self.vertical_axis
        )

    def clip_region(self) -> ClipRegion:
        return ClipRegion(
            kind="rectangle",
            center_x=self.center_x,
            center_y=self.center_y,
            width=self.horizontal_axis * 2,
            height=self.vertical_axis * 2,
        )

    def border_outline(self, line_width: float) -> BorderOutline:
        return BorderOutline(
            kind="rectangle",
            center_x=self.center_x,
            center_y=self.center_y,
            width=self.horizontal_axis * 2 + line_width,
            height=self.vertical_axis * 2 + line_width,
            line_width=line_width,
        )


def create_aperture(
    shape: "str | ApertureShape",
    width: float,
    height: float,
    center_x: float,
    center_y: float,
    rng: random.Random | None = None,
) -> Aperture:
    """Build the aperture for ``shape``.

    Parameters
    ----------
    shape:
        One of ``circle``, ``ellipse``, ``square`` or ``rectangle``.
    width, height:
        Full extents in pixels.  Circles and squares ignore ``height`` and use
        ``width`` for both axes.
    center_x, center_y:
        Centre of the aperture in surface pixels.
    rng:
        Random source used for :meth:`Aperture.random_point`.  Defaults to a fresh
        :class:`random.Random`.
    """

    shape = parse_shape(shape)
    horizontal_axis = width / 2
    if shape in (ApertureShape.CIRCLE, ApertureShape.SQUARE):
        vertical_axis = horizontal_axis
    else:
        vertical_axis = height / 2
    generator = rng if rng is not None else random.Random()

    if shape in (ApertureShape.CIRCLE, ApertureShape.ELLIPSE):
        return EllipticalAperture(center_x, center_y, horizontal_axis, vertical_axis, generator)
    return RectangularAperture(center_x, center_y, horizontal_axis, vertical_axis, generator)


__all__ = [
    "Aperture",
    "ApertureShape",
    "BorderOutline",
    "ClipRegion",
    "EllipticalAperture",
    "Point",
    "RectangularAperture",
    "create_aperture",
    "parse_shape",
]
