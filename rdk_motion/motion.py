"""Per-dot movement integration and boundary reinsertion."""
from __future__ import annotations

import enum
import random
from dataclasses import replace
from typing import Optional

from .aperture import Aperture, Point
from .dots import Dot, Movement, Vector, random_unit_vector


class ReinsertMode(str, enum.Enum):
    """What happens to a dot that leaves the aperture."""

    RANDOM = "random"
    OPPOSITE = "opposite"
    OPPOSITE_SIMPLE = "oppositeSimple"
    WRAP = "wrap"


class UnknownReinsertModeError(ValueError):
    """Raised when a dot needs reinsertion under an unsupported mode."""


def parse_reinsert_mode(value: "str | ReinsertMode") -> ReinsertMode:
    """Return ``value`` as a :class:`ReinsertMode`."""

    try:
        return ReinsertMode(value)
    except ValueError as exc:
        choices = ", ".join(mode.value for mode in ReinsertMode)
        raise UnknownReinsertModeError(
            f"Unknown reinsert mode '{value}'. Expected one of: {choices}"
        ) from exc


def movement_distance(speed: float, delta_ms: float) -> float:
    """Pixels travelled at ``speed`` px/s during ``delta_ms`` milliseconds."""

    return speed * delta_ms / 1000


def reinsert(
    dot: Dot,
    aperture: Aperture,
    mode: "ReinsertMode | str",
    dir_x: float,
    dir_y: float,
) -> Point:
    """Return the position an out-of-bounds ``dot`` is moved to."""

    if mode == ReinsertMode.RANDOM:
        return aperture.random_point()
    if mode == ReinsertMode.OPPOSITE_SIMPLE:
        return aperture.opposite_position_simple(dot)
    if mode == ReinsertMode.OPPOSITE:
        return aperture.opposite_position(dot, dir_x, dir_y)
    if mode == ReinsertMode.WRAP:
        return aperture.wrap(dot.x, dot.y)
    raise UnknownReinsertModeError(f"Unknown reinsert mode: {mode!r}")


def update_dot(
    dot: Dot,
    distance: float,
    delta_ms: float,
    max_lifetime: float,
    aperture: Aperture,
    reinsert_mode: "ReinsertMode | str",
    margin: float,
    coherent_dir: Vector,
    reassign_to: Optional[Movement] = None,
    rng: random.Random | None = None,
) -> Dot:
    """Advance ``dot`` by one update and return the new state.

    Parameters
    ----------
    dot:
        Current dot state.  It is not modified.
    distance:
        Displacement in pixels for this update, usually
        :func:`movement_distance` of the configured speed.
    delta_ms:
        Time since the previous update, added to the life counter.
    max_lifetime:
        Lifetime in milliseconds; values <= 0 disable respawning.
    aperture:
        Geometry used for respawns and the boundary test.
    reinsert_mode:
        Policy applied when the moved dot falls outside ``aperture``.
    margin:
        Extra room beyond the aperture edge before a dot counts as outside;
        the dot radius, so dots can slide fully out of the clip region.
    coherent_dir:
        Unit vector of the signal direction.
    reassign_to:
        New movement for this dot when roles are being reshuffled.
    """

    updated = replace(dot)
    updated.life_count += delta_ms

    if max_lifetime > 0 and updated.life_count >= max_lifetime:
        updated.x, updated.y = aperture.random_point()
        updated.life_count = 0
        return updated

    movement = dot.movement
    if reassign_to is not None:
        movement = reassign_to
        updated.movement = movement
        if movement is Movement.RANDOM_DIRECTION:
            updated.random_dir_x, updated.random_dir_y = random_unit_vector(rng)

    if movement is Movement.COHERENT:
        dir_x, dir_y = coherent_dir
    elif movement is Movement.OPPOSITE:
        dir_x, dir_y = -coherent_dir[0], -coherent_dir[1]
    elif movement is Movement.RANDOM_TELEPORT:
        # Always lands inside, so no boundary check.
        updated.x, updated.y = aperture.random_point()
        return updated
    elif movement is Movement.RANDOM_WALK:
        dir_x, dir_y = random_unit_vector(rng)
    elif movement is Movement.RANDOM_DIRECTION:
        dir_x, dir_y = updated.random_dir_x, updated.random_dir_y
    else:
        raise ValueError(f"Unknown movement: {movement!r}")

    updated.x += dir_x * distance
    updated.y += dir_y * distance

    if aperture.is_outside(updated.x, updated.y, margin):
        updated.x, updated.y = reinsert(updated, aperture, reinsert_mode, dir_x, dir_y)

    return updated


__all__ = [
    "ReinsertMode",
    "UnknownReinsertModeError",
    "movement_distance",
    "parse_reinsert_mode",
    "reinsert",
    "update_dot",
]
