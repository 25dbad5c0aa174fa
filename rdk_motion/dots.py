"""Dot records, role assignment and the coherent direction vector."""
from __future__ import annotations

import enum
import logging
import math
import random
from dataclasses import dataclass
from typing import List, Tuple

from .aperture import Aperture

logger = logging.getLogger(__name__)

Vector = Tuple[float, float]


class Movement(str, enum.Enum):
    """How a dot moves on each update.

    The string values match the names recorded by the browser version of the task
    so exported metadata stays comparable.
    """

    COHERENT = "coherent"
    OPPOSITE = "opposite"
    RANDOM_TELEPORT = "randomTeleport"
    RANDOM_WALK = "randomWalk"
    RANDOM_DIRECTION = "randomDirection"


NOISE_MOVEMENTS: Tuple[Movement, ...] = (
    Movement.RANDOM_TELEPORT,
    Movement.RANDOM_WALK,
    Movement.RANDOM_DIRECTION,
)


def parse_movement(value: "str | Movement", *, noise_only: bool = False) -> Movement:
    """Return ``value`` as a :class:`Movement`.

    With ``noise_only`` the coherent and opposite movements are rejected, which
    is what the ``noise_movement`` option expects.
    """

    allowed = NOISE_MOVEMENTS if noise_only else tuple(Movement)
    try:
        movement = Movement(value)
    except ValueError:
        movement = None
    if movement is None or movement not in allowed:
        choices = ", ".join(item.value for item in allowed)
        raise ValueError(f"Unknown movement '{value}'. Expected one of: {choices}")
    return movement


@dataclass
class Dot:
    """State of a single dot.

    ``random_dir_x``/``random_dir_y`` hold a unit vector that is only used
    while the dot's movement is :attr:`Movement.RANDOM_DIRECTION`.
    ``life_count`` is the number of milliseconds since the dot last respawned.
    """

    x: float
    y: float
    random_dir_x: float
    random_dir_y: float
    life_count: float
    movement: Movement


def random_unit_vector(rng: random.Random | None = None) -> Vector:
    """Return a unit vector for an angle drawn uniformly from [-pi, pi]."""

    generator = rng if rng is not None else random
    theta = generator.uniform(-math.pi, math.pi)
    return math.cos(theta), -math.sin(theta)


def create_dot(
    movement: Movement,
    max_lifetime: float,
    aperture: Aperture,
    rng: random.Random | None = None,
) -> Dot:
    """Create a dot at a random aperture position.

    The life counter starts at a random point of the lifetime so that dots do
    not all respawn on the same frame.
    """

    generator = rng if rng is not None else random
    x, y = aperture.random_point()
    dir_x, dir_y = 0.0, 0.0
    if movement is Movement.RANDOM_DIRECTION:
        dir_x, dir_y = random_unit_vector(generator)
    life_count = generator.uniform(0, max_lifetime if max_lifetime > 0 else 0)
    return Dot(
        x=x,
        y=y,
        random_dir_x=dir_x,
        random_dir_y=dir_y,
        life_count=life_count,
        movement=movement,
    )


def role_counts(count: int, coherence: float, opposite: float) -> Tuple[int, int, int]:
    """Return ``(n_coherent, n_opposite, n_noise)`` for a dot population."""

    n_coherent = math.floor(count * coherence)
    n_opposite = math.floor(count * opposite)
    return n_coherent, n_opposite, count - n_coherent - n_opposite


def initial_movements(
    count: int,
    coherence: float,
    opposite: float,
    noise_movement: Movement,
) -> List[Movement]:
    """Return the unshuffled movement list: coherent, then opposite, then noise."""

    n_coherent, n_opposite, n_noise = role_counts(count, coherence, opposite)
    if n_noise < 0:
        raise ValueError(
            f"coherence ({coherence}) + opposite ({opposite}) assign "
            f"{n_coherent + n_opposite} roles to only {count} dots"
        )
    return (
        [Movement.COHERENT] * n_coherent
        + [Movement.OPPOSITE] * n_opposite
        + [noise_movement] * n_noise
    )


def generate_role_assignment(
    count: int,
    coherence: float,
    opposite: float,
    noise_movement: Movement,
    rng: random.Random | None = None,
) -> List[Movement]:
    """Return a shuffled movement list with exact role counts.

    Exactly ``floor(count * coherence)`` entries are coherent and
    ``floor(count * opposite)`` are opposite; the rest use ``noise_movement``.
    The order is a uniform random permutation (Fisher-Yates via
    :meth:`random.Random.shuffle`).
    """

    assignments = initial_movements(count, coherence, opposite, noise_movement)
    generator = rng if rng is not None else random
    generator.shuffle(assignments)
    return assignments


def build_dot_sets(
    set_count: int,
    count: int,
    coherence: float,
    opposite: float,
    noise_movement: Movement,
    max_lifetime: float,
    aperture: Aperture,
    rng: random.Random | None = None,
) -> List[List[Dot]]:
    """Create ``set_count`` independent dot sets of ``count`` dots each."""

    movements = initial_movements(count, coherence, opposite, noise_movement)
    dot_sets = [
        [create_dot(movement, max_lifetime, aperture, rng) for movement in movements]
        for _ in range(set_count)
    ]
    logger.debug("Built %d dot set(s) of %d dots", set_count, count)
    return dot_sets


def coherent_direction(direction_deg: float) -> Vector:
    """Return the unit vector for ``direction_deg`` on a y-down surface.

    0 degrees points up, 90 right, 180 down and 270 left.
    """

    rad = math.radians(90 - direction_deg)
    return math.cos(rad), -math.sin(rad)


def movement_histogram(dots: List[Dot]) -> dict:
    """Count dots per movement, keyed by the movement's string value."""

    counts: dict = {}
    for dot in dots:
        counts[dot.movement.value] = counts.get(dot.movement.value, 0) + 1
    return counts


__all__ = [
    "Dot",
    "Movement",
    "NOISE_MOVEMENTS",
    "Vector",
    "build_dot_sets",
    "coherent_direction",
    "create_dot",
    "generate_role_assignment",
    "initial_movements",
    "movement_histogram",
    "parse_movement",
    "random_unit_vector",
    "role_counts",
]
