import random

import pytest

from rdk_motion.aperture import create_aperture
from rdk_motion.dots import Dot, Movement


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture(params=["circle", "ellipse", "square", "rectangle"])
def any_aperture(request, rng):
    """Every shape, centred at (400, 300) with a 300x200 extent."""
    return create_aperture(request.param, 300, 200, 400, 300, rng=rng)


@pytest.fixture
def ellipse(rng):
    return create_aperture("ellipse", 200, 100, 0, 0, rng=rng)


@pytest.fixture
def rectangle(rng):
    return create_aperture("rectangle", 200, 100, 0, 0, rng=rng)


def make_dot(x, y, movement=Movement.COHERENT, life_count=0.0, direction=(0.0, 0.0)):
    return Dot(
        x=x,
        y=y,
        random_dir_x=direction[0],
        random_dir_y=direction[1],
        life_count=life_count,
        movement=movement,
    )
