"""
Tests for the PsychoPy renderer's coordinate handling (no window is opened).
"""
from types import SimpleNamespace

import pytest

pytest.importorskip("psychopy")

from rdk_motion.renderer import PsychoPyRenderer  # noqa: E402


class TestCoordinates:

    def test_surface_origin_maps_to_top_left(self):
        renderer = PsychoPyRenderer(SimpleNamespace(size=(800, 600)))
        assert renderer.surface_size == (800, 600)
        assert renderer.to_window(0, 0) == (-400, 300)
        assert renderer.to_window(400, 300) == (0, 0)
        assert renderer.to_window(800, 600) == (400, -300)

    def test_pixel_ratio_scales_surface(self):
        renderer = PsychoPyRenderer(SimpleNamespace(size=(1600, 1200)), pixel_ratio=2.0)
        assert renderer.surface_size == (800, 600)
        assert renderer.to_window(0, 0) == (-800, 600)
