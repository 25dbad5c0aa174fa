"""Run kinematogram trials without a display.

Used by the ``--dry-run`` command line option to sanity-check a trial list and
by the test-suite.  Frames are generated at a fixed synthetic interval and fed
through the same :class:`~rdk_motion.loop.StimulusLoop` the PsychoPy trial uses.
"""
from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .aperture import Aperture
from .config import RDKTrialConfig
from .dots import Dot, movement_histogram
from .loop import DotStyle, FixationStyle, StimulusLoop, TrialResult
from .scheduler import FrameScheduler


@dataclass
class RecordingRenderer:
    """Renderer that remembers what each frame asked it to draw."""

    surface_size: Tuple[float, float] = (1280.0, 720.0)
    calls: List[str] = field(default_factory=list)
    last_dots: List[Dot] = field(default_factory=list)
    dot_frames: int = 0

    def clear(self, color: str) -> None:
        self.calls.append("clear")

    def draw_dots(self, dots: Sequence[Dot], aperture: Aperture, style: DotStyle) -> None:
        self.calls.append("dots")
        self.last_dots = list(dots)
        self.dot_frames += 1

    def draw_fixation(self, center_x: float, center_y: float, style: FixationStyle) -> None:
        self.calls.append("fixation")

    def draw_border(self, aperture: Aperture, color: str, line_width: float) -> None:
        self.calls.append("border")


@dataclass
class HeadlessRun:
    result: TrialResult
    renderer: RecordingRenderer
    role_counts: Dict[str, int]


def simulate_trial(
    config: RDKTrialConfig,
    *,
    frame_interval_ms: float = 1000 / 60,
    max_frames: int = 600,
    responses: Optional[Dict[int, str]] = None,
    rng: random.Random | None = None,
    refresh_rate_hint: float | None = None,
) -> HeadlessRun:
    """Drive one trial with synthetic frame timestamps.

    ``responses`` maps a frame number (1-based) to a key pressed right after
    that frame.  The trial is finished explicitly after ``max_frames`` frames
    if nothing else ended it.
    """

    renderer = RecordingRenderer()
    scheduler = FrameScheduler()
    loop = StimulusLoop(
        config,
        renderer,
        scheduler,
        rng=rng,
        refresh_rate_hint=refresh_rate_hint,
    )
    pending_keys = dict(responses or {})

    now = 0.0
    loop.start(now)
    frame = 0
    while scheduler.pending and frame < max_frames:
        now += frame_interval_ms
        frame += 1
        scheduler.dispatch(now)
        key = pending_keys.pop(frame, None)
        if key is not None:
            loop.handle_key(key, now)

    result = loop.finish()
    counts: Dict[str, int] = {}
    for dots in loop.dot_sets:
        for name, count in movement_histogram(dots).items():
            counts[name] = counts.get(name, 0) + count
    return HeadlessRun(result=result, renderer=renderer, role_counts=counts)


__all__ = ["HeadlessRun", "RecordingRenderer", "simulate_trial"]
