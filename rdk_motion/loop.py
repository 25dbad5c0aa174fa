"""Per-frame driver that ties the kinematogram engine together.

A :class:`StimulusLoop` owns everything that changes from frame to frame (the
:class:`LoopContext`, the refresh calibrator, the trial clock and the dot
sets) and is driven entirely by frame callbacks from a
:class:`~rdk_motion.scheduler.FrameScheduler`.  Drawing is delegated to a
renderer implementing :class:`Renderer`, so the same loop runs inside a
PsychoPy window or headless in tests.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from .aperture import Aperture, create_aperture
from .config import RDKTrialConfig
from .dots import (
    Dot,
    Movement,
    build_dot_sets,
    coherent_direction,
    generate_role_assignment,
    parse_movement,
)
from .motion import movement_distance, parse_reinsert_mode, update_dot
from .scheduler import FrameScheduler
from .timing import ReassignTimer, RefreshCalibrator, TrialClock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DotStyle:
    radius: float
    color: str
    coherent_color: Optional[str] = None
    character: Optional[str] = None

    def color_for(self, dot: Dot) -> str:
        if self.coherent_color and dot.movement is Movement.COHERENT:
            return self.coherent_color
        return self.color


@dataclass(frozen=True)
class FixationStyle:
    width: float
    height: float
    thickness: float
    color: str


class Renderer(Protocol):
    """Drawing surface the loop hands each frame to."""

    surface_size: Tuple[float, float]

    def clear(self, color: str) -> None: ...

    def draw_dots(self, dots: Sequence[Dot], aperture: Aperture, style: DotStyle) -> None:
        """Draw ``dots`` clipped to ``aperture``."""

    def draw_fixation(self, center_x: float, center_y: float, style: FixationStyle) -> None: ...

    def draw_border(self, aperture: Aperture, color: str, line_width: float) -> None: ...


@dataclass
class LoopContext:
    """Mutable state carried from one frame to the next.

    Calibration, the trial clock and the role reassignment accumulator are
    kept by their own objects on :class:`StimulusLoop`, not here.
    """

    start_time: Optional[float] = None
    last_update_time: Optional[float] = None
    last_frame_time: Optional[float] = None
    frame_count: int = 0
    update_count: int = 0
    current_set: int = 0
    fixation_complete: bool = False
    stimulus_visible: bool = True
    ended: bool = False
    response: Optional[str] = None
    response_time: Optional[float] = None
    frame_handle: Optional[int] = None


@dataclass
class TrialResult:
    """Outcome of one trial plus the configuration it ran with."""

    response: Optional[str]
    rt: Optional[float]
    correct: Optional[bool]
    frames_displayed: int
    measured_refresh_rate: Optional[int]
    config: Dict[str, object] = field(default_factory=dict)

    def as_record(self) -> Dict[str, object]:
        record: Dict[str, object] = {
            "rt": self.rt,
            "response": self.response,
            "correct": self.correct,
            "frames_displayed": self.frames_displayed,
            "measured_refresh_rate": self.measured_refresh_rate,
        }
        record.update(self.config)
        return record


class StimulusLoop:
    """Run one kinematogram trial, one frame callback at a time.

    Parameters
    ----------
    config:
        Trial parameters.  A missing aperture centre is resolved against
        ``renderer.surface_size``.
    renderer:
        Drawing collaborator, see :class:`Renderer`.
    scheduler:
        Source of frame callbacks.
    rng:
        Random source for dot placement, directions and role shuffles.
    on_finish:
        Called once with the :class:`TrialResult` when the trial ends.
    refresh_rate_hint:
        Previously measured refresh rate in Hz; skips calibration when it is
        plausible (20-300 Hz).
    """

    def __init__(
        self,
        config: RDKTrialConfig,
        renderer: Renderer,
        scheduler: FrameScheduler,
        *,
        rng: random.Random | None = None,
        on_finish: Callable[[TrialResult], None] | None = None,
        refresh_rate_hint: float | None = None,
    ) -> None:
        self.config = config.resolved(renderer.surface_size)
        self.renderer = renderer
        self.scheduler = scheduler
        self.rng = rng if rng is not None else random.Random()
        self.on_finish = on_finish
        self.refresh_rate_hint = refresh_rate_hint

        self.reinsert_mode = parse_reinsert_mode(self.config.reinsert_mode)
        self.noise_movement = parse_movement(self.config.noise_movement, noise_only=True)
        self.aperture = create_aperture(
            self.config.aperture_shape,
            self.config.aperture_width,
            self.config.aperture_height,
            self.config.aperture_center_x,
            self.config.aperture_center_y,
            rng=self.rng,
        )
        self.coherent_dir = coherent_direction(self.config.direction)
        self.dot_sets: List[List[Dot]] = build_dot_sets(
            self.config.dot_set_count,
            self.config.dot_count,
            self.config.coherence,
            self.config.opposite,
            self.noise_movement,
            self.config.dot_lifetime,
            self.aperture,
            rng=self.rng,
        )
        self.dot_style = DotStyle(
            radius=self.config.dot_radius,
            color=self.config.dot_color,
            coherent_color=self.config.coherent_dot_color,
            character=self.config.dot_character,
        )
        self.fixation_style = FixationStyle(
            width=self.config.fixation_width,
            height=self.config.fixation_height,
            thickness=self.config.fixation_thickness,
            color=self.config.fixation_color,
        )

        self.context = LoopContext(fixation_complete=self.config.fixation_time <= 0)
        self.calibrator = RefreshCalibrator()
        self.clock = TrialClock(
            duration=self.config.duration,
            stimulus_duration=self.config.stimulus_duration,
            fixation_time=self.config.fixation_time,
        )
        self.reassign_timer = ReassignTimer(self.config.reassign_every_ms)
        self.result: Optional[TrialResult] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self, now: float) -> None:
        """Start the trial clock at ``now`` and request the first frame."""

        self.calibrator.seed(self.refresh_rate_hint)
        self.clock.start(now)
        self.context.start_time = now
        self.context.frame_handle = self.scheduler.request_frame(self.on_frame)

    @property
    def finished(self) -> bool:
        return self.context.ended

    @property
    def current_dots(self) -> List[Dot]:
        return self.dot_sets[self.context.current_set]

    def cancel(self) -> None:
        """Revoke the pending frame callback, if any."""

        self.scheduler.cancel_frame(self.context.frame_handle)
        self.context.frame_handle = None

    def finish(self) -> TrialResult:
        """End the trial (once) and report the result."""

        if self.result is not None:
            return self.result
        self.context.ended = True
        self.clock.mark_ended()
        self.cancel()
        self.result = self._build_result()
        logger.debug(
            "Trial finished after %d frames (response=%r)",
            self.context.frame_count,
            self.context.response,
        )
        if self.on_finish is not None:
            self.on_finish(self.result)
        return self.result

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------
    def handle_key(self, key: str, timestamp: float) -> bool:
        """Record a key press; return ``True`` if it was taken as the response."""

        ctx = self.context
        if ctx.ended or ctx.response is not None:
            return False
        key = key.lower()
        allowed = self.config.allowed_keys()
        if allowed is not None and key not in allowed:
            return False

        start = ctx.start_time if ctx.start_time is not None else 0.0
        ctx.response = key
        ctx.response_time = timestamp - start
        if self.config.response_ends_trial:
            self.finish()
        return True

    # ------------------------------------------------------------------
    # Frame handling
    # ------------------------------------------------------------------
    def on_frame(self, timestamp: float) -> None:
        """Process one displayed frame."""

        ctx = self.context
        ctx.frame_handle = None
        if ctx.ended:
            return

        if ctx.last_update_time is None:
            ctx.last_update_time = timestamp
        if ctx.last_frame_time is None:
            ctx.last_frame_time = timestamp

        frame_delta = timestamp - ctx.last_frame_time
        ctx.last_frame_time = timestamp
        ctx.frame_count += 1
        self.calibrator.observe(frame_delta)

        edges = self.clock.poll(timestamp, self.calibrator.half_frame_correction)
        if edges.hide_stimulus:
            ctx.stimulus_visible = False
        if edges.end_trial:
            self.finish()
            return

        if not ctx.fixation_complete and self.clock.fixation_complete(timestamp):
            ctx.fixation_complete = True
            # Motion starts now, not at the first fixation frame.
            ctx.last_update_time = timestamp

        time_since_last_update = timestamp - ctx.last_update_time

        self.renderer.clear(self.config.background_color)
        if not ctx.stimulus_visible or not ctx.fixation_complete:
            self._draw_fixation()
        else:
            if self._update_due(time_since_last_update):
                self.step(time_since_last_update)
                ctx.last_update_time = timestamp
            self.renderer.draw_dots(self.current_dots, self.aperture, self.dot_style)
            self._draw_fixation()
            if self.config.show_border:
                self.renderer.draw_border(
                    self.aperture, self.config.border_color, self.config.border_width
                )

        ctx.frame_handle = self.scheduler.request_frame(self.on_frame)

    def _update_due(self, time_since_last_update: float) -> bool:
        rate = self.config.update_rate
        if not rate or rate <= 0:
            return True
        return time_since_last_update >= 1000 / rate

    def step(self, delta_ms: float) -> None:
        """Move the current dot set by ``delta_ms`` and advance to the next set."""

        ctx = self.context
        config = self.config
        distance = movement_distance(config.speed, delta_ms)

        reassignments: Optional[List[Movement]] = None
        if self.reassign_timer.tick(delta_ms, self.calibrator.half_frame_correction):
            reassignments = generate_role_assignment(
                config.dot_count,
                config.coherence,
                config.opposite,
                self.noise_movement,
                rng=self.rng,
            )

        current = self.dot_sets[ctx.current_set]
        self.dot_sets[ctx.current_set] = [
            update_dot(
                dot,
                distance,
                delta_ms,
                config.dot_lifetime,
                self.aperture,
                self.reinsert_mode,
                config.dot_radius,
                self.coherent_dir,
                reassignments[index] if reassignments is not None else None,
                rng=self.rng,
            )
            for index, dot in enumerate(current)
        ]
        ctx.current_set = (ctx.current_set + 1) % config.dot_set_count
        ctx.update_count += 1

    def _draw_fixation(self) -> None:
        if self.config.show_fixation:
            self.renderer.draw_fixation(
                self.aperture.center_x, self.aperture.center_y, self.fixation_style
            )

    def _build_result(self) -> TrialResult:
        ctx = self.context
        correct_keys = self.config.correct_keys()
        correct: Optional[bool] = None
        if ctx.response and correct_keys is not None:
            correct = ctx.response in correct_keys
        return TrialResult(
            response=ctx.response,
            rt=ctx.response_time,
            correct=correct,
            frames_displayed=ctx.frame_count,
            measured_refresh_rate=self.calibrator.measured_refresh_rate,
            config=self.config.echo(),
        )


__all__ = [
    "DotStyle",
    "FixationStyle",
    "LoopContext",
    "Renderer",
    "StimulusLoop",
    "TrialResult",
]
