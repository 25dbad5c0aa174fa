"""Refresh-rate calibration and trial timing.

Browsers and PsychoPy windows both hand us one timestamp per presented frame.
Deciding "has the stimulus been on for 1000 ms?" on those timestamps is always
up to one frame late, so the helpers here estimate the real frame interval and
add half of it to every elapsed-time comparison.  That rounds each decision to
the nearest frame boundary instead.

Calibration runs in two phases.  The first ``CALIBRATION_FRAME_COUNT`` plausible
frame deltas are collected and their median becomes the initial estimate; from
then on every delta refines the estimate with an exponential moving average.
"""
from __future__ import annotations

import logging
import math
import statistics
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Calibration constants
# ---------------------------------------------------------------------------

CALIBRATION_FRAME_COUNT: int = 10
EMA_ALPHA: float = 0.1
MAX_FRAME_DELTA_MS: float = 500.0
MIN_REFRESH_HZ: float = 20.0
MAX_REFRESH_HZ: float = 300.0


class RefreshCalibrator:
    """Estimate the display's frame interval from observed frame deltas."""

    def __init__(self) -> None:
        self.samples: List[float] = []
        self.calibrated: bool = False
        self.frame_interval_ms: Optional[float] = None

    def seed(self, refresh_rate_hz: Optional[float]) -> bool:
        """Start from a previously measured refresh rate.

        Rates outside 20-300 Hz (or ``None``) are ignored and the calibrator
        keeps collecting samples.  Returns ``True`` when the seed was used.
        """

        if refresh_rate_hz is None or not MIN_REFRESH_HZ <= refresh_rate_hz <= MAX_REFRESH_HZ:
            return False
        self.frame_interval_ms = 1000.0 / refresh_rate_hz
        self.calibrated = True
        logger.debug("Refresh calibration seeded at %.2f Hz", refresh_rate_hz)
        return True

    def observe(self, delta_ms: float) -> bool:
        """Feed one frame delta; return ``False`` if it was discarded.

        Deltas that are not positive or that reach ``MAX_FRAME_DELTA_MS``
        (window hidden, tab switched, debugger pause) are not real frames.
        """

        if not 0 < delta_ms < MAX_FRAME_DELTA_MS:
            return False

        if not self.calibrated:
            self.samples.append(delta_ms)
            if len(self.samples) >= CALIBRATION_FRAME_COUNT:
                self.frame_interval_ms = statistics.median(self.samples)
                self.calibrated = True
                logger.debug(
                    "Refresh calibration complete: %.3f ms per frame",
                    self.frame_interval_ms,
                )
        else:
            assert self.frame_interval_ms is not None
            self.frame_interval_ms = EMA_ALPHA * delta_ms + (1 - EMA_ALPHA) * self.frame_interval_ms
        return True

    @property
    def half_frame_correction(self) -> float:
        """Half the estimated frame interval, or 0 before calibration."""

        if self.calibrated and self.frame_interval_ms:
            return self.frame_interval_ms * 0.5
        return 0.0

    @property
    def measured_refresh_rate(self) -> Optional[int]:
        """Estimated refresh rate rounded to whole Hz, if any estimate exists."""

        if not self.frame_interval_ms:
            return None
        # Halves round up, as in the browser version of the task.
        return math.floor(1000.0 / self.frame_interval_ms + 0.5)


@dataclass(frozen=True)
class ClockEdges:
    """Edges raised by a single :meth:`TrialClock.poll`."""

    hide_stimulus: bool = False
    end_trial: bool = False


@dataclass
class TrialClock:
    """Elapsed trial time with one-shot stimulus-hide and trial-end edges.

    ``duration`` of -1 (any value <= 0) means the trial never ends on its own
    and waits for a response.  ``stimulus_duration`` defaults to ``duration``,
    and a deadline that is not positive never hides the dots.
    Both are counted from the end of the fixation period.
    """

    duration: float
    stimulus_duration: Optional[float] = None
    fixation_time: float = 0.0
    start_time: Optional[float] = None
    stimulus_hidden: bool = field(default=False, init=False)
    trial_ended: bool = field(default=False, init=False)

    def start(self, timestamp: float) -> None:
        self.start_time = timestamp

    @property
    def started(self) -> bool:
        return self.start_time is not None

    @property
    def stimulus_deadline(self) -> float:
        """Corrected elapsed time at which the dots disappear (ignored unless positive)."""

        if self.stimulus_duration is None:
            return self.fixation_time + self.duration
        return self.fixation_time + self.stimulus_duration

    @property
    def trial_deadline(self) -> float:
        return self.fixation_time + self.duration

    def elapsed(self, now: float) -> float:
        if self.start_time is None:
            return 0.0
        return now - self.start_time

    def corrected_elapsed(self, now: float, correction: float = 0.0) -> float:
        return self.elapsed(now) + correction

    def fixation_complete(self, now: float) -> bool:
        return self.fixation_time <= 0 or self.elapsed(now) >= self.fixation_time

    def poll(self, now: float, correction: float = 0.0) -> ClockEdges:
        """Return the edges crossed at ``now``; each fires only once per trial."""

        if self.start_time is None:
            return ClockEdges()

        corrected = self.corrected_elapsed(now, correction)
        hide = False
        end = False

        deadline = self.stimulus_deadline
        if deadline > 0 and not self.stimulus_hidden and corrected >= deadline:
            self.stimulus_hidden = True
            hide = True

        if self.duration > 0 and not self.trial_ended and corrected >= self.trial_deadline:
            self.trial_ended = True
            end = True

        return ClockEdges(hide_stimulus=hide, end_trial=end)

    def mark_ended(self) -> bool:
        """Latch the trial-end edge from outside (e.g. a response).

        Returns ``False`` if the trial had already ended.
        """

        if self.trial_ended:
            return False
        self.trial_ended = True
        return True


@dataclass
class ReassignTimer:
    """Decide when dot roles get reshuffled.

    ``interval_ms`` of ``None`` never reshuffles and 0 reshuffles on every
    update.  Positive intervals accumulate update time and keep the remainder
    after each reshuffle so the schedule does not drift.
    """

    interval_ms: Optional[float] = None
    accumulated_ms: float = 0.0

    def tick(self, delta_ms: float, correction: float = 0.0) -> bool:
        if self.interval_ms is None:
            return False
        if self.interval_ms == 0:
            return True

        self.accumulated_ms += delta_ms
        due = self.accumulated_ms + correction >= self.interval_ms
        if due:
            self.accumulated_ms %= self.interval_ms
        return due


__all__ = [
    "CALIBRATION_FRAME_COUNT",
    "EMA_ALPHA",
    "MAX_FRAME_DELTA_MS",
    "MAX_REFRESH_HZ",
    "MIN_REFRESH_HZ",
    "ClockEdges",
    "ReassignTimer",
    "RefreshCalibrator",
    "TrialClock",
]
