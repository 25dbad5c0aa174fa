from __future__ import annotations

import random
from typing import Dict, List, Optional, Sequence

from psychopy import core, logging, visual
from psychopy.hardware import keyboard

from .config import RDKTrialConfig
from .loop import StimulusLoop, TrialResult
from .renderer import PsychoPyRenderer
from .scheduler import FrameScheduler


class ExperimentAbort(Exception):
    """Raised when the participant issues a quit command (e.g., presses ESC)."""


def _now_ms() -> float:
    return core.monotonicClock.getTime() * 1000.0


def _check_quit(quit_device: keyboard.Keyboard | None, quit_keys: Sequence[str]) -> None:
    quit_list = list(quit_keys)
    if quit_device is None or not quit_list:
        return
    for key in quit_device.getKeys(quit_list, waitRelease=False, clear=False):
        if key.name in quit_list:
            raise ExperimentAbort(f"Quit key '{key.name}' pressed")


def run_rdk_trial(
    *,
    win: visual.Window,
    config: RDKTrialConfig,
    trial_index: int,
    response_kb: keyboard.Keyboard | None,
    quit_kb: keyboard.Keyboard | None = None,
    quit_keys: Sequence[str] = ("escape",),
    renderer: PsychoPyRenderer | None = None,
    rng: random.Random | None = None,
    refresh_rate_hint: float | None = None,
) -> TrialResult:
    """Run one kinematogram trial in ``win`` and return its result.

    Frames are pumped through a :class:`FrameScheduler` once per
    ``win.flip()``; each flip's timestamp becomes the next frame's timestamp.
    Key presses reach the loop with their own timestamps, so reaction times do
    not depend on when in the frame the keyboard was polled.
    """

    renderer = renderer or PsychoPyRenderer(win)
    scheduler = FrameScheduler()
    loop = StimulusLoop(
        config,
        renderer,
        scheduler,
        rng=rng,
        refresh_rate_hint=refresh_rate_hint,
    )
    quit_device = quit_kb or response_kb
    quit_list: List[str] = list(quit_keys)

    if response_kb:
        response_kb.clearEvents()
    if quit_kb and quit_kb is not response_kb:
        quit_kb.clearEvents()

    start = _now_ms()
    if response_kb:
        response_kb.clock.reset()
    loop.start(start)
    logging.exp(
        f"RDK trial {trial_index} started "
        f"(coherence={config.coherence}, direction={config.direction})"
    )

    timestamp = start
    try:
        while scheduler.pending:
            scheduler.dispatch(timestamp)
            if loop.finished:
                break
            flip_time: Optional[float] = win.flip()
            timestamp = flip_time * 1000.0 if flip_time else _now_ms()

            _check_quit(quit_device, quit_list)
            if response_kb:
                for key in response_kb.getKeys(waitRelease=False):
                    if key.name in quit_list:
                        raise ExperimentAbort(f"Quit key '{key.name}' pressed")
                    if loop.handle_key(key.name, start + key.rt * 1000.0):
                        break
    finally:
        loop.cancel()

    result = loop.finish()
    logging.exp(
        f"RDK trial {trial_index} ended: response={result.response} rt={result.rt} "
        f"frames={result.frames_displayed} refresh={result.measured_refresh_rate}"
    )
    return result


def result_row(result: TrialResult, trial_index: int) -> Dict[str, object]:
    """Flatten ``result`` into a data row for :class:`~rdk_motion.template.BaseExperiment`."""

    row = result.as_record()
    row["trial_index"] = trial_index
    row["trial_config"] = dict(result.config)
    return row


__all__ = ["ExperimentAbort", "result_row", "run_rdk_trial"]
