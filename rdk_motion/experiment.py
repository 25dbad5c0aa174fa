"""High-level experiment orchestration for the random dot motion task."""
from __future__ import annotations

import random
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Iterable, List

from psychopy import core, event, gui, logging, visual
from psychopy.hardware import keyboard

from .conditions import TrialCondition, build_trial_conditions, load_conditions
from .config import ExperimentConfig
from .renderer import PsychoPyRenderer
from .template import BaseExperiment
from .trial import ExperimentAbort, result_row, run_rdk_trial

if TYPE_CHECKING:
    from psychopy.visual.window import Window
else:  # pragma: no cover - used only for static analysis fallbacks
    Window = Any


class RDKExperiment(BaseExperiment):
    """Run a block of kinematogram trials and save one row per trial."""

    def __init__(self, config: ExperimentConfig | None = None):
        self.config = config or ExperimentConfig()
        self.rng = random.Random(self.config.seed)
        self._global_keys_registered = False
        self._active_window: Window | None = None
        super().__init__(
            experiment_name=self.config.experiment_name,
            data_fields=self.config.data_fields,
            results_directory=self.config.results_directory,
        )
        logging.console.setLevel(logging.DEBUG if self.config.debug_mode else logging.WARNING)

    # ------------------------------------------------------------------
    # GUI helpers
    # ------------------------------------------------------------------
    def collect_participant_info(self) -> Dict[str, str]:
        """Display an info dialog to collect participant metadata."""

        info = {
            "Participant ID": "",
            "Session": "1",
        }
        dialog = gui.DlgFromDict(info, title="Random Dot Motion", fixed=["Session"])
        if not dialog.OK:
            core.quit()
        instruction_dialog = gui.Dlg(title="Instructions")
        instruction_dialog.addText(self.config.instructions_text())
        instruction_dialog.show()
        return info

    # ------------------------------------------------------------------
    # Window creation
    # ------------------------------------------------------------------
    def create_window(self) -> Window:
        """Create the stimulus window (stencil enabled for aperture clipping)."""

        if self.config.debug_mode:
            size = list(self.config.debug_window_size)
            fullscreen = False
        else:
            size = list(self.config.window_size)
            fullscreen = self.config.full_screen
        win = visual.Window(
            size=size,
            fullscr=fullscreen,
            screen=self.config.screen_index,
            units="pix",
            color=self.config.background_color,
            colorSpace="hex" if self.config.background_color.startswith("#") else "named",
            allowGUI=self.config.debug_mode,
            allowStencil=True,
            waitBlanking=True,
        )
        win.mouseVisible = False
        self._active_window = win
        self._register_global_quit_handler()
        return win

    def measure_refresh_rate(self, win: Window) -> float | None:
        """Ask PsychoPy for the frame rate; ``None`` if it could not measure one."""

        if self.config.refresh_rate_hint is not None:
            return self.config.refresh_rate_hint
        rate = win.getActualFrameRate(nIdentical=10, nMaxFrames=120, nWarmUpFrames=10)
        if rate is None:
            logging.warning("Could not measure the refresh rate; calibrating per trial.")
        else:
            logging.info(f"Measured refresh rate: {rate:.2f} Hz")
        return rate

    def _register_global_quit_handler(self) -> None:
        """Install a global key hook so ESC always shuts down safely."""

        if self._global_keys_registered:
            return

        def _handle_global_quit() -> None:
            logging.warning("Global quit key detected. Closing window and exiting.")
            if self._active_window is not None:
                self._active_window.close()
            core.quit()

        for key in self.config.quit_keys:
            event.globalKeys.add(key=key, func=_handle_global_quit)
        self._global_keys_registered = True

    # ------------------------------------------------------------------
    # Trial scheduling
    # ------------------------------------------------------------------
    def trial_conditions(self) -> List[TrialCondition]:
        """Return the block's trial list (from file when configured)."""

        if self.config.conditions_file:
            return load_conditions(self.config.conditions_file)
        return build_trial_conditions(
            self.config.n_trials,
            self.config.coherences,
            self.config.key_left,
            self.config.key_right,
            rng=self.rng,
        )

    def run_trials(
        self,
        *,
        win: Window,
        conditions: Iterable[TrialCondition],
        refresh_rate_hint: float | None,
    ) -> List[Dict[str, object]]:
        """Run each kinematogram trial and return the recorded rows."""

        response_kb = keyboard.Keyboard()
        renderer = PsychoPyRenderer(win)
        base_config = self.config.base_trial_config()
        rows: List[Dict[str, object]] = []

        for index, condition in enumerate(conditions, start=1):
            trial_config = base_config.with_overrides(**condition.as_overrides())
            result = run_rdk_trial(
                win=win,
                config=trial_config,
                trial_index=index,
                response_kb=response_kb,
                quit_keys=self.config.quit_keys,
                renderer=renderer,
                rng=self.rng,
                refresh_rate_hint=refresh_rate_hint,
            )
            rows.append(result_row(result, index))
            # Later trials start from this trial's estimate.
            if result.measured_refresh_rate is not None:
                refresh_rate_hint = result.measured_refresh_rate

        return rows

    # ------------------------------------------------------------------
    # Data persistence
    # ------------------------------------------------------------------
    def save_results(self, trial_rows: Iterable[Dict[str, object]]) -> Path:
        """Save CSV results, participant info and a pickle snapshot."""

        filename = self.open_csv_data_file()
        self.update_experiment_data(trial_rows)
        self.save_data_to_csv()
        self.save_experiment_info()
        self.save_experiment_pickle()
        logging.info(f"Saved {self.data_lines_written} trial rows to {filename}")
        return filename

    # ------------------------------------------------------------------
    # Experiment entry point
    # ------------------------------------------------------------------
    def run(self) -> None:
        """Execute the full experiment pipeline."""

        participant_info = self.collect_participant_info()
        self.experiment_info.update(participant_info)
        self.experiment_info["Instructions"] = self.config.instructions_text()

        conditions = self.trial_conditions()
        win = self.create_window()
        aborted = False
        trial_rows: List[Dict[str, object]] = []
        try:
            hint = self.measure_refresh_rate(win)
            trial_rows = self.run_trials(win=win, conditions=conditions, refresh_rate_hint=hint)
        except ExperimentAbort as exc:
            logging.warning(f"Experiment aborted: {exc}")
            aborted = True
        finally:
            win.close()

        if not aborted:
            participant = participant_info.get("Participant ID", "unknown")
            self.save_results({**row, "participant": participant} for row in trial_rows)

        core.quit()


__all__ = ["RDKExperiment"]
