"""Configuration for random dot kinematogram trials and experiments.

:class:`RDKTrialConfig` holds every option a single trial understands, with
the customary defaults of the browser version of the task.  The experiment
level :class:`ExperimentConfig` collects the user-editable parameters of a
whole session.  Keeping both in one module makes it easy to see what can be
tweaked without reading the simulation or PsychoPy code.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Tuple, Union

ResponseKeys = Union[str, Sequence[str], None]


@dataclass(frozen=True)
class RDKTrialConfig:
    """Parameters for one kinematogram trial.

    Times are in milliseconds, distances in surface pixels.  ``duration=-1``
    keeps the trial running until a response arrives; ``dot_lifetime=-1``
    lets dots live forever; ``update_rate=None`` moves dots on every frame;
    ``reassign_every_ms=None`` never reshuffles roles (0 reshuffles on every
    update).  Aperture centres of ``None`` mean the centre of the surface.
    """

    # Trial control
    valid_keys: Tuple[str, ...] = ()
    correct_response: ResponseKeys = None
    duration: float = 1000
    stimulus_duration: Optional[float] = None
    response_ends_trial: bool = True
    # Dot motion
    dot_count: int = 300
    dot_set_count: int = 1
    direction: float = 0
    coherence: float = 0.5
    opposite: float = 0
    speed: float = 60
    dot_lifetime: float = -1
    update_rate: Optional[float] = None
    # Dot appearance
    dot_radius: float = 2
    dot_character: Optional[str] = None
    dot_color: str = "white"
    coherent_dot_color: Optional[str] = None
    background_color: str = "gray"
    # Aperture
    aperture_shape: str = "ellipse"
    aperture_width: float = 600
    aperture_height: float = 400
    aperture_center_x: Optional[float] = None
    aperture_center_y: Optional[float] = None
    reinsert_mode: str = "opposite"
    # Algorithm
    noise_movement: str = "randomDirection"
    reassign_every_ms: Optional[float] = None
    # Fixation cross
    show_fixation: bool = False
    fixation_time: float = 500
    fixation_width: float = 15
    fixation_height: float = 15
    fixation_color: str = "white"
    fixation_thickness: float = 2
    # Border
    show_border: bool = False
    border_width: float = 1
    border_color: str = "black"

    def with_overrides(self, **overrides: object) -> "RDKTrialConfig":
        """Return a copy with ``overrides`` applied."""

        return replace(self, **overrides)

    def resolved(self, surface_size: Tuple[float, float]) -> "RDKTrialConfig":
        """Fill in a missing aperture centre from the drawing surface size."""

        width, height = surface_size
        return replace(
            self,
            aperture_center_x=(
                width / 2 if self.aperture_center_x is None else self.aperture_center_x
            ),
            aperture_center_y=(
                height / 2 if self.aperture_center_y is None else self.aperture_center_y
            ),
        )

    def allowed_keys(self) -> Optional[List[str]]:
        """Lower-cased valid keys, or ``None`` when any key is accepted."""

        if not self.valid_keys:
            return None
        return [key.lower() for key in self.valid_keys]

    def correct_keys(self) -> Optional[List[str]]:
        """Lower-cased expected response(s), or ``None`` if none configured."""

        if not self.correct_response:
            return None
        if isinstance(self.correct_response, str):
            return [self.correct_response.lower()]
        return [key.lower() for key in self.correct_response]

    def echo(self) -> Dict[str, object]:
        """Return every parameter as a plain dict for the result record."""

        values = asdict(self)
        values["valid_keys"] = list(self.valid_keys)
        if self.correct_response is not None and not isinstance(self.correct_response, str):
            values["correct_response"] = list(self.correct_response)
        return values


@dataclass
class ExperimentConfig:
    """Container for experiment parameters and runtime options."""

    experiment_name: str = "rdk_motion"
    data_fields: List[str] = field(
        default_factory=lambda: [
            "participant",
            "trial_index",
            "response",
            "rt",
            "correct",
            "frames_displayed",
            "measured_refresh_rate",
            "coherence",
            "direction",
            "correct_response",
            "dot_count",
            "speed",
            "dot_lifetime",
            "noise_movement",
            "reinsert_mode",
            "stimulus_duration",
            "duration",
            "trial_config",
        ]
    )
    n_trials: int = 50
    stimulus_duration_ms: float = 2000
    fixation_time_ms: float = 500
    dot_count: int = 200
    coherences: List[float] = field(default_factory=lambda: [0.05, 0.15, 0.25, 0.35, 0.5])
    dot_lifetime_ms: float = 100
    dot_speed: float = 120
    noise_movement: str = "randomDirection"
    key_left: str = "left"
    key_right: str = "right"
    conditions_file: Optional[str] = None
    results_directory: str = "data"
    screen_index: int = 0
    full_screen: bool = True
    window_size: Tuple[int, int] = (1280, 720)
    background_color: str = "#21294b"
    quit_keys: Tuple[str, ...] = ("escape",)
    refresh_rate_hint: Optional[float] = None
    seed: Optional[int] = None
    debug_mode: bool = False
    debug_window_size: Tuple[int, int] = (1024, 768)

    def base_trial_config(self) -> RDKTrialConfig:
        """Return the per-trial defaults shared by every trial in the block."""

        return RDKTrialConfig(
            valid_keys=(self.key_left, self.key_right),
            response_ends_trial=True,
            stimulus_duration=self.stimulus_duration_ms,
            duration=-1,
            fixation_time=self.fixation_time_ms,
            dot_count=self.dot_count,
            speed=self.dot_speed,
            dot_radius=3,
            dot_color="white",
            dot_lifetime=self.dot_lifetime_ms,
            aperture_shape="circle",
            aperture_width=500,
            aperture_height=500,
            noise_movement=self.noise_movement,
            reinsert_mode="opposite",
            show_fixation=True,
            show_border=True,
            border_color="white",
            background_color=self.background_color,
        )

    def instructions_text(self) -> str:
        """Return an instruction string for the on-screen dialog."""

        return (
            "Random Dot Motion Task\n\n"
            "You will see dots moving on the screen.\n"
            f"Press {self.key_left.upper()} if the dots move left and "
            f"{self.key_right.upper()} if they move right.\n\n"
            "Keep your eyes on the cross in the centre.\n"
            "Press ESC at any time to exit early."
        )


__all__ = ["ExperimentConfig", "RDKTrialConfig"]
