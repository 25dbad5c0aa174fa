"""Random dot kinematogram (RDK) engine and PsychoPy task.

The package is split in two layers.  The simulation engine (aperture geometry,
dot roles, motion integration, refresh calibration and the per-frame loop) is
plain Python and is re-exported here so it can be used and tested without a
display.  The PsychoPy layer lives in :mod:`rdk_motion.renderer`,
:mod:`rdk_motion.trial` and :mod:`rdk_motion.experiment` and is imported on
demand.
"""

from .aperture import (
    Aperture,
    ApertureShape,
    EllipticalAperture,
    RectangularAperture,
    create_aperture,
)
from .conditions import TrialCondition, build_trial_conditions, load_conditions
from .config import ExperimentConfig, RDKTrialConfig
from .dots import (
    Dot,
    Movement,
    coherent_direction,
    create_dot,
    generate_role_assignment,
)
from .headless import simulate_trial
from .loop import StimulusLoop, TrialResult
from .motion import ReinsertMode, UnknownReinsertModeError, update_dot
from .scheduler import FrameScheduler
from .timing import RefreshCalibrator, ReassignTimer, TrialClock
from .cli import main as run_experiment

__all__ = [
    "Aperture",
    "ApertureShape",
    "Dot",
    "EllipticalAperture",
    "ExperimentConfig",
    "FrameScheduler",
    "Movement",
    "RDKTrialConfig",
    "ReassignTimer",
    "RectangularAperture",
    "RefreshCalibrator",
    "ReinsertMode",
    "StimulusLoop",
    "TrialClock",
    "TrialCondition",
    "TrialResult",
    "UnknownReinsertModeError",
    "build_trial_conditions",
    "coherent_direction",
    "create_aperture",
    "create_dot",
    "generate_role_assignment",
    "load_conditions",
    "run_experiment",
    "simulate_trial",
    "update_dot",
]
