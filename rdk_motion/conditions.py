"""Trial-list helpers for the kinematogram experiment.

A block is built from a list of coherence levels: for every coherence an equal
number of leftward (270 degrees) and rightward (90 degrees) trials is created
and the whole list is shuffled.  Alternatively a JSON file can list the trials
explicitly, one object per trial with ``coherence``, ``direction`` and
``correct_response`` keys.
"""
from __future__ import annotations

import json
import os
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Sequence

LEFTWARD_DEG: float = 270.0
RIGHTWARD_DEG: float = 90.0


@dataclass(frozen=True)
class TrialCondition:
    """Per-trial values that vary across the block."""

    coherence: float
    direction: float
    correct_response: str

    def as_overrides(self) -> Dict[str, object]:
        """Return the fields as :class:`~rdk_motion.config.RDKTrialConfig` overrides."""

        return {
            "coherence": self.coherence,
            "direction": self.direction,
            "correct_response": self.correct_response,
        }


def build_trial_conditions(
    n_trials: int,
    coherences: Sequence[float],
    key_left: str,
    key_right: str,
    rng: random.Random | None = None,
) -> List[TrialCondition]:
    """Return a shuffled, direction-balanced trial list.

    ``n_trials`` is split evenly over ``coherences`` and then over the two
    directions, rounding down at each split, so the block may be slightly
    shorter than requested.
    """

    if not coherences:
        raise ValueError("At least one coherence level is required")

    trials_per_coherence = n_trials // len(coherences)
    trials_per_direction = trials_per_coherence // 2
    conditions: List[TrialCondition] = []
    for coherence in coherences:
        for direction, key in ((LEFTWARD_DEG, key_left), (RIGHTWARD_DEG, key_right)):
            conditions.extend(
                TrialCondition(float(coherence), direction, key)
                for _ in range(trials_per_direction)
            )

    generator = rng if rng is not None else random
    generator.shuffle(conditions)
    return conditions


def _condition_from_row(row: Any, index: int) -> TrialCondition:
    if not isinstance(row, dict):
        raise TypeError(f"Condition {index} must be a JSON object, got {type(row).__name__}.")
    missing = [key for key in ("coherence", "direction", "correct_response") if key not in row]
    if missing:
        raise ValueError(f"Condition {index} is missing: {', '.join(missing)}")
    try:
        coherence = float(row["coherence"])
        direction = float(row["direction"])
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Condition {index} has a non-numeric coherence or direction.") from exc
    return TrialCondition(coherence, direction, str(row["correct_response"]))


def load_conditions(path: str | os.PathLike[str]) -> List[TrialCondition]:
    """Load an explicit trial list from a JSON file.

    The file must contain a list of objects; their order is kept.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Conditions file '{path}' does not exist.")
    with path.open("r", encoding="utf-8") as conditions_file:
        loaded: Any = json.load(conditions_file)
    if not isinstance(loaded, list):
        raise TypeError(f"Conditions file '{path.name}' must contain a JSON list.")
    return [_condition_from_row(row, index) for index, row in enumerate(loaded)]


__all__ = [
    "LEFTWARD_DEG",
    "RIGHTWARD_DEG",
    "TrialCondition",
    "build_trial_conditions",
    "load_conditions",
]
