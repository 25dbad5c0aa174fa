"""Command line helpers for running the random dot motion experiment."""
from __future__ import annotations

import argparse
import json
import math
import random
import sys
from pathlib import Path
from typing import List

from .conditions import build_trial_conditions, load_conditions
from .config import ExperimentConfig
from .dots import NOISE_MOVEMENTS
from .headless import simulate_trial

DEFAULT_CONFIG = ExperimentConfig()
DRY_RUN_REFRESH_HZ: float = 60.0


def _coherence_list(value: str) -> List[float]:
    """Parse ``--coherences`` given as a JSON list of numbers."""

    try:
        loaded = json.loads(value)
    except json.JSONDecodeError as exc:
        raise argparse.ArgumentTypeError(f"Coherences must be a JSON list: {exc.msg}") from exc
    if not isinstance(loaded, list) or not all(isinstance(v, (int, float)) for v in loaded):
        raise argparse.ArgumentTypeError("Coherences must be a JSON list of numbers, e.g. [0.1, 0.5]")
    return [float(v) for v in loaded]


def build_arg_parser() -> argparse.ArgumentParser:
    """Create an argument parser exposing minimal runtime options."""

    parser = argparse.ArgumentParser(
        description=(
            "Launch the random dot motion (RDK) task. "
            "Participants report whether the coherent dots move left or right."
        )
    )
    parser.add_argument(
        "--trials",
        type=int,
        default=DEFAULT_CONFIG.n_trials,
        help="Number of trials, split evenly over coherences and directions (default: %(default)s).",
    )
    parser.add_argument(
        "--stimulus-duration-ms",
        type=float,
        default=DEFAULT_CONFIG.stimulus_duration_ms,
        help="How long the dots stay visible in milliseconds (default: %(default)s).",
    )
    parser.add_argument(
        "--dots",
        type=int,
        default=DEFAULT_CONFIG.dot_count,
        help="Number of dots per frame (default: %(default)s).",
    )
    parser.add_argument(
        "--coherences",
        type=_coherence_list,
        default=DEFAULT_CONFIG.coherences,
        help="JSON list of coherence levels (default: %(default)s).",
    )
    parser.add_argument(
        "--dot-lifetime-ms",
        type=float,
        default=DEFAULT_CONFIG.dot_lifetime_ms,
        help="Dot lifetime in milliseconds, -1 for infinite (default: %(default)s).",
    )
    parser.add_argument(
        "--dot-speed",
        type=float,
        default=DEFAULT_CONFIG.dot_speed,
        help="Dot speed in pixels per second (default: %(default)s).",
    )
    parser.add_argument(
        "--noise-movement",
        choices=[movement.value for movement in NOISE_MOVEMENTS],
        default=DEFAULT_CONFIG.noise_movement,
        help="How noise dots move (default: %(default)s).",
    )
    parser.add_argument(
        "--key-left",
        default=DEFAULT_CONFIG.key_left,
        help="Key for a leftward response (default: %(default)s).",
    )
    parser.add_argument(
        "--key-right",
        default=DEFAULT_CONFIG.key_right,
        help="Key for a rightward response (default: %(default)s).",
    )
    parser.add_argument(
        "--conditions",
        type=Path,
        default=None,
        help="JSON file listing trials explicitly (overrides --trials/--coherences).",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=Path(DEFAULT_CONFIG.results_directory),
        help="Folder where CSV/JSON/pickle outputs will be saved (default: %(default)s).",
    )
    parser.add_argument(
        "--refresh-rate",
        type=float,
        default=None,
        help="Known display refresh rate in Hz; skips the start-up measurement.",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the trial order and dot positions.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Run in a small window with verbose PsychoPy logging.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help=(
            "Simulate every trial headlessly at 60 Hz, print a summary, and exit "
            "without opening a PsychoPy window."
        ),
    )
    return parser


def config_from_args(args: argparse.Namespace) -> ExperimentConfig:
    """Translate parsed arguments into an :class:`ExperimentConfig`."""

    return ExperimentConfig(
        n_trials=args.trials,
        stimulus_duration_ms=args.stimulus_duration_ms,
        dot_count=args.dots,
        coherences=list(args.coherences),
        dot_lifetime_ms=args.dot_lifetime_ms,
        dot_speed=args.dot_speed,
        noise_movement=args.noise_movement,
        key_left=args.key_left,
        key_right=args.key_right,
        conditions_file=str(args.conditions) if args.conditions else None,
        results_directory=str(args.data_dir),
        refresh_rate_hint=args.refresh_rate,
        seed=args.seed,
        debug_mode=args.debug,
    )


def main(argv: list[str] | None = None) -> None:
    """Parse command line options and execute the experiment."""

    parser = build_arg_parser()
    args = parser.parse_args(argv)
    config = config_from_args(args)

    if args.dry_run:
        perform_dry_run(config)
        return

    # PsychoPy is only needed once a window is opened.
    from .experiment import RDKExperiment

    experiment = RDKExperiment(config)
    experiment.run()


def perform_dry_run(config: ExperimentConfig) -> None:
    """Simulate every trial without a display and print a summary."""

    rng = random.Random(config.seed)
    if config.conditions_file:
        conditions = load_conditions(config.conditions_file)
    else:
        conditions = build_trial_conditions(
            config.n_trials, config.coherences, config.key_left, config.key_right, rng=rng
        )
    if not conditions:
        print("No trials in this configuration; nothing to simulate.")
        return

    base = config.base_trial_config()
    frame_interval = 1000.0 / DRY_RUN_REFRESH_HZ
    visible_ms = base.fixation_time + (base.stimulus_duration or 0)
    frames = max(1, math.ceil(visible_ms / frame_interval))

    print(f"Dry-run: {len(conditions)} trials at {DRY_RUN_REFRESH_HZ:.0f} Hz, {frames} frames each.")
    for index, condition in enumerate(conditions, start=1):
        trial_config = base.with_overrides(**condition.as_overrides())
        run = simulate_trial(
            trial_config,
            frame_interval_ms=frame_interval,
            max_frames=frames,
            responses={frames: condition.correct_response},
            rng=rng,
        )
        roles = ", ".join(f"{name}={count}" for name, count in sorted(run.role_counts.items()))
        print(f"[{index:03}] coherence={condition.coherence:.2f} direction={condition.direction:.0f}")
        print(
            f"      frames={run.result.frames_displayed} dot_frames={run.renderer.dot_frames} "
            f"refresh={run.result.measured_refresh_rate} Hz correct={run.result.correct}"
        )
        print(f"      roles: {roles}")
    print("Dry-run complete.")


if __name__ == "__main__":  # pragma: no cover - module level CLI hook
    main(sys.argv[1:])
