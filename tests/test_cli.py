"""
Tests for the command line entry point (dry-run only, no window).
"""
import json

import pytest

from rdk_motion.cli import build_arg_parser, config_from_args, main


class TestArgParser:

    def test_defaults_follow_experiment_config(self):
        args = build_arg_parser().parse_args([])
        config = config_from_args(args)
        assert config.n_trials == 50
        assert config.coherences == [0.05, 0.15, 0.25, 0.35, 0.5]
        assert config.conditions_file is None

    def test_coherences_json(self):
        args = build_arg_parser().parse_args(["--coherences", "[0.2, 0.8]", "--seed", "3"])
        config = config_from_args(args)
        assert config.coherences == [0.2, 0.8]
        assert config.seed == 3

    @pytest.mark.parametrize("value", ["0.2", "[0.1, \"x\"]", "{"])
    def test_bad_coherences_rejected(self, value):
        with pytest.raises(SystemExit):
            build_arg_parser().parse_args(["--coherences", value])

    def test_noise_movement_choices(self):
        with pytest.raises(SystemExit):
            build_arg_parser().parse_args(["--noise-movement", "coherent"])


class TestDryRun:

    def test_dry_run_simulates_each_trial(self, capsys):
        main([
            "--dry-run", "--trials", "4", "--coherences", "[0.5]", "--dots", "20",
            "--stimulus-duration-ms", "200", "--seed", "1",
        ])
        out = capsys.readouterr().out
        assert "Dry-run: 4 trials" in out
        assert out.count("correct=True") == 4
        assert "coherent=10" in out
        assert "Dry-run complete." in out

    def test_dry_run_with_conditions_file(self, tmp_path, capsys):
        path = tmp_path / "trials.json"
        path.write_text(json.dumps([{"coherence": 1.0, "direction": 90, "correct_response": "right"}]))
        main(["--dry-run", "--conditions", str(path), "--dots", "10", "--stimulus-duration-ms", "100"])
        out = capsys.readouterr().out
        assert "Dry-run: 1 trials" in out
        assert "coherent=10" in out
