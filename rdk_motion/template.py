"""Data saving helpers shared by kinematogram experiments.

:class:`BaseExperiment` keeps the participant information and the trial
records of a session in memory and writes them to disk as a CSV file (one row
per trial), a JSON file (participant information) and a pickle snapshot for
quick inspection.  The simulation engine never touches these files; only the
experiment runner does.
"""
from __future__ import annotations

import csv
import json
import pickle
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List


def csv_value(value: object) -> object:
    """Return ``value`` in a form that survives a CSV round-trip."""

    if value is None:
        return ""
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(value, sort_keys=True)
    return value


@dataclass
class BaseExperiment:
    """Core functionality for saving experiment data."""

    experiment_name: str
    data_fields: List[str]
    results_directory: str = "data"

    def __post_init__(self) -> None:
        self.experiment_data: List[Dict[str, object]] = []
        self.experiment_data_filename: Path | None = None
        self.data_lines_written: int = 0
        self.experiment_info: Dict[str, str] = {}

    # ------------------------------------------------------------------
    # File naming helpers
    # ------------------------------------------------------------------
    def _default_filename(self, suffix: str) -> Path:
        participant = self.experiment_info.get("Participant ID", "000")
        session = self.experiment_info.get("Session", "1")
        try:
            subject_code = f"{int(participant):03d}"
        except (TypeError, ValueError):
            subject_code = str(participant) or "unknown"
        directory = Path(self.results_directory)
        directory.mkdir(parents=True, exist_ok=True)
        return directory / f"{self.experiment_name}_{subject_code}_{session}{suffix}"

    # ------------------------------------------------------------------
    # Info saving
    # ------------------------------------------------------------------
    def save_experiment_info(self, filename: Path | None = None) -> Path:
        """Write the participant information to disk as JSON."""

        output_filename = filename or self._default_filename("_info.json")
        with open(output_filename, "w", encoding="utf-8") as info_file:
            json.dump(self.experiment_info, info_file, indent=2)
        return output_filename

    # ------------------------------------------------------------------
    # CSV handling
    # ------------------------------------------------------------------
    def open_csv_data_file(self, data_filename: Path | None = None) -> Path:
        """Prepare an empty CSV file with the header row."""

        filename = data_filename or self._default_filename(".csv")
        self.experiment_data_filename = filename
        with open(filename, "w", newline="", encoding="utf-8") as csv_file:
            writer = csv.writer(csv_file)
            writer.writerow(self.data_fields)
        self.data_lines_written = 0
        return filename

    def update_experiment_data(self, rows: Iterable[Dict[str, object]]) -> None:
        """Append new trial rows to the in-memory store."""

        self.experiment_data.extend(rows)

    def save_data_to_csv(self) -> None:
        """Append every row not yet written; columns outside ``data_fields`` are dropped."""

        if not self.experiment_data_filename:
            self.open_csv_data_file()
        assert self.experiment_data_filename is not None
        with open(self.experiment_data_filename, "a", newline="", encoding="utf-8") as csv_file:
            writer = csv.DictWriter(csv_file, fieldnames=self.data_fields, extrasaction="ignore")
            for row in self.experiment_data[self.data_lines_written :]:
                writer.writerow({key: csv_value(value) for key, value in row.items()})
                self.data_lines_written += 1

    # ------------------------------------------------------------------
    # Pickle summary
    # ------------------------------------------------------------------
    def save_experiment_pickle(self) -> Path:
        """Persist the experiment state using pickle for quick inspection."""

        pickle_filename = self._default_filename(".pickle")
        payload = {
            "experiment_name": self.experiment_name,
            "data_fields": self.data_fields,
            "experiment_data": self.experiment_data,
            "experiment_data_filename": (
                str(self.experiment_data_filename) if self.experiment_data_filename else None
            ),
            "data_lines_written": self.data_lines_written,
            "experiment_info": self.experiment_info,
        }
        with open(pickle_filename, "wb") as pickle_file:
            pickle.dump(payload, pickle_file)
        return pickle_filename


__all__ = ["BaseExperiment", "csv_value"]
