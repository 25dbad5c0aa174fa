"""Entry point script for the random dot motion task.

This small wrapper simply dispatches to :mod:`rdk_motion.cli`.  Keeping the
actual logic in the package makes it possible to launch the experiment via
``python -m rdk_motion`` *or* by executing this file directly.
"""
from __future__ import annotations

from rdk_motion.cli import main


if __name__ == "__main__":
    main()
