"""
Logging utilities for snowball with step timing and numerical issue tracking.
"""

import logging
import sys
import time
import traceback
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any, List

ROOT_LOGGER = "snowball"

# Global step timer instance
_step_timer: Optional["StepTimer"] = None


class StepTimer:
    """Records wall-clock duration of named execution steps."""

    def __init__(self):
        self.steps: List[Dict[str, Any]] = []
        self._open: List[Dict[str, Any]] = []
        self.start_time: float = time.perf_counter()

    def start_step(self, name: str) -> None:
        """Open a new (possibly nested) step."""
        self._open.append({
            "name": name,
            "depth": len(self._open),
            "start": time.perf_counter(),
            "duration": None,
            "success": None,
        })

    def end_step(self, success: bool = True) -> float:
        """Close the innermost open step and return its duration."""
        if not self._open:
            return 0.0

        step = self._open.pop()
        step["duration"] = time.perf_counter() - step["start"]
        step["success"] = success
        self.steps.append(step)
        return step["duration"]

    @property
    def elapsed(self) -> float:
        return time.perf_counter() - self.start_time

    def get_summary(self) -> str:
        """Formatted table of completed steps."""
        lines = [
            "",
            "═" * 60,
            "  TIMING SUMMARY",
            "─" * 60,
        ]

        for step in sorted(self.steps, key=lambda s: s["start"]):
            status = "✓" if step["success"] else "✗"
            indent = "  " * step["depth"]
            lines.append(f"  {indent}{status} {step['name']}: {step['duration']:.2f}s")

        lines.extend([
            "─" * 60,
            f"  Total: {self.elapsed:.2f}s",
            "═" * 60,
        ])

        return "\n".join(lines)


def get_step_timer() -> Optional[StepTimer]:
    """Return the global step timer, if logging has been set up."""
    return _step_timer


def setup_logging(
    level: str = "INFO",
    log_dir: Optional[str] = None,
    experiment_name: Optional[str] = None,
    format_style: str = "detailed",
    always_save: bool = True,
    include_timestamp: bool = False,
) -> logging.Logger:
    """
    Configure the ``snowball`` logger.

    Parameters
    ----------
    level : str
        Log level (DEBUG, INFO, WARNING, ERROR).
    log_dir : str, optional
        Directory for the log file. No file is written when omitted.
    experiment_name : str, optional
        Log file stem. Defaults to "snowball".
    format_style : str
        'detailed', 'simple' or 'minimal'.
    always_save : bool
        Write the log file even for runs without errors.
    include_timestamp : bool
        Append a timestamp to the log filename.

    Returns
    -------
    logging.Logger
        The configured package logger.
    """
    global _step_timer
    _step_timer = StepTimer()

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(numeric_level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formats = {
        "detailed": ("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s", "%Y-%m-%d %H:%M:%S"),
        "simple": ("%(levelname)s: %(message)s", None),
        "minimal": ("%(message)s", None),
    }
    fmt, datefmt = formats.get(format_style, formats["minimal"])
    formatter = logging.Formatter(fmt, datefmt=datefmt)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir and always_save:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        stem = experiment_name or ROOT_LOGGER
        if include_timestamp:
            stem = f"{stem}_{datetime.now().strftime('%Y%m%d_%H%M%S')}"

        file_handler = logging.FileHandler(log_path / f"{stem}.log")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def start_step(name: str) -> None:
    """Log and time the start of a step."""
    logging.getLogger(ROOT_LOGGER).info(f"Starting: {name}")

    if _step_timer:
        _step_timer.start_step(name)


def end_step(success: bool = True) -> float:
    """Log and time the end of the innermost open step."""
    duration = 0.0
    if _step_timer:
        duration = _step_timer.end_step(success)

    status = "completed" if success else "FAILED"
    logging.getLogger(ROOT_LOGGER).info(f"Step {status} in {duration:.2f}s")

    return duration


def log_error(error: Exception, context: str = "") -> None:
    """Log an exception with its traceback at DEBUG."""
    logger = logging.getLogger(ROOT_LOGGER)

    logger.error(f"ERROR in {context}: {type(error).__name__}: {error}")
    logger.debug(traceback.format_exc())


def log_calculation_issue(
    issue_type: str,
    description: str,
    details: Optional[Dict[str, Any]] = None,
    level: int = logging.WARNING,
) -> None:
    """Log a numerical issue (NaN, runaway sub-stepping, odd parameters)."""
    logger = logging.getLogger(ROOT_LOGGER)

    logger.log(level, f"Calculation issue [{issue_type}]: {description}")
    if details:
        logger.debug(f"  Details: {details}")
