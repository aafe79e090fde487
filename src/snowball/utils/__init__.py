"""Utility functions for snowball."""

from snowball.utils.logging import (
    setup_logging,
    start_step,
    end_step,
    log_error,
    log_calculation_issue,
    get_step_timer,
    StepTimer,
)
from snowball.utils.config import load_config, save_config, params_from_config, DEFAULT_CONFIG

__all__ = [
    "setup_logging",
    "start_step",
    "end_step",
    "log_error",
    "log_calculation_issue",
    "get_step_timer",
    "StepTimer",
    "load_config",
    "save_config",
    "params_from_config",
    "DEFAULT_CONFIG",
]
