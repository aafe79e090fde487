"""
Built-in forcing experiments.
"""

from snowball.scenarios.experiments import (
    SCENARIOS,
    get_scenario,
    list_scenarios,
)

__all__ = [
    "SCENARIOS",
    "get_scenario",
    "list_scenarios",
]
