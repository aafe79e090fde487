"""Core simulation components."""

from snowball.core.params import EBMParams, DEFAULT_PARAMS
from snowball.core.engine import EnergyBalanceModel
from snowball.core.results import Snapshot, SimulationResults
from snowball.core.model import ClimateModel
from snowball.core.driver import SimulationDriver

__all__ = [
    "EBMParams",
    "DEFAULT_PARAMS",
    "EnergyBalanceModel",
    "Snapshot",
    "SimulationResults",
    "ClimateModel",
    "SimulationDriver",
]
