"""
snowball - Latitudinal Energy-Balance Model

An idealized one-dimensional climate model for exploring the ice-albedo
feedback, snowball-Earth bistability and hysteresis under solar and
greenhouse forcing.
"""

__version__ = "0.1.0"

from snowball.core.params import (
    EBMParams,
    DEFAULT_PARAMS,
    GREENHOUSE_SCALE,
    solar_constant,
    greenhouse_forcing,
    olr_constant,
)
from snowball.core.engine import EnergyBalanceModel
from snowball.core.model import ClimateModel
from snowball.core.driver import SimulationDriver
from snowball.core.results import Snapshot, SimulationResults
from snowball.core.physics import (
    HEAT_CAPACITY,
    build_grid,
    compute_insolation,
    compute_transport,
    classify_climate_state,
)
from snowball.scenarios import SCENARIOS, get_scenario, list_scenarios

__all__ = [
    "__version__",
    "EBMParams",
    "DEFAULT_PARAMS",
    "GREENHOUSE_SCALE",
    "solar_constant",
    "greenhouse_forcing",
    "olr_constant",
    "EnergyBalanceModel",
    "ClimateModel",
    "SimulationDriver",
    "Snapshot",
    "SimulationResults",
    "HEAT_CAPACITY",
    "build_grid",
    "compute_insolation",
    "compute_transport",
    "classify_climate_state",
    "SCENARIOS",
    "get_scenario",
    "list_scenarios",
]
