"""
Containers for model snapshots and experiment results, with export helpers.
"""

from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field
from pathlib import Path
import logging
import numpy as np
from numpy.typing import NDArray

from snowball.core.physics import classify_climate_state

logger = logging.getLogger(__name__)


@dataclass
class Snapshot:
    """
    Frozen copy of the model fields at one instant.

    This is what an external consumer (a plotting front end, a logger,
    an exporter) reads; it never aliases the engine's arrays.
    """

    time: float
    lat: NDArray[np.float64]
    T: NDArray[np.float64]
    albedo: NDArray[np.float64]
    insol: NDArray[np.float64]
    ASR: NDArray[np.float64]
    OLR: NDArray[np.float64]
    transport: NDArray[np.float64]
    ice_threshold: float
    global_mean_temperature: float
    global_mean_net_flux: float
    ice_fraction: float
    climate_state: str

    @property
    def net_flux(self) -> NDArray[np.float64]:
        """Local radiative imbalance ASR - OLR."""
        return self.ASR - self.OLR

    def to_dataframe(self):
        """Latitude profile as a pandas DataFrame."""
        import pandas as pd

        return pd.DataFrame({
            "lat": self.lat,
            "temperature_C": self.T,
            "albedo": self.albedo,
            "insolation_Wm2": self.insol,
            "ASR_Wm2": self.ASR,
            "OLR_Wm2": self.OLR,
            "net_flux_Wm2": self.net_flux,
            "transport_Wm2": self.transport,
            "ice_covered": (self.T < self.ice_threshold).astype(int),
        })


@dataclass
class SimulationResults:
    """
    Container for a staged or transient forcing experiment.

    Attributes
    ----------
    t : NDArray
        Simulated time of each sample.
    global_mean_temperature : NDArray
        Global-mean temperature (°C) at each sample.
    global_mean_net_flux : NDArray
        Global-mean ASR - OLR (W/m²) at each sample.
    ice_fraction : NDArray
        Ice-covered fraction of the globe at each sample.
    solar_multiplier : NDArray
        Solar strength relative to the reference S0.
    greenhouse_multiplier : NDArray
        Greenhouse control value.
    stage_index : NDArray
        Index into ``stages`` for each sample (0 for transient runs).
    stages : list of dict
        Per-stage summaries (name, forcing, equilibrium values,
        convergence flag).
    final : Snapshot
        Latitude profile at the end of the run.
    scenario_key : str, optional
        Scenario identifier.
    scenario_info : dict, optional
        Scenario metadata.
    model_params : dict
        Physical parameters at the start of the run.
    simulation_params : dict
        Integration and equilibrium settings.
    diagnostics : dict
        Pre-computed diagnostic quantities.
    """

    t: NDArray[np.float64]
    global_mean_temperature: NDArray[np.float64]
    global_mean_net_flux: NDArray[np.float64]
    ice_fraction: NDArray[np.float64]
    solar_multiplier: NDArray[np.float64]
    greenhouse_multiplier: NDArray[np.float64]
    stage_index: NDArray[np.int64]
    stages: List[Dict[str, Any]]
    final: Snapshot
    scenario_key: Optional[str] = None
    scenario_info: Optional[Dict[str, Any]] = None
    model_params: Dict[str, Any] = field(default_factory=dict)
    simulation_params: Dict[str, Any] = field(default_factory=dict)
    diagnostics: Dict[str, Any] = field(default_factory=dict)

    @property
    def climate_state(self) -> str:
        """Climate state at the end of the run."""
        return self.final.climate_state

    @property
    def states(self) -> NDArray[np.str_]:
        """Climate state classification of every sample."""
        return np.array([classify_climate_state(v) for v in self.global_mean_temperature])

    @property
    def converged(self) -> bool:
        """Whether every stage reached equilibrium."""
        return all(stage.get("converged", False) for stage in self.stages)

    @property
    def snowball(self) -> bool:
        """Whether the run ends fully glaciated."""
        return self.final.ice_fraction >= 1.0

    @property
    def final_temperature(self) -> float:
        return self.final.global_mean_temperature

    def summary(self) -> Dict[str, Any]:
        """Generate summary statistics."""
        info = self.scenario_info or {}
        return {
            "scenario": self.scenario_key,
            "name": info.get("name", "Custom"),
            "expected_outcome": info.get("expected_outcome", "N/A"),
            "n_stages": len(self.stages),
            "final_temperature": self.final_temperature,
            "final_net_flux": self.final.global_mean_net_flux,
            "final_ice_fraction": self.final.ice_fraction,
            "final_state": self.climate_state,
            "min_temperature": float(np.min(self.global_mean_temperature)),
            "max_temperature": float(np.max(self.global_mean_temperature)),
            "converged": self.converged,
            "snowball": self.snowball,
            "simulated_time": float(self.t[-1]) if len(self.t) else 0.0,
            "n_samples": len(self.t),
        }

    def get_state_transitions(self) -> List[Dict[str, Any]]:
        """
        Find all changes of climate state along the run.

        Returns
        -------
        List[Dict]
            Events with time, stage, previous and new state.
        """
        states = self.states
        events = []
        for idx in np.where(states[1:] != states[:-1])[0]:
            events.append({
                "time": float(self.t[idx + 1]),
                "stage": int(self.stage_index[idx + 1]),
                "from_state": str(states[idx]),
                "to_state": str(states[idx + 1]),
                "temperature": float(self.global_mean_temperature[idx + 1]),
            })
        return events

    def to_dataframe(self):
        """Time series as a pandas DataFrame."""
        import pandas as pd

        stage_names = [s.get("name", str(i)) for i, s in enumerate(self.stages)]
        return pd.DataFrame({
            "time": self.t,
            "stage": self.stage_index,
            "stage_name": [stage_names[i] if stage_names else "" for i in self.stage_index],
            "solar_multiplier": self.solar_multiplier,
            "greenhouse_multiplier": self.greenhouse_multiplier,
            "global_mean_temperature_C": self.global_mean_temperature,
            "global_mean_net_flux_Wm2": self.global_mean_net_flux,
            "ice_fraction": self.ice_fraction,
            "climate_state": self.states,
        })

    def to_csv(
        self,
        filepath: str | Path,
        include_header: bool = True,
        float_format: str = "%.6f",
    ) -> None:
        """
        Export the time series to CSV.

        Parameters
        ----------
        filepath : str or Path
            Output file path.
        include_header : bool, optional
            Include column header. Default is True.
        float_format : str, optional
            Float format string. Default is "%.6f".
        """
        from snowball.io.csv_writer import write_csv
        write_csv(self, filepath, include_header, float_format)

    def to_netcdf(
        self,
        filepath: str | Path,
        compression: bool = True,
        compression_level: int = 4,
    ) -> None:
        """
        Export time series and final profile to NetCDF.

        Parameters
        ----------
        filepath : str or Path
            Output file path.
        compression : bool, optional
            Enable compression. Default is True.
        compression_level : int, optional
            Compression level (1-9). Default is 4.
        """
        from snowball.io.netcdf_writer import write_netcdf
        write_netcdf(self, filepath, compression, compression_level)

    def __repr__(self) -> str:
        name = self.scenario_info.get("name", "Custom") if self.scenario_info else "Custom"
        return (
            f"SimulationResults(scenario='{name}', stages={len(self.stages)}, "
            f"final_T={self.final_temperature:.2f}, state={self.climate_state}, "
            f"converged={self.converged})"
        )
