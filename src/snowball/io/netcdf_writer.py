"""NetCDF output writer (CF-style)."""

from typing import TYPE_CHECKING
from pathlib import Path
from datetime import datetime
import logging
import numpy as np

from snowball import __version__

if TYPE_CHECKING:
    from snowball.core.results import SimulationResults

logger = logging.getLogger(__name__)

_STATE_CODES = {"SNOWBALL": 0, "GLACIAL": 1, "HABITABLE": 2, "HOTHOUSE": 3}


def write_netcdf(
    results: "SimulationResults",
    filepath: str | Path,
    compression: bool = True,
    compression_level: int = 4,
) -> None:
    """
    Write simulation results to a NetCDF4 file.

    The file holds two groups of variables:
    - along ``time``: global means, ice fraction, forcing controls, stage
    - along ``lat``: the final latitude profile of every model field

    Parameters
    ----------
    results : SimulationResults
        Simulation results to export.
    filepath : str or Path
        Output file path.
    compression : bool, optional
        Enable zlib compression. Default is True.
    compression_level : int, optional
        Compression level (1-9). Default is 4.
    """
    import netCDF4 as nc

    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    logger.info(f"Writing NetCDF to: {filepath}")

    comp_kwargs = {}
    if compression:
        comp_kwargs = {"zlib": True, "complevel": compression_level}

    final = results.final
    info = results.scenario_info or {}

    with nc.Dataset(filepath, "w", format="NETCDF4") as ds:
        # Global attributes
        ds.title = "Latitudinal Energy-Balance Model Simulation"
        ds.institution = "snowball"
        ds.source = f"snowball energy-balance model v{__version__}"
        ds.history = f"Created {datetime.now().isoformat()} by snowball"
        ds.Conventions = "CF-1.8"

        ds.scenario = info.get("name", "Custom Forcing")
        ds.scenario_key = results.scenario_key or "custom"
        ds.scenario_description = info.get("description", "N/A")

        for key, value in results.model_params.items():
            ds.setncattr(f"model_{key}", float(value))

        ds.final_climate_state = results.climate_state
        ds.converged = int(results.converged)
        ds.stage_names = ",".join(s.get("name", "") for s in results.stages)

        # Dimensions
        n_time = len(results.t)
        n_lat = len(final.lat)
        ds.createDimension("time", n_time)
        ds.createDimension("lat", n_lat)

        # Time series
        time_var = ds.createVariable("time", "f8", ("time",), **comp_kwargs)
        time_var.units = "model_time_units"
        time_var.long_name = "Simulated time"
        time_var[:] = results.t

        tmean_var = ds.createVariable("global_mean_temperature", "f8", ("time",), **comp_kwargs)
        tmean_var.units = "degC"
        tmean_var.long_name = "Global-mean surface temperature"
        tmean_var[:] = results.global_mean_temperature

        flux_var = ds.createVariable("global_mean_net_flux", "f8", ("time",), **comp_kwargs)
        flux_var.units = "W m-2"
        flux_var.long_name = "Global-mean absorbed solar minus outgoing longwave radiation"
        flux_var[:] = results.global_mean_net_flux

        ice_var = ds.createVariable("ice_fraction", "f8", ("time",), **comp_kwargs)
        ice_var.units = "1"
        ice_var.long_name = "Ice-covered fraction of the globe"
        ice_var.valid_range = np.array([0.0, 1.0])
        ice_var[:] = results.ice_fraction

        solar_var = ds.createVariable("solar_multiplier", "f8", ("time",), **comp_kwargs)
        solar_var.units = "1"
        solar_var.long_name = "Solar constant relative to reference"
        solar_var[:] = results.solar_multiplier

        ghg_var = ds.createVariable("greenhouse_multiplier", "f8", ("time",), **comp_kwargs)
        ghg_var.units = "1"
        ghg_var.long_name = "Greenhouse control"
        ghg_var.comment = "A = A_ref - 30 * (greenhouse_multiplier - 1)"
        ghg_var[:] = results.greenhouse_multiplier

        stage_var = ds.createVariable("stage", "i4", ("time",), **comp_kwargs)
        stage_var.units = "1"
        stage_var.long_name = "Experiment stage index"
        stage_var[:] = results.stage_index.astype(np.int32)

        state_var = ds.createVariable("climate_state", "i2", ("time",), **comp_kwargs)
        state_var.units = "1"
        state_var.long_name = "Climate state classification"
        state_var.flag_values = np.array(list(_STATE_CODES.values()), dtype=np.int16)
        state_var.flag_meanings = " ".join(s.lower() for s in _STATE_CODES)
        state_var[:] = np.array([_STATE_CODES.get(s, -1) for s in results.states], dtype=np.int16)

        # Final latitude profile
        lat_var = ds.createVariable("lat", "f8", ("lat",), **comp_kwargs)
        lat_var.units = "degrees_north"
        lat_var.standard_name = "latitude"
        lat_var.long_name = "Band-centre latitude (uniform in sine of latitude)"
        lat_var[:] = final.lat

        profile = {
            "temperature": (final.T, "degC", "Final surface temperature"),
            "albedo": (final.albedo, "1", "Final surface albedo"),
            "insolation": (final.insol, "W m-2", "Annual-mean insolation"),
            "ASR": (final.ASR, "W m-2", "Absorbed solar radiation"),
            "OLR": (final.OLR, "W m-2", "Outgoing longwave radiation"),
            "transport": (final.transport, "W m-2", "Meridional heat-flux convergence"),
        }
        for name, (values, units, long_name) in profile.items():
            var = ds.createVariable(name, "f8", ("lat",), **comp_kwargs)
            var.units = units
            var.long_name = long_name
            var[:] = values

        ds["temperature"].ice_threshold = final.ice_threshold

    logger.info(f"NetCDF written: {n_time} time samples, {n_lat} latitude bands")
