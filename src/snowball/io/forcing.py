"""
Loading and interpolation of time-dependent forcing schedules.

A schedule lists, against simulated time, the solar-strength multiplier
and the greenhouse multiplier the model should see.
"""

from typing import Tuple, Callable, Dict, Optional
from pathlib import Path
import logging
import numpy as np
from numpy.typing import NDArray

logger = logging.getLogger(__name__)

_TIME_NAMES = ("time", "t", "sim_time")
_SOLAR_NAMES = ("solar_multiplier", "solar", "s0_multiplier", "sun")
_GREENHOUSE_NAMES = ("greenhouse_multiplier", "greenhouse", "co2", "ghg")


def _resolve_columns(df, candidates_by_label) -> Dict[str, Optional[int]]:
    """
    Map each label to a column index.

    Columns are matched by name first. Labels left unmatched take the
    remaining columns in file order, so no column is used twice.
    """
    lowered = {str(col).strip().lower(): i for i, col in enumerate(df.columns)}
    resolved: Dict[str, Optional[int]] = {}
    for label, candidates in candidates_by_label.items():
        resolved[label] = None
        for name in candidates:
            if name in lowered and lowered[name] not in resolved.values():
                resolved[label] = lowered[name]
                logger.debug(f"Found {label} column: {df.columns[lowered[name]]}")
                break

    unused = [i for i in range(len(df.columns)) if i not in resolved.values()]
    for label in candidates_by_label:
        if resolved[label] is None and unused:
            resolved[label] = unused.pop(0)
            logger.warning(f"Could not find {label} column, using column {resolved[label]}")

    return resolved


def load_forcing_csv(
    filepath: str | Path,
    delimiter: str = ",",
) -> Tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """
    Load a forcing schedule from CSV.

    Expected columns: time, solar_multiplier, greenhouse_multiplier.
    The greenhouse column is optional and defaults to 1.0.

    Parameters
    ----------
    filepath : str or Path
        Path to CSV file.
    delimiter : str, optional
        Column delimiter. Default is ",".

    Returns
    -------
    Tuple[NDArray, NDArray, NDArray]
        (times, solar_multipliers, greenhouse_multipliers), sorted by time.

    Examples
    --------
    >>> times, solar, ghg = load_forcing_csv("ramp.csv")
    >>> forcing = create_forcing_function(times, solar, ghg)
    >>> model.run_transient(forcing, t_end=times[-1])
    """
    import pandas as pd

    filepath = Path(filepath)
    logger.info(f"Loading forcing schedule from CSV: {filepath}")

    if not filepath.exists():
        raise FileNotFoundError(f"Forcing file not found: {filepath}")

    df = pd.read_csv(filepath, delimiter=delimiter, comment="#")
    if len(df) == 0:
        raise ValueError(f"Forcing file is empty: {filepath}")

    columns = _resolve_columns(df, {
        "time": _TIME_NAMES,
        "solar": _SOLAR_NAMES,
        "greenhouse": _GREENHOUSE_NAMES,
    })
    if columns["time"] is None or columns["solar"] is None:
        raise ValueError(f"Forcing file needs at least time and solar columns: {filepath}")

    times = df.iloc[:, columns["time"]].to_numpy()
    solar = df.iloc[:, columns["solar"]].to_numpy()
    if columns["greenhouse"] is None:
        greenhouse = np.ones(len(df))
    else:
        greenhouse = df.iloc[:, columns["greenhouse"]].to_numpy()

    order = np.argsort(times, kind="stable")
    times = np.asarray(times, dtype=np.float64)[order]
    solar = np.asarray(solar, dtype=np.float64)[order]
    greenhouse = np.asarray(greenhouse, dtype=np.float64)[order]

    logger.info(f"Loaded {len(times)} forcing points")
    logger.debug(f"Time range: {times[0]:.2f} - {times[-1]:.2f}")
    logger.debug(f"Solar range: {solar.min():.3f} - {solar.max():.3f}")

    return times, solar, greenhouse


def create_forcing_function(
    times: NDArray[np.float64],
    solar: NDArray[np.float64],
    greenhouse: NDArray[np.float64],
    kind: str = "linear",
) -> Callable[[float], Tuple[float, float]]:
    """
    Create an interpolating forcing function from a schedule.

    Values are held constant outside the scheduled time range.

    Parameters
    ----------
    times : NDArray
        Simulated times.
    solar : NDArray
        Solar multipliers.
    greenhouse : NDArray
        Greenhouse multipliers.
    kind : str, optional
        Interpolation method. Default is "linear".

    Returns
    -------
    Callable
        Function f(t) -> (solar_multiplier, greenhouse_multiplier).
    """
    times = np.asarray(times, dtype=np.float64)
    values = np.vstack([solar, greenhouse]).astype(np.float64)

    if len(times) == 1:
        constant = (float(values[0, 0]), float(values[1, 0]))
        return lambda t: constant

    from scipy.interpolate import interp1d

    interpolator = interp1d(
        times, values,
        kind=kind,
        axis=1,
        bounds_error=False,
        fill_value=(values[:, 0], values[:, -1]),
    )

    def forcing_func(t: float) -> Tuple[float, float]:
        s, g = interpolator(t)
        return float(s), float(g)

    return forcing_func
