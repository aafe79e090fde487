"""CSV output writers."""

from typing import TYPE_CHECKING
from pathlib import Path
import logging

if TYPE_CHECKING:
    from snowball.core.results import SimulationResults

logger = logging.getLogger(__name__)


def write_csv(
    results: "SimulationResults",
    filepath: str | Path,
    include_header: bool = True,
    float_format: str = "%.6f",
) -> None:
    """
    Write the experiment time series to a CSV file.

    Parameters
    ----------
    results : SimulationResults
        Simulation results to export.
    filepath : str or Path
        Output file path.
    include_header : bool, optional
        Include column header. Default is True.
    float_format : str, optional
        Float format string. Default is "%.6f".
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    logger.info(f"Writing CSV to: {filepath}")

    df = results.to_dataframe()
    df.to_csv(filepath, index=False, header=include_header, float_format=float_format)

    logger.info(f"CSV written: {len(df)} rows, t={df['time'].iloc[0]:.1f}-{df['time'].iloc[-1]:.1f}")


def write_profile_csv(
    results: "SimulationResults",
    filepath: str | Path,
    float_format: str = "%.6f",
) -> None:
    """
    Write the final latitude profile to a CSV file.

    Parameters
    ----------
    results : SimulationResults
        Simulation results whose final snapshot is exported.
    filepath : str or Path
        Output file path.
    float_format : str, optional
        Float format string. Default is "%.6f".
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    logger.info(f"Writing profile CSV to: {filepath}")

    df = results.final.to_dataframe()
    df.to_csv(filepath, index=False, float_format=float_format)

    logger.info(f"Profile CSV written: {len(df)} bands")
