"""
Numerical building blocks for the latitudinal energy-balance model.

Physical Model:
    C dT/dt = Q(x)(1 - α(T)) - (A + B T) + d/dx[D (1 - x²) dT/dx]

Where x = sin(latitude), Q(x) is the annual-mean insolation, α(T) is a
step-function albedo (ice below the threshold temperature, open ocean
above it) and C is a fixed heat capacity that sets the relaxation pace.

All functions here are pure: they take numpy arrays and parameters and
either return new arrays or fill caller-provided buffers.
"""

from typing import Optional, Tuple
import numpy as np
from numpy.typing import NDArray


# Second Legendre coefficient of the annual-mean insolation for Earth
S2_COEFFICIENT = -0.482

# Heat capacity controlling response inertia (visualization pacing constant)
HEAT_CAPACITY = 10.0

# Regularizes the stability limit when D -> 0
STABILITY_EPSILON = 0.001

# Fraction of the diffusive stability limit used as the sub-step size
STABILITY_SAFETY = 0.8

# Upper bounds (°C) of global-mean temperature for each climate state
CLIMATE_STATES = (
    ("SNOWBALL", -20.0),
    ("GLACIAL", 10.0),
    ("HABITABLE", 25.0),
    ("HOTHOUSE", np.inf),
)


def build_grid(n_bands: int) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    """
    Build the sine-latitude grid at band centres.

    Parameters
    ----------
    n_bands : int
        Number of latitude bands.

    Returns
    -------
    Tuple[NDArray, NDArray]
        (x, lat) where x = sin(latitude) and lat is in degrees.
    """
    x = -1.0 + 2.0 * (np.arange(n_bands) + 0.5) / n_bands
    lat = np.arcsin(x) * 180.0 / np.pi
    return x, lat


def grid_spacing(n_bands: int) -> float:
    """Uniform spacing in sine-latitude."""
    return 2.0 / n_bands


def legendre_p2(x: NDArray) -> NDArray:
    """Second Legendre polynomial P2(x) = (3x² - 1) / 2."""
    return 0.5 * (3.0 * x**2 - 1.0)


def compute_insolation(
    x: NDArray[np.float64],
    S0: float,
    out: Optional[NDArray[np.float64]] = None,
) -> NDArray[np.float64]:
    """
    Annual-mean insolation from the two-term Legendre expansion.

        Q(x) = S0/4 * (1 + s2 P2(x)),  s2 = -0.482

    Parameters
    ----------
    x : NDArray
        Sine of latitude at band centres.
    S0 : float
        Solar constant (W/m²).
    out : NDArray, optional
        Buffer to fill in place.

    Returns
    -------
    NDArray
        Insolation per band (W/m²).
    """
    values = (S0 / 4.0) * (1.0 + S2_COEFFICIENT * legendre_p2(x))
    if out is None:
        return values
    out[:] = values
    return out


def compute_albedo(
    T: NDArray[np.float64],
    ice_threshold: float,
    ice_albedo: float,
    ocean_albedo: float,
    out: Optional[NDArray[np.float64]] = None,
) -> NDArray[np.float64]:
    """
    Step-function surface albedo.

    Bands colder than ``ice_threshold`` are ice covered. There is no ramp
    between the two values: the sharp ice edge is what makes the model
    bistable.
    """
    values = np.where(T < ice_threshold, ice_albedo, ocean_albedo)
    if out is None:
        return values
    out[:] = values
    return out


def compute_olr(
    T: NDArray[np.float64],
    A: float,
    B: float,
    out: Optional[NDArray[np.float64]] = None,
) -> NDArray[np.float64]:
    """Linearized outgoing longwave radiation A + B T (W/m²)."""
    values = A + B * T
    if out is None:
        return values
    out[:] = values
    return out


def compute_transport(
    T: NDArray[np.float64],
    D: float,
    flux: Optional[NDArray[np.float64]] = None,
    out: Optional[NDArray[np.float64]] = None,
) -> NDArray[np.float64]:
    """
    Diffusive heat-flux convergence on the sine-latitude grid.

    Flux-form discretization of d/dx[D (1 - x²) dT/dx]:

        flux[i] = -D (1 - x_i²) (T[i] - T[i-1]) / dx,   i = 1 .. N-1
        flux[0] = flux[N] = 0
        transport[i] = -(flux[i+1] - flux[i]) / dx

    where x_i = -1 + i dx is the interface between bands i-1 and i.

    Parameters
    ----------
    T : NDArray
        Temperature per band (°C).
    D : float
        Diffusivity (W/m²/°C).
    flux : NDArray, optional
        Interface flux buffer of length N+1, overwritten in place.
    out : NDArray, optional
        Buffer of length N for the convergence.

    Returns
    -------
    NDArray
        Heat-flux convergence per band (W/m²).

    Notes
    -----
    The polar interfaces carry no flux, so the convergence sums to zero
    over the globe: transport only redistributes heat.
    """
    n = len(T)
    dx = grid_spacing(n)

    if flux is None:
        flux = np.empty(n + 1)

    x_interface = -1.0 + np.arange(1, n) * dx
    flux[1:n] = -D * (1.0 - x_interface**2) * np.diff(T) / dx
    flux[0] = 0.0
    flux[n] = 0.0

    values = -np.diff(flux) / dx
    if out is None:
        return values
    out[:] = values
    return out


def stability_time_step(n_bands: int, D: float) -> float:
    """
    Largest explicit sub-step allowed by the diffusive stability bound.

    Returns ``0.8 * dx² / (2 D + ε)``.
    """
    dx = grid_spacing(n_bands)
    stability_limit = dx * dx / (2.0 * D + STABILITY_EPSILON)
    return stability_limit * STABILITY_SAFETY


def initial_temperature(x: NDArray[np.float64]) -> NDArray[np.float64]:
    """Warm equator-to-pole starting profile 15 + 20 (1 - 2x²)."""
    return 15.0 + 20.0 * (1.0 - 2.0 * x**2)


def ice_fraction(T: NDArray[np.float64], ice_threshold: float) -> float:
    """Fraction of the globe (equal-area bands) that is ice covered."""
    return float(np.mean(T < ice_threshold))


def ice_edge_latitude(
    T: NDArray[np.float64],
    lat: NDArray[np.float64],
    ice_threshold: float,
) -> Optional[float]:
    """
    Latitude of the equatorward-most ice-covered band.

    Returns the smallest absolute latitude (degrees) among frozen bands,
    or None for an ice-free planet.
    """
    frozen = T < ice_threshold
    if not np.any(frozen):
        return None
    return float(np.min(np.abs(lat[frozen])))


def classify_climate_state(global_mean_temperature: float) -> str:
    """
    Classify a global-mean temperature into a named climate state.

    Parameters
    ----------
    global_mean_temperature : float
        Global-mean surface temperature (°C).

    Returns
    -------
    str
        One of "SNOWBALL", "GLACIAL", "HABITABLE", "HOTHOUSE".
    """
    for label, upper in CLIMATE_STATES:
        if global_mean_temperature < upper:
            return label
    # NaN compares False against every bound
    return "UNDEFINED"
