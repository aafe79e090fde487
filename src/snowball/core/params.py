"""
Parameter set for the energy-balance model and the forcing controls.
"""

from typing import Dict, Any, Mapping
from dataclasses import dataclass, asdict, fields, replace


# Greenhouse control: W/m² removed from A per unit of multiplier above 1.
# Illustrative calibration, not a derived greenhouse-gas response curve.
GREENHOUSE_SCALE = 30.0


@dataclass
class EBMParams:
    """
    Physical parameters of the energy-balance model.

    Attributes
    ----------
    S0 : float
        Solar constant (W/m²).
    A : float
        OLR constant term (W/m²). Lowered to represent a stronger
        greenhouse effect.
    B : float
        OLR linear coefficient (W/m²/°C). Must be positive.
    D : float
        Meridional diffusivity (W/m²/°C). Must be positive.
    ice_albedo : float
        Albedo of ice-covered bands.
    ocean_albedo : float
        Albedo of ice-free bands.
    ice_threshold : float
        Temperature (°C) below which a band freezes.
    """

    S0: float = 1360.0
    A: float = 210.0
    B: float = 2.0
    D: float = 0.6
    ice_albedo: float = 0.62
    ocean_albedo: float = 0.3
    ice_threshold: float = -10.0

    def copy(self) -> "EBMParams":
        """Independent copy of the parameter set."""
        return replace(self)

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "EBMParams":
        """
        Build a parameter set from a mapping, ignoring unknown keys.

        Missing keys fall back to the defaults.
        """
        known = {f.name for f in fields(cls)}
        return cls(**{k: float(v) for k, v in values.items() if k in known})


DEFAULT_PARAMS = EBMParams()


def solar_constant(multiplier: float, base: float = DEFAULT_PARAMS.S0) -> float:
    """Solar constant for a solar-strength multiplier."""
    return base * multiplier


def greenhouse_forcing(multiplier: float) -> float:
    """
    Radiative forcing (W/m²) represented by a greenhouse multiplier.

    Positive values warm the planet. A multiplier of 1 is the reference
    atmosphere.
    """
    return (multiplier - 1.0) * GREENHOUSE_SCALE


def olr_constant(multiplier: float, base: float = DEFAULT_PARAMS.A) -> float:
    """OLR constant A for a greenhouse multiplier."""
    return base - greenhouse_forcing(multiplier)
