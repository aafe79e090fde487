"""
The energy-balance model engine: grid, state, diagnostics and integrator.
"""

from typing import Optional
import logging
import numpy as np
from numpy.typing import NDArray

from snowball.core.params import EBMParams, DEFAULT_PARAMS
from snowball.core.physics import (
    HEAT_CAPACITY,
    build_grid,
    grid_spacing,
    compute_insolation,
    compute_albedo,
    compute_olr,
    compute_transport,
    stability_time_step,
    initial_temperature,
    ice_fraction,
    ice_edge_latitude,
    classify_climate_state,
)
from snowball.core.results import Snapshot
from snowball.utils.logging import log_calculation_issue


logger = logging.getLogger(__name__)

# Hard ceiling on sub-steps per advance() call
MAX_SUBSTEPS = 10000

# Remaining time below which an advance() call is considered complete
_TIME_TOLERANCE = 1e-6


class EnergyBalanceModel:
    """
    One-dimensional latitudinal energy-balance model.

    The model owns a sine-latitude grid, the surface temperature field
    and the diagnostic fields derived from it. Temperature is advanced by
    forward Euler with sub-steps bounded by the diffusive stability limit.

    Parameters
    ----------
    size : int, optional
        Number of latitude bands. Default is 90.
    params : EBMParams, optional
        Physical parameters. Copied, so later changes to the caller's
        object do not reach the model. Default is DEFAULT_PARAMS.
    max_substeps : int, optional
        Sub-step ceiling per ``advance`` call. Default is 10000.

    Attributes
    ----------
    x, lat : NDArray
        Sine of latitude and latitude (degrees) at band centres.
    T : NDArray
        Surface temperature (°C).
    insol, albedo, ASR, OLR, transport : NDArray
        Diagnostic fields (W/m² except albedo).
    time : float
        Simulated time accumulated over all ``advance`` calls.
    params : EBMParams
        The model's own parameter set. After changing ``S0`` call
        ``recompute_insolation``; after changing anything else call
        ``refresh_diagnostics``.
    """

    def __init__(
        self,
        size: int = 90,
        params: EBMParams = DEFAULT_PARAMS,
        max_substeps: int = MAX_SUBSTEPS,
    ):
        if isinstance(size, bool) or not isinstance(size, (int, np.integer)):
            raise ValueError(f"Band count must be an integer, got {type(size).__name__}")
        if size <= 0:
            raise ValueError(f"Band count must be positive, got {size}")
        if max_substeps <= 0:
            raise ValueError(f"max_substeps must be positive, got {max_substeps}")

        self._size = int(size)
        self.params = params.copy()
        self.max_substeps = int(max_substeps)

        self.x, self.lat = build_grid(self._size)
        self.T = initial_temperature(self.x)

        self.insol = np.zeros(self._size)
        self.albedo = np.zeros(self._size)
        self.ASR = np.zeros(self._size)
        self.OLR = np.zeros(self._size)
        self.transport = np.zeros(self._size)
        self._flux = np.zeros(self._size + 1)

        self.time = 0.0
        self.last_substeps = 0
        self.last_integrated_time = 0.0
        self.total_substeps = 0

        self._validate_params()

        self.recompute_insolation()
        self.refresh_diagnostics()

        logger.debug(f"Initialized {self!r}")

    def _validate_params(self) -> None:
        """Warn about parameter combinations that degrade the model."""
        p = self.params
        issues = []

        if p.D <= 0:
            issues.append(f"Diffusivity D={p.D} is not positive")
        if p.B <= 0:
            issues.append(f"OLR slope B={p.B} is not positive; radiative restoring is lost")
        if p.ice_albedo <= p.ocean_albedo:
            issues.append(
                f"ice_albedo={p.ice_albedo} <= ocean_albedo={p.ocean_albedo}; "
                "no ice-albedo feedback"
            )
        for name in ("ice_albedo", "ocean_albedo"):
            value = getattr(p, name)
            if not 0 <= value <= 1:
                issues.append(f"{name}={value} outside [0, 1]")

        if issues:
            log_calculation_issue(
                "Parameter validation",
                "; ".join(issues),
                p.to_dict(),
            )

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def size(self) -> int:
        """Number of latitude bands."""
        return self._size

    @property
    def dx(self) -> float:
        return grid_spacing(self._size)

    @property
    def ice_threshold(self) -> float:
        """Freezing temperature (°C), for reference lines."""
        return self.params.ice_threshold

    @property
    def interface_flux(self) -> NDArray[np.float64]:
        """Copy of the N+1 interface fluxes from the last refresh."""
        return self._flux.copy()

    @property
    def safe_time_step(self) -> float:
        """Sub-step size used by ``advance`` for the current D."""
        return stability_time_step(self._size, self.params.D)

    @property
    def net_flux(self) -> NDArray[np.float64]:
        """Local radiative imbalance ASR - OLR (W/m²)."""
        return self.ASR - self.OLR

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def recompute_insolation(self) -> None:
        """Recompute insolation from the current S0."""
        compute_insolation(self.x, self.params.S0, out=self.insol)

    def refresh_diagnostics(self) -> None:
        """Recompute albedo, ASR, OLR and transport from the current T."""
        p = self.params
        compute_albedo(self.T, p.ice_threshold, p.ice_albedo, p.ocean_albedo, out=self.albedo)
        np.multiply(self.insol, 1.0 - self.albedo, out=self.ASR)
        compute_olr(self.T, p.A, p.B, out=self.OLR)
        compute_transport(self.T, p.D, flux=self._flux, out=self.transport)

    def global_mean_temperature(self) -> float:
        """Area-weighted global mean temperature (°C)."""
        # Bands are equal-area in sine-latitude
        return float(np.mean(self.T))

    def global_mean_net_flux(self) -> float:
        """Global mean of ASR - OLR (W/m²); zero at radiative equilibrium."""
        return float(np.mean(self.ASR - self.OLR))

    def ice_fraction(self) -> float:
        return ice_fraction(self.T, self.params.ice_threshold)

    def ice_edge_latitude(self) -> Optional[float]:
        return ice_edge_latitude(self.T, self.lat, self.params.ice_threshold)

    def climate_state(self) -> str:
        return classify_climate_state(self.global_mean_temperature())

    # ------------------------------------------------------------------
    # Integration
    # ------------------------------------------------------------------

    def advance(self, dt: float) -> None:
        """
        Advance the model by ``dt`` simulated time units.

        The interval is split into forward-Euler sub-steps no larger than
        ``safe_time_step``. Two guards end the call early without raising:

        - a non-finite temperature at the sentinel (middle) band discards
          the offending sub-step and keeps the last valid state;
        - reaching ``max_substeps`` sub-steps stops the loop.

        ``time`` advances by the full ``dt`` in every case.

        Parameters
        ----------
        dt : float
            Simulated time to advance. Must be positive.
        """
        if not dt > 0:
            raise ValueError(f"dt must be positive, got {dt}")

        safe_dt = self.safe_time_step
        sentinel = self._size // 2

        remaining = float(dt)
        integrated = 0.0
        substeps = 0

        while remaining > _TIME_TOLERANCE:
            if substeps >= self.max_substeps:
                log_calculation_issue(
                    "Runaway sub-stepping",
                    f"Sub-step ceiling {self.max_substeps} reached; "
                    f"skipping remaining {remaining:.4g} time units",
                    {"time": self.time, "safe_dt": safe_dt, "requested_dt": dt},
                )
                break

            dt_sub = min(remaining, safe_dt)

            self.refresh_diagnostics()

            tendency = (self.ASR - self.OLR + self.transport) / HEAT_CAPACITY
            T_new = self.T + tendency * dt_sub

            if not np.isfinite(T_new[sentinel]):
                log_calculation_issue(
                    "Non-finite temperature",
                    f"T[{sentinel}] became {T_new[sentinel]}; keeping last valid state",
                    {
                        "time": self.time,
                        "T_sentinel": float(self.T[sentinel]),
                        "albedo_sentinel": float(self.albedo[sentinel]),
                        "ASR_sentinel": float(self.ASR[sentinel]),
                        "OLR_sentinel": float(self.OLR[sentinel]),
                    },
                    level=logging.ERROR,
                )
                break

            self.T[:] = T_new

            remaining -= dt_sub
            integrated += dt_sub
            substeps += 1

        self.refresh_diagnostics()

        self.time += dt
        self.last_substeps = substeps
        self.last_integrated_time = integrated
        self.total_substeps += substeps

        logger.debug(
            f"t={self.time:.2f} mean T={self.global_mean_temperature():.2f} "
            f"substeps={substeps}"
        )

    def snapshot(self) -> Snapshot:
        """Copy of the current fields for an external consumer."""
        return Snapshot(
            time=self.time,
            lat=self.lat.copy(),
            T=self.T.copy(),
            albedo=self.albedo.copy(),
            insol=self.insol.copy(),
            ASR=self.ASR.copy(),
            OLR=self.OLR.copy(),
            transport=self.transport.copy(),
            ice_threshold=self.ice_threshold,
            global_mean_temperature=self.global_mean_temperature(),
            global_mean_net_flux=self.global_mean_net_flux(),
            ice_fraction=self.ice_fraction(),
            climate_state=self.climate_state(),
        )

    def __repr__(self) -> str:
        p = self.params
        return (
            f"EnergyBalanceModel(size={self._size}, S0={p.S0}, A={p.A}, B={p.B}, "
            f"D={p.D}, time={self.time:.2f})"
        )
