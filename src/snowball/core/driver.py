"""
Frame-scheduled driver for interactive use of the energy-balance model.

A front end calls :meth:`SimulationDriver.tick` once per animation frame
and moves the solar and greenhouse controls through the setter methods.
The driver decides how much physics to run per frame, when the model has
settled, and how often to hand a snapshot to listeners.
"""

from typing import Callable, Optional, Dict, Any, List
import logging
import time

from snowball.core.engine import EnergyBalanceModel, MAX_SUBSTEPS
from snowball.core.params import EBMParams, DEFAULT_PARAMS, solar_constant, olr_constant
from snowball.core.results import Snapshot

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[Snapshot], None]


DEFAULT_DRIVER_SETTINGS: Dict[str, Any] = {
    "steps_per_tick": 2,
    "step_dt": 0.05,
    "max_generations": 2000,
    "equilibrium_flux_threshold": 1.0,
    "equilibrium_hold_seconds": 1.0,
    "snapshot_interval": 0.066,
}


class SimulationDriver:
    """
    Drives one engine from a cooperative frame loop.

    Each running tick advances the engine a fixed number of times, pauses
    the simulation once the global net flux has stayed under the
    equilibrium threshold for ``equilibrium_hold_seconds`` of wall-clock
    time, and emits at most one snapshot per ``snapshot_interval``.

    Parameters
    ----------
    n_bands : int, optional
        Latitude bands of the engine. Default is 90.
    params : EBMParams, optional
        Reference parameters; the controls scale ``S0`` and offset ``A``
        relative to these. Default is DEFAULT_PARAMS.
    clock : Callable, optional
        Returns the current time in seconds. Default is time.monotonic.
    max_substeps : int, optional
        Engine sub-step ceiling. Default is 10000.
    **settings
        Overrides for DEFAULT_DRIVER_SETTINGS.
    """

    def __init__(
        self,
        n_bands: int = 90,
        params: Optional[EBMParams] = None,
        clock: Callable[[], float] = time.monotonic,
        max_substeps: int = MAX_SUBSTEPS,
        **settings,
    ):
        unknown = set(settings) - set(DEFAULT_DRIVER_SETTINGS)
        if unknown:
            raise TypeError(f"Unknown driver settings: {sorted(unknown)}")

        self.settings = {**DEFAULT_DRIVER_SETTINGS, **settings}
        self.n_bands = n_bands
        self.base_params = (params or DEFAULT_PARAMS).copy()
        self.max_substeps = max_substeps
        self.clock = clock

        self._listeners: List[SnapshotListener] = []
        self.engine = self._new_engine()
        self.running = False
        self.generation = 0
        self.solar_multiplier = 1.0
        self.greenhouse_multiplier = 1.0
        self._equilibrium_since: Optional[float] = None
        self._last_snapshot_time = float("-inf")

    @classmethod
    def from_config(
        cls,
        config: Dict[str, Any],
        clock: Callable[[], float] = time.monotonic,
    ) -> "SimulationDriver":
        """Build a driver from a configuration dictionary."""
        from snowball.utils.config import params_from_config

        settings = {k: v for k, v in config["driver"].items() if k in DEFAULT_DRIVER_SETTINGS}
        return cls(
            n_bands=config["grid"]["n_bands"],
            params=params_from_config(config),
            clock=clock,
            max_substeps=config["integration"]["max_substeps"],
            **settings,
        )

    def _new_engine(self) -> EnergyBalanceModel:
        return EnergyBalanceModel(
            size=self.n_bands,
            params=self.base_params,
            max_substeps=self.max_substeps,
        )

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def subscribe(self, listener: SnapshotListener) -> None:
        """Register a callable that receives every emitted snapshot."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: SnapshotListener) -> None:
        self._listeners.remove(listener)

    def _emit(self) -> Snapshot:
        snapshot = self.engine.snapshot()
        for listener in self._listeners:
            listener(snapshot)
        return snapshot

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------

    def play(self) -> None:
        self.running = True

    def pause(self) -> None:
        self.running = False

    def toggle(self) -> None:
        self.running = not self.running

    def reset(self) -> None:
        """Replace the engine and return every control to its default."""
        self.engine = self._new_engine()
        self.solar_multiplier = 1.0
        self.greenhouse_multiplier = 1.0
        self.generation = 0
        self.running = False
        self._equilibrium_since = None
        self._last_snapshot_time = float("-inf")
        logger.info("Simulation reset")

    @property
    def in_equilibrium(self) -> bool:
        """Whether the global net flux is inside the equilibrium threshold."""
        return abs(self.engine.global_mean_net_flux()) < self.settings["equilibrium_flux_threshold"]

    def tick(self, now: Optional[float] = None) -> Optional[Snapshot]:
        """
        Run one animation frame.

        Parameters
        ----------
        now : float, optional
            Frame timestamp in seconds. Read from the clock when omitted.

        Returns
        -------
        Snapshot or None
            The snapshot emitted this frame, if any.
        """
        if not self.running:
            return None

        if now is None:
            now = self.clock()

        if self.generation >= self.settings["max_generations"]:
            logger.warning(
                f"Generation limit {self.settings['max_generations']} reached; resetting"
            )
            self.reset()
            return None

        for _ in range(self.settings["steps_per_tick"]):
            self.engine.advance(self.settings["step_dt"])

        if self.in_equilibrium:
            if self._equilibrium_since is None:
                self._equilibrium_since = now
            elif now - self._equilibrium_since > self.settings["equilibrium_hold_seconds"]:
                logger.info(
                    f"Equilibrium reached at t={self.engine.time:.2f} "
                    f"(T={self.engine.global_mean_temperature():.2f} °C); pausing"
                )
                self.running = False
                self._equilibrium_since = None
                return None
        else:
            self._equilibrium_since = None

        if now - self._last_snapshot_time > self.settings["snapshot_interval"]:
            self._last_snapshot_time = now
            self.generation += 1
            return self._emit()

        return None

    def run_frames(self, max_frames: int, frame_interval: float = 1.0 / 60.0) -> int:
        """
        Drive the loop headlessly on a synthetic frame clock.

        Starts playback and ticks until the driver pauses itself or the
        frame budget is used up.

        Parameters
        ----------
        max_frames : int
            Maximum number of frames to run.
        frame_interval : float
            Seconds between synthetic frames. Default 1/60.

        Returns
        -------
        int
            Number of frames run.
        """
        self.play()
        now = self.clock()
        frames = 0
        while self.running and frames < max_frames:
            self.tick(now)
            now += frame_interval
            frames += 1
        return frames

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    def set_solar_multiplier(self, multiplier: float) -> Optional[Snapshot]:
        """Set solar strength relative to the reference S0."""
        return self.set_forcing(multiplier, self.greenhouse_multiplier)

    def set_greenhouse_multiplier(self, multiplier: float) -> Optional[Snapshot]:
        """Set the greenhouse control (1 = reference atmosphere)."""
        return self.set_forcing(self.solar_multiplier, multiplier)

    def set_forcing(
        self,
        solar_multiplier: float,
        greenhouse_multiplier: float,
    ) -> Optional[Snapshot]:
        """
        Apply both controls to the engine.

        Insolation is recomputed only when S0 changes; the other
        diagnostics are always refreshed. The equilibrium timer restarts.
        While paused a fresh snapshot is emitted, and a simulation that
        has already produced frames resumes.

        Returns
        -------
        Snapshot or None
            The snapshot emitted while paused, if any.
        """
        engine = self.engine
        self.solar_multiplier = float(solar_multiplier)
        self.greenhouse_multiplier = float(greenhouse_multiplier)

        S0 = solar_constant(self.solar_multiplier, self.base_params.S0)
        if S0 != engine.params.S0:
            engine.params.S0 = S0
            engine.recompute_insolation()
        engine.params.A = olr_constant(self.greenhouse_multiplier, self.base_params.A)
        engine.refresh_diagnostics()

        self._equilibrium_since = None
        logger.debug(
            f"Forcing set: solar={self.solar_multiplier:.2f} (S0={engine.params.S0:.1f}), "
            f"greenhouse={self.greenhouse_multiplier:.2f} (A={engine.params.A:.1f})"
        )

        snapshot = None
        if not self.running:
            snapshot = self._emit()
            if self.generation > 0:
                self.running = True
        return snapshot

    def status(self) -> Dict[str, Any]:
        """Scalar state for a status panel."""
        engine = self.engine
        net_flux = engine.global_mean_net_flux()
        return {
            "generation": self.generation,
            "running": self.running,
            "time": engine.time,
            "solar_multiplier": self.solar_multiplier,
            "greenhouse_multiplier": self.greenhouse_multiplier,
            "global_mean_temperature": engine.global_mean_temperature(),
            "global_mean_net_flux": net_flux,
            "out_of_equilibrium": abs(net_flux) > self.settings["equilibrium_flux_threshold"],
            "climate_state": engine.climate_state(),
        }

    def __repr__(self) -> str:
        return (
            f"SimulationDriver(n_bands={self.n_bands}, running={self.running}, "
            f"generation={self.generation}, solar={self.solar_multiplier:.2f}, "
            f"greenhouse={self.greenhouse_multiplier:.2f})"
        )
