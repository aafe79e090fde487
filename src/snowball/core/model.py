"""
Experiment runner: equilibrium runs, staged scenarios, transient forcing
and hysteresis sweeps on top of the energy-balance engine.
"""

from typing import Callable, Optional, Dict, Any, List, Sequence, Tuple
import logging
import numpy as np
from numpy.typing import NDArray
from tqdm import tqdm

from snowball.core.engine import EnergyBalanceModel, MAX_SUBSTEPS
from snowball.core.params import EBMParams, DEFAULT_PARAMS, solar_constant, olr_constant
from snowball.core.physics import classify_climate_state
from snowball.core.results import SimulationResults
from snowball.scenarios import get_scenario
from snowball.utils.logging import start_step, end_step, log_error, log_calculation_issue


logger = logging.getLogger(__name__)

# (name, solar_multiplier, greenhouse_multiplier)
Stage = Tuple[str, float, float]

# Callable t -> (solar_multiplier, greenhouse_multiplier)
ForcingFunction = Callable[[float], Tuple[float, float]]


class ClimateModel:
    """
    Runs forcing experiments with the energy-balance model.

    Each experiment drives a single :class:`EnergyBalanceModel` through a
    sequence of forcings. State carries over from one stage to the next,
    which is what exposes hysteresis: the equilibrium reached depends on
    where the previous stage left the ice line.

    Parameters
    ----------
    n_bands : int, optional
        Number of latitude bands. Default is 90.
    params : EBMParams, optional
        Reference parameters. Solar and greenhouse multipliers act on
        ``params.S0`` and ``params.A``. Default is DEFAULT_PARAMS.
    max_substeps : int, optional
        Sub-step ceiling per engine advance. Default is 10000.
    flux_tolerance : float, optional
        |global mean net flux| (W/m²) below which the model counts as
        equilibrated. Default is 0.01.
    hold_time : float, optional
        Simulated time the flux must stay below tolerance. Default is 5.0.
    max_time : float, optional
        Simulated time budget per equilibrium run. Default is 400.0.
    step_dt : float, optional
        Simulated time per engine advance. Default is 0.05.
    record_interval : float, optional
        Simulated time between recorded samples. Default is 1.0.
    """

    def __init__(
        self,
        n_bands: int = 90,
        params: Optional[EBMParams] = None,
        max_substeps: int = MAX_SUBSTEPS,
        flux_tolerance: float = 0.01,
        hold_time: float = 5.0,
        max_time: float = 400.0,
        step_dt: float = 0.05,
        record_interval: float = 1.0,
    ):
        self.n_bands = n_bands
        self.base_params = (params or DEFAULT_PARAMS).copy()
        self.max_substeps = max_substeps
        self.settings = {
            "flux_tolerance": flux_tolerance,
            "hold_time": hold_time,
            "max_time": max_time,
            "step_dt": step_dt,
            "record_interval": record_interval,
        }
        self._validate_settings()
        logger.info(f"Initialized {self!r}")

    def _validate_settings(self) -> None:
        """Reject unusable settings and warn about atypical ones."""
        s = self.settings
        for key in ("flux_tolerance", "max_time", "step_dt", "record_interval"):
            if not s[key] > 0:
                raise ValueError(f"{key} must be positive, got {s[key]}")
        if s["hold_time"] < 0:
            raise ValueError(f"hold_time must be non-negative, got {s['hold_time']}")

        issues = []
        if s["flux_tolerance"] > 1.0:
            issues.append(f"flux_tolerance={s['flux_tolerance']} W/m² is loose")
        if s["hold_time"] >= s["max_time"]:
            issues.append(f"hold_time={s['hold_time']} >= max_time={s['max_time']}")
        if s["record_interval"] < s["step_dt"]:
            issues.append(
                f"record_interval={s['record_interval']} shorter than step_dt={s['step_dt']}"
            )

        if issues:
            log_calculation_issue(
                "Settings validation",
                "; ".join(issues),
                dict(s),
            )

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "ClimateModel":
        """Build a runner from a configuration dictionary."""
        from snowball.utils.config import params_from_config

        eq = config["equilibrium"]
        return cls(
            n_bands=config["grid"]["n_bands"],
            params=params_from_config(config),
            max_substeps=config["integration"]["max_substeps"],
            flux_tolerance=eq["flux_tolerance"],
            hold_time=eq["hold_time"],
            max_time=eq["max_time"],
            step_dt=config["integration"]["step_dt"],
            record_interval=eq["record_interval"],
        )

    def new_engine(self) -> EnergyBalanceModel:
        """Fresh engine with the reference parameters."""
        return EnergyBalanceModel(
            size=self.n_bands,
            params=self.base_params,
            max_substeps=self.max_substeps,
        )

    def apply_forcing(
        self,
        engine: EnergyBalanceModel,
        solar_multiplier: float,
        greenhouse_multiplier: float,
    ) -> None:
        """
        Set solar and greenhouse forcing on an engine.

        Insolation is only recomputed when S0 actually changes.
        """
        S0 = solar_constant(solar_multiplier, self.base_params.S0)
        if S0 != engine.params.S0:
            engine.params.S0 = S0
            engine.recompute_insolation()
        engine.params.A = olr_constant(greenhouse_multiplier, self.base_params.A)
        engine.refresh_diagnostics()

    def _chunk(self, engine: EnergyBalanceModel) -> float:
        """Advance interval that stays well inside the sub-step ceiling."""
        return min(
            self.settings["step_dt"],
            0.5 * engine.safe_time_step * engine.max_substeps,
        )

    def run_to_equilibrium(
        self,
        engine: EnergyBalanceModel,
        flux_tolerance: Optional[float] = None,
        hold_time: Optional[float] = None,
        max_time: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Advance an engine until it sits at radiative equilibrium.

        Equilibrium means |global mean net flux| stays below
        ``flux_tolerance`` for ``hold_time`` of simulated time.

        Parameters
        ----------
        engine : EnergyBalanceModel
            Engine to advance in place.
        flux_tolerance, hold_time, max_time : float, optional
            Override the runner settings.

        Returns
        -------
        dict
            ``converged``, ``elapsed`` simulated time, final
            ``temperature``, ``net_flux``, and the recorded samples
            ``t``, ``temperature_series``, ``net_flux_series``,
            ``ice_fraction_series``.
        """
        tol = flux_tolerance if flux_tolerance is not None else self.settings["flux_tolerance"]
        hold = hold_time if hold_time is not None else self.settings["hold_time"]
        budget = max_time if max_time is not None else self.settings["max_time"]
        record_interval = self.settings["record_interval"]
        chunk = self._chunk(engine)

        t_series: List[float] = [engine.time]
        T_series: List[float] = [engine.global_mean_temperature()]
        F_series: List[float] = [engine.global_mean_net_flux()]
        ice_series: List[float] = [engine.ice_fraction()]

        elapsed = 0.0
        since_record = 0.0
        equilibrium_since: Optional[float] = None
        converged = False

        while elapsed < budget:
            engine.advance(chunk)
            elapsed += chunk
            since_record += chunk

            net_flux = engine.global_mean_net_flux()
            if not np.isfinite(net_flux):
                log_calculation_issue(
                    "Non-finite net flux",
                    f"Equilibrium run stopped at t={engine.time:.2f}",
                    {"params": engine.params.to_dict()},
                )
                break

            if abs(net_flux) < tol:
                if equilibrium_since is None:
                    equilibrium_since = elapsed
                elif elapsed - equilibrium_since >= hold:
                    converged = True
            else:
                equilibrium_since = None

            if since_record >= record_interval or converged:
                t_series.append(engine.time)
                T_series.append(engine.global_mean_temperature())
                F_series.append(net_flux)
                ice_series.append(engine.ice_fraction())
                since_record = 0.0

            if converged:
                break

        if converged:
            logger.info(
                f"Equilibrium after {elapsed:.1f} time units: "
                f"T={engine.global_mean_temperature():.2f} °C, "
                f"net flux={engine.global_mean_net_flux():.4f} W/m²"
            )
        else:
            log_calculation_issue(
                "Equilibrium not reached",
                f"|net flux|={abs(engine.global_mean_net_flux()):.4f} W/m² "
                f"after {elapsed:.1f} time units",
                {"tolerance": tol, "hold_time": hold, "max_time": budget},
            )

        return {
            "converged": converged,
            "elapsed": elapsed,
            "temperature": engine.global_mean_temperature(),
            "net_flux": engine.global_mean_net_flux(),
            "ice_fraction": engine.ice_fraction(),
            "ice_edge_latitude": engine.ice_edge_latitude(),
            "t": np.asarray(t_series),
            "temperature_series": np.asarray(T_series),
            "net_flux_series": np.asarray(F_series),
            "ice_fraction_series": np.asarray(ice_series),
        }

    def run(
        self,
        scenario: Optional[str] = None,
        stages: Optional[Sequence[Stage]] = None,
        engine: Optional[EnergyBalanceModel] = None,
        show_progress: bool = True,
    ) -> SimulationResults:
        """
        Run a staged forcing experiment, each stage to equilibrium.

        Parameters
        ----------
        scenario : str, optional
            Built-in scenario key (see ``snowball.scenarios``).
        stages : sequence of (name, solar_multiplier, greenhouse_multiplier), optional
            Custom stages, used when no scenario is given.
        engine : EnergyBalanceModel, optional
            Engine to continue from. A fresh engine is built by default.
        show_progress : bool
            Show a progress bar over stages. Default True.

        Returns
        -------
        SimulationResults
            Time series across all stages plus per-stage summaries.
        """
        start_step("Setup experiment")
        try:
            scenario_info = None
            if scenario is not None:
                scenario_info = get_scenario(scenario)
                stages = scenario_info["stages"]
                logger.info(f"Using scenario: {scenario_info['name']}")
            elif stages is None:
                raise ValueError("Must provide either scenario or stages")

            stages = [(str(name), float(solar), float(ghg)) for name, solar, ghg in stages]
            if not stages:
                raise ValueError("At least one stage is required")

            if engine is None:
                engine = self.new_engine()
            model_params = engine.params.to_dict()
            end_step(success=True)
        except Exception as e:
            log_error(e, "Setup experiment")
            end_step(success=False)
            raise

        t_parts, T_parts, F_parts, ice_parts = [], [], [], []
        solar_parts, ghg_parts, stage_parts = [], [], []
        stage_summaries: List[Dict[str, Any]] = []

        for index, (name, solar, ghg) in enumerate(
            tqdm(stages, desc="Running stages", disable=not show_progress)
        ):
            start_step(f"Stage {index}: {name}")
            try:
                self.apply_forcing(engine, solar, ghg)
                logger.info(
                    f"Stage '{name}': solar={solar:.3f}, greenhouse={ghg:.3f} "
                    f"(S0={engine.params.S0:.1f}, A={engine.params.A:.1f})"
                )
                outcome = self.run_to_equilibrium(engine)

                n = len(outcome["t"])
                t_parts.append(outcome["t"])
                T_parts.append(outcome["temperature_series"])
                F_parts.append(outcome["net_flux_series"])
                ice_parts.append(outcome["ice_fraction_series"])
                solar_parts.append(np.full(n, solar))
                ghg_parts.append(np.full(n, ghg))
                stage_parts.append(np.full(n, index, dtype=np.int64))

                stage_summaries.append({
                    "name": name,
                    "solar_multiplier": solar,
                    "greenhouse_multiplier": ghg,
                    "S0": engine.params.S0,
                    "A": engine.params.A,
                    "converged": outcome["converged"],
                    "elapsed": outcome["elapsed"],
                    "equilibrium_temperature": outcome["temperature"],
                    "equilibrium_net_flux": outcome["net_flux"],
                    "ice_fraction": outcome["ice_fraction"],
                    "ice_edge_latitude": outcome["ice_edge_latitude"],
                    "climate_state": classify_climate_state(outcome["temperature"]),
                })
                end_step(success=True)
            except Exception as e:
                log_error(e, f"Stage {name}")
                end_step(success=False)
                raise

        results = self._build_results(
            engine,
            np.concatenate(t_parts),
            np.concatenate(T_parts),
            np.concatenate(F_parts),
            np.concatenate(ice_parts),
            np.concatenate(solar_parts),
            np.concatenate(ghg_parts),
            np.concatenate(stage_parts),
            stage_summaries,
            scenario_key=scenario,
            scenario_info=scenario_info,
            model_params=model_params,
            simulation_params={**self.settings, "n_bands": self.n_bands, "mode": "staged"},
        )
        logger.info(f"Experiment complete: {results!r}")
        return results

    def run_transient(
        self,
        forcing: ForcingFunction,
        t_end: float,
        engine: Optional[EnergyBalanceModel] = None,
        show_progress: bool = True,
    ) -> SimulationResults:
        """
        Run with time-dependent forcing.

        Parameters
        ----------
        forcing : Callable
            Function of elapsed simulated time returning
            (solar_multiplier, greenhouse_multiplier).
        t_end : float
            Simulated time to run.
        engine : EnergyBalanceModel, optional
            Engine to continue from. A fresh engine is built by default.
        show_progress : bool
            Show a progress bar. Default True.

        Returns
        -------
        SimulationResults
            Single-stage results sampled every ``record_interval``.
        """
        if not t_end > 0:
            raise ValueError(f"t_end must be positive, got {t_end}")

        start_step("Transient forcing run")
        try:
            if engine is None:
                engine = self.new_engine()
            model_params = engine.params.to_dict()
            chunk = self._chunk(engine)
            record_interval = self.settings["record_interval"]

            solar, ghg = forcing(0.0)
            self.apply_forcing(engine, solar, ghg)

            samples = [self._sample(engine, solar, ghg)]
            elapsed = 0.0
            since_record = 0.0
            n_chunks = int(np.ceil(t_end / chunk))

            for _ in tqdm(range(n_chunks), desc="Integrating", disable=not show_progress):
                dt = min(chunk, t_end - elapsed)
                if dt <= 0:
                    break
                solar, ghg = forcing(elapsed)
                self.apply_forcing(engine, solar, ghg)
                engine.advance(dt)
                elapsed += dt
                since_record += dt
                if since_record >= record_interval:
                    samples.append(self._sample(engine, solar, ghg))
                    since_record = 0.0

            if since_record > 0:
                samples.append(self._sample(engine, solar, ghg))

            data = np.array(samples)
            self._validate_series(data, "transient run")
            end_step(success=True)
        except Exception as e:
            log_error(e, "Transient forcing run")
            end_step(success=False)
            raise

        final_T = float(data[-1, 1])
        stage = {
            "name": "transient",
            "solar_multiplier": float(data[-1, 4]),
            "greenhouse_multiplier": float(data[-1, 5]),
            "S0": engine.params.S0,
            "A": engine.params.A,
            "converged": abs(engine.global_mean_net_flux()) < self.settings["flux_tolerance"],
            "elapsed": elapsed,
            "equilibrium_temperature": final_T,
            "equilibrium_net_flux": float(data[-1, 2]),
            "ice_fraction": float(data[-1, 3]),
            "ice_edge_latitude": engine.ice_edge_latitude(),
            "climate_state": classify_climate_state(final_T),
        }

        return self._build_results(
            engine,
            data[:, 0], data[:, 1], data[:, 2], data[:, 3], data[:, 4], data[:, 5],
            np.zeros(len(data), dtype=np.int64),
            [stage],
            scenario_key=None,
            scenario_info=None,
            model_params=model_params,
            simulation_params={
                **self.settings, "n_bands": self.n_bands, "mode": "transient", "t_end": t_end,
            },
        )

    @staticmethod
    def _sample(engine: EnergyBalanceModel, solar: float, ghg: float) -> List[float]:
        return [
            engine.time,
            engine.global_mean_temperature(),
            engine.global_mean_net_flux(),
            engine.ice_fraction(),
            solar,
            ghg,
        ]

    def _validate_series(self, data: NDArray, context: str) -> None:
        """Log non-finite or extreme values in recorded samples."""
        issues = []
        nan_count = int(np.sum(~np.isfinite(data)))
        if nan_count:
            issues.append(f"{nan_count} non-finite values")
        temps = data[:, 1]
        finite = temps[np.isfinite(temps)]
        if finite.size and np.max(np.abs(finite)) > 200:
            issues.append(f"extreme temperature {np.max(np.abs(finite)):.1f} °C")
        if issues:
            log_calculation_issue(
                f"Result validation ({context})",
                "; ".join(issues),
                {"n_samples": len(data)},
            )

    def _build_results(
        self,
        engine: EnergyBalanceModel,
        t, T, F, ice, solar, ghg, stage_index,
        stages: List[Dict[str, Any]],
        **metadata,
    ) -> SimulationResults:
        data = np.column_stack([t, T, F, ice, solar, ghg])
        self._validate_series(data, metadata.get("scenario_key") or "experiment")

        first_snowball = None
        frozen = np.where(ice >= 1.0)[0]
        if len(frozen):
            first_snowball = float(t[frozen[0]])

        diagnostics = {
            "min_temperature": float(np.min(T)),
            "max_temperature": float(np.max(T)),
            "final_temperature": float(T[-1]),
            "first_snowball_time": first_snowball,
            "total_substeps": engine.total_substeps,
        }

        return SimulationResults(
            t=t,
            global_mean_temperature=T,
            global_mean_net_flux=F,
            ice_fraction=ice,
            solar_multiplier=solar,
            greenhouse_multiplier=ghg,
            stage_index=stage_index,
            stages=stages,
            final=engine.snapshot(),
            diagnostics=diagnostics,
            **metadata,
        )

    def hysteresis_sweep(
        self,
        solar_range: Tuple[float, float] = (0.8, 1.2),
        n_samples: int = 9,
        greenhouse_multiplier: float = 1.0,
        show_progress: bool = True,
    ):
        """
        Map the equilibrium branches by ramping solar forcing up then down.

        Each step starts from the previous equilibrium, so the two
        branches differ wherever the model is bistable.

        Parameters
        ----------
        solar_range : tuple
            (min, max) solar multipliers.
        n_samples : int
            Number of multipliers per branch.
        greenhouse_multiplier : float
            Greenhouse control held fixed during the sweep.
        show_progress : bool
            Show a progress bar. Default True.

        Returns
        -------
        pandas.DataFrame
            One row per (branch, multiplier) with equilibrium temperature,
            net flux, ice fraction, state and convergence flag.
        """
        import pandas as pd

        if n_samples < 2:
            raise ValueError(f"n_samples must be at least 2, got {n_samples}")

        start_step("Hysteresis sweep")
        try:
            values = np.linspace(solar_range[0], solar_range[1], n_samples)
            plan = [("warming", s) for s in values] + [("cooling", s) for s in values[::-1]]

            engine = self.new_engine()
            rows = []
            for branch, solar in tqdm(plan, desc="Hysteresis sweep", disable=not show_progress):
                logger.debug(f"Sweep {branch} branch: solar={solar:.3f}")
                self.apply_forcing(engine, solar, greenhouse_multiplier)
                outcome = self.run_to_equilibrium(engine)
                rows.append({
                    "branch": branch,
                    "solar_multiplier": float(solar),
                    "greenhouse_multiplier": greenhouse_multiplier,
                    "temperature": outcome["temperature"],
                    "net_flux": outcome["net_flux"],
                    "ice_fraction": outcome["ice_fraction"],
                    "ice_edge_latitude": outcome["ice_edge_latitude"],
                    "climate_state": classify_climate_state(outcome["temperature"]),
                    "converged": outcome["converged"],
                })
            end_step(success=True)
        except Exception as e:
            log_error(e, "Hysteresis sweep")
            end_step(success=False)
            raise

        return pd.DataFrame(rows)

    def __repr__(self) -> str:
        return (
            f"ClimateModel(n_bands={self.n_bands}, S0={self.base_params.S0}, "
            f"A={self.base_params.A}, flux_tolerance={self.settings['flux_tolerance']}, "
            f"max_time={self.settings['max_time']})"
        )
