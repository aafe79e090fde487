"""
Command-line interface for snowball.

Usage:
    snowball run --scenario hysteresis
    snowball run --all-scenarios --outputs csv
    snowball run --forcing ./schedule.csv --t-end 200
    snowball list
    snowball info hysteresis
    snowball sweep --solar-min 0.85 --solar-max 1.15 --n-samples 7
    snowball live --solar 0.9
"""

import sys
import traceback
from pathlib import Path
import click

from snowball import __version__, ClimateModel, SimulationDriver, SCENARIOS, get_scenario
from snowball.io.csv_writer import write_profile_csv
from snowball.io.forcing import load_forcing_csv, create_forcing_function
from snowball.utils.logging import (
    setup_logging,
    start_step,
    end_step,
    log_error,
    get_step_timer,
)
from snowball.utils.config import load_config


def _print_timing() -> None:
    timer = get_step_timer()
    if timer:
        click.echo(timer.get_summary())


@click.group()
@click.version_option(version=__version__, prog_name="snowball")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--debug", is_flag=True, help="Enable debug output")
@click.option("--config", type=click.Path(), help="Config file path")
@click.pass_context
def main(ctx, verbose, debug, config):
    """
    snowball - Latitudinal Energy-Balance Model

    Explore the ice-albedo feedback: dim the Sun or weaken the greenhouse
    effect, watch the ice line advance, and find out whether restoring
    the forcing brings the planet back.
    """
    ctx.ensure_object(dict)
    ctx.obj["config"] = load_config(config)
    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug


def _log_level(ctx) -> str:
    if ctx.obj.get("debug"):
        return "DEBUG"
    if ctx.obj.get("verbose"):
        return "INFO"
    return ctx.obj["config"]["logging"]["level"]


@main.command("run")
@click.option(
    "--scenario", "-s",
    type=click.Choice(list(SCENARIOS)),
    help="Built-in scenario to run",
)
@click.option(
    "--all-scenarios", "-a",
    is_flag=True,
    help="Run all built-in scenarios",
)
@click.option(
    "--forcing", "-f",
    type=click.Path(exists=True),
    help="Forcing schedule CSV (time, solar_multiplier, greenhouse_multiplier)",
)
@click.option(
    "--t-end",
    type=float,
    default=None,
    help="Simulated time for --forcing runs (default: last schedule time)",
)
@click.option(
    "--n-bands", "-n",
    type=int,
    default=None,
    help="Number of latitude bands (default: from config)",
)
@click.option(
    "--output-dir", "-o",
    type=click.Path(),
    default=None,
    help="Output directory (default: from config)",
)
@click.option(
    "--outputs",
    type=click.Choice(["csv", "netcdf"]),
    multiple=True,
    default=None,
    help="Output formats (default: from config)",
)
@click.option(
    "--log-dir",
    type=click.Path(),
    default=None,
    help="Log directory (default: from config)",
)
@click.option(
    "--experiment-name", "-e",
    type=str,
    default=None,
    help="Experiment name for log file",
)
@click.pass_context
def run(ctx, scenario, all_scenarios, forcing, t_end, n_bands, output_dir, outputs,
        log_dir, experiment_name):
    """Run forcing experiments and export the results."""
    config = ctx.obj["config"]

    output_dir = Path(output_dir or config["outputs"]["base_dir"])
    outputs = list(outputs) if outputs else list(config["outputs"]["formats"])
    log_dir = log_dir or config["logging"]["log_dir"]
    if n_bands is not None:
        config["grid"]["n_bands"] = n_bands
    forcing = forcing or config.get("forcing_file")

    if all_scenarios:
        runs = list(SCENARIOS)
    elif scenario:
        runs = [scenario]
    elif forcing:
        runs = ["custom"]
    else:
        runs = [config["scenarios"]["default"]]

    if experiment_name is None:
        if all_scenarios:
            experiment_name = "all_scenarios"
        elif runs == ["custom"]:
            experiment_name = Path(forcing).stem
        else:
            experiment_name = runs[0]

    logger = setup_logging(
        level=_log_level(ctx),
        log_dir=log_dir,
        experiment_name=experiment_name,
        format_style=config["logging"]["format_style"],
        always_save=True,
        include_timestamp=False,
    )

    try:
        start_step("Initialize model")
        model = ClimateModel.from_config(config)
        p = model.base_params

        click.echo(f"\n{'═' * 60}")
        click.echo("  Model Parameters:")
        click.echo(f"{'─' * 60}")
        click.echo(f"  Latitude bands  = {model.n_bands}")
        click.echo(f"  Solar constant  = {p.S0} W/m²")
        click.echo(f"  OLR             = {p.A} + {p.B} T W/m²")
        click.echo(f"  Diffusivity D   = {p.D} W/m²/°C")
        click.echo(f"  Albedo          = {p.ice_albedo} (ice) / {p.ocean_albedo} (ocean)")
        click.echo(f"  Ice threshold   = {p.ice_threshold} °C")
        click.echo(f"{'═' * 60}")
        end_step(success=True)

        logger.info(f"Runs: {runs}")
        failures = 0

        for key in runs:
            start_step(f"Experiment: {key}")
            try:
                click.echo(f"\n{'─' * 60}")
                if key == "custom":
                    click.echo(f"  Processing: forcing schedule {forcing}")
                    times, solar, ghg = load_forcing_csv(forcing)
                    duration = t_end if t_end is not None else float(times[-1])
                    results = model.run_transient(
                        create_forcing_function(times, solar, ghg),
                        t_end=duration,
                    )
                    base_name = Path(forcing).stem
                else:
                    info = get_scenario(key)
                    click.echo(f"  Processing: {info['name']}")
                    click.echo(f"  {info['subtitle']}")
                    click.echo(f"  Expected: {info['expected_outcome']}")
                    results = model.run(scenario=key)
                    base_name = key
                click.echo("─" * 60)

                if "csv" in outputs:
                    csv_path = output_dir / "csv" / f"{base_name}_timeseries.csv"
                    profile_path = output_dir / "csv" / f"{base_name}_profile.csv"
                    results.to_csv(csv_path)
                    write_profile_csv(results, profile_path)
                    click.echo(f"    ✓ CSV: {csv_path}")
                    click.echo(f"    ✓ CSV: {profile_path}")

                if "netcdf" in outputs:
                    nc_path = output_dir / "netcdf" / f"{base_name}.nc"
                    results.to_netcdf(nc_path)
                    click.echo(f"    ✓ NetCDF: {nc_path}")

                click.echo("\n  Stages:")
                for stage in results.stages:
                    flag = "" if stage["converged"] else "  (not converged)"
                    click.echo(
                        f"    {stage['name']:<20} solar={stage['solar_multiplier']:.2f} "
                        f"greenhouse={stage['greenhouse_multiplier']:.2f} "
                        f"T={stage['equilibrium_temperature']:7.2f} °C "
                        f"ice={stage['ice_fraction']:.2f} {stage['climate_state']}{flag}"
                    )

                summary = results.summary()
                click.echo(f"\n  Final state: {summary['final_state']} "
                           f"({summary['final_temperature']:.2f} °C)")
                end_step(success=True)

            except Exception as e:
                failures += 1
                log_error(e, f"Experiment {key}")
                end_step(success=False)
                click.echo(f"\n  ✗ ERROR in experiment {key}: {e}", err=True)
                continue

        click.echo(f"\n{'═' * 60}")
        if failures:
            click.echo(f"  FINISHED with {failures} failed experiment(s)")
        else:
            click.echo("  COMPLETE - All outputs generated successfully!")
        click.echo(f"{'═' * 60}")
        click.echo(f"\nOutput Directory: {output_dir}")
        click.echo(f"Log Directory: {log_dir}")
        _print_timing()

        if failures:
            sys.exit(1)

    except Exception as e:
        log_error(e, "Main execution")
        click.echo(f"\nFATAL ERROR: {e}", err=True)
        click.echo(f"Check log file in: {log_dir}", err=True)
        click.echo(traceback.format_exc(), err=True)
        sys.exit(1)


@main.command("list")
def list_command():
    """List available scenarios."""
    click.echo("\nAvailable Scenarios:")
    click.echo("─" * 70)

    for key, info in SCENARIOS.items():
        click.echo(f"\n  {key}:")
        click.echo(f"    Name: {info['name']}")
        click.echo(f"    Subtitle: {info['subtitle']}")
        click.echo(f"    Expected Outcome: {info['expected_outcome']}")
        click.echo(f"    Stages: {len(info['stages'])}")

    click.echo("\n" + "─" * 70)
    click.echo()


@main.command("info")
@click.argument("scenario")
def info(scenario):
    """Show detailed information about a scenario."""
    try:
        scenario_info = get_scenario(scenario)
    except KeyError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"\n{scenario_info['name']}")
    click.echo("=" * 60)
    click.echo(f"Subtitle: {scenario_info['subtitle']}")
    click.echo(f"Expected Outcome: {scenario_info['expected_outcome']}")
    click.echo(f"Description: {scenario_info['description']}")
    click.echo("\nStages (solar, greenhouse):")
    for name, solar, ghg in scenario_info["stages"]:
        click.echo(f"  {name:<20} {solar:.2f}  {ghg:.2f}")
    click.echo()


@main.command("sweep")
@click.option("--solar-min", type=float, default=0.85, help="Minimum solar multiplier")
@click.option("--solar-max", type=float, default=1.15, help="Maximum solar multiplier")
@click.option("--n-samples", type=int, default=7, help="Multipliers per branch")
@click.option("--greenhouse", type=float, default=1.0, help="Greenhouse multiplier")
@click.option(
    "--output-dir", "-o",
    type=click.Path(),
    default="./sweep",
    help="Output directory",
)
@click.option(
    "--log-dir",
    type=click.Path(),
    default=None,
    help="Log directory (default: from config)",
)
@click.pass_context
def sweep(ctx, solar_min, solar_max, n_samples, greenhouse, output_dir, log_dir):
    """Map equilibrium branches by ramping solar forcing up and down."""
    config = ctx.obj["config"]
    log_dir = log_dir or config["logging"]["log_dir"]

    setup_logging(
        level=_log_level(ctx),
        log_dir=log_dir,
        experiment_name="hysteresis_sweep",
        format_style=config["logging"]["format_style"],
        always_save=True,
        include_timestamp=False,
    )

    try:
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        model = ClimateModel.from_config(config)

        click.echo(f"\nHysteresis sweep: solar {solar_min} to {solar_max}, "
                   f"{n_samples} samples per branch, greenhouse={greenhouse}")
        click.echo("─" * 50)

        df = model.hysteresis_sweep(
            solar_range=(solar_min, solar_max),
            n_samples=n_samples,
            greenhouse_multiplier=greenhouse,
        )

        csv_path = output_dir / "hysteresis_sweep.csv"
        df.to_csv(csv_path, index=False)
        click.echo(f"\nResults saved to: {csv_path}")

        click.echo("\nResults:")
        click.echo(df[["branch", "solar_multiplier", "temperature",
                       "ice_fraction", "climate_state"]].to_string(index=False))

        warm = df[df["branch"] == "warming"].set_index("solar_multiplier")["climate_state"]
        cool = df[df["branch"] == "cooling"].set_index("solar_multiplier")["climate_state"]
        bistable = [s for s in warm.index if warm[s] != cool.get(s)]
        if bistable:
            click.echo(f"\nBistable range: solar multiplier {min(bistable):.3f} to {max(bistable):.3f}")
        else:
            click.echo("\nNo bistable range found in the sampled interval")

        _print_timing()
        click.echo()

    except Exception as e:
        log_error(e, "Hysteresis sweep")
        click.echo(f"\nFATAL ERROR: {e}", err=True)
        click.echo(f"Check log file in: {log_dir}", err=True)
        click.echo(traceback.format_exc(), err=True)
        sys.exit(1)


@main.command("live")
@click.option("--solar", type=float, default=1.0, help="Solar multiplier")
@click.option("--greenhouse", type=float, default=1.0, help="Greenhouse multiplier")
@click.option("--max-frames", type=int, default=20000, help="Frame budget")
@click.option("--every", type=int, default=25, help="Print every N-th snapshot")
@click.pass_context
def live(ctx, solar, greenhouse, max_frames, every):
    """Drive the interactive loop headlessly until the model settles."""
    config = ctx.obj["config"]
    setup_logging(level=_log_level(ctx), format_style="simple")

    driver = SimulationDriver.from_config(config)
    driver.set_forcing(solar, greenhouse)

    def report(snapshot):
        if driver.generation % every == 0:
            click.echo(
                f"  gen {driver.generation:5d}  t={snapshot.time:8.2f}  "
                f"T={snapshot.global_mean_temperature:7.2f} °C  "
                f"net={snapshot.global_mean_net_flux:7.2f} W/m²  "
                f"{snapshot.climate_state}"
            )

    driver.subscribe(report)
    frames = driver.run_frames(max_frames)

    status = driver.status()
    click.echo(f"\nStopped after {frames} frames: {status['climate_state']} "
               f"T={status['global_mean_temperature']:.2f} °C, "
               f"net flux={status['global_mean_net_flux']:.3f} W/m²")
    if status["running"]:
        click.echo("Frame budget exhausted before equilibrium")


if __name__ == "__main__":
    main()
