"""Tests for the command-line interface."""

import pandas as pd
import pytest
import yaml
from click.testing import CliRunner

from snowball import __version__
from snowball.cli import main


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def fast_config(tmp_path):
    """Config file with a 10-band grid and loose equilibrium settings."""
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump({
        "grid": {"n_bands": 10},
        "equilibrium": {"flux_tolerance": 0.5, "hold_time": 1.0, "max_time": 20.0},
        "driver": {"equilibrium_hold_seconds": 0.05},
        "logging": {"level": "WARNING", "log_dir": str(tmp_path / "logs")},
    }))
    return path


class TestCLI:
    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_list(self, runner, config_path):
        result = runner.invoke(main, ["--config", str(config_path), "list"])
        assert result.exit_code == 0
        assert "hysteresis" in result.output
        assert "faint_young_sun" in result.output

    def test_info(self, runner, config_path):
        result = runner.invoke(main, ["--config", str(config_path), "info", "hysteresis"])
        assert result.exit_code == 0
        assert "Snowball Hysteresis" in result.output
        assert "dimmed_sun" in result.output

    def test_info_alias(self, runner, config_path):
        result = runner.invoke(main, ["--config", str(config_path), "info", "faint-young-sun"])
        assert result.exit_code == 0
        assert "Faint Young Sun" in result.output

    def test_info_unknown(self, runner, config_path):
        result = runner.invoke(main, ["--config", str(config_path), "info", "venus"])
        assert result.exit_code == 1

    def test_run_writes_outputs(self, runner, fast_config, tmp_path):
        out = tmp_path / "out"
        result = runner.invoke(main, [
            "--config", str(fast_config),
            "run", "--scenario", "present_day",
            "--outputs", "csv", "--outputs", "netcdf",
            "--output-dir", str(out),
        ])
        assert result.exit_code == 0, result.output
        assert (out / "csv" / "present_day_timeseries.csv").exists()
        assert (out / "csv" / "present_day_profile.csv").exists()
        assert (out / "netcdf" / "present_day.nc").exists()
        assert (tmp_path / "logs" / "present_day.log").exists()

    def test_run_forcing_schedule(self, runner, fast_config, tmp_path):
        schedule = tmp_path / "ramp.csv"
        schedule.write_text("time,solar_multiplier\n0,1.0\n5,0.9\n")
        out = tmp_path / "out"
        result = runner.invoke(main, [
            "--config", str(fast_config),
            "run", "--forcing", str(schedule), "--outputs", "csv",
            "--output-dir", str(out),
        ])
        assert result.exit_code == 0, result.output
        df = pd.read_csv(out / "csv" / "ramp_timeseries.csv")
        assert df["time"].iloc[-1] == pytest.approx(5.0)

    def test_sweep(self, runner, fast_config, tmp_path):
        out = tmp_path / "sweep"
        result = runner.invoke(main, [
            "--config", str(fast_config),
            "sweep", "--solar-min", "0.9", "--solar-max", "1.0", "--n-samples", "2",
            "--output-dir", str(out),
        ])
        assert result.exit_code == 0, result.output
        df = pd.read_csv(out / "hysteresis_sweep.csv")
        assert len(df) == 4

    def test_live(self, runner, fast_config):
        result = runner.invoke(main, [
            "--config", str(fast_config),
            "live", "--solar", "0.95", "--max-frames", "50", "--every", "10",
        ])
        assert result.exit_code == 0, result.output
        assert "Stopped after" in result.output
