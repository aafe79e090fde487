"""Tests for forcing input and result export."""

import numpy as np
import pandas as pd
import pytest

from snowball.io import (
    load_forcing_csv,
    create_forcing_function,
    write_csv,
    write_profile_csv,
    write_netcdf,
)


@pytest.fixture(scope="module")
def results():
    from snowball import ClimateModel

    model = ClimateModel(n_bands=10, flux_tolerance=0.5, hold_time=1.0, max_time=20.0)
    return model.run(scenario="hysteresis", show_progress=False)


class TestForcingInput:
    def test_load_full_schedule(self, tmp_path):
        path = tmp_path / "schedule.csv"
        path.write_text(
            "time,solar_multiplier,greenhouse_multiplier\n"
            "50,0.9,1.0\n"
            "0,1.0,1.0\n"
            "100,1.0,2.0\n"
        )
        times, solar, ghg = load_forcing_csv(path)
        np.testing.assert_array_equal(times, [0.0, 50.0, 100.0])
        np.testing.assert_array_equal(solar, [1.0, 0.9, 1.0])
        np.testing.assert_array_equal(ghg, [1.0, 1.0, 2.0])

    def test_greenhouse_defaults_to_one(self, tmp_path):
        path = tmp_path / "solar_only.csv"
        path.write_text("time,solar\n0,1.0\n10,0.8\n")
        _, _, ghg = load_forcing_csv(path)
        np.testing.assert_array_equal(ghg, [1.0, 1.0])

    def test_positional_columns(self, tmp_path):
        path = tmp_path / "unnamed.csv"
        path.write_text("a,b,c\n0,1.0,1.5\n")
        times, solar, ghg = load_forcing_csv(path)
        assert (times[0], solar[0], ghg[0]) == (0.0, 1.0, 1.5)

    def test_named_column_not_reused_by_position(self, tmp_path):
        path = tmp_path / "reordered.csv"
        path.write_text("sun_pct,time,co2\n0.9,0,1.5\n1.1,10,2.0\n")
        times, solar, ghg = load_forcing_csv(path)
        np.testing.assert_array_equal(times, [0.0, 10.0])
        np.testing.assert_array_equal(solar, [0.9, 1.1])
        np.testing.assert_array_equal(ghg, [1.5, 2.0])

    def test_unmatched_columns_fill_in_file_order(self, tmp_path):
        path = tmp_path / "partial.csv"
        path.write_text("a,solar,b\n5,0.8,1.2\n0,1.0,1.0\n")
        times, solar, ghg = load_forcing_csv(path)
        np.testing.assert_array_equal(times, [0.0, 5.0])
        np.testing.assert_array_equal(solar, [1.0, 0.8])
        np.testing.assert_array_equal(ghg, [1.0, 1.2])

    def test_comments_ignored(self, tmp_path):
        path = tmp_path / "commented.csv"
        path.write_text("# ramp\ntime,solar\n0,1.0\n")
        times, _, _ = load_forcing_csv(path)
        assert len(times) == 1

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_forcing_csv(tmp_path / "nope.csv")

    def test_single_column_rejected(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("time\n0\n")
        with pytest.raises(ValueError):
            load_forcing_csv(path)

    def test_interpolation(self):
        forcing = create_forcing_function(
            np.array([0.0, 10.0]), np.array([1.0, 0.8]), np.array([1.0, 2.0]),
        )
        solar, ghg = forcing(5.0)
        assert solar == pytest.approx(0.9)
        assert ghg == pytest.approx(1.5)

    def test_held_constant_outside_range(self):
        forcing = create_forcing_function(
            np.array([10.0, 20.0]), np.array([1.0, 0.8]), np.array([1.0, 2.0]),
        )
        assert forcing(0.0) == pytest.approx((1.0, 1.0))
        assert forcing(50.0) == pytest.approx((0.8, 2.0))

    def test_single_point_is_constant(self):
        forcing = create_forcing_function(np.array([0.0]), np.array([0.9]), np.array([1.2]))
        assert forcing(123.0) == (0.9, 1.2)


class TestCSVOutput:
    def test_timeseries(self, results, tmp_path):
        path = tmp_path / "out" / "series.csv"
        write_csv(results, path)
        df = pd.read_csv(path)
        assert len(df) == len(results.t)
        assert "global_mean_temperature_C" in df.columns
        np.testing.assert_allclose(df["time"], results.t, atol=1e-6)

    def test_without_header(self, results, tmp_path):
        path = tmp_path / "series.csv"
        write_csv(results, path, include_header=False)
        assert not path.read_text().startswith("time")

    def test_profile(self, results, tmp_path):
        path = tmp_path / "profile.csv"
        write_profile_csv(results, path)
        df = pd.read_csv(path)
        assert len(df) == 10
        np.testing.assert_allclose(df["temperature_C"], results.final.T, atol=1e-6)

    def test_results_to_csv(self, results, tmp_path):
        path = tmp_path / "via_results.csv"
        results.to_csv(path)
        assert path.exists()


class TestNetCDFOutput:
    def test_structure(self, results, tmp_path):
        import netCDF4 as nc

        path = tmp_path / "nc" / "run.nc"
        write_netcdf(results, path)

        with nc.Dataset(path) as ds:
            assert ds.dimensions["time"].size == len(results.t)
            assert ds.dimensions["lat"].size == 10
            assert ds.scenario_key == "hysteresis"
            assert ds.model_S0 == pytest.approx(1360.0)
            assert ds.stage_names == "reference,dimmed_sun,restored_sun"
            np.testing.assert_allclose(ds["global_mean_temperature"][:], results.global_mean_temperature)
            np.testing.assert_allclose(ds["temperature"][:], results.final.T)
            np.testing.assert_array_equal(ds["stage"][:], results.stage_index)
            assert ds["temperature"].ice_threshold == pytest.approx(-10.0)

    def test_uncompressed(self, results, tmp_path):
        path = tmp_path / "plain.nc"
        results.to_netcdf(path, compression=False)
        assert path.exists()
