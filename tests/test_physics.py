"""Tests for the pure numerical building blocks."""

import numpy as np
import pytest

from snowball.core.physics import (
    S2_COEFFICIENT,
    build_grid,
    grid_spacing,
    legendre_p2,
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


class TestGrid:
    @pytest.mark.parametrize("n", [1, 2, 7, 90, 181])
    def test_band_centres_inside_open_interval(self, n):
        x, lat = build_grid(n)
        assert len(x) == n
        assert x[0] > -1.0
        assert x[-1] < 1.0
        assert np.all(np.diff(x) > 0)

    @pytest.mark.parametrize("n", [3, 90])
    def test_latitude_is_exact_arcsine(self, n):
        x, lat = build_grid(n)
        np.testing.assert_array_equal(lat, np.arcsin(x) * 180.0 / np.pi)
        assert np.all(np.diff(lat) > 0)

    def test_band_centre_formula(self):
        x, _ = build_grid(4)
        np.testing.assert_allclose(x, [-0.75, -0.25, 0.25, 0.75])

    def test_symmetric_about_equator(self):
        x, lat = build_grid(90)
        np.testing.assert_allclose(x, -x[::-1], atol=1e-15)
        np.testing.assert_allclose(lat, -lat[::-1], atol=1e-12)

    def test_spacing(self):
        assert grid_spacing(90) == pytest.approx(2.0 / 90)


class TestInsolation:
    def test_legendre_p2_values(self):
        np.testing.assert_allclose(legendre_p2(np.array([0.0, 1.0, -1.0])), [-0.5, 1.0, 1.0])

    def test_equator_and_pole_values(self):
        x = np.array([0.0, 1.0])
        insol = compute_insolation(x, 1360.0)
        assert insol[0] == pytest.approx(340.0 * (1 - 0.5 * S2_COEFFICIENT))
        assert insol[1] == pytest.approx(340.0 * (1 + S2_COEFFICIENT))

    def test_global_mean_is_quarter_solar_constant(self):
        x, _ = build_grid(90)
        assert np.mean(compute_insolation(x, 1360.0)) == pytest.approx(340.0, rel=1e-4)

    def test_scales_linearly_with_S0(self):
        x, _ = build_grid(30)
        np.testing.assert_allclose(
            compute_insolation(x, 0.9 * 1360.0),
            0.9 * compute_insolation(x, 1360.0),
        )

    def test_fills_buffer_in_place(self):
        x, _ = build_grid(10)
        buf = np.zeros(10)
        result = compute_insolation(x, 1360.0, out=buf)
        assert result is buf
        assert np.all(buf > 0)


class TestSurfaceResponse:
    def test_albedo_is_a_hard_step(self):
        T = np.array([-30.0, -10.0001, -10.0, -9.9999, 20.0])
        albedo = compute_albedo(T, ice_threshold=-10.0, ice_albedo=0.62, ocean_albedo=0.3)
        np.testing.assert_array_equal(albedo, [0.62, 0.62, 0.3, 0.3, 0.3])

    def test_olr_linear_law(self):
        T = np.array([-20.0, 0.0, 15.0])
        np.testing.assert_allclose(compute_olr(T, 210.0, 2.0), [170.0, 210.0, 240.0])


class TestTransport:
    def test_polar_interfaces_carry_no_flux(self):
        x, _ = build_grid(90)
        T = initial_temperature(x)
        flux = np.full(91, np.nan)
        compute_transport(T, 0.6, flux=flux)
        assert flux[0] == 0.0
        assert flux[-1] == 0.0
        assert np.all(np.isfinite(flux))

    @pytest.mark.parametrize("n", [5, 30, 90])
    def test_transport_is_purely_redistributive(self, n):
        rng = np.random.default_rng(7)
        T = rng.uniform(-50, 30, n)
        transport = compute_transport(T, 0.6)
        assert np.sum(transport) == pytest.approx(0.0, abs=1e-9)

    def test_uniform_temperature_gives_no_transport(self):
        transport = compute_transport(np.full(20, 5.0), 0.6)
        np.testing.assert_array_equal(transport, np.zeros(20))

    def test_heat_moves_from_equator_to_poles(self):
        x, _ = build_grid(90)
        transport = compute_transport(initial_temperature(x), 0.6)
        assert transport[45] < 0
        assert transport[0] > 0
        assert transport[-1] > 0

    def test_interface_flux_formula(self):
        T = np.array([0.0, 10.0, 30.0, 30.0])
        flux = np.empty(5)
        compute_transport(T, 0.5, flux=flux)
        dx = 0.5
        # interface between band 0 and 1 sits at x = -0.5
        assert flux[1] == pytest.approx(-0.5 * (1 - 0.25) * 10.0 / dx)
        # interface at the equator
        assert flux[2] == pytest.approx(-0.5 * 1.0 * 20.0 / dx)
        assert flux[3] == pytest.approx(0.0)

    def test_scales_with_diffusivity(self):
        x, _ = build_grid(30)
        T = initial_temperature(x)
        np.testing.assert_allclose(compute_transport(T, 1.2), 2 * compute_transport(T, 0.6))


class TestStabilityStep:
    def test_safe_step_value(self):
        dx = 2.0 / 90
        expected = 0.8 * dx**2 / (2 * 0.6 + 0.001)
        assert stability_time_step(90, 0.6) == pytest.approx(expected)

    def test_finite_without_diffusion(self):
        assert np.isfinite(stability_time_step(90, 0.0))

    def test_shrinks_with_diffusivity_and_resolution(self):
        assert stability_time_step(90, 5.0) < stability_time_step(90, 0.6)
        assert stability_time_step(180, 0.6) < stability_time_step(90, 0.6)


class TestIceDiagnostics:
    def test_ice_fraction(self):
        T = np.array([-20.0, -5.0, 10.0, -15.0])
        assert ice_fraction(T, -10.0) == pytest.approx(0.5)

    def test_ice_edge_latitude(self):
        lat = np.array([-60.0, -20.0, 20.0, 60.0])
        T = np.array([-20.0, 5.0, 5.0, -12.0])
        assert ice_edge_latitude(T, lat, -10.0) == pytest.approx(60.0)

    def test_ice_free_has_no_edge(self):
        lat = np.array([-45.0, 45.0])
        assert ice_edge_latitude(np.array([0.0, 0.0]), lat, -10.0) is None


class TestClimateState:
    @pytest.mark.parametrize("T, state", [
        (-45.0, "SNOWBALL"),
        (-20.0, "GLACIAL"),
        (9.9, "GLACIAL"),
        (14.0, "HABITABLE"),
        (25.0, "HOTHOUSE"),
        (60.0, "HOTHOUSE"),
    ])
    def test_thresholds(self, T, state):
        assert classify_climate_state(T) == state

    def test_nan_is_undefined(self):
        assert classify_climate_state(float("nan")) == "UNDEFINED"
