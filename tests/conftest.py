"""Pytest configuration."""
import logging
import pytest

from snowball import EnergyBalanceModel, ClimateModel


@pytest.fixture
def engine():
    """Default 90-band engine."""
    return EnergyBalanceModel()


@pytest.fixture
def coarse_model():
    """Runner on a 30-band grid for fast equilibrium runs."""
    return ClimateModel(n_bands=30, flux_tolerance=0.01, hold_time=2.0, max_time=300.0)


@pytest.fixture
def tiny_model():
    """Runner on a 10-band grid with loose equilibrium settings."""
    return ClimateModel(n_bands=10, flux_tolerance=0.5, hold_time=1.0, max_time=20.0)


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "config.yaml"


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by setup_logging during a test."""
    yield
    logger = logging.getLogger("snowball")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
