"""Tests for configuration and logging utilities."""

import logging
import time
import yaml
import pytest

from snowball import EBMParams
from snowball.utils.config import (
    DEFAULT_CONFIG,
    load_config,
    save_config,
    params_from_config,
    _deep_merge,
)
from snowball.utils.logging import (
    StepTimer,
    setup_logging,
    start_step,
    end_step,
    get_step_timer,
    log_calculation_issue,
)


class TestConfig:
    def test_missing_file_writes_defaults(self, config_path):
        config = load_config(config_path)
        assert config_path.exists()
        assert config == DEFAULT_CONFIG
        assert config is not DEFAULT_CONFIG

    def test_missing_file_without_create(self, config_path):
        load_config(config_path, create_default=False)
        assert not config_path.exists()

    def test_returned_config_is_independent(self, config_path):
        config = load_config(config_path, create_default=False)
        config["model"]["S0"] = 1.0
        config["driver"]["steps_per_tick"] = 99
        assert DEFAULT_CONFIG["model"]["S0"] == 1360.0
        assert DEFAULT_CONFIG["driver"]["steps_per_tick"] == 2

    def test_user_values_merge_over_defaults(self, config_path):
        config_path.write_text(yaml.dump({
            "model": {"D": 0.8},
            "equilibrium": {"max_time": 100.0},
        }))
        config = load_config(config_path)
        assert config["model"]["D"] == 0.8
        assert config["model"]["S0"] == 1360.0
        assert config["equilibrium"]["max_time"] == 100.0
        assert config["equilibrium"]["flux_tolerance"] == 0.01

    def test_empty_file_gives_defaults(self, config_path):
        config_path.write_text("")
        assert load_config(config_path) == DEFAULT_CONFIG

    def test_non_mapping_file_rejected(self, config_path):
        config_path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError):
            load_config(config_path)

    def test_relative_forcing_file_resolved(self, config_path):
        config_path.write_text(yaml.dump({"forcing_file": "schedule.csv"}))
        config = load_config(config_path)
        assert config["forcing_file"] == str(config_path.parent / "schedule.csv")

    def test_unknown_model_keys_warned(self, config_path, caplog):
        config_path.write_text(yaml.dump({"model": {"emissivity": 0.6}}))
        with caplog.at_level(logging.WARNING, logger="snowball"):
            load_config(config_path)
        assert "emissivity" in caplog.text

    def test_save_round_trip(self, tmp_path):
        path = tmp_path / "nested" / "config.yaml"
        config = _deep_merge(DEFAULT_CONFIG, {"grid": {"n_bands": 45}})
        save_config(config, path)
        assert load_config(path)["grid"]["n_bands"] == 45

    def test_params_from_config(self):
        config = _deep_merge(DEFAULT_CONFIG, {"model": {"A": 200, "extra": 1}})
        params = params_from_config(config)
        assert isinstance(params, EBMParams)
        assert params.A == 200.0
        assert params.B == 2.0

    def test_deep_merge_does_not_mutate(self):
        base = {"a": {"b": 1, "c": 2}}
        merged = _deep_merge(base, {"a": {"b": 5}})
        assert merged == {"a": {"b": 5, "c": 2}}
        assert base == {"a": {"b": 1, "c": 2}}


class TestLogging:
    def test_setup_writes_log_file(self, tmp_path):
        logger = setup_logging(level="DEBUG", log_dir=str(tmp_path), experiment_name="trial")
        logger.info("hello")
        for handler in logger.handlers:
            handler.flush()
        assert "hello" in (tmp_path / "trial.log").read_text()

    def test_step_timer_nesting(self):
        timer = StepTimer()
        timer.start_step("outer")
        timer.start_step("inner")
        time.sleep(0.01)
        inner = timer.end_step()
        outer = timer.end_step()
        assert outer >= inner > 0
        assert "outer" in timer.get_summary()

    def test_module_level_steps(self):
        setup_logging(level="WARNING")
        start_step("work")
        assert end_step(success=False) >= 0.0
        assert "work" in get_step_timer().get_summary()

    def test_calculation_issue_level(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="snowball"):
            log_calculation_issue("Test issue", "something odd", {"x": 1}, level=logging.ERROR)
        record = caplog.records[0]
        assert record.levelno == logging.ERROR
        assert "Calculation issue [Test issue]" in record.getMessage()
        assert "'x': 1" in caplog.text
