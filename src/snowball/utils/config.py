"""Configuration management for snowball."""

from typing import Dict, Any, Optional
from pathlib import Path
import copy
import logging
import yaml

from snowball.core.params import EBMParams, DEFAULT_PARAMS

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".snowball" / "config.yaml"


DEFAULT_CONFIG: Dict[str, Any] = {
    "scenarios": {
        "default": "hysteresis",
    },
    # Custom forcing schedule - when set, overrides scenario
    "forcing_file": None,
    "grid": {
        "n_bands": 90,
    },
    "model": DEFAULT_PARAMS.to_dict(),
    "integration": {
        "step_dt": 0.05,
        "max_substeps": 10000,
    },
    "equilibrium": {
        # |global mean ASR - OLR| in W/m²
        "flux_tolerance": 0.01,
        "hold_time": 5.0,
        "max_time": 400.0,
        "record_interval": 1.0,
    },
    "driver": {
        "steps_per_tick": 2,
        "step_dt": 0.05,
        "max_generations": 2000,
        "equilibrium_flux_threshold": 1.0,
        # Wall-clock seconds
        "equilibrium_hold_seconds": 1.0,
        "snapshot_interval": 0.066,
    },
    "outputs": {
        "formats": ["csv", "netcdf"],
        "base_dir": "./outputs",
    },
    "logging": {
        "level": "INFO",
        "log_dir": "./logs",
        "format_style": "detailed",
    },
}


def load_config(
    config_path: Optional[str | Path] = None,
    create_default: bool = True,
) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Parameters
    ----------
    config_path : str or Path, optional
        Path to config file. Defaults to ~/.snowball/config.yaml
    create_default : bool, optional
        Write the default config if the file is missing. Default is True.

    Returns
    -------
    dict
        Configuration dictionary (a fresh copy; never DEFAULT_CONFIG itself).
    """
    config_path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH

    if config_path.exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            user_config = yaml.safe_load(f) or {}

        if not isinstance(user_config, dict):
            raise ValueError(f"Config file must contain a mapping: {config_path}")

        config = _deep_merge(DEFAULT_CONFIG, user_config)

        unknown = set(config["model"]) - set(DEFAULT_PARAMS.to_dict())
        if unknown:
            logger.warning(f"Ignoring unknown model parameters: {sorted(unknown)}")

        # Resolve forcing_file relative to the config file location
        if config.get("forcing_file"):
            forcing_path = Path(config["forcing_file"])
            if not forcing_path.is_absolute():
                config["forcing_file"] = str(config_path.parent / forcing_path)

        return config

    if create_default:
        save_config(DEFAULT_CONFIG, config_path)

    return copy.deepcopy(DEFAULT_CONFIG)


def save_config(
    config: Dict[str, Any],
    config_path: Optional[str | Path] = None,
) -> None:
    """
    Save configuration to YAML file.

    Parameters
    ----------
    config : dict
        Configuration dictionary.
    config_path : str or Path, optional
        Path to config file. Defaults to ~/.snowball/config.yaml
    """
    config_path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)

    logger.info(f"Config saved to: {config_path}")


def params_from_config(config: Dict[str, Any]) -> EBMParams:
    """Physical parameters from the ``model`` section of a config."""
    return EBMParams.from_dict(config.get("model", {}))


def _deep_merge(base: Dict, override: Dict) -> Dict:
    """Deep merge two dictionaries without mutating either."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result
