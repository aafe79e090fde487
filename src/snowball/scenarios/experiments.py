"""
Built-in forcing experiments.

Each experiment is a sequence of stages; every stage holds the solar and
greenhouse controls fixed and runs the model to equilibrium, starting from
wherever the previous stage left it:

- present_day: reference forcing from the warm initial state
- hysteresis: dim the sun until the planet freezes, then restore it
- faint_young_sun: early-Earth solar output (~70% of today)
- greenhouse_warming: reference sun with a doubled greenhouse control
- snowball_escape: freeze the planet, then brighten the sun until it thaws
"""

from typing import Dict, Any, List


# Scenario configurations
SCENARIOS: Dict[str, Dict[str, Any]] = {
    "present_day": {
        "name": "Present Day",
        "subtitle": "Reference solar constant and greenhouse effect",
        "stages": [
            ("reference", 1.0, 1.0),
        ],
        "expected_outcome": "HABITABLE",
        "description": "The warm initial profile relaxes to an ice-free equilibrium near +14 °C",
    },
    "hysteresis": {
        "name": "Snowball Hysteresis",
        "subtitle": 'Dim the Sun, then restore it: "The Point of No Return"',
        "stages": [
            ("reference", 1.0, 1.0),
            ("dimmed_sun", 0.9, 1.0),
            ("restored_sun", 1.0, 1.0),
        ],
        "expected_outcome": "SNOWBALL",
        "description": (
            "A 10% drop in solar output triggers runaway ice-albedo cooling; "
            "restoring the Sun does not thaw the frozen planet"
        ),
    },
    "faint_young_sun": {
        "name": "Faint Young Sun",
        "subtitle": "Solar output at 70% of today",
        "stages": [
            ("faint_sun", 0.7, 1.0),
        ],
        "expected_outcome": "SNOWBALL",
        "description": "Without extra greenhouse warming the early Earth freezes over",
    },
    "greenhouse_warming": {
        "name": "Greenhouse Warming",
        "subtitle": "Greenhouse control doubled (+30 W/m²)",
        "stages": [
            ("reference", 1.0, 1.0),
            ("doubled_greenhouse", 1.0, 2.0),
        ],
        "expected_outcome": "HOTHOUSE",
        "description": "Reduced outgoing longwave radiation pushes the planet into a hothouse",
    },
    "snowball_escape": {
        "name": "Snowball Escape",
        "subtitle": "Freeze, then brighten the Sun by 45% until the ice retreats",
        "stages": [
            ("reference", 1.0, 1.0),
            ("dimmed_sun", 0.9, 1.0),
            ("restored_sun", 1.0, 1.0),
            ("bright_sun", 1.45, 1.0),
        ],
        "expected_outcome": "HOTHOUSE",
        "description": (
            "Escaping a snowball needs far more forcing than entering it: the "
            "frozen equator only melts above roughly 1.35 times today's Sun, and "
            "once the equator melts the ice line collapses poleward"
        ),
    },
}


_ALIASES = {
    "present": "present_day",
    "presentday": "present_day",
    "reference": "present_day",
    "hysteresis": "hysteresis",
    "snowball": "hysteresis",
    "faintyoungsun": "faint_young_sun",
    "faintsun": "faint_young_sun",
    "fys": "faint_young_sun",
    "greenhouse": "greenhouse_warming",
    "greenhousewarming": "greenhouse_warming",
    "escape": "snowball_escape",
    "snowballescape": "snowball_escape",
}


def get_scenario(key: str) -> Dict[str, Any]:
    """
    Get scenario configuration by key.

    Parameters
    ----------
    key : str
        Scenario key or alias (e.g. "hysteresis", "faint-young-sun").

    Returns
    -------
    dict
        Scenario configuration.

    Raises
    ------
    KeyError
        If scenario not found.
    """
    normalized = key.strip().lower().replace("-", "_")
    if normalized in SCENARIOS:
        return SCENARIOS[normalized]

    compact = normalized.replace("_", "")
    if compact in _ALIASES:
        return SCENARIOS[_ALIASES[compact]]

    raise KeyError(f"Unknown scenario '{key}'. Available: {list(SCENARIOS)}")


def list_scenarios() -> List[str]:
    """
    List available scenario keys.

    Returns
    -------
    List[str]
        List of scenario identifiers.
    """
    return list(SCENARIOS.keys())
