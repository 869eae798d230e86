import tomllib
import shutil
from pathlib import Path
from typing import Any, Dict, Optional
from dotenv import load_dotenv
import os

CONFIG_DIR = Path(os.getenv("MATHDRILL_HOME", str(Path.home() / ".mathdrill")))
CONFIG_PATH = CONFIG_DIR / "config.toml"
PROJECT_CONFIG_EXAMPLE = Path(__file__).parent / "config.toml"

DEFAULTS: Dict[str, Dict[str, Any]] = {
    "adaptation": {
        "high_accuracy": 0.8,
        "low_accuracy": 0.4,
        "min_samples": 3,
        "window_size": 10,
    },
    "session": {
        "default_size": 10,
        "max_size": 20,
        "drill_size": 10,
    },
    "drills": {
        "max_drills": 5,
        "unlock_accuracy": 0.0,
    },
    "planner": {
        "prerequisite_accuracy": 0.6,
        "recent_practice_sessions": 3,
    },
    "scoring": {
        "hint_penalty": 2,
        "overtime_penalty": 1,
    },
    "grading": {
        "near_miss_threshold": 0.85,
    },
    "analytics": {
        "fatigue_min_answers": 8,
        "fatigue_accuracy_drop": 15.0,
        "fatigue_time_increase": 0.2,
    },
    "logging": {
        "level": "INFO",
    },
}

# (section, key) -> (env var, cast)
ENV_OVERRIDES = {
    ("logging", "level"): ("MATHDRILL_LOG_LEVEL", str),
    ("session", "drill_size"): ("DRILL_SIZE", int),
    ("drills", "max_drills"): ("MAX_DRILLS", int),
    ("drills", "unlock_accuracy"): ("UNLOCK_ACCURACY", float),
}


def load_config() -> Dict[str, Any]:
    """Load config from ~/.mathdrill/config.toml, copy example if missing, apply defaults and .env overrides."""
    load_dotenv()  # Load .env for overrides (e.g., MATHDRILL_LOG_LEVEL)
    if not CONFIG_PATH.exists():
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        shutil.copy(PROJECT_CONFIG_EXAMPLE, CONFIG_PATH)
    with open(CONFIG_PATH, "rb") as f:
        raw = tomllib.load(f)

    config: Dict[str, Any] = {}
    for section, defaults in DEFAULTS.items():
        file_section = raw.get(section, {})
        merged = {}
        for key, default in defaults.items():
            value = file_section.get(key, default)
            merged[key] = type(default)(value)
        config[section] = merged

    for (section, key), (env_name, cast) in ENV_OVERRIDES.items():
        env_value = os.getenv(env_name)
        if env_value is not None and env_value != "":
            config[section][key] = cast(env_value)
    return config


def get_config_value(section: str, key: str, default: Optional[Any] = None) -> Any:
    """Get nested config value, e.g., get_config_value('adaptation', 'min_samples')."""
    config = load_config()
    value = config.get(section, {}).get(key, default)
    return value
