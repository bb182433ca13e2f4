import tomllib
import shutil
from pathlib import Path
from typing import Any, Dict, Optional
from dotenv import load_dotenv
import os

CONFIG_DIR = Path.home() / ".topqueue"
CONFIG_PATH = CONFIG_DIR / "config.toml"
PROJECT_CONFIG_EXAMPLE = Path(__file__).parent / "config.toml"

MIN_INTERVAL_HOURS = 1
MAX_INTERVAL_HOURS = 8760
POLICY_NAMES = ("none", "mild", "aggressive")

DEFAULT_SCHEDULING = {
    "default_interval_hours": 240,
    "new_card_delay_hours": 0,
    "default_skip_policy": "mild",
    "default_rating_easy_policy": "mild",
    "default_rating_hard_policy": "mild",
}


def _clamp_hours(value: Any, default: int, lower: int = MIN_INTERVAL_HOURS) -> int:
    try:
        hours = int(value)
    except (TypeError, ValueError):
        return default
    return max(lower, min(MAX_INTERVAL_HOURS, hours))


def _policy_name(value: Any, default: str) -> str:
    name = str(value or "").strip().lower()
    return name if name in POLICY_NAMES else default


def load_config() -> Dict[str, Any]:
    """Load config from ~/.topqueue/config.toml, copy example if missing, load .env overrides."""
    load_dotenv()
    if not CONFIG_PATH.exists():
        CONFIG_DIR.mkdir(exist_ok=True)
        shutil.copy(PROJECT_CONFIG_EXAMPLE, CONFIG_PATH)
    with open(CONFIG_PATH, "rb") as f:
        config = tomllib.load(f)

    scheduling_cfg = config.get("scheduling", {})
    config["scheduling"] = {
        "default_interval_hours": _clamp_hours(
            os.getenv(
                "TOPQUEUE_DEFAULT_INTERVAL_HOURS",
                scheduling_cfg.get("default_interval_hours", DEFAULT_SCHEDULING["default_interval_hours"]),
            ),
            DEFAULT_SCHEDULING["default_interval_hours"],
        ),
        # A delay of zero puts new cards straight into the queue
        "new_card_delay_hours": _clamp_hours(
            os.getenv(
                "TOPQUEUE_NEW_CARD_DELAY_HOURS",
                scheduling_cfg.get("new_card_delay_hours", DEFAULT_SCHEDULING["new_card_delay_hours"]),
            ),
            DEFAULT_SCHEDULING["new_card_delay_hours"],
            lower=0,
        ),
    }
    for key in ("default_skip_policy", "default_rating_easy_policy", "default_rating_hard_policy"):
        config["scheduling"][key] = _policy_name(
            os.getenv(f"TOPQUEUE_{key.upper()}", scheduling_cfg.get(key)),
            DEFAULT_SCHEDULING[key],
        )

    logging_cfg = config.get("logging", {})
    config["logging"] = {
        "level": os.getenv("TOPQUEUE_LOG_LEVEL", logging_cfg.get("level", "INFO")).upper(),
    }
    return config


def get_config_value(section: str, key: str, default: Optional[Any] = None) -> Any:
    """Get nested config value, e.g., get_config_value('scheduling', 'default_interval_hours')."""
    config = load_config()
    value = config.get(section, {}).get(key, default)
    return value
