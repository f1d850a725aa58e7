"""Configuration management."""
import os
import yaml
from pathlib import Path

from models.enums import Frequency, TolerancePolicy

_config = None
CONFIG_DIR = Path(__file__).parent
_DEFAULT_CONFIG = CONFIG_DIR / "default_config.yaml"


def load_config(path=None):
    """Load config from YAML, merging defaults with optional overrides."""
    global _config

    with open(_DEFAULT_CONFIG, encoding="utf-8") as f:
        config = yaml.safe_load(f)

    if path and Path(path).exists():
        with open(path, encoding="utf-8") as f:
            overrides = yaml.safe_load(f) or {}
        config = _deep_merge(config, overrides)

    # Environment variable overrides
    env_map = {
        "FARM_MONITOR_LOG_LEVEL": ("logging", "level"),
        "FARM_MONITOR_RULES_PATH": ("alerts", "rules_path"),
        "FARM_MONITOR_THRESHOLDS_PATH": ("thresholds", "path"),
        "FARM_MONITOR_TOLERANCE_POLICY": ("thresholds", "tolerance_policy"),
    }
    for env_key, config_path in env_map.items():
        val = os.environ.get(env_key)
        if val:
            d = config
            for k in config_path[:-1]:
                d = d.setdefault(k, {})
            d[config_path[-1]] = val

    _resolve_paths(config)
    _validate_config(config)
    _config = config
    return config


def get_config():
    """Return cached config, loading defaults if needed."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def _deep_merge(base, override):
    """Recursively merge override into base dict."""
    result = base.copy()
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _resolve_paths(config):
    """Bundled rule/threshold files are looked up next to this module when not found as given."""
    for section, key in (("alerts", "rules_path"), ("thresholds", "path")):
        value = config.get(section, {}).get(key)
        if value and not Path(value).exists() and (CONFIG_DIR / Path(value).name).exists():
            config[section][key] = str(CONFIG_DIR / Path(value).name)


def _validate_config(config):
    """Basic config validation."""
    required_sections = ["alerts", "thresholds", "notifications", "logging"]
    for section in required_sections:
        if section not in config:
            raise ValueError(f"Missing required config section: {section}")

    policy = config["thresholds"].get("tolerance_policy", "strict")
    if policy not in {p.value for p in TolerancePolicy}:
        raise ValueError(f"Unknown tolerance_policy: {policy}")

    workers = config["alerts"].get("dispatch_workers", 0)
    if not isinstance(workers, int) or isinstance(workers, bool) or workers < 0:
        raise ValueError(f"alerts.dispatch_workers must be a non-negative integer, got {workers!r}")

    for channel in ("email", "sms"):
        frequency = config["notifications"].get(channel, {}).get("frequency", "immediate")
        if frequency not in {f.value for f in Frequency}:
            raise ValueError(f"Unknown notifications.{channel}.frequency: {frequency}")
