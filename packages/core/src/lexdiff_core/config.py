from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "historical_pattern_threshold": 5,  # change type counted more than this across history is a pattern
    "consistency_change_threshold": 3,  # more precondition changes than this in one diff is flagged
    "min_priority": "low",  # low | medium | high | critical
    "include_metadata": False,  # also diff statute metadata keys
    "store": "noop",  # noop | sqlite
    "store_path": ".lexdiff.db",
}

_PRIORITIES = ("low", "medium", "high", "critical")


def load_config(config_path: str = ".lexdiff.yml", overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .lexdiff.yml in the current directory
      3. Caller overrides (None values are ignored)
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if overrides:
        for key, value in overrides.items():
            if value is not None:
                config[key] = value

    config["min_priority"] = str(config["min_priority"]).lower()
    if config["min_priority"] not in _PRIORITIES:
        raise ValueError(f"Unknown min_priority: {config['min_priority']!r}. Choose one of {', '.join(_PRIORITIES)}.")

    return config
