"""
Configuration — loads settings from .apply_edits.yaml, environment variables,
and built-in defaults (in that priority order: CLI args > env > YAML > defaults).
"""

import os

import yaml


_DEFAULTS = {
    "similarity_threshold": 0.5,
    "max_candidates": 3,
    "preview_length": 200,
    "require_unique": False,
    "read_max_lines": 500,
    "color": True,
    "log_dir": ".apply_edits/logs",
    "metrics_enabled": True,
    "metrics_dir": "~/.apply_edits",
    "report_dir": ".apply_edits/reports",
}

_ENV_PREFIX = "APPLY_EDITS_"

# Config file search locations
_CONFIG_FILENAMES = [".apply_edits.yaml", ".apply_edits.yml"]


def _find_config_file(explicit_path: str | None = None) -> str | None:
    """Find the config file. Checks explicit path, CWD, then user home."""
    if explicit_path:
        if os.path.isfile(explicit_path):
            return explicit_path
        return None

    # Search CWD first, then home directory
    search_dirs = [os.getcwd(), os.path.expanduser("~")]
    for d in search_dirs:
        for name in _CONFIG_FILENAMES:
            path = os.path.join(d, name)
            if os.path.isfile(path):
                return path
    return None


def _load_yaml(path: str) -> dict:
    """Load YAML file, returns empty dict on failure."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return {}


class Config:
    """Application configuration.

    Settings are resolved in priority order:
    1. CLI arguments (handled by caller)
    2. Environment variables (``APPLY_EDITS_<KEY>``)
    3. .apply_edits.yaml config file
    4. Built-in defaults
    """

    def __init__(self, yaml_data: dict | None = None):
        yd = yaml_data or {}

        # Helper: env var > yaml > default
        def _get(key: str, cast=str):
            env_val = os.getenv(_ENV_PREFIX + key.upper())
            if env_val is not None:
                return cast(env_val)
            yaml_val = yd.get(key)
            if yaml_val is not None:
                return cast(yaml_val)
            return _DEFAULTS[key]

        def _get_bool(key: str) -> bool:
            env_val = os.getenv(_ENV_PREFIX + key.upper())
            if env_val is not None:
                return env_val.strip().lower() in ("true", "1", "yes", "on")
            yaml_val = yd.get(key)
            if yaml_val is not None:
                return bool(yaml_val)
            return _DEFAULTS[key]

        # Matching
        self.SIMILARITY_THRESHOLD = _get("similarity_threshold", cast=float)
        self.MAX_CANDIDATES = _get("max_candidates", cast=int)
        self.PREVIEW_LENGTH = _get("preview_length", cast=int)
        self.REQUIRE_UNIQUE = _get_bool("require_unique")

        # File reader
        self.READ_MAX_LINES = _get("read_max_lines", cast=int)

        # Output
        self.COLOR = _get_bool("color")
        self.LOG_DIR = _get("log_dir")
        self.REPORT_DIR = _get("report_dir")

        # Edit metrics log
        self.METRICS_ENABLED = _get_bool("metrics_enabled")
        self.METRICS_DIR = os.path.expanduser(_get("metrics_dir"))

    @classmethod
    def load(cls, config_path: str | None = None) -> "Config":
        """Load config from YAML file (if found) + env vars + defaults."""
        path = _find_config_file(config_path)
        yaml_data = _load_yaml(path) if path else {}
        return cls(yaml_data)
