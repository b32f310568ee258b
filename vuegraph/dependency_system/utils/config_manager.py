# utils/config_manager.py

"""
Configuration loading for the dependency graph builder.

Settings come from built-in defaults, deep-merged with an optional JSON file
(``vuegraph.config.json`` in the working directory, or the file named by the
``VUEGRAPH_CONFIG`` environment variable).
"""

import copy
import json
import logging
import os
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "vuegraph.config.json"
CONFIG_ENV_VAR = "VUEGRAPH_CONFIG"

DEFAULT_CONFIG: Dict[str, Any] = {
    "paths": {
        # Ordered: the first matching prefix wins.
        "aliases": {"~~/": "src/", "~/": "src/", "@/": "src/"},
        "resolve_suffixes": ["", ".ts", ".vue", ".js", "/index.ts"],
    },
    "analysis": {
        "annotate_token_ranges": True,
        "condense_impure_functions": True,
    },
    "cache": {
        "ttl": 600,
        "max_size": 64,
    },
    "logging": {
        "level": "WARNING",
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """Loads and exposes configuration. A missing or unreadable file falls back to defaults."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or os.environ.get(CONFIG_ENV_VAR) or os.path.join(
            os.getcwd(), CONFIG_FILENAME
        )
        self.config: Dict[str, Any] = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        if not os.path.exists(self.config_path):
            return copy.deepcopy(DEFAULT_CONFIG)
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                user_config = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read config file {self.config_path}: {e}. Using defaults.")
            return copy.deepcopy(DEFAULT_CONFIG)
        if not isinstance(user_config, dict):
            logger.warning(f"Config file {self.config_path} is not a JSON object. Using defaults.")
            return copy.deepcopy(DEFAULT_CONFIG)
        logger.debug(f"Loaded config from {self.config_path}")
        return _deep_merge(DEFAULT_CONFIG, user_config)

    @classmethod
    def from_dict(cls, overrides: Dict[str, Any]) -> "ConfigManager":
        """Builds a manager from defaults plus ``overrides`` without touching disk."""
        manager = cls.__new__(cls)
        manager.config_path = ""
        manager.config = _deep_merge(DEFAULT_CONFIG, overrides)
        return manager

    def get_path_aliases(self) -> List[Tuple[str, str]]:
        aliases = self.config.get("paths", {}).get("aliases", {})
        return [(str(prefix), str(target)) for prefix, target in aliases.items()]

    def get_resolve_suffixes(self) -> List[str]:
        return list(self.config.get("paths", {}).get("resolve_suffixes", [""]))

    def get_analysis_setting(self, name: str, default: Any = None) -> Any:
        return self.config.get("analysis", {}).get(name, default)

    def get_cache_setting(self, name: str, default: Any = None) -> Any:
        return self.config.get("cache", {}).get(name, default)

    def get_log_level(self) -> str:
        return str(self.config.get("logging", {}).get("level", "WARNING")).upper()
