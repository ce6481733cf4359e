"""
Unified configuration management for biometric telemetry.

Provides centralized configuration with:
- JSON file loading with defaults
- Environment variable overrides
- Dot-notation access
- Feature enable/disable flags
"""

import json
import os
import sys
from pathlib import Path
from typing import Any, Optional


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


class TelemetryConfig:
    """
    Singleton configuration manager for telemetry features.

    Usage:
        from statslog.config import config

        if config.is_enabled('telemetry'):
            # ... emit records

        log_path = config.get('telemetry.log_path')
    """

    _instance = None
    _config = None
    _config_loaded = False

    def __new__(cls):
        """Singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def load(self, config_path: Optional[Path] = None):
        """
        Load configuration from file.

        Args:
            config_path: Path to telemetry_config.json (optional)
        """
        if self._config_loaded:
            return  # Already loaded

        if config_path is None:
            config_path = Path(__file__).parent.parent.parent / "config" / "telemetry_config.json"

        defaults = self._get_defaults()
        if not config_path.exists():
            self._config = defaults
        else:
            try:
                with open(config_path) as f:
                    loaded = json.load(f)
                self._config = self._merge(defaults, loaded)
            except (OSError, ValueError) as e:
                print(f"Warning: Failed to load config from {config_path}: {e}", file=sys.stderr)
                self._config = defaults

        self._apply_env_overrides()

        self._config_loaded = True

    def _get_defaults(self) -> dict:
        """
        Get default configuration.

        Returns:
            Dictionary with default settings
        """
        return {
            "version": "1.0.0",
            "telemetry": {
                "enabled": True,
                "log_path": "~/.biometrics/telemetry/biometric_stats.jsonl",
                "batch_size": 10,
                "batch_flush_interval_sec": 5.0
            },
            "diagnostics": {
                "verbose": False,
                "tag": "Biometrics/OperationRecorder",
                "history_size": 200
            },
            "debug": {
                "enabled": False,
                "subjects": []
            }
        }

    def _merge(self, base: dict, override: dict) -> dict:
        """Overlay a loaded file onto the defaults, section by section."""
        merged = dict(base)
        for key, value in override.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = self._merge(merged[key], value)
            else:
                merged[key] = value
        return merged

    def _apply_env_overrides(self):
        """Apply environment variable overrides to configuration."""
        # BIOTELEMETRY_TELEMETRY_ENABLED=false
        if "BIOTELEMETRY_TELEMETRY_ENABLED" in os.environ:
            self._config["telemetry"]["enabled"] = _parse_bool(
                os.environ["BIOTELEMETRY_TELEMETRY_ENABLED"])

        if "BIOTELEMETRY_VERBOSE" in os.environ:
            self._config["diagnostics"]["verbose"] = _parse_bool(
                os.environ["BIOTELEMETRY_VERBOSE"])

        if "BIOTELEMETRY_DEBUG_ENABLED" in os.environ:
            self._config["debug"]["enabled"] = _parse_bool(
                os.environ["BIOTELEMETRY_DEBUG_ENABLED"])

        # BIOTELEMETRY_DEBUG_SUBJECTS=0,10
        if "BIOTELEMETRY_DEBUG_SUBJECTS" in os.environ:
            subjects = []
            for item in os.environ["BIOTELEMETRY_DEBUG_SUBJECTS"].split(','):
                item = item.strip()
                if not item:
                    continue
                try:
                    subjects.append(int(item))
                except ValueError:
                    print(f"Warning: Ignoring non-numeric debug subject {item!r}", file=sys.stderr)
            self._config["debug"]["subjects"] = subjects

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value with dot notation.

        Args:
            key: Configuration key (e.g., "telemetry.enabled")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        if not self._config_loaded:
            self.load()

        keys = key.split('.')
        value = self._config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default

        return value if value is not None else default

    def set(self, key: str, value: Any):
        """
        Set configuration value (runtime only, not persisted).

        Args:
            key: Configuration key (dot notation)
            value: Value to set
        """
        if not self._config_loaded:
            self.load()

        keys = key.split('.')
        config = self._config

        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    def is_enabled(self, feature: str) -> bool:
        """
        Check if a feature is enabled.

        Args:
            feature: Feature name (e.g., "telemetry", "debug")

        Returns:
            True if enabled, False otherwise
        """
        return bool(self.get(f"{feature}.enabled", False))

    def reload(self, config_path: Optional[Path] = None):
        """Force reload configuration from file."""
        self._config_loaded = False
        self.load(config_path)

    def get_all(self) -> dict:
        """
        Get entire configuration dictionary.

        Returns:
            Full configuration
        """
        if not self._config_loaded:
            self.load()
        return self._config.copy()


# Singleton instance for import
config = TelemetryConfig()

# Auto-load on import
config.load()
