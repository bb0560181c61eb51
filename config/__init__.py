"""
Configuration Module for the Lab Report Extraction Pipeline.

Settings live in config/settings.yaml. A different file can be selected
with the AGRILAB_CONFIG environment variable or the --config CLI flag,
and a few values can be overridden per process through environment
variables (see ENV_OVERRIDES).

Usage:
    from config import get_config

    timeout = get_config("vision.timeout_seconds", 30)
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

PROJECT_ROOT = Path(__file__).parent.parent
DEFAULT_CONFIG_PATH = Path(__file__).parent / "settings.yaml"
CONFIG_PATH_ENV = "AGRILAB_CONFIG"

# Environment variable -> dotted key
ENV_OVERRIDES = {
    "AGRILAB_LOG_LEVEL": "logging.level",
    "AGRILAB_VISION_MODEL": "vision.model",
    "AGRILAB_VISION_BASE_URL": "vision.base_url",
    "AGRILAB_OCR_LANG": "ocr.tesseract.lang",
}


class ConfigurationManager:
    """
    Process-wide access to the pipeline settings.

    The first instantiation loads the YAML file; later calls return the
    same object. Call reset() before loading a different file.

    Attributes:
        config_path (Path): File the settings were loaded from.

    Example:
        >>> config = ConfigurationManager()
        >>> config.get("vision.model")
        'gpt-4o'
        >>> config.section("confidence")["regex"]
        0.6
    """

    _instance: Optional['ConfigurationManager'] = None

    def __new__(cls, config_path: Optional[str] = None) -> 'ConfigurationManager':
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._initialized = False
            cls._instance = instance
        return cls._instance

    def __init__(self, config_path: Optional[str] = None) -> None:
        """
        Args:
            config_path: Settings file. Falls back to $AGRILAB_CONFIG, then
                config/settings.yaml.
        """
        if self._initialized:
            return

        self.config_path = Path(config_path or os.environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)
        self._config: Dict[str, Any] = self._load(self.config_path)
        self._apply_env_overrides()
        self._initialized = True

    @staticmethod
    def _load(path: Path) -> Dict[str, Any]:
        """
        Read a settings file.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ValueError: If the document is not a mapping.
            yaml.YAMLError: If the file is not valid YAML.
        """
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {path} must contain a mapping")
        return data

    def _apply_env_overrides(self) -> None:
        for env_name, key in ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value:
                self.set(key, value)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Look up a value by dotted key, e.g. "ocr.tesseract.lang".

        Returns default when any part of the key is missing.
        """
        node: Any = self._config
        for part in key.split('.'):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        """Set a value by dotted key, creating intermediate sections."""
        *parents, last = key.split('.')
        node = self._config
        for part in parents:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[last] = value

    def section(self, name: str) -> Dict[str, Any]:
        """Return a copy of a top-level section ({} when absent)."""
        value = self._config.get(name)
        return dict(value) if isinstance(value, dict) else {}

    @staticmethod
    def resolve_path(value: str) -> Path:
        """Interpret a relative path from the settings against the project root."""
        path = Path(value)
        return path if path.is_absolute() else PROJECT_ROOT / path

    @classmethod
    def reset(cls) -> None:
        """Forget the loaded settings; the next instantiation reloads."""
        cls._instance = None


def get_config(key: str, default: Any = None) -> Any:
    """Shortcut for ConfigurationManager().get(key, default)."""
    return ConfigurationManager().get(key, default)


__all__ = ['ConfigurationManager', 'get_config']
