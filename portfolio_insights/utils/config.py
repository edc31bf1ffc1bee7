"""Configuration utilities for Portfolio Insights."""

import json
import logging
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)


class Config:
    """Application configuration manager."""

    DEFAULT_CONFIG = {
        'store': 'sqlite',  # 'sqlite' or 'json'
        'database_path': 'portfolio.db',
        'json_path': 'portfolio.json',
        'age': None,
        'log_level': 'WARNING',
        'export_format': 'xlsx',  # 'xlsx' or 'json'
    }

    EXPORT_FORMATS = ('xlsx', 'json')

    def __init__(self, config_path: Path = None):
        if config_path is None:
            config_path = Path(__file__).parent.parent.parent / "config.json"
        self.config_path = Path(config_path)
        self._config = self.DEFAULT_CONFIG.copy()
        self._load()

    def _load(self):
        """Load configuration from file."""
        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    loaded = json.load(f)
                    self._config.update(loaded)
            except (OSError, TypeError, ValueError) as e:
                logger.warning("Could not read %s, using defaults: %s", self.config_path, e)

    def save(self):
        """Save configuration to file."""
        with open(self.config_path, 'w') as f:
            json.dump(self._config, f, indent=2)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        return self._config.get(key, default)

    def set(self, key: str, value: Any):
        """Set a configuration value."""
        self._config[key] = value

    def get_all(self) -> Dict[str, Any]:
        """Get all configuration values."""
        return self._config.copy()

    def store_path(self, store: str) -> Path:
        """Path of the portfolio store for a backend, relative to the config file."""
        key = 'json_path' if store == 'json' else 'database_path'
        path = Path(self._config.get(key) or self.DEFAULT_CONFIG[key])
        if not path.is_absolute():
            path = self.config_path.parent / path
        return path

    def export_format_for(self, filename: Path) -> str:
        """Export format for a file: its extension if recognized, else the configured default."""
        suffix = Path(filename).suffix.lower().lstrip('.')
        if suffix in self.EXPORT_FORMATS:
            return suffix
        configured = self._config.get('export_format')
        if configured not in self.EXPORT_FORMATS:
            logger.warning("Unsupported export_format %r, using %s",
                           configured, self.DEFAULT_CONFIG['export_format'])
            return self.DEFAULT_CONFIG['export_format']
        return configured
