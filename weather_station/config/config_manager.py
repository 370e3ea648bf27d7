"""Configuration manager for the weather station log."""

import os
import yaml
from typing import Dict, Any, Optional


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_path: Optional[str] = None) -> None:
        """Initialize configuration manager.

        Args:
            config_path: Path to configuration file. If None, looks for config.yaml
                        via CONFIG_PATH, the current directory and the project root.
        """
        self._config_path = config_path or self._find_config_file()
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _find_config_file(self) -> str:
        """Find configuration file in standard locations."""
        possible_paths = [
            os.environ.get('CONFIG_PATH'),
            'config.yaml',
            os.path.join(os.path.dirname(__file__), '../../config.yaml')
        ]

        for path in possible_paths:
            if path and os.path.exists(path):
                return os.path.abspath(path)

        raise FileNotFoundError(
            "Configuration file not found. Please create config.yaml or set CONFIG_PATH environment variable."
        )

    def _load_config(self) -> None:
        """Load configuration from YAML file and environment variables."""
        if not os.path.exists(self._config_path):
            raise FileNotFoundError(f"Configuration file not found: {self._config_path}")

        try:
            with open(self._config_path, 'r') as file:
                self._config = yaml.safe_load(file) or {}
        except (OSError, yaml.YAMLError) as e:
            raise RuntimeError(f"Failed to load configuration: {e}")

        if not isinstance(self._config, dict):
            raise RuntimeError(f"Failed to load configuration: expected a mapping in {self._config_path}")

        # Override with environment variables
        self._apply_env_overrides()

        # Validate configuration
        self._validate_config()

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides."""
        env_mappings = {
            'WEATHER_DB_PATH': ['database', 'path'],
            'DEVICE_ID': ['device', 'id'],
            'LOG_LEVEL': ['logging', 'level'],
            'INGEST_SOURCE': ['ingest', 'source'],
            'INGEST_PATH': ['ingest', 'path'],
            'MQTT_HOST': ['mqtt', 'host'],
            'MQTT_USERNAME': ['mqtt', 'username'],
            'MQTT_PASSWORD': ['mqtt', 'password'],
        }

        for env_var, config_path in env_mappings.items():
            value = os.environ.get(env_var)
            if value:
                self._set_nested_value(config_path, value)

    def _set_nested_value(self, path: list, value: str) -> None:
        """Set nested configuration value."""
        current = self._config
        for key in path[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]
        current[path[-1]] = value

    def _validate_config(self) -> None:
        """Validate required configuration values."""
        required_sections = ['database', 'device', 'logging']

        for section in required_sections:
            if not isinstance(self._config.get(section), dict):
                raise ValueError(f"Missing required configuration section: {section}")

        if not self._config['database'].get('path'):
            raise ValueError("Database path must be set in config or WEATHER_DB_PATH environment variable")

    def get_database_config(self) -> Dict[str, Any]:
        """Get database configuration."""
        database_config = {'timeout': 5.0}
        database_config.update(self._config['database'])
        return database_config

    def get_device_config(self) -> Dict[str, Any]:
        """Get device configuration."""
        return self._config['device'].copy()

    def get_logging_config(self) -> Dict[str, Any]:
        """Get logging configuration."""
        return self._config['logging'].copy()

    def get_ingest_config(self) -> Dict[str, Any]:
        """Get ingestion source configuration."""
        ingest_config = {'source': 'stdin', 'poll_timeout': 1.0}
        ingest_config.update(self._config.get('ingest') or {})
        return ingest_config

    def get_mqtt_config(self) -> Dict[str, Any]:
        """Get MQTT broker configuration, with the TLS CA certificate folded in."""
        mqtt_config = {'port': 1883}
        mqtt_config.update(self._config.get('mqtt') or {})
        mqtt_config['ca_cert'] = (self._config.get('tls') or {}).get('ca_cert')
        return mqtt_config

    def get_data_processing_config(self) -> Dict[str, Any]:
        """Get data processing configuration."""
        return self._config.get('data_processing', {})

    def get_retry_config(self) -> Dict[str, Any]:
        """Get retry configuration."""
        return self._config.get('retry', {
            'max_attempts': 3,
            'backoff_factor': 2,
            'initial_delay': 1.0
        })

    def get_alerts_config(self) -> Dict[str, Any]:
        """Get alert thresholds."""
        alerts_config = {'temp_max': 30.0, 'temp_min': 15.0, 'humidity_max': 85.0}
        alerts_config.update(self._config.get('alerts') or {})
        return alerts_config

    def get_report_config(self) -> Dict[str, Any]:
        """Get report formatting configuration."""
        report_config = {'pressure_unit': 'hpa'}
        report_config.update(self._config.get('report') or {})
        return report_config

    @property
    def config_path(self) -> str:
        """Get path to configuration file."""
        return self._config_path
