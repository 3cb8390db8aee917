"""Configuration management for the Firestore rules checks."""

import json
import os
import yaml
from typing import Dict, Any, Optional, Tuple
import logging

from ..models.core import ToolConfig
from .firebase_config import FirebaseConfigValidator


logger = logging.getLogger(__name__)

EMULATOR_HOST_ENV = "FIRESTORE_EMULATOR_HOST"


def parse_host_port(value: str) -> Tuple[str, int]:
    """Split a "host:port" string as used by FIRESTORE_EMULATOR_HOST

    Raises:
        ValueError: If the value has no port or the port is not an integer
    """
    host, sep, port = value.strip().rpartition(':')
    if not sep or not host:
        raise ValueError(f"Expected host:port, got '{value}'")
    try:
        return host.strip('[]'), int(port)
    except ValueError:
        raise ValueError(f"Invalid port in '{value}'")


class ConfigManager:
    """Manages loading and validation of the checker configuration"""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration manager

        Args:
            config_path: Path to configuration file. If None, searches for default locations.
        """
        self.config_path = config_path
        self._config_cache: Optional[ToolConfig] = None

    def load_config(self, force_reload: bool = False) -> ToolConfig:
        """Load configuration from file or return default

        Args:
            force_reload: Force reload from file even if cached

        Returns:
            ToolConfig instance with loaded or default configuration
        """
        if self._config_cache is not None and not force_reload:
            return self._config_cache

        config_data = self._load_config_file()
        defaults = ToolConfig()

        try:
            config = ToolConfig(
                project_id=config_data.get('project_id', defaults.project_id),
                emulator_host=config_data.get('emulator_host', defaults.emulator_host),
                emulator_port=config_data.get('emulator_port', defaults.emulator_port),
                rules_file=config_data.get('rules_file', defaults.rules_file),
                firebase_config=config_data.get('firebase_config', defaults.firebase_config),
                indexes_file=config_data.get('indexes_file', defaults.indexes_file),
                request_timeout=float(config_data.get('request_timeout', defaults.request_timeout)),
                log_directory=config_data.get('log_directory', defaults.log_directory),
                log_level=config_data.get('log_level', defaults.log_level),
            )
        except Exception as e:
            logger.warning(f"Error loading configuration: {e}. Using defaults.")
            config = ToolConfig()
            config_data = {}

        # The port declared for the emulator in firebase.json wins over the default
        if 'emulator_port' not in config_data:
            declared = self._firebase_emulator_port(config.firebase_config)
            if declared is not None:
                config.emulator_port = declared

        self._apply_environment(config)
        self._config_cache = config
        logger.info(f"Configuration loaded successfully from {self.config_path or 'defaults'}")
        return self._config_cache

    def _load_config_file(self) -> Dict[str, Any]:
        """Load configuration from file

        Returns:
            Dictionary with configuration data or empty dict if no file found
        """
        config_file = self._find_config_file()

        if not config_file or not os.path.exists(config_file):
            logger.info("No configuration file found, using defaults")
            return {}

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                if config_file.endswith('.json'):
                    data = json.load(f)
                elif config_file.endswith(('.yml', '.yaml')):
                    data = yaml.safe_load(f)
                else:
                    logger.warning(f"Unsupported config file format: {config_file}")
                    return {}

            self._validate_config_data(data)
            logger.info(f"Configuration loaded from {config_file}")
            return data

        except Exception as e:
            logger.error(f"Error reading configuration file {config_file}: {e}")
            return {}

    def _find_config_file(self) -> Optional[str]:
        """Find configuration file in standard locations

        Returns:
            Path to configuration file or None if not found
        """
        if self.config_path:
            return self.config_path

        search_paths = [
            'asset_rules.json',
            'asset_rules.yml',
            'asset_rules.yaml',
            'config/asset_rules.json',
            'config/asset_rules.yml',
            'config/asset_rules.yaml',
            os.path.expanduser('~/.asset_rules/config.json'),
            os.path.expanduser('~/.asset_rules/config.yml'),
        ]

        for path in search_paths:
            if os.path.exists(path):
                return path

        return None

    def _validate_config_data(self, data: Dict[str, Any]) -> None:
        """Validate configuration data structure

        Args:
            data: Configuration data to validate

        Raises:
            ValueError: If configuration data is invalid
        """
        if not isinstance(data, dict):
            raise ValueError("Configuration must be a dictionary")

        for str_key in ['project_id', 'emulator_host', 'rules_file', 'firebase_config',
                        'indexes_file', 'log_directory']:
            if str_key in data:
                if not isinstance(data[str_key], str):
                    raise ValueError(f"{str_key} must be a string")
                if not data[str_key].strip():
                    raise ValueError(f"{str_key} cannot be empty")

        if 'emulator_port' in data:
            port = data['emulator_port']
            if isinstance(port, bool) or not isinstance(port, int):
                raise ValueError("emulator_port must be an integer")
            if not 0 < port < 65536:
                raise ValueError(f"emulator_port out of range: {port}")

        if 'request_timeout' in data:
            timeout = data['request_timeout']
            if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
                raise ValueError("request_timeout must be a number")
            if timeout <= 0:
                raise ValueError("request_timeout must be positive")

        if 'log_level' in data:
            if not isinstance(logging.getLevelName(str(data['log_level']).upper()), int):
                raise ValueError(f"Unknown log_level: {data['log_level']}")

    def _firebase_emulator_port(self, firebase_config: str) -> Optional[int]:
        """Read the Firestore emulator port declared in firebase.json, if any"""
        endpoint = FirebaseConfigValidator(firebase_json_path=firebase_config).emulator_endpoint('firestore')
        if endpoint is None:
            logger.debug(f"No emulator port declared in {firebase_config}")
            return None
        port = endpoint['port']
        if isinstance(port, bool) or not isinstance(port, int):
            return None
        return port

    def _apply_environment(self, config: ToolConfig) -> None:
        """Apply FIRESTORE_EMULATOR_HOST on top of the file configuration"""
        value = os.environ.get(EMULATOR_HOST_ENV)
        if not value:
            return
        try:
            config.emulator_host, config.emulator_port = parse_host_port(value)
            logger.debug(f"Using emulator address from {EMULATOR_HOST_ENV}: {value}")
        except ValueError as e:
            logger.warning(f"Ignoring {EMULATOR_HOST_ENV}: {e}")

    def save_config_template(self, output_path: str) -> None:
        """Generate and save a configuration file template

        Args:
            output_path: Path where to save the template
        """
        defaults = ToolConfig()
        template = {
            "project_id": defaults.project_id,
            "emulator_host": defaults.emulator_host,
            "emulator_port": defaults.emulator_port,
            "rules_file": defaults.rules_file,
            "firebase_config": defaults.firebase_config,
            "indexes_file": defaults.indexes_file,
            "request_timeout": defaults.request_timeout,
            "log_directory": defaults.log_directory,
            "log_level": defaults.log_level,
        }

        try:
            output_dir = os.path.dirname(output_path)
            if output_dir:
                os.makedirs(output_dir, exist_ok=True)

            with open(output_path, 'w', encoding='utf-8') as f:
                if output_path.endswith(('.yml', '.yaml')):
                    yaml.dump(template, f, default_flow_style=False, indent=2)
                else:
                    json.dump(template, f, indent=2)

            logger.info(f"Configuration template saved to {output_path}")

        except Exception as e:
            logger.error(f"Error saving configuration template: {e}")
            raise

    def update_config(self, updates: Dict[str, Any]) -> None:
        """Update configuration with new values

        Args:
            updates: Dictionary of configuration updates
        """
        if self._config_cache is None:
            self.load_config()

        for key, value in updates.items():
            if hasattr(self._config_cache, key):
                setattr(self._config_cache, key, value)
                logger.debug(f"Updated configuration: {key} = {value}")
            else:
                logger.warning(f"Unknown configuration key: {key}")

    def reset_config(self) -> None:
        """Reset configuration cache, forcing reload on next access"""
        self._config_cache = None
        logger.debug("Configuration cache reset")


def get_default_config_manager() -> ConfigManager:
    """Get a default configuration manager instance

    Returns:
        ConfigManager instance with default settings
    """
    return ConfigManager()
