"""
Configuration handling for the Robolly generator
"""
import copy
import os
import yaml
from typing import Dict, Any, Mapping, Optional

from .services.errors import ConfigError


class Config:
    """Application configuration: defaults < YAML file < environment < CLI"""

    DEFAULT_CONFIG = {
        'api_key': None,
        'api_base_url': 'https://api.robolly.com',
        'output_dir': './output',
        'timeout': 30,
        'pagination': {
            'page_size': 100,
            'max_pages': 100,
        },
        'image': {
            'format': '.jpg',       # .png costs 3 credits, .jpg costs 1
            'scale': '1',
            'convert': '',
            'extension': '',
        },
        'video': {
            'format': '.mp4',
            'duration': 5,          # seconds
            'fps': 24,
            'convert': '',
            'extension': '',
        },
        'movie': {
            'attempts': 5,
            'start_retries': 3,
            'start_retry_delay': 2,
            'start_timeout': 10,
            'poll_timeout': 15,
            'min_poll_delay': 15,
            'max_poll_delay': 200,
        },
    }

    NESTED_SECTIONS = ('pagination', 'image', 'video', 'movie')

    ENV_VARS = {
        'ROBOLLY_API_KEY': 'api_key',
        'ROBOLLY_API_BASE_URL': 'api_base_url',
    }

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize the configuration

        Args:
            config_file: Path to a YAML configuration file (optional)
        """
        self.config = copy.deepcopy(self.DEFAULT_CONFIG)

        if config_file and os.path.exists(config_file):
            self.load_from_file(config_file)

    def load_from_file(self, config_file: str) -> None:
        """
        Load configuration from a YAML file

        Args:
            config_file: Path to the configuration file
        """
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                file_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Error loading configuration file: {e}") from e

        if not file_config:
            return
        if not isinstance(file_config, dict):
            raise ConfigError(f"Configuration file must contain a mapping: {config_file}")

        for key, value in file_config.items():
            if key in self.NESTED_SECTIONS and isinstance(value, dict):
                self._deep_merge(self.config.setdefault(key, {}), value)
            else:
                self.config[key] = value

    def _deep_merge(self, base: dict, update: dict) -> None:
        """
        Deep merge of nested dictionaries

        Args:
            base: Dictionary updated in place
            update: Dictionary with the new values
        """
        for key, value in update.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def update_from_env(self, environ: Optional[Mapping[str, str]] = None) -> None:
        """Apply ROBOLLY_* environment variables that are set and non-empty"""
        environ = os.environ if environ is None else environ
        for var, key in self.ENV_VARS.items():
            value = environ.get(var)
            if value:
                self.config[key] = value

    def update_from_args(self, args: Dict[str, Any]) -> None:
        """
        Update configuration from CLI arguments
        CLI arguments take precedence over the configuration file

        Args:
            args: Dictionary of CLI arguments; dotted keys address sections
        """
        for key, value in args.items():
            if value is None:
                continue
            if '.' in key:
                section, name = key.split('.', 1)
                target = self.config.setdefault(section, {})
                if not isinstance(target, dict):
                    raise ConfigError(f"Cannot set {key}: '{section}' is not a section")
                target[name] = value
            else:
                self.config[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value

        Args:
            key: Configuration key, dotted for nested values (``movie.attempts``)
            default: Value returned when the key does not exist

        Returns:
            The configuration value
        """
        if '.' not in key:
            return self.config.get(key, default)
        node: Any = self.config
        for part in key.split('.'):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def get_all(self) -> Dict[str, Any]:
        """
        Get the whole configuration

        Returns:
            A copy of the configuration dictionary
        """
        return copy.deepcopy(self.config)
