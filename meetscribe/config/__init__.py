"""Simple YAML configuration loader for meetscribe."""

import os
import copy
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "meetscribe.yaml"

DEFAULTS: Dict[str, Any] = {
    'audio': {
        'sample_rate': 16000,
        'chunk_size': 1024,
        'channels': 1,
        'device_name': None,
    },
    'transcription': {
        'backend': 'whisper',
        'chunk_seconds': 8,
        'silence_threshold_chunks': 4,
        'silence_amplitude_threshold': 100,
        'max_concurrent_requests': 4,
        'stop_grace_seconds': 5.0,
        'request_timeout_seconds': 30.0,
        'cost_per_minute': 0.006,
        'system_messages': True,
    },
    'google_cloud': {
        'credentials_path': None,
        'language': 'en-US',
        'use_enhanced_model': True,
        'enable_automatic_punctuation': True,
        'model': 'latest_long',
    },
    'openai': {
        'api_key': None,
        'model': 'whisper-1',
        'base_url': 'https://api.openai.com/v1',
    },
    'storage': {
        'data_directory': 'data',
        'transcripts_directory': 'data/transcripts',
    },
    'monitoring': {
        'inactivity_timeout_minutes': 30,
        'warning_interval_minutes': 60,
        'check_interval_seconds': 30.0,
    },
    'logging': {
        'level': 'INFO',
        'file_path': 'data/logs/meetscribe.log',
        'console_output': True,
    },
}

# Keys resolved relative to the config file's directory
PATH_KEYS = (
    'google_cloud.credentials_path',
    'storage.data_directory',
    'storage.transcripts_directory',
    'logging.file_path',
)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class MeetscribeConfig:
    """meetscribe configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, uses meetscribe.yaml in the
                        current directory when present, otherwise built-in defaults.

        Raises:
            ConfigurationError: if an explicit config file is missing or invalid
        """
        if config_path is None:
            candidate = Path.cwd() / DEFAULT_CONFIG_NAME
            self.config_file = candidate if candidate.exists() else None
        else:
            self.config_file = Path(config_path)
            if not self.config_file.exists():
                raise ConfigurationError(f"Configuration file not found: {self.config_file}")

        if self.config_file:
            logger.info(f"Loading configuration from: {self.config_file}")
        else:
            logger.info("No configuration file found, using defaults")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load the YAML file (if any) and merge it over the defaults."""
        file_config: Dict[str, Any] = {}
        if self.config_file:
            try:
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    file_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in configuration file: {e}") from e
            except OSError as e:
                raise ConfigurationError(f"Failed to load configuration: {e}") from e

            if not isinstance(file_config, dict):
                raise ConfigurationError(f"Configuration file must contain a mapping, got {type(file_config).__name__}")

        config = _deep_merge(DEFAULTS, file_config)

        if not config['openai'].get('api_key'):
            config['openai']['api_key'] = os.environ.get('OPENAI_API_KEY')

        self._resolve_paths(config)
        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths relative to the config file location."""
        if not self.config_file:
            return
        config_dir = self.config_file.parent
        for key_path in PATH_KEYS:
            section, key = key_path.split('.')
            value = config.get(section, {}).get(key)
            if value and not os.path.isabs(value):
                config[section][key] = str(config_dir / value)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'google_cloud.language').

        Args:
            key_path: Dot-separated key path (e.g., 'google_cloud.credentials_path')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'google_cloud.language')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_google_credentials_path(self) -> str:
        """Get Google credentials path.

        Raises:
            ConfigurationError: if the path is not configured or the file does not exist
        """
        creds_path = self.get('google_cloud.credentials_path')
        if not creds_path:
            raise ConfigurationError(f"Google credentials path not configured in {DEFAULT_CONFIG_NAME}")

        creds_file = Path(creds_path)
        if not creds_file.exists():
            raise ConfigurationError(f"Google credentials file not found: {creds_path}")

        return str(creds_file.absolute())

    def get_openai_api_key(self) -> str:
        api_key = self.get('openai.api_key')
        if not api_key:
            raise ConfigurationError("OpenAI API key not configured (set openai.api_key or OPENAI_API_KEY)")
        return api_key

    def get_data_directory(self) -> str:
        """Get data directory path."""
        data_dir = self.get('storage.data_directory', 'data')
        return str(Path(data_dir).absolute())

    def get_transcripts_directory(self) -> str:
        transcripts_dir = self.get('storage.transcripts_directory', 'data/transcripts')
        return str(Path(transcripts_dir).absolute())


def load_config(config_path: Optional[str] = None) -> MeetscribeConfig:
    """Load configuration from `config_path` (or the default location)."""
    return MeetscribeConfig(config_path)
