"""YAML configuration loader for LiveNotes."""

import os
import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)

DEFAULT_PLACEHOLDER_NOTES = "Waiting for more meaningful content to summarize."

# Dot paths resolved against the config file directory when relative
PATH_KEYS = (
    'google_cloud.credentials_path',
    'logging.file_path',
    'export.directory',
)


class LiveNotesConfig:
    """LiveNotes configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, looks for livenotes.yaml
                        in the current directory.
        """
        self.config_file = Path(config_path or "livenotes.yaml")

        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}") from e

        if not config:
            raise ValueError("Configuration file is empty")
        if not isinstance(config, dict):
            raise ValueError("Configuration file must contain a mapping at the top level")

        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Make the relative paths in PATH_KEYS relative to the config file, not the cwd."""
        config_dir = self.config_file.parent
        for key_path in PATH_KEYS:
            section_name, _, key = key_path.partition('.')
            section = config.get(section_name)
            if not isinstance(section, dict):
                continue
            value = section.get(key)
            if value and not os.path.isabs(value):
                section[key] = str(config_dir / value)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'summarization.debounce_seconds').

        Args:
            key_path: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value = self.config
        for key in key_path.split('.'):
            if not isinstance(value, dict) or key not in value:
                return default
            value = value[key]
        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'audio.chunk_duration_seconds')
            value: Value to set
        """
        *parents, leaf = key_path.split('.')
        section = self.config
        for key in parents:
            section = section.setdefault(key, {})
        section[leaf] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_google_credentials_path(self) -> str:
        """Get Google credentials path - raises if not configured or missing."""
        creds_path = self.get('google_cloud.credentials_path')
        if not creds_path:
            raise ValueError("Google credentials path not configured in livenotes.yaml")

        creds_file = Path(creds_path)
        if not creds_file.exists():
            raise FileNotFoundError(f"Google credentials file not found: {creds_path}")

        return str(creds_file.absolute())

    def get_openai_api_key(self) -> str:
        """Read the OpenAI API key from the environment variable named in the config."""
        env_name = self.get('openai.api_key_env', 'OPENAI_API_KEY')
        api_key = os.environ.get(env_name)
        if not api_key:
            raise ValueError(f"OpenAI API key not found in environment variable {env_name}")
        return api_key


@dataclass
class OrchestrationSettings:
    """Tunables for the session controller, sequencer and summarization scheduler."""
    min_transcript_length: int = 30
    debounce_seconds: float = 7.0
    finalization_poll_seconds: float = 0.5
    placeholder_notes: str = DEFAULT_PLACEHOLDER_NOTES

    def __post_init__(self):
        if self.min_transcript_length < 0:
            raise ValueError("min_transcript_length must be >= 0")
        if self.debounce_seconds < 0:
            raise ValueError("debounce_seconds must be >= 0")
        if self.finalization_poll_seconds <= 0:
            raise ValueError("finalization_poll_seconds must be > 0")

    @classmethod
    def from_config(cls, config: LiveNotesConfig) -> "OrchestrationSettings":
        return cls(
            min_transcript_length=int(config.get('summarization.min_transcript_length', 30)),
            debounce_seconds=float(config.get('summarization.debounce_seconds', 7.0)),
            finalization_poll_seconds=float(config.get('session.finalization_poll_seconds', 0.5)),
            placeholder_notes=config.get('summarization.placeholder', DEFAULT_PLACEHOLDER_NOTES),
        )
