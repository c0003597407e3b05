"""
Configuration management for the Prompt Matrix routing system.
"""

import json
import os
import re
from dataclasses import asdict
from pathlib import Path
from typing import Optional, Dict, Any
import logging

from ..models.config import SystemConfig, ProviderConfig, RouterConfig, LoggingConfig
from ..models.enums import ProviderType
from .error_handling import ConfigurationError

PROVIDER_DEFAULT_BASE_URLS: Dict[str, str] = {
    ProviderType.DEEPSEEK.value: "https://api.deepseek.com/v1",
    ProviderType.OPENAI.value: "https://api.openai.com/v1",
    ProviderType.GEMINI.value: "https://generativelanguage.googleapis.com/v1beta",
    ProviderType.OPENROUTER.value: "https://openrouter.ai/api/v1",
    ProviderType.CUSTOM.value: "",
}

# Providers whose endpoints live under a versioned path
_VERSIONED_PROVIDERS = {
    ProviderType.DEEPSEEK.value,
    ProviderType.OPENAI.value,
    ProviderType.OPENROUTER.value,
}

ENV_API_KEY = "PROMPT_MATRIX_API_KEY"
ENV_BASE_URL = "PROMPT_MATRIX_BASE_URL"
ENV_MODEL = "PROMPT_MATRIX_MODEL"


def normalize_base_url(provider: str, base_url: Optional[str]) -> str:
    """
    Normalize a provider base URL.

    Empty values fall back to the provider default. Trailing slashes are
    stripped and a ``/v1`` suffix is added for providers that expect one.
    """
    raw = (base_url or "").strip()
    if not raw:
        return PROVIDER_DEFAULT_BASE_URLS.get(provider, "")

    trimmed = raw.rstrip("/")
    if provider in _VERSIONED_PROVIDERS:
        return trimmed if re.search(r"/v\d+($|/)", trimmed, re.IGNORECASE) else f"{trimmed}/v1"
    return trimmed


def is_configured(config: ProviderConfig) -> bool:
    """True when the provider config has both an API key and a model."""
    return bool(config.api_key) and bool(config.model)


class ConfigManager:
    """
    Manages system configuration loading, validation, and updates.

    Values are layered as: stored file > environment bootstrap > defaults.
    """

    def __init__(self, config_path: Optional[str] = None, environ: Optional[Dict[str, str]] = None):
        self.config_path = config_path or "config.json"
        self.environ = environ if environ is not None else os.environ
        self._config: Optional[SystemConfig] = None
        self.logger = logging.getLogger(__name__)

    def load_config(self) -> SystemConfig:
        """
        Load configuration from file or create default configuration.

        Returns:
            SystemConfig instance

        Raises:
            ConfigurationError: If configuration loading fails
        """
        try:
            config_data: Dict[str, Any] = {}
            stored = Path(self.config_path).exists()
            if stored:
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    config_data = json.load(f)
                self.logger.info(f"Configuration loaded from {self.config_path}")

            env_provider = self._env_provider_config()
            stored_provider = {
                key: value for key, value in config_data.get('provider_config', {}).items()
                if value not in ("", None)
            }
            config_data['provider_config'] = {**env_provider, **stored_provider}

            self._config = self._dict_to_config(config_data)
            self._config.provider_config.base_url = normalize_base_url(
                self._config.provider_config.provider, self._config.provider_config.base_url
            )
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Failed to load configuration: {str(e)}")

        self._validate_config(self._config)
        if not stored and not env_provider:
            self.save_config()
            self.logger.info("Default configuration created")
        return self._config

    def save_config(self, config: Optional[SystemConfig] = None) -> None:
        """
        Save configuration to file.

        Args:
            config: Configuration to save (uses current config if None)

        Raises:
            ConfigurationError: If configuration saving fails
        """
        config_to_save = config or self._config
        if not config_to_save:
            raise ConfigurationError("No configuration to save")

        try:
            config_dict = self._config_to_dict(config_to_save)
            Path(self.config_path).parent.mkdir(parents=True, exist_ok=True)

            with open(self.config_path, 'w', encoding='utf-8') as f:
                json.dump(config_dict, f, indent=2, ensure_ascii=False, default=str)

            self.logger.info(f"Configuration saved to {self.config_path}")

        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration: {str(e)}")

    def get_config(self) -> SystemConfig:
        """
        Get current configuration, loading if necessary.

        Returns:
            SystemConfig instance
        """
        if self._config is None:
            self._config = self.load_config()
        return self._config

    def update_config(self, updates: Dict[str, Any]) -> SystemConfig:
        """
        Update configuration with new values.

        Args:
            updates: Dictionary of configuration updates

        Returns:
            Updated SystemConfig instance
        """
        current_config = self.get_config()
        config_dict = self._config_to_dict(current_config)

        self._deep_update(config_dict, updates)

        updated_config = self._dict_to_config(config_dict)
        updated_config.provider_config.base_url = normalize_base_url(
            updated_config.provider_config.provider, updated_config.provider_config.base_url
        )
        self._validate_config(updated_config)

        self._config = updated_config
        self.save_config()

        return updated_config

    def _env_provider_config(self) -> Dict[str, Any]:
        """Read the provider bootstrap from environment variables."""
        api_key = (self.environ.get(ENV_API_KEY) or "").strip()
        base_url = (self.environ.get(ENV_BASE_URL) or "").strip()
        model = (self.environ.get(ENV_MODEL) or "").strip()
        if not (api_key or base_url or model):
            return {}

        env_config: Dict[str, Any] = {
            'provider': ProviderType.DEEPSEEK.value,
            'model': model or "deepseek-chat",
        }
        if api_key:
            env_config['api_key'] = api_key
        if base_url:
            env_config['base_url'] = base_url
        return env_config

    def _validate_config(self, config: SystemConfig) -> None:
        """
        Validate configuration settings.

        Args:
            config: Configuration to validate

        Raises:
            ConfigurationError: If validation fails
        """
        provider = config.provider_config
        supported = [p.value for p in ProviderType]
        if provider.provider not in supported:
            raise ConfigurationError(f"Unsupported provider: {provider.provider}", config_key="provider")

        if provider.provider == ProviderType.CUSTOM.value and not provider.custom_provider_id:
            raise ConfigurationError("Custom provider requires custom_provider_id", config_key="custom_provider_id")

        if not provider.api_key:
            self.logger.warning("Provider API key not configured")

        if provider.temperature is not None and not 0 <= provider.temperature <= 2:
            raise ConfigurationError("Temperature must be between 0 and 2", config_key="temperature")

        if provider.top_p is not None and not 0 < provider.top_p <= 1:
            raise ConfigurationError("top_p must be in (0, 1]", config_key="top_p")

        if provider.max_tokens is not None and provider.max_tokens <= 0:
            raise ConfigurationError("max_tokens must be positive", config_key="max_tokens")

        if config.router_config.max_history <= 0:
            raise ConfigurationError("max_history must be positive", config_key="max_history")

        if not 0 <= config.router_config.confidence_threshold <= 1:
            raise ConfigurationError("Confidence threshold must be between 0 and 1", config_key="confidence_threshold")

    def _dict_to_config(self, config_dict: Dict[str, Any]) -> SystemConfig:
        """Convert dictionary to SystemConfig object."""
        try:
            return SystemConfig(
                provider_config=ProviderConfig(**config_dict.get('provider_config', {})),
                router_config=RouterConfig(**config_dict.get('router_config', {})),
                logging_config=LoggingConfig(**config_dict.get('logging_config', {})),
                prompt_dir=config_dict.get('prompt_dir'),
                custom_providers_path=config_dict.get('custom_providers_path'),
                debug_mode=config_dict.get('debug_mode', False),
                metadata=config_dict.get('metadata', {})
            )
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration field: {str(e)}")

    def _config_to_dict(self, config: SystemConfig) -> Dict[str, Any]:
        """Convert SystemConfig object to dictionary."""
        return asdict(config)

    def _deep_update(self, base_dict: Dict[str, Any], updates: Dict[str, Any]) -> None:
        """Recursively update nested dictionary."""
        for key, value in updates.items():
            if key in base_dict and isinstance(base_dict[key], dict) and isinstance(value, dict):
                self._deep_update(base_dict[key], value)
            else:
                base_dict[key] = value
