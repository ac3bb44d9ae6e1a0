#!/usr/bin/env python3
"""
Centralized Configuration Manager

Provides a single source of truth for all application configuration,
including environment variables, defaults, and validation.
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Optional, Dict

from core.env_loader import load_env_file, get_env_var, is_placeholder
from core.models.analysis import CONTEXT_PRESETS
from core.analysis.cultural import CULTURAL_CONTEXTS

logger = logging.getLogger(__name__)


@dataclass
class StorageConfig:
    """Backing store configuration."""
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    table_name: str = "blindspots_analyses"


@dataclass
class IntegrationConfig:
    """External integration configuration."""
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    google_api_key: Optional[str] = None
    google_project_id: Optional[str] = None
    github_token: Optional[str] = None
    github_owner: Optional[str] = None
    github_repo: str = "blind-spot-analyses"


@dataclass
class ApplicationConfig:
    """Core application configuration."""
    request_timeout: int = 30

    # Capture settings
    live_capture_interval_seconds: int = 5
    frame_samples: int = 5
    camera_index: int = 0

    # Analysis defaults
    default_context_preset: str = "meeting"
    default_cultural_context: str = "western"
    export_dir: str = "exports"

    # Models
    openai_model: str = "gpt-4o-mini"
    anthropic_model: str = "claude-3-haiku-20240307"

    # Logging
    log_level: str = "INFO"
    verbose_logging: bool = False


@dataclass
class Config:
    """Master configuration container."""
    storage: StorageConfig
    integrations: IntegrationConfig
    app: ApplicationConfig

    environment: str = field(default_factory=lambda: os.getenv('ENVIRONMENT', 'development'))

    def has_openai(self) -> bool:
        """Check if OpenAI integration is available."""
        key = self.integrations.openai_api_key
        return not is_placeholder(key) and key.startswith('sk-')

    def has_anthropic(self) -> bool:
        """Check if Anthropic integration is available."""
        return not is_placeholder(self.integrations.anthropic_api_key)

    def has_google(self) -> bool:
        """Check if Google Vision integration is available."""
        return not is_placeholder(self.integrations.google_api_key)

    def has_google_video(self) -> bool:
        """Video analysis needs the Google key plus a project id."""
        return self.has_google() and not is_placeholder(self.integrations.google_project_id)

    def has_supabase(self) -> bool:
        """Check if the Supabase backing store is available."""
        url = self.storage.supabase_url
        return (not is_placeholder(url) and url.startswith('https://')
                and not is_placeholder(self.storage.supabase_anon_key))

    def has_github(self) -> bool:
        """Check if GitHub archival is available."""
        return not is_placeholder(self.integrations.github_token) and not is_placeholder(self.integrations.github_owner)


class ConfigManager:
    """Manages application configuration with validation and environment loading."""

    def __init__(self, env_file_path: str = ".env"):
        """
        Initialize configuration manager.

        Args:
            env_file_path: Path to .env file relative to project root
        """
        self._config: Optional[Config] = None
        self._env_file_path = env_file_path
        load_env_file(env_file_path)

    def get_config(self, force_reload: bool = False) -> Config:
        """
        Get application configuration.

        Args:
            force_reload: Force reloading configuration from environment

        Returns:
            Complete configuration object
        """
        if self._config is None or force_reload:
            self._config = self._build_config()
        return self._config

    def _build_config(self) -> Config:
        """Build configuration from environment variables."""
        storage_config = StorageConfig(
            supabase_url=get_env_var('SUPABASE_URL'),
            supabase_anon_key=get_env_var('SUPABASE_ANON_KEY'),
            table_name=get_env_var('SUPABASE_TABLE', 'blindspots_analyses')
        )

        integration_config = IntegrationConfig(
            openai_api_key=get_env_var('OPENAI_API_KEY'),
            anthropic_api_key=get_env_var('ANTHROPIC_API_KEY'),
            google_api_key=get_env_var('GOOGLE_API_KEY'),
            google_project_id=get_env_var('GOOGLE_PROJECT_ID'),
            github_token=get_env_var('GITHUB_TOKEN'),
            github_owner=get_env_var('GITHUB_OWNER'),
            github_repo=get_env_var('GITHUB_REPO', 'blind-spot-analyses')
        )

        app_config = ApplicationConfig(
            request_timeout=int(get_env_var('REQUEST_TIMEOUT', '30')),
            live_capture_interval_seconds=int(get_env_var('LIVE_CAPTURE_INTERVAL', '5')),
            frame_samples=int(get_env_var('FRAME_SAMPLES', '5')),
            camera_index=int(get_env_var('CAMERA_INDEX', '0')),
            default_context_preset=get_env_var('DEFAULT_CONTEXT_PRESET', 'meeting').lower(),
            default_cultural_context=get_env_var('DEFAULT_CULTURAL_CONTEXT', 'western').lower(),
            export_dir=get_env_var('EXPORT_DIR', 'exports'),
            openai_model=get_env_var('OPENAI_MODEL', 'gpt-4o-mini'),
            anthropic_model=get_env_var('ANTHROPIC_MODEL', 'claude-3-haiku-20240307'),
            log_level=get_env_var('LOG_LEVEL', 'INFO').upper(),
            verbose_logging=get_env_var('VERBOSE_LOGGING', 'false').lower() == 'true'
        )

        config = Config(
            storage=storage_config,
            integrations=integration_config,
            app=app_config
        )

        self._validate_config(config)
        return config

    def _validate_config(self, config: Config) -> None:
        """Validate configuration values."""
        errors = []

        if config.app.request_timeout < 1:
            errors.append("REQUEST_TIMEOUT must be at least 1 second")

        if config.app.live_capture_interval_seconds < 1:
            errors.append("LIVE_CAPTURE_INTERVAL must be at least 1 second")

        if config.app.frame_samples < 1 or config.app.frame_samples > 60:
            errors.append("FRAME_SAMPLES must be between 1 and 60")

        if config.app.default_context_preset not in CONTEXT_PRESETS:
            errors.append(f"DEFAULT_CONTEXT_PRESET must be one of: {', '.join(CONTEXT_PRESETS)}")

        if not config.app.default_cultural_context:
            errors.append("DEFAULT_CULTURAL_CONTEXT must not be empty")
        elif config.app.default_cultural_context not in CULTURAL_CONTEXTS:
            # Undefined cultures are a pass-through, not an error
            logger.warning(f"Cultural context '{config.app.default_cultural_context}' has no profile; "
                           f"signals will not be adjusted")

        valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if config.app.log_level not in valid_log_levels:
            errors.append(f"LOG_LEVEL must be one of: {', '.join(valid_log_levels)}")

        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")

        logger.debug("Configuration validation passed")

    def update_logging(self) -> None:
        """Configure logging based on current configuration."""
        config = self.get_config()

        numeric_level = getattr(logging, config.app.log_level)
        logging.getLogger().setLevel(numeric_level)

        if config.app.verbose_logging:
            format_str = '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
        else:
            format_str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

        for handler in logging.getLogger().handlers:
            handler.setLevel(numeric_level)
            formatter = logging.Formatter(format_str, datefmt='%Y-%m-%d %H:%M:%S')
            handler.setFormatter(formatter)

    def get_integration_status(self) -> Dict[str, bool]:
        """Get status of all integrations (configuration only, no network calls)."""
        config = self.get_config()
        return {
            'supabase': config.has_supabase(),
            'github': config.has_github(),
            'openai': config.has_openai(),
            'anthropic': config.has_anthropic(),
            'google_vision': config.has_google(),
            'google_video': config.has_google_video()
        }


# Global configuration manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get global configuration manager instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def get_config() -> Config:
    """Get application configuration."""
    return get_config_manager().get_config()


def reset_config() -> None:
    """Reset configuration manager (useful for testing)."""
    global _config_manager
    _config_manager = None
