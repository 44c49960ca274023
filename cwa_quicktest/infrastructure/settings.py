"""Application Settings and Configuration.

This module provides application-wide settings that combine configuration
from the configuration manager with application-specific defaults.

Security Impact:
    - Settings are loaded from secure configuration sources
    - Sensitive values are never logged
"""

import os
from typing import Optional

from cwa_quicktest.infrastructure.config_manager import ConfigManager

# Application metadata
APP_NAME = "cwa-quicktest"
APP_VERSION = "1.0.0"


class Settings:
    """Application settings loaded from configuration manager and environment."""

    def __init__(self):
        """Initialize settings from configuration manager and environment."""
        self._config_manager: Optional[ConfigManager] = None

        self.app_name = os.getenv("CWA_APP_NAME", APP_NAME)
        self.app_version = APP_VERSION

        # Logging
        self.log_level = os.getenv("CWA_LOG_LEVEL", "INFO")
        self.log_json = os.getenv("CWA_LOG_JSON", "false").lower() == "true"

    @property
    def config_manager(self) -> ConfigManager:
        """Environment configuration, loaded lazily on first access.

        Commands layer their own overrides on top of its "client" section.
        """
        if self._config_manager is None:
            self._config_manager = ConfigManager.from_environment()
        return self._config_manager


# Global settings instance
settings = Settings()
