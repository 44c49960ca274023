"""Configuration Manager for Secure Credential Handling.

This module provides a secure configuration manager for the client
certificate, private key, key passphrase and stage selection used to talk to
the result API.

Security Impact:
    - The key passphrase is held as SecretStr and never logged
    - Supports multiple configuration sources (environment variables, .env, JSON file)
    - Validates configuration before use
    - Prevents passphrase leakage in stack traces and reprs

Architecture:
    - Follows Hexagonal Architecture: Infrastructure layer isolated from domain
    - Type-safe configuration using Pydantic models
    - Fail-fast validation prevents runtime errors
"""

import json
import os
import logging
from pathlib import Path
from typing import Optional, Dict, Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, SecretStr, ValidationError as PydanticValidationError

from cwa_quicktest.domain.enums import DEFAULT_STAGE, Stage
from cwa_quicktest.domain.ports import ConfigurationError

logger = logging.getLogger(__name__)

# Seconds before an unanswered POST is abandoned
DEFAULT_TIMEOUT = 20.0


class ClientConfig(BaseModel):
    """Result API client configuration with secure credential handling.

    Parameters:
        cert_path: Path to the client certificate (.cer) issued for the result API
        key_path: Path to the private key (.key) created for the signing request
        key_passphrase: Passphrase of the private key (SecretStr - never logged)
        skip_passphrase_check: Skip the load-and-discard passphrase check
        stage: Deployment stage (PRODUCTION, WRU, INT)
        timeout: Request timeout in seconds
        server_ca: CA bundle used to verify the server certificate
    """

    cert_path: Optional[str] = Field(None, description="Client certificate file")
    key_path: Optional[str] = Field(None, description="Private key file")
    key_passphrase: Optional[SecretStr] = Field(None, description="Key passphrase (secret)")
    skip_passphrase_check: bool = Field(default=False, description="Skip passphrase validation")
    stage: Stage = Field(default=DEFAULT_STAGE, description="Deployment stage")
    timeout: float = Field(default=DEFAULT_TIMEOUT, description="Request timeout in seconds")
    server_ca: Optional[str] = Field(None, description="CA bundle for server verification")

    @field_validator("stage", mode="before")
    @classmethod
    def validate_stage(cls, v: Any) -> Stage:
        """Validate the stage name (case-insensitive)."""
        if v is None or v == "":
            return DEFAULT_STAGE
        try:
            return Stage.parse(v)
        except ConfigurationError as e:
            raise ValueError(str(e)) from None

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Timeout must be positive. Got: {v}")
        return v

    def get_passphrase(self) -> Optional[str]:
        """Return the plain passphrase for handing to the TLS layer."""
        if self.key_passphrase is None:
            return None
        return self.key_passphrase.get_secret_value()

    def require_credentials(self) -> None:
        """Fail fast when certificate or key are not configured.

        Raises:
            ConfigurationError: If cert_path or key_path is unset
        """
        if not self.cert_path:
            raise ConfigurationError("No client certificate configured (CWA_CERT_FILE)", setting="cert_path")
        if not self.key_path:
            raise ConfigurationError("No private key configured (CWA_KEY_FILE)", setting="key_path")


class ConfigManager:
    """Secure configuration manager for result API credentials and settings.

    Example Usage:
        ```python
        # Load from environment variables
        config = ConfigManager.from_environment()
        client_config = config.get_client_config()

        # Load from file
        config = ConfigManager.from_file("cwa.json")
        client_config = config.get_client_config()
        ```
    """

    def __init__(self, config_data: Dict[str, Any]):
        """Initialize configuration manager.

        Parameters:
            config_data: Configuration dictionary with a "client" section
        """
        self._config_data = config_data
        self._client_config: Optional[ClientConfig] = None

    @classmethod
    def from_environment(cls) -> 'ConfigManager':
        """Load configuration from environment variables.

        Environment Variables:
            - CWA_CERT_FILE: Client certificate path
            - CWA_KEY_FILE: Private key path
            - CWA_KEY_PASSPHRASE: Private key passphrase (secret)
            - CWA_SKIP_PASSPHRASE_CHECK: "true" to skip the passphrase check
            - CWA_STAGE: PRODUCTION, WRU or INT (default: WRU)
            - CWA_TIMEOUT: Request timeout in seconds
            - CWA_SERVER_CA: CA bundle for server verification

        A .env file in the current working directory is loaded first if present.

        Returns:
            ConfigManager instance
        """
        env_path = Path.cwd() / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            logger.debug(f"Loaded environment variables from {env_path}")

        timeout = os.getenv("CWA_TIMEOUT")
        try:
            timeout_value = float(timeout) if timeout else DEFAULT_TIMEOUT
        except ValueError:
            raise ConfigurationError(f"Invalid CWA_TIMEOUT: {timeout}", setting="timeout") from None

        config_data = {
            "client": {
                "cert_path": os.getenv("CWA_CERT_FILE"),
                "key_path": os.getenv("CWA_KEY_FILE"),
                "key_passphrase": os.getenv("CWA_KEY_PASSPHRASE"),
                "skip_passphrase_check": os.getenv("CWA_SKIP_PASSPHRASE_CHECK", "false").lower() == "true",
                "stage": os.getenv("CWA_STAGE", DEFAULT_STAGE.value),
                "timeout": timeout_value,
                "server_ca": os.getenv("CWA_SERVER_CA"),
            }
        }

        return cls(config_data)

    @classmethod
    def from_file(cls, config_path: str) -> 'ConfigManager':
        """Load configuration from a JSON file.

        Parameters:
            config_path: Path to configuration file

        Returns:
            ConfigManager instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ConfigurationError: If config file is invalid
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        # Files holding a passphrase should be 600
        stat_info = config_file.stat()
        if stat_info.st_mode & 0o077 != 0:
            logger.warning(
                f"Configuration file has overly permissive permissions: {config_path}. "
                "Consider setting to 600 for credential files."
            )

        try:
            with open(config_file, 'r') as f:
                config_data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in configuration file: {str(e)}")

        if not isinstance(config_data, dict):
            raise ConfigurationError("Configuration file must contain a JSON object")

        return cls(config_data)

    def get_client_config(self) -> ClientConfig:
        """Get the validated client configuration.

        Raises:
            ConfigurationError: If the configuration does not validate
        """
        if self._client_config is None:
            client_data = dict(self._config_data.get("client", {}))

            if client_data.get("key_passphrase"):
                client_data["key_passphrase"] = SecretStr(client_data["key_passphrase"])
            else:
                client_data.pop("key_passphrase", None)

            try:
                self._client_config = ClientConfig(**client_data)
            except PydanticValidationError as e:
                # Passphrase values are SecretStr and do not show up here
                raise ConfigurationError(f"Invalid client configuration: {e}") from e

        return self._client_config

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key.

        Parameters:
            key: Configuration key (supports dot notation, e.g., "client.stage")
            default: Default value if key not found
        """
        keys = key.split(".")
        value = self._config_data

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default

        return value if value is not None else default


def get_client_config() -> ClientConfig:
    """Convenience function to get the client configuration from environment."""
    config_manager = ConfigManager.from_environment()
    return config_manager.get_client_config()
