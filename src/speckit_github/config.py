"""
Configuration management for the Speckit GitHub MCP Server.

Handles environment variables, validation, and configuration defaults.
The Config instance is built once at startup and passed to every service.
"""

import os
from typing import Optional, Dict, Any
from pathlib import Path
from dotenv import load_dotenv
from loguru import logger

from .constants import GITHUB, RETRY, SERVER
from .exceptions import ClassifiedError, ConfigurationError
from .models import AuthMode, Credential
from .validation import InputValidator, validate_repo_name


class Config:
    """Configuration manager for the Speckit GitHub MCP Server."""

    def __init__(self, env_file: Optional[str] = None):
        """
        Initialize configuration with environment variables.

        Args:
            env_file: Optional path to .env file
        """
        if env_file and Path(env_file).exists():
            load_dotenv(env_file)
        else:
            load_dotenv()

        # Credential variables per auth type: name -> (attribute, description)
        self._auth_vars = {
            AuthMode.OAUTH: {
                "GITHUB_CLIENT_ID": ("client_id", "GitHub OAuth application client ID"),
                "GITHUB_CLIENT_SECRET": ("client_secret", "GitHub OAuth application client secret"),
            },
            AuthMode.PAT: {
                "GITHUB_PERSONAL_ACCESS_TOKEN": ("personal_access_token", "GitHub personal access token"),
            },
            AuthMode.APP: {
                "GITHUB_APP_ID": ("app_id", "GitHub App ID"),
                "GITHUB_APP_PRIVATE_KEY": ("app_private_key", "GitHub App private key"),
                "GITHUB_APP_INSTALLATION_ID": ("app_installation_id", "GitHub App installation ID"),
            },
        }

        self._validate_and_load()

    def _validate_and_load(self) -> None:
        """Validate variables and load all configuration."""
        auth_type = os.getenv("GITHUB_AUTH_TYPE", AuthMode.OAUTH.value).strip().lower()
        try:
            self.auth_type = AuthMode(auth_type)
        except ValueError:
            raise ConfigurationError(
                f"Invalid GITHUB_AUTH_TYPE: {auth_type}",
                details={
                    "allowed": [mode.value for mode in AuthMode],
                    "suggestion": "Set GITHUB_AUTH_TYPE to oauth, pat or app"
                }
            )

        self._load_values()
        logger.info(f"Configuration loaded and validated successfully (auth type: {self.auth_type.value})")

    def _load_values(self) -> None:
        """Load all configuration values from environment."""
        # Credentials
        self.client_id = os.getenv("GITHUB_CLIENT_ID")
        self.client_secret = os.getenv("GITHUB_CLIENT_SECRET")
        self.oauth_token = os.getenv("GITHUB_OAUTH_TOKEN")
        self.redirect_uri = os.getenv("GITHUB_REDIRECT_URI", GITHUB.DEFAULT_REDIRECT_URI)
        self.personal_access_token = os.getenv("GITHUB_PERSONAL_ACCESS_TOKEN")
        self.app_id = os.getenv("GITHUB_APP_ID")
        self.app_private_key = os.getenv("GITHUB_APP_PRIVATE_KEY")
        self.app_installation_id = os.getenv("GITHUB_APP_INSTALLATION_ID")

        # Server configuration
        self.server_name = os.getenv("SERVER_NAME", SERVER.SERVER_NAME)
        self.environment = os.getenv("SERVER_ENV", "development").lower()
        if self.environment not in SERVER.ENVIRONMENTS:
            raise ConfigurationError(
                f"Invalid SERVER_ENV: {self.environment}",
                details={"allowed": list(SERVER.ENVIRONMENTS)}
            )

        self.default_repo = os.getenv("GITHUB_DEFAULT_REPO") or None
        if self.default_repo:
            try:
                validate_repo_name(self.default_repo)
            except ClassifiedError as e:
                raise ConfigurationError(
                    f"Invalid GITHUB_DEFAULT_REPO: {self.default_repo}",
                    details={"expected_format": "owner/repo"},
                    cause=e
                )

        # Numeric configuration
        self.timeout_ms = self._get_int("SERVER_TIMEOUT", RETRY.DEFAULT_TIMEOUT_MS)
        self.pending_timeout_ms = None
        if self.timeout_ms <= 0:
            raise ConfigurationError("SERVER_TIMEOUT must be a positive number of milliseconds")
        self.rate_limit_buffer = self._get_int("GITHUB_RATE_LIMIT_BUFFER", RETRY.DEFAULT_RATE_LIMIT_BUFFER)
        self.max_retries = self._get_int("GITHUB_MAX_RETRIES", RETRY.DEFAULT_MAX_RETRIES)
        if self.max_retries < 0:
            raise ConfigurationError("GITHUB_MAX_RETRIES must not be negative")
        self.retry_delay = self._get_float("GITHUB_RETRY_DELAY", RETRY.DEFAULT_RETRY_DELAY)

        # Logging configuration
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    def _get_int(self, name: str, default: int) -> int:
        raw = os.getenv(name)
        if raw is None or raw == "":
            return default
        try:
            return int(raw)
        except ValueError as e:
            raise ConfigurationError(f"{name} must be an integer, got {raw!r}", cause=e)

    def _get_float(self, name: str, default: float) -> float:
        raw = os.getenv(name)
        if raw is None or raw == "":
            return default
        try:
            return float(raw)
        except ValueError as e:
            raise ConfigurationError(f"{name} must be a number, got {raw!r}", cause=e)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    def missing_credentials(self) -> list:
        """List credential variables the configured auth type still needs."""
        return [
            f"{name} ({description})"
            for name, (attribute, description) in self._auth_vars[self.auth_type].items()
            if not getattr(self, attribute)
        ]

    def get_credential(self) -> Credential:
        """
        Build the credential for the configured auth type.

        Raises:
            AuthError: AUTH_MISSING_CREDENTIALS when required variables are unset
        """
        if self.auth_type is AuthMode.PAT:
            return Credential.personal_token(self.personal_access_token)
        elif self.auth_type is AuthMode.OAUTH:
            return Credential.oauth_app(self.client_id, self.client_secret, token=self.oauth_token)
        elif self.auth_type is AuthMode.APP:
            return Credential.installation_app(
                self.app_id,
                self.app_private_key,
                self.app_installation_id
            )
        raise ConfigurationError(f"Unsupported authentication type: {self.auth_type}")

    def apply_overrides(self, default_repo: Optional[str] = None, timeout_ms: Optional[int] = None) -> Dict[str, Any]:
        """
        Apply runtime overrides that do not require rebuilding the GitHub handle.

        The timeout is baked into the handle built at startup, so a new value
        is validated and held in pending_timeout_ms until restart.

        Returns:
            Dictionary of the values that changed
        """
        if default_repo is not None:
            validate_repo_name(default_repo)
        if timeout_ms is not None:
            InputValidator.validate_timeout(timeout_ms)

        changed = {}
        if default_repo is not None:
            self.default_repo = default_repo
            changed["defaultRepo"] = default_repo
        if timeout_ms is not None:
            self.pending_timeout_ms = timeout_ms
            logger.info(f"Timeout of {timeout_ms}ms takes effect on restart")
        if changed:
            logger.info(f"Configuration overrides applied: {changed}")
        return changed

    def get_status(self) -> Dict[str, Any]:
        """
        Get configuration status.

        Returns:
            Dictionary with configuration status and details
        """
        return {
            "configured": not self.missing_credentials(),
            "authType": self.auth_type.value,
            "defaultRepo": self.default_repo,
            "serverName": self.server_name,
            "timeout": self.timeout_ms,
            "environment": self.environment,
        }

    def __repr__(self) -> str:
        """String representation of configuration (without sensitive data)."""
        return (
            f"Config("
            f"auth_type={self.auth_type.value}, "
            f"default_repo={self.default_repo}, "
            f"timeout_ms={self.timeout_ms}, "
            f"max_retries={self.max_retries}"
            f")"
        )
