"""
Environment configuration loader using Pydantic BaseSettings.

This module centralizes configuration for the donation portal client: the
backend API location, request timeouts, the auth endpoint layout used by the
token refresh flow, and the route layout used by the route gate middleware.
Settings are validated on first access to fail fast with clear errors.
"""

import json
from typing import Annotated, Any, List, Optional

import structlog
from pydantic import BeforeValidator, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

logger = structlog.get_logger(__name__)


def parse_string_list(v: Any) -> List[str]:
    """
    Parse string lists from various input formats.

    Supports:
    - Native Python list (from code/tests)
    - JSON array string: '["/auth/login", "/auth/logout"]'
    - Comma-separated string: '/auth/login,/auth/logout'
    - Empty string or None: returns empty list
    """
    if v is None:
        return []
    if isinstance(v, (list, tuple)):
        return list(v)
    if isinstance(v, str):
        s = v.strip()
        if not s:
            return []
        # Handle JSON array format
        if s.startswith("["):
            return json.loads(s)
        # Parse comma-separated values
        return [item.strip() for item in s.split(",") if item.strip()]
    return v


# NoDecode prevents automatic JSON parsing, BeforeValidator applies our custom parser
StringList = Annotated[List[str], NoDecode, BeforeValidator(parse_string_list)]


class Settings(BaseSettings):
    """
    Client settings loaded from environment variables.

    Priority order for loading values:
    1. Environment variables (highest priority)
    2. .env file
    3. Default values defined here
    """

    # ===== Application Settings =====
    app_env: str = Field(
        default="development",
        description="Application environment (development/test/staging/production)",
    )

    app_name: str = Field(
        default="Donation Portal Client",
        description="Application name for logging and identification",
    )

    app_version: str = Field(default="0.1.0", description="Application version")

    log_level: str = Field(
        default="INFO", description="Logging level (DEBUG/INFO/WARNING/ERROR)"
    )

    # ===== Backend API =====
    api_base_url: str = Field(
        default="http://localhost:3000/api",
        description="Base URL of the portal REST API (all resource paths are relative to it)",
    )

    request_timeout_seconds: float = Field(
        default=15.0,
        description="Per-request timeout; a timed out request is never retried",
        gt=0,
        le=300,
    )

    connect_timeout_seconds: float = Field(
        default=5.0,
        description="Connection establishment timeout",
        gt=0,
        le=60,
    )

    # ===== Token Refresh =====
    refresh_path: str = Field(
        default="/auth/refresh",
        description="Path of the refresh endpoint, relative to api_base_url",
    )

    auth_endpoint_paths: StringList = Field(
        default=["/auth/login", "/auth/refresh", "/auth/logout"],
        description="Endpoints that never enter the refresh-and-retry flow",
    )

    # ===== Routes =====
    login_path: str = Field(
        default="/admin/login", description="Location of the admin login view"
    )

    dashboard_path: str = Field(
        default="/admin/dashboard", description="Landing location after login"
    )

    protected_path_prefix: str = Field(
        default="/admin/dashboard",
        description="Locations under this prefix require a session",
    )

    admin_path_prefix: str = Field(
        default="/admin", description="Root of the admin area"
    )

    maintenance_path: str = Field(
        default="/maintenance", description="Location of the maintenance page"
    )

    access_cookie_name: str = Field(
        default="access_token", description="Cookie holding the access token"
    )

    refresh_cookie_name: str = Field(
        default="refresh_token", description="Cookie holding the refresh token"
    )

    gate_skip_prefixes: StringList = Field(
        default=["/_next", "/api", "/images"],
        description="Path prefixes the route gate never inspects",
    )

    public_settings_path: str = Field(
        default="/api/public/settings",
        description="Site-relative path of the public settings endpoint",
    )

    settings_lookup_timeout_seconds: float = Field(
        default=3.0,
        description="Timeout for the maintenance-mode lookup done by the route gate",
        gt=0,
        le=30,
    )

    # ===== Validators =====

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Ensure app environment is valid."""
        valid_envs = ["development", "staging", "production", "test"]
        v_lower = v.lower()
        if v_lower not in valid_envs:
            raise ValueError(f"Invalid app_env: {v}. Must be one of {valid_envs}")
        return v_lower

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Store the base URL without a trailing slash."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"api_base_url must be an http(s) URL: {v}")
        return v.rstrip("/")

    @field_validator(
        "refresh_path",
        "login_path",
        "dashboard_path",
        "protected_path_prefix",
        "admin_path_prefix",
        "maintenance_path",
        "public_settings_path",
    )
    @classmethod
    def validate_absolute_path(cls, v: str) -> str:
        """Paths must be absolute."""
        if not v.startswith("/"):
            raise ValueError(f"Path must start with '/': {v}")
        return v

    # ===== Pydantic Config =====

    model_config = SettingsConfigDict(
        env_file=".env",  # Load from .env file
        env_file_encoding="utf-8",
        case_sensitive=False,  # Accept API_BASE_URL or api_base_url
        extra="ignore",  # Ignore extra env variables
    )

    def log_config(self) -> None:
        """Log the loaded configuration."""
        logger.info("Configuration loaded", **self.model_dump())


# ===== Global Settings Instance =====

_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton pattern).

    Settings are loaded and validated once; tests call reset_settings()
    after changing the environment.
    """
    global _settings
    if _settings is None:
        try:
            _settings = Settings()
            _settings.log_config()
            logger.info(
                "Settings loaded successfully",
                app_env=_settings.app_env,
                app_version=_settings.app_version,
            )
        except ValidationError as e:
            logger.error("Failed to load settings", errors=e.errors())
            raise

    return _settings


def reset_settings() -> None:
    """Reset settings (useful for testing)."""
    global _settings
    _settings = None
