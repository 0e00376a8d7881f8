"""
Application Configuration Module

Centralizes all configuration using environment variables with Pydantic Settings.
Supports three modes:
    - DEVELOPMENT: Talks to the in-process simulation order store
    - STAGING: Real order API with test credentials
    - PRODUCTION: Real order API

The ENV_MODE variable controls which services are instantiated throughout
the package. Anything the order core needs from its surroundings (API URL,
auth token, timeouts) is handed over explicitly as a ClientContext instead
of being read from ambient storage.

Usage:
    from orderdesk.core.config import get_settings, ClientContext

    settings = get_settings()
    context = ClientContext.from_settings(settings)

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
import sys
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentMode(str, Enum):
    """
    Application environment modes.

    Attributes:
        DEVELOPMENT: Local work against the simulation order store
        PRODUCTION: Live order API
        STAGING: Pre-production order API
    """
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    STAGING = "staging"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    The API token should NEVER be committed to version control.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # ENVIRONMENT
    # ==========================================================================

    env_mode: EnvironmentMode = Field(
        default=EnvironmentMode.DEVELOPMENT,
        description="Application environment mode"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging"
    )

    # ==========================================================================
    # APPLICATION
    # ==========================================================================

    app_name: str = Field(
        default="Order Desk",
        description="Application display name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )

    # ==========================================================================
    # ORDER API
    # ==========================================================================

    order_api_base_url: str = Field(
        default="http://localhost:8001",
        description="Base URL of the order store endpoints"
    )
    order_api_token: Optional[str] = Field(
        default=None,
        description="Bearer token for staff endpoints"
    )
    request_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Timeout for a single order API request"
    )

    # ==========================================================================
    # POLLING
    # ==========================================================================

    staff_poll_interval_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Interval between live-orders refreshes"
    )
    tracker_poll_interval_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Interval between order-confirmation refreshes"
    )

    # ==========================================================================
    # BUSINESS CONFIGURATION
    # ==========================================================================

    restaurant_name: str = Field(
        default="Demo Bistro",
        description="Restaurant display name used for submissions"
    )
    commission_rate: float = Field(
        default=0.02,
        ge=0,
        le=1,
        description="Commission taken per order (decimal)"
    )
    free_cancellations_per_day: int = Field(
        default=2,
        ge=0,
        description="Cancellations per day whose commission is refunded"
    )

    # ==========================================================================
    # SIMULATION ORDER STORE
    # ==========================================================================

    simulation_host: str = Field(
        default="127.0.0.1",
        description="Host to bind the simulation order store"
    )
    simulation_port: int = Field(
        default=8001,
        description="Port for the simulation order store"
    )
    simulation_auth_token: str = Field(
        default="dev-staff-token",
        description="Bearer token accepted by the simulation order store"
    )

    # ==========================================================================
    # VALIDATORS
    # ==========================================================================

    @field_validator("env_mode", mode="before")
    @classmethod
    def validate_env_mode(cls, v: str) -> EnvironmentMode:
        """Convert string to EnvironmentMode enum."""
        if isinstance(v, EnvironmentMode):
            return v
        try:
            return EnvironmentMode(v.lower())
        except ValueError:
            valid = [e.value for e in EnvironmentMode]
            raise ValueError(f"Invalid env_mode. Must be one of: {valid}")

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.env_mode == EnvironmentMode.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.env_mode == EnvironmentMode.PRODUCTION

    @property
    def use_real_services(self) -> bool:
        """Check if the real order API should be used."""
        return self.env_mode in (EnvironmentMode.PRODUCTION, EnvironmentMode.STAGING)

    def validate_production_config(self) -> list[str]:
        """
        Validate that all required production settings are configured.

        Returns:
            List of missing configuration keys (empty if all present)
        """
        missing = []

        if self.use_real_services:
            if not self.order_api_token:
                missing.append("ORDER_API_TOKEN")
            if self.order_api_base_url.startswith("http://localhost"):
                missing.append("ORDER_API_BASE_URL")

        return missing


@dataclass(frozen=True)
class ClientContext:
    """
    Everything the order core needs from its host environment.

    Passed explicitly to the API client so the state machine and pollers
    can be exercised without global state.
    """
    base_url: str
    auth_token: Optional[str] = None
    timeout_seconds: float = 15.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "ClientContext":
        return cls(
            base_url=settings.order_api_base_url,
            auth_token=settings.order_api_token,
            timeout_seconds=settings.request_timeout_seconds,
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Configured application settings
    """
    return Settings()


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """
    Configure application-wide logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured package logger
    """
    settings = get_settings()

    if settings.debug:
        level = logging.DEBUG

    log_format = "%(asctime)s │ %(levelname)-8s │ %(name)-25s │ %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    logging.basicConfig(
        level=level,
        format=log_format,
        datefmt=date_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    return logging.getLogger("orderdesk")

