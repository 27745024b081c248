"""
Service configuration for Handlebook.

Values come from HANDLEBOOK_* environment variables; see from_env().
"""

import logging
import os
from typing import Literal, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "HANDLEBOOK_"


class HandlebookConfig(BaseModel):
    """Runtime settings for the claim and lookup service."""
    store: Literal["redis", "memory"] = Field(default="redis", description="Store backend")
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis connection URL")
    app_name: str = Field(default="TippinBit", description="Application name in signed messages")
    claim_rate_limit: int = Field(default=20, ge=1, description="Claim attempts allowed per window")
    claim_rate_window: int = Field(default=60, ge=1, description="Rate window in seconds")
    store_timeout: float = Field(default=3.0, gt=0, description="Store socket timeout in seconds")
    trusted_proxies: int = Field(default=0, ge=0, description="Reverse proxies that append to X-Forwarded-For")
    log_level: str = Field(default="INFO")
    host: str = Field(default="0.0.0.0", description="Interface the HTTP service binds")
    port: int = Field(default=8080, ge=1, le=65535)

    @field_validator('app_name')
    @classmethod
    def validate_app_name(cls, v):
        if not v.strip():
            raise ValueError("app_name cannot be blank")
        return v.strip()

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "HandlebookConfig":
        """
        Build configuration from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Raises:
            ConfigurationError: If any variable holds an invalid value
        """
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            raw = environ.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None and raw != "":
                values[name] = raw

        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid Handlebook configuration: {e}") from e
