"""Runtime configuration for the mock server."""

from __future__ import annotations

import logging
import os

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


class MockServerConfig(BaseModel):
    name: str = Field(default="ironic", description="Prefix used in log messages")
    host: str = Field(default="127.0.0.1", description="Address to bind the listener to")
    port: int = Field(default=0, ge=0, le=65535, description="Port to bind; 0 picks a free one")
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        level = (v or "").strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @classmethod
    def from_env(cls) -> "MockServerConfig":
        """Build a config from ``IRONIC_MOCK_*`` environment variables."""
        values: dict[str, str] = {}
        for field, var in (
            ("name", "IRONIC_MOCK_NAME"),
            ("host", "IRONIC_MOCK_HOST"),
            ("port", "IRONIC_MOCK_PORT"),
            ("log_level", "IRONIC_MOCK_LOG_LEVEL"),
        ):
            raw = (os.getenv(var) or "").strip()
            if raw:
                values[field] = raw
        cfg = cls(**values)
        logger.debug(f"Loaded mock server config from environment: {cfg}")
        return cfg
