"""
Configuration models for reactive_query.

This module defines the client configuration data models with validation
and defaults.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class FallbackKind(str, Enum):
    """Where an auth fallback rule looks for a token."""

    HEADER = "header"
    ENVIRONMENT = "environment"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(default=LogLevel.INFO, description="Default logging level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format",
    )
    file_path: Optional[Path] = Field(default=None, description="Log file path")
    max_file_size: int = Field(
        default=10 * 1024 * 1024, description="Max log file size in bytes"
    )
    backup_count: int = Field(default=5, description="Number of backup log files")
    enable_console: bool = Field(default=True, description="Enable console logging")
    enable_file: bool = Field(default=False, description="Enable file logging")
    enable_structured: bool = Field(
        default=False, description="Enable structured JSON logging"
    )

    # Component-specific log levels, keyed by logger name
    component_levels: Dict[str, LogLevel] = Field(
        default_factory=dict, description="Per-component log levels"
    )


class HeaderFallbackRule(BaseModel):
    """One step of the auth token fallback chain."""

    kind: FallbackKind = Field(description="Token source kind")
    source: str = Field(min_length=1, description="Header name or environment variable")

    model_config = ConfigDict(frozen=True)


class ClientConfig(BaseModel):
    """Configuration for the reactive query client."""

    # Endpoint settings
    base_url: str = Field(description="Base URL of the content API")
    graphql_path: str = Field(default="/graphql", description="Query endpoint path")
    items_path: str = Field(default="/items", description="REST items endpoint path")
    timeout: float = Field(default=30.0, ge=1.0, description="Request timeout in seconds")

    # Headers
    headers: Dict[str, str] = Field(default_factory=dict, description="Default headers for requests")

    # Session state
    token: Optional[str] = Field(default=None, description="Bearer token for query requests")
    language: Optional[str] = Field(default=None, description="Active content language")

    # Auth header resolution for item requests
    auth_header_key: str = Field(default="x-app-user", description="Primary auth header key")
    auth_fallbacks: List[HeaderFallbackRule] = Field(
        default_factory=list, description="Ordered token fallback rules"
    )

    # Translation filter
    language_field: str = Field(default="language", description="Field matched against the language")
    translation_marker: Optional[str] = Field(
        default=None,
        description="Treat queries whose table name contains this marker as translated",
    )

    # Polling and retries
    poll_interval: float = Field(default=3.0, gt=0, description="Default polling interval in seconds")
    query_attempts: int = Field(default=1, ge=1, description="Attempts per query execution")
    retry_backoff: float = Field(default=0.3, ge=0, description="Base retry delay in seconds")

    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the base URL so paths can be appended."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must be an http(s) URL")
        return v.rstrip("/")

    @field_validator("graphql_path", "items_path")
    @classmethod
    def ensure_leading_slash(cls, v: str) -> str:
        """Ensure endpoint paths start with a slash."""
        return v if v.startswith("/") else f"/{v}"

    @property
    def graphql_url(self) -> str:
        """Full URL of the query endpoint."""
        return f"{self.base_url}{self.graphql_path}"
