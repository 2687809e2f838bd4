"""
Configuration management for reactive_query.

Client configuration comes from pydantic models, loadable from JSON/YAML
files and ``REACTIVE_QUERY_*`` environment variables.
"""

from .loader import ConfigLoader, load_config
from .models import (
    ClientConfig,
    FallbackKind,
    HeaderFallbackRule,
    LoggingConfig,
    LogLevel,
)

__all__ = [
    "ClientConfig",
    "LoggingConfig",
    "LogLevel",
    "HeaderFallbackRule",
    "FallbackKind",
    "ConfigLoader",
    "load_config",
]
