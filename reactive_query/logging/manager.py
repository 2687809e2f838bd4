"""
Logging manager for reactive_query.

Centralized handler setup driven by LoggingConfig.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Dict, Tuple, Union

from ..config.models import LoggingConfig, LogLevel
from .filters import SensitiveDataFilter
from .formatters import ColoredFormatter, StructuredFormatter

PACKAGE_LOGGER = "reactive_query"


def _level_value(level: Union[LogLevel, str]) -> int:
    """Translate a LogLevel (or its string value) to a logging level."""
    name = level.value if isinstance(level, LogLevel) else str(level).upper()
    return getattr(logging, name)


class LoggingManager:
    """Installs and tears down the package's log handlers."""

    def __init__(self) -> None:
        self._configured = False
        self._handlers: Dict[str, logging.Handler] = {}

    def setup_logging(
        self, config: LoggingConfig, masked_headers: Tuple[str, ...] = ()
    ) -> None:
        """
        Setup logging based on configuration.

        Handlers are attached to the ``reactive_query`` logger, not the
        root logger.

        Args:
            config: Logging configuration
            masked_headers: Extra header names whose values must be masked
        """
        if self._configured:
            self.cleanup()

        logger = logging.getLogger(PACKAGE_LOGGER)
        logger.setLevel(_level_value(config.level))

        sensitive_filter = SensitiveDataFilter(masked_headers)

        if config.enable_console:
            handler = logging.StreamHandler(sys.stdout)
            formatter: logging.Formatter
            if config.enable_structured:
                formatter = StructuredFormatter()
            else:
                formatter = ColoredFormatter(config.format)
            self._install("console", handler, formatter, config, sensitive_filter)

        if config.enable_file and config.file_path:
            log_path = Path(str(config.file_path))
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.handlers.RotatingFileHandler(
                filename=str(log_path),
                maxBytes=config.max_file_size,
                backupCount=config.backup_count,
                encoding="utf-8",
            )
            formatter = (
                StructuredFormatter()
                if config.enable_structured
                else logging.Formatter(config.format)
            )
            self._install("file", handler, formatter, config, sensitive_filter)

        for component, level in config.component_levels.items():
            logging.getLogger(component).setLevel(_level_value(level))

        self._configured = True
        logger.debug("Logging system configured")

    def _install(
        self,
        name: str,
        handler: logging.Handler,
        formatter: logging.Formatter,
        config: LoggingConfig,
        sensitive_filter: SensitiveDataFilter,
    ) -> None:
        handler.setFormatter(formatter)
        handler.setLevel(_level_value(config.level))
        handler.addFilter(sensitive_filter)
        logging.getLogger(PACKAGE_LOGGER).addHandler(handler)
        self._handlers[name] = handler

    def set_level(self, level: LogLevel, component: str = PACKAGE_LOGGER) -> None:
        """Change the level of the package logger or of one component."""
        logging.getLogger(component).setLevel(_level_value(level))
        if component == PACKAGE_LOGGER:
            for handler in self._handlers.values():
                handler.setLevel(_level_value(level))

    def cleanup(self) -> None:
        """Detach and close every handler this manager installed."""
        logger = logging.getLogger(PACKAGE_LOGGER)
        for handler in self._handlers.values():
            logger.removeHandler(handler)
            handler.close()

        self._handlers.clear()
        self._configured = False

    @property
    def handlers(self) -> Dict[str, logging.Handler]:
        """Installed handlers by name."""
        return dict(self._handlers)

    def is_configured(self) -> bool:
        """Check if logging is configured."""
        return self._configured


# Global logging manager instance
_logging_manager = LoggingManager()


def setup_logging(config: LoggingConfig, masked_headers: Tuple[str, ...] = ()) -> None:
    """
    Setup logging with configuration.

    Args:
        config: Logging configuration
        masked_headers: Extra header names whose values must be masked
    """
    _logging_manager.setup_logging(config, masked_headers)


def cleanup_logging() -> None:
    """Remove the handlers installed by :func:`setup_logging`."""
    _logging_manager.cleanup()
