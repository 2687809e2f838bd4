"""
Logging filters for reactive_query.

The client handles bearer tokens and user auth headers; this filter keeps
them out of log output.
"""

import logging
import re
from typing import List, Pattern, Tuple

MASK = "***MASKED***"


class SensitiveDataFilter(logging.Filter):
    """Mask tokens and credentials in log messages."""

    def __init__(self, extra_header_names: Tuple[str, ...] = ()) -> None:
        """
        Initialize sensitive data filter.

        Args:
            extra_header_names: Additional header names whose values are masked
                (for example the configured auth header key)
        """
        super().__init__()

        self.rules: List[Tuple[Pattern[str], str]] = [
            (re.compile(r"(bearer\s+)([^\s'\",}]+)", re.IGNORECASE), rf"\1{MASK}"),
            (
                re.compile(r"""(['"]?authorization['"]?\s*[:=]\s*['"]?)(?!bearer)([^\s'",}]+)""", re.IGNORECASE),
                rf"\1{MASK}",
            ),
            (
                re.compile(r"""((?:api[_-]?key|token|secret|password)['"]?\s*[:=]\s*['"]?)([^\s'",}]+)""", re.IGNORECASE),
                rf"\1{MASK}",
            ),
            (re.compile(r"(https?://[^:/\s]+):([^@\s]+)@", re.IGNORECASE), rf"\1:{MASK}@"),
        ]

        for header_name in extra_header_names:
            self.rules.append(
                (
                    re.compile(
                        rf"""(['"]?{re.escape(header_name)}['"]?\s*[:=]\s*['"]?)([^\s'",}}]+)""",
                        re.IGNORECASE,
                    ),
                    rf"\1{MASK}",
                )
            )

    def mask(self, message: str) -> str:
        """Apply every masking rule to ``message``."""
        for pattern, replacement in self.rules:
            message = pattern.sub(replacement, message)
        return message

    def filter(self, record: logging.LogRecord) -> bool:
        """Rewrite the record message with credentials masked."""
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # Malformed %-args; let the handler report it
            return True

        record.msg = self.mask(message)
        record.args = ()
        return True
