"""
Custom logging filters for uri_open.

Locators and request headers end up in log messages; these filters keep the
credentials they may carry out of the output.
"""

import logging
import re
from typing import List, Pattern, Set


class SensitiveDataFilter(logging.Filter):
    """Filter to mask credentials in log messages."""

    def __init__(self) -> None:
        """Initialize sensitive data filter."""
        super().__init__()

        # Patterns for sensitive data
        self.patterns: List[Pattern[str]] = [
            # Locators with userinfo (http, https, ftp and proxies)
            re.compile(r"\b((?:https?|ftp)://)([^/@\s:]+):([^/@\s]*)@", re.IGNORECASE),
            # Authorization and Proxy-Authorization header values
            re.compile(
                r"((?:proxy-)?authorization[\"']?\s*[:=]\s*[\"']?)((?:basic|bearer)\s+)?([^\s\"',}]+)",
                re.IGNORECASE,
            ),
            # Passwords
            re.compile(
                r'(password|passwd|pwd)["\s]*[:=]["\s]*([^\s"\']+)', re.IGNORECASE
            ),
        ]

        # Replacement patterns
        self.replacements = [
            r"\1\2:***MASKED***@",  # Locator credentials (keep user)
            r"\1\2***MASKED***",  # Authorization headers (keep scheme)
            r"\1: ***MASKED***",  # Passwords
        ]

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter log record to mask sensitive data."""
        message = record.getMessage()

        for pattern, replacement in zip(self.patterns, self.replacements):
            message = pattern.sub(replacement, message)

        record.msg = message
        record.args = ()
        return True


class ComponentFilter(logging.Filter):
    """Filter for component-specific logging."""

    def __init__(self, component: str, allowed_levels: Set[str] | None = None) -> None:
        """
        Initialize component filter.

        Args:
            component: Logger name prefix to let through
            allowed_levels: Set of allowed log levels
        """
        super().__init__()
        self.component = component
        self.allowed_levels = allowed_levels or {
            "DEBUG",
            "INFO",
            "WARNING",
            "ERROR",
            "CRITICAL",
        }

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter based on component and level."""
        if not record.name.startswith(self.component):
            return False
        return record.levelname in self.allowed_levels
