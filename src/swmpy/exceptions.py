"""
Exceptions for swmpy operations.
"""

from typing import Any, Dict, Optional


class SWMPError(Exception):
    """Base exception for swmpy errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class ConfigurationError(SWMPError):
    """Invalid option or option combination."""

    pass


class ValidationError(SWMPError):
    """Input table or series does not meet the requirements of an operation."""

    pass


class DataQualityWarning(UserWarning):
    """Non-fatal data quality condition; affected rows are flagged, not removed."""

    pass
