"""
Exceptions raised by the voice-call backend.

Every application error derives from :class:`VoxlineError`. Store errors
carry the key they were raised for so the HTTP layer and logs can name it.
"""

from __future__ import annotations

from typing import Any, Optional


class VoxlineError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message: Human-readable error message
        details: Additional error details (for debugging)
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(VoxlineError):
    """
    Invalid or missing configuration.

    Examples:
        - No TTS credential in the environment
    """

    def __init__(self, message: str, config_key: Optional[str] = None):
        details = {"config_key": config_key} if config_key else None
        super().__init__(message, details=details)


class StoreError(VoxlineError):
    """A record could not be loaded from the data store."""

    def __init__(self, message: str, key: str):
        super().__init__(message, details={"key": key})
        self.key = key


class RecordNotFoundError(StoreError):
    """No record has been written under the key."""


class RecordCorruptError(StoreError):
    """
    The record file exists but does not hold valid JSON.

    Usually the result of a write interrupted by another tool or an older
    non-atomic writer.
    """


class InvalidKeyError(StoreError):
    """The key resolves to a path outside the store's base directory."""
