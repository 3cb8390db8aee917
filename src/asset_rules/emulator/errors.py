"""Exceptions raised while talking to the Firestore emulator."""

from typing import Any, Dict, Optional


class EmulatorError(Exception):
    """A request to the emulator was answered with an error"""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 status: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.status = status
        self.details = details or {}

    def __str__(self) -> str:
        if self.status:
            return f"{self.status}: {self.message}"
        return self.message


class PermissionDeniedError(EmulatorError):
    """The security rules rejected the request"""


class EmulatorUnavailableError(EmulatorError):
    """The emulator could not be reached"""


class RulesAssertionError(AssertionError):
    """The rules verdict did not match the expectation"""
