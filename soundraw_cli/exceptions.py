"""
Defines custom exceptions for the application to allow for more specific error handling.
"""

from typing import Optional


class SoundrawCliError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(SoundrawCliError):
    """Raised when the API token or base URL is missing or invalid."""


class NetworkError(SoundrawCliError):
    """Raised when a request fails at the transport level."""


class APIError(SoundrawCliError):
    """
    Raised when the Soundraw API answers with a non-success status or a body
    that does not match the expected shape.
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class DownloadError(SoundrawCliError):
    """
    Raised when an audio file cannot be fetched or the response body is empty.
    """

    def __init__(
        self, message: str, status: Optional[int] = None, reason: Optional[str] = None
    ):
        super().__init__(message)
        self.status = status
        self.reason = reason


class AutomationError(SoundrawCliError):
    """Raised when an AppleScript invocation fails or osascript is unavailable."""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr
