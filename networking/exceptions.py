"""Custom exceptions for HTTP transport utilities."""

from typing import Any


class NetworkingError(Exception):
    """Base class for networking-related errors."""


class TransportError(NetworkingError):
    """Raised when a request cannot be completed or its body cannot be decoded."""

    def __init__(self, message: str, *, status_code: int | None = None, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
