"""Errors raised by the café client core."""

from typing import Optional


class CafeClientError(Exception):
    """Base class for café client errors."""


class ValidationError(CafeClientError):
    """A client-side precondition failed; nothing was sent to the server."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class NetworkError(CafeClientError):
    """The backend could not be reached or did not answer in time."""

    def __init__(self, method: str, url: str, reason: str) -> None:
        super().__init__(f"{method} {url} failed: {reason}")
        self.method = method
        self.url = url
        self.reason = reason


class ApiError(CafeClientError):
    """The backend answered with a non-success status."""

    GENERIC_MESSAGE = "The café service rejected the request"

    def __init__(self, status: int, message: Optional[str] = None) -> None:
        self.status = status
        self.message = message or self.GENERIC_MESSAGE
        super().__init__(f"[{status}] {self.message}")

    @property
    def is_auth_error(self) -> bool:
        return self.status in (401, 403)


class ParseError(CafeClientError):
    """A push frame could not be decoded. Logged, never surfaced to users."""

    def __init__(self, raw: object, reason: str) -> None:
        super().__init__(f"Malformed push message: {reason}")
        self.raw = raw
        self.reason = reason
