"""Errors raised by the Matcha REST client."""

from typing import Any


class MatchaClientError(Exception):
    """Base class for every client failure."""

    def __init__(self, message: str, status_code: int | None = None, details: list[dict[str, Any]] | None = None) -> None:
        self.message = message
        self.status_code = status_code
        self.details = details or []
        super().__init__(message)


class NetworkError(MatchaClientError):
    """Timeout, transport failure, 5xx answer or unreadable body."""


class NotFoundError(MatchaClientError):
    """The requested resource does not exist."""


class PermissionDenied(MatchaClientError):
    """Missing or rejected credentials, or a refused capability."""


class ValidationError(MatchaClientError):
    """The server rejected the submitted data; ``message`` is the server's explanation."""

    @property
    def field_errors(self) -> dict[str, str]:
        errors: dict[str, str] = {}
        for detail in self.details:
            loc = detail.get("loc") or []
            if loc:
                errors.setdefault(str(loc[-1]), detail.get("msg", self.message))
        return errors
