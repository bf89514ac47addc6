"""Exceptions raised at the request boundary.

Ticket outcomes (unknown, expired, replayed, user-blocked) are never
exceptions; they are ordinary DENY results of redemption.
"""

from __future__ import annotations


class GuardError(RuntimeError):
    """Base class for guard request errors."""


class InvalidRequestError(GuardError):
    """Raised when a request body is not parseable JSON."""

    def __init__(self, message: str = "invalid JSON") -> None:
        super().__init__(message)


class BodySizeLimitExceeded(GuardError):
    """Raised when request body exceeds size limit."""
