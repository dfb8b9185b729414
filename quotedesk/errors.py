"""
quotedesk/errors.py

Error taxonomy raised by the lifecycle engine and the services around it.

Every error carries the HTTP status it maps to at the request boundary.
The app factory registers one handler for QuoteDeskError, so routes never
translate errors themselves.
"""

from __future__ import annotations


class QuoteDeskError(Exception):
    """Base class for every user-visible failure."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message}


class ValidationError(QuoteDeskError):
    """Missing or malformed input. Surfaced verbatim."""

    status_code = 400


class AuthenticationError(QuoteDeskError):
    """Bad credentials at login."""

    status_code = 401


class AuthorizationError(QuoteDeskError):
    """Role or ownership mismatch."""

    status_code = 403


class NotFoundError(QuoteDeskError):
    status_code = 404


class ConflictError(QuoteDeskError):
    """Illegal state transition (duplicate proposal, quote not pending, ...)."""

    status_code = 409


class StoreError(QuoteDeskError):
    """
    Persistence failure.

    The message shown to the client is always generic; the underlying
    exception is logged where it is caught.
    """

    status_code = 500

    def __init__(self, message: str = "Database error"):
        super().__init__(message)
