"""Errors raised by the service layer.

Each carries a human-readable message; the HTTP layer maps the class to a
status code and returns the message as ``detail``.
"""

from __future__ import annotations


class ClinicError(ValueError):
    """Base class for failures a caller can act upon."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(ClinicError):
    """A targeted or referenced record does not exist."""


class ConflictError(ClinicError):
    """The request clashes with existing data (duplicates, blocked deletes)."""


class AuthenticationError(ClinicError):
    """Credentials did not match any known account."""
