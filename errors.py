"""
errors.py
Error taxonomy shared by the workflow modules and the UI.
"""

from __future__ import annotations


class GymError(Exception):
    """Base class. `message` is safe to show to staff."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(GymError):
    pass


class ConflictError(GymError):
    """A uniqueness or state invariant would be violated."""

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(message)
        self.detail = detail


class PreconditionFailed(GymError):
    pass


class ValidationError(GymError):
    def __init__(self, errors: list[str] | str):
        if isinstance(errors, str):
            errors = [errors]
        super().__init__("; ".join(errors))
        self.errors = list(errors)


class TransientError(GymError):
    """Store unavailable or busy. Only reads are retried on this."""
