"""Domain exceptions raised by services and mapped to HTTP statuses in ``backend.main``."""

from __future__ import annotations


class DomainError(Exception):
    """Base class for business rule failures."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(DomainError):
    status_code = 404


class ValidationError(DomainError, ValueError):
    status_code = 400


class InvalidStateError(DomainError):
    status_code = 400


__all__ = [
    "DomainError",
    "InvalidStateError",
    "NotFoundError",
    "ValidationError",
]
