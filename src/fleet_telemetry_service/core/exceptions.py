"""Domain/service exceptions."""
from __future__ import annotations


class ServiceError(Exception):
    """Base error for the service layer."""

    code = "INTERNAL_ERROR"
    status = 500


class InvalidIdentifierError(ServiceError):
    """Raised when a robot id is neither a canonical UUID nor an allowed test id."""

    code = "INVALID_UUID"
    status = 400


class NotFoundError(ServiceError):
    """Raised when a referenced robot does not exist in the caller's organization."""

    code = "NOT_FOUND"
    status = 404


class ValidationError(ServiceError):
    """Raised when request or query parameters are missing or invalid."""

    code = "VALIDATION_ERROR"
    status = 400


class NoValidMetricsError(ValidationError):
    """Raised when a telemetry payload yields zero extractable metrics."""


class UnauthorizedError(ServiceError):
    """Raised when the organization context is missing."""

    code = "UNAUTHORIZED"
    status = 401
