from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class NotFoundError(DomainError):
    """Raised when a referenced record does not exist (or is not visible to the caller)."""


class GeofenceViolationError(DomainError):
    """Raised when a punch happens outside the organization's geofence in strict mode."""

    def __init__(self, message: str, *, distance: float, threshold: float):
        super().__init__(message)
        self.distance = distance
        self.threshold = threshold


class DeliveryError(DomainError):
    """Raised when the WhatsApp gateway rejects or cannot receive a message."""

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
