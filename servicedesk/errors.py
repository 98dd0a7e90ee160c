"""Failure taxonomy shared by the lifecycle services and the HTTP boundary."""

from __future__ import annotations


class ServiceDeskError(RuntimeError):
    """Base error for lifecycle operations."""


class InvalidInputError(ServiceDeskError):
    """Raised when required input is missing or malformed."""


class NotFoundError(ServiceDeskError):
    """Raised when a referenced ticket, task or progress entry does not exist."""


class PermissionDeniedError(ServiceDeskError):
    """Raised when the actor's role or relationship to the entity forbids the operation."""


class LockedError(PermissionDeniedError):
    """Raised when an entity is frozen because it already carries a rating."""


class DependencyFailure(ServiceDeskError):
    """Raised when the persistence layer fails unexpectedly."""


class NotificationFailure(ServiceDeskError):
    """Delivery failure of a single notification; never escapes the dispatcher."""


__all__ = [
    "DependencyFailure",
    "InvalidInputError",
    "LockedError",
    "NotFoundError",
    "NotificationFailure",
    "PermissionDeniedError",
    "ServiceDeskError",
]
