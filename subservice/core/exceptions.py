"""Custom exception types for the store and API layers."""
from __future__ import annotations

from typing import Optional


class AppError(Exception):
    """Base app exception."""

    kind = "internal_error"


class ConfigurationError(AppError):
    """Malformed connection descriptor or settings. Never retried."""

    kind = "configuration_error"


class ConnectivityError(AppError):
    """Database unreachable after the startup retry budget was spent."""

    kind = "connectivity_error"


class MigrationError(AppError):
    """Schema migration run failed; partial state must be inspected by hand."""

    kind = "migration_error"


class ValidationError(AppError):
    """Validation failure for user input."""

    kind = "validation_error"


class NotFoundError(AppError):
    """No subscription matched the requested id."""

    kind = "not_found"

    def __init__(self, subscription_id: str) -> None:
        super().__init__(f"Subscription {subscription_id} not found")
        self.subscription_id = subscription_id


class StorageError(AppError):
    """Unexpected failure talking to the database while serving a request."""

    kind = "storage_error"

    def __init__(self, operation: str, subscription_id: Optional[str] = None) -> None:
        message = f"Failed to {operation} subscription"
        if subscription_id:
            message = f"{message} {subscription_id}"
        super().__init__(message)
        self.operation = operation
        self.subscription_id = subscription_id


class OperationTimeoutError(AppError):
    """A request-scoped store operation exceeded its time budget."""

    kind = "timeout"
