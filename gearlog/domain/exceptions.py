"""Domain exceptions for gearlog.

Defines domain-level exceptions that represent business rule violations
and store failures. Callers (HTTP layer, scripts) map them by error_code.
"""

from typing import Any


class GearlogException(Exception):
    """Base exception for all gearlog errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, resource_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(GearlogException):
    """Raised when input or an invariant check fails (terminal, never retried)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class ResourceNotFoundException(GearlogException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'snapshot', 'aggregate').
            resource_id: The ID (or natural key) that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class ConflictException(GearlogException):
    """Raised when a write would violate a uniqueness invariant or lost a race too often."""

    def __init__(
        self,
        message: str,
        resource_type: str,
        resource_id: str,
        error_code: str = "CONFLICT",
    ) -> None:
        super().__init__(
            message,
            error_code,
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class SessionAlreadyActiveException(ConflictException):
    """Raised when starting a session while one is pending for the same user and character."""

    def __init__(self, user_id: str, character_id: str, session_id: str | None = None) -> None:
        super().__init__(
            f"A pending session already exists for character {character_id}",
            "session",
            session_id or f"{user_id}/{character_id}",
            "SESSION_ALREADY_ACTIVE",
        )
        self.details["user_id"] = user_id
        self.details["character_id"] = character_id


class TransientStoreException(GearlogException):
    """Raised on network or store-layer failures; safe to retry with backoff."""

    def __init__(self, message: str = "Document store temporarily unavailable") -> None:
        super().__init__(message, "TRANSIENT_STORE_ERROR")
