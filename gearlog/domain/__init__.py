"""Domain layer: entities, enums, and exceptions.

No dependencies on infrastructure. Used by application and infrastructure layers.
"""

from gearlog.domain.entities import SessionEntity
from gearlog.domain.enums import ConfidenceLevel, ConfidenceSource, SessionStatus
from gearlog.domain.exceptions import (
    ConflictException,
    GearlogException,
    ResourceNotFoundException,
    SessionAlreadyActiveException,
    TransientStoreException,
    ValidationException,
)

__all__ = [
    "ConfidenceLevel",
    "ConfidenceSource",
    "ConflictException",
    "GearlogException",
    "ResourceNotFoundException",
    "SessionAlreadyActiveException",
    "SessionEntity",
    "SessionStatus",
    "TransientStoreException",
    "ValidationException",
]
