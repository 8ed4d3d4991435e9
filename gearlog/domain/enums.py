"""Domain enumerations.

Enums represent fixed sets of domain values (session status, link confidence).
"""

from enum import Enum


class SessionStatus(str, Enum):
    """Recording session lifecycle status.

    pending is the initial (active) state; complete is terminal.
    """

    PENDING = "pending"
    COMPLETE = "complete"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid status values as strings."""
        return [status.value for status in cls]


class ConfidenceLevel(str, Enum):
    """How well a snapshot link matches the weapons used in a match."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NO_MATCH = "no_match"
    NOT_FOUND = "not_found"

    def is_acceptable(self) -> bool:
        """Return True when the link points at a usable snapshot."""
        return self not in (ConfidenceLevel.NO_MATCH, ConfidenceLevel.NOT_FOUND)


class ConfidenceSource(str, Enum):
    """Who established a snapshot link: inferred by the system or asserted by a user."""

    SYSTEM = "system"
    USER = "user"
