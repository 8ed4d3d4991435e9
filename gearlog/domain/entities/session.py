"""Recording session domain entity.

Represents a bounded recording window for one (user, character) pair,
independent of persistence.
"""

from dataclasses import dataclass
from datetime import datetime

from gearlog.domain.enums import SessionStatus
from gearlog.domain.exceptions import ValidationException

# pending -> complete is the only transition; complete is terminal.
ALLOWED_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.PENDING: frozenset({SessionStatus.COMPLETE}),
    SessionStatus.COMPLETE: frozenset(),
}


@dataclass
class SessionEntity:
    """Domain entity for a recording session.

    Encapsulates the pending/complete state machine. Validation runs on
    construction.
    """

    id: str
    user_id: str
    character_id: str
    status: SessionStatus
    started_at: datetime
    completed_at: datetime | None = None

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Validate session business rules. Raises ValidationException if invalid."""
        if not self.id:
            raise ValidationException("Session ID is required", field="id")
        if not self.user_id:
            raise ValidationException("User ID is required", field="user_id")
        if not self.character_id:
            raise ValidationException("Character ID is required", field="character_id")
        if self.completed_at is not None and self.completed_at < self.started_at:
            raise ValidationException(
                "Session cannot complete before it started", field="completed_at"
            )

    @property
    def is_pending(self) -> bool:
        """Return True while the session is still recording."""
        return self.status == SessionStatus.PENDING and self.completed_at is None

    def can_transition_to(self, target: SessionStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[self.status]

    def complete(self, at: datetime) -> bool:
        """Move to COMPLETE. Idempotent when already complete.

        A session counts as complete when either its status or its
        completed_at says so, so a half-written document is not completed twice.

        Args:
            at: Completion time (UTC).

        Returns:
            True if the state changed, False if the session was already complete.
        """
        if not self.is_pending:
            return False
        if at < self.started_at:
            raise ValidationException(
                "Session cannot complete before it started", field="completed_at"
            )
        self.status = SessionStatus.COMPLETE
        self.completed_at = at
        return True

    def ensure_accepts_activity(self) -> None:
        """Raise ValidationException unless new match activity may be linked to this session."""
        if not self.is_pending:
            raise ValidationException(
                f"Session {self.id} is complete; new activity cannot be attached",
                field="status",
            )
