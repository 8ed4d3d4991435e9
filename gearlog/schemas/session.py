"""Recording session schema (stored document)."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from gearlog.domain.entities.session import SessionEntity
from gearlog.domain.enums import SessionStatus


class Session(BaseModel):
    """Recording window for one (user, character) pair."""

    id: str
    user_id: str
    character_id: str
    name: str = ""
    status: SessionStatus = SessionStatus.PENDING
    started_at: datetime
    completed_at: datetime | None = None
    started_by: str | None = None
    aggregate_ids: list[str] = Field(default_factory=list)
    last_seen_activity_id: str | None = None
    last_seen_timestamp: datetime | None = None

    def to_entity(self) -> SessionEntity:
        return SessionEntity(
            id=self.id,
            user_id=self.user_id,
            character_id=self.character_id,
            status=self.status,
            started_at=self.started_at,
            completed_at=self.completed_at,
        )
