"""Optimistic read-modify-write for single Firestore documents.

The document's server updateTime acts as the version: the write carries it
as a precondition, and a concurrent writer makes the write fail instead of
being silently overwritten. The whole read-mutate-write is then retried.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Protocol

from gearlog.domain.exceptions import ConflictException, ResourceNotFoundException
from gearlog.infrastructure.firebase._rest_client import (
    DocumentNotFoundError,
    DocumentSnapshot,
    PreconditionFailedError,
)

logger = logging.getLogger(__name__)

# Receives the current document; returns the field-path updates it owns
# (empty/None means nothing to write).
DocumentMutation = Callable[[DocumentSnapshot], dict[str, Any] | None]


class _UpdatableDocument(Protocol):
    @property
    def id(self) -> str: ...

    async def get(self) -> DocumentSnapshot | None: ...

    async def update(
        self,
        updates: dict[str, Any],
        *,
        array_union: dict[str, list[Any]] | None = None,
        update_time: str | None = None,
    ) -> None: ...


async def read_modify_write(
    ref: _UpdatableDocument,
    mutate: DocumentMutation,
    *,
    resource_type: str,
    transactional: bool = True,
    max_attempts: int = 5,
) -> bool:
    """Read the document, let mutate compute targeted updates, write them.

    Args:
        ref: Document to update.
        mutate: Computes the updates from the current document.
        resource_type: Used in exception details (e.g. "aggregate").
        transactional: When True, the write is conditional on the document
            being unchanged since the read, and retried on conflict.
        max_attempts: Read-modify-write attempts before giving up.

    Returns:
        True if a write was applied, False if mutate had nothing to change.

    Raises:
        ResourceNotFoundException: The document does not exist.
        ConflictException: Every attempt lost to a concurrent writer.
    """
    for attempt in range(1, max_attempts + 1):
        snapshot = await ref.get()
        if snapshot is None:
            raise ResourceNotFoundException(resource_type, ref.id)
        updates = mutate(snapshot)
        if not updates:
            return False
        try:
            await ref.update(
                updates,
                update_time=snapshot.update_time if transactional else None,
            )
            return True
        except DocumentNotFoundError:
            raise ResourceNotFoundException(resource_type, ref.id) from None
        except PreconditionFailedError:
            logger.info(
                "%s %s changed during update (attempt %d/%d); retrying",
                resource_type,
                ref.id,
                attempt,
                max_attempts,
            )
    raise ConflictException(
        f"{resource_type} {ref.id} kept changing; gave up after {max_attempts} attempts",
        resource_type,
        ref.id,
    )
