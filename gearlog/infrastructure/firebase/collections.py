"""Firestore collection names (schema-in-code).

Firestore has no DDL or migrations. Collections are created automatically
when you first write a document. Use these constants so collection names
stay consistent and act as the single source of truth for the "schema".

Layout:
    snapshots/{loadout hash}
    snapshots/{loadout hash}/histories/{cuid}
    aggregates/{activity id}
    sessions/{cuid}
    active_sessions/{user id}_{character id}   (pending-session guard)
"""

COLLECTION_SNAPSHOTS = "snapshots"
COLLECTION_HISTORIES = "histories"
COLLECTION_AGGREGATES = "aggregates"
COLLECTION_SESSIONS = "sessions"
COLLECTION_ACTIVE_SESSIONS = "active_sessions"
