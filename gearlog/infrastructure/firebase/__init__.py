"""Firestore integration over the REST API (httpx + google-auth)."""

from gearlog.infrastructure.firebase.client import create_firestore_client

__all__ = [
    "create_firestore_client",
]
