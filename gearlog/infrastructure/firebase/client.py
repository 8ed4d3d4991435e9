"""Firestore client factory (REST-based, no firebase-admin).

Builds a client from either FIREBASE_SERVICE_ACCOUNT_KEY (JSON string) or
FIREBASE_SERVICE_ACCOUNT_PATH (file path). The process entry point owns the
returned client and passes it to each repository; nothing here is global.
"""

import json
import logging
from pathlib import Path

from gearlog.core.config import Settings, get_settings
from gearlog.infrastructure.firebase._rest_client import (
    FirestoreRESTClient,
    _get_credentials,
)

logger = logging.getLogger(__name__)


def _load_key_dict(settings: Settings) -> dict | None:
    """Return service account dict from env key or file path."""
    key_json = (
        settings.firebase_service_account_key.get_secret_value()
        if settings.firebase_service_account_key
        else None
    )
    if key_json:
        try:
            return json.loads(key_json)
        except json.JSONDecodeError as e:
            raise ValueError("FIREBASE_SERVICE_ACCOUNT_KEY is not valid JSON") from e
    path = settings.firebase_service_account_path
    if path:
        resolved = Path(path).expanduser().resolve() if not Path(path).is_absolute() else Path(path)
        if not resolved.is_file():
            logger.warning(
                "FIREBASE_SERVICE_ACCOUNT_PATH set but file not found: %s (resolved: %s)",
                path,
                resolved,
            )
            return None
        with open(resolved, encoding="utf-8") as f:
            return json.load(f)
    return None


def create_firestore_client(settings: Settings | None = None) -> FirestoreRESTClient:
    """Create a Firestore client (REST API + google-auth).

    Returns:
        A new client; the caller must await client.aclose() on shutdown.

    Raises:
        ValueError: No credentials configured, or the service account JSON
            is malformed or missing project_id.
    """
    settings = settings or get_settings()
    key_dict = _load_key_dict(settings)
    if not key_dict:
        raise ValueError(
            "Firestore is not configured: set FIREBASE_SERVICE_ACCOUNT_KEY (full JSON string) "
            "or FIREBASE_SERVICE_ACCOUNT_PATH (path to JSON file)."
        )
    project_id = key_dict.get("project_id")
    if not project_id:
        raise ValueError("Firebase service account JSON missing 'project_id'")

    cred = _get_credentials(key_dict)
    logger.info("Firestore client created for project %s", project_id)
    return FirestoreRESTClient(
        project_id, cred, timeout=settings.firestore_timeout_seconds
    )
