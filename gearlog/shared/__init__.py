"""Shared utilities: telemetry and cross-cutting helpers.

Used by domain, application, and infrastructure. No business logic.
"""

from gearlog.shared.utils import (
    ensure_utc,
    generate_cuid,
    generate_loadout_name,
    generate_session_name,
    utc_now,
)

__all__ = [
    "ensure_utc",
    "generate_cuid",
    "generate_loadout_name",
    "generate_session_name",
    "utc_now",
]
