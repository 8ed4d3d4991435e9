"""Shared utilities: datetime, generators, retry."""

from gearlog.shared.utils.datetime import ensure_utc, utc_now
from gearlog.shared.utils.generators import (
    generate_cuid,
    generate_loadout_name,
    generate_session_name,
)

__all__ = [
    "generate_cuid",
    "generate_loadout_name",
    "generate_session_name",
    "utc_now",
    "ensure_utc",
]
