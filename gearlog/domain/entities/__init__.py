"""Domain entities.

Pure domain models; no persistence concerns.
"""

from gearlog.domain.entities.session import ALLOWED_TRANSITIONS, SessionEntity

__all__ = [
    "ALLOWED_TRANSITIONS",
    "SessionEntity",
]
