"""Match reconciliation use cases."""

from gearlog.application.use_cases.reconciliation.record_match import RecordMatchUseCase
from gearlog.application.use_cases.reconciliation.session_check_in import (
    SessionCheckInUseCase,
)

__all__ = [
    "RecordMatchUseCase",
    "SessionCheckInUseCase",
]
