"""Tests for domain exceptions (error_code, message, details)."""

from gearlog.domain.exceptions import (
    ConflictException,
    GearlogException,
    ResourceNotFoundException,
    SessionAlreadyActiveException,
    TransientStoreException,
    ValidationException,
)
from gearlog.infrastructure.firebase._rest_client import FirestoreUnavailableError


def test_gearlog_exception_default_error_code() -> None:
    """Base GearlogException uses class name as error_code when not provided."""
    exc = GearlogException("Something failed")
    assert exc.message == "Something failed"
    assert exc.error_code == "GearlogException"
    assert exc.details == {}


def test_gearlog_exception_custom_error_code_and_details() -> None:
    exc = GearlogException("Oops", error_code="CUSTOM", details={"key": "value"})
    assert exc.error_code == "CUSTOM"
    assert exc.details == {"key": "value"}


def test_validation_exception() -> None:
    """ValidationException sets VALIDATION_ERROR and optional field in details."""
    exc = ValidationException("Loadout is empty", field="loadout")
    assert exc.message == "Loadout is empty"
    assert exc.error_code == "VALIDATION_ERROR"
    assert exc.details == {"field": "loadout"}


def test_validation_exception_without_field() -> None:
    exc = ValidationException("Invalid")
    assert exc.details == {}


def test_resource_not_found_exception() -> None:
    exc = ResourceNotFoundException("snapshot", "abc")
    assert "abc" in exc.message
    assert exc.error_code == "RESOURCE_NOT_FOUND"
    assert exc.details == {"resource_type": "snapshot", "resource_id": "abc"}


def test_conflict_exception() -> None:
    exc = ConflictException("kept changing", "aggregate", "act-1")
    assert exc.error_code == "CONFLICT"
    assert exc.details == {"resource_type": "aggregate", "resource_id": "act-1"}


def test_session_already_active_is_a_conflict() -> None:
    """SessionAlreadyActiveException is a ConflictException carrying the pair and holder."""
    exc = SessionAlreadyActiveException("u-1", "c-1", "s-9")
    assert isinstance(exc, ConflictException)
    assert exc.error_code == "SESSION_ALREADY_ACTIVE"
    assert exc.details["resource_id"] == "s-9"
    assert exc.details["user_id"] == "u-1"
    assert exc.details["character_id"] == "c-1"


def test_session_already_active_without_holder_uses_pair() -> None:
    exc = SessionAlreadyActiveException("u-1", "c-1")
    assert exc.details["resource_id"] == "u-1/c-1"


def test_transient_store_exception_default_message() -> None:
    exc = TransientStoreException()
    assert exc.error_code == "TRANSIENT_STORE_ERROR"
    assert "unavailable" in exc.message


def test_firestore_unavailable_is_transient() -> None:
    """The REST client's availability error is retried like any transient store failure."""
    exc = FirestoreUnavailableError("HTTP 503")
    assert isinstance(exc, TransientStoreException)
    assert exc.error_code == "TRANSIENT_STORE_ERROR"
