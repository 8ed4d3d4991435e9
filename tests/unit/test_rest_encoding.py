"""Tests for Firestore REST value encoding and field paths."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from gearlog.domain.enums import ConfidenceLevel
from gearlog.infrastructure.firebase._rest_encoding import (
    decode_document,
    encode_document,
    field_path,
    nest_updates,
    split_field_path,
)


class TestEncodeDocument:
    def test_scalar_types(self) -> None:
        fields = encode_document({"s": "x", "i": 3, "f": 1.5, "b": True, "n": None})["fields"]
        assert fields["s"] == {"stringValue": "x"}
        assert fields["i"] == {"integerValue": "3"}
        assert fields["f"] == {"doubleValue": 1.5}
        assert fields["b"] == {"booleanValue": True}
        assert fields["n"] == {"nullValue": None}

    def test_enum_encoded_as_value(self) -> None:
        fields = encode_document({"level": ConfidenceLevel.HIGH})["fields"]
        assert fields["level"] == {"stringValue": "high"}

    def test_aware_datetime_converted_to_utc(self) -> None:
        t = datetime(2025, 1, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
        fields = encode_document({"t": t})["fields"]
        assert fields["t"] == {"timestampValue": "2025-01-01T12:00:00.000000Z"}

    def test_unsupported_type(self) -> None:
        with pytest.raises(TypeError):
            encode_document({"x": object()})


class TestDecodeDocument:
    def test_nested_round_trip(self) -> None:
        data = {
            "links": {"123": {"snapshot_id": "abc", "at": datetime(2025, 1, 1, tzinfo=UTC)}},
            "ids": ["a", "b"],
            "count": 2,
        }
        assert decode_document(encode_document(data)["fields"]) == data

    def test_empty(self) -> None:
        assert decode_document(None) == {}
        assert decode_document({}) == {}


class TestFieldPath:
    def test_identifiers_unquoted(self) -> None:
        assert field_path("snapshot_links", "c_1", "snapshot_id") == "snapshot_links.c_1.snapshot_id"

    def test_numeric_segment_quoted(self) -> None:
        assert field_path("performance", "2305843009261519028") == "performance.`2305843009261519028`"

    def test_backtick_escaped(self) -> None:
        assert field_path("a", "we`ird") == "a.`we\\`ird`"

    @pytest.mark.parametrize(
        "segments",
        [("snapshot_links", "123", "snapshot_id"), ("a", "we`ird"), ("a.b", "c")],
    )
    def test_split_inverts_join(self, segments: tuple[str, ...]) -> None:
        assert split_field_path(field_path(*segments)) == list(segments)

    def test_split_rejects_bad_paths(self) -> None:
        with pytest.raises(ValueError):
            split_field_path("a.`b")
        with pytest.raises(ValueError):
            split_field_path("a..b")

    def test_no_segments(self) -> None:
        with pytest.raises(ValueError):
            field_path()


def test_nest_updates() -> None:
    nested = nest_updates({
        field_path("snapshot_links", "1", "snapshot_id"): "t",
        field_path("snapshot_links", "1", "confidence_source"): "user",
        "updated_at": 5,
    })
    assert nested == {
        "snapshot_links": {"1": {"snapshot_id": "t", "confidence_source": "user"}},
        "updated_at": 5,
    }
