"""Encode/decode Python values to/from Firestore REST API 'fields' format.

Also builds and parses Firestore field paths. Map keys used by this project
(character ids, activity ids) are numeric strings, which Firestore only
accepts in a field path when quoted with backticks.
"""

import base64
import re
from datetime import UTC, datetime
from enum import Enum
from typing import Any

_SIMPLE_SEGMENT = re.compile(r"^[A-Za-z_][A-Za-z_0-9]*$")


def _encode_value(v: Any) -> dict:
    if v is None:
        return {"nullValue": None}
    if isinstance(v, Enum):
        return _encode_value(v.value)
    if isinstance(v, bool):
        return {"booleanValue": v}
    if isinstance(v, int):
        return {"integerValue": str(v)}
    if isinstance(v, float):
        return {"doubleValue": v}
    if isinstance(v, datetime):
        if v.tzinfo is not None:
            v = v.astimezone(UTC)
        return {"timestampValue": v.strftime("%Y-%m-%dT%H:%M:%S.%fZ")}
    if isinstance(v, str):
        return {"stringValue": v}
    if isinstance(v, bytes):
        return {"bytesValue": base64.standard_b64encode(v).decode("ascii")}
    if isinstance(v, (list, tuple)):
        return {"arrayValue": {"values": [_encode_value(x) for x in v]}}
    if isinstance(v, dict):
        return {"mapValue": {"fields": {str(k): _encode_value(x) for k, x in v.items()}}}
    raise TypeError(f"Unsupported Firestore value type: {type(v)}")


def encode_document(data: dict[str, Any]) -> dict:
    """Convert a Python dict to Firestore REST Document.fields format."""
    return {"fields": {k: _encode_value(v) for k, v in data.items()}}


def _decode_value(obj: dict) -> Any:
    if "nullValue" in obj:
        return None
    if "booleanValue" in obj:
        return obj["booleanValue"]
    if "integerValue" in obj:
        return int(obj["integerValue"])
    if "doubleValue" in obj:
        return obj["doubleValue"]
    if "timestampValue" in obj:
        return datetime.fromisoformat(obj["timestampValue"].replace("Z", "+00:00"))
    if "stringValue" in obj:
        return obj["stringValue"]
    if "bytesValue" in obj:
        return base64.standard_b64decode(obj["bytesValue"])
    if "arrayValue" in obj:
        vals = obj.get("arrayValue", {}).get("values") or []
        return [_decode_value(x) for x in vals]
    if "mapValue" in obj:
        fields = obj["mapValue"].get("fields") or {}
        return {k: _decode_value(x) for k, x in fields.items()}
    return None


def decode_document(fields: dict | None) -> dict:
    """Convert Firestore REST Document.fields (name -> typed value) to a Python dict."""
    if not fields:
        return {}
    return {k: _decode_value(v) for k, v in fields.items()}


def _quote_segment(segment: str) -> str:
    if _SIMPLE_SEGMENT.match(segment):
        return segment
    escaped = segment.replace("\\", "\\\\").replace("`", "\\`")
    return f"`{escaped}`"


def field_path(*segments: str) -> str:
    """Join segments into a Firestore field path, quoting non-identifier segments.

    Example:
        field_path("snapshot_links", "2305843009261519028")
        -> "snapshot_links.`2305843009261519028`"
    """
    if not segments:
        raise ValueError("field_path needs at least one segment")
    return ".".join(_quote_segment(str(s)) for s in segments)


def split_field_path(path: str) -> list[str]:
    """Split a Firestore field path into raw segments (inverse of field_path)."""
    segments: list[str] = []
    current: list[str] = []
    i = 0
    quoted = False
    while i < len(path):
        ch = path[i]
        if quoted:
            if ch == "\\" and i + 1 < len(path):
                current.append(path[i + 1])
                i += 2
                continue
            if ch == "`":
                quoted = False
            else:
                current.append(ch)
        elif ch == "`":
            quoted = True
        elif ch == ".":
            segments.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1
    if quoted:
        raise ValueError(f"Unterminated backtick in field path: {path!r}")
    segments.append("".join(current))
    if any(s == "" for s in segments):
        raise ValueError(f"Empty segment in field path: {path!r}")
    return segments


def nest_updates(updates: dict[str, Any]) -> dict[str, Any]:
    """Turn {"a.`1`.b": v} style updates into the nested dict a write body needs."""
    nested: dict[str, Any] = {}
    for path, value in updates.items():
        *parents, leaf = split_field_path(path)
        target = nested
        for segment in parents:
            target = target.setdefault(segment, {})
        target[leaf] = value
    return nested
