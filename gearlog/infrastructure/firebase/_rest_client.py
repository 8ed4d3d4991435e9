"""Thin Firestore REST API client (no firebase-admin).

Uses google-auth for service account tokens and Firestore REST v1.
All HTTP calls use httpx.AsyncClient so they do not block the event loop.

Writes that must not clobber concurrent writers go through the commit
endpoint: field-path update masks, arrayUnion transforms, and exists /
updateTime preconditions.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import quote

import httpx

from gearlog.domain.exceptions import TransientStoreException
from gearlog.infrastructure.firebase._rest_encoding import (
    _encode_value,
    decode_document,
    encode_document,
    nest_updates,
)

_FIRESTORE_SCOPE = "https://www.googleapis.com/auth/datastore"
_BASE = "https://firestore.googleapis.com/v1"
_LIST_PAGE_SIZE = 300
_RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


def _get_credentials(key_dict: dict):
    """Return google.oauth2.service_account.Credentials for Firestore."""
    from google.oauth2 import service_account

    return service_account.Credentials.from_service_account_info(
        key_dict, scopes=[_FIRESTORE_SCOPE]
    )


def _get_access_token(credentials) -> str:
    from google.auth.transport.requests import Request

    if not credentials.valid:
        credentials.refresh(Request())
    return credentials.token


class DocumentExistsError(Exception):
    """Raised when createDocument returns 409 (document ID already exists)."""


class DocumentNotFoundError(Exception):
    """Raised when a write with an exists precondition targets a missing document."""


class PreconditionFailedError(Exception):
    """Raised when an updateTime precondition no longer matches (concurrent writer won)."""


class FirestoreUnavailableError(TransientStoreException):
    """Raised on transport errors, throttling, 5xx and aborted transactions."""


def _error_status(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return ""
    if isinstance(body, list):
        body = body[0] if body else {}
    return (body.get("error") or {}).get("status", "")


async def _request_async(
    client: httpx.AsyncClient,
    url: str,
    method: str = "GET",
    body: dict | None = None,
    access_token: str | None = None,
    *,
    missing_ok: bool = True,
) -> Any:
    """Perform async HTTP request to Firestore REST API.

    404 returns None when missing_ok, otherwise raises DocumentNotFoundError.
    """
    headers = {"Content-Type": "application/json"}
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"
    try:
        if method == "GET":
            resp = await client.get(url, headers=headers)
        elif method == "PATCH":
            resp = await client.patch(url, headers=headers, json=body)
        elif method == "POST":
            resp = await client.post(url, headers=headers, json=body)
        elif method == "DELETE":
            resp = await client.delete(url, headers=headers)
        else:
            raise ValueError(f"Unsupported method: {method!r}")
    except httpx.TransportError as e:
        raise FirestoreUnavailableError(f"Firestore request failed: {e}") from e

    if resp.status_code == 404:
        if missing_ok:
            return None
        raise DocumentNotFoundError(url)
    if resp.status_code == 409:
        if _error_status(resp) == "ABORTED":
            raise FirestoreUnavailableError("Firestore aborted the write due to contention")
        raise DocumentExistsError("Document already exists")
    if resp.status_code == 400 and _error_status(resp) == "FAILED_PRECONDITION":
        raise PreconditionFailedError("Document changed since it was read")
    if resp.status_code in _RETRYABLE_STATUS:
        raise FirestoreUnavailableError(f"Firestore returned HTTP {resp.status_code}")
    if resp.status_code not in (200, 204):
        resp.raise_for_status()
    if method == "DELETE":
        return {}
    raw = resp.content
    return json.loads(raw.decode()) if raw else {}


def _doc_id(name: str) -> str:
    return name.split("/")[-1] if name else ""


class DocumentReference:
    """Reference to a single document; matches firestore API style."""

    def __init__(self, client: "FirestoreRESTClient", path: str):
        self._client = client
        self._path = path

    @property
    def id(self) -> str:
        return _doc_id(self._path)

    @property
    def path(self) -> str:
        return self._path

    def collection(self, collection_id: str) -> "CollectionReference":
        """Return a subcollection of this document."""
        return CollectionReference(self._client, f"{self._path}/{collection_id}")

    async def set(self, data: dict[str, Any]) -> None:
        """Create or overwrite the document (PATCH with full replace)."""
        doc = encode_document(data)
        url = f"{_BASE}/{self._path}"
        await _request_async(
            self._client._http,
            url,
            method="PATCH",
            body=doc,
            access_token=await self._client.get_token(),
        )

    async def get(self) -> DocumentSnapshot | None:
        """Fetch the document; returns None if not found."""
        url = f"{_BASE}/{self._path}"
        out = await _request_async(
            self._client._http, url, access_token=await self._client.get_token()
        )
        if not out:
            return None
        return DocumentSnapshot(
            self.id, decode_document(out.get("fields")), out.get("updateTime")
        )

    async def update(
        self,
        updates: dict[str, Any],
        *,
        array_union: dict[str, list[Any]] | None = None,
        update_time: str | None = None,
    ) -> None:
        """Update only the given field paths (and arrayUnion transforms).

        Fields not named in updates are left untouched. The document must
        exist; with update_time the write only applies if the document has
        not changed since it was read.

        Raises:
            DocumentNotFoundError: The document does not exist.
            PreconditionFailedError: update_time no longer matches.
        """
        write: dict[str, Any] = {
            "update": {"name": self._path, **encode_document(nest_updates(updates))},
            "updateMask": {"fieldPaths": list(updates)},
        }
        if array_union:
            write["updateTransforms"] = [
                {
                    "fieldPath": path,
                    "appendMissingElements": _encode_value(list(values))["arrayValue"],
                }
                for path, values in array_union.items()
            ]
        if update_time:
            write["currentDocument"] = {"updateTime": update_time}
        else:
            write["currentDocument"] = {"exists": True}
        await self._client.commit([write])

    async def delete(self) -> None:
        """Delete the document. Idempotent if document is already missing (404)."""
        url = f"{_BASE}/{self._path}"
        await _request_async(
            self._client._http,
            url,
            method="DELETE",
            access_token=await self._client.get_token(),
        )


class DocumentSnapshot:
    """Snapshot of a document (id + data + server update time)."""

    def __init__(self, id_: str, data: dict, update_time: str | None = None):
        self.id = id_
        self._data = data
        self.update_time = update_time

    def to_dict(self) -> dict:
        return self._data


_OP_MAP: dict[str, str] = {
    "==": "EQUAL",
    "!=": "NOT_EQUAL",
    "<": "LESS_THAN",
    "<=": "LESS_THAN_OR_EQUAL",
    ">": "GREATER_THAN",
    ">=": "GREATER_THAN_OR_EQUAL",
    "in": "IN",
    "not-in": "NOT_IN",
    "array_contains": "ARRAY_CONTAINS",
    "array-contains": "ARRAY_CONTAINS",
    "array_contains_any": "ARRAY_CONTAINS_ANY",
    "array-contains-any": "ARRAY_CONTAINS_ANY",
}


class _Query:
    """Fluent query builder; runs via runQuery (AND filters, order, offset, limit on server)."""

    def __init__(
        self,
        client: "FirestoreRESTClient",
        parent: str,
        collection_id: str,
        *,
        all_descendants: bool = False,
    ):
        self._client = client
        self._parent = parent
        self._collection_id = collection_id
        self._all_descendants = all_descendants
        self._filters: list[tuple[str, str, Any]] = []
        self._orders: list[tuple[str, str]] = []
        self._offset: int = 0
        self._limit: int | None = None

    def where(self, field: str, op: str, value: Any) -> "_Query":
        self._filters.append((field, _OP_MAP.get(op, op), value))
        return self

    def order_by(self, field: str, direction: str = "ASCENDING") -> "_Query":
        self._orders.append((field, direction))
        return self

    def offset(self, n: int) -> "_Query":
        self._offset = n
        return self

    def limit(self, n: int) -> "_Query":
        self._limit = n
        return self

    def to_structured_query(self) -> dict[str, Any]:
        """Return the structuredQuery body for runQuery."""
        source: dict[str, Any] = {"collectionId": self._collection_id}
        if self._all_descendants:
            source["allDescendants"] = True
        structured: dict[str, Any] = {"from": [source]}
        field_filters = [
            {
                "fieldFilter": {
                    "field": {"fieldPath": field},
                    "op": op,
                    "value": _encode_value(value),
                }
            }
            for field, op, value in self._filters
        ]
        if len(field_filters) == 1:
            structured["where"] = field_filters[0]
        elif field_filters:
            structured["where"] = {
                "compositeFilter": {"op": "AND", "filters": field_filters}
            }
        if self._orders:
            structured["orderBy"] = [
                {"field": {"fieldPath": field}, "direction": direction}
                for field, direction in self._orders
            ]
        if self._offset:
            structured["offset"] = self._offset
        if self._limit:
            structured["limit"] = self._limit
        return structured

    async def stream(self) -> AsyncIterator[DocumentSnapshot]:
        """Execute the query and yield document snapshots."""
        url = f"{_BASE}/{self._parent}:runQuery"
        body = {"structuredQuery": self.to_structured_query()}
        resp = await _request_async(
            self._client._http,
            url,
            method="POST",
            body=body,
            access_token=await self._client.get_token(),
        )
        items = resp if isinstance(resp, list) else ([resp] if resp else [])
        for item in items:
            if "document" not in item:
                continue
            doc = item["document"]
            yield DocumentSnapshot(
                _doc_id(doc.get("name", "")),
                decode_document(doc.get("fields")),
                doc.get("updateTime"),
            )


class CollectionReference:
    """Reference to a collection; matches firestore API style."""

    def __init__(self, client: "FirestoreRESTClient", path: str):
        self._client = client
        self._path = path.rstrip("/")

    def document(self, document_id: str) -> DocumentReference:
        return DocumentReference(self._client, f"{self._path}/{document_id}")

    async def create(self, document_id: str, data: dict[str, Any]) -> None:
        """Create a document with the given ID (fail with DocumentExistsError if it exists)."""
        doc = encode_document(data)
        url = f"{_BASE}/{self._path}?documentId={quote(document_id, safe='')}"
        await _request_async(
            self._client._http,
            url,
            method="POST",
            body=doc,
            access_token=await self._client.get_token(),
        )

    def _query(self) -> _Query:
        parent = self._path.rsplit("/", 1)[0]
        collection_id = self._path.split("/")[-1]
        return _Query(self._client, parent, collection_id)

    def where(self, field: str, op: str, value: Any) -> _Query:
        """Start a query with a filter. Chain .where(), .order_by(), .limit(), then .stream()."""
        return self._query().where(field, op, value)

    def order_by(self, field: str, direction: str = "ASCENDING") -> _Query:
        """Start an unfiltered, ordered query."""
        return self._query().order_by(field, direction)

    async def stream(self) -> AsyncIterator[DocumentSnapshot]:
        """List every document in the collection (shallow), following page tokens."""
        page_token: str | None = None
        while True:
            url = f"{_BASE}/{self._path}?pageSize={_LIST_PAGE_SIZE}"
            if page_token:
                url += f"&pageToken={quote(page_token, safe='')}"
            out = await _request_async(
                self._client._http, url, access_token=await self._client.get_token()
            )
            if not out:
                return
            for doc in out.get("documents", []):
                yield DocumentSnapshot(
                    _doc_id(doc.get("name", "")),
                    decode_document(doc.get("fields")),
                    doc.get("updateTime"),
                )
            page_token = out.get("nextPageToken")
            if not page_token:
                return


class FirestoreRESTClient:
    """Lightweight Firestore client using REST API (no firebase-admin)."""

    def __init__(
        self,
        project_id: str,
        credentials,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._project_id = project_id
        self._credentials = credentials
        self._prefix = f"projects/{project_id}/databases/(default)/documents"
        self._http = http_client if http_client is not None else httpx.AsyncClient(timeout=timeout)
        self._owns_http = http_client is None

    async def aclose(self) -> None:
        """Close the HTTP client only if we created it (do not close injected client)."""
        if self._owns_http:
            await self._http.aclose()

    async def get_token(self) -> str:
        """Return a valid access token; refreshes in thread pool to avoid blocking."""
        return await asyncio.to_thread(_get_access_token, self._credentials)

    def collection(self, collection_id: str) -> CollectionReference:
        return CollectionReference(self, f"{self._prefix}/{collection_id}")

    def collection_group(self, collection_id: str) -> _Query:
        """Query every collection with this id, at any depth (e.g. all snapshot histories)."""
        return _Query(self, self._prefix, collection_id, all_descendants=True)

    async def commit(self, writes: list[dict[str, Any]]) -> dict:
        """Apply writes atomically through documents:commit."""
        url = f"{_BASE}/{self._prefix}:commit"
        return await _request_async(
            self._http,
            url,
            method="POST",
            body={"writes": writes},
            access_token=await self.get_token(),
            missing_ok=False,
        )
