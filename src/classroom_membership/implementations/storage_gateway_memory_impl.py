from __future__ import annotations

import asyncio
import copy
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any, Callable, Sequence

from classroom_membership.exceptions import DocumentNotFoundError, StorageError
from classroom_membership.logging_utils import create_service_logger
from classroom_membership.models import DocumentSnapshot, ServerTimestamp
from classroom_membership.protocols import FieldFilter, StorageGatewayProtocol

logger = create_service_logger("classroom_membership.storage.memory")


class InMemoryStorageGateway(StorageGatewayProtocol):
    """In-memory document store with collection-group queries and cursors.

    Ordering follows the document-store convention: results are sorted by the
    ``order_by`` field, ties broken by full document path, and documents that lack
    the ordering field are excluded. Every call yields to the event loop so that
    concurrent callers interleave the way they would against a remote store.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._documents: dict[str, dict[str, Any]] = {}
        self._clock = clock or (lambda: datetime.now(UTC))
        self._last_timestamp: datetime | None = None
        self._failures: set[tuple[str, str | None]] = set()
        self._read_delays: dict[str, float] = {}
        self.operations: list[tuple[str, str]] = []

    # ------------------------------------------------------------------
    # Test controls
    # ------------------------------------------------------------------

    def fail_on(self, operation: str, path: str | None = None) -> None:
        """Make ``operation`` raise StorageError, for one path or for every path.

        Operation names: get, query, query_group, list, create, set, update, delete.
        For queries and creates the path is the collection path or group name.
        """
        self._failures.add((operation, path))

    def clear_failures(self) -> None:
        self._failures.clear()

    def set_read_delay(self, path: str, seconds: float) -> None:
        self._read_delays[path] = seconds

    def seed_document(self, path: str, data: dict[str, Any]) -> None:
        """Write a document directly, bypassing failure injection and the operation log."""
        self._require_document_path(path)
        self._documents[path] = self._resolve_sentinels(data)

    def operation_count(self, operation: str) -> int:
        return sum(1 for op, _ in self.operations if op == operation)

    # ------------------------------------------------------------------
    # StorageGatewayProtocol
    # ------------------------------------------------------------------

    async def get_document(self, path: str) -> DocumentSnapshot | None:
        self._require_document_path(path)
        await self._enter("get", path)
        delay = self._read_delays.get(path)
        if delay:
            await asyncio.sleep(delay)
        if path not in self._documents:
            return None
        return self._snapshot(path)

    async def query_equals(
        self,
        collection_path: str,
        field: str,
        value: Any,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        start_after: DocumentSnapshot | None = None,
    ) -> list[DocumentSnapshot]:
        await self._enter("query", collection_path)
        candidates = [p for p in self._documents if self._collection_of(p) == collection_path]
        return self._run_query(
            candidates, [(field, value)], order_by, descending, limit, start_after
        )

    async def query_collection_group(
        self,
        group_name: str,
        filters: Sequence[FieldFilter],
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        start_after: DocumentSnapshot | None = None,
    ) -> list[DocumentSnapshot]:
        await self._enter("query_group", group_name)
        candidates = [
            p for p in self._documents if self._collection_of(p).rsplit("/", 1)[-1] == group_name
        ]
        return self._run_query(candidates, filters, order_by, descending, limit, start_after)

    async def list_collection(self, collection_path: str) -> list[DocumentSnapshot]:
        await self._enter("list", collection_path)
        paths = sorted(p for p in self._documents if self._collection_of(p) == collection_path)
        return [self._snapshot(p) for p in paths]

    async def create_document(self, collection_path: str, data: dict[str, Any]) -> str:
        await self._enter("create", collection_path)
        document_id = uuid.uuid4().hex[:20]
        path = f"{collection_path}/{document_id}"
        self._require_document_path(path)
        self._documents[path] = self._resolve_sentinels(data)
        return document_id

    async def set_document(self, path: str, data: dict[str, Any]) -> None:
        self._require_document_path(path)
        await self._enter("set", path)
        self._documents[path] = self._resolve_sentinels(data)

    async def update_fields(self, path: str, fields: dict[str, Any]) -> None:
        self._require_document_path(path)
        await self._enter("update", path)
        if path not in self._documents:
            raise DocumentNotFoundError(path)
        self._documents[path].update(self._resolve_sentinels(fields))

    async def delete_document(self, path: str) -> bool:
        self._require_document_path(path)
        await self._enter("delete", path)
        return self._documents.pop(path, None) is not None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _enter(self, operation: str, path: str) -> None:
        self.operations.append((operation, path))
        await asyncio.sleep(0)
        if (operation, None) in self._failures or (operation, path) in self._failures:
            logger.debug("Injected storage failure", operation=operation, path=path)
            raise StorageError(f"Injected {operation} failure", path)

    def _run_query(
        self,
        paths: list[str],
        filters: Sequence[FieldFilter],
        order_by: str | None,
        descending: bool,
        limit: int | None,
        start_after: DocumentSnapshot | None,
    ) -> list[DocumentSnapshot]:
        def matches(doc: dict[str, Any]) -> bool:
            return all(field in doc and doc[field] == value for field, value in filters)

        def sort_key(path: str, doc: dict[str, Any]) -> tuple[Any, ...]:
            return (doc[order_by], path) if order_by else (path,)

        selected = [p for p in paths if matches(self._documents[p])]
        if order_by:
            selected = [p for p in selected if order_by in self._documents[p]]
        selected.sort(key=lambda p: sort_key(p, self._documents[p]), reverse=descending)

        if start_after is not None:
            cursor_key = sort_key(start_after.path, start_after.data)
            if descending:
                selected = [p for p in selected if sort_key(p, self._documents[p]) < cursor_key]
            else:
                selected = [p for p in selected if sort_key(p, self._documents[p]) > cursor_key]

        if limit is not None:
            selected = selected[:limit]
        return [self._snapshot(p) for p in selected]

    def _resolve_sentinels(self, data: dict[str, Any]) -> dict[str, Any]:
        resolved = copy.deepcopy(data)
        if any(isinstance(v, ServerTimestamp) for v in resolved.values()):
            now = self._server_now()
            for key, value in resolved.items():
                if isinstance(value, ServerTimestamp):
                    resolved[key] = now
        return resolved

    def _server_now(self) -> datetime:
        # Strictly increasing so that creation order is always observable.
        now = self._clock()
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    def _snapshot(self, path: str) -> DocumentSnapshot:
        return DocumentSnapshot(
            id=path.rsplit("/", 1)[-1],
            path=path,
            data=copy.deepcopy(self._documents[path]),
        )

    @staticmethod
    def _collection_of(path: str) -> str:
        return path.rsplit("/", 1)[0]

    @staticmethod
    def _require_document_path(path: str) -> None:
        segments = path.split("/")
        if len(segments) % 2 != 0 or not all(segments):
            raise ValueError(f"Not a document path: {path}")
