"""Document store: collection/document CRUD over the SQLite data bank.

Documents are JSON objects grouped into collections. The store supports
equality and range filters on (dotted) fields, ordering, keyset pagination,
atomic increments and chunked write batches. Configured fields are encrypted
at rest with :class:`FieldEncryptor`.
"""

from __future__ import annotations

import json
import logging
import re
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Any, Iterator

from lifelog.core.storage.database import DocumentDatabase
from lifelog.core.storage.encryption import FieldEncryptor

logger = logging.getLogger(__name__)

_FIELD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")

_OPERATORS = {
    "==": "=",
    "!=": "!=",
    "<": "<",
    "<=": "<=",
    ">": ">",
    ">=": ">=",
    "in": "IN",
}

# (field, operator, value), e.g. ("userId", "==", "u1")
Filter = tuple[str, str, Any]


class StoreError(Exception):
    """Raised when document store operations fail."""


def _json_path(field: str) -> str:
    if not _FIELD_RE.match(field):
        raise StoreError(f"Invalid field path: {field!r}")
    return "$." + field


class DocumentStore:
    """CRUD store for JSON documents, modelled on a cloud document database.

    Usage::

        db = DocumentDatabase(":memory:")
        db.initialize()
        store = DocumentStore(db)

        store.set("rhythmMap", "u1_2026-03-01", {"userId": "u1", ...})
        docs = store.query(
            "cognitiveMirror",
            where=[("userId", "==", "u1"), ("date", ">=", "2026-02-01")],
            order_by="date",
            descending=True,
        )
    """

    def __init__(
        self,
        database: DocumentDatabase,
        encryptor: FieldEncryptor | None = None,
        encrypted_fields: dict[str, list[str]] | None = None,
        *,
        batch_size: int = 400,
    ) -> None:
        self._db = database
        self._enc = encryptor
        self._encrypted_fields = encrypted_fields or {}
        self._batch_size = batch_size

    @staticmethod
    def new_id() -> str:
        return str(uuid.uuid4())

    @staticmethod
    def _now_iso() -> str:
        return datetime.now(timezone.utc).isoformat()

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    def _encode(self, collection: str, data: dict[str, Any]) -> str:
        body = {k: v for k, v in data.items() if k != "id"}
        paths = self._encrypted_fields.get(collection)
        if paths and self._enc is not None:
            body = self._enc.encrypt_fields(body, paths)
        return json.dumps(body, separators=(",", ":"))

    def _decode(self, collection: str, doc_id: str, raw: str) -> dict[str, Any]:
        data = json.loads(raw)
        paths = self._encrypted_fields.get(collection)
        if paths and self._enc is not None:
            self._enc.decrypt_fields(data, paths)
        data["id"] = doc_id
        return data

    # ------------------------------------------------------------------
    # Single-document operations
    # ------------------------------------------------------------------

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Fetch one document by id, or None if it does not exist."""
        row = self._db.connection.execute(
            "SELECT data FROM documents WHERE collection = ? AND id = ?",
            (collection, doc_id),
        ).fetchone()
        if row is None:
            return None
        return self._decode(collection, doc_id, row["data"])

    def exists(self, collection: str, doc_id: str) -> bool:
        row = self._db.connection.execute(
            "SELECT 1 FROM documents WHERE collection = ? AND id = ?",
            (collection, doc_id),
        ).fetchone()
        return row is not None

    def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        *,
        merge: bool = False,
    ) -> bool:
        """Create or overwrite a document.

        Args:
            collection: Collection name.
            doc_id: Document id.
            data: Document body.
            merge: Merge top-level fields into an existing document instead
                of replacing it.

        Returns:
            True if the document did not exist before this call.
        """
        created = self._write_set(collection, doc_id, data, merge=merge)
        self._db.connection.commit()
        return created

    def create(
        self,
        collection: str,
        data: dict[str, Any],
        doc_id: str | None = None,
    ) -> str:
        """Insert a new document and return its id.

        Raises:
            StoreError: If a document with ``doc_id`` already exists.
        """
        did = doc_id or self.new_id()
        now = self._now_iso()
        try:
            self._db.connection.execute(
                "INSERT INTO documents (collection, id, data, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (collection, did, self._encode(collection, data), now, now),
            )
        except sqlite3.IntegrityError as exc:
            raise StoreError(f"Document {collection}/{did} already exists") from exc
        self._db.connection.commit()
        logger.debug("Created %s/%s", collection, did)
        return did

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        """Merge ``fields`` into an existing document.

        Raises:
            StoreError: If the document does not exist.
        """
        self._write_update(collection, doc_id, fields)
        self._db.connection.commit()

    def delete(self, collection: str, doc_id: str) -> bool:
        """Delete a document. Returns True if one was removed."""
        cursor = self._db.connection.execute(
            "DELETE FROM documents WHERE collection = ? AND id = ?",
            (collection, doc_id),
        )
        self._db.connection.commit()
        return cursor.rowcount > 0

    def increment(
        self,
        collection: str,
        doc_id: str,
        field: str,
        amount: float = 1,
    ) -> float:
        """Atomically add ``amount`` to a numeric field, creating it if needed.

        Returns:
            The field's new value.
        """
        path = _json_path(field)
        conn = self._db.connection
        now = self._now_iso()
        conn.execute(
            "INSERT OR IGNORE INTO documents (collection, id, data, created_at, updated_at) "
            "VALUES (?, ?, '{}', ?, ?)",
            (collection, doc_id, now, now),
        )
        conn.execute(
            "UPDATE documents SET data = json_set(data, ?, "
            "COALESCE(json_extract(data, ?), 0) + ?), updated_at = ? "
            "WHERE collection = ? AND id = ?",
            (path, path, amount, now, collection, doc_id),
        )
        conn.commit()
        row = conn.execute(
            "SELECT json_extract(data, ?) FROM documents WHERE collection = ? AND id = ?",
            (path, collection, doc_id),
        ).fetchone()
        return row[0]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def query(
        self,
        collection: str,
        *,
        where: list[Filter] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        start_after_id: str | None = None,
    ) -> list[dict[str, Any]]:
        """Query a collection.

        Args:
            collection: Collection name.
            where: Filters as ``(field, op, value)``; op is one of
                ``== != < <= > >= in``.
            order_by: Field to order by. Ties (and unordered queries) fall
                back to document id.
            descending: Reverse the ordering.
            limit: Maximum documents to return.
            start_after_id: Keyset cursor for id-ordered pagination; only
                valid without ``order_by``.

        Returns:
            Matching documents with their ``id`` injected.
        """
        conditions, params = self._build_conditions(collection, where)

        if start_after_id is not None:
            if order_by is not None:
                raise StoreError("start_after_id is only supported for id-ordered queries")
            conditions.append("id > ?")
            params.append(start_after_id)

        direction = "DESC" if descending else "ASC"
        sql = "SELECT id, data FROM documents WHERE " + " AND ".join(conditions)
        if order_by:
            sql += f" ORDER BY json_extract(data, ?) {direction}, id {direction}"
            params.append(_json_path(order_by))
        else:
            sql += f" ORDER BY id {direction}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        rows = self._db.connection.execute(sql, params).fetchall()
        return [self._decode(collection, row["id"], row["data"]) for row in rows]

    def count(self, collection: str, *, where: list[Filter] | None = None) -> int:
        conditions, params = self._build_conditions(collection, where)
        row = self._db.connection.execute(
            "SELECT COUNT(*) FROM documents WHERE " + " AND ".join(conditions),
            params,
        ).fetchone()
        return row[0]

    def iter_pages(
        self,
        collection: str,
        *,
        where: list[Filter] | None = None,
        page_size: int = 200,
    ) -> Iterator[list[dict[str, Any]]]:
        """Yield id-ordered pages of a collection until it is exhausted."""
        cursor: str | None = None
        while True:
            page = self.query(
                collection, where=where, limit=page_size, start_after_id=cursor
            )
            if not page:
                return
            yield page
            if len(page) < page_size:
                return
            cursor = page[-1]["id"]

    def _build_conditions(
        self, collection: str, where: list[Filter] | None
    ) -> tuple[list[str], list[Any]]:
        conditions = ["collection = ?"]
        params: list[Any] = [collection]
        for field, op, value in where or []:
            if op not in _OPERATORS:
                raise StoreError(f"Unsupported operator: {op!r}")
            path = _json_path(field)
            if op == "in":
                values = list(value)
                if not values:
                    conditions.append("0")
                    continue
                placeholders = ",".join("?" for _ in values)
                conditions.append(f"json_extract(data, ?) IN ({placeholders})")
                params.append(path)
                params.extend(values)
            elif value is None and op in ("==", "!="):
                conditions.append(
                    "json_extract(data, ?) IS " + ("NULL" if op == "==" else "NOT NULL")
                )
                params.append(path)
            else:
                conditions.append(f"json_extract(data, ?) {_OPERATORS[op]} ?")
                params.extend([path, value])
        return conditions, params

    # ------------------------------------------------------------------
    # Batched writes
    # ------------------------------------------------------------------

    def batch(self) -> WriteBatch:
        """Start a write batch committed in chunks of ``batch_size``."""
        return WriteBatch(self, self._batch_size)

    # ------------------------------------------------------------------
    # Internal helpers (no commit)
    # ------------------------------------------------------------------

    def _write_set(
        self, collection: str, doc_id: str, data: dict[str, Any], *, merge: bool
    ) -> bool:
        conn = self._db.connection
        existing = self.get(collection, doc_id) if merge else None
        created = not self.exists(collection, doc_id)
        body = {**(existing or {}), **data} if merge else data
        now = self._now_iso()
        conn.execute(
            """INSERT INTO documents (collection, id, data, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?)
               ON CONFLICT(collection, id) DO UPDATE SET
                   data = excluded.data,
                   updated_at = excluded.updated_at""",
            (collection, doc_id, self._encode(collection, body), now, now),
        )
        return created

    def _write_update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        existing = self.get(collection, doc_id)
        if existing is None:
            raise StoreError(f"Document {collection}/{doc_id} not found")
        existing.update(fields)
        self._db.connection.execute(
            "UPDATE documents SET data = ?, updated_at = ? WHERE collection = ? AND id = ?",
            (self._encode(collection, existing), self._now_iso(), collection, doc_id),
        )

    def _write_delete(self, collection: str, doc_id: str) -> None:
        self._db.connection.execute(
            "DELETE FROM documents WHERE collection = ? AND id = ?",
            (collection, doc_id),
        )


class WriteBatch:
    """Accumulates writes and commits them in fixed-size chunks.

    Each chunk is its own transaction: a failure rolls back the failing chunk
    only, and chunks committed before it stay written.
    """

    def __init__(self, store: DocumentStore, chunk_size: int) -> None:
        self._store = store
        self._chunk_size = max(1, chunk_size)
        self._ops: list[tuple[str, str, str, dict[str, Any] | None]] = []

    def __len__(self) -> int:
        return len(self._ops)

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> WriteBatch:
        self._ops.append(("set", collection, doc_id, data))
        return self

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> WriteBatch:
        self._ops.append(("update", collection, doc_id, fields))
        return self

    def delete(self, collection: str, doc_id: str) -> WriteBatch:
        self._ops.append(("delete", collection, doc_id, None))
        return self

    def commit(self) -> int:
        """Apply all queued writes.

        Returns:
            Number of writes applied.

        Raises:
            StoreError: If a write fails; earlier chunks remain committed.
        """
        conn = self._store._db.connection
        applied = 0
        for start in range(0, len(self._ops), self._chunk_size):
            chunk = self._ops[start:start + self._chunk_size]
            try:
                for op, collection, doc_id, data in chunk:
                    if op == "set":
                        self._store._write_set(collection, doc_id, data or {}, merge=False)
                    elif op == "update":
                        self._store._write_update(collection, doc_id, data or {})
                    else:
                        self._store._write_delete(collection, doc_id)
                conn.commit()
            except (sqlite3.Error, StoreError) as exc:
                conn.rollback()
                raise StoreError(
                    f"Batch write failed after {applied} committed writes: {exc}"
                ) from exc
            applied += len(chunk)
            logger.debug("Committed batch chunk of %d writes", len(chunk))
        self._ops.clear()
        return applied
