"""Document store backends for bills, transactions, registers and online orders."""

from __future__ import annotations

import asyncio
import copy
import json
import operator
import sqlite3
from contextlib import closing
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Protocol, Sequence
from uuid import uuid4

from biller.errors import DocumentNotFoundError, StoreError
from biller.money import ZERO, to_money

Filter = tuple[str, str, Any]

_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    ">=": operator.ge,
    "<=": operator.le,
    "==": operator.eq,
}


def _check_filters(filters: Sequence[Filter]) -> None:
    for field_name, op, _ in filters:
        if op not in _OPERATORS:
            raise ValueError(f"unsupported filter operator {op!r} on {field_name!r}")


def _incremented(current: Any, delta: Decimal) -> str:
    base = to_money(str(current)) if current is not None else ZERO
    return str(to_money(base + delta))


class DocumentStore(Protocol):
    """
    Minimal async document store.

    Documents are JSON-compatible dicts keyed by a store-generated id. Read
    results carry their id under the "id" key. There are no cross-document
    transactions: every call is an independent write.
    """

    async def add(self, collection: str, data: dict[str, Any]) -> str: ...

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None: ...

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None: ...

    async def increment(self, collection: str, doc_id: str, field_name: str, delta: Decimal) -> Decimal: ...

    async def query(self, collection: str, filters: Sequence[Filter] = ()) -> list[dict[str, Any]]: ...


class MemoryDocumentStore:
    """In-process store; documents are deep-copied on the way in and out."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = uuid4().hex
        self._collections.setdefault(collection, {})[doc_id] = copy.deepcopy(data)
        return doc_id

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        body = self._collections.get(collection, {}).get(doc_id)
        if body is None:
            return None
        return {"id": doc_id, **copy.deepcopy(body)}

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        body = self._collections.get(collection, {}).get(doc_id)
        if body is None:
            raise DocumentNotFoundError(collection, doc_id)
        body.update(copy.deepcopy(fields))

    async def increment(self, collection: str, doc_id: str, field_name: str, delta: Decimal) -> Decimal:
        body = self._collections.setdefault(collection, {}).setdefault(doc_id, {})
        body[field_name] = _incremented(body.get(field_name), delta)
        return Decimal(body[field_name])

    async def query(self, collection: str, filters: Sequence[Filter] = ()) -> list[dict[str, Any]]:
        _check_filters(filters)
        results = []
        for doc_id, body in self._collections.get(collection, {}).items():
            if all(
                field_name in body and _OPERATORS[op](body[field_name], value) for field_name, op, value in filters
            ):
                results.append({"id": doc_id, **copy.deepcopy(body)})
        return results


class SqliteDocumentStore:
    """Single-file store keeping JSON document bodies in SQLite."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _connect(self) -> sqlite3.Connection:
        if str(self.path) != ":memory:":
            self.path.parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(self.path)

    def bootstrap_schema(self) -> None:
        """Create persistence schema if it does not already exist."""
        with closing(self._connect()) as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    collection TEXT NOT NULL,
                    id TEXT NOT NULL,
                    body TEXT NOT NULL,
                    UNIQUE(collection, id)
                );

                CREATE INDEX IF NOT EXISTS idx_documents_collection
                    ON documents(collection, seq);
                """
            )

    async def _run(self, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, *args)
        except sqlite3.Error as exc:
            raise StoreError(f"sqlite store {self.path} failed: {exc}") from exc

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        return await self._run(self._add, collection, data)

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        return await self._run(self._get, collection, doc_id)

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        await self._run(self._update, collection, doc_id, fields)

    async def increment(self, collection: str, doc_id: str, field_name: str, delta: Decimal) -> Decimal:
        return await self._run(self._increment, collection, doc_id, field_name, delta)

    async def query(self, collection: str, filters: Sequence[Filter] = ()) -> list[dict[str, Any]]:
        _check_filters(filters)
        return await self._run(self._query, collection, list(filters))

    def _add(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = uuid4().hex
        with closing(self._connect()) as conn, conn:
            conn.execute(
                "INSERT INTO documents (collection, id, body) VALUES (?, ?, ?)",
                (collection, doc_id, json.dumps(data)),
            )
        return doc_id

    def _get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT body FROM documents WHERE collection = ? AND id = ?", (collection, doc_id)
            ).fetchone()
        if row is None:
            return None
        return {"id": doc_id, **json.loads(row[0])}

    def _update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        with closing(self._connect()) as conn, conn:
            row = conn.execute(
                "SELECT body FROM documents WHERE collection = ? AND id = ?", (collection, doc_id)
            ).fetchone()
            if row is None:
                raise DocumentNotFoundError(collection, doc_id)
            body = json.loads(row[0])
            body.update(fields)
            conn.execute(
                "UPDATE documents SET body = ? WHERE collection = ? AND id = ?",
                (json.dumps(body), collection, doc_id),
            )

    def _increment(self, collection: str, doc_id: str, field_name: str, delta: Decimal) -> Decimal:
        with closing(self._connect()) as conn, conn:
            row = conn.execute(
                "SELECT body FROM documents WHERE collection = ? AND id = ?", (collection, doc_id)
            ).fetchone()
            body = json.loads(row[0]) if row is not None else {}
            body[field_name] = _incremented(body.get(field_name), delta)
            if row is None:
                conn.execute(
                    "INSERT INTO documents (collection, id, body) VALUES (?, ?, ?)",
                    (collection, doc_id, json.dumps(body)),
                )
            else:
                conn.execute(
                    "UPDATE documents SET body = ? WHERE collection = ? AND id = ?",
                    (json.dumps(body), collection, doc_id),
                )
        return Decimal(body[field_name])

    def _query(self, collection: str, filters: list[Filter]) -> list[dict[str, Any]]:
        clauses = ["collection = ?"]
        params: list[Any] = [collection]
        for field_name, op, value in filters:
            # Operators are whitelisted by _check_filters before reaching SQL.
            clauses.append(f"json_extract(body, ?) {'=' if op == '==' else op} ?")
            params.extend([f"$.{field_name}", value])
        sql = f"SELECT id, body FROM documents WHERE {' AND '.join(clauses)} ORDER BY seq"
        with closing(self._connect()) as conn:
            rows = conn.execute(sql, params).fetchall()
        return [{"id": doc_id, **json.loads(body)} for doc_id, body in rows]
