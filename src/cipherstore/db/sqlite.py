"""
SQLite client for cipherstore.

This module provides a persistence backend over a single ``sqlite3``
connection. Every call runs in a worker thread and takes the
connection's lock, so statements issued through one backend never
overlap.
"""

import asyncio
import json
import sqlite3
import threading
import types
from collections.abc import Callable
from typing import Annotated, Any, TypeVar, Union, get_args, get_origin

import structlog
from pydantic import BaseModel, TypeAdapter
from pydantic_core import to_jsonable_python

from ..models.resolver import resolve_secure_fields
from .backend import R, T, quote_identifier, table_name_for


logger = structlog.get_logger(__name__)

_JSON_ORIGINS = (dict, list, tuple, set, frozenset)

M = TypeVar("M", bound=BaseModel)

_NATIVE = (str, int, float, bytes, type(None))


def _bind(args: tuple) -> tuple:
    """Convert query parameters sqlite3 cannot bind (UUID, datetime, ...) to JSON scalars."""
    return tuple(a if isinstance(a, _NATIVE) else to_jsonable_python(a) for a in args)


def _column_affinity(annotation: object) -> tuple[str, bool]:
    """
    Map a field annotation to a column type.

    Returns:
        Tuple of (SQLite column type, stored as JSON text)
    """
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        members = [a for a in get_args(annotation) if a is not type(None)]
        if len(members) == 1:
            return _column_affinity(members[0])
        return "TEXT", False

    if origin is Annotated:
        return _column_affinity(get_args(annotation)[0])

    if origin in _JSON_ORIGINS or annotation in _JSON_ORIGINS:
        return "TEXT", True
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return "TEXT", True
    if annotation in (int, bool):
        return "INTEGER", False
    if annotation is float:
        return "REAL", False
    return "TEXT", False


class _SQLiteTransaction:
    """Transaction handle bound to an open ``BEGIN`` block."""

    def __init__(self, backend: "SQLiteBackend") -> None:
        self._backend = backend
        self._conn = backend._conn

    def insert(self, obj: BaseModel) -> int:
        table = table_name_for(type(obj))
        row = self._backend._to_row(obj)
        columns = ", ".join(quote_identifier(c) for c in row)
        placeholders = ", ".join("?" for _ in row)
        cursor = self._conn.execute(
            f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
            tuple(row.values()),
        )
        return cursor.rowcount

    def update(self, obj: BaseModel) -> int:
        table = table_name_for(type(obj))
        row = self._backend._to_row(obj)
        pk = row.pop("id")
        if not row:
            row = {"id": pk}
        assignments = ", ".join(f"{quote_identifier(c)} = ?" for c in row)
        cursor = self._conn.execute(
            f'UPDATE {table} SET {assignments} WHERE "id" = ?',
            (*row.values(), pk),
        )
        return cursor.rowcount

    def execute(self, sql: str, *args: Any) -> int:
        return self._conn.execute(sql, _bind(args)).rowcount


class SQLiteBackend:
    """
    SQLite persistence backend.

    One backend owns one connection. Models map to tables named after
    their class, with one column per pydantic field and ``id`` as the
    primary key.
    """

    def __init__(self, path: str = ":memory:") -> None:
        """
        Open the database.

        Args:
            path: Filesystem path of the database, or ``:memory:``
        """
        self.path = path
        # Transactions are opened explicitly in run_in_transaction
        self._conn = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._closed = False
        self._json_columns: dict[type, frozenset[str]] = {}
        self._adapters: dict[type, dict[str, TypeAdapter]] = {}

        logger.debug("sqlite_opened", path=path)

    @property
    def closed(self) -> bool:
        return self._closed

    def _json_columns_for(self, model_cls: type[BaseModel]) -> frozenset[str]:
        cols = self._json_columns.get(model_cls)
        if cols is None:
            cols = frozenset(
                name
                for name, field in model_cls.model_fields.items()
                if _column_affinity(field.annotation)[1]
            )
            self._json_columns[model_cls] = cols
        return cols

    def _to_row(self, obj: BaseModel) -> dict[str, Any]:
        row = obj.model_dump(mode="json")
        for name in self._json_columns_for(type(obj)):
            if row.get(name) is not None:
                row[name] = json.dumps(row[name])
        return row

    def _adapters_for(self, model_cls: type[BaseModel]) -> dict[str, TypeAdapter]:
        adapters = self._adapters.get(model_cls)
        if adapters is None:
            secure = set(resolve_secure_fields(model_cls))
            adapters = {
                name: TypeAdapter(field.rebuild_annotation())
                for name, field in model_cls.model_fields.items()
                if name not in secure
            }
            self._adapters[model_cls] = adapters
        return adapters

    def _from_row(self, model_cls: type[M], row: sqlite3.Row) -> M:
        """
        Build a model from a row.

        Ordinary columns are validated against their field types. Sensitive
        columns hold ciphertext at this point, so they are loaded as stored
        and their constraints are left to the plaintext.
        """
        data = dict(row)
        for name in self._json_columns_for(model_cls):
            if isinstance(data.get(name), str):
                data[name] = json.loads(data[name])

        adapters = self._adapters_for(model_cls)
        values = {
            name: adapters[name].validate_python(value) if name in adapters else value
            for name, value in data.items()
            if name in model_cls.model_fields
        }
        return model_cls.model_construct(**values)

    async def _run(self, fn: Callable[..., R], *args: Any) -> R:
        def locked() -> R:
            with self._lock:
                return fn(*args)

        return await asyncio.to_thread(locked)

    async def run_in_transaction(self, fn: Callable[[_SQLiteTransaction], R]) -> R:
        """
        Run ``fn`` inside a transaction.

        The transaction commits when ``fn`` returns and rolls back when it
        raises; the exception is re-raised unchanged.
        """

        def body() -> R:
            self._conn.execute("BEGIN")
            try:
                result = fn(_SQLiteTransaction(self))
            except BaseException:
                self._conn.execute("ROLLBACK")
                raise
            self._conn.execute("COMMIT")
            return result

        return await self._run(body)

    async def execute(self, sql: str, *args: Any) -> int:
        """Execute a statement outside a transaction and return rows affected."""
        return await self._run(lambda: self._conn.execute(sql, _bind(args)).rowcount)

    async def execute_scalar(self, sql: str, *args: Any) -> Any:
        """Execute a query and return the first column of the first row."""

        def scalar() -> Any:
            row = self._conn.execute(sql, _bind(args)).fetchone()
            return None if row is None else row[0]

        return await self._run(scalar)

    async def query(self, model_cls: type[T], sql: str, *args: Any) -> list[T]:
        """Run a parameterised query and build a model from every row."""

        def fetch() -> list[T]:
            rows = self._conn.execute(sql, _bind(args)).fetchall()
            return [self._from_row(model_cls, row) for row in rows]

        return await self._run(fetch)

    async def get(self, model_cls: type[T], pk: Any) -> T | None:
        """Fetch the row whose ``id`` equals ``pk``."""
        table = table_name_for(model_cls)
        items = await self.query(model_cls, f'SELECT * FROM {table} WHERE "id" = ? LIMIT 1', pk)
        return items[0] if items else None

    async def get_all_with_children(self, model_cls: type[T]) -> list[T]:
        """
        Fetch every row of a model's table.

        SQLite rows carry no relationships, so there are no children to
        hydrate; nested values come back from their JSON columns.
        """
        return await self.query(model_cls, f"SELECT * FROM {table_name_for(model_cls)}")

    async def create_table(self, model_cls: type[BaseModel]) -> None:
        """Create the table for a model type if it does not exist yet."""
        columns = []
        for name, field in model_cls.model_fields.items():
            column_type, _ = _column_affinity(field.annotation)
            column = f"{quote_identifier(name)} {column_type}"
            if name == "id":
                column += " PRIMARY KEY"
            columns.append(column)

        sql = f"CREATE TABLE IF NOT EXISTS {table_name_for(model_cls)} ({', '.join(columns)})"
        await self._run(lambda: self._conn.execute(sql))
        logger.debug("table_created", table=model_cls.__name__)

    async def close(self) -> None:
        """Close the connection. Closing twice is a no-op."""
        if self._closed:
            return
        self._closed = True
        await self._run(self._conn.close)
        logger.debug("sqlite_closed", path=self.path)
