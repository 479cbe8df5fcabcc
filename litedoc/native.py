"""
Native document store used by litedoc.

Every model gets its own SQLite file holding a single ``documents`` table:
``_id`` is the store-assigned key, ``body`` is the rest of the document as
JSON text. Fields are addressed with ``json_extract`` so expression indexes
built by ``ensure_index`` are picked up by the planner for equal expressions.

The shape of this class (insert / find -> cursor / count / update / remove /
ensure_index / load) is all the rest of the package relies on.
"""

import json
import logging
import re
import uuid
import asyncio
from datetime import date, datetime
from typing import Dict, List, Any, Optional, Tuple, Iterable

import aiofiles.os
import aiosqlite

from .errors import StoreError, TranslationError, UniqueConstraintError
from .identifiers import STORE_ID_FIELD, MODEL_ID_FIELD

logger = logging.getLogger(__name__)

TABLE_NAME = "documents"
MEMORY_FILENAME = ":memory:"
SIDECAR_SUFFIXES = ("-journal", "-wal", "-shm")

IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def json_path(field_name: str) -> str:
    """JSON path of an attribute inside ``body``.

    Dots separate nested keys. Keys that are not plain identifiers are
    quoted (``$."first-name"``); empty keys, keys starting with ``$`` and
    keys holding a double quote cannot be addressed.
    """
    if not isinstance(field_name, str) or not field_name:
        raise TranslationError(f"Invalid attribute name {field_name!r}")

    segments = []
    for segment in field_name.split("."):
        if not segment or segment.startswith("$") or '"' in segment:
            raise TranslationError(f"Invalid attribute name {field_name!r}")
        segments.append(segment if IDENTIFIER_RE.match(segment) else f'"{segment}"')
    return "$." + ".".join(segments)


def _sql_literal(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"


def field_expression(field_name: str) -> str:
    """SQL expression reading an attribute; the model id reads the key column"""
    if field_name in (MODEL_ID_FIELD, STORE_ID_FIELD):
        return STORE_ID_FIELD
    return f"json_extract(body, {_sql_literal(json_path(field_name))})"


def type_expression(field_name: str) -> str:
    """SQL expression giving the JSON type of an attribute, NULL when absent"""
    if field_name in (MODEL_ID_FIELD, STORE_ID_FIELD):
        return f"(CASE WHEN {STORE_ID_FIELD} IS NULL THEN NULL ELSE 'text' END)"
    return f"json_type(body, {_sql_literal(json_path(field_name))})"


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode(value: Any) -> str:
    try:
        return json.dumps(value, default=_json_default, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise StoreError(f"Cannot serialize value for storage: {e}") from e


def _regexp_match(pattern: str, flags: int, value: Any) -> int:
    if not isinstance(value, str):
        return 0
    return 1 if re.search(pattern, value, flags) else 0


class Cursor:
    """Lazily built SELECT over one store; ``exec`` runs it"""

    def __init__(self, store: "DocumentStore", clause: str, params: Tuple[Any, ...]):
        self._store = store
        self._clause = clause
        self._params = params
        self._ordering: Tuple[Tuple[str, bool], ...] = ()
        self._skip: Optional[int] = None
        self._limit: Optional[int] = None

    def sort(self, ordering: Iterable[Tuple[str, bool]]) -> "Cursor":
        """``ordering`` is a sequence of (sql expression, descending)"""
        self._ordering = tuple(ordering)
        return self

    def skip(self, count: int) -> "Cursor":
        self._skip = count
        return self

    def limit(self, count: int) -> "Cursor":
        self._limit = count
        return self

    def to_sql(self) -> Tuple[str, Tuple[Any, ...]]:
        sql = f"SELECT _id, body FROM {TABLE_NAME} WHERE {self._clause}"
        params = list(self._params)

        # rowid keeps ties (and unsorted reads) in insertion order
        order = [f"{expr} {'DESC' if descending else 'ASC'}" for expr, descending in self._ordering]
        order.append("rowid ASC")
        sql += " ORDER BY " + ", ".join(order)

        # Zero, like None, leaves the result unbounded
        if self._limit or self._skip:
            sql += " LIMIT ?"
            params.append(self._limit or -1)
            if self._skip:
                sql += " OFFSET ?"
                params.append(self._skip)

        return sql, tuple(params)

    async def exec(self) -> List[Dict[str, Any]]:
        sql, params = self.to_sql()
        rows = await self._store.fetch_all(sql, params)
        return [self._store.decode_row(row) for row in rows]


class DocumentStore:
    """One JSON document table in one SQLite file"""

    def __init__(self, filename: str, timeout: float = 5.0, journal_mode: str = "DELETE"):
        self.filename = filename
        self.timeout = timeout
        self.journal_mode = journal_mode.upper()
        self._conn: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

    @property
    def in_memory(self) -> bool:
        return self.filename == MEMORY_FILENAME

    @property
    def is_loaded(self) -> bool:
        return self._conn is not None

    async def load(self):
        """Open the file, creating the document table if needed"""
        if self._conn is not None:
            return
        conn = None
        try:
            conn = await aiosqlite.connect(self.filename, timeout=self.timeout)
            await conn.create_function("regexp_match", 3, _regexp_match, deterministic=True)
            await conn.execute(f"PRAGMA journal_mode={self.journal_mode}")
            await conn.execute(
                f"CREATE TABLE IF NOT EXISTS {TABLE_NAME} ("
                "_id TEXT PRIMARY KEY NOT NULL, body TEXT NOT NULL)"
            )
            await conn.commit()
        except aiosqlite.Error as e:
            logger.error(f"Failed to load datastore {self.filename}: {e}")
            if conn is not None:
                await conn.close()
            raise StoreError(f"Failed to load datastore {self.filename}: {e}") from e
        self._conn = conn
        logger.debug(f"Loaded datastore {self.filename}")

    async def close(self):
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        try:
            await conn.close()
        except aiosqlite.Error as e:
            raise StoreError(f"Failed to close datastore {self.filename}: {e}") from e

    def _connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise StoreError(f"Datastore {self.filename} is not loaded")
        return self._conn

    @staticmethod
    def decode_row(row) -> Dict[str, Any]:
        document = json.loads(row[1])
        document[STORE_ID_FIELD] = row[0]
        return document

    async def fetch_all(self, sql: str, params: Tuple[Any, ...] = ()) -> List[Any]:
        conn = self._connection()
        logger.debug(f"{self.filename}: {sql} {params}")
        # Reads share the connection with writes; never see an open transaction
        async with self._lock:
            try:
                async with conn.execute(sql, params) as cursor:
                    return await cursor.fetchall()
            except aiosqlite.Error as e:
                self._raise_store_error(e, "query")

    async def _write(self, sql: str, params: Tuple[Any, ...], context: str) -> int:
        conn = self._connection()
        logger.debug(f"{self.filename}: {sql} {params}")
        async with self._lock:
            try:
                cursor = await conn.execute(sql, params)
                await conn.commit()
                return cursor.rowcount
            except aiosqlite.Error as e:
                await conn.rollback()
                self._raise_store_error(e, context)

    def _raise_store_error(self, error: Exception, context: str):
        logger.error(f"Error during {context} on {self.filename}: {error}")
        if isinstance(error, aiosqlite.IntegrityError):
            raise UniqueConstraintError(
                f"Constraint violated during {context} on {self.filename}: {error}"
            ) from error
        raise StoreError(f"Error during {context} on {self.filename}: {error}") from error

    async def insert(self, documents: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Insert all documents atomically, returning them as stored"""
        conn = self._connection()
        rows = []
        for document in documents:
            doc_id = document.get(STORE_ID_FIELD) or uuid.uuid4().hex
            body = {k: v for k, v in document.items() if k != STORE_ID_FIELD}
            rows.append((doc_id, encode(body)))

        async with self._lock:
            try:
                await conn.executemany(
                    f"INSERT INTO {TABLE_NAME} (_id, body) VALUES (?, ?)", rows
                )
                await conn.commit()
            except aiosqlite.Error as e:
                await conn.rollback()
                self._raise_store_error(e, "insert")

        return [self.decode_row(row) for row in rows]

    def find(self, clause: str = "1", params: Tuple[Any, ...] = ()) -> Cursor:
        return Cursor(self, clause, params)

    async def count(self, clause: str = "1", params: Tuple[Any, ...] = ()) -> int:
        rows = await self.fetch_all(f"SELECT COUNT(*) FROM {TABLE_NAME} WHERE {clause}", params)
        return rows[0][0]

    async def update(
        self,
        clause: str,
        params: Tuple[Any, ...],
        set_values: Dict[str, Any],
        unset_fields: Iterable[str] = (),
        multi: bool = True,
    ) -> int:
        """Set and unset top-level attributes on matching documents"""
        body = "body"
        body_params: List[Any] = []
        if set_values:
            pairs = []
            for name, value in set_values.items():
                pairs.append("?, json(?)")
                body_params.extend([json_path(name), encode(value)])
            body = f"json_set({body}, {', '.join(pairs)})"
        unset_fields = list(unset_fields)
        if unset_fields:
            body = f"json_remove({body}, {', '.join('?' for _ in unset_fields)})"
            body_params.extend(json_path(name) for name in unset_fields)

        if not multi:
            clause = f"rowid IN (SELECT rowid FROM {TABLE_NAME} WHERE {clause} LIMIT 1)"
        if body == "body":
            # Nothing to change; report how many documents matched
            return await self.count(clause, params)

        sql = f"UPDATE {TABLE_NAME} SET body = {body} WHERE {clause}"
        return await self._write(sql, tuple(body_params) + tuple(params), "update")

    async def remove(self, clause: str, params: Tuple[Any, ...], multi: bool = True) -> int:
        if not multi:
            clause = f"rowid IN (SELECT rowid FROM {TABLE_NAME} WHERE {clause} LIMIT 1)"
        return await self._write(f"DELETE FROM {TABLE_NAME} WHERE {clause}", params, "remove")

    async def ensure_index(self, field_name: str, unique: bool = False, sparse: bool = False):
        """Create an expression index on ``field_name`` unless it exists"""
        expr = field_expression(field_name)
        # The raw attribute name, quoted, so names stay one-to-one with attributes
        name = f"{'uidx' if unique else 'idx'}_{field_name}"
        sql = (
            f'CREATE {"UNIQUE " if unique else ""}INDEX IF NOT EXISTS "{name}" '
            f"ON {TABLE_NAME} ({expr})"
        )
        if sparse:
            sql += f" WHERE {expr} IS NOT NULL"
        await self._write(sql, (), f"ensure_index({field_name})")

    async def list_indexes(self) -> List[str]:
        rows = await self.fetch_all(
            "SELECT name FROM sqlite_master WHERE type = 'index' AND tbl_name = ? "
            "AND sql IS NOT NULL ORDER BY name",
            (TABLE_NAME,),
        )
        return [row[0] for row in rows]

    async def remove_files(self):
        """Delete the backing file; the store must be closed first"""
        if self.in_memory:
            return
        if self._conn is not None:
            raise StoreError(
                f"Cannot drop datastore {self.filename}, it is currently in use."
            )
        try:
            await aiofiles.os.remove(self.filename)
            for suffix in SIDECAR_SUFFIXES:
                sidecar = self.filename + suffix
                if await aiofiles.os.path.exists(sidecar):
                    await aiofiles.os.remove(sidecar)
        except OSError as e:
            logger.error(f"Failed to remove datastore {self.filename}: {e}")
            raise StoreError(f"Failed to remove datastore {self.filename}: {e}") from e

        if await aiofiles.os.path.exists(self.filename):
            raise StoreError(
                f"Cannot drop datastore {self.filename}, file is currently in use."
            )
