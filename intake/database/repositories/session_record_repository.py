import dataclasses
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Generic, TypeVar

import psycopg
from psycopg import sql
from psycopg.rows import dict_row

from intake.database.connection import get_connection
from intake.logging.logger import Log

RecordT = TypeVar("RecordT")


class SessionRecordRepository(ABC, Generic[RecordT]):
    """Rows keyed by ``SessionId`` in a table whose name comes from settings.

    ``COLUMNS`` maps record attributes to column names for the data fields;
    ``id``, ``SessionId`` and ``created_at`` are handled here.
    """

    COLUMNS: ClassVar[dict[str, str]]

    def __init__(self, table: str) -> None:
        self._table = sql.Identifier(table)
        self._table_name = table

    @abstractmethod
    def _from_row(self, row: dict[str, Any]) -> RecordT:
        """Build a record from a dict row."""

    def find_by_session(self, session_id: str) -> list[RecordT]:
        """Return every row of the session, oldest first."""
        query = sql.SQL(
            'SELECT * FROM {table} WHERE "SessionId" = %s ORDER BY id'
        ).format(table=self._table)
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, (session_id,))
                rows = cur.fetchall()
        return [self._from_row(row) for row in rows]

    def find_all(self, limit: int | None = None) -> list[RecordT]:
        """Return every row in the table, oldest first."""
        query = sql.SQL("SELECT * FROM {table} ORDER BY id").format(table=self._table)
        params: tuple[int, ...] = ()
        if limit is not None:
            query = sql.SQL("{query} LIMIT %s").format(query=query)
            params = (limit,)
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, params)
                rows = cur.fetchall()
        return [self._from_row(row) for row in rows]

    def save(self, record: RecordT) -> RecordT:
        """Upsert: update by id when set, else update by SessionId; insert if nothing matched.

        A record carrying an id only ever touches that row, so an id with no
        matching row is inserted as a new row. Returns the record with ``id``
        populated.
        """
        values = [getattr(record, attr) for attr in self.COLUMNS]
        session_id: str = getattr(record, "session_id")
        record_id: int | None = getattr(record, "id")

        with get_connection() as conn:
            if record_id is not None:
                saved_id = self._update(conn, values, "id", record_id)
            else:
                saved_id = self._update(conn, values, "SessionId", session_id)
            if saved_id is None:
                saved_id = self._insert(conn, values, session_id)
            conn.commit()

        Log.info(f"Saved {self._table_name} row {saved_id} for session {session_id}")
        return dataclasses.replace(record, id=saved_id)  # type: ignore[type-var]

    def _update(
        self,
        conn: psycopg.Connection[Any],
        values: list[Any],
        key_column: str,
        key_value: Any,
    ) -> int | None:
        assignments = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(sql.Identifier(column)) for column in self.COLUMNS.values()
        )
        query = sql.SQL("UPDATE {table} SET {assignments} WHERE {key} = %s RETURNING id").format(
            table=self._table,
            assignments=assignments,
            key=sql.Identifier(key_column),
        )
        with conn.cursor() as cur:
            cur.execute(query, (*values, key_value))
            row = cur.fetchone()
        return row[0] if row else None

    def _insert(self, conn: psycopg.Connection[Any], values: list[Any], session_id: str) -> int:
        columns = sql.SQL(", ").join(
            sql.Identifier(column) for column in ("SessionId", *self.COLUMNS.values())
        )
        placeholders = sql.SQL(", ").join(sql.Placeholder() * (len(self.COLUMNS) + 1))
        query = sql.SQL(
            "INSERT INTO {table} ({columns}) VALUES ({placeholders}) RETURNING id"
        ).format(
            table=self._table,
            columns=columns,
            placeholders=placeholders,
        )
        with conn.cursor() as cur:
            cur.execute(query, (session_id, *values))
            row = cur.fetchone()
        if row is None:
            raise RuntimeError(f"INSERT into {self._table_name} returned no id")
        return int(row[0])
