"""Command factory for DB-API 2.0 compliant connections."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from sqlmapper.mapping import StatementKind
from sqlmapper.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from sqlmapper.mapping import ResultSetType

__all__ = ("DBAPICommand", "DBAPIConnection")

logger = get_logger("adapters.dbapi")

# {call proc(?, ?)} and {? = call proc(?)}
CALL_ESCAPE = re.compile(r"^\s*\{\s*(?:\?\s*=\s*)?call\s+([\w.]+)\s*(?:\((.*)\))?\s*\}\s*$", re.IGNORECASE | re.DOTALL)


class DBAPICommand:
    """One statement bound to a cursor of a DB-API connection.

    Plain and prepared commands run through ``cursor.execute``; callable
    commands written with the ``{call name(...)}`` escape use
    ``cursor.callproc`` when the driver provides it.
    """

    def __init__(
        self,
        cursor: Any,
        sql: str,
        kind: StatementKind,
        *,
        return_generated_keys: bool = False,
        key_columns: Sequence[str] | None = None,
        result_set_type: ResultSetType | None = None,
    ) -> None:
        self.cursor = cursor
        self.sql = sql
        self.kind = kind
        self.return_generated_keys = return_generated_keys or bool(key_columns)
        self.key_columns = tuple(key_columns) if key_columns else None
        self.result_set_type = result_set_type
        self.timeout: int | None = None
        self.parameters: tuple[Any, ...] = ()
        self.pending_batch: list[tuple[Any, ...]] = []
        self.closed = False

    def __repr__(self) -> str:
        return f"DBAPICommand({self.kind.name}, {self.sql!r})"

    def set_query_timeout(self, seconds: int) -> None:
        # enforced by the driver's own interrupt support, if any
        self.timeout = seconds
        if hasattr(self.cursor, "timeout"):
            self.cursor.timeout = seconds

    def set_fetch_size(self, rows: int) -> None:
        self.cursor.arraysize = rows

    def bind(self, values: Sequence[Any]) -> None:
        self.parameters = tuple(values)

    def execute(self) -> bool:
        call = CALL_ESCAPE.match(self.sql) if self.kind is StatementKind.CALLABLE else None
        if call is not None and hasattr(self.cursor, "callproc"):
            self.cursor.callproc(call.group(1), self.parameters)
        elif call is not None:
            self.cursor.execute(f"CALL {call.group(1)}({call.group(2) or ''})", self.parameters)
        elif self.kind is StatementKind.PLAIN:
            self.cursor.execute(self.sql)
        else:
            self.cursor.execute(self.sql, self.parameters)
        return self.cursor.description is not None

    @property
    def update_count(self) -> int:
        return self.cursor.rowcount if hasattr(self.cursor, "rowcount") else -1

    @property
    def column_names(self) -> list[str]:
        return [column[0] for column in self.cursor.description or ()]

    def fetch(self) -> Iterator[Sequence[Any]]:
        while rows := self.cursor.fetchmany():
            yield from rows

    def add_batch(self) -> None:
        self.pending_batch.append(self.parameters)

    def execute_batch(self) -> list[int]:
        """Run every queued binding with ``executemany``.

        Returns:
            One count per queued binding. ``executemany`` reports only a total,
            so counts are ``-1`` (undetermined, as DB-API ``rowcount``) unless a
            single binding was queued.
        """
        if not self.pending_batch:
            return []
        batch, self.pending_batch = self.pending_batch, []
        self.cursor.executemany(self.sql, batch)
        if len(batch) == 1:
            return [self.update_count]
        return [-1] * len(batch)

    def generated_keys(self) -> list[Sequence[Any]]:
        if not self.return_generated_keys:
            return []
        last_row_id = getattr(self.cursor, "lastrowid", None)
        return [] if last_row_id is None else [(last_row_id,)]

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.cursor.close()


class DBAPIConnection:
    """Adapts a DB-API connection to the command-factory interface.

    ``database_errors`` defaults to the driver's ``Error`` class, read from the
    optional ``Connection.Error`` attribute of PEP 249.
    """

    def __init__(self, connection: Any, database_errors: tuple[type[BaseException], ...] | None = None) -> None:
        self.connection = connection
        if database_errors is None:
            error_type = getattr(connection, "Error", None)
            database_errors = (error_type,) if isinstance(error_type, type) else ()
        self.database_errors = database_errors

    def __repr__(self) -> str:
        return f"DBAPIConnection({self.connection!r})"

    def create_command(
        self,
        sql: str,
        kind: StatementKind,
        *,
        return_generated_keys: bool = False,
        key_columns: Sequence[str] | None = None,
        result_set_type: ResultSetType | None = None,
    ) -> DBAPICommand:
        cursor = self.connection.cursor()
        return DBAPICommand(
            cursor,
            sql,
            kind,
            return_generated_keys=return_generated_keys,
            key_columns=key_columns,
            result_set_type=result_set_type,
        )

    def commit(self) -> None:
        self.connection.commit()

    def rollback(self) -> None:
        self.connection.rollback()

    def close(self) -> None:
        self.connection.close()
