"""Tests for the DB-API command adapter."""

import sqlite3
from unittest.mock import Mock

from sqlmapper.adapters import DBAPICommand, DBAPIConnection
from sqlmapper.mapping import StatementKind


def test_database_errors_default_to_driver_error(sqlite_connection: sqlite3.Connection) -> None:
    assert DBAPIConnection(sqlite_connection).database_errors == (sqlite3.Error,)


def test_prepared_command_round_trip(sqlite_connection: sqlite3.Connection) -> None:
    connection = DBAPIConnection(sqlite_connection)
    insert = connection.create_command(
        "INSERT INTO users (name) VALUES (?)", StatementKind.PREPARED, return_generated_keys=True
    )
    insert.bind(["alice"])

    assert insert.execute() is False
    assert insert.update_count == 1
    assert insert.generated_keys() == [(1,)]
    insert.close()

    select = connection.create_command("SELECT id, name FROM users", StatementKind.PREPARED)
    select.set_fetch_size(10)
    assert select.execute() is True
    assert select.column_names == ["id", "name"]
    assert list(select.fetch()) == [(1, "alice")]
    select.close()


def test_generated_keys_only_when_requested(sqlite_connection: sqlite3.Connection) -> None:
    command = DBAPIConnection(sqlite_connection).create_command(
        "INSERT INTO users (name) VALUES (?)", StatementKind.PREPARED
    )
    command.bind(["bob"])
    command.execute()

    assert command.generated_keys() == []


def test_plain_command_ignores_bindings(sqlite_connection: sqlite3.Connection) -> None:
    command = DBAPIConnection(sqlite_connection).create_command(
        "INSERT INTO users (name) VALUES ('plain')", StatementKind.PLAIN
    )
    command.execute()

    assert sqlite_connection.execute("SELECT name FROM users").fetchall() == [("plain",)]


def test_execute_batch_uses_executemany(sqlite_connection: sqlite3.Connection) -> None:
    command = DBAPIConnection(sqlite_connection).create_command(
        "INSERT INTO users (name) VALUES (?)", StatementKind.PREPARED
    )
    for name in ("a", "b", "c"):
        command.bind([name])
        command.add_batch()

    assert command.execute_batch() == [-1, -1, -1]
    assert command.execute_batch() == []
    assert sqlite_connection.execute("SELECT COUNT(*) FROM users").fetchone() == (3,)


def test_execute_batch_single_binding_reports_rowcount(sqlite_connection: sqlite3.Connection) -> None:
    command = DBAPIConnection(sqlite_connection).create_command(
        "INSERT INTO users (name) VALUES (?)", StatementKind.PREPARED
    )
    command.bind(["solo"])
    command.add_batch()

    assert command.execute_batch() == [1]


def test_callable_escape_uses_callproc() -> None:
    cursor = Mock()
    cursor.description = None
    command = DBAPICommand(cursor, "{call refresh_stats(?, ?)}", StatementKind.CALLABLE)
    command.bind([1, 2])

    command.execute()

    cursor.callproc.assert_called_once_with("refresh_stats", (1, 2))


def test_callable_escape_without_callproc() -> None:
    cursor = Mock(spec=["execute", "description", "close"])
    cursor.description = None
    command = DBAPICommand(cursor, "{ call refresh_stats(?) }", StatementKind.CALLABLE)
    command.bind([1])

    command.execute()

    cursor.execute.assert_called_once_with("CALL refresh_stats(?)", (1,))


def test_timeout_recorded_and_close_idempotent() -> None:
    cursor = Mock(spec=["execute", "description", "close"])
    command = DBAPICommand(cursor, "SELECT 1", StatementKind.PREPARED)

    command.set_query_timeout(30)
    command.close()
    command.close()

    assert command.timeout == 30
    cursor.close.assert_called_once_with()
