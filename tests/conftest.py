from __future__ import annotations

import sqlite3
from collections.abc import Generator
from pathlib import Path

import pytest

here = Path(__file__).parent
root_path = here.parent


@pytest.fixture
def sqlite_connection() -> Generator[sqlite3.Connection, None, None]:
    """In-memory database with a ``users`` table."""
    connection = sqlite3.connect(":memory:")
    connection.execute("CREATE TABLE users (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL)")
    connection.commit()
    try:
        yield connection
    finally:
        connection.close()
