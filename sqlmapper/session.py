"""Execution context handed to mappers."""

from collections.abc import Iterator
from typing import TYPE_CHECKING, Any, Optional

from typing_extensions import Self

from sqlmapper.exceptions import MultipleResultsFoundError
from sqlmapper.utils.logging import get_logger

if TYPE_CHECKING:
    from types import TracebackType

    from sqlmapper.config import Configuration
    from sqlmapper.executor.executor import BaseExecutor, BatchResult
    from sqlmapper.executor.results import ResultHandler
    from sqlmapper.typing import CommandFactoryProtocol, MapperT

__all__ = ("Session",)

logger = get_logger("session")


class Session:
    """Runs registered statements by id on one connection.

    Example:
        ```python
        configuration = Configuration()
        XMLMapperBuilder(configuration).parse(mapper_xml)
        with configuration.open_session(sqlite3.connect(":memory:")) as session:
            users = session.select_list("app.UserMapper.find_all")
            session.commit()
        ```
    """

    __slots__ = ("configuration", "dirty", "executor")

    def __init__(self, configuration: "Configuration", executor: "BaseExecutor") -> None:
        self.configuration = configuration
        self.executor = executor
        self.dirty = False

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: "Optional[BaseException]",
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        self.close()

    @property
    def connection(self) -> "CommandFactoryProtocol":
        return self.executor.connection

    def select_one(self, statement_id: str, parameter: Any = None) -> Any:
        rows = self.select_list(statement_id, parameter)
        if len(rows) > 1:
            msg = f"Expected one result (or None) to be returned by {statement_id}, but found: {len(rows)}"
            raise MultipleResultsFoundError(msg)
        return rows[0] if rows else None

    def select_list(self, statement_id: str, parameter: Any = None) -> "list[Any]":
        statement = self.configuration.get_statement(statement_id)
        return self.executor.query(statement, parameter)

    def select(self, statement_id: str, parameter: Any, result_handler: "ResultHandler") -> None:
        """Stream mapped rows into ``result_handler``."""
        statement = self.configuration.get_statement(statement_id)
        self.executor.query(statement, parameter, result_handler)

    def select_iter(self, statement_id: str, parameter: Any = None) -> "Iterator[Any]":
        """Lazily iterate mapped rows; consume or close the iterator to release the command."""
        statement = self.configuration.get_statement(statement_id)
        return self.executor.query_iter(statement, parameter)

    def insert(self, statement_id: str, parameter: Any = None) -> int:
        return self.update(statement_id, parameter)

    def update(self, statement_id: str, parameter: Any = None) -> int:
        statement = self.configuration.get_statement(statement_id)
        self.dirty = True
        return self.executor.update(statement, parameter)

    def delete(self, statement_id: str, parameter: Any = None) -> int:
        return self.update(statement_id, parameter)

    def flush_statements(self) -> "list[BatchResult]":
        return self.executor.flush_statements()

    def commit(self) -> None:
        self.executor.commit()
        self.dirty = False

    def rollback(self) -> None:
        self.executor.rollback()
        self.dirty = False

    def close(self) -> None:
        if self.dirty:
            logger.debug("Closing session with uncommitted changes; rolling back")
            self.rollback()
        self.executor.close()

    def get_mapper(self, mapper_type: "type[MapperT]") -> "MapperT":
        return self.configuration.get_mapper(mapper_type, self)
