"""Executors drive statement pipelines over one connection."""

from collections.abc import Iterator
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from sqlmapper.exceptions import ExecutorError
from sqlmapper.executor.statement import BaseStatementHandler
from sqlmapper.utils.logging import get_logger, statement_context

if TYPE_CHECKING:
    from sqlmapper.config import Configuration
    from sqlmapper.executor.results import ResultHandler
    from sqlmapper.executor.statement import StatementHandler
    from sqlmapper.mapping import MappedStatement
    from sqlmapper.typing import CommandFactoryProtocol, CommandProtocol

__all__ = (
    "UNKNOWN_ROWCOUNT",
    "BaseExecutor",
    "BatchExecutor",
    "BatchKeyGeneration",
    "BatchResult",
    "ExecutorType",
    "SimpleExecutor",
)

logger = get_logger("executor")

UNKNOWN_ROWCOUNT = -1


class ExecutorType(Enum):
    SIMPLE = "SIMPLE"
    BATCH = "BATCH"


class BatchKeyGeneration(Enum):
    """Whether queued batch entries run the after-key-generation hook.

    ``NONE`` sends each batch with a single ``execute_batch`` and never calls
    the hook. ``AFTER_FLUSH`` executes queued entries one by one at flush time
    and calls the hook after each, with that entry's parameter object.
    """

    NONE = "NONE"
    AFTER_FLUSH = "AFTER_FLUSH"


class BatchResult:
    __slots__ = ("parameter_objects", "sql", "statement", "update_counts")

    def __init__(self, statement: "MappedStatement", sql: str) -> None:
        self.statement = statement
        self.sql = sql
        self.parameter_objects: list[Any] = []
        self.update_counts: list[int] = []

    def __repr__(self) -> str:
        return f"BatchResult({self.statement.id!r}, {len(self.parameter_objects)} entries)"


class BaseExecutor:
    """Common lifecycle for executors bound to a single connection."""

    def __init__(self, configuration: "Configuration", connection: "CommandFactoryProtocol") -> None:
        self.configuration = configuration
        self.connection = connection
        self.closed = False

    def _check_open(self) -> None:
        if self.closed:
            msg = "Executor was closed."
            raise ExecutorError(msg)

    def update(self, statement: "MappedStatement", parameter: Any) -> int:
        self._check_open()
        with statement_context(statement.id):
            return self.do_update(statement, parameter)

    def query(
        self, statement: "MappedStatement", parameter: Any, result_handler: "Optional[ResultHandler]" = None
    ) -> "list[Any]":
        self._check_open()
        with statement_context(statement.id):
            handler = self.configuration.new_statement_handler(self, statement, parameter, result_handler)
            command = self.prepare_command(handler)
            try:
                return list(handler.query(command, result_handler))
            finally:
                BaseStatementHandler.close_command(command)

    def query_iter(self, statement: "MappedStatement", parameter: Any) -> "Iterator[Any]":
        """Lazily yield mapped rows; the command closes when the iterator finishes or is closed."""
        self._check_open()
        handler = self.configuration.new_statement_handler(self, statement, parameter)
        command = self.prepare_command(handler)
        try:
            yield from handler.query(command)
        finally:
            BaseStatementHandler.close_command(command)

    def prepare_command(self, handler: "StatementHandler") -> "CommandProtocol":
        command = handler.prepare(self.connection)
        try:
            handler.parameterize(command)
        except BaseException:
            BaseStatementHandler.close_command(command)
            raise
        return command

    def do_update(self, statement: "MappedStatement", parameter: Any) -> int:
        raise NotImplementedError

    def flush_statements(self) -> "list[BatchResult]":
        return []

    def commit(self) -> None:
        self._check_open()
        self.flush_statements()
        self.connection.commit()

    def rollback(self) -> None:
        if self.closed:
            return
        try:
            self.clear_pending()
        finally:
            self.connection.rollback()

    def clear_pending(self) -> None:
        """Drop queued work without executing it."""

    def close(self) -> None:
        if self.closed:
            return
        try:
            self.clear_pending()
        finally:
            self.closed = True


class SimpleExecutor(BaseExecutor):
    """Creates, runs and closes one command per call."""

    def do_update(self, statement: "MappedStatement", parameter: Any) -> int:
        handler = self.configuration.new_statement_handler(self, statement, parameter)
        command = self.prepare_command(handler)
        try:
            return handler.update(command)
        finally:
            BaseStatementHandler.close_command(command)


class BatchExecutor(BaseExecutor):
    """Queues updates and sends them on :meth:`flush_statements`.

    Consecutive updates with identical SQL share one command. Queries flush
    the pending batch first.
    """

    def __init__(self, configuration: "Configuration", connection: "CommandFactoryProtocol") -> None:
        super().__init__(configuration, connection)
        self._commands: list[CommandProtocol] = []
        self._results: list[BatchResult] = []
        self._handlers: list[list[StatementHandler]] = []

    def do_update(self, statement: "MappedStatement", parameter: Any) -> int:
        handler = self.configuration.new_statement_handler(self, statement, parameter)
        sql = handler.bound_statement.sql
        current = self._results[-1] if self._results else None
        if current is not None and current.sql == sql and current.statement is statement:
            command = self._commands[-1]
            handler.parameterize(command)
        else:
            command = self.prepare_command(handler)
            current = BatchResult(statement, sql)
            self._commands.append(command)
            self._results.append(current)
            self._handlers.append([])
        current.parameter_objects.append(parameter)
        self._handlers[-1].append(handler)
        handler.batch(command)
        return UNKNOWN_ROWCOUNT

    def query(
        self, statement: "MappedStatement", parameter: Any, result_handler: "Optional[ResultHandler]" = None
    ) -> "list[Any]":
        self.flush_statements()
        return super().query(statement, parameter, result_handler)

    def flush_statements(self) -> "list[BatchResult]":
        self._check_open()
        results: list[BatchResult] = []
        try:
            for command, result, handlers in zip(self._commands, self._results, self._handlers):
                if self.configuration.batch_key_generation is BatchKeyGeneration.AFTER_FLUSH:
                    result.update_counts = self._execute_each(command, handlers)
                else:
                    result.update_counts = command.execute_batch()
                logger.debug("Flushed %r", result)
                results.append(result)
            return results
        finally:
            self.clear_pending()

    def _execute_each(self, command: "CommandProtocol", handlers: "list[StatementHandler]") -> "list[int]":
        counts = []
        for handler in handlers:
            handler.parameterize(command)
            counts.append(handler.update(command))
        return counts

    def clear_pending(self) -> None:
        for command in self._commands:
            BaseStatementHandler.close_command(command)
        self._commands.clear()
        self._results.clear()
        self._handlers.clear()
