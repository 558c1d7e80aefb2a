"""Statement pipeline: create, configure, parameterize, then execute.

One handler lives for one invocation. :class:`RoutingStatementHandler`
picks the kind-specific handler when it is constructed, before any
resource is acquired.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any, Optional

from mypy_extensions import mypyc_attr

from sqlmapper.exceptions import ExecutorError
from sqlmapper.executor.keygen import CursorKeyGenerator
from sqlmapper.mapping import StatementKind
from sqlmapper.utils.logging import get_logger

if TYPE_CHECKING:
    from sqlmapper.executor.results import ResultHandler
    from sqlmapper.mapping import BoundStatement, MappedStatement
    from sqlmapper.typing import (
        CommandFactoryProtocol,
        CommandProtocol,
        ExecutorProtocol,
        ParameterBinderProtocol,
        ResultMapperProtocol,
    )

__all__ = (
    "BaseStatementHandler",
    "CallableStatementHandler",
    "PreparedStatementHandler",
    "RoutingStatementHandler",
    "SimpleStatementHandler",
    "StatementHandler",
)

logger = get_logger("executor.statement")


class StatementHandler(ABC):
    """Operations every pipeline exposes to an executor."""

    __slots__ = ()

    @abstractmethod
    def prepare(self, connection: "CommandFactoryProtocol") -> "CommandProtocol":
        """Create and configure the command."""

    @abstractmethod
    def parameterize(self, command: "CommandProtocol") -> None:
        """Bind parameter values onto the command."""

    @abstractmethod
    def update(self, command: "CommandProtocol") -> int:
        """Execute and return the affected-row count."""

    @abstractmethod
    def query(self, command: "CommandProtocol", result_handler: "Optional[ResultHandler]" = None) -> "Iterator[Any]":
        """Execute and return mapped rows."""

    @abstractmethod
    def batch(self, command: "CommandProtocol") -> None:
        """Queue the current binding on the command's pending batch."""

    @property
    @abstractmethod
    def bound_statement(self) -> "BoundStatement":
        """SQL and parameter order for this invocation."""


@mypyc_attr(allow_interpreted_subclasses=True)
class BaseStatementHandler(StatementHandler):
    """Shared create/configure logic for every statement kind."""

    __slots__ = ("_bound_statement", "executor", "mapped_statement", "parameter_object", "result_handler")

    def __init__(
        self,
        executor: "ExecutorProtocol",
        mapped_statement: "MappedStatement",
        parameter_object: Any,
        result_handler: "Optional[ResultHandler]" = None,
        bound_statement: "Optional[BoundStatement]" = None,
    ) -> None:
        self.executor = executor
        self.mapped_statement = mapped_statement
        self.parameter_object = parameter_object
        self.result_handler = result_handler
        self._bound_statement = bound_statement

    @property
    def bound_statement(self) -> "BoundStatement":
        if self._bound_statement is None:
            # keys selected up front may feed the SQL
            self.mapped_statement.key_generator.before(self.executor, self.mapped_statement, self.parameter_object)
            self._bound_statement = self.mapped_statement.get_bound_statement(self.parameter_object)
        return self._bound_statement

    @property
    def parameter_binder(self) -> "ParameterBinderProtocol":
        return self.executor.configuration.new_parameter_binder(self.mapped_statement, self.bound_statement)

    @property
    def result_mapper(self) -> "ResultMapperProtocol":
        return self.executor.configuration.new_result_mapper(self.mapped_statement)

    def prepare(self, connection: "CommandFactoryProtocol") -> "CommandProtocol":
        sql = self.bound_statement.sql
        logger.debug("Preparing %s: %s", self.mapped_statement.id, sql)
        command: Optional[CommandProtocol] = None
        try:
            command = self.instantiate(connection)
            self.set_timeout(command)
            self.set_fetch_size(command)
        except connection.database_errors:
            self.close_command(command)
            raise
        except Exception as e:
            self.close_command(command)
            msg = f"Error preparing statement. Cause: {e}"
            raise ExecutorError(msg) from e
        return command

    @abstractmethod
    def instantiate(self, connection: "CommandFactoryProtocol") -> "CommandProtocol":
        """Create the kind-specific command."""

    def set_timeout(self, command: "CommandProtocol") -> None:
        timeout = self.mapped_statement.timeout
        if timeout is None:
            timeout = self.executor.configuration.default_statement_timeout
        if timeout is not None:
            command.set_query_timeout(timeout)

    def set_fetch_size(self, command: "CommandProtocol") -> None:
        fetch_size = self.mapped_statement.fetch_size
        if fetch_size is None:
            fetch_size = self.executor.configuration.default_fetch_size
        if fetch_size is not None:
            command.set_fetch_size(fetch_size)

    @staticmethod
    def close_command(command: "Optional[CommandProtocol]") -> None:
        if command is None:
            return
        try:
            command.close()
        except Exception:  # noqa: BLE001
            logger.debug("Ignoring failure while closing %r", command, exc_info=True)

    def update(self, command: "CommandProtocol") -> int:
        logger.debug("Executing update %s", self.mapped_statement.id)
        command.execute()
        rows = command.update_count
        self.mapped_statement.key_generator.after(self.executor, self.mapped_statement, command, self.parameter_object)
        return rows

    def query(self, command: "CommandProtocol", result_handler: "Optional[ResultHandler]" = None) -> "Iterator[Any]":
        logger.debug("Executing query %s", self.mapped_statement.id)
        command.execute()
        rows = self.result_mapper.map(command)
        handler = result_handler or self.result_handler
        if handler is None:
            return rows
        for row in rows:
            handler.handle_result(row)
        return iter(())

    def batch(self, command: "CommandProtocol") -> None:
        logger.debug("Queueing batch entry for %s", self.mapped_statement.id)
        command.add_batch()

    def parameterize(self, command: "CommandProtocol") -> None:
        self.parameter_binder.bind(command, self.parameter_object)


class SimpleStatementHandler(BaseStatementHandler):
    """Plain SQL text: no parameter binding."""

    __slots__ = ()

    def instantiate(self, connection: "CommandFactoryProtocol") -> "CommandProtocol":
        return connection.create_command(
            self.bound_statement.sql,
            StatementKind.PLAIN,
            return_generated_keys=isinstance(self.mapped_statement.key_generator, CursorKeyGenerator),
        )

    def parameterize(self, command: "CommandProtocol") -> None:
        return


class PreparedStatementHandler(BaseStatementHandler):
    __slots__ = ()

    def instantiate(self, connection: "CommandFactoryProtocol") -> "CommandProtocol":
        sql = self.bound_statement.sql
        statement = self.mapped_statement
        if isinstance(statement.key_generator, CursorKeyGenerator):
            if statement.key_columns is None:
                return connection.create_command(sql, StatementKind.PREPARED, return_generated_keys=True)
            return connection.create_command(sql, StatementKind.PREPARED, key_columns=statement.key_columns)
        if statement.result_set_type is not None:
            return connection.create_command(sql, StatementKind.PREPARED, result_set_type=statement.result_set_type)
        return connection.create_command(sql, StatementKind.PREPARED)


class CallableStatementHandler(BaseStatementHandler):
    __slots__ = ()

    def instantiate(self, connection: "CommandFactoryProtocol") -> "CommandProtocol":
        result_set_type = self.mapped_statement.result_set_type
        if result_set_type is not None:
            return connection.create_command(
                self.bound_statement.sql, StatementKind.CALLABLE, result_set_type=result_set_type
            )
        return connection.create_command(self.bound_statement.sql, StatementKind.CALLABLE)


_HANDLERS: "dict[StatementKind, type[BaseStatementHandler]]" = {
    StatementKind.PLAIN: SimpleStatementHandler,
    StatementKind.PREPARED: PreparedStatementHandler,
    StatementKind.CALLABLE: CallableStatementHandler,
}


class RoutingStatementHandler(StatementHandler):
    """Delegates to the handler matching the statement's kind."""

    __slots__ = ("delegate",)

    def __init__(
        self,
        executor: "ExecutorProtocol",
        mapped_statement: "MappedStatement",
        parameter_object: Any,
        result_handler: "Optional[ResultHandler]" = None,
        bound_statement: "Optional[BoundStatement]" = None,
    ) -> None:
        try:
            handler_type = _HANDLERS[mapped_statement.statement_kind]
        except (KeyError, TypeError) as e:
            msg = f"Unknown statement type: {mapped_statement.statement_kind}"
            raise ExecutorError(msg) from e
        self.delegate: BaseStatementHandler = handler_type(
            executor, mapped_statement, parameter_object, result_handler, bound_statement
        )

    @property
    def bound_statement(self) -> "BoundStatement":
        return self.delegate.bound_statement

    def prepare(self, connection: "CommandFactoryProtocol") -> "CommandProtocol":
        return self.delegate.prepare(connection)

    def parameterize(self, command: "CommandProtocol") -> None:
        self.delegate.parameterize(command)

    def update(self, command: "CommandProtocol") -> int:
        return self.delegate.update(command)

    def query(self, command: "CommandProtocol", result_handler: "Optional[ResultHandler]" = None) -> "Iterator[Any]":
        return self.delegate.query(command, result_handler)

    def batch(self, command: "CommandProtocol") -> None:
        self.delegate.batch(command)
