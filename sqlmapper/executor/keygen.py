"""Generated-key strategies run around statement execution."""

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from sqlmapper.exceptions import ExecutorError, wrap_exceptions
from sqlmapper.utils.logging import get_logger
from sqlmapper.utils.properties import set_property

if TYPE_CHECKING:
    from sqlmapper.mapping import MappedStatement
    from sqlmapper.typing import CommandProtocol, ExecutorProtocol

__all__ = ("NO_KEY_GENERATOR", "CursorKeyGenerator", "KeyGenerator", "NoKeyGenerator", "SelectKeyGenerator")

logger = get_logger("executor.keygen")


class KeyGenerator:
    """Hook pair copying database-assigned keys into the parameter object."""

    __slots__ = ()

    def before(self, executor: "ExecutorProtocol", statement: "MappedStatement", parameter_object: Any) -> None:
        """Run before the command is created."""

    def after(
        self,
        executor: "ExecutorProtocol",
        statement: "MappedStatement",
        command: "CommandProtocol",
        parameter_object: Any,
    ) -> None:
        """Run after an update has executed."""


class NoKeyGenerator(KeyGenerator):
    __slots__ = ()


NO_KEY_GENERATOR = NoKeyGenerator()


def _assign_keys(statement: "MappedStatement", parameter_object: Any, values: "Sequence[Any]") -> None:
    if parameter_object is None or not statement.key_properties:
        return
    for key_property, value in zip(statement.key_properties, values):
        set_property(parameter_object, key_property, value)


class CursorKeyGenerator(KeyGenerator):
    """Reads keys the driver reports for the executed command.

    Commands for statements using this generator are created with
    ``return_generated_keys`` (or the declared key columns), and the first
    generated row is copied into the declared key properties.
    """

    __slots__ = ()

    def after(
        self,
        executor: "ExecutorProtocol",
        statement: "MappedStatement",
        command: "CommandProtocol",
        parameter_object: Any,
    ) -> None:
        with wrap_exceptions(
            ExecutorError,
            "Error getting generated key or setting result to parameter object.",
            passthrough=executor.connection.database_errors,
        ):
            keys = command.generated_keys()
            if not keys:
                return
            logger.debug("Generated keys for %s: %s", statement.id, keys[0])
            _assign_keys(statement, parameter_object, keys[0])


class SelectKeyGenerator(KeyGenerator):
    """Runs a separate key query before or after the main statement."""

    __slots__ = ("execute_before", "key_statement")

    def __init__(self, key_statement: "MappedStatement", execute_before: bool) -> None:
        self.key_statement = key_statement
        self.execute_before = execute_before

    def before(self, executor: "ExecutorProtocol", statement: "MappedStatement", parameter_object: Any) -> None:
        if self.execute_before:
            self._process(executor, statement, parameter_object)

    def after(
        self,
        executor: "ExecutorProtocol",
        statement: "MappedStatement",
        command: "CommandProtocol",
        parameter_object: Any,
    ) -> None:
        if not self.execute_before:
            self._process(executor, statement, parameter_object)

    def _process(self, executor: "ExecutorProtocol", statement: "MappedStatement", parameter_object: Any) -> None:
        if parameter_object is None or not statement.key_properties:
            return
        from sqlmapper.executor.executor import ExecutorType

        # pending batch work must not be flushed by the key query
        key_executor = executor.configuration.new_executor(executor.connection, ExecutorType.SIMPLE)
        with wrap_exceptions(
            ExecutorError,
            "Error selecting key or setting result to parameter object.",
            passthrough=executor.connection.database_errors,
        ):
            rows = key_executor.query(self.key_statement, parameter_object)
            if not rows:
                msg = "SelectKey returned no data."
                raise ExecutorError(msg)
            if len(rows) > 1:
                msg = "SelectKey returned more than one value."
                raise ExecutorError(msg)
            row = rows[0]
            if isinstance(row, Mapping):
                columns = statement.key_columns or tuple(row)
                values: Sequence[Any] = [row[column] for column in columns]
            elif isinstance(row, (tuple, list)):
                values = row
            else:
                values = [row]
            _assign_keys(statement, parameter_object, values)
