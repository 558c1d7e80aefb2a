"""Structural interfaces for the collaborators the core drives."""

from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING, Any, Optional, Protocol

from typing_extensions import TypeAlias, TypeVar

if TYPE_CHECKING:
    from sqlmapper.mapping import MappedStatement, ResultSetType, StatementKind

__all__ = (
    "CommandFactoryProtocol",
    "CommandProtocol",
    "ExecutorProtocol",
    "KeyGeneratorProtocol",
    "MapperT",
    "ParameterBinderProtocol",
    "ResultMapperProtocol",
    "Row",
)


MapperT = TypeVar("MapperT")
Row: TypeAlias = "Sequence[Any]"


class CommandProtocol(Protocol):
    """An executable unit created against a database connection."""

    sql: str

    def set_query_timeout(self, seconds: int) -> None: ...

    def set_fetch_size(self, rows: int) -> None: ...

    def bind(self, values: "Sequence[Any]") -> None: ...

    def execute(self) -> bool:
        """Run the command; ``True`` when it produced a result set."""
        ...

    @property
    def update_count(self) -> int: ...

    @property
    def column_names(self) -> "list[str]": ...

    def fetch(self) -> "Iterator[Row]": ...

    def add_batch(self) -> None: ...

    def execute_batch(self) -> "list[int]": ...

    def generated_keys(self) -> "list[Row]": ...

    def close(self) -> None: ...


class CommandFactoryProtocol(Protocol):
    """Database connection handle that creates commands."""

    database_errors: "tuple[type[BaseException], ...]"

    def create_command(
        self,
        sql: str,
        kind: "StatementKind",
        *,
        return_generated_keys: bool = False,
        key_columns: "Optional[Sequence[str]]" = None,
        result_set_type: "Optional[ResultSetType]" = None,
    ) -> CommandProtocol: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def close(self) -> None: ...


class ExecutorProtocol(Protocol):
    connection: CommandFactoryProtocol
    configuration: Any

    def query(self, statement: "MappedStatement", parameter: Any, result_handler: Any = None) -> "list[Any]": ...

    def update(self, statement: "MappedStatement", parameter: Any) -> int: ...


class ParameterBinderProtocol(Protocol):
    def bind(self, command: CommandProtocol, parameter_object: Any) -> None: ...


class ResultMapperProtocol(Protocol):
    def map(self, command: CommandProtocol) -> "Iterator[Any]": ...


class KeyGeneratorProtocol(Protocol):
    def before(self, executor: ExecutorProtocol, statement: "MappedStatement", parameter_object: Any) -> None: ...

    def after(
        self,
        executor: ExecutorProtocol,
        statement: "MappedStatement",
        command: CommandProtocol,
        parameter_object: Any,
    ) -> None: ...
