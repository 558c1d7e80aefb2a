"""Default result-mapping strategy and result handlers."""

from collections.abc import Iterator
from typing import TYPE_CHECKING, Any, Optional

from sqlmapper.utils.properties import SIMPLE_TYPES

if TYPE_CHECKING:
    from sqlmapper.mapping import MappedStatement
    from sqlmapper.typing import CommandProtocol

__all__ = ("DefaultResultHandler", "DefaultResultMapper", "ResultHandler")


class ResultHandler:
    """Receives mapped rows one at a time."""

    def handle_result(self, result: Any) -> None:
        raise NotImplementedError


class DefaultResultHandler(ResultHandler):
    """Collects every handled row into a list."""

    __slots__ = ("result_list",)

    def __init__(self) -> None:
        self.result_list: list[Any] = []

    def handle_result(self, result: Any) -> None:
        self.result_list.append(result)


class DefaultResultMapper:
    """Maps rows to dicts, scalars, or ``result_type(**row)`` instances.

    The returned iterator reads the command lazily and can be consumed once.
    """

    __slots__ = ("result_type",)

    def __init__(self, statement: "MappedStatement") -> None:
        self.result_type: Optional[type[Any]] = statement.result_type

    def map(self, command: "CommandProtocol") -> "Iterator[Any]":
        columns = command.column_names
        result_type = self.result_type
        for row in command.fetch():
            if result_type is None or result_type is dict:
                yield dict(zip(columns, row))
            elif result_type in SIMPLE_TYPES:
                value = row[0] if len(row) else None
                yield value if value is None else result_type(value)
            elif result_type is tuple:
                yield tuple(row)
            else:
                yield result_type(**dict(zip(columns, row)))
