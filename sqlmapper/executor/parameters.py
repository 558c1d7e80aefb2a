"""Default parameter-binding strategy."""

import datetime
from collections.abc import Callable, Mapping
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

from sqlmapper.exceptions import ExecutorError
from sqlmapper.utils.properties import get_property, is_simple_value

if TYPE_CHECKING:
    from sqlmapper.mapping import BoundStatement
    from sqlmapper.typing import CommandProtocol

__all__ = ("DEFAULT_TYPE_COERCION_MAP", "DefaultParameterBinder")

DEFAULT_TYPE_COERCION_MAP: "Mapping[type[Any], Callable[[Any], Any]]" = {
    bool: int,
    datetime.datetime: lambda v: v.isoformat(),
    datetime.date: lambda v: v.isoformat(),
    Decimal: str,
}


class DefaultParameterBinder:
    """Resolves each ``#{property}`` of a bound statement against the parameter object."""

    __slots__ = ("bound_statement", "type_coercion_map")

    def __init__(
        self,
        bound_statement: "BoundStatement",
        type_coercion_map: "Optional[Mapping[type[Any], Callable[[Any], Any]]]" = None,
    ) -> None:
        self.bound_statement = bound_statement
        self.type_coercion_map = DEFAULT_TYPE_COERCION_MAP if type_coercion_map is None else type_coercion_map

    def bind(self, command: "CommandProtocol", parameter_object: Any) -> None:
        mappings = self.bound_statement.parameter_mappings
        command.bind([self._coerce(self._resolve(m.property, parameter_object)) for m in mappings])

    def _resolve(self, name: str, parameter_object: Any) -> Any:
        if is_simple_value(parameter_object):
            return parameter_object
        try:
            return get_property(parameter_object, name)
        except KeyError as e:
            msg = f"Could not set parameter '{name}' for {self.bound_statement.statement.id}. Cause: {e.args[0]}"
            raise ExecutorError(msg) from e

    def _coerce(self, value: Any) -> Any:
        converter = self.type_coercion_map.get(type(value))
        return value if converter is None else converter(value)
