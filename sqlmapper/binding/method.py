"""Resolution of one mapper method to a statement and its call conventions."""

import inspect
import typing
from collections.abc import Callable, Iterator, Sequence
from typing import TYPE_CHECKING, Any

from sqlmapper.builder.annotations import mapper_namespace
from sqlmapper.exceptions import BindingError
from sqlmapper.mapping import CommandType

if TYPE_CHECKING:
    from sqlmapper.config import Configuration
    from sqlmapper.mapping import MappedStatement
    from sqlmapper.session import Session

__all__ = ("MapperMethod", "MethodSignature", "ParamNameResolver")

GENERIC_NAME_PREFIX = "param"
MANY_TYPES: "tuple[type[Any], ...]" = (list, tuple, set, frozenset, Sequence)


class ParamNameResolver:
    """Turns call arguments into the single parameter object a statement sees.

    No argument gives ``None``, one argument is passed through unchanged, and
    several become a dict keyed by argument name and by ``param1..paramN``.
    """

    __slots__ = ("names", "signature")

    def __init__(self, method: "Callable[..., Any]") -> None:
        self.signature = inspect.signature(method)
        self.names = tuple(
            name
            for name, parameter in self.signature.parameters.items()
            if name != "self"
            and parameter.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
        )

    def resolve(self, args: "tuple[Any, ...]", kwargs: "dict[str, Any]") -> Any:
        try:
            bound = self.signature.bind(None, *args, **kwargs)
        except TypeError as e:
            raise BindingError(str(e)) from e
        bound.apply_defaults()
        values = [bound.arguments[name] for name in self.names]
        if not values:
            return None
        if len(values) == 1:
            return values[0]
        parameters: dict[str, Any] = dict(zip(self.names, values))
        for index, value in enumerate(values, start=1):
            parameters.setdefault(f"{GENERIC_NAME_PREFIX}{index}", value)
        return parameters


class MethodSignature:
    """Return-type conventions of a mapper method."""

    __slots__ = ("return_type", "returns_iterator", "returns_many", "returns_void")

    def __init__(self, method: "Callable[..., Any]") -> None:
        try:
            annotation = typing.get_type_hints(method).get("return", inspect.Signature.empty)
        except (NameError, TypeError):
            annotation = inspect.Signature.empty
        origin = typing.get_origin(annotation) or annotation
        self.return_type = origin
        self.returns_void = annotation is None or annotation is type(None)
        is_class = isinstance(origin, type)
        self.returns_iterator = is_class and issubclass(origin, Iterator)
        self.returns_many = is_class and not self.returns_iterator and origin in MANY_TYPES


class MapperMethod:
    """The cached, resolved binding of one interface method."""

    __slots__ = ("command_type", "name", "param_resolver", "signature", "statement")

    def __init__(
        self, mapper_interface: "type[Any]", method: "Callable[..., Any]", configuration: "Configuration"
    ) -> None:
        self.name = f"{mapper_namespace(mapper_interface)}.{method.__name__}"
        self.statement: MappedStatement = configuration.get_statement(self.name)
        self.command_type = self.statement.command_type
        if self.command_type is CommandType.UNKNOWN:
            msg = f"Unknown execution method for: {self.name}"
            raise BindingError(msg)
        self.signature = MethodSignature(method)
        self.param_resolver = ParamNameResolver(method)

    def __repr__(self) -> str:
        return f"MapperMethod({self.name!r}, {self.command_type.name})"

    def execute(self, session: "Session", args: "tuple[Any, ...]", kwargs: "dict[str, Any]") -> Any:
        parameter = self.param_resolver.resolve(args, kwargs)
        if self.command_type is CommandType.SELECT:
            return self._select(session, parameter)
        if self.command_type is CommandType.INSERT:
            return self._row_count_result(session.insert(self.name, parameter))
        if self.command_type is CommandType.UPDATE:
            return self._row_count_result(session.update(self.name, parameter))
        return self._row_count_result(session.delete(self.name, parameter))

    def _select(self, session: "Session", parameter: Any) -> Any:
        signature = self.signature
        if signature.returns_iterator:
            return session.select_iter(self.name, parameter)
        if signature.returns_many:
            rows = session.select_list(self.name, parameter)
            return rows if signature.return_type in (list, Sequence) else signature.return_type(rows)
        result = session.select_one(self.name, parameter)
        return None if signature.returns_void else result

    def _row_count_result(self, rows: int) -> Any:
        return_type = self.signature.return_type
        if self.signature.returns_void:
            return None
        if return_type is bool:
            return rows > 0
        if return_type in (int, inspect.Signature.empty, typing.Any):
            return rows
        msg = f"Mapper method '{self.name}' has an unsupported return type: {return_type}"
        raise BindingError(msg)
