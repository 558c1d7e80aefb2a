"""Mapper instances: generated interface implementations dispatching to statements."""

import functools
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Generic

from sqlmapper.binding.method import MapperMethod
from sqlmapper.builder.annotations import get_declaration, interface_methods, is_stub
from sqlmapper.exceptions import BindingError, wrap_exceptions
from sqlmapper.typing import MapperT
from sqlmapper.utils.logging import get_logger

if TYPE_CHECKING:
    from sqlmapper.session import Session

__all__ = ("MapperProxy", "MapperProxyFactory", "MethodCache")

logger = get_logger("binding.proxy")

HANDLER_ATTR = "_sqlmapper_handler"


class MethodCache:
    """Method to :class:`MapperMethod` map shared by every instance of one mapper type.

    Reads never lock. A first use may build a value more than once under
    contention, but only the first stored value is ever returned, and
    entries are never replaced or removed.
    """

    __slots__ = ("_entries", "_lock")

    def __init__(self) -> None:
        self._entries: dict[Callable[..., Any], MapperMethod] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, method: object) -> bool:
        return method in self._entries

    def get(self, method: "Callable[..., Any]") -> "MapperMethod | None":
        return self._entries.get(method)

    def get_or_create(self, method: "Callable[..., Any]", factory: "Callable[[], MapperMethod]") -> MapperMethod:
        cached = self._entries.get(method)
        if cached is not None:
            return cached
        created = factory()
        with self._lock:
            return self._entries.setdefault(method, created)


class MapperProxy(Generic[MapperT]):
    """Single entry point every generated mapper method calls into."""

    __slots__ = ("method_cache", "mapper_interface", "session")

    def __init__(self, session: "Session", mapper_interface: "type[MapperT]", method_cache: MethodCache) -> None:
        self.session = session
        self.mapper_interface = mapper_interface
        self.method_cache = method_cache

    def __repr__(self) -> str:
        return f"MapperProxy({self.mapper_interface.__qualname__})"

    def cached_mapper_method(self, method: "Callable[..., Any]") -> MapperMethod:
        return self.method_cache.get_or_create(
            method, lambda: MapperMethod(self.mapper_interface, method, self.session.configuration)
        )

    def invoke(self, method: "Callable[..., Any]", args: "tuple[Any, ...]", kwargs: "dict[str, Any]") -> Any:
        mapper_method = self.cached_mapper_method(method)
        logger.debug("Dispatching %s", mapper_method.name)
        with wrap_exceptions(
            BindingError,
            f"Error invoking mapper method {mapper_method.name}.",
            passthrough=self.session.connection.database_errors,
        ):
            return mapper_method.execute(self.session, args, kwargs)


def _dispatcher(method: "Callable[..., Any]") -> "Callable[..., Any]":
    @functools.wraps(method)
    def dispatch(self: Any, *args: Any, **kwargs: Any) -> Any:
        return getattr(self, HANDLER_ATTR).invoke(method, args, kwargs)

    return dispatch


class MapperProxyFactory(Generic[MapperT]):
    """Builds the dispatch table of one interface once and stamps out instances.

    Methods carrying a statement declaration, or whose body is a stub, are
    dispatched to statements. Methods with a real body run as written and
    ``__eq__``, ``__hash__``, ``__repr__`` and ``__str__`` keep their
    ordinary object behaviour; none of them touch the method cache.
    """

    __slots__ = ("dispatch_table", "mapper_interface", "method_cache", "proxy_class")

    def __init__(self, mapper_interface: "type[MapperT]") -> None:
        self.mapper_interface = mapper_interface
        self.method_cache = MethodCache()
        self.dispatch_table: dict[str, Callable[..., Any]] = {
            name: method
            for name, method in interface_methods(mapper_interface).items()
            if get_declaration(method) is not None or is_stub(method)
        }
        self.proxy_class = self._build_proxy_class()

    def __repr__(self) -> str:
        return f"MapperProxyFactory({self.mapper_interface.__qualname__})"

    def _build_proxy_class(self) -> "type[MapperT]":
        interface = self.mapper_interface
        namespace: dict[str, Any] = {name: _dispatcher(method) for name, method in self.dispatch_table.items()}

        def __init__(self: Any, handler: MapperProxy[Any]) -> None:  # noqa: N807
            setattr(self, HANDLER_ATTR, handler)

        def __repr__(self: Any) -> str:  # noqa: N807
            return f"<{interface.__qualname__} mapper bound to {getattr(self, HANDLER_ATTR).session!r}>"

        namespace["__init__"] = __init__
        namespace["__repr__"] = __repr__
        namespace["__module__"] = interface.__module__
        namespace["__qualname__"] = f"{interface.__qualname__}Mapper"
        return type(f"{interface.__name__}Mapper", (interface,), namespace)

    def new_instance(self, session: "Session") -> MapperT:
        return self.proxy_class(MapperProxy(session, self.mapper_interface, self.method_cache))  # type: ignore[call-arg]
