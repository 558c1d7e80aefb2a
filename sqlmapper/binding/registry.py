"""Registry of mapper interfaces."""

import threading
from types import ModuleType
from typing import TYPE_CHECKING, Any, Union

from typing_extensions import is_protocol

from sqlmapper.binding.proxy import MapperProxyFactory
from sqlmapper.builder.annotations import MapperAnnotationBuilder
from sqlmapper.exceptions import BindingError
from sqlmapper.utils.logging import get_logger
from sqlmapper.utils.module_loader import find_protocols

if TYPE_CHECKING:
    from sqlmapper.config import Configuration
    from sqlmapper.session import Session
    from sqlmapper.typing import MapperT

__all__ = ("MapperRegistry",)

logger = get_logger("binding.registry")


class MapperRegistry:
    """Known mapper interfaces and their proxy factories.

    Registration is all-or-nothing: when parsing an interface's statement
    declarations fails, neither the interface nor any of its statements stay
    registered.
    """

    __slots__ = ("_known_mappers", "_lock", "configuration")

    def __init__(self, configuration: "Configuration") -> None:
        self.configuration = configuration
        self._known_mappers: dict[type[Any], MapperProxyFactory[Any]] = {}
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        return f"MapperRegistry({[t.__qualname__ for t in self._known_mappers]})"

    def register(self, mapper_type: "type[Any]") -> None:
        """Register a ``typing.Protocol`` mapper interface.

        Raises:
            BindingError: ``mapper_type`` is not a Protocol or is already registered.
        """
        logger.debug("Registering mapper %s", mapper_type)
        if not isinstance(mapper_type, type) or not is_protocol(mapper_type):
            msg = f"Type {mapper_type} is not a mapper interface (typing.Protocol)."
            raise BindingError(msg)
        with self._lock:
            if mapper_type in self._known_mappers:
                msg = f"Type {mapper_type} is already known to the MapperRegistry."
                raise BindingError(msg)
            # visible before parsing so nested lookups see it as known
            self._known_mappers[mapper_type] = MapperProxyFactory(mapper_type)
            load_completed = False
            try:
                MapperAnnotationBuilder(self.configuration, mapper_type).parse()
                load_completed = True
            finally:
                if not load_completed:
                    del self._known_mappers[mapper_type]

    def register_package(self, module: "Union[str, ModuleType]", base: "type[Any]" = object) -> "list[type[Any]]":
        """Register every Protocol defined in ``module`` (that subclasses ``base``)."""
        registered = []
        for mapper_type in find_protocols(module, base):
            if not self.is_registered(mapper_type):
                self.register(mapper_type)
                registered.append(mapper_type)
        return registered

    def is_registered(self, mapper_type: "type[Any]") -> bool:
        return mapper_type in self._known_mappers

    def get_factory(self, mapper_type: "type[MapperT]") -> "MapperProxyFactory[MapperT]":
        factory = self._known_mappers.get(mapper_type)
        if factory is None:
            msg = f"Type {mapper_type} is not known to the MapperRegistry."
            raise BindingError(msg)
        return factory

    def create_instance(self, mapper_type: "type[MapperT]", session: "Session") -> "MapperT":
        factory = self.get_factory(mapper_type)
        try:
            return factory.new_instance(session)
        except Exception as e:
            msg = f"Error getting mapper instance. Cause: {e}"
            raise BindingError(msg) from e

    def get_registered_types(self) -> "tuple[type[Any], ...]":
        """Snapshot of the registered interfaces, unaffected by later registrations."""
        return tuple(self._known_mappers)
