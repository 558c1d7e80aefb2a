"""Process-wide settings and factories shared by every session."""

from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Optional

from sqlmapper.adapters.dbapi import DBAPIConnection
from sqlmapper.binding.registry import MapperRegistry
from sqlmapper.builder.include import IncludeExpander
from sqlmapper.executor.executor import BaseExecutor, BatchExecutor, BatchKeyGeneration, ExecutorType, SimpleExecutor
from sqlmapper.executor.parameters import DefaultParameterBinder
from sqlmapper.executor.results import DefaultResultMapper
from sqlmapper.executor.statement import RoutingStatementHandler
from sqlmapper.registry import StatementRegistry
from sqlmapper.session import Session
from sqlmapper.template.placeholders import PlaceholderParser
from sqlmapper.utils.logging import get_logger

if TYPE_CHECKING:
    from sqlmapper.executor.results import ResultHandler
    from sqlmapper.mapping import BoundStatement, MappedStatement
    from sqlmapper.typing import (
        CommandFactoryProtocol,
        ExecutorProtocol,
        MapperT,
        ParameterBinderProtocol,
        ResultMapperProtocol,
    )

__all__ = ("Configuration",)

logger = get_logger("config")


class Configuration:
    """Settings, registries and component factories.

    Args:
        variables: Process-wide ``${name}`` values seeding include expansion.
        strict_placeholders: Raise on unresolved ``${name}`` instead of leaving it literal.
        enable_default_values: Accept ``${name:fallback}``.
        default_value_separator: Separator used by ``enable_default_values``.
        default_statement_timeout: Timeout applied when a statement declares none.
        default_fetch_size: Fetch size applied when a statement declares none.
        shrink_whitespace: Collapse whitespace runs in rendered SQL.
        use_generated_keys: Default for decorator-declared inserts.
        batch_key_generation: Key-generation behaviour of batch executors.
        default_executor_type: Executor used by :meth:`open_session`.
        type_coercion_map: Parameter value converters keyed by exact type.
    """

    def __init__(
        self,
        *,
        variables: "Optional[Mapping[str, str]]" = None,
        strict_placeholders: bool = False,
        enable_default_values: bool = False,
        default_value_separator: str = ":",
        default_statement_timeout: Optional[int] = None,
        default_fetch_size: Optional[int] = None,
        shrink_whitespace: bool = True,
        use_generated_keys: bool = False,
        batch_key_generation: BatchKeyGeneration = BatchKeyGeneration.NONE,
        default_executor_type: ExecutorType = ExecutorType.SIMPLE,
        type_coercion_map: "Optional[Mapping[type[Any], Callable[[Any], Any]]]" = None,
    ) -> None:
        self._variables: dict[str, str] = dict(variables or {})
        self.strict_placeholders = strict_placeholders
        self.enable_default_values = enable_default_values
        self.default_value_separator = default_value_separator
        self.default_statement_timeout = default_statement_timeout
        self.default_fetch_size = default_fetch_size
        self.shrink_whitespace = shrink_whitespace
        self.use_generated_keys = use_generated_keys
        self.batch_key_generation = batch_key_generation
        self.default_executor_type = default_executor_type
        self.type_coercion_map = type_coercion_map
        self.statement_registry = StatementRegistry()
        self.mapper_registry = MapperRegistry(self)

    def __repr__(self) -> str:
        statements = len(self.statement_registry.statement_ids)
        mappers = len(self.mapper_registry.get_registered_types())
        return f"Configuration(statements={statements}, mappers={mappers})"

    @property
    def variables(self) -> "Mapping[str, str]":
        """Read-only view of the process-wide variables."""
        return MappingProxyType(self._variables)

    def set_variable(self, name: str, value: str) -> None:
        self._variables[name] = value

    def new_placeholder_parser(self) -> PlaceholderParser:
        return PlaceholderParser(
            strict=self.strict_placeholders,
            enable_default_values=self.enable_default_values,
            default_value_separator=self.default_value_separator,
        )

    def new_include_expander(self, namespace: str = "") -> IncludeExpander:
        return IncludeExpander(
            self.statement_registry, namespace, dict(self._variables), self.new_placeholder_parser()
        )

    def new_statement_handler(
        self,
        executor: "ExecutorProtocol",
        statement: "MappedStatement",
        parameter_object: Any,
        result_handler: "Optional[ResultHandler]" = None,
        bound_statement: "Optional[BoundStatement]" = None,
    ) -> RoutingStatementHandler:
        return RoutingStatementHandler(executor, statement, parameter_object, result_handler, bound_statement)

    def new_parameter_binder(
        self, statement: "MappedStatement", bound_statement: "BoundStatement"
    ) -> "ParameterBinderProtocol":
        return DefaultParameterBinder(bound_statement, self.type_coercion_map)

    def new_result_mapper(self, statement: "MappedStatement") -> "ResultMapperProtocol":
        return DefaultResultMapper(statement)

    @staticmethod
    def wrap_connection(connection: Any) -> "CommandFactoryProtocol":
        """Accept a command factory as-is, wrapping plain DB-API connections."""
        if hasattr(connection, "create_command"):
            return connection  # type: ignore[no-any-return]
        return DBAPIConnection(connection)

    def new_executor(self, connection: Any, executor_type: Optional[ExecutorType] = None) -> BaseExecutor:
        executor_type = executor_type or self.default_executor_type
        factory = self.wrap_connection(connection)
        if executor_type is ExecutorType.BATCH:
            return BatchExecutor(self, factory)
        return SimpleExecutor(self, factory)

    def open_session(self, connection: Any, executor_type: Optional[ExecutorType] = None) -> Session:
        return Session(self, self.new_executor(connection, executor_type))

    def get_statement(self, statement_id: str) -> "MappedStatement":
        return self.statement_registry.get_statement(statement_id)

    def has_statement(self, statement_id: str) -> bool:
        return self.statement_registry.has_statement(statement_id)

    def add_mapper(self, mapper_type: "type[Any]") -> None:
        self.mapper_registry.register(mapper_type)

    def has_mapper(self, mapper_type: "type[Any]") -> bool:
        return self.mapper_registry.is_registered(mapper_type)

    def get_mapper(self, mapper_type: "type[MapperT]", session: Session) -> "MapperT":
        return self.mapper_registry.create_instance(mapper_type, session)
