"""Shared helpers for turning declarations into mapped statements."""

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Optional, Union

from sqlmapper.exceptions import BuilderError
from sqlmapper.executor.keygen import CursorKeyGenerator, SelectKeyGenerator
from sqlmapper.mapping import CommandType, MappedStatement, ResultSetType, SqlSource, StatementKind
from sqlmapper.template.nodes import Element
from sqlmapper.utils.logging import get_logger
from sqlmapper.utils.module_loader import import_string

if TYPE_CHECKING:
    from sqlmapper.config import Configuration
    from sqlmapper.typing import KeyGeneratorProtocol

__all__ = ("SELECT_KEY_SUFFIX", "TYPE_ALIASES", "BuilderAssistant", "split_names")

logger = get_logger("builder")

SELECT_KEY_SUFFIX = "!selectKey"

TYPE_ALIASES: "dict[str, type[Any]]" = {
    "bool": bool,
    "bytes": bytes,
    "dict": dict,
    "float": float,
    "int": int,
    "map": dict,
    "str": str,
    "string": str,
    "tuple": tuple,
}


def split_names(value: "Union[str, Sequence[str], None]") -> "tuple[str, ...]":
    """``"a, b"`` or ``["a", "b"]`` to ``("a", "b")``."""
    if not value:
        return ()
    if isinstance(value, str):
        value = value.split(",")
    return tuple(name.strip() for name in value if name.strip())


class BuilderAssistant:
    """Builds and registers statements for one namespace."""

    __slots__ = ("configuration", "namespace")

    def __init__(self, configuration: "Configuration", namespace: str) -> None:
        if not namespace:
            msg = "Mapper namespace cannot be empty"
            raise BuilderError(msg)
        self.configuration = configuration
        self.namespace = namespace

    def qualify(self, name: str) -> str:
        return self.configuration.statement_registry.apply_namespace(name, self.namespace)

    def resolve_type(self, name: "Union[str, type[Any], None]") -> "Optional[type[Any]]":
        if name is None or isinstance(name, type):
            return name
        if name in TYPE_ALIASES:
            return TYPE_ALIASES[name]
        try:
            resolved = import_string(name)
        except ImportError as e:
            msg = f"Could not resolve type '{name}'"
            raise BuilderError(msg) from e
        if not isinstance(resolved, type):
            msg = f"'{name}' does not name a type"
            raise BuilderError(msg)
        return resolved

    def new_sql_source(self, template: "Union[Element, str]") -> SqlSource:
        return SqlSource(template, shrink_whitespace=self.configuration.shrink_whitespace)

    def add_statement(
        self,
        name: str,
        sql_source: SqlSource,
        command_type: CommandType,
        *,
        statement_kind: "Union[StatementKind, str, None]" = None,
        timeout: Optional[int] = None,
        fetch_size: Optional[int] = None,
        result_type: "Union[str, type[Any], None]" = None,
        result_set_type: "Union[ResultSetType, str, None]" = None,
        use_generated_keys: Optional[bool] = None,
        key_generator: "Optional[KeyGeneratorProtocol]" = None,
        key_properties: "Union[str, Sequence[str], None]" = None,
        key_columns: "Union[str, Sequence[str], None]" = None,
    ) -> MappedStatement:
        statement_id = self.qualify(name)
        try:
            kind = StatementKind.parse(statement_kind)
        except ValueError as e:
            msg = f"Unknown statement type '{statement_kind}' on {statement_id}"
            raise BuilderError(msg) from e
        if key_generator is None:
            if use_generated_keys is None:
                use_generated_keys = self.configuration.use_generated_keys and command_type is CommandType.INSERT
            if use_generated_keys:
                key_generator = CursorKeyGenerator()
        if isinstance(result_set_type, str):
            try:
                result_set_type = ResultSetType(result_set_type.upper())
            except ValueError as e:
                msg = f"Unknown result set type '{result_set_type}' on {statement_id}"
                raise BuilderError(msg) from e
        statement = MappedStatement(
            statement_id,
            sql_source,
            command_type,
            statement_kind=kind,
            timeout=timeout,
            fetch_size=fetch_size,
            result_type=self.resolve_type(result_type),
            result_set_type=result_set_type,
            key_generator=key_generator,
            key_properties=split_names(key_properties),
            key_columns=split_names(key_columns) or None,
        )
        self.configuration.statement_registry.add_statement(statement)
        return statement

    def add_select_key(
        self,
        parent_name: str,
        sql_source: SqlSource,
        *,
        before: bool,
        result_type: "Union[str, type[Any], None]" = None,
        statement_kind: "Union[StatementKind, str, None]" = None,
    ) -> SelectKeyGenerator:
        """Register the key query for ``parent_name`` and return its generator."""
        key_statement = self.add_statement(
            f"{parent_name}{SELECT_KEY_SUFFIX}",
            sql_source,
            CommandType.SELECT,
            statement_kind=statement_kind,
            result_type=result_type,
            use_generated_keys=False,
        )
        return SelectKeyGenerator(key_statement, execute_before=before)
