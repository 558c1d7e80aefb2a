"""Statement declarations on mapper interfaces.

```python
class UserMapper(Protocol):
    @select("SELECT id, name FROM users WHERE id = #{id}")
    def find(self, id: int) -> User: ...

    @insert("INSERT INTO users (name) VALUES (#{name})")
    @options(use_generated_keys=True, key_property="id")
    def add(self, user: User) -> int: ...

    def find_or_none(self, id: int) -> "Optional[User]":
        return self.find(id)  # default method: not dispatched
```
"""

import ast
import inspect
import textwrap
import typing
from collections.abc import Callable, Iterator, Sequence
from typing import TYPE_CHECKING, Any, Optional, Union

from sqlmapper.builder.assistant import BuilderAssistant
from sqlmapper.builder.xml import XMLMapperBuilder, parse_template
from sqlmapper.exceptions import BuilderError
from sqlmapper.mapping import CommandType, ResultSetType, StatementKind, infer_command_type
from sqlmapper.template.nodes import TemplateDocument
from sqlmapper.utils.logging import get_logger

if TYPE_CHECKING:
    from sqlmapper.config import Configuration
    from sqlmapper.mapping import SqlSource

__all__ = (
    "MapperAnnotationBuilder",
    "Options",
    "StatementDeclaration",
    "delete",
    "get_declaration",
    "insert",
    "interface_methods",
    "is_stub",
    "mapper_namespace",
    "options",
    "select",
    "select_key",
    "statement",
    "update",
)

logger = get_logger("builder.annotations")

DECLARATION_ATTR = "__sqlmapper_statement__"
OPTIONS_ATTR = "__sqlmapper_options__"
SELECT_KEY_ATTR = "__sqlmapper_select_key__"
NAMESPACE_ATTR = "__mapper_namespace__"
XML_ATTR = "__mapper_xml__"

_SKIPPED_BASES = (object, typing.Protocol, typing.Generic)
_CONTAINER_TYPES = (list, set, frozenset, type(None))

FuncT = typing.TypeVar("FuncT", bound=Callable[..., Any])


class StatementDeclaration:
    __slots__ = ("command_type", "result_type", "sql", "statement_kind")

    def __init__(
        self,
        sql: str,
        command_type: Optional[CommandType],
        statement_kind: "Union[StatementKind, str, None]" = None,
        result_type: "Optional[type[Any]]" = None,
    ) -> None:
        self.sql = sql
        self.command_type = command_type or infer_command_type(sql)
        self.statement_kind = statement_kind
        self.result_type = result_type


class Options:
    __slots__ = ("fetch_size", "key_column", "key_property", "result_set_type", "timeout", "use_generated_keys")

    def __init__(
        self,
        *,
        timeout: Optional[int] = None,
        fetch_size: Optional[int] = None,
        use_generated_keys: Optional[bool] = None,
        key_property: "Union[str, Sequence[str], None]" = None,
        key_column: "Union[str, Sequence[str], None]" = None,
        result_set_type: "Union[ResultSetType, str, None]" = None,
    ) -> None:
        self.timeout = timeout
        self.fetch_size = fetch_size
        self.use_generated_keys = use_generated_keys
        self.key_property = key_property
        self.key_column = key_column
        self.result_set_type = result_set_type


def _join(sql: "Union[str, Sequence[str]]") -> str:
    return sql if isinstance(sql, str) else " ".join(sql)


def statement(
    sql: "Union[str, Sequence[str]]",
    command_type: Optional[CommandType] = None,
    *,
    statement_kind: "Union[StatementKind, str, None]" = None,
    result_type: "Optional[type[Any]]" = None,
) -> "Callable[[FuncT], FuncT]":
    """Bind a method to SQL; the command type is inferred from the SQL when omitted."""

    def decorator(func: FuncT) -> FuncT:
        setattr(func, DECLARATION_ATTR, StatementDeclaration(_join(sql), command_type, statement_kind, result_type))
        return func

    return decorator


def select(
    sql: "Union[str, Sequence[str]]",
    *,
    statement_kind: "Union[StatementKind, str, None]" = None,
    result_type: "Optional[type[Any]]" = None,
) -> "Callable[[FuncT], FuncT]":
    return statement(sql, CommandType.SELECT, statement_kind=statement_kind, result_type=result_type)


def insert(
    sql: "Union[str, Sequence[str]]", *, statement_kind: "Union[StatementKind, str, None]" = None
) -> "Callable[[FuncT], FuncT]":
    return statement(sql, CommandType.INSERT, statement_kind=statement_kind)


def update(
    sql: "Union[str, Sequence[str]]", *, statement_kind: "Union[StatementKind, str, None]" = None
) -> "Callable[[FuncT], FuncT]":
    return statement(sql, CommandType.UPDATE, statement_kind=statement_kind)


def delete(
    sql: "Union[str, Sequence[str]]", *, statement_kind: "Union[StatementKind, str, None]" = None
) -> "Callable[[FuncT], FuncT]":
    return statement(sql, CommandType.DELETE, statement_kind=statement_kind)


def options(**kwargs: Any) -> "Callable[[FuncT], FuncT]":
    """Attach execution options; see :class:`Options` for the accepted keywords."""
    declared = Options(**kwargs)

    def decorator(func: FuncT) -> FuncT:
        setattr(func, OPTIONS_ATTR, declared)
        return func

    return decorator


def select_key(
    sql: "Union[str, Sequence[str]]",
    key_property: "Union[str, Sequence[str]]",
    *,
    before: bool = False,
    key_column: "Union[str, Sequence[str], None]" = None,
    result_type: "Optional[type[Any]]" = None,
) -> "Callable[[FuncT], FuncT]":
    """Fill ``key_property`` from a separate query run before or after the statement."""

    def decorator(func: FuncT) -> FuncT:
        setattr(func, SELECT_KEY_ATTR, (_join(sql), key_property, before, key_column, result_type))
        return func

    return decorator


def get_declaration(func: Any) -> Optional[StatementDeclaration]:
    return getattr(func, DECLARATION_ATTR, None)


def mapper_namespace(mapper_type: "type[Any]") -> str:
    namespace = getattr(mapper_type, NAMESPACE_ATTR, None)
    return namespace or f"{mapper_type.__module__}.{mapper_type.__qualname__}"


def interface_methods(mapper_type: "type[Any]") -> "dict[str, Callable[..., Any]]":
    """Public functions declared on the interface and its interface bases."""
    methods: dict[str, Callable[..., Any]] = {}
    for klass in reversed(mapper_type.__mro__):
        if klass in _SKIPPED_BASES:
            continue
        for name, member in vars(klass).items():
            if name.startswith("_") or not inspect.isfunction(member):
                continue
            methods[name] = member
    return methods


def _is_stub_statement(node: ast.stmt) -> bool:
    if isinstance(node, ast.Pass):
        return True
    if isinstance(node, ast.Expr) and isinstance(node.value, ast.Constant):
        # docstring or ``...``
        return True
    if isinstance(node, ast.Raise) and node.exc is not None:
        target = node.exc.func if isinstance(node.exc, ast.Call) else node.exc
        return isinstance(target, ast.Name) and target.id == "NotImplementedError"
    return False


def is_stub(func: "Callable[..., Any]") -> bool:
    """True when the body is only a docstring, ``...``, ``pass`` or ``raise NotImplementedError``.

    Functions without retrievable source count as stubs.
    """
    try:
        source = textwrap.dedent(inspect.getsource(func))
    except (OSError, TypeError):
        return True
    tree = ast.parse(source)
    definition = tree.body[0]
    if not isinstance(definition, (ast.FunctionDef, ast.AsyncFunctionDef)):
        return True
    return all(_is_stub_statement(node) for node in definition.body)


def returned_row_type(func: "Callable[..., Any]") -> "Optional[type[Any]]":
    """Row type implied by a return annotation such as ``list[User]`` or ``Optional[User]``."""
    try:
        annotation = typing.get_type_hints(func).get("return")
    except (NameError, TypeError):
        return None
    while (origin := typing.get_origin(annotation)) is not None:
        args = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        if origin is dict:
            return dict
        if origin is tuple and not (len(args) == 2 and args[1] is Ellipsis):
            return tuple
        if len(args) != 1 and origin is not tuple:
            return None
        annotation = args[0]
    if not isinstance(annotation, type) or annotation in _CONTAINER_TYPES:
        return None
    return annotation


class MapperAnnotationBuilder:
    """Registers the statements declared on one mapper interface.

    Either every declared statement is registered or, on failure, none is.
    """

    __slots__ = ("assistant", "configuration", "mapper_type")

    def __init__(self, configuration: "Configuration", mapper_type: "type[Any]") -> None:
        self.configuration = configuration
        self.mapper_type = mapper_type
        self.assistant = BuilderAssistant(configuration, mapper_namespace(mapper_type))

    def parse(self) -> "list[str]":
        registry = self.configuration.statement_registry
        snapshot = registry.snapshot()
        try:
            self._load_xml_resource()
            for name, func in interface_methods(self.mapper_type).items():
                declaration = get_declaration(func)
                if declaration is not None:
                    self._parse_statement(name, func, declaration)
            registry.resolve_incomplete()
        except BaseException:
            registry.restore(snapshot)
            raise
        added = [sid for sid in registry.statement_ids if sid not in snapshot.statement_ids]
        logger.debug("Parsed %d statements for %s", len(added), self.assistant.namespace)
        return added

    def _load_xml_resource(self) -> None:
        resource = getattr(self.mapper_type, XML_ATTR, None)
        if resource is None:
            return
        namespace = XMLMapperBuilder(self.configuration).parse(resource)
        if namespace != self.assistant.namespace:
            msg = f"Mapper XML namespace '{namespace}' does not match {self.assistant.namespace}"
            raise BuilderError(msg)

    def _sql_source(self, sql: str) -> "SqlSource":
        text = sql.strip()
        if not text.startswith("<script>"):
            return self.assistant.new_sql_source(text)
        document = TemplateDocument(f"{self.assistant.namespace} <script>")
        template = document.add_root(parse_template(text, document))
        self.configuration.new_include_expander(self.assistant.namespace).expand(template)
        return self.assistant.new_sql_source(template)

    def _parse_statement(self, name: str, func: "Callable[..., Any]", declaration: StatementDeclaration) -> None:
        if declaration.command_type is CommandType.UNKNOWN:
            msg = f"Cannot determine the command type of {self.assistant.qualify(name)}: {declaration.sql!r}"
            raise BuilderError(msg)
        declared_options: Options = getattr(func, OPTIONS_ATTR, None) or Options()
        key_properties = declared_options.key_property
        key_columns = declared_options.key_column
        key_generator = None
        select_key_declaration = getattr(func, SELECT_KEY_ATTR, None)
        if select_key_declaration is not None:
            key_sql, key_properties, before, key_columns, key_result_type = select_key_declaration
            key_generator = self.assistant.add_select_key(
                name, self._sql_source(key_sql), before=before, result_type=key_result_type
            )
        result_type = declaration.result_type
        if result_type is None and declaration.command_type is CommandType.SELECT:
            result_type = returned_row_type(func)
        self.assistant.add_statement(
            name,
            self._sql_source(declaration.sql),
            declaration.command_type,
            statement_kind=declaration.statement_kind,
            timeout=declared_options.timeout,
            fetch_size=declared_options.fetch_size,
            result_type=result_type,
            result_set_type=declared_options.result_set_type,
            use_generated_keys=declared_options.use_generated_keys,
            key_generator=key_generator,
            key_properties=key_properties,
            key_columns=key_columns,
        )
