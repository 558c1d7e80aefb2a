"""Mapped statements and the SQL they bind to at call time."""

import re
from collections.abc import Sequence
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Union

from sqlglot import exp, parse_one
from sqlglot.errors import SqlglotError

from sqlmapper.template.nodes import Element

if TYPE_CHECKING:
    from sqlmapper.typing import KeyGeneratorProtocol

__all__ = (
    "BoundStatement",
    "CommandType",
    "MappedStatement",
    "ParameterMapping",
    "ResultSetType",
    "SqlSource",
    "StatementKind",
    "infer_command_type",
)

PARAMETER_MARKER = re.compile(r"#\{([^}]*)\}")


class StatementKind(Enum):
    """How a command is created against the connection."""

    PLAIN = "PLAIN"
    PREPARED = "PREPARED"
    CALLABLE = "CALLABLE"

    @classmethod
    def parse(cls, value: "Union[str, StatementKind, None]") -> "StatementKind":
        if value is None:
            return cls.PREPARED
        if isinstance(value, StatementKind):
            return value
        aliases = {"STATEMENT": cls.PLAIN}
        key = value.strip().upper()
        return aliases.get(key) or cls(key)


class CommandType(Enum):
    SELECT = "SELECT"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    UNKNOWN = "UNKNOWN"


class ResultSetType(Enum):
    DEFAULT = "DEFAULT"
    FORWARD_ONLY = "FORWARD_ONLY"
    SCROLL_INSENSITIVE = "SCROLL_INSENSITIVE"
    SCROLL_SENSITIVE = "SCROLL_SENSITIVE"


_EXPRESSION_COMMANDS: "tuple[tuple[type[exp.Expression], CommandType], ...]" = (
    (exp.Insert, CommandType.INSERT),
    (exp.Update, CommandType.UPDATE),
    (exp.Delete, CommandType.DELETE),
    (exp.Query, CommandType.SELECT),
)


def infer_command_type(sql: str) -> CommandType:
    """Classify SQL text with sqlglot; ``#{}`` markers are parsed as ``?``."""
    text = PARAMETER_MARKER.sub("?", sql)
    try:
        expression = parse_one(text)
    except SqlglotError:
        return CommandType.UNKNOWN
    for expression_type, command_type in _EXPRESSION_COMMANDS:
        if isinstance(expression, expression_type):
            return command_type
    return CommandType.UNKNOWN


class ParameterMapping:
    """One ``#{property,option=value}`` marker, in SQL order."""

    __slots__ = ("options", "property")

    def __init__(self, property: str, options: "Optional[dict[str, str]]" = None) -> None:  # noqa: A002
        self.property = property
        self.options = options or {}

    def __repr__(self) -> str:
        return f"ParameterMapping({self.property!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParameterMapping):
            return NotImplemented
        return self.property == other.property and self.options == other.options

    __hash__ = None  # type: ignore[assignment]

    @classmethod
    def parse(cls, content: str) -> "ParameterMapping":
        name, *raw_options = (part.strip() for part in content.split(","))
        options = {}
        for option in raw_options:
            key, _, value = option.partition("=")
            options[key.strip()] = value.strip()
        return cls(name, options)


class SqlSource:
    """Static SQL rendered once from an expanded template or plain text."""

    __slots__ = ("parameter_mappings", "sql")

    def __init__(self, template: "Union[Element, str]", *, shrink_whitespace: bool = True) -> None:
        text = template.render_text() if isinstance(template, Element) else template
        text = " ".join(text.split()) if shrink_whitespace else text.strip()
        mappings: list[ParameterMapping] = []

        def _marker(match: "re.Match[str]") -> str:
            mappings.append(ParameterMapping.parse(match.group(1)))
            return "?"

        self.sql = PARAMETER_MARKER.sub(_marker, text)
        self.parameter_mappings: tuple[ParameterMapping, ...] = tuple(mappings)

    def get_bound_statement(self, statement: "MappedStatement", parameter_object: Any) -> "BoundStatement":
        return BoundStatement(statement, self.sql, self.parameter_mappings, parameter_object)


class MappedStatement:
    """A registered statement: its SQL source plus execution options."""

    __slots__ = (
        "command_type",
        "fetch_size",
        "id",
        "key_columns",
        "key_generator",
        "key_properties",
        "result_set_type",
        "result_type",
        "sql_source",
        "statement_kind",
        "timeout",
    )

    def __init__(
        self,
        id: str,  # noqa: A002
        sql_source: SqlSource,
        command_type: CommandType,
        *,
        statement_kind: StatementKind = StatementKind.PREPARED,
        timeout: Optional[int] = None,
        fetch_size: Optional[int] = None,
        result_type: "Optional[type[Any]]" = None,
        result_set_type: Optional[ResultSetType] = None,
        key_generator: "Optional[KeyGeneratorProtocol]" = None,
        key_properties: "Sequence[str]" = (),
        key_columns: "Optional[Sequence[str]]" = None,
    ) -> None:
        from sqlmapper.executor.keygen import NO_KEY_GENERATOR

        self.id = id
        self.sql_source = sql_source
        self.command_type = command_type
        self.statement_kind = statement_kind
        self.timeout = timeout
        self.fetch_size = fetch_size
        self.result_type = result_type
        self.result_set_type = result_set_type
        self.key_generator = key_generator or NO_KEY_GENERATOR
        self.key_properties = tuple(key_properties)
        self.key_columns = tuple(key_columns) if key_columns else None

    def __repr__(self) -> str:
        return f"MappedStatement({self.id!r}, {self.command_type.name}, {self.statement_kind.name})"

    @property
    def namespace(self) -> str:
        return self.id.rpartition(".")[0]

    def get_bound_statement(self, parameter_object: Any) -> "BoundStatement":
        return self.sql_source.get_bound_statement(self, parameter_object)


class BoundStatement:
    """SQL text, parameter order and options for one invocation."""

    __slots__ = ("parameter_mappings", "parameter_object", "sql", "statement")

    def __init__(
        self,
        statement: MappedStatement,
        sql: str,
        parameter_mappings: "Sequence[ParameterMapping]",
        parameter_object: Any,
    ) -> None:
        self.statement = statement
        self.sql = sql
        self.parameter_mappings = tuple(parameter_mappings)
        self.parameter_object = parameter_object

    def __repr__(self) -> str:
        return f"BoundStatement({self.sql!r})"

    @property
    def statement_kind(self) -> StatementKind:
        return self.statement.statement_kind

    @property
    def timeout(self) -> Optional[int]:
        return self.statement.timeout

    @property
    def fetch_size(self) -> Optional[int]:
        return self.statement.fetch_size

    @property
    def key_columns(self) -> "Optional[tuple[str, ...]]":
        return self.statement.key_columns
