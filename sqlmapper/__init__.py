"""Bind interface methods to templated SQL and run them over DB-API connections."""

from sqlmapper import exceptions
from sqlmapper.adapters.dbapi import DBAPICommand, DBAPIConnection
from sqlmapper.binding import MapperRegistry
from sqlmapper.builder import (
    IncludeExpander,
    XMLMapperBuilder,
    delete,
    insert,
    options,
    select,
    select_key,
    statement,
    update,
)
from sqlmapper.config import Configuration
from sqlmapper.exceptions import (
    BindingError,
    BuilderError,
    ExecutorError,
    IncompleteElementError,
    MultipleResultsFoundError,
    SQLMapperError,
)
from sqlmapper.executor import (
    BatchKeyGeneration,
    BatchResult,
    CursorKeyGenerator,
    DefaultResultHandler,
    ExecutorType,
    RoutingStatementHandler,
    SelectKeyGenerator,
)
from sqlmapper.mapping import BoundStatement, CommandType, MappedStatement, ResultSetType, StatementKind
from sqlmapper.registry import StatementRegistry
from sqlmapper.session import Session
from sqlmapper.template import Element, PlaceholderParser, TemplateDocument, Text

__all__ = (
    "BatchKeyGeneration",
    "BatchResult",
    "BindingError",
    "BoundStatement",
    "BuilderError",
    "CommandType",
    "Configuration",
    "CursorKeyGenerator",
    "DBAPICommand",
    "DBAPIConnection",
    "DefaultResultHandler",
    "Element",
    "ExecutorError",
    "ExecutorType",
    "IncludeExpander",
    "IncompleteElementError",
    "MappedStatement",
    "MapperRegistry",
    "MultipleResultsFoundError",
    "PlaceholderParser",
    "ResultSetType",
    "RoutingStatementHandler",
    "SQLMapperError",
    "SelectKeyGenerator",
    "Session",
    "StatementKind",
    "StatementRegistry",
    "TemplateDocument",
    "Text",
    "XMLMapperBuilder",
    "delete",
    "exceptions",
    "insert",
    "options",
    "select",
    "select_key",
    "statement",
    "update",
)
