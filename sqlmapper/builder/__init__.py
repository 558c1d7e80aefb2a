from sqlmapper.builder.annotations import (
    MapperAnnotationBuilder,
    Options,
    delete,
    insert,
    options,
    select,
    select_key,
    statement,
    update,
)
from sqlmapper.builder.assistant import BuilderAssistant
from sqlmapper.builder.include import IncludeExpander
from sqlmapper.builder.xml import XMLMapperBuilder

__all__ = (
    "BuilderAssistant",
    "IncludeExpander",
    "MapperAnnotationBuilder",
    "Options",
    "XMLMapperBuilder",
    "delete",
    "insert",
    "options",
    "select",
    "select_key",
    "statement",
    "update",
)
