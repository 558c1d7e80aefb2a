"""Tests for mapped statements and SQL rendering."""

import pytest

from sqlmapper.builder.xml import parse_template
from sqlmapper.executor.keygen import NO_KEY_GENERATOR
from sqlmapper.mapping import (
    CommandType,
    MappedStatement,
    ParameterMapping,
    SqlSource,
    StatementKind,
    infer_command_type,
)
from sqlmapper.template import TemplateDocument


def test_sql_source_replaces_markers_in_order() -> None:
    """Every ``#{}`` marker becomes ``?`` with a mapping in SQL order."""
    source = SqlSource("UPDATE users SET name = #{name} WHERE id = #{id}")

    assert source.sql == "UPDATE users SET name = ? WHERE id = ?"
    assert [mapping.property for mapping in source.parameter_mappings] == ["name", "id"]


def test_sql_source_from_template_shrinks_whitespace() -> None:
    template = parse_template("<select>\n  SELECT id\n    FROM users\n  WHERE id = #{id}\n</select>", TemplateDocument())

    assert SqlSource(template).sql == "SELECT id FROM users WHERE id = ?"
    assert SqlSource(template, shrink_whitespace=False).sql.startswith("SELECT id\n")


def test_parameter_mapping_options() -> None:
    mapping = ParameterMapping.parse(" created , jdbcType = TIMESTAMP ")

    assert mapping.property == "created"
    assert mapping.options == {"jdbcType": "TIMESTAMP"}


def test_bound_statement_carries_options() -> None:
    statement = MappedStatement(
        "ns.add",
        SqlSource("INSERT INTO users (name) VALUES (#{name})"),
        CommandType.INSERT,
        timeout=5,
        fetch_size=50,
        key_columns=["id"],
    )
    bound = statement.get_bound_statement({"name": "x"})

    assert bound.sql == "INSERT INTO users (name) VALUES (?)"
    assert bound.parameter_object == {"name": "x"}
    assert bound.statement_kind is StatementKind.PREPARED
    assert bound.timeout == 5
    assert bound.fetch_size == 50
    assert bound.key_columns == ("id",)
    assert statement.key_generator is NO_KEY_GENERATOR
    assert statement.namespace == "ns"


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, StatementKind.PREPARED),
        ("prepared", StatementKind.PREPARED),
        ("STATEMENT", StatementKind.PLAIN),
        ("callable", StatementKind.CALLABLE),
        (StatementKind.PLAIN, StatementKind.PLAIN),
    ],
)
def test_statement_kind_parse(value: "str | StatementKind | None", expected: StatementKind) -> None:
    assert StatementKind.parse(value) is expected


def test_statement_kind_parse_rejects_unknown() -> None:
    with pytest.raises(ValueError):
        StatementKind.parse("bogus")


@pytest.mark.parametrize(
    ("sql", "expected"),
    [
        ("SELECT id FROM users WHERE id = #{id}", CommandType.SELECT),
        ("SELECT a FROM t UNION SELECT b FROM u", CommandType.SELECT),
        ("INSERT INTO users (name) VALUES (#{name})", CommandType.INSERT),
        ("UPDATE users SET name = #{name}", CommandType.UPDATE),
        ("DELETE FROM users WHERE id = #{id}", CommandType.DELETE),
    ],
)
def test_infer_command_type(sql: str, expected: CommandType) -> None:
    assert infer_command_type(sql) is expected


def test_infer_command_type_unknown() -> None:
    assert infer_command_type("CREATE TABLE t (id INT)") is CommandType.UNKNOWN
