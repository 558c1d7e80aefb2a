"""Tests for recursive include expansion."""

import pytest

from sqlmapper.builder.include import IncludeExpander
from sqlmapper.builder.xml import parse_template
from sqlmapper.exceptions import BuilderError, IncompleteElementError
from sqlmapper.registry import StatementRegistry
from sqlmapper.template import Element, Node, PlaceholderParser, TemplateDocument


def _walk(node: Node) -> "list[Node]":
    nodes = [node]
    if isinstance(node, Element):
        for child in node.children:
            nodes.extend(_walk(child))
    return nodes


@pytest.fixture
def registry() -> StatementRegistry:
    return StatementRegistry()


@pytest.fixture
def fragments() -> TemplateDocument:
    return TemplateDocument("fragments")


def _add_fragment(registry: StatementRegistry, document: TemplateDocument, qualified_id: str, xml: str) -> Element:
    element = parse_template(xml, document)
    registry.add_fragment(qualified_id, element)
    return element


def test_include_replaced_by_fragment_children(registry: StatementRegistry, fragments: TemplateDocument) -> None:
    """The include element is spliced out and the fragment's children take its place."""
    _add_fragment(registry, fragments, "ns.columns", "<sql id='columns'>id, name</sql>")
    statement = parse_template("<select>SELECT <include refid='columns'/> FROM users</select>", fragments)

    IncludeExpander(registry, "ns").expand(statement)

    assert statement.render_text() == "SELECT id, name FROM users"
    assert not any(isinstance(node, Element) and node.tag == "include" for node in _walk(statement))


def test_nested_include_scopes(registry: StatementRegistry, fragments: TemplateDocument) -> None:
    """Variables declared on an outer include are visible when resolving inner declarations."""
    _add_fragment(registry, fragments, "ns.C", "<sql id='C'>value ${y}</sql>")
    _add_fragment(
        registry,
        fragments,
        "ns.B",
        "<sql id='B'><include refid='C'><property name='y' value='${x}+1'/></include></sql>",
    )
    statement = parse_template(
        "<select>SELECT <include refid='B'><property name='x' value='1'/></include></select>",
        TemplateDocument("statements"),
    )

    IncludeExpander(registry, "ns").expand(statement)

    assert statement.render_text() == "SELECT value 1+1"


def test_sibling_includes_do_not_share_scope(registry: StatementRegistry, fragments: TemplateDocument) -> None:
    """Two includes of one fragment with different variables expand independently."""
    fragment = _add_fragment(registry, fragments, "ns.cols", "<sql id='cols'>${alias}.id</sql>")
    statement = parse_template(
        "<select>SELECT "
        "<include refid='cols'><property name='alias' value='a'/></include>, "
        "<include refid='cols'><property name='alias' value='b'/></include>"
        "</select>",
        fragments,
    )

    IncludeExpander(registry, "ns").expand(statement)

    assert statement.render_text() == "SELECT a.id, b.id"
    assert fragment.render_text() == "${alias}.id"


def test_duplicate_property_rejected(registry: StatementRegistry, fragments: TemplateDocument) -> None:
    """Declaring the same variable twice on one include fails before the fragment is looked up."""
    statement = parse_template(
        "<select>SELECT <include refid='missing'>"
        "<property name='x' value='1'/><property name='x' value='2'/>"
        "</include></select>",
        fragments,
    )

    with pytest.raises(BuilderError, match="Variable x defined twice in the same include definition") as exc_info:
        IncludeExpander(registry, "ns").expand(statement)

    assert type(exc_info.value) is BuilderError
    assert [child.tag for child in statement.iter_elements()] == ["include"]


def test_missing_fragment_is_incomplete(registry: StatementRegistry, fragments: TemplateDocument) -> None:
    """A fragment that is not registered yet is reported as retryable."""
    statement = parse_template("<select>SELECT <include refid='later'/></select>", fragments)

    with pytest.raises(IncompleteElementError, match="ns.later"):
        IncludeExpander(registry, "ns").expand(statement)


def test_fragment_from_other_document_is_imported(registry: StatementRegistry, fragments: TemplateDocument) -> None:
    """Nodes spliced in from a foreign document are clones owned by the destination."""
    fragment = _add_fragment(registry, fragments, "other.cols", "<sql id='cols'>id<b>, name</b></sql>")
    statements = TemplateDocument("statements")
    statement = parse_template("<select>SELECT <include refid='other.cols'/></select>", statements)

    IncludeExpander(registry, "ns").expand(statement)

    assert statement.render_text() == "SELECT id, name"
    assert all(node.owner is statements for node in _walk(statement))
    assert all(node.owner is fragments for node in _walk(fragment))


def test_refid_resolved_from_scope(registry: StatementRegistry, fragments: TemplateDocument) -> None:
    """``refid`` itself may use variables."""
    _add_fragment(registry, fragments, "ns.users_columns", "<sql id='users_columns'>id</sql>")
    statement = parse_template("<select>SELECT <include refid='${table}_columns'/></select>", fragments)

    IncludeExpander(registry, "ns", {"table": "users"}).expand(statement)

    assert statement.render_text() == "SELECT id"


def test_process_variables_seed_root_scope(registry: StatementRegistry, fragments: TemplateDocument) -> None:
    """Process-wide variables apply to statement text and attributes."""
    statement = parse_template("<select hint='${hint}'>SELECT * FROM ${table}</select>", fragments)

    IncludeExpander(registry, "ns", {"table": "users", "hint": "fast"}).expand(statement)

    assert statement.render_text() == "SELECT * FROM users"
    assert statement.get("hint") == "fast"


def test_variables_are_snapshotted(registry: StatementRegistry, fragments: TemplateDocument) -> None:
    """Later changes to the caller's mapping do not leak into the expander."""
    variables = {"table": "users"}
    expander = IncludeExpander(registry, "ns", variables)
    variables["table"] = "accounts"
    statement = parse_template("<select>SELECT * FROM ${table}</select>", fragments)

    expander.expand(statement)

    assert statement.render_text() == "SELECT * FROM users"


def test_declared_values_resolve_against_enclosing_scope(
    registry: StatementRegistry, fragments: TemplateDocument
) -> None:
    """Sibling declarations on one include do not see each other."""
    _add_fragment(registry, fragments, "ns.pair", "<sql id='pair'>${a}/${b}</sql>")
    statement = parse_template(
        "<select><include refid='pair'><property name='a' value='1'/><property name='b' value='${a}'/></include>"
        "</select>",
        fragments,
    )

    IncludeExpander(registry, "ns").expand(statement)

    assert statement.render_text() == "1/${a}"


def test_strict_parser_rejects_unresolved(registry: StatementRegistry, fragments: TemplateDocument) -> None:
    """A strict placeholder policy surfaces unresolved variables as builder errors."""
    _add_fragment(registry, fragments, "ns.cols", "<sql id='cols'>${alias}.id</sql>")
    statement = parse_template("<select>SELECT <include refid='cols'/></select>", fragments)
    expander = IncludeExpander(registry, "ns", {"unused": "x"}, PlaceholderParser(strict=True))

    with pytest.raises(BuilderError, match="alias"):
        expander.expand(statement)
