"""Tests for template trees and ``${}`` placeholders."""

import pytest

from sqlmapper.builder.xml import parse_template
from sqlmapper.exceptions import BuilderError
from sqlmapper.template import Element, PlaceholderParser, TemplateDocument, Text, substitute


def test_create_nodes_belong_to_document() -> None:
    """Nodes created through a document are owned by it."""
    document = TemplateDocument("doc")
    element = document.create_element("select", {"id": "q"}, [document.create_text("SELECT 1")])

    assert element.owner is document
    assert element.children[0].owner is document
    assert element.children[0].parent is element
    assert element.render_text() == "SELECT 1"


def test_append_string_creates_text() -> None:
    """Appending a string wraps it in a Text node."""
    document = TemplateDocument()
    element = document.create_element("sql")
    node = element.append("a, b")

    assert isinstance(node, Text)
    assert node.value == "a, b"


def test_append_foreign_node_rejected() -> None:
    """Nodes never cross documents by reference."""
    first = TemplateDocument("first")
    second = TemplateDocument("second")
    element = first.create_element("sql")

    with pytest.raises(BuilderError):
        element.append(second.create_text("x"))


def test_import_node_clones_into_document() -> None:
    """Importing deep-copies the subtree into the destination arena."""
    source = TemplateDocument("source")
    target = TemplateDocument("target")
    fragment = parse_template("<sql id='f'>a<b>c</b>d</sql>", source)

    imported = target.import_node(fragment)

    assert imported is not fragment
    assert isinstance(imported, Element)
    assert imported.render_text() == "acd"
    assert all(child.owner is target for child in imported.children)
    assert fragment.owner is source


def test_clone_is_independent() -> None:
    """Mutating a clone leaves the original untouched."""
    document = TemplateDocument()
    original = parse_template("<sql>${alias}.id</sql>", document)
    copy = original.clone()
    text = copy.children[0]
    assert isinstance(text, Text)

    text.value = "u.id"

    assert original.render_text() == "${alias}.id"
    assert copy.owner is document


def test_replace_with_splices_in_place() -> None:
    """replace_with puts the new nodes exactly where the old one was."""
    document = TemplateDocument()
    root = parse_template("<select>A<include refid='x'/>C</select>", document)
    include = root.children[1]

    include.replace_with([document.create_text("B1"), document.create_text("B2")])

    assert root.render_text() == "AB1B2C"
    assert include.parent is None


def test_placeholder_lenient_leaves_unknown() -> None:
    """Unresolved placeholders stay literal by default."""
    assert substitute("${a} and ${b}", {"a": "1"}) == "1 and ${b}"


def test_placeholder_strict_raises() -> None:
    """Strict parsing rejects unresolved placeholders."""
    parser = PlaceholderParser(strict=True)

    with pytest.raises(BuilderError, match="b"):
        parser.parse("${a} and ${b}", {"a": "1"})


def test_placeholder_default_values() -> None:
    """``${name:fallback}`` uses the fallback when enabled."""
    parser = PlaceholderParser(enable_default_values=True)

    assert parser.parse("${alias:t}.id", {}) == "t.id"
    assert parser.parse("${alias:t}.id", {"alias": "u"}) == "u.id"


def test_placeholder_ignores_parameter_markers() -> None:
    """``#{}`` markers are not variables."""
    assert substitute("id = #{id} AND t = '${t}'", {"t": "x", "id": "boom"}) == "id = #{id} AND t = 'x'"
