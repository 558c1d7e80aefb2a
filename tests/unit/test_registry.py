"""Tests for the statement registry."""

from collections.abc import Callable

import pytest

from sqlmapper.builder.xml import parse_template
from sqlmapper.exceptions import BindingError, BuilderError, IncompleteElementError
from sqlmapper.mapping import CommandType, MappedStatement, SqlSource
from sqlmapper.registry import StatementRegistry
from sqlmapper.template import TemplateDocument


def _statement(statement_id: str) -> MappedStatement:
    return MappedStatement(statement_id, SqlSource("SELECT 1"), CommandType.SELECT)


@pytest.mark.parametrize(
    ("ref", "namespace", "expected"),
    [("find", "app.Users", "app.Users.find"), ("other.find", "app.Users", "other.find"), ("find", "", "find")],
)
def test_apply_namespace(ref: str, namespace: str, expected: str) -> None:
    assert StatementRegistry.apply_namespace(ref, namespace) == expected


def test_duplicate_statement_rejected() -> None:
    registry = StatementRegistry()
    registry.add_statement(_statement("ns.q"))

    with pytest.raises(BuilderError, match="ns.q"):
        registry.add_statement(_statement("ns.q"))


def test_missing_statement_is_binding_error() -> None:
    with pytest.raises(BindingError, match="Invalid bound statement"):
        StatementRegistry().get_statement("ns.nope")


def test_missing_fragment_is_incomplete() -> None:
    with pytest.raises(IncompleteElementError):
        StatementRegistry().get_fragment("ns.nope")


def test_resolve_incomplete_retries_until_no_progress() -> None:
    """Deferred builds are retried across passes; unresolvable ones stay queued."""
    registry = StatementRegistry()
    document = TemplateDocument()
    attempts: list[str] = []

    def needs(fragment_id: str, statement_id: str) -> "Callable[[], None]":
        def build() -> None:
            attempts.append(statement_id)
            registry.get_fragment(fragment_id)
            registry.add_statement(_statement(statement_id))
            if statement_id == "ns.first":
                registry.add_fragment("ns.unlocked", parse_template("<sql>x</sql>", document))

        return build

    # queued in an order that needs two passes
    registry.defer("ns.second", needs("ns.unlocked", "ns.second"))
    registry.defer("ns.first", needs("ns.base", "ns.first"))
    registry.defer("ns.never", needs("ns.absent", "ns.never"))
    registry.add_fragment("ns.base", parse_template("<sql>y</sql>", document))

    remaining = registry.resolve_incomplete()

    assert remaining == 1
    assert registry.incomplete == ("ns.never",)
    assert registry.has_statement("ns.first")
    assert registry.has_statement("ns.second")
    assert attempts.count("ns.second") == 2


def test_snapshot_restore_drops_later_entries() -> None:
    registry = StatementRegistry()
    registry.add_statement(_statement("ns.kept"))
    snapshot = registry.snapshot()

    registry.add_statement(_statement("ns.added"))
    registry.add_fragment("ns.frag", parse_template("<sql>z</sql>", TemplateDocument()))
    registry.restore(snapshot)

    assert registry.statement_ids == ("ns.kept",)
    assert not registry.has_fragment("ns.frag")


def test_restore_requeues_declarations_built_since_snapshot() -> None:
    registry = StatementRegistry()
    registry.defer("ns.pending", lambda: registry.add_statement(_statement("ns.pending")))
    snapshot = registry.snapshot()

    registry.resolve_incomplete()
    assert registry.has_statement("ns.pending")
    registry.defer("ns.later", lambda: None)
    registry.restore(snapshot)

    assert not registry.has_statement("ns.pending")
    assert registry.incomplete == ("ns.pending",)


def test_resolve_incomplete_continues_past_failing_declaration() -> None:
    """A declaration that fails for good does not cost later declarations their turn."""
    registry = StatementRegistry()
    built: list[str] = []

    def broken() -> None:
        msg = "Invalid timeout attribute"
        raise BuilderError(msg)

    registry.defer("ns.bad", broken)
    registry.defer("ns.good", lambda: built.append("ns.good"))

    with pytest.raises(BuilderError, match="Invalid timeout"):
        registry.resolve_incomplete()

    assert built == ["ns.good"]
    assert registry.incomplete == ()
