"""Registry of SQL fragments and mapped statements."""

from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, NamedTuple, Optional

from sqlmapper.exceptions import BindingError, BuilderError, IncompleteElementError
from sqlmapper.utils.logging import get_logger

if TYPE_CHECKING:
    from sqlmapper.mapping import MappedStatement
    from sqlmapper.template.nodes import Element

__all__ = ("RegistrySnapshot", "StatementRegistry")

logger = get_logger("registry")


class RegistrySnapshot(NamedTuple):
    statement_ids: "frozenset[str]"
    fragment_ids: "frozenset[str]"
    incomplete: "tuple[tuple[str, Callable[[], None]], ...]"


class StatementRegistry:
    """Holds ``<sql>`` fragments and mapped statements keyed by ``namespace.id``.

    Declarations whose fragments are not known yet are parked as incomplete
    and retried by :meth:`resolve_incomplete`.
    """

    __slots__ = ("_fragments", "_incomplete", "_statements")

    def __init__(self) -> None:
        self._fragments: dict[str, Element] = {}
        self._statements: dict[str, MappedStatement] = {}
        self._incomplete: list[tuple[str, Callable[[], None]]] = []

    @staticmethod
    def apply_namespace(ref: str, namespace: str) -> str:
        """Qualify ``ref`` with ``namespace`` unless it already carries one."""
        if not namespace or "." in ref:
            return ref
        return f"{namespace}.{ref}"

    def add_fragment(self, qualified_id: str, element: "Element") -> None:
        if qualified_id in self._fragments:
            msg = f"SQL fragment '{qualified_id}' is already registered"
            raise BuilderError(msg)
        self._fragments[qualified_id] = element

    def get_fragment(self, qualified_id: str) -> "Element":
        try:
            return self._fragments[qualified_id]
        except KeyError as e:
            msg = f"Could not find SQL statement to include with refid '{qualified_id}'"
            raise IncompleteElementError(msg) from e

    def has_fragment(self, qualified_id: str) -> bool:
        return qualified_id in self._fragments

    def add_statement(self, statement: "MappedStatement") -> None:
        if statement.id in self._statements:
            msg = f"Mapped statement '{statement.id}' is already registered"
            raise BuilderError(msg)
        self._statements[statement.id] = statement
        logger.debug("Registered statement %s", statement.id)

    def get_statement(self, statement_id: str) -> "MappedStatement":
        try:
            return self._statements[statement_id]
        except KeyError as e:
            msg = f"Invalid bound statement (not found): {statement_id}"
            raise BindingError(msg) from e

    def has_statement(self, statement_id: str) -> bool:
        return statement_id in self._statements

    def remove_statements(self, statement_ids: "Iterable[str]") -> None:
        for statement_id in statement_ids:
            self._statements.pop(statement_id, None)

    @property
    def statement_ids(self) -> "tuple[str, ...]":
        return tuple(self._statements)

    def snapshot(self) -> RegistrySnapshot:
        return RegistrySnapshot(frozenset(self._statements), frozenset(self._fragments), tuple(self._incomplete))

    def restore(self, snapshot: RegistrySnapshot) -> None:
        """Return to the state captured by ``snapshot``.

        Entries registered since are dropped and the incomplete queue is reset,
        so declarations built by a retry in between are pending again.
        """
        for statement_id in [sid for sid in self._statements if sid not in snapshot.statement_ids]:
            del self._statements[statement_id]
        for fragment_id in [fid for fid in self._fragments if fid not in snapshot.fragment_ids]:
            del self._fragments[fragment_id]
        self._incomplete = list(snapshot.incomplete)

    def defer(self, description: str, build: "Callable[[], None]") -> None:
        """Park a declaration that raised :class:`IncompleteElementError`."""
        logger.debug("Deferring incomplete declaration %s", description)
        self._incomplete.append((description, build))

    @property
    def incomplete(self) -> "tuple[str, ...]":
        return tuple(description for description, _ in self._incomplete)

    def resolve_incomplete(self) -> int:
        """Retry parked declarations until a pass makes no progress.

        A declaration failing with anything but :class:`IncompleteElementError` is dropped;
        the remaining declarations are still retried and the first such error is
        raised once retrying stops.

        Returns:
            Number of declarations still incomplete.
        """
        failure: Optional[Exception] = None
        progress = True
        while self._incomplete and progress:
            progress = False
            pending, self._incomplete = self._incomplete, []
            for description, build in pending:
                try:
                    build()
                except IncompleteElementError:
                    self._incomplete.append((description, build))
                except Exception as e:
                    logger.debug("Dropping incomplete declaration %s: %s", description, e)
                    if failure is None:
                        failure = e
                else:
                    progress = True
        if failure is not None:
            raise failure
        return len(self._incomplete)
