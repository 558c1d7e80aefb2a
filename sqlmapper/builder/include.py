"""Recursive ``<include>`` expansion for SQL template trees."""

from collections.abc import Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Optional

from sqlmapper.exceptions import BuilderError
from sqlmapper.template.nodes import Element, Node, Text
from sqlmapper.template.placeholders import PlaceholderParser
from sqlmapper.utils.logging import get_logger

if TYPE_CHECKING:
    from sqlmapper.registry import StatementRegistry

__all__ = ("INCLUDE_TAG", "PROPERTY_TAG", "IncludeExpander")

logger = get_logger("builder.include")

INCLUDE_TAG = "include"
PROPERTY_TAG = "property"


class IncludeExpander:
    """Replaces every ``<include refid="...">`` in a tree with the referenced fragment.

    Each include gets its own variable scope: the enclosing scope overridden by
    the ``<property name value>`` children declared on the include. Declared
    values are resolved against the enclosing scope only, so sibling
    declarations never see each other.

    Args:
        registry: Source of ``<sql>`` fragments.
        namespace: Namespace applied to unqualified ``refid`` values.
        variables: Process-wide variables seeding the root scope.
        placeholder_parser: Substitution policy for ``${name}`` tokens.
    """

    __slots__ = ("namespace", "placeholder_parser", "registry", "variables")

    def __init__(
        self,
        registry: "StatementRegistry",
        namespace: str = "",
        variables: "Optional[Mapping[str, str]]" = None,
        placeholder_parser: "Optional[PlaceholderParser]" = None,
    ) -> None:
        self.registry = registry
        self.namespace = namespace
        self.variables: Mapping[str, str] = MappingProxyType(dict(variables or {}))
        self.placeholder_parser = placeholder_parser or PlaceholderParser()

    def expand(self, root: Element) -> None:
        """Expand all includes below ``root`` in place.

        Raises:
            IncompleteElementError: A referenced fragment is not registered yet.
            BuilderError: An include declares the same variable twice.
        """
        self._apply(root, dict(self.variables))

    def _apply(self, node: Node, scope: "dict[str, str]") -> None:
        if isinstance(node, Element):
            if node.tag == INCLUDE_TAG:
                self._apply_include(node, scope)
                return
            if scope:
                for name, value in node.attributes.items():
                    node.attributes[name] = self._substitute(value, scope)
            for child in list(node.children):
                self._apply(child, scope)
        elif isinstance(node, Text) and scope:
            node.value = self._substitute(node.value, scope)

    def _apply_include(self, include: Element, scope: "dict[str, str]") -> None:
        raw_refid = include.get("refid")
        if not raw_refid:
            msg = f"<include> without refid in {include.owner!r}"
            raise BuilderError(msg)
        declared = self._declared_variables(include, scope)
        refid = self._substitute(raw_refid, scope)
        fragment = self._find_fragment(refid)
        child_scope = {**scope, **declared} if declared else scope
        logger.debug("Including fragment %s with scope %s", refid, child_scope)
        self._apply(fragment, child_scope)
        if fragment.owner is not include.owner:
            fragment = include.owner.import_node(fragment)
        include.replace_with(list(fragment.children))

    def _find_fragment(self, refid: str) -> Element:
        qualified = self.registry.apply_namespace(refid, self.namespace)
        # fresh copy per call site
        return self.registry.get_fragment(qualified).clone()

    def _declared_variables(self, include: Element, inherited: "dict[str, str]") -> "dict[str, str]":
        declared: dict[str, str] = {}
        for prop in include.iter_elements(PROPERTY_TAG):
            name = prop.get("name")
            if name is None:
                msg = f"<property> without name inside include '{include.get('refid')}'"
                raise BuilderError(msg)
            if name in declared:
                msg = f"Variable {name} defined twice in the same include definition"
                raise BuilderError(msg)
            declared[name] = self._substitute(prop.get("value", ""), inherited)
        return declared

    def _substitute(self, text: Optional[str], scope: "Mapping[str, str]") -> str:
        return self.placeholder_parser.parse(text, scope) or ""
