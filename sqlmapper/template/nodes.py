"""Arena-owned SQL template trees.

A :class:`TemplateDocument` owns every node created through it. Nodes never
cross documents by reference: :meth:`TemplateDocument.import_node` deep-clones
a foreign subtree into the destination arena before it can be spliced in.
"""

from collections.abc import Iterable, Iterator, Mapping
from typing import Optional, Union, overload

from sqlmapper.exceptions import BuilderError

__all__ = ("Element", "Node", "TemplateDocument", "Text")


class TemplateDocument:
    """Arena owning a forest of template nodes."""

    __slots__ = ("name", "roots")

    def __init__(self, name: str = "") -> None:
        self.name = name
        self.roots: list[Element] = []

    def __repr__(self) -> str:
        return f"TemplateDocument({self.name!r})"

    def create_element(
        self, tag: str, attributes: "Optional[Mapping[str, str]]" = None, children: "Iterable[Node]" = ()
    ) -> "Element":
        element = Element(self, tag, attributes)
        for child in children:
            element.append(child)
        return element

    def create_text(self, value: str) -> "Text":
        return Text(self, value)

    def add_root(self, element: "Element") -> "Element":
        self._check_owner(element)
        self.roots.append(element)
        return element

    @overload
    def import_node(self, node: "Element") -> "Element": ...

    @overload
    def import_node(self, node: "Text") -> "Text": ...

    @overload
    def import_node(self, node: "Node") -> "Node": ...

    def import_node(self, node: "Node") -> "Node":
        """Deep-clone ``node`` into this arena; nodes already owned here are returned as-is."""
        if node.owner is self:
            return node
        return node.clone(owner=self)

    def _check_owner(self, node: "Node") -> None:
        if node.owner is not self:
            msg = f"{node!r} belongs to {node.owner!r}, not {self!r}"
            raise BuilderError(msg)


class Node:
    __slots__ = ("owner", "parent")

    def __init__(self, owner: TemplateDocument) -> None:
        self.owner = owner
        self.parent: Optional[Element] = None

    def clone(self, owner: "Optional[TemplateDocument]" = None) -> "Node":
        raise NotImplementedError

    def render_text(self) -> str:
        raise NotImplementedError

    def replace_with(self, nodes: "Iterable[Node]") -> None:
        """Splice ``nodes`` into the parent at this node's position and detach this node."""
        parent = self.parent
        if parent is None:
            msg = f"Cannot replace detached node {self!r}"
            raise BuilderError(msg)
        nodes = list(nodes)
        for node in nodes:
            parent.owner._check_owner(node)
            if node.parent is not None:
                node.parent.remove(node)
        index = parent.children.index(self)
        parent.children[index : index + 1] = nodes
        for node in nodes:
            node.parent = parent
        self.parent = None


class Text(Node):
    __slots__ = ("value",)

    def __init__(self, owner: TemplateDocument, value: str) -> None:
        super().__init__(owner)
        self.value = value

    def __repr__(self) -> str:
        return f"Text({self.value!r})"

    def clone(self, owner: "Optional[TemplateDocument]" = None) -> "Text":
        return Text(owner or self.owner, self.value)

    def render_text(self) -> str:
        return self.value


class Element(Node):
    __slots__ = ("attributes", "children", "tag")

    def __init__(self, owner: TemplateDocument, tag: str, attributes: "Optional[Mapping[str, str]]" = None) -> None:
        super().__init__(owner)
        self.tag = tag
        self.attributes: dict[str, str] = dict(attributes or {})
        self.children: list[Node] = []

    def __repr__(self) -> str:
        return f"Element({self.tag!r}, {self.attributes!r})"

    def append(self, node: "Union[Node, str]") -> "Node":
        if isinstance(node, str):
            node = Text(self.owner, node)
        self.owner._check_owner(node)
        if node.parent is not None:
            node.parent.remove(node)
        node.parent = self
        self.children.append(node)
        return node

    def remove(self, node: Node) -> None:
        self.children.remove(node)
        node.parent = None

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.attributes.get(name, default)

    def iter_elements(self, tag: Optional[str] = None) -> "Iterator[Element]":
        """Yield direct child elements, optionally filtered by tag."""
        for child in self.children:
            if isinstance(child, Element) and (tag is None or child.tag == tag):
                yield child

    def clone(self, owner: "Optional[TemplateDocument]" = None) -> "Element":
        copy = Element(owner or self.owner, self.tag, self.attributes)
        for child in self.children:
            cloned = child.clone(copy.owner)
            cloned.parent = copy
            copy.children.append(cloned)
        return copy

    def render_text(self) -> str:
        return "".join(child.render_text() for child in self.children)
