from sqlmapper.template.nodes import Element, Node, TemplateDocument, Text
from sqlmapper.template.placeholders import PlaceholderParser, substitute

__all__ = ("Element", "Node", "PlaceholderParser", "TemplateDocument", "Text", "substitute")
