"""XML mapper documents.

```xml
<mapper namespace="app.UserMapper">
  <sql id="columns">${alias}.id, ${alias}.name</sql>
  <select id="find_all" resultType="dict">
    SELECT <include refid="columns"><property name="alias" value="u"/></include> FROM users u
  </select>
</mapper>
```
"""

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

from sqlmapper.builder.assistant import BuilderAssistant
from sqlmapper.exceptions import BuilderError, IncompleteElementError
from sqlmapper.mapping import CommandType
from sqlmapper.template.nodes import Element, TemplateDocument
from sqlmapper.utils.logging import get_logger

if TYPE_CHECKING:
    from sqlmapper.config import Configuration

__all__ = ("STATEMENT_TAGS", "XMLMapperBuilder", "parse_template")

logger = get_logger("builder.xml")

STATEMENT_TAGS: "dict[str, CommandType]" = {
    "select": CommandType.SELECT,
    "insert": CommandType.INSERT,
    "update": CommandType.UPDATE,
    "delete": CommandType.DELETE,
}


def _convert(source: ET.Element, document: TemplateDocument) -> Element:
    element = document.create_element(source.tag, source.attrib)
    if source.text:
        element.append(source.text)
    for child in source:
        element.append(_convert(child, document))
        if child.tail:
            element.append(child.tail)
    return element


def parse_template(text: str, document: TemplateDocument) -> Element:
    """Parse an XML fragment into ``document``'s arena."""
    try:
        root = ET.fromstring(text)  # noqa: S314
    except ET.ParseError as e:
        msg = f"Error parsing mapper XML in {document!r}. Cause: {e}"
        raise BuilderError(msg) from e
    return _convert(root, document)


def _int_attribute(element: Element, name: str) -> Optional[int]:
    value = element.get(name)
    if value is None or not value.strip():
        return None
    try:
        return int(value)
    except ValueError as e:
        msg = f"Attribute {name}='{value}' on <{element.tag} id='{element.get('id')}'> is not an integer"
        raise BuilderError(msg) from e


def _bool_attribute(element: Element, name: str) -> Optional[bool]:
    value = element.get(name)
    return None if value is None else value.strip().lower() == "true"


class XMLMapperBuilder:
    """Registers the fragments and statements of ``<mapper>`` documents.

    Statements referring to fragments that are not registered yet are parked
    and retried whenever another document is parsed.
    """

    __slots__ = ("configuration", "encoding")

    def __init__(self, configuration: "Configuration", *, encoding: str = "utf-8") -> None:
        self.configuration = configuration
        self.encoding = encoding

    def parse(self, source: "Union[str, Path]", resource: Optional[str] = None) -> str:
        """Parse XML text or a file path.

        Returns:
            The mapper namespace.
        """
        if isinstance(source, Path) or not source.lstrip().startswith("<"):
            path = Path(source)
            resource = resource or str(path)
            text = path.read_text(encoding=self.encoding)
        else:
            text = source
        document = TemplateDocument(resource or "<string>")
        root = document.add_root(parse_template(text, document))
        if root.tag != "mapper":
            msg = f"Expected <mapper> root element in {document!r}, found <{root.tag}>"
            raise BuilderError(msg)
        namespace = root.get("namespace") or ""
        assistant = BuilderAssistant(self.configuration, namespace)
        registry = self.configuration.statement_registry
        snapshot = registry.snapshot()
        try:
            for fragment in root.iter_elements("sql"):
                fragment_id = fragment.get("id")
                if not fragment_id:
                    msg = f"<sql> without id in {document!r}"
                    raise BuilderError(msg)
                registry.add_fragment(assistant.qualify(fragment_id), fragment)

            for element in root.children:
                if isinstance(element, Element) and element.tag in STATEMENT_TAGS:
                    self._build_or_defer(assistant, element)

            remaining = registry.resolve_incomplete()
        except BaseException:
            registry.restore(snapshot)
            raise
        logger.debug("Parsed mapper %s (%d incomplete declarations pending)", namespace, remaining)
        return namespace

    def _build_or_defer(self, assistant: BuilderAssistant, element: Element) -> None:
        def build() -> None:
            self._build_statement(assistant, element)

        try:
            build()
        except IncompleteElementError:
            self.configuration.statement_registry.defer(assistant.qualify(element.get("id") or ""), build)

    def _build_statement(self, assistant: BuilderAssistant, element: Element) -> None:
        name = element.get("id")
        if not name:
            msg = f"<{element.tag}> without id in namespace {assistant.namespace}"
            raise BuilderError(msg)
        # expand a copy so a retry starts from the declared template
        template = element.clone()
        assistant.configuration.new_include_expander(assistant.namespace).expand(template)

        key_generator = None
        for select_key in list(template.iter_elements("selectKey")):
            template.remove(select_key)
            key_generator = assistant.add_select_key(
                name,
                assistant.new_sql_source(select_key),
                before=(select_key.get("order") or "AFTER").upper() == "BEFORE",
                result_type=select_key.get("resultType"),
                statement_kind=select_key.get("statementType"),
            )
            key_properties = select_key.get("keyProperty")
            key_columns = select_key.get("keyColumn")
            break
        else:
            key_properties = template.get("keyProperty")
            key_columns = template.get("keyColumn")

        assistant.add_statement(
            name,
            assistant.new_sql_source(template),
            STATEMENT_TAGS[element.tag],
            statement_kind=template.get("statementType"),
            timeout=_int_attribute(template, "timeout"),
            fetch_size=_int_attribute(template, "fetchSize"),
            result_type=template.get("resultType"),
            result_set_type=template.get("resultSetType"),
            use_generated_keys=_bool_attribute(template, "useGeneratedKeys"),
            key_generator=key_generator,
            key_properties=key_properties,
            key_columns=key_columns,
        )
