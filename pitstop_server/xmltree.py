"""Small typed document-tree layer over :mod:`xml.etree.ElementTree`.

Builders in :mod:`pitstop_server.config` and :mod:`pitstop_server.variables`
only talk to :class:`DocumentTree`, so the anchor lookups and node
insertions do not depend on a particular DOM library.
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Protocol
from xml.etree.ElementTree import (
    Element,
    ParseError,
    SubElement,
    fromstring,
    indent,
    parse,
    register_namespace,
    tostring,
)

from .exceptions import FilesystemError, StructuralError

__all__ = [
    "DocumentTree",
    "ElementTreeDocument",
    "CONFIG_NS",
    "EVS_NS",
    "XSI_NS",
]

CONFIG_NS = "http://www.enfocus.com/PitStop/24/PitStopServerCLI_Configuration.xsd"
EVS_NS = "http://www.enfocus.com/2012/EnfocusVariableSet"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"

register_namespace("cf", CONFIG_NS)
register_namespace("xsi", XSI_NS)
register_namespace("evs", EVS_NS)


class DocumentTree(Protocol):
    """Capabilities the configuration builders rely on."""

    def create_element(self, tag: str, text: str | None = None) -> Element:
        ...

    def append_child(self, parent: Element, child: Element) -> Element:
        ...

    def add_child(self, parent: Element, tag: str, text: str | None = None) -> Element:
        ...

    def replace_child(self, parent: Element, new: Element, old: Element) -> Element:
        ...

    def set_text(self, element: Element, text: str) -> None:
        ...

    def find(self, path: str, context: Element | None = None) -> Element | None:
        ...

    def find_all(self, path: str, context: Element | None = None) -> list[Element]:
        ...

    def find_text(self, path: str, context: Element | None = None) -> str:
        ...

    def require(self, path: str, context: Element | None = None) -> Element:
        ...

    def serialize(self) -> bytes:
        ...


class ElementTreeDocument:
    """:class:`DocumentTree` implementation backed by ElementTree.

    Tags and paths use the prefixes of *namespaces*, e.g. ``cf:Mutators``.
    When *default_namespace* is set the document is serialised with that
    namespace unprefixed.
    """

    def __init__(
        self,
        root: Element,
        namespaces: Mapping[str, str],
        *,
        default_namespace: str | None = None,
    ) -> None:
        self.root = root
        self.namespaces = dict(namespaces)
        self.default_namespace = default_namespace

    @classmethod
    def from_file(
        cls,
        path: Path,
        namespaces: Mapping[str, str],
        *,
        default_namespace: str | None = None,
    ) -> "ElementTreeDocument":
        try:
            root = parse(path).getroot()
        except ParseError as exc:
            raise StructuralError(f"The XML document {path} is not well-formed: {exc}") from exc
        except OSError as exc:
            raise FilesystemError(f"Could not read {path}: {exc}") from exc
        return cls(root, namespaces, default_namespace=default_namespace)

    @classmethod
    def from_string(
        cls,
        content: str | bytes,
        namespaces: Mapping[str, str],
        *,
        default_namespace: str | None = None,
    ) -> "ElementTreeDocument":
        try:
            root = fromstring(content)
        except ParseError as exc:
            raise StructuralError(f"The XML document is not well-formed: {exc}") from exc
        return cls(root, namespaces, default_namespace=default_namespace)

    # ------------------------------------------------------------------
    # Node creation and mutation
    # ------------------------------------------------------------------
    def qualify(self, tag: str) -> str:
        """Expand ``prefix:name`` into ElementTree's ``{uri}name`` form."""

        if ":" not in tag:
            return tag
        prefix, local = tag.split(":", 1)
        try:
            return f"{{{self.namespaces[prefix]}}}{local}"
        except KeyError as exc:
            raise StructuralError(f"Unknown namespace prefix in tag {tag}") from exc

    def create_element(self, tag: str, text: str | None = None) -> Element:
        element = Element(self.qualify(tag))
        if text is not None:
            element.text = text
        return element

    def append_child(self, parent: Element, child: Element) -> Element:
        parent.append(child)
        return child

    def add_child(self, parent: Element, tag: str, text: str | None = None) -> Element:
        element = SubElement(parent, self.qualify(tag))
        if text is not None:
            element.text = text
        return element

    def replace_child(self, parent: Element, new: Element, old: Element) -> Element:
        for index, child in enumerate(parent):
            if child is old:
                parent[index] = new
                return new
        raise StructuralError(f"{old.tag} is not a child of {parent.tag}")

    def set_text(self, element: Element, text: str) -> None:
        element.text = text

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def find(self, path: str, context: Element | None = None) -> Element | None:
        return (self.root if context is None else context).find(path, self.namespaces)

    def find_all(self, path: str, context: Element | None = None) -> list[Element]:
        return (self.root if context is None else context).findall(path, self.namespaces)

    def find_text(self, path: str, context: Element | None = None) -> str:
        element = self.find(path, context)
        if element is None or element.text is None:
            return ""
        return element.text.strip()

    def require(self, path: str, context: Element | None = None) -> Element:
        element = self.find(path, context)
        if element is None:
            raise StructuralError(f"Could not find <{path.lstrip('./')}> node in the XML document")
        return element

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------
    def serialize(self) -> bytes:
        indent(self.root, space="  ")
        default_namespace = self.default_namespace
        if default_namespace is not None and not _fully_qualified(self.root):
            # ElementTree cannot combine a default namespace with plain names
            default_namespace = None
        try:
            return tostring(
                self.root,
                encoding="utf-8",
                xml_declaration=True,
                default_namespace=default_namespace,
            )
        except ValueError as exc:
            raise StructuralError(f"Could not serialize the XML document: {exc}") from exc

    def write(self, path: Path) -> Path:
        try:
            path.write_bytes(self.serialize())
        except OSError as exc:
            raise FilesystemError(f"Could not write {path}: {exc}") from exc
        return path


def _fully_qualified(root: Element) -> bool:
    for element in root.iter():
        if not isinstance(element.tag, str) or not element.tag.startswith("{"):
            return False
        if any(not name.startswith("{") for name in element.attrib):
            return False
    return True
