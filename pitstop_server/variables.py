"""Builder and updater for Enfocus variable sets (.evs)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Iterable, List, Mapping, Optional, Union
from xml.etree.ElementTree import Element

from .exceptions import NotFoundError, ValidationError
from .types import MeasurementUnit, VariableEntry, VariableType, leading_number
from .utils import format_value
from .xmltree import EVS_NS, DocumentTree, ElementTreeDocument

_LOGGER = logging.getLogger("pitstop_server")

NAMESPACES = {"evs": EVS_NS}
SOURCE_TYPE = "com.enfocus.variabletype.inline"
OPERATOR_TYPE = "com.enfocus.operator.constant"
DEFAULT_UNIT_MARKER = "mm"

EntryLike = Union[VariableEntry, Mapping[str, Any]]
DebugHook = Callable[[str], None]


def coerce_entries(entries: Iterable[EntryLike]) -> List[VariableEntry]:
    """Accept :class:`VariableEntry` objects or plain mappings."""

    coerced: List[VariableEntry] = []
    for entry in entries:
        if isinstance(entry, VariableEntry):
            coerced.append(entry)
            continue
        try:
            coerced.append(VariableEntry.from_mapping(entry))
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
    return coerced


def stored_value(
    entry: VariableEntry,
    unit: MeasurementUnit,
    value_type: Optional[VariableType] = None,
    debug: Optional[DebugHook] = None,
) -> str:
    """Return the text stored for *entry*; lengths are converted to points."""

    debug = debug or _LOGGER.debug
    if (value_type or entry.type) is not VariableType.LENGTH:
        return format_value(entry.value)
    debug(f"Converting value of {entry.name} ({entry.value}) from {unit.value} to points")
    points = unit.to_points(entry.value)
    if leading_number(entry.value) is None:
        debug(f"The value of {entry.name} was not a number, it is set to 0")
    return format_value(points)


def build_variable_set(
    entries: Iterable[EntryLike],
    unit: MeasurementUnit,
    *,
    debug: Optional[DebugHook] = None,
) -> ElementTreeDocument:
    """Create a variable set with one Variable/Operator pair per entry."""

    document = ElementTreeDocument(
        Element(f"{{{EVS_NS}}}VariableSet"),
        NAMESPACES,
        default_namespace=EVS_NS,
    )
    root = document.root
    document.add_child(root, "evs:Version", "1")
    document.add_child(root, "evs:Name", "variableset")
    variables = document.add_child(root, "evs:Variables")
    operators = document.add_child(root, "evs:Operators")

    for index, entry in enumerate(coerce_entries(entries), start=1):
        variable = document.add_child(variables, "evs:Variable")
        document.add_child(variable, "evs:Name", entry.name)
        document.add_child(variable, "evs:ResultType", entry.type.value)
        document.add_child(variable, "evs:SourceType", SOURCE_TYPE)
        document.add_child(variable, "evs:SourceVersion", "1")
        document.add_child(variable, "evs:OperatorID", str(index))

        operator = document.add_child(operators, "evs:Operator")
        document.add_child(operator, "evs:OperatorType", OPERATOR_TYPE)
        document.add_child(operator, "evs:GUID", str(index))
        data = document.add_child(operator, "evs:OperatorData")
        document.add_child(data, "evs:Value", stored_value(entry, unit, debug=debug))
        # ValueType is always String, whatever the variable's result type
        document.add_child(data, "evs:ValueType", "String")
        document.add_child(operator, "evs:OperatorVersion", "1")
    return document


class VariableSetUpdater:
    """Replaces values of named variables in an existing variable set."""

    def __init__(
        self,
        document: DocumentTree,
        unit: MeasurementUnit,
        *,
        debug: Optional[DebugHook] = None,
    ) -> None:
        self.document = document
        self.unit = unit
        self._debug = debug or _LOGGER.debug

    def find_variable(self, name: str) -> Element:
        for variable in self.document.find_all("evs:Variables/evs:Variable"):
            if self.document.find_text("evs:Name", variable) == name:
                return variable
        raise NotFoundError(f"The variable {name} is not present in the variable set")

    def find_value(self, name: str, variable: Element) -> Element:
        operator_id = self.document.find_text("evs:OperatorID", variable)
        if not operator_id:
            raise NotFoundError(f"The variable {name} has no OperatorID in the variable set")
        for operator in self.document.find_all("evs:Operators/evs:Operator"):
            if self.document.find_text("evs:GUID", operator) == operator_id:
                value = self.document.find("evs:OperatorData/evs:Value", operator)
                if value is not None:
                    return value
        raise NotFoundError(f"Error finding a value for variable {name} in the variable set")

    def update(self, entries: Iterable[EntryLike]) -> DocumentTree:
        # Resolve every target first so a failure leaves the document untouched
        planned = []
        for entry in coerce_entries(entries):
            variable = self.find_variable(entry.name)
            planned.append((entry, variable, self.find_value(entry.name, variable)))

        for entry, variable, value_node in planned:
            result_type = self.document.find_text("evs:ResultType", variable)
            if result_type == VariableType.LENGTH.value:
                self._set_default_unit(variable)
                text = stored_value(entry, self.unit, VariableType.LENGTH, debug=self._debug)
            else:
                text = format_value(entry.value)
            self.document.set_text(value_node, text)
        return self.document

    def _set_default_unit(self, variable: Element) -> None:
        unit_node = self.document.find("evs:DefaultUnit", variable)
        if unit_node is None:
            self.document.add_child(variable, "evs:DefaultUnit", DEFAULT_UNIT_MARKER)
        else:
            self.document.set_text(unit_node, DEFAULT_UNIT_MARKER)


def create_variable_set_file(
    path: Path,
    entries: Iterable[EntryLike],
    unit: MeasurementUnit,
    *,
    debug: Optional[DebugHook] = None,
) -> Path:
    """Write a fresh variable set to *path*."""

    return build_variable_set(entries, unit, debug=debug).write(path)


def update_variable_set_file(
    path: Path,
    entries: Iterable[EntryLike],
    unit: MeasurementUnit,
    *,
    debug: Optional[DebugHook] = None,
) -> Path:
    """Update the variable set at *path* in place."""

    document = ElementTreeDocument.from_file(path, NAMESPACES, default_namespace=EVS_NS)
    VariableSetUpdater(document, unit, debug=debug).update(entries)
    return document.write(path)
