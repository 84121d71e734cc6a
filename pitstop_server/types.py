"""
Type definitions and dataclasses for PitStop Server CLI.

This module defines data structures used throughout the library.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple, Union

VariableValue = Union[str, int, float, bool]

_LEADING_NUMBER = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def leading_number(value: Any) -> Optional[float]:
    """Read the number at the start of *value*, ignoring trailing text.

    ``"3mm"`` gives ``3.0``; ``None`` is returned when *value* does not start
    with a number. Booleans are not numbers.
    """

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        number = float(value)
        return None if math.isnan(number) else number
    match = _LEADING_NUMBER.match(str(value))
    if match is None:
        return None
    return float(match.group(0))


class MeasurementUnit(str, Enum):
    """Measurement units understood by PitStop Server."""

    MILLIMETER = "Millimeter"
    CENTIMETER = "Centimeter"
    INCH = "Inch"
    POINT = "Point"

    def to_points(self, value: Any) -> float:
        """Convert *value* expressed in this unit to points.

        Only the leading number of a string is used, so ``"3mm"`` reads as
        ``3``. Values that do not start with a number convert to ``0``.
        """

        number = leading_number(value)
        if number is None:
            return 0.0
        if self is MeasurementUnit.MILLIMETER:
            points = number / 25.4 * 72
        elif self is MeasurementUnit.CENTIMETER:
            points = number / 2.54 * 72
        elif self is MeasurementUnit.INCH:
            points = number * 72
        else:
            points = number
        if math.isnan(points) or math.isinf(points):
            return 0.0
        return points

    @classmethod
    def parse(cls, value: Union[str, "MeasurementUnit"]) -> "MeasurementUnit":
        """Return the unit matching *value*, ignoring case."""

        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for unit in cls:
            if unit.value.lower() == text or unit.name.lower() == text:
                return unit
        raise ValueError(f"Unknown measurement unit: {value}")


class VariableType(str, Enum):
    """Result types of a variable in an Enfocus variable set."""

    NUMBER = "Number"
    STRING = "String"
    BOOLEAN = "Boolean"
    LENGTH = "Length"

    @classmethod
    def parse(cls, value: Union[str, "VariableType"]) -> "VariableType":
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for variable_type in cls:
            if variable_type.value.lower() == text:
                return variable_type
        raise ValueError(f"Unknown variable type: {value}")


class RunState(str, Enum):
    """Lifecycle of a single :class:`~pitstop_server.server.PitStopServer` run."""

    CONSTRUCTED = "constructed"
    CONFIG_BUILT = "config_built"
    INVOKED = "invoked"
    COMPLETED = "completed"


@dataclass(frozen=True)
class VariableEntry:
    """
    One variable of a variable set.

    Attributes:
        name: Variable name as referenced by profiles and action lists
        type: Declared result type
        value: Value to assign; lengths are given in the task's measurement unit
    """
    name: str
    type: VariableType
    value: VariableValue

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "VariableEntry":
        """Build an entry from ``{"variable": ..., "type": ..., "value": ...}``."""

        name = data.get("variable", data.get("name"))
        if not name:
            raise ValueError("A variable entry needs a 'variable' name")
        if "value" not in data:
            raise ValueError(f"The variable {name} has no value")
        return cls(
            name=str(name),
            type=VariableType.parse(data.get("type", VariableType.STRING)),
            value=data["value"],
        )


@dataclass(frozen=True)
class TaskDescriptor:
    """
    Fully resolved settings for one preflight run.

    Attributes:
        input_pdf: PDF file to process
        output_folder: Folder receiving the configuration, output PDF and reports
        output_pdf_name: File name of the processed PDF
        preflight_profile: Optional preflight profile (.ppp)
        action_lists: Action lists (.eal), applied in order
        variable_set: Optional variable set template (.evs)
        variable_set_name: File name of the variable set in the output folder
        pdf_report / xml_report / json_report / task_report: Report toggles
        pdf_report_name / xml_report_name / json_report_name / task_report_name:
            Report file names in the output folder
        config_file: Optional configuration template
        config_file_name: File name of the configuration in the output folder
        application_path: Explicit path to the CLI executable
        measurement_unit: Unit used for reports and length variables
        language: Report language code
        max_report_items_per_category: Cap for XML/JSON reports
        max_report_occurrences_per_item: Cap for XML/JSON reports
    """
    input_pdf: Path
    output_folder: Path
    output_pdf_name: str
    preflight_profile: Optional[Path] = None
    action_lists: Tuple[Path, ...] = ()
    variable_set: Optional[Path] = None
    variable_set_name: str = "variableset.evs"
    pdf_report: bool = False
    pdf_report_name: str = ""
    xml_report: bool = False
    xml_report_name: str = ""
    json_report: bool = False
    json_report_name: str = ""
    task_report: bool = False
    task_report_name: str = "taskreport.xml"
    config_file: Optional[Path] = None
    config_file_name: str = "config.xml"
    application_path: Optional[Path] = None
    measurement_unit: MeasurementUnit = MeasurementUnit.MILLIMETER
    language: str = "enUS"
    max_report_items_per_category: int = 100
    max_report_occurrences_per_item: int = 100

    @property
    def config_path(self) -> Path:
        return self.output_folder / self.config_file_name

    @property
    def variable_set_path(self) -> Path:
        return self.output_folder / self.variable_set_name

    @property
    def output_pdf_path(self) -> Path:
        return self.output_folder / self.output_pdf_name

    def report_path(self, name: str) -> Path:
        return self.output_folder / name


@dataclass(frozen=True)
class ExecutionResult:
    """
    Outcome of one invocation of the PitStop Server CLI.

    Attributes:
        command: Command line that was executed
        exit_code: Native exit code, or -1 when the process could not run
        stdout: Captured standard output
        stderr: Captured standard error, or the launch error message
    """
    command: str
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    def __str__(self) -> str:
        """String representation of the result."""
        if self.succeeded:
            return "ExecutionResult(exit_code=0)"
        return f"ExecutionResult(exit_code={self.exit_code}, stderr='{self.stderr}')"


@dataclass
class PDFInfo:
    """
    Basic information about the input PDF.

    Attributes:
        num_pages: Number of pages in the PDF
        file_size: File size in bytes
        title: PDF title metadata
        producer: PDF producer application
        is_encrypted: Whether the PDF is encrypted
    """
    num_pages: int
    file_size: int
    title: Optional[str] = None
    producer: Optional[str] = None
    is_encrypted: bool = False
