"""Validation and defaulting of PitStop Server run options."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

from .exceptions import ValidationError
from .settings import Settings
from .types import MeasurementUnit, TaskDescriptor
from .utils import require_file, require_writable_folder, resolve_path

_LOGGER = logging.getLogger("pitstop_server")

OPTION_FIELDS = (
    "input_pdf",
    "output_pdf_name",
    "output_folder",
    "preflight_profile",
    "action_lists",
    "variable_set",
    "variable_set_name",
    "pdf_report",
    "pdf_report_name",
    "xml_report",
    "xml_report_name",
    "json_report",
    "json_report_name",
    "task_report",
    "task_report_name",
    "config_file",
    "config_file_name",
    "application_path",
    "measurement_unit",
    "language",
    "max_report_items_per_category",
    "max_report_occurrences_per_item",
)

# camelCase option names accepted alongside the field names
OPTION_ALIASES = {
    "inputPDF": "input_pdf",
    "outputPDFName": "output_pdf_name",
    "outputFolder": "output_folder",
    "preflightProfile": "preflight_profile",
    "actionLists": "action_lists",
    "variableSet": "variable_set",
    "variableSetName": "variable_set_name",
    "pdfReport": "pdf_report",
    "pdfReportName": "pdf_report_name",
    "xmlReport": "xml_report",
    "xmlReportName": "xml_report_name",
    "jsonReport": "json_report",
    "jsonReportName": "json_report_name",
    "taskReport": "task_report",
    "taskReportName": "task_report_name",
    "configFile": "config_file",
    "configFileName": "config_file_name",
    "applicationPath": "application_path",
    "measurementUnit": "measurement_unit",
    "maxReportItemsPerCategory": "max_report_items_per_category",
    "maxReportOccurencesPerItem": "max_report_occurrences_per_item",
    "maxReportOccurrencesPerItem": "max_report_occurrences_per_item",
}

DebugHook = Callable[[str], None]


def normalize_options(
    options: Optional[Mapping[str, Any]] = None,
    *,
    debug: Optional[DebugHook] = None,
    **kwargs: Any,
) -> Dict[str, Any]:
    """Map every supplied option key onto exactly one field name."""

    debug = debug or _LOGGER.debug
    merged: Dict[str, Any] = {}
    for source in (options or {}, kwargs):
        for key, value in source.items():
            debug(f"Received option {key} = {value}")
            field_name = key if key in OPTION_FIELDS else OPTION_ALIASES.get(key)
            if field_name is None:
                debug(f"Unknown option {key} specified")
                continue
            if field_name in merged:
                raise ValidationError(f"The option {field_name} was specified more than once")
            merged[field_name] = value
    return merged


def resolve_task(
    options: Optional[Mapping[str, Any]] = None,
    *,
    settings: Optional[Settings] = None,
    debug: Optional[DebugHook] = None,
    **kwargs: Any,
) -> TaskDescriptor:
    """Validate *options* and fill in defaults.

    Raises:
        ValidationError: Mandatory options are missing or invalid
        FilesystemError: The input PDF or output folder is not usable
    """

    values = normalize_options(options, debug=debug, **kwargs)
    settings = settings or Settings()

    if values.get("input_pdf") is None or values.get("output_folder") is None:
        raise ValidationError(
            "The mandatory options for running PitStop Server were not correctly defined"
        )

    action_lists = values.get("action_lists") or ()
    if isinstance(action_lists, (str, Path)):
        action_lists = (action_lists,)
    if not values.get("preflight_profile") and not action_lists:
        raise ValidationError(
            "There was neither a Preflight Profile nor any Action Lists defined for running PitStop Server"
        )

    input_pdf = require_file(resolve_path(values["input_pdf"]), "input PDF")
    output_folder = require_writable_folder(resolve_path(values["output_folder"]))
    stem = input_pdf.stem

    try:
        unit = MeasurementUnit.parse(values.get("measurement_unit") or settings.measurement_unit)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc

    return TaskDescriptor(
        input_pdf=input_pdf,
        output_folder=output_folder,
        output_pdf_name=values.get("output_pdf_name") or f"{stem}.pdf",
        preflight_profile=_optional_path(values.get("preflight_profile")),
        action_lists=tuple(resolve_path(item) for item in action_lists),
        variable_set=_optional_path(values.get("variable_set")),
        variable_set_name=values.get("variable_set_name") or "variableset.evs",
        pdf_report=bool(values.get("pdf_report", False)),
        pdf_report_name=values.get("pdf_report_name") or f"{stem}_report.pdf",
        xml_report=bool(values.get("xml_report", False)),
        xml_report_name=values.get("xml_report_name") or f"{stem}.xml",
        json_report=bool(values.get("json_report", False)),
        json_report_name=values.get("json_report_name") or f"{stem}.json",
        task_report=bool(values.get("task_report", False)),
        task_report_name=values.get("task_report_name") or "taskreport.xml",
        config_file=_optional_path(values.get("config_file")),
        config_file_name=values.get("config_file_name") or "config.xml",
        application_path=_optional_path(
            values.get("application_path") or settings.application_path
        ),
        measurement_unit=unit,
        language=values.get("language") or settings.language,
        max_report_items_per_category=_positive_int(
            values.get("max_report_items_per_category", settings.max_report_items_per_category),
            "max_report_items_per_category",
        ),
        max_report_occurrences_per_item=_positive_int(
            values.get("max_report_occurrences_per_item", settings.max_report_occurrences_per_item),
            "max_report_occurrences_per_item",
        ),
    )


def _optional_path(value: Any) -> Optional[Path]:
    if value is None or value == "":
        return None
    return resolve_path(value)


def _positive_int(value: Any, name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"The option {name} must be an integer, got {value!r}") from exc
    if isinstance(value, bool) or number <= 0:
        raise ValidationError(f"The option {name} must be a positive integer, got {value!r}")
    return number


__all__ = [
    "OPTION_ALIASES",
    "OPTION_FIELDS",
    "normalize_options",
    "resolve_task",
]
