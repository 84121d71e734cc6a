"""Configuration document builder for the PitStop Server CLI."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Callable, Optional

from .exceptions import FilesystemError
from .types import TaskDescriptor
from .utils import require_file
from .xmltree import CONFIG_NS, DocumentTree, ElementTreeDocument, XSI_NS

_LOGGER = logging.getLogger("pitstop_server")

NAMESPACES = {"cf": CONFIG_NS, "xsi": XSI_NS}
XML_REPORT_VERSION = "3"

BLANK_CONFIG = f"""<?xml version="1.0" encoding="utf-8"?>
<cf:Configuration xmlns:xsi="{XSI_NS}" xmlns:cf="{CONFIG_NS}">
  <cf:Versioning>
    <cf:Version>11</cf:Version>
    <cf:VersioningStrategy>MustHonor</cf:VersioningStrategy>
  </cf:Versioning>
  <cf:Initialize>
    <cf:ProcessingMethod>EnforceServer</cf:ProcessingMethod>
    <cf:ShutDownServerAtExit>false</cf:ShutDownServerAtExit>
  </cf:Initialize>
  <cf:TaskReport>
    <cf:LogProcessResults>true</cf:LogProcessResults>
    <cf:LogErrors>true</cf:LogErrors>
  </cf:TaskReport>
  <cf:Process>
    <cf:InputPDF>
      <cf:InputPath></cf:InputPath>
    </cf:InputPDF>
    <cf:OutputPDF>
      <cf:OutputPath></cf:OutputPath>
    </cf:OutputPDF>
    <cf:Mutators>
    </cf:Mutators>
    <cf:Reports>
    </cf:Reports>
    <cf:MeasurementUnit></cf:MeasurementUnit>
    <cf:Language></cf:Language>
  </cf:Process>
</cf:Configuration>
"""


def write_starting_config(task: TaskDescriptor) -> Path:
    """Put the blank configuration or a copy of the template in the output folder."""

    destination = task.config_path
    try:
        if task.config_file is None:
            _LOGGER.debug("Saving basic configuration file %s", destination)
            destination.write_text(BLANK_CONFIG, encoding="utf-8")
        else:
            source = require_file(task.config_file, "configuration file")
            _LOGGER.debug("Using template configuration file %s", source)
            if source != destination:
                shutil.copyfile(source, destination)
    except OSError as exc:
        raise FilesystemError(f"Could not write the configuration file {destination}: {exc}") from exc
    return destination


class ConfigBuilder:
    """Injects the settings of a :class:`TaskDescriptor` into a configuration tree.

    Every method looks up its anchor element first and raises
    :class:`~pitstop_server.exceptions.StructuralError` when it is missing.
    """

    def __init__(
        self,
        document: DocumentTree,
        task: TaskDescriptor,
        *,
        debug: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.document = document
        self.task = task
        self._debug = debug or _LOGGER.debug

    def build(self, variable_set: Optional[Path] = None) -> DocumentTree:
        self.set_input()
        self.set_output()
        self.add_mutators()
        self.add_reports()
        if variable_set is not None:
            self.set_variable_set(variable_set)
        self.set_leaf("cf:MeasurementUnit", self.task.measurement_unit.value, "measurement unit")
        self.set_leaf("cf:Language", self.task.language, "language")
        return self.document

    def set_input(self) -> None:
        input_pdf = require_file(self.task.input_pdf, "input PDF")
        self._debug(f"Adding the input file {input_pdf} to the configuration file")
        node = self.document.require(".//cf:InputPath")
        self.document.set_text(node, str(input_pdf))

    def set_output(self) -> None:
        if not self.task.output_folder.is_dir():
            raise FilesystemError(f"The output folder {self.task.output_folder} does not exist")
        node = self.document.require(".//cf:OutputPath")
        self.document.set_text(node, str(self.task.output_pdf_path))

    def add_mutators(self) -> None:
        task = self.task
        if task.preflight_profile is None and not task.action_lists:
            return
        mutators = self.document.require(".//cf:Mutators")
        if task.preflight_profile is not None:
            profile = require_file(task.preflight_profile, "Preflight Profile")
            self._debug(f"Adding preflight profile {profile}")
            self.document.add_child(mutators, "cf:PreflightProfile", str(profile))
        for action_list in task.action_lists:
            require_file(action_list, "Action List")
            self._debug(f"Adding action list {action_list}")
            self.document.add_child(mutators, "cf:ActionList", str(action_list))

    def add_reports(self) -> None:
        task = self.task
        if task.xml_report:
            self._debug("Defining an XML report")
            report = self._new_report("cf:ReportXML", task.xml_report_name)
            self.document.add_child(report, "cf:Version", XML_REPORT_VERSION)
            self._add_report_caps(report)
        if task.json_report:
            self._debug("Defining a JSON report")
            report = self._new_report("cf:ReportJSON", task.json_report_name)
            self._add_report_caps(report)
        if task.pdf_report:
            self._debug("Defining a PDF report")
            self._new_report("cf:ReportPDF", task.pdf_report_name)
        if task.task_report:
            self._debug("Defining a task report")
            task_report = self.document.require(".//cf:TaskReport")
            self.document.add_child(
                task_report,
                "cf:TaskReportPath",
                str(task.report_path(task.task_report_name)),
            )

    def set_variable_set(self, variable_set: Path) -> None:
        require_file(variable_set, "Variable Set")
        self._debug(f"Adding the variable set {variable_set}")
        process = self.document.require(".//cf:Process")
        existing = self.document.find("cf:SmartPreflight/cf:VariableSet", process)
        if existing is not None:
            smart_preflight = self.document.require("cf:SmartPreflight", process)
            replacement = self.document.create_element("cf:VariableSet", str(variable_set))
            self.document.replace_child(smart_preflight, replacement, existing)
            return
        smart_preflight = self.document.find("cf:SmartPreflight", process)
        if smart_preflight is None:
            smart_preflight = self.document.add_child(process, "cf:SmartPreflight")
        self.document.add_child(smart_preflight, "cf:VariableSet", str(variable_set))

    def set_leaf(self, path: str, value: str, label: str) -> None:
        node = self.document.find(f".//{path}")
        if node is None:
            self._debug(
                f"The configuration file does not contain a node for the {label}. "
                "The default will be used."
            )
            return
        self.document.set_text(node, value)

    def _new_report(self, tag: str, name: str):
        reports = self.document.require(".//cf:Reports")
        report = self.document.add_child(reports, tag)
        self.document.add_child(report, "cf:ReportPath", str(self.task.report_path(name)))
        return report

    def _add_report_caps(self, report) -> None:
        self.document.add_child(
            report,
            "cf:MaxReportedNbItemsPerCategory",
            str(self.task.max_report_items_per_category),
        )
        self.document.add_child(
            report,
            "cf:MaxReportedNbOccurrencesPerItem",
            str(self.task.max_report_occurrences_per_item),
        )


def build_config(
    task: TaskDescriptor,
    variable_set: Optional[Path] = None,
    *,
    debug: Optional[Callable[[str], None]] = None,
) -> Path:
    """Update the configuration in the output folder with all task settings."""

    path = task.config_path
    document = ElementTreeDocument.from_file(path, NAMESPACES)
    ConfigBuilder(document, task, debug=debug).build(variable_set)
    (debug or _LOGGER.debug)(f"Saving the final configuration file {path}")
    document.write(path)
    return path
