from __future__ import annotations

from pathlib import Path
from xml.etree import ElementTree

import pytest

from pitstop_server.config import BLANK_CONFIG, NAMESPACES, build_config, write_starting_config
from pitstop_server.exceptions import FilesystemError, StructuralError
from pitstop_server.options import resolve_task
from pitstop_server.xmltree import ElementTreeDocument

NS = NAMESPACES


def _load(path: Path) -> ElementTree.Element:
    return ElementTree.parse(path).getroot()


def _texts(root: ElementTree.Element, path: str) -> list[str]:
    return [element.text or "" for element in root.findall(path, NS)]


def test_blank_config_is_written_at_start(sample_pdf: Path, output_dir: Path, profile: Path) -> None:
    task = resolve_task(input_pdf=sample_pdf, output_folder=output_dir, preflight_profile=profile)
    path = write_starting_config(task)

    assert path == output_dir.resolve() / "config.xml"
    root = _load(path)
    assert root.find("cf:Process/cf:Mutators", NS) is not None
    assert root.find("cf:Versioning/cf:Version", NS).text == "11"


def test_build_injects_paths_mutators_and_leaves(
    sample_pdf: Path, output_dir: Path, profile: Path, action_lists: list[Path]
) -> None:
    task = resolve_task(
        input_pdf=sample_pdf,
        output_folder=output_dir,
        preflight_profile=profile,
        action_lists=action_lists,
        measurement_unit="Inch",
        language="deDE",
    )
    write_starting_config(task)
    root = _load(build_config(task))

    assert _texts(root, ".//cf:InputPath") == [str(sample_pdf.resolve())]
    assert _texts(root, ".//cf:OutputPath") == [str(output_dir.resolve() / "brochure.pdf")]
    assert _texts(root, ".//cf:Mutators/cf:PreflightProfile") == [str(profile.resolve())]
    assert _texts(root, ".//cf:Mutators/cf:ActionList") == [str(path.resolve()) for path in action_lists]
    assert _texts(root, ".//cf:MeasurementUnit") == ["Inch"]
    assert _texts(root, ".//cf:Language") == ["deDE"]
    assert root.find(".//cf:Reports/*", NS) is None
    assert root.find(".//cf:SmartPreflight", NS) is None


def test_build_adds_requested_reports(sample_pdf: Path, output_dir: Path, profile: Path) -> None:
    task = resolve_task(
        input_pdf=sample_pdf,
        output_folder=output_dir,
        preflight_profile=profile,
        pdf_report=True,
        xml_report=True,
        json_report=True,
        task_report=True,
        max_report_items_per_category=10,
        max_report_occurrences_per_item=20,
    )
    write_starting_config(task)
    root = _load(build_config(task))

    reports = root.find(".//cf:Reports", NS)
    tags = [child.tag.split("}")[1] for child in reports]
    assert tags == ["ReportXML", "ReportJSON", "ReportPDF"]

    xml_report = reports.find("cf:ReportXML", NS)
    assert xml_report.find("cf:ReportPath", NS).text == str(output_dir.resolve() / "brochure.xml")
    assert xml_report.find("cf:Version", NS).text == "3"
    assert xml_report.find("cf:MaxReportedNbItemsPerCategory", NS).text == "10"
    assert xml_report.find("cf:MaxReportedNbOccurrencesPerItem", NS).text == "20"

    json_report = reports.find("cf:ReportJSON", NS)
    assert json_report.find("cf:ReportPath", NS).text == str(output_dir.resolve() / "brochure.json")
    assert json_report.find("cf:Version", NS) is None
    assert json_report.find("cf:MaxReportedNbItemsPerCategory", NS).text == "10"

    pdf_report = reports.find("cf:ReportPDF", NS)
    assert pdf_report.find("cf:ReportPath", NS).text == str(output_dir.resolve() / "brochure_report.pdf")

    assert _texts(root, ".//cf:TaskReport/cf:TaskReportPath") == [
        str(output_dir.resolve() / "taskreport.xml")
    ]


def test_build_adds_variable_set_reference(sample_pdf: Path, output_dir: Path, profile: Path) -> None:
    task = resolve_task(input_pdf=sample_pdf, output_folder=output_dir, preflight_profile=profile)
    write_starting_config(task)
    variable_set = task.variable_set_path
    variable_set.write_text("<VariableSet/>")

    root = _load(build_config(task, variable_set))

    assert _texts(root, "cf:Process/cf:SmartPreflight/cf:VariableSet") == [str(variable_set)]


def test_build_replaces_existing_variable_set_reference(
    tmp_path: Path, sample_pdf: Path, output_dir: Path, profile: Path
) -> None:
    template = tmp_path / "template.xml"
    template.write_text(
        BLANK_CONFIG.replace(
            "<cf:Language></cf:Language>",
            "<cf:Language>frFR</cf:Language>\n"
            "    <cf:SmartPreflight><cf:VariableSet>/old/set.evs</cf:VariableSet></cf:SmartPreflight>",
        ),
        encoding="utf-8",
    )
    task = resolve_task(
        input_pdf=sample_pdf,
        output_folder=output_dir,
        preflight_profile=profile,
        config_file=template,
    )
    write_starting_config(task)
    variable_set = task.variable_set_path
    variable_set.write_text("<VariableSet/>")

    root = _load(build_config(task, variable_set))

    assert _texts(root, ".//cf:SmartPreflight/cf:VariableSet") == [str(variable_set)]
    assert len(root.findall(".//cf:SmartPreflight", NS)) == 1
    assert _texts(root, ".//cf:Language") == ["enUS"]


def test_template_is_copied_verbatim(tmp_path: Path, sample_pdf: Path, output_dir: Path, profile: Path) -> None:
    template = tmp_path / "template.xml"
    template.write_text(BLANK_CONFIG.replace("MustHonor", "MayIgnore"), encoding="utf-8")
    task = resolve_task(
        input_pdf=sample_pdf,
        output_folder=output_dir,
        preflight_profile=profile,
        config_file=template,
        config_file_name="task.xml",
    )

    path = write_starting_config(task)

    assert path.name == "task.xml"
    assert path.read_text(encoding="utf-8") == template.read_text(encoding="utf-8")


def test_missing_template(tmp_path: Path, sample_pdf: Path, output_dir: Path, profile: Path) -> None:
    task = resolve_task(
        input_pdf=sample_pdf,
        output_folder=output_dir,
        preflight_profile=profile,
        config_file=tmp_path / "missing.xml",
    )
    with pytest.raises(FilesystemError):
        write_starting_config(task)


def test_template_without_mutators_is_structural_error(
    tmp_path: Path, sample_pdf: Path, output_dir: Path, profile: Path
) -> None:
    template = tmp_path / "template.xml"
    template.write_text(BLANK_CONFIG.replace("<cf:Mutators>\n    </cf:Mutators>", ""), encoding="utf-8")
    task = resolve_task(
        input_pdf=sample_pdf,
        output_folder=output_dir,
        preflight_profile=profile,
        config_file=template,
    )
    write_starting_config(task)

    with pytest.raises(StructuralError, match="Mutators"):
        build_config(task)


def test_template_without_reports_only_fails_when_reports_requested(
    tmp_path: Path, sample_pdf: Path, output_dir: Path, profile: Path
) -> None:
    template = tmp_path / "template.xml"
    template.write_text(BLANK_CONFIG.replace("<cf:Reports>\n    </cf:Reports>", ""), encoding="utf-8")
    options = dict(input_pdf=sample_pdf, output_folder=output_dir, preflight_profile=profile, config_file=template)

    task = resolve_task(**options)
    write_starting_config(task)
    build_config(task)

    task = resolve_task(**options, xml_report=True)
    write_starting_config(task)
    with pytest.raises(StructuralError, match="Reports"):
        build_config(task)


def test_missing_language_node_uses_default(
    tmp_path: Path, sample_pdf: Path, output_dir: Path, profile: Path
) -> None:
    template = tmp_path / "template.xml"
    template.write_text(BLANK_CONFIG.replace("<cf:Language></cf:Language>", ""), encoding="utf-8")
    task = resolve_task(
        input_pdf=sample_pdf, output_folder=output_dir, preflight_profile=profile, config_file=template
    )
    write_starting_config(task)
    messages: list[str] = []

    root = _load(build_config(task, debug=messages.append))

    assert root.find(".//cf:Language", NS) is None
    assert any("node for the language" in message for message in messages)


def test_malformed_template(tmp_path: Path, sample_pdf: Path, output_dir: Path, profile: Path) -> None:
    template = tmp_path / "template.xml"
    template.write_text("<cf:Configuration", encoding="utf-8")
    task = resolve_task(
        input_pdf=sample_pdf, output_folder=output_dir, preflight_profile=profile, config_file=template
    )
    write_starting_config(task)

    with pytest.raises(StructuralError):
        build_config(task)


def test_missing_action_list(tmp_path: Path, sample_pdf: Path, output_dir: Path) -> None:
    task = resolve_task(
        input_pdf=sample_pdf, output_folder=output_dir, action_lists=[tmp_path / "gone.eal"]
    )
    write_starting_config(task)

    with pytest.raises(FilesystemError, match="Action List"):
        build_config(task)


def test_document_tree_replace_child() -> None:
    document = ElementTreeDocument.from_string(BLANK_CONFIG, NAMESPACES)
    process = document.require("cf:Process")
    old = document.require("cf:Language", process)
    new = document.create_element("cf:Language", "jaJP")

    document.replace_child(process, new, old)

    assert document.find_text(".//cf:Language") == "jaJP"
    with pytest.raises(StructuralError):
        document.replace_child(process, new, old)
