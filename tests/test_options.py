from __future__ import annotations

import os
from pathlib import Path

import pytest

from pitstop_server.exceptions import FilesystemError, ValidationError
from pitstop_server.options import normalize_options, resolve_task
from pitstop_server.settings import Settings
from pitstop_server.types import MeasurementUnit


def test_resolve_task_applies_defaults(sample_pdf: Path, output_dir: Path, profile: Path) -> None:
    task = resolve_task(input_pdf=sample_pdf, output_folder=output_dir, preflight_profile=profile)

    assert task.input_pdf == sample_pdf.resolve()
    assert task.output_folder == output_dir.resolve()
    assert task.output_pdf_name == "brochure.pdf"
    assert task.pdf_report_name == "brochure_report.pdf"
    assert task.xml_report_name == "brochure.xml"
    assert task.json_report_name == "brochure.json"
    assert task.task_report_name == "taskreport.xml"
    assert task.variable_set_name == "variableset.evs"
    assert task.config_file_name == "config.xml"
    assert task.measurement_unit is MeasurementUnit.MILLIMETER
    assert task.language == "enUS"
    assert task.max_report_items_per_category == 100
    assert task.max_report_occurrences_per_item == 100
    assert not (task.pdf_report or task.xml_report or task.json_report or task.task_report)
    assert task.config_path == output_dir.resolve() / "config.xml"


def test_missing_mandatory_options(sample_pdf: Path, profile: Path) -> None:
    with pytest.raises(ValidationError):
        resolve_task(input_pdf=sample_pdf, preflight_profile=profile)


def test_profile_or_action_list_required(sample_pdf: Path, output_dir: Path) -> None:
    with pytest.raises(ValidationError):
        resolve_task(input_pdf=sample_pdf, output_folder=output_dir)
    with pytest.raises(ValidationError):
        resolve_task(input_pdf=sample_pdf, output_folder=output_dir, action_lists=[])


def test_action_lists_keep_their_order(
    sample_pdf: Path, output_dir: Path, action_lists: list[Path]
) -> None:
    task = resolve_task(input_pdf=sample_pdf, output_folder=output_dir, action_lists=action_lists)

    assert task.preflight_profile is None
    assert [path.name for path in task.action_lists] == ["convert_rgb.eal", "add_bleed.eal"]


def test_output_pdf_name_does_not_overwrite_output_folder(
    sample_pdf: Path, output_dir: Path, profile: Path
) -> None:
    # outputPDFName used to fall through into the outputFolder assignment
    task = resolve_task(
        {
            "outputPDFName": "fixed.pdf",
            "inputPDF": str(sample_pdf),
            "outputFolder": str(output_dir),
            "preflightProfile": str(profile),
        }
    )

    assert task.output_pdf_name == "fixed.pdf"
    assert task.output_folder == output_dir.resolve()


def test_camel_case_aliases_map_to_fields(sample_pdf: Path, output_dir: Path, profile: Path) -> None:
    task = resolve_task(
        {
            "inputPDF": sample_pdf,
            "outputFolder": output_dir,
            "preflightProfile": profile,
            "xmlReport": True,
            "maxReportOccurencesPerItem": 7,
            "measurementUnit": "Inch",
        }
    )

    assert task.xml_report is True
    assert task.max_report_occurrences_per_item == 7
    assert task.measurement_unit is MeasurementUnit.INCH


def test_unknown_options_are_reported_and_ignored(
    sample_pdf: Path, output_dir: Path, profile: Path
) -> None:
    messages: list[str] = []
    task = resolve_task(
        {"input_pdf": sample_pdf, "output_folder": output_dir, "preflight_profile": profile, "colour": "red"},
        debug=messages.append,
    )

    assert task.output_pdf_name == "brochure.pdf"
    assert "Unknown option colour specified" in messages


def test_duplicate_option_is_rejected() -> None:
    with pytest.raises(ValidationError):
        normalize_options({"inputPDF": "a.pdf"}, input_pdf="b.pdf")


def test_missing_input_pdf(tmp_path: Path, output_dir: Path, profile: Path) -> None:
    with pytest.raises(FilesystemError):
        resolve_task(
            input_pdf=tmp_path / "missing.pdf",
            output_folder=output_dir,
            preflight_profile=profile,
        )


def test_missing_output_folder(tmp_path: Path, sample_pdf: Path, profile: Path) -> None:
    with pytest.raises(FilesystemError, match="does not exist"):
        resolve_task(
            input_pdf=sample_pdf,
            output_folder=tmp_path / "nowhere",
            preflight_profile=profile,
        )


@pytest.mark.skipif(os.name == "nt" or os.geteuid() == 0, reason="permissions are not enforced")
def test_read_only_output_folder(tmp_path: Path, sample_pdf: Path, profile: Path) -> None:
    folder = tmp_path / "readonly"
    folder.mkdir()
    folder.chmod(0o500)
    try:
        with pytest.raises(FilesystemError, match="not writable"):
            resolve_task(input_pdf=sample_pdf, output_folder=folder, preflight_profile=profile)
    finally:
        folder.chmod(0o700)


def test_invalid_measurement_unit(sample_pdf: Path, output_dir: Path, profile: Path) -> None:
    with pytest.raises(ValidationError):
        resolve_task(
            input_pdf=sample_pdf,
            output_folder=output_dir,
            preflight_profile=profile,
            measurement_unit="furlong",
        )


@pytest.mark.parametrize("value", [0, -5, "many", True])
def test_invalid_report_caps(sample_pdf: Path, output_dir: Path, profile: Path, value) -> None:
    with pytest.raises(ValidationError):
        resolve_task(
            input_pdf=sample_pdf,
            output_folder=output_dir,
            preflight_profile=profile,
            max_report_items_per_category=value,
        )


def test_settings_supply_defaults(
    monkeypatch: pytest.MonkeyPatch, sample_pdf: Path, output_dir: Path, profile: Path
) -> None:
    monkeypatch.setenv("PITSTOP_MEASUREMENT_UNIT", "centimeter")
    monkeypatch.setenv("PITSTOP_LANGUAGE", "deDE")
    monkeypatch.setenv("PITSTOP_MAX_REPORT_ITEMS", "25")

    task = resolve_task(
        input_pdf=sample_pdf,
        output_folder=output_dir,
        preflight_profile=profile,
        settings=Settings.from_env(),
    )

    assert task.measurement_unit is MeasurementUnit.CENTIMETER
    assert task.language == "deDE"
    assert task.max_report_items_per_category == 25
    assert task.max_report_occurrences_per_item == 100


def test_explicit_options_win_over_settings(sample_pdf: Path, output_dir: Path, profile: Path) -> None:
    settings = Settings(measurement_unit=MeasurementUnit.INCH, language="frFR")
    task = resolve_task(
        input_pdf=sample_pdf,
        output_folder=output_dir,
        preflight_profile=profile,
        measurement_unit="Point",
        language="nlNL",
        settings=settings,
    )

    assert task.measurement_unit is MeasurementUnit.POINT
    assert task.language == "nlNL"
