from __future__ import annotations

import os
import stat
import sys
from pathlib import Path
from typing import Callable

import pytest
from pypdf import PdfWriter

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from pitstop_server import locator  # noqa: E402


FAKE_CLI = """#!/bin/sh
if [ "$1" = "-version" ]; then
    echo "PitStop Server 24.0 (fake)"
    exit 0
fi
echo "processing $2"
exit 0
"""

FAILING_CLI = """#!/bin/sh
echo "partial output"
echo "Preflight profile could not be loaded" 1>&2
exit 3
"""


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch):
    for name in list(os.environ):
        if name.startswith("PITSTOP_"):
            monkeypatch.delenv(name, raising=False)
    locator.reset_application_path()
    yield
    locator.reset_application_path()


@pytest.fixture()
def sample_pdf(tmp_path: Path) -> Path:
    pdf_path = tmp_path / "input" / "brochure.pdf"
    pdf_path.parent.mkdir()
    writer = PdfWriter()
    for _ in range(2):
        writer.add_blank_page(width=595, height=842)
    writer.add_metadata({"/Producer": "pitstop-server-tests", "/Title": "Brochure"})
    with pdf_path.open("wb") as stream:
        writer.write(stream)
    return pdf_path


@pytest.fixture()
def output_dir(tmp_path: Path) -> Path:
    folder = tmp_path / "output"
    folder.mkdir()
    return folder


@pytest.fixture()
def profile(tmp_path: Path) -> Path:
    path = tmp_path / "resources" / "check.ppp"
    path.parent.mkdir(exist_ok=True)
    path.write_bytes(b"fake preflight profile")
    return path


@pytest.fixture()
def action_lists(tmp_path: Path) -> list[Path]:
    folder = tmp_path / "resources"
    folder.mkdir(exist_ok=True)
    paths = []
    for name in ("convert_rgb.eal", "add_bleed.eal"):
        path = folder / name
        path.write_bytes(b"fake action list")
        paths.append(path)
    return paths


@pytest.fixture()
def script_factory(tmp_path: Path) -> Callable[[str, str], Path]:
    def _create(name: str, body: str) -> Path:
        path = tmp_path / "bin" / name
        path.parent.mkdir(exist_ok=True)
        path.write_text(body)
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _create


@pytest.fixture()
def fake_cli(script_factory: Callable[[str, str], Path]) -> Path:
    return script_factory("PitStopServerCLI", FAKE_CLI)


@pytest.fixture()
def failing_cli(script_factory: Callable[[str, str], Path]) -> Path:
    return script_factory("FailingPitStopServerCLI", FAILING_CLI)


@pytest.fixture()
def base_options(sample_pdf: Path, output_dir: Path, profile: Path, fake_cli: Path) -> dict:
    return {
        "input_pdf": sample_pdf,
        "output_folder": output_dir,
        "preflight_profile": profile,
        "application_path": fake_cli,
    }
