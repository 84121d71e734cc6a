"""Environment driven defaults for :mod:`pitstop_server`."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .types import MeasurementUnit

APPLICATION_PATH_ENV = "PITSTOP_SERVER_CLI"


@dataclass(slots=True)
class Settings:
    """Defaults applied when an option is not passed explicitly."""

    application_path: Path | None = None
    measurement_unit: MeasurementUnit = MeasurementUnit.MILLIMETER
    language: str = "enUS"
    max_report_items_per_category: int = 100
    max_report_occurrences_per_item: int = 100

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from ``PITSTOP_*`` environment variables."""

        application_path = os.getenv(APPLICATION_PATH_ENV)
        return cls(
            application_path=Path(application_path) if application_path else None,
            measurement_unit=MeasurementUnit.parse(
                os.getenv("PITSTOP_MEASUREMENT_UNIT", MeasurementUnit.MILLIMETER.value),
            ),
            language=os.getenv("PITSTOP_LANGUAGE", "enUS"),
            max_report_items_per_category=int(os.getenv("PITSTOP_MAX_REPORT_ITEMS", "100")),
            max_report_occurrences_per_item=int(
                os.getenv("PITSTOP_MAX_REPORT_OCCURRENCES", "100"),
            ),
        )
