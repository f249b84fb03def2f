"""CSV ingestion of waste-stream rows into the data store."""

from __future__ import annotations

import csv
import io
import logging
import re
from pathlib import Path
from typing import List

from app.schemas import CsvImportResult, RowError
from datastore.waste_store import WasteDataStore
from models.records import WasteStreamRecord, parse_optional_float, parse_period
from services.classification import classify_flow, classify_hazard

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("company_id", "reporting_period", "metric")
OPTIONAL_COLUMNS = ("value", "treatment_method", "hazardousness")


def normalize_header(name: str) -> str:
    return re.sub(r"\s+", "_", name.strip().lower())


class WasteStreamImporter:
    """Validates uploaded CSV rows and appends the accepted ones to the store."""

    def __init__(self, store: WasteDataStore) -> None:
        self.store = store

    def import_csv(self, contents: bytes, filename: str) -> CsvImportResult:
        name = Path(filename or "upload.csv").name
        if not name.lower().endswith(".csv"):
            raise ValueError("File must be a CSV")
        if not contents:
            raise ValueError("Uploaded file is empty.")

        try:
            text = contents.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ValueError("CSV file must be UTF-8 encoded.") from exc

        reader = csv.DictReader(io.StringIO(text))
        if not reader.fieldnames:
            raise ValueError("CSV file is missing a header row.")

        columns = {normalize_header(field): field for field in reader.fieldnames if field}
        missing = [column for column in REQUIRED_COLUMNS if column not in columns]
        if missing:
            raise ValueError(f"CSV missing required columns: {', '.join(missing)}")

        errors: List[RowError] = []
        flagged: List[RowError] = []
        accepted: List[WasteStreamRecord] = []

        for row_number, row in enumerate(reader, start=2):
            values = {
                column: (row.get(columns[column]) or "").strip()
                for column in REQUIRED_COLUMNS + OPTIONAL_COLUMNS
                if column in columns
            }
            if not any(values.values()):
                continue

            reason = self._row_problem(values)
            if reason is not None:
                self._skip(errors, row_number, reason, name)
                continue

            record = WasteStreamRecord(
                company_id=values["company_id"],
                reporting_period=parse_period(values["reporting_period"]),
                metric=values["metric"],
                value=parse_optional_float(values.get("value")),
                treatment_method=values.get("treatment_method") or None,
                hazardousness=values.get("hazardousness") or None,
            )
            accepted.append(record)

            if classify_flow(record.metric, record.treatment_method) is None:
                flagged.append(RowError(row_number=row_number, reason="unrecognized metric or treatment method"))
            elif record.hazardousness and classify_hazard(record.hazardousness) is None:
                flagged.append(RowError(row_number=row_number, reason="unrecognized hazardousness"))

        self.store.add_waste_streams(accepted)
        logger.info(
            "Imported waste stream CSV",
            extra={"source_file": name, "record_count": len(accepted), "reason": f"{len(errors)} rejected"},
        )
        return CsvImportResult(filename=name, accepted=len(accepted), errors=errors, flagged=flagged)

    @staticmethod
    def _row_problem(values: dict[str, str]) -> str | None:
        if not values["company_id"]:
            return "missing company_id"
        if not values["reporting_period"]:
            return "missing reporting_period"
        if parse_period(values["reporting_period"]) is None:
            return "invalid reporting_period"
        if not values["metric"]:
            return "missing metric"
        raw_value = values.get("value")
        if raw_value:
            parsed = parse_optional_float(raw_value)
            if parsed is None:
                return "invalid numeric value"
            if parsed < 0:
                return "negative value"
        return None

    @staticmethod
    def _skip(errors: List[RowError], row_number: int, reason: str, filename: str) -> None:
        errors.append(RowError(row_number=row_number, reason=reason))
        logger.warning(
            "Skipping row: %s",
            reason,
            extra={"row_number": row_number, "reason": reason, "source_file": filename},
        )
