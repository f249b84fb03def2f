from __future__ import annotations
import json
import logging
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Iterable, List, Optional

from models.records import Company, CompanyMetricRecord, WasteStreamRecord
from services.errors import DataStoreError
from settings import get_settings

logger = logging.getLogger(__name__)


class WasteDataStore:
    """Row source for companies, waste streams and company metrics.

    Rows live in memory and, when ``persistence_path`` is set, are mirrored to
    a JSON document with ``companies``, ``waste_streams`` and
    ``company_metrics`` arrays. A document that cannot be read leaves the
    store unavailable: every query raises ``DataStoreError`` until it is
    reloaded successfully.
    """

    def __init__(self, persistence_path: Optional[Path] = None) -> None:
        self.persistence_path = persistence_path
        self._companies: Dict[str, Company] = {}
        self._waste_streams: List[WasteStreamRecord] = []
        self._company_metrics: List[CompanyMetricRecord] = []
        self._load_error: Optional[str] = None
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self.reload()

    @property
    def available(self) -> bool:
        return self._load_error is None

    def fetch_waste_streams(
        self,
        min_period: Optional[int] = None,
        company_id: Optional[str] = None,
    ) -> List[WasteStreamRecord]:
        """Records with a value and period, optionally filtered, oldest period first."""
        with self._lock:
            self._ensure_available()
            rows = [
                record
                for record in self._waste_streams
                if record.value is not None
                and record.reporting_period is not None
                and (min_period is None or record.reporting_period >= min_period)
                and (company_id is None or record.company_id == company_id)
            ]
        return sorted(rows, key=lambda record: record.reporting_period or 0)

    def fetch_company_metrics(self, min_period: Optional[int] = None) -> List[CompanyMetricRecord]:
        """Rows with a period and either a generated total or a reported rate."""
        with self._lock:
            self._ensure_available()
            rows = [
                metric
                for metric in self._company_metrics
                if (metric.total_waste_generated is not None or metric.recovery_rate is not None)
                and metric.reporting_period is not None
                and (min_period is None or metric.reporting_period >= min_period)
            ]
        return sorted(rows, key=lambda metric: metric.reporting_period or 0)

    def fetch_companies(self, ids: Optional[Iterable[str]] = None) -> List[Company]:
        with self._lock:
            self._ensure_available()
            if ids is None:
                return list(self._companies.values())
            return [self._companies[key] for key in dict.fromkeys(ids) if key in self._companies]

    def get_company(self, company_id: str) -> Optional[Company]:
        with self._lock:
            self._ensure_available()
            return self._companies.get(company_id)

    def put_company(self, company: Company) -> None:
        with self._lock:
            self._ensure_available()
            self._companies[company.id] = company
            self._persist()

    def add_waste_streams(self, records: Iterable[WasteStreamRecord]) -> int:
        items = list(records)
        with self._lock:
            self._ensure_available()
            self._waste_streams.extend(items)
            self._persist()
        return len(items)

    def add_company_metrics(self, metrics: Iterable[CompanyMetricRecord]) -> int:
        items = list(metrics)
        with self._lock:
            self._ensure_available()
            self._company_metrics.extend(items)
            self._persist()
        return len(items)

    def reload(self) -> None:
        with self._lock:
            self._load_from_disk()

    def _ensure_available(self) -> None:
        if self._load_error is not None:
            raise DataStoreError(self._load_error)

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            "companies": [company.to_row() for company in self._companies.values()],
            "waste_streams": [record.to_row() for record in self._waste_streams],
            "company_metrics": [metric.to_row() for metric in self._company_metrics],
        }
        try:
            self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))
        except OSError as exc:
            raise DataStoreError(f"Could not write {self.persistence_path}: {exc}") from exc

    def _load_from_disk(self) -> None:
        self._companies = {}
        self._waste_streams = []
        self._company_metrics = []
        self._load_error = None
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data: Dict[str, Any] = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("top-level JSON value must be an object")
            companies = [Company.from_row(row) for row in data.get("companies", [])]
            streams = [WasteStreamRecord.from_row(row) for row in data.get("waste_streams", [])]
            metrics = [CompanyMetricRecord.from_row(row) for row in data.get("company_metrics", [])]
        except (OSError, ValueError, AttributeError, TypeError) as exc:
            self._load_error = f"Could not load {self.persistence_path}: {exc}"
            logger.error("Waste data store unavailable", extra={"reason": str(exc)})
            return

        self._companies = {company.id: company for company in companies if company.id}
        self._waste_streams = streams
        self._company_metrics = metrics
        logger.info(
            "Loaded waste data store",
            extra={"record_count": len(streams) + len(metrics), "source_file": str(self.persistence_path)},
        )


def build_default_store(path: Optional[str] = None) -> WasteDataStore:
    settings = get_settings()
    data_path = settings.data_path if path is None else path
    persistence = Path(data_path) if data_path else None
    return WasteDataStore(persistence_path=persistence)
