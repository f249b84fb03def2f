from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from datastore.waste_store import WasteDataStore
from models.records import Company, CompanyMetricRecord, WasteStreamRecord


def _seed(store: WasteDataStore) -> None:
    store.put_company(Company(id="acme", name="Acme", sector="Materials", country="DE"))
    store.put_company(Company(id="beta", name="Beta", sector="Energy", country="FR"))
    store.add_waste_streams(
        [
            WasteStreamRecord("acme", 2022, "Total Waste Generated", 1000.0),
            WasteStreamRecord("acme", 2022, "Total Waste Recovered", 300.0, "Recycling"),
            WasteStreamRecord("beta", 2022, "Total Waste Generated", 500.0),
            WasteStreamRecord("beta", 2022, "Waste Directed to Disposal", 400.0, "Landfill"),
            WasteStreamRecord("acme", 2023, "Total Hazardous Waste Generated", 20.0),
            WasteStreamRecord("acme", 2023, "Total Non-Hazardous Waste Generated", 80.0),
        ]
    )
    store.add_company_metrics(
        [
            CompanyMetricRecord("acme", 2022, total_waste_generated=1000.0, total_waste_recovered=300.0),
            CompanyMetricRecord("beta", 2022, total_waste_generated=500.0, total_waste_recovered=450.0),
        ]
    )


@pytest.fixture
def store(tmp_path) -> WasteDataStore:
    return WasteDataStore(persistence_path=tmp_path / "waste.json")


@pytest.fixture
def api_client(store: WasteDataStore) -> Iterator[TestClient]:
    _seed(store)
    with TestClient(create_app(store=store)) as client:
        yield client


@pytest.fixture
def empty_client() -> Iterator[TestClient]:
    with TestClient(create_app(store=WasteDataStore())) as client:
        yield client


def test_recovery_trends_payload(api_client: TestClient) -> None:
    response = api_client.get("/api/charts/waste-recovery-trends")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    point = body["data"][0]
    assert point["period"] == 2022
    assert point["totalGenerated"] == 1500
    assert point["totalRecovered"] == 450
    assert point["recoveryRate"] == 30.0
    assert point["recyclingRate"] == 20.0
    assert point["disposalRate"] == 26.67
    assert point["dataQuality"] == "Low"
    assert body["summary"]["dataSource"] == "Waste Streams + Company Metrics"


def test_recovery_distribution_payload(api_client: TestClient) -> None:
    response = api_client.get("/api/charts/waste-recovery-distribution")

    assert response.status_code == 200
    data = response.json()["data"]
    assert [bin_["range"] for bin_ in data["chartData"]] == ["0-20%", "20-40%", "40-60%", "60-80%", "80-100%"]
    assert [bin_["count"] for bin_ in data["chartData"]] == [0, 1, 0, 0, 1]
    assert data["statistics"]["total_companies"] == 2
    assert data["statistics"]["average_recovery_rate"] == 60.0
    assert data["sectorBreakdown"][0]["sector"] == "Energy"
    assert data["outOfRange"] == {
        "range": "out-of-range",
        "min": None,
        "max": None,
        "count": 0,
        "percentage": 0.0,
        "companies": [],
    }


def test_secondary_chart_endpoints(api_client: TestClient) -> None:
    hazardous = api_client.get("/api/charts/hazardous-breakdown").json()
    sectors = api_client.get("/api/charts/sector-performance").json()
    waste_trends = api_client.get("/api/charts/waste-trends").json()

    assert hazardous["data"] == [
        {"name": "Non-Hazardous", "value": 80, "percentage": 80.0},
        {"name": "Hazardous", "value": 20, "percentage": 20.0},
    ]
    assert sectors["data"]["datasets"][0]["label"] == "Number of Companies"
    assert waste_trends["data"][0] == {
        "year": 2022,
        "totalGenerated": 1500,
        "totalRecovered": 300,
        "recoveryRate": 20.0,
    }


def test_dashboard_kpi(api_client: TestClient) -> None:
    response = api_client.get("/api/dashboard/kpi")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["totalCompanies"] == 2
    assert data["countriesCovered"] == 2
    assert data["hazardousPercentage"] == 20.0
    assert data["dataCoveragePercentage"] == 100.0
    assert "lastUpdated" in data


def test_company_waste_metrics(api_client: TestClient) -> None:
    response = api_client.get("/api/companies/acme/waste-metrics")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["companyName"] == "Acme"
    assert data["periods"][0]["recoveryRate"] == 30.0


def test_unknown_company_returns_envelope(api_client: TestClient) -> None:
    response = api_client.get("/api/companies/nobody/waste-metrics")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Company 'nobody' not found"}


@pytest.mark.parametrize(
    ("path", "message"),
    [
        ("/api/charts/waste-recovery-trends", "No waste stream data found"),
        ("/api/charts/waste-recovery-distribution", "No company metrics data found"),
        ("/api/charts/sector-performance", "No company data found"),
    ],
)
def test_empty_store_returns_not_found(empty_client: TestClient, path: str, message: str) -> None:
    response = empty_client.get(path)

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": message}


def test_unavailable_store_returns_server_error(tmp_path) -> None:
    broken = tmp_path / "broken.json"
    broken.write_text("not json")

    with TestClient(create_app(store=WasteDataStore(persistence_path=broken))) as client:
        response = client.get("/api/charts/waste-recovery-trends")
        monitoring = client.get("/api/monitoring").json()

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "error": "Failed to fetch waste recovery trends from database",
    }
    errors = monitoring["data"]["errors"]
    assert errors["total_errors"] == 1
    assert errors["recent_errors"][0]["type"] == "DataStoreError"
    assert errors["recent_errors"][0]["context"] == {"route": "waste-recovery-trends"}


def test_upload_csv_imports_rows(api_client: TestClient, store: WasteDataStore) -> None:
    csv_content = (
        "company_id,reporting_period,metric,value,treatment_method,hazardousness\n"
        "beta,2023,Total Waste Generated,200,,\n"
        "beta,2023,Total Waste Recovered,abc,Composting,\n"
        "beta,2023,Water Withdrawal,10,,\n"
    )

    response = api_client.post(
        "/api/upload/csv",
        files={"file": ("streams.csv", csv_content, "text/csv")},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["filename"] == "streams.csv"
    assert data["accepted"] == 2
    assert data["errors"] == [{"row_number": 3, "reason": "invalid numeric value"}]
    assert data["flagged"] == [{"row_number": 4, "reason": "unrecognized metric or treatment method"}]
    assert len(store.fetch_waste_streams(company_id="beta")) == 4


def test_upload_empty_file_returns_bad_request(api_client: TestClient) -> None:
    response = api_client.post(
        "/api/upload/csv",
        files={"file": ("empty.csv", b"", "text/csv")},
    )

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Uploaded file is empty."}


def test_upload_non_csv_returns_bad_request(api_client: TestClient) -> None:
    response = api_client.post(
        "/api/upload/csv",
        files={"file": ("notes.txt", b"company_id\n", "text/plain")},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "File must be a CSV"


class ExplodingImporter:
    def import_csv(self, contents: bytes, filename: str):
        raise RuntimeError("parser crashed")


def test_upload_unexpected_failure_returns_envelope(api_client: TestClient) -> None:
    api_client.app.state.importer = ExplodingImporter()

    response = api_client.post(
        "/api/upload/csv",
        files={"file": ("streams.csv", b"company_id,reporting_period,metric\n", "text/csv")},
    )

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Failed to process uploaded file"}
    errors = api_client.get("/api/monitoring").json()["data"]["errors"]
    assert errors["recent_errors"][-1]["type"] == "RuntimeError"


def test_monitoring_reports_request_timings(api_client: TestClient) -> None:
    api_client.get("/api/charts/waste-recovery-trends")

    response = api_client.get("/api/monitoring")

    assert response.status_code == 200
    performance = response.json()["data"]["performance"]
    trend_timings = performance["api_/api/charts/waste-recovery-trends"]
    assert trend_timings["count"] == 1
    assert trend_timings["min"] >= 0


def test_request_timings_are_keyed_by_route_template(api_client: TestClient) -> None:
    api_client.get("/api/companies/acme/waste-metrics")
    api_client.get("/api/companies/beta/waste-metrics")
    for index in range(3):
        assert api_client.get(f"/api/missing-{index}").status_code == 404

    performance = api_client.get("/api/monitoring").json()["data"]["performance"]

    assert performance["api_/api/companies/{company_id}/waste-metrics"]["count"] == 2
    assert not any("acme" in key or "missing" in key for key in performance)


def test_health_endpoints(empty_client: TestClient) -> None:
    assert empty_client.get("/health").json() == {"status": "ok"}
    root = empty_client.get("/")
    assert root.status_code == 200
    assert root.json()["status"] == "ok"
