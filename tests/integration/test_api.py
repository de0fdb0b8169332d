"""Integration tests for API endpoints"""

import pytest
from datetime import date, datetime, timedelta, timezone
from fastapi.testclient import TestClient
from astral_forecast.api.dependencies import get_history_repository, get_records_client
from astral_forecast.domain.exceptions import RecordsAPIError
from astral_forecast.domain.models import FinancialSnapshot, RecurringObligation, Transaction

RENT = {
    "name": "Rent",
    "category": "housing",
    "amount_cents": 150000,
    "cadence": "monthly",
    "start_date": "2024-01-31",
}


class FakeRecordsClient:
    """Stands in for the records service"""

    def __init__(self, snapshot: FinancialSnapshot | None = None, error: Exception | None = None):
        self.snapshot = snapshot
        self.error = error

    async def get_snapshot(self, user_id: str) -> FinancialSnapshot:
        if self.error:
            raise self.error
        return self.snapshot


@pytest.fixture
def registered_rent(client: TestClient) -> str:
    response = client.put("/v1/obligations/rent", json=RENT)
    assert response.status_code == 200
    return "rent"


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "astral_analysis_total" in response.text
    assert "astral_alerts_total" in response.text


def test_request_id_is_propagated(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"

    generated = client.get("/health")
    assert generated.headers["X-Request-ID"]


def test_occurrences_endpoint(client: TestClient):
    """Test POST /v1/occurrences with month-end clamping and a bad cadence"""
    response = client.post(
        "/v1/occurrences",
        json={
            "obligations": [
                {**RENT, "obligation_id": "rent"},
                {**RENT, "obligation_id": "broken", "cadence": "every-other-tuesday"},
            ],
            "window_start": "2024-01-01",
            "window_end": "2024-04-30",
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert [o["due_date"] for o in data["occurrences"]] == ["2024-01-31", "2024-02-29", "2024-03-31", "2024-04-30"]
    assert data["total_cents"] == 600000
    assert data["invalid_obligations"] == ["broken"]


def test_occurrences_rejects_invalid_obligation(client: TestClient):
    response = client.post(
        "/v1/occurrences",
        json={
            "obligations": [{**RENT, "obligation_id": "rent", "end_date": "2023-12-31"}],
            "window_start": "2024-01-01",
            "window_end": "2024-12-31",
        },
    )
    assert response.status_code == 422

    response = client.post(
        "/v1/occurrences",
        json={
            "obligations": [{**RENT, "obligation_id": "rent", "amount_cents": 0}],
            "window_start": "2024-01-01",
            "window_end": "2024-12-31",
        },
    )
    assert response.status_code == 422


def test_bill_history_flow(client: TestClient, registered_rent: str):
    """Record, amend and summarise bills for one obligation"""
    empty = client.get("/v1/obligations/rent/statistics")
    assert empty.status_code == 200
    assert empty.json()["bill_count"] == 0
    assert empty.json()["average_cents"] is None

    first = client.post(
        "/v1/obligations/rent/history",
        json={"actual_amount_cents": 165000, "estimated_amount_cents": 150000, "bill_date": "2024-01-31"},
    )
    assert first.status_code == 201
    assert first.json()["variance_cents"] == 15000
    assert first.json()["variance_percent"] == pytest.approx(10.0)

    second = client.post(
        "/v1/obligations/rent/history",
        json={
            "actual_amount_cents": 150000,
            "estimated_amount_cents": 150000,
            "bill_date": "2024-02-29",
            "is_paid": True,
            "paid_date": "2024-02-28",
        },
    )
    assert second.status_code == 201

    statistics = client.get("/v1/obligations/rent/statistics").json()
    assert statistics["bill_count"] == 2
    assert statistics["average_cents"] == 157500
    assert statistics["min_cents"] == 150000
    assert statistics["max_cents"] == 165000
    assert statistics["last_bill_amount_cents"] == 150000

    amended = client.patch(f"/v1/history/{first.json()['entry_id']}", json={"actual_amount_cents": 140000})
    assert amended.status_code == 200
    assert amended.json()["variance_cents"] == -10000
    assert amended.json()["bill_date"] == "2024-01-31"

    statistics = client.get("/v1/obligations/rent/statistics").json()
    assert statistics["min_cents"] == 140000
    assert statistics["average_cents"] == 145000

    history = client.get("/v1/obligations/rent/history").json()
    assert [e["bill_date"] for e in history["entries"]] == ["2024-02-29", "2024-01-31"]


def test_bill_endpoints_unknown_ids(client: TestClient):
    response = client.post(
        "/v1/obligations/missing/history",
        json={"actual_amount_cents": 100, "estimated_amount_cents": 100, "bill_date": "2024-01-01"},
    )
    assert response.status_code == 404

    assert client.get("/v1/obligations/missing/statistics").status_code == 404
    assert client.get("/v1/obligations/missing/history").status_code == 404
    assert client.get("/v1/obligations/missing/estimate").status_code == 404
    assert client.patch("/v1/history/missing", json={"is_paid": True}).status_code == 404


def test_put_obligation_rejects_inverted_dates(client: TestClient):
    response = client.put("/v1/obligations/rent", json={**RENT, "end_date": "2023-01-01"})
    assert response.status_code == 422


def test_put_obligation_storage_failure(client: TestClient):
    class FailingRepository:
        def upsert_obligation(self, obligation):
            raise RuntimeError("database is locked")

    client.app.dependency_overrides[get_history_repository] = lambda: FailingRepository()

    response = client.put("/v1/obligations/rent", json=RENT)

    assert response.status_code == 500
    assert response.json()["detail"] == "Internal server error"


def test_amend_rejects_null_amounts_and_paid_flag(client: TestClient, registered_rent: str):
    entry = client.post(
        "/v1/obligations/rent/history",
        json={"actual_amount_cents": 150000, "estimated_amount_cents": 150000, "bill_date": "2024-01-31"},
    ).json()

    for field in ("actual_amount_cents", "estimated_amount_cents", "is_paid"):
        response = client.patch(f"/v1/history/{entry['entry_id']}", json={field: None})
        assert response.status_code == 422

    history = client.get("/v1/obligations/rent/history").json()
    assert history["entries"][0]["actual_amount_cents"] == 150000
    assert history["entries"][0]["is_paid"] is False


def test_estimate_endpoint(client: TestClient, registered_rent: str):
    for bill_date in ("2024-01-31", "2024-02-29", "2024-03-31", "2024-04-30"):
        client.post(
            "/v1/obligations/rent/history",
            json={"actual_amount_cents": 150000, "estimated_amount_cents": 150000, "bill_date": bill_date},
        )

    response = client.get("/v1/obligations/rent/estimate", params={"proposed_amount_cents": 225000})

    assert response.status_code == 200
    data = response.json()
    assert data["estimated_cents"] == 150000
    assert data["confidence"] == "high"
    assert data["variance_type"] == "stable"
    assert data["anomaly"]["is_anomaly"] is True
    assert data["anomaly"]["severity"] == "high"

    assert client.get("/v1/obligations/rent/estimate", params={"method": "magic"}).status_code == 422


def test_health_score_endpoint(client: TestClient):
    response = client.post(
        "/v1/health-score",
        json={
            "balance_cents": 1129,
            "transactions": [
                {"transaction_id": "i1", "date": "2024-06-01", "amount_cents": 643192, "type": "income"},
                {"transaction_id": "e1", "date": "2024-06-02", "amount_cents": 942100, "type": "expense"},
            ],
            "upcoming_obligation_total_cents": 370000,
            "bills": [
                {"obligation_id": "rent", "bill_date": "2024-06-01", "amount_cents": 150000, "is_paid": False},
            ],
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["score"] == 25
    assert data["band"] == "critical"
    assert {f["name"]: f["deduction"] for f in data["factors"]} == {
        "balance_coverage": 40,
        "spending_trend": 20,
        "payment_consistency": 15,
    }


def test_alerts_endpoint(client: TestClient):
    response = client.post(
        "/v1/alerts",
        json={
            "balance_cents": 100000,
            "expenses": [
                {"transaction_id": "e1", "date": "2024-06-10", "amount_cents": 60000, "type": "expense",
                 "category": "housing"},
            ],
            "income": [
                {"transaction_id": "i1", "date": "2024-06-05", "amount_cents": 100000, "type": "income",
                 "category": "salary"},
            ],
            "upcoming_obligation_total_cents": 90000,
            "as_of": "2024-06-30T12:00:00Z",
        },
    )

    assert response.status_code == 200
    alerts = response.json()["alerts"]
    assert [a["severity"] for a in alerts] == ["critical", "high", "medium", "low", "low"]
    assert [a["priority"] for a in alerts] == [0, 1, 2, 3, 3]
    assert alerts[0]["alert_id"] == "bill_strain"


def test_analysis_endpoint(client: TestClient):
    """Test GET /v1/analysis/{user_id} against a struggling household"""
    today = datetime.now(timezone.utc).date()
    snapshot = FinancialSnapshot(
        user_id="user_1",
        balance_cents=1129,
        expenses=[Transaction("e1", today - timedelta(days=5), 942100, "expense", "housing")],
        income=[Transaction("i1", today - timedelta(days=5), 643192, "income", "salary")],
        obligations=[
            RecurringObligation(
                obligation_id="insurance",
                name="Insurance",
                category="insurance",
                amount_cents=370000,
                cadence="yearly",
                start_date=today + timedelta(days=3),
            ),
            RecurringObligation(
                obligation_id="odd",
                name="Odd",
                category="other",
                amount_cents=100,
                cadence="sometimes",
                start_date=date(2024, 1, 1),
            ),
        ],
    )
    client.app.dependency_overrides[get_records_client] = lambda: FakeRecordsClient(snapshot)

    response = client.get("/v1/analysis/user_1")

    assert response.status_code == 200
    data = response.json()
    assert data["upcoming"]["total_cents"] == 370000
    assert data["upcoming"]["invalid_obligations"] == ["odd"]
    assert data["monthly_obligations_cents"] == 30833
    assert data["health"]["score"] <= 40
    assert data["alerts"][0]["severity"] == "critical"
    assert {"critical_balance", "bill_strain", "negative_cashflow"} <= {a["alert_id"] for a in data["alerts"]}


def test_analysis_records_service_down(client: TestClient):
    client.app.dependency_overrides[get_records_client] = lambda: FakeRecordsClient(
        error=RecordsAPIError("Records API timeout after 5.0s")
    )

    response = client.get("/v1/analysis/user_1")

    assert response.status_code == 503
