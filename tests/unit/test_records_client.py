"""Unit tests for the records service client"""

import asyncio
import httpx
import pytest
from datetime import date
from astral_forecast.domain.exceptions import RecordsAPIError
from astral_forecast.infrastructure.clients.records import RecordsClient

RECORDS = {
    "/api/user/balance": {"balance": 1234.56},
    "/api/expenses": {
        "expenses": [
            {"id": 1, "amount": 45.1, "category": "groceries", "date": "2024-06-10T08:30:00.000Z"},
            {"id": 2, "amount": "12", "description": "Lunch", "createdAt": "2024-06-11"},
        ]
    },
    "/api/income": {"income": [{"id": "inc1", "amount": 3000, "category": "salary", "date": "2024-06-01"}]},
    "/api/goals": {
        "goals": [
            {"id": 7, "title": "Vacation", "currentAmount": 500, "targetAmount": 2000, "deadline": "2024-12-31"},
        ]
    },
    "/api/recurring": {
        "recurring": [
            {"id": "rent", "name": "Rent", "amount": 1500, "frequency": "monthly", "startDate": "2024-01-01"},
            {"id": "pay", "name": "Paycheck", "amount": 3000, "frequency": "biweekly",
             "startDate": "2024-01-05", "billType": "income"},
            {"id": "free", "name": "Free Trial", "amount": 0, "frequency": "monthly", "startDate": "2024-01-01"},
            {"id": "gym", "name": "Gym", "amount": 40, "frequency": "Monthly", "startDate": "2024-02-01",
             "endDate": "2024-12-01", "isActive": False, "category": "health"},
        ]
    },
}


def records_transport(records=RECORDS, status_code=200) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["user_id"] == "user_1"
        if status_code != 200:
            return httpx.Response(status_code, json={"error": "boom"})
        return httpx.Response(200, json=records[request.url.path])

    return httpx.MockTransport(handler)


def fetch(transport: httpx.MockTransport):
    client = RecordsClient(base_url="http://records.test", transport=transport)
    return asyncio.run(client.get_snapshot("user_1"))


def test_snapshot_converts_dollars_to_cents():
    snapshot = fetch(records_transport())

    assert snapshot.user_id == "user_1"
    assert snapshot.balance_cents == 123456
    assert [t.amount_cents for t in snapshot.expenses] == [4510, 1200]
    assert snapshot.expenses[0].date == date(2024, 6, 10)
    assert snapshot.expenses[1].category == "other"
    assert snapshot.income[0].type == "income"
    assert snapshot.income[0].amount_cents == 300000
    assert snapshot.goals[0].goal_id == "7"
    assert snapshot.goals[0].progress_percent == 25.0


def test_snapshot_keeps_only_valid_expense_obligations():
    """Income streams and zero-amount bills are not obligations"""
    snapshot = fetch(records_transport())

    assert [o.obligation_id for o in snapshot.obligations] == ["rent", "gym"]
    gym = snapshot.obligations[1]
    assert gym.amount_cents == 4000
    assert gym.end_date == date(2024, 12, 1)
    assert gym.is_active is False


def test_http_error_raises_records_api_error():
    with pytest.raises(RecordsAPIError, match="500"):
        fetch(records_transport(status_code=500))


def test_malformed_payload_raises_records_api_error():
    broken = dict(RECORDS)
    broken["/api/user/balance"] = {"total": 10}

    with pytest.raises(RecordsAPIError):
        fetch(records_transport(records=broken))


def test_unreachable_service_raises_records_api_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RecordsAPIError, match="unreachable"):
        fetch(httpx.MockTransport(handler))
