"""Records service HTTP client for fetching a user's balance, transactions, goals and bills"""

import asyncio
import logging
import httpx
from datetime import date
from typing import Any, Dict, List
from astral_forecast.domain.models import FinancialSnapshot, Goal, RecurringObligation, Transaction
from astral_forecast.domain.exceptions import InvalidObligationError, RecordsAPIError
from astral_forecast.config import settings
from astral_forecast.utils.money import to_cents


def _parse_date(value: str) -> date:
    """Accept plain dates and ISO timestamps"""
    return date.fromisoformat(value[:10])


def _parse_transaction(raw: Dict[str, Any], txn_type: str) -> Transaction:
    return Transaction(
        transaction_id=str(raw["id"]),
        date=_parse_date(raw.get("date") or raw["createdAt"]),
        amount_cents=to_cents(raw["amount"]),
        type=txn_type,
        category=raw.get("category") or "other",
        description=raw.get("description") or "",
    )


def _parse_goal(raw: Dict[str, Any]) -> Goal:
    return Goal(
        goal_id=str(raw["id"]),
        title=raw["title"],
        current_cents=to_cents(raw.get("currentAmount") or 0),
        target_cents=to_cents(raw["targetAmount"]),
        deadline=_parse_date(raw["deadline"]) if raw.get("deadline") else None,
    )


def _parse_obligation(raw: Dict[str, Any]) -> RecurringObligation:
    return RecurringObligation(
        obligation_id=str(raw["id"]),
        name=raw["name"],
        category=raw.get("category") or "other",
        amount_cents=to_cents(raw["amount"]),
        cadence=raw["frequency"],
        start_date=_parse_date(raw["startDate"]),
        end_date=_parse_date(raw["endDate"]) if raw.get("endDate") else None,
        is_active=raw.get("isActive", True),
    )


class RecordsClient:
    """Client for the personal-finance records (CRUD) service"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.records_api_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def _get(self, client: httpx.AsyncClient, path: str, user_id: str) -> Dict[str, Any]:
        response = await client.get(f"{self.base_url}{path}", params={"user_id": user_id})
        response.raise_for_status()
        return response.json()

    async def get_snapshot(self, user_id: str) -> FinancialSnapshot:
        """
        Fetch balance, expenses, income, goals and recurring bills for a user.

        Amounts arrive in dollars and are converted to cents. Recurring bills
        that are income or violate obligation invariants are skipped.

        Raises:
            RecordsAPIError: On timeout, HTTP errors, or invalid response
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                balance, expenses, income, goals, recurring = await asyncio.gather(
                    self._get(client, "/api/user/balance", user_id),
                    self._get(client, "/api/expenses", user_id),
                    self._get(client, "/api/income", user_id),
                    self._get(client, "/api/goals", user_id),
                    self._get(client, "/api/recurring", user_id),
                )

                obligations: List[RecurringObligation] = []
                for raw in recurring.get("recurring", []):
                    if raw.get("billType", "expense") != "expense":
                        continue
                    try:
                        obligations.append(_parse_obligation(raw))
                    except InvalidObligationError as e:
                        logging.warning(f"Skipping recurring bill: {e}", extra={"user_id": user_id})

                return FinancialSnapshot(
                    user_id=user_id,
                    balance_cents=to_cents(balance["balance"]),
                    expenses=[_parse_transaction(t, "expense") for t in expenses.get("expenses", [])],
                    income=[_parse_transaction(t, "income") for t in income.get("income", [])],
                    goals=[_parse_goal(g) for g in goals.get("goals", [])],
                    obligations=obligations,
                )

            except httpx.TimeoutException as e:
                raise RecordsAPIError(f"Records API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise RecordsAPIError(f"Records API error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise RecordsAPIError(f"Records API unreachable: {e}") from e
            except (KeyError, ValueError, TypeError, ArithmeticError) as e:
                raise RecordsAPIError(f"Invalid record data from records service: {e}") from e
