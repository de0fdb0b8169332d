"""Health score and alert endpoints"""

import time
import logging
from datetime import datetime, timezone
from typing import Iterable, List
from fastapi import APIRouter, Depends, HTTPException, Request

from astral_forecast.api.v1.schemas import (
    AlertSchema,
    AlertsRequest,
    AlertsResponse,
    AnalysisResponse,
    HealthScoreRequest,
    HealthScoreResponse,
    OccurrenceSchema,
    OccurrencesResponse,
)
from astral_forecast.api.dependencies import (
    get_health_config,
    get_history_repository,
    get_records_client,
    get_request_id,
)
from astral_forecast.config import settings
from astral_forecast.domain.alerts import generate_alerts
from astral_forecast.domain.cycles import monthly_total_cents, project_occurrences
from astral_forecast.domain.exceptions import RecordsAPIError
from astral_forecast.domain.health import HealthScoreConfig, calculate_health_score
from astral_forecast.domain.models import BillHistoryEntry, Severity, Transaction
from astral_forecast.infrastructure.clients.records import RecordsClient
from astral_forecast.infrastructure.database.repositories import BillHistoryRepository
from astral_forecast.infrastructure.observability.logging import log_analysis
from astral_forecast.infrastructure.observability.metrics import (
    analysis_counter,
    invalid_cadence_counter,
    record_alerts,
    record_health_score,
    records_fetch_failures_counter,
)
from astral_forecast.utils.date_utils import trailing_window, upcoming_window

router = APIRouter()


def _between(transactions: Iterable[Transaction], start, end) -> List[Transaction]:
    return [t for t in transactions if start <= t.date <= end]


@router.post("/health-score", response_model=HealthScoreResponse)
def create_health_score(
    request_body: HealthScoreRequest,
    config: HealthScoreConfig = Depends(get_health_config),
):
    """Score the posted snapshot from 0 to 100 with per-factor deductions"""
    result = calculate_health_score(
        balance_cents=request_body.balance_cents,
        recent_transactions=[t.to_domain() for t in request_body.transactions],
        upcoming_obligation_total_cents=request_body.upcoming_obligation_total_cents,
        bills=[b.to_domain() for b in request_body.bills],
        config=config,
    )
    record_health_score(result.score)
    return HealthScoreResponse.model_validate(result)


@router.post("/alerts", response_model=AlertsResponse)
def create_alerts(request_body: AlertsRequest):
    """Alerts for the posted snapshot, most urgent first"""
    alerts = generate_alerts(
        balance_cents=request_body.balance_cents,
        expenses=[t.to_domain() for t in request_body.expenses],
        income=[t.to_domain() for t in request_body.income],
        upcoming_obligation_total_cents=request_body.upcoming_obligation_total_cents,
        goals=[g.to_domain() for g in request_body.goals],
        as_of=request_body.as_of,
    )
    record_alerts(alerts)
    return AlertsResponse(alerts=[AlertSchema.model_validate(a) for a in alerts])


@router.get("/analysis/{user_id}", response_model=AnalysisResponse)
async def get_analysis(
    user_id: str,
    request: Request,
    records_client: RecordsClient = Depends(get_records_client),
    repository: BillHistoryRepository = Depends(get_history_repository),
    config: HealthScoreConfig = Depends(get_health_config),
):
    """
    Full analysis of a user's current finances.

    Flow:
    1. Fetch balance, transactions, goals and recurring bills from the records service
    2. Project recurring bills over the upcoming window
    3. Collect recorded bills due in the trailing and upcoming windows
    4. Score health and generate alerts
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        snapshot = await records_client.get_snapshot(user_id)
    except RecordsAPIError as e:
        records_fetch_failures_counter.inc()
        logging.error(f"Records API error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Records service unavailable")

    as_of = datetime.now(timezone.utc)
    today = as_of.date()
    upcoming_start, upcoming_end = upcoming_window(today, settings.projection_window_days)
    trailing_start, _ = trailing_window(today, settings.trailing_window_days)

    projection = project_occurrences(snapshot.obligations, upcoming_start, upcoming_end)
    if projection.invalid_obligations:
        invalid_cadence_counter.inc(len(projection.invalid_obligations))

    bills: List[BillHistoryEntry] = [
        entry
        for obligation in snapshot.obligations
        for entry in repository.list_entries(obligation.obligation_id)
        if trailing_start <= entry.bill_date <= upcoming_end
    ]

    recent = _between(snapshot.expenses + snapshot.income, trailing_start, today)
    health = calculate_health_score(
        balance_cents=snapshot.balance_cents,
        recent_transactions=recent,
        upcoming_obligation_total_cents=projection.total_cents,
        bills=bills,
        config=config,
    )
    alerts = generate_alerts(
        balance_cents=snapshot.balance_cents,
        expenses=snapshot.expenses,
        income=snapshot.income,
        upcoming_obligation_total_cents=projection.total_cents,
        goals=snapshot.goals,
        as_of=as_of,
    )

    analysis_counter.labels(kind="snapshot").inc()
    record_health_score(health.score)
    record_alerts(alerts)
    duration_ms = (time.time() - start_time) * 1000
    log_analysis(
        request_id,
        user_id,
        health.score,
        len(alerts),
        sum(1 for a in alerts if a.severity == Severity.CRITICAL),
        duration_ms,
    )

    return AnalysisResponse(
        user_id=user_id,
        balance_cents=snapshot.balance_cents,
        health=HealthScoreResponse.model_validate(health),
        alerts=[AlertSchema.model_validate(a) for a in alerts],
        upcoming=OccurrencesResponse(
            occurrences=[OccurrenceSchema.model_validate(o) for o in projection.occurrences],
            total_cents=projection.total_cents,
            invalid_obligations=projection.invalid_obligations,
        ),
        monthly_obligations_cents=monthly_total_cents(snapshot.obligations),
    )
