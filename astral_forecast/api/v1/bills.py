"""Recurring obligation bill history endpoints - record, amend and summarise bills"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from astral_forecast.api.v1.schemas import (
    AnomalySchema,
    BillAmendRequest,
    BillHistoryEntrySchema,
    BillInstanceRequest,
    EstimateResponse,
    HistoryResponse,
    ObligationDefinition,
    ObligationSchema,
    StatisticsResponse,
)
from astral_forecast.api.dependencies import get_history_repository, get_request_id, get_variance_tracker
from astral_forecast.infrastructure.database.session import get_db
from astral_forecast.infrastructure.database.repositories import BillHistoryRepository
from astral_forecast.domain.estimation import (
    ESTIMATION_METHODS,
    check_for_anomaly,
    classify_variance,
    estimate_next_amount,
)
from astral_forecast.domain.exceptions import InvalidObligationError, NotFoundError
from astral_forecast.domain.variance import VarianceTracker
from astral_forecast.infrastructure.observability.metrics import bill_recorded_counter
from astral_forecast.infrastructure.observability.logging import log_bill_recorded

router = APIRouter()


@router.put("/obligations/{obligation_id}", response_model=ObligationSchema)
def put_obligation(
    obligation_id: str,
    request_body: ObligationDefinition,
    db: Session = Depends(get_db),
    repository: BillHistoryRepository = Depends(get_history_repository),
    request_id: str = Depends(get_request_id),
):
    """Register or refresh an obligation definition pushed by the records service"""
    try:
        obligation = request_body.to_domain(obligation_id)
    except InvalidObligationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        repository.upsert_obligation(obligation)
        db.commit()

    except Exception as e:
        db.rollback()
        logging.error(f"Failed to save obligation: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return ObligationSchema(obligation_id=obligation_id, **request_body.model_dump())


@router.post("/obligations/{obligation_id}/history", response_model=BillHistoryEntrySchema, status_code=201)
def record_bill(
    obligation_id: str,
    request_body: BillInstanceRequest,
    db: Session = Depends(get_db),
    tracker: VarianceTracker = Depends(get_variance_tracker),
    request_id: str = Depends(get_request_id),
):
    """
    Record one billing event and refresh the obligation's statistics.

    Entry insert and statistics update are committed together.
    """
    try:
        entry = tracker.record_instance(obligation_id, **request_body.model_dump())
        db.commit()

    except NotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Failed to record bill: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    bill_recorded_counter.labels(operation="record").inc()
    log_bill_recorded(request_id, obligation_id, entry.entry_id, entry.variance_cents, entry.variance_percent)
    return BillHistoryEntrySchema.model_validate(entry)


@router.patch("/history/{entry_id}", response_model=BillHistoryEntrySchema)
def amend_bill(
    entry_id: str,
    request_body: BillAmendRequest,
    db: Session = Depends(get_db),
    tracker: VarianceTracker = Depends(get_variance_tracker),
    request_id: str = Depends(get_request_id),
):
    """Correct amounts or paid status; variance and statistics are recomputed"""
    try:
        entry = tracker.amend_instance(entry_id, **request_body.model_dump(exclude_unset=True))
        db.commit()

    except NotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Failed to amend bill: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    bill_recorded_counter.labels(operation="amend").inc()
    log_bill_recorded(request_id, entry.obligation_id, entry.entry_id, entry.variance_cents, entry.variance_percent)
    return BillHistoryEntrySchema.model_validate(entry)


@router.get("/obligations/{obligation_id}/history", response_model=HistoryResponse)
def get_history(obligation_id: str, tracker: VarianceTracker = Depends(get_variance_tracker)):
    """Bill history, most recent first"""
    try:
        entries = tracker.history(obligation_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return HistoryResponse(
        obligation_id=obligation_id,
        entries=[BillHistoryEntrySchema.model_validate(e) for e in entries],
    )


@router.get("/obligations/{obligation_id}/statistics", response_model=StatisticsResponse)
def get_statistics(obligation_id: str, tracker: VarianceTracker = Depends(get_variance_tracker)):
    """Average, min, max and most recent bill amount"""
    try:
        statistics = tracker.get_statistics(obligation_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return StatisticsResponse.model_validate(statistics)


@router.get("/obligations/{obligation_id}/estimate", response_model=EstimateResponse)
def get_estimate(
    obligation_id: str,
    method: str = Query("auto", description=" | ".join(ESTIMATION_METHODS)),
    proposed_amount_cents: Optional[int] = Query(None, ge=0, description="Billed amount to check for anomalies"),
    repository: BillHistoryRepository = Depends(get_history_repository),
):
    """
    Estimate the next bill and describe how much this obligation varies.

    With `proposed_amount_cents`, also report whether that amount is
    unusually far from the estimate.
    """
    if method not in ESTIMATION_METHODS:
        raise HTTPException(status_code=422, detail=f"Unknown estimation method {method!r}")

    obligation = repository.get_obligation(obligation_id)
    if obligation is None:
        raise HTTPException(status_code=404, detail=f"Recurring obligation {obligation_id} not found")

    history = repository.list_entries(obligation_id)
    estimate = estimate_next_amount(obligation, history, method=method)
    variance = classify_variance(obligation, history)
    anomaly = None
    if proposed_amount_cents is not None:
        anomaly = AnomalySchema.model_validate(check_for_anomaly(obligation, history, proposed_amount_cents))

    return EstimateResponse(
        obligation_id=obligation_id,
        method=method,
        estimated_cents=estimate.estimated_cents,
        confidence=estimate.confidence,
        reason=estimate.reason,
        range_min_cents=estimate.range_min_cents,
        range_max_cents=estimate.range_max_cents,
        variance_type=variance.variance_type,
        analysis=variance.analysis,
        recommendations=variance.recommendations,
        anomaly=anomaly,
    )
