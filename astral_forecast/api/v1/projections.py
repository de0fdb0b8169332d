"""POST /v1/occurrences - expand recurring obligations into due dates"""

import logging
from fastapi import APIRouter, Depends, HTTPException

from astral_forecast.api.v1.schemas import OccurrencesRequest, OccurrencesResponse, OccurrenceSchema
from astral_forecast.api.dependencies import get_request_id
from astral_forecast.domain.cycles import project_occurrences
from astral_forecast.domain.exceptions import InvalidObligationError
from astral_forecast.infrastructure.observability.metrics import invalid_cadence_counter

router = APIRouter()


@router.post("/occurrences", response_model=OccurrencesResponse)
def create_projection(request_body: OccurrencesRequest, request_id: str = Depends(get_request_id)):
    """
    Project the occurrences of the posted obligations inside the window.

    Obligations with an unsupported cadence are listed in
    `invalid_obligations` instead of failing the whole request.
    """
    try:
        obligations = [o.to_domain() for o in request_body.obligations]
    except InvalidObligationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    result = project_occurrences(obligations, request_body.window_start, request_body.window_end)

    if result.invalid_obligations:
        invalid_cadence_counter.inc(len(result.invalid_obligations))
        logging.warning(
            "Obligations skipped during projection",
            extra={"request_id": request_id, "obligation_ids": result.invalid_obligations},
        )

    return OccurrencesResponse(
        occurrences=[OccurrenceSchema.model_validate(o) for o in result.occurrences],
        total_cents=result.total_cents,
        invalid_obligations=result.invalid_obligations,
    )
