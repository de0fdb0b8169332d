"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import date, datetime
from typing import List, Literal, Optional

from astral_forecast.domain.models import (
    BillHistoryEntry,
    Goal,
    RecurringObligation,
    Severity,
    Transaction,
)


class ObligationDefinition(BaseModel):
    """Recurring bill definition without its identifier"""

    name: str = Field(..., min_length=1)
    category: str = "other"
    amount_cents: int = Field(..., gt=0, description="Nominal amount in cents")
    cadence: str = Field(..., description="weekly | biweekly | monthly | quarterly | yearly")
    start_date: date
    end_date: Optional[date] = None
    is_active: bool = True

    def to_domain(self, obligation_id: str) -> RecurringObligation:
        return RecurringObligation(obligation_id=obligation_id, **self.model_dump())


class ObligationSchema(ObligationDefinition):
    obligation_id: str = Field(..., min_length=1)

    def to_domain(self) -> RecurringObligation:
        return RecurringObligation(**self.model_dump())


class TransactionSchema(BaseModel):
    transaction_id: str
    date: date
    amount_cents: int = Field(..., ge=0)
    type: Literal["income", "expense"]
    category: str = "other"
    description: str = ""

    def to_domain(self) -> Transaction:
        return Transaction(**self.model_dump())


class GoalSchema(BaseModel):
    goal_id: str
    title: str
    current_cents: int = Field(..., ge=0)
    target_cents: int = Field(..., ge=0)
    deadline: Optional[date] = None

    def to_domain(self) -> Goal:
        return Goal(**self.model_dump())


class BillPaymentSchema(BaseModel):
    """Paid status of one bill due in the scoring window"""

    obligation_id: str
    bill_date: date
    amount_cents: int = Field(..., ge=0)
    is_paid: bool

    def to_domain(self) -> BillHistoryEntry:
        return BillHistoryEntry(
            entry_id=f"{self.obligation_id}:{self.bill_date.isoformat()}",
            obligation_id=self.obligation_id,
            actual_amount_cents=self.amount_cents,
            estimated_amount_cents=self.amount_cents,
            bill_date=self.bill_date,
            is_paid=self.is_paid,
        )


# Occurrences


class OccurrencesRequest(BaseModel):
    """Request body for POST /v1/occurrences"""

    obligations: List[ObligationSchema]
    window_start: date
    window_end: date


class OccurrenceSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    obligation_id: str
    due_date: date
    amount_cents: int


class OccurrencesResponse(BaseModel):
    occurrences: List[OccurrenceSchema]
    total_cents: int
    invalid_obligations: List[str] = []


# Bill history


class BillInstanceRequest(BaseModel):
    """Request body for POST /v1/obligations/{obligation_id}/history"""

    actual_amount_cents: int = Field(..., ge=0)
    estimated_amount_cents: int = Field(..., ge=0)
    bill_date: date
    is_paid: bool = False
    paid_date: Optional[date] = None
    notes: Optional[str] = None
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None


class BillAmendRequest(BaseModel):
    """Request body for PATCH /v1/history/{entry_id}; only provided fields change"""

    actual_amount_cents: Optional[int] = Field(None, ge=0)
    estimated_amount_cents: Optional[int] = Field(None, ge=0)
    is_paid: Optional[bool] = None
    paid_date: Optional[date] = None
    notes: Optional[str] = None
    payment_method: Optional[str] = None

    @field_validator("actual_amount_cents", "estimated_amount_cents", "is_paid")
    @classmethod
    def reject_explicit_null(cls, v):
        """Amounts and paid status may be omitted but not cleared"""
        if v is None:
            raise ValueError("field cannot be null")
        return v


class BillHistoryEntrySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    entry_id: str
    obligation_id: str
    actual_amount_cents: int
    estimated_amount_cents: int
    variance_cents: int
    variance_percent: float
    bill_date: date
    is_paid: bool
    paid_date: Optional[date] = None
    notes: Optional[str] = None
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None


class HistoryResponse(BaseModel):
    obligation_id: str
    entries: List[BillHistoryEntrySchema]


class StatisticsResponse(BaseModel):
    """Statistics amounts are null until a bill has been recorded"""

    model_config = ConfigDict(from_attributes=True)

    obligation_id: str
    bill_count: int
    average_cents: Optional[int] = None
    min_cents: Optional[int] = None
    max_cents: Optional[int] = None
    last_bill_amount_cents: Optional[int] = None


class AnomalySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    is_anomaly: bool
    severity: str
    message: str
    suggested_action: str


class EstimateResponse(BaseModel):
    obligation_id: str
    method: str
    estimated_cents: int
    confidence: str
    reason: str
    range_min_cents: int
    range_max_cents: int
    variance_type: str
    analysis: str
    recommendations: List[str]
    anomaly: Optional[AnomalySchema] = None


# Health score and alerts


class HealthScoreRequest(BaseModel):
    """Request body for POST /v1/health-score"""

    balance_cents: int
    transactions: List[TransactionSchema] = []
    upcoming_obligation_total_cents: int = Field(0, ge=0)
    bills: List[BillPaymentSchema] = []


class ScoreFactorSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    deduction: int
    detail: str


class HealthScoreResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    score: int
    band: str
    factors: List[ScoreFactorSchema]


class AlertsRequest(BaseModel):
    """Request body for POST /v1/alerts"""

    balance_cents: int
    expenses: List[TransactionSchema] = []
    income: List[TransactionSchema] = []
    upcoming_obligation_total_cents: int = Field(0, ge=0)
    goals: List[GoalSchema] = []
    as_of: Optional[datetime] = None


class AlertSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    alert_id: str
    severity: Severity
    priority: int
    title: str
    message: str
    generated_at: datetime


class AlertsResponse(BaseModel):
    alerts: List[AlertSchema]


class AnalysisResponse(BaseModel):
    """Response for GET /v1/analysis/{user_id}"""

    user_id: str
    balance_cents: int
    health: HealthScoreResponse
    alerts: List[AlertSchema]
    upcoming: OccurrencesResponse
    monthly_obligations_cents: int = Field(0, description="Active recurring bills normalised to one month")
