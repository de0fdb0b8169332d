"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from astral_forecast.domain.exceptions import InvalidObligationError


class Cadence(str, Enum):
    """Recurrence rule of an obligation"""

    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class Severity(str, Enum):
    """Alert severity; rank 0 is the most urgent"""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.CRITICAL: 0,
    Severity.HIGH: 1,
    Severity.MEDIUM: 2,
    Severity.LOW: 3,
}


@dataclass(frozen=True)
class RecurringObligation:
    """Recurring bill or subscription definition, owned by the records service"""

    obligation_id: str
    name: str
    category: str
    amount_cents: int
    cadence: str  # raw value; validated when expanded
    start_date: date
    end_date: Optional[date] = None
    is_active: bool = True

    def __post_init__(self) -> None:
        if self.amount_cents <= 0:
            raise InvalidObligationError(
                f"Obligation {self.obligation_id} amount must be positive, got {self.amount_cents}"
            )
        if self.end_date is not None and self.end_date < self.start_date:
            raise InvalidObligationError(
                f"Obligation {self.obligation_id} ends ({self.end_date}) before it starts ({self.start_date})"
            )


@dataclass(frozen=True)
class BillHistoryEntry:
    """One real-world billing event of a recurring obligation"""

    entry_id: str
    obligation_id: str
    actual_amount_cents: int
    estimated_amount_cents: int
    bill_date: date
    is_paid: bool = False
    paid_date: Optional[date] = None
    notes: Optional[str] = None
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None

    @property
    def variance_cents(self) -> int:
        return self.actual_amount_cents - self.estimated_amount_cents

    @property
    def variance_percent(self) -> float:
        if self.estimated_amount_cents == 0:
            return 0.0
        return self.variance_cents / self.estimated_amount_cents * 100

    def amend(self, **changes) -> "BillHistoryEntry":
        """Return a copy with corrected amounts or paid status"""
        unknown = set(changes) - AMENDABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be amended: {', '.join(sorted(unknown))}")
        return replace(self, **changes)


AMENDABLE_FIELDS = frozenset(
    {
        "actual_amount_cents",
        "estimated_amount_cents",
        "is_paid",
        "paid_date",
        "notes",
        "payment_method",
    }
)


@dataclass(frozen=True)
class ObligationStatistics:
    """Aggregates over an obligation's bill history; amounts are None without history"""

    obligation_id: str
    bill_count: int = 0
    average_cents: Optional[int] = None
    min_cents: Optional[int] = None
    max_cents: Optional[int] = None
    last_bill_amount_cents: Optional[int] = None


@dataclass(frozen=True)
class ProjectedOccurrence:
    """One dated instance of an obligation becoming due"""

    obligation_id: str
    due_date: date
    amount_cents: int


@dataclass
class ProjectionResult:
    """Occurrences for a batch of obligations plus obligations that could not be expanded"""

    occurrences: List[ProjectedOccurrence] = field(default_factory=list)
    invalid_obligations: List[str] = field(default_factory=list)

    @property
    def total_cents(self) -> int:
        return sum(o.amount_cents for o in self.occurrences)


@dataclass
class Transaction:
    """Income or expense record from the records service"""

    transaction_id: str
    date: date
    amount_cents: int
    type: str  # "income" or "expense"
    category: str
    description: str = ""


@dataclass
class Goal:
    """Savings goal progress"""

    goal_id: str
    title: str
    current_cents: int
    target_cents: int
    deadline: Optional[date] = None

    @property
    def progress_percent(self) -> float:
        if self.target_cents <= 0:
            return 0.0
        return self.current_cents / self.target_cents * 100


@dataclass
class ScoreFactor:
    """Deduction applied by one health score factor"""

    name: str
    deduction: int
    detail: str


@dataclass
class HealthScoreResult:
    """Output of the health scorer"""

    score: int
    band: str
    factors: List[ScoreFactor]

    @property
    def total_deduction(self) -> int:
        return sum(f.deduction for f in self.factors)


@dataclass(frozen=True)
class Alert:
    """A single generated risk or positive signal"""

    alert_id: str
    severity: Severity
    title: str
    message: str
    generated_at: datetime

    @property
    def priority(self) -> int:
        return self.severity.rank


@dataclass
class FinancialSnapshot:
    """Everything the records service knows about a user, as consumed by the analyzer"""

    user_id: str
    balance_cents: int
    expenses: List[Transaction] = field(default_factory=list)
    income: List[Transaction] = field(default_factory=list)
    goals: List[Goal] = field(default_factory=list)
    obligations: List[RecurringObligation] = field(default_factory=list)
