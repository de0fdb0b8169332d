"""Next-bill estimation and variance pattern analysis for variable recurring bills"""

import statistics
from dataclasses import dataclass, field
from datetime import date
from typing import List, Sequence

from astral_forecast.domain.models import BillHistoryEntry, RecurringObligation

ESTIMATION_METHODS = ("auto", "last_bill", "average", "seasonal", "trend")

# Bills whose amount follows the weather
SEASONAL_KEYWORDS = ("electric", "gas", "heating", "cooling")


@dataclass
class BillEstimate:
    """Expected amount of the next bill and a plausible range around it"""

    estimated_cents: int
    confidence: str  # "low" | "medium" | "high"
    reason: str
    range_min_cents: int
    range_max_cents: int


@dataclass
class VarianceAnalysis:
    variance_type: str  # "stable" | "seasonal" | "volatile"
    analysis: str
    recommendations: List[str] = field(default_factory=list)


@dataclass
class BillAnomaly:
    is_anomaly: bool
    severity: str  # "low" | "medium" | "high"
    message: str
    suggested_action: str


def _amounts(history: Sequence[BillHistoryEntry]) -> List[int]:
    return [e.actual_amount_cents for e in history]


def _spread_cents(obligation: RecurringObligation, history: Sequence[BillHistoryEntry]) -> float:
    """One population standard deviation of past amounts, 20% of nominal without history"""
    if not history:
        return obligation.amount_cents * 0.2
    return statistics.pstdev(_amounts(history))


def _is_seasonal(obligation: RecurringObligation) -> bool:
    name = obligation.name.lower()
    return any(keyword in name for keyword in SEASONAL_KEYWORDS)


def _linear_trend(values: Sequence[int]) -> float:
    """Least-squares slope of values against their index"""
    n = len(values)
    if n < 2:
        return 0.0
    x_sum = n * (n - 1) / 2
    x2_sum = n * (n - 1) * (2 * n - 1) / 6
    y_sum = sum(values)
    xy_sum = sum(i * v for i, v in enumerate(values))
    return (n * xy_sum - x_sum * y_sum) / (n * x2_sum - x_sum * x_sum)


def _estimate(amount: float, spread: float, confidence: str, reason: str) -> BillEstimate:
    return BillEstimate(
        estimated_cents=round(max(0.0, amount)),
        confidence=confidence,
        reason=reason,
        range_min_cents=round(max(0.0, amount - spread)),
        range_max_cents=round(amount + spread),
    )


def _from_last_bill(obligation, history) -> BillEstimate:
    ordered = sorted(history, key=lambda e: e.bill_date, reverse=True)
    amount = ordered[0].actual_amount_cents if ordered else obligation.amount_cents
    confidence = "medium" if ordered else "low"
    return _estimate(amount, _spread_cents(obligation, history), confidence, "Based on most recent bill")


def _from_average(obligation, history) -> BillEstimate:
    count = len(history)
    amount = statistics.fmean(_amounts(history)) if history else obligation.amount_cents
    if count > 3:
        confidence = "high"
    elif count > 1:
        confidence = "medium"
    else:
        confidence = "low"
    return _estimate(amount, _spread_cents(obligation, history), confidence, f"Based on {count} bill average")


def _from_seasonal(obligation, history, today: date) -> BillEstimate:
    if len(history) < 6:
        return _from_average(obligation, history)

    same_month = [e.actual_amount_cents for e in history if e.bill_date.month == today.month]
    if not same_month:
        return _from_average(obligation, history)

    return _estimate(
        statistics.fmean(same_month),
        _spread_cents(obligation, history),
        "high" if len(same_month) > 1 else "medium",
        f"Based on {len(same_month)} bills from same month",
    )


def _from_trend(obligation, history) -> BillEstimate:
    if len(history) < 3:
        return _from_average(obligation, history)

    recent = sorted(history, key=lambda e: e.bill_date, reverse=True)[:6]
    amounts = [e.actual_amount_cents for e in reversed(recent)]  # oldest to newest
    projected = amounts[-1] + _linear_trend(amounts)

    return _estimate(
        projected,
        _spread_cents(obligation, history),
        "medium" if len(recent) > 3 else "low",
        f"Based on {len(recent)}-bill trend analysis",
    )


def estimate_next_amount(
    obligation: RecurringObligation,
    history: Sequence[BillHistoryEntry],
    method: str = "auto",
    today: date | None = None,
) -> BillEstimate:
    """
    Estimate the next bill of a recurring obligation from its history.

    Methods:
    - last_bill: most recent actual amount
    - average: mean of all actual amounts
    - seasonal: mean of bills from the current calendar month (needs 6+ bills)
    - trend: last amount plus the linear trend of the last 6 bills (needs 3+)
    - auto: nominal amount without history, last bill with fewer than 3,
      seasonal for utility-like names with more than 6, average otherwise

    The range is one standard deviation of past amounts either side
    (20% of the nominal amount without history).
    """
    if method not in ESTIMATION_METHODS:
        raise ValueError(f"Unknown estimation method {method!r}")

    today = today or date.today()

    if method == "last_bill":
        return _from_last_bill(obligation, history)
    if method == "average":
        return _from_average(obligation, history)
    if method == "seasonal":
        return _from_seasonal(obligation, history, today)
    if method == "trend":
        return _from_trend(obligation, history)

    if not history:
        return _estimate(
            obligation.amount_cents,
            obligation.amount_cents * 0.2,
            "low",
            "Insufficient history - using nominal amount",
        )
    if len(history) < 3:
        return _from_last_bill(obligation, history)
    if _is_seasonal(obligation) and len(history) > 6:
        return _from_seasonal(obligation, history, today)
    return _from_average(obligation, history)


def classify_variance(obligation: RecurringObligation, history: Sequence[BillHistoryEntry]) -> VarianceAnalysis:
    """Classify how much an obligation's amounts move, by coefficient of variation"""
    if len(history) < 3:
        return VarianceAnalysis(
            variance_type="stable",
            analysis="Insufficient data for variance analysis",
            recommendations=["Add more bill history to improve predictions"],
        )

    mean = statistics.fmean(_amounts(history))
    cv = _spread_cents(obligation, history) / mean if mean > 0 else 0.0

    if cv < 0.1:
        return VarianceAnalysis(
            variance_type="stable",
            analysis="Bill amounts are very consistent",
            recommendations=["Consider using the nominal amount as the estimate"],
        )
    if cv < 0.3:
        if _is_seasonal(obligation):
            return VarianceAnalysis(
                variance_type="seasonal",
                analysis="Bill shows moderate variance, likely seasonal",
                recommendations=[
                    "Consider using seasonal estimation method",
                    "Track bills for full year to identify patterns",
                ],
            )
        return VarianceAnalysis(
            variance_type="stable",
            analysis="Bill amounts have moderate but manageable variance",
            recommendations=["Average estimation method works well for this bill"],
        )
    return VarianceAnalysis(
        variance_type="volatile",
        analysis="Bill amounts vary significantly",
        recommendations=[
            "Review bill details to understand variance causes",
            "Consider budgeting with higher buffer",
            "Track usage patterns if applicable",
        ],
    )


def check_for_anomaly(
    obligation: RecurringObligation,
    history: Sequence[BillHistoryEntry],
    proposed_amount_cents: int,
    today: date | None = None,
) -> BillAnomaly:
    """Compare a newly billed amount against the estimate for this obligation"""
    estimate = estimate_next_amount(obligation, history, today=today)
    expected = estimate.estimated_cents
    difference = proposed_amount_cents - expected
    percent = abs(difference) / expected * 100 if expected > 0 else 0.0
    direction = "higher" if difference > 0 else "lower"

    if percent < 15:
        return BillAnomaly(False, "low", "Amount is within normal range", "No action needed")
    if percent < 40:
        return BillAnomaly(
            True,
            "medium",
            f"Amount is {percent:.0f}% {direction} than expected",
            "Review bill for unusual charges",
        )
    return BillAnomaly(
        True,
        "high",
        f"Amount is {percent:.0f}% {direction} than expected - unusual",
        "Carefully review bill details and contact provider if necessary",
    )
