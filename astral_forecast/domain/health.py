"""Financial health scoring - core business logic for the 0-100 health score"""

from dataclasses import dataclass
from typing import Sequence, Tuple

from astral_forecast.domain.models import BillHistoryEntry, HealthScoreResult, ScoreFactor, Transaction

BASE_SCORE = 100


@dataclass(frozen=True)
class HealthScoreConfig:
    """
    Deduction tiers for each factor, checked in order; first match applies.

    - balance_tiers: (ratio upper bound, deduction), applied when balance / upcoming < bound
    - spending_tiers: (income multiplier, deduction), applied when expenses > income * multiplier
    - payment_tiers: (paid ratio upper bound, deduction), applied when paid / due < bound
    - coverage_floor_cents: smallest denominator for the balance ratio ($1)
    """

    balance_tiers: Tuple[Tuple[float, int], ...] = ((0.1, 40), (0.5, 20), (1.0, 10))
    spending_tiers: Tuple[Tuple[float, int], ...] = ((1.2, 20), (1.0, 10))
    payment_tiers: Tuple[Tuple[float, int], ...] = ((0.7, 15), (0.9, 5))
    coverage_floor_cents: int = 100


DEFAULT_CONFIG = HealthScoreConfig()


def balance_coverage_factor(
    balance_cents: int,
    upcoming_obligation_total_cents: int,
    config: HealthScoreConfig = DEFAULT_CONFIG,
) -> ScoreFactor:
    """Balance relative to what is about to be billed"""
    ratio = balance_cents / max(upcoming_obligation_total_cents, config.coverage_floor_cents)
    deduction = next((d for bound, d in config.balance_tiers if ratio < bound), 0)
    return ScoreFactor(
        name="balance_coverage",
        deduction=deduction,
        detail=f"Balance covers {ratio:.2f}x upcoming obligations",
    )


def spending_trend_factor(
    transactions: Sequence[Transaction],
    config: HealthScoreConfig = DEFAULT_CONFIG,
) -> ScoreFactor:
    """Expenses against income over the caller's window (canonically the last 30 days)"""
    income = sum(t.amount_cents for t in transactions if t.type == "income")
    expenses = sum(t.amount_cents for t in transactions if t.type == "expense")
    deduction = next((d for multiplier, d in config.spending_tiers if expenses > income * multiplier), 0)
    return ScoreFactor(
        name="spending_trend",
        deduction=deduction,
        detail=f"Expenses {expenses} vs income {income} (cents)",
    )


def payment_consistency_factor(
    bills: Sequence[BillHistoryEntry],
    config: HealthScoreConfig = DEFAULT_CONFIG,
) -> ScoreFactor:
    """Share of due bills already paid; no bills means nothing was missed"""
    total = len(bills)
    paid = sum(1 for b in bills if b.is_paid)
    paid_ratio = paid / total if total > 0 else 1.0
    deduction = next((d for bound, d in config.payment_tiers if paid_ratio < bound), 0)
    return ScoreFactor(
        name="payment_consistency",
        deduction=deduction,
        detail=f"{paid} of {total} bills paid",
    )


def score_band(score: int) -> str:
    """
    Map a score to a display band.

    - < 30: critical
    - < 50: poor
    - < 70: fair
    - < 85: good
    - else: excellent
    """
    if score < 30:
        return "critical"
    elif score < 50:
        return "poor"
    elif score < 70:
        return "fair"
    elif score < 85:
        return "good"
    else:
        return "excellent"


def calculate_health_score(
    balance_cents: int,
    recent_transactions: Sequence[Transaction],
    upcoming_obligation_total_cents: int,
    bills: Sequence[BillHistoryEntry] = (),
    config: HealthScoreConfig = DEFAULT_CONFIG,
) -> HealthScoreResult:
    """
    Main entry point: score short-term financial health from 0 to 100.

    Starts at 100 and subtracts three independent deductions (balance
    coverage, spending trend, payment consistency), then clamps. A user with
    no transactions and no bills loses nothing for the missing data.
    """
    factors = [
        balance_coverage_factor(balance_cents, upcoming_obligation_total_cents, config),
        spending_trend_factor(recent_transactions, config),
        payment_consistency_factor(bills, config),
    ]

    raw = BASE_SCORE - sum(f.deduction for f in factors)
    score = int(min(max(round(raw), 0), 100))

    return HealthScoreResult(score=score, band=score_band(score), factors=factors)
