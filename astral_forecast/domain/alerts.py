"""Alert engine - derives prioritized risk and progress alerts from a financial snapshot"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from astral_forecast.domain.models import Alert, Goal, Severity, Transaction
from astral_forecast.utils.date_utils import trailing_window
from astral_forecast.utils.money import format_dollars


@dataclass(frozen=True)
class AlertThresholds:
    """Trigger levels for the alert rules"""

    window_days: int = 30
    week_days: int = 7
    weeks_per_month: float = 4.33
    critical_balance_days: int = 7
    bill_strain_ratio: float = 0.8  # upcoming bills vs balance
    emergency_fund_months: int = 3
    emergency_fund_low_ratio: float = 0.3
    emergency_fund_progress_ratio: float = 0.5
    spending_spike_ratio: float = 1.5
    controlled_spending_ratio: float = 0.8
    category_income_ratio: float = 0.4
    runway_days: int = 30
    low_savings_percent: float = 10.0
    excellent_savings_percent: float = 20.0
    goal_behind_months: float = 3.0
    goal_behind_progress_percent: float = 75.0
    goal_almost_complete_percent: float = 90.0


DEFAULT_THRESHOLDS = AlertThresholds()


@dataclass
class AlertContext:
    """Figures shared by every rule, computed once per analysis"""

    balance_cents: int
    upcoming_total_cents: int
    goals: Sequence[Goal]
    as_of: datetime
    thresholds: AlertThresholds
    monthly_expenses_cents: int = 0
    monthly_income_cents: int = 0
    weekly_spending_cents: int = 0
    category_totals: Dict[str, int] = field(default_factory=dict)
    income_sources: Dict[str, int] = field(default_factory=dict)

    @property
    def today(self) -> date:
        return self.as_of.date()

    @property
    def avg_daily_spending(self) -> float:
        return self.monthly_expenses_cents / self.thresholds.window_days

    @property
    def avg_weekly_spending(self) -> float:
        return self.monthly_expenses_cents / self.thresholds.weeks_per_month

    @property
    def emergency_fund_target(self) -> int:
        return self.monthly_expenses_cents * self.thresholds.emergency_fund_months

    @property
    def savings_rate(self) -> Optional[float]:
        """Percent of income kept; None without both income and expenses"""
        if self.monthly_income_cents <= 0 or self.monthly_expenses_cents <= 0:
            return None
        return (self.monthly_income_cents - self.monthly_expenses_cents) / self.monthly_income_cents * 100

    def alert(self, alert_id: str, severity: Severity, title: str, message: str) -> Alert:
        return Alert(
            alert_id=alert_id,
            severity=severity,
            title=title,
            message=message,
            generated_at=self.as_of,
        )


def build_context(
    balance_cents: int,
    expenses: Iterable[Transaction],
    income: Iterable[Transaction],
    upcoming_total_cents: int,
    goals: Sequence[Goal],
    as_of: datetime,
    thresholds: AlertThresholds = DEFAULT_THRESHOLDS,
) -> AlertContext:
    """Aggregate the trailing window and the trailing week of transactions"""
    today = as_of.date()
    window_start, _ = trailing_window(today, thresholds.window_days)
    week_start, _ = trailing_window(today, thresholds.week_days)

    ctx = AlertContext(
        balance_cents=balance_cents,
        upcoming_total_cents=upcoming_total_cents,
        goals=goals,
        as_of=as_of,
        thresholds=thresholds,
    )

    categories: Dict[str, int] = defaultdict(int)
    for txn in expenses:
        if not window_start <= txn.date <= today:
            continue
        ctx.monthly_expenses_cents += txn.amount_cents
        categories[txn.category or "other"] += txn.amount_cents
        if txn.date >= week_start:
            ctx.weekly_spending_cents += txn.amount_cents

    sources: Dict[str, int] = defaultdict(int)
    for txn in income:
        if not window_start <= txn.date <= today:
            continue
        ctx.monthly_income_cents += txn.amount_cents
        sources[txn.category or "other"] += txn.amount_cents

    ctx.category_totals = dict(categories)
    ctx.income_sources = dict(sources)
    return ctx


AlertRule = Callable[[AlertContext], Iterable[Alert]]

RULES: List[AlertRule] = []


def rule(func: AlertRule) -> AlertRule:
    """Register an alert rule"""
    RULES.append(func)
    return func


# CRITICAL


@rule
def critical_balance(ctx: AlertContext) -> Iterable[Alert]:
    daily = ctx.avg_daily_spending
    if daily > 0 and ctx.balance_cents < daily * ctx.thresholds.critical_balance_days:
        days_left = max(0, int(ctx.balance_cents // daily))
        yield ctx.alert(
            "critical_balance",
            Severity.CRITICAL,
            "Critical Balance Alert",
            f"Only {days_left} days of spending left at current rate "
            f"({format_dollars(ctx.balance_cents)} balance, {format_dollars(round(daily))}/day)",
        )


@rule
def bill_strain(ctx: AlertContext) -> Iterable[Alert]:
    upcoming = ctx.upcoming_total_cents
    if upcoming > 0 and upcoming > ctx.balance_cents * ctx.thresholds.bill_strain_ratio:
        yield ctx.alert(
            "bill_strain",
            Severity.CRITICAL,
            "Upcoming Bills Warning",
            f"{format_dollars(ctx.upcoming_total_cents)} in upcoming bills will strain "
            f"your {format_dollars(ctx.balance_cents)} balance",
        )


@rule
def negative_cashflow(ctx: AlertContext) -> Iterable[Alert]:
    if ctx.monthly_income_cents > 0 and ctx.monthly_expenses_cents > ctx.monthly_income_cents:
        deficit = ctx.monthly_expenses_cents - ctx.monthly_income_cents
        yield ctx.alert(
            "negative_cashflow",
            Severity.CRITICAL,
            "Negative Cash Flow",
            f"Spending {format_dollars(deficit)} more than earning over the last "
            f"{ctx.thresholds.window_days} days",
        )


# HIGH


@rule
def emergency_fund_low(ctx: AlertContext) -> Iterable[Alert]:
    target = ctx.emergency_fund_target
    if target > 0 and ctx.balance_cents < target * ctx.thresholds.emergency_fund_low_ratio:
        yield ctx.alert(
            "emergency_fund_low",
            Severity.HIGH,
            "Emergency Fund Critical",
            f"Need {format_dollars(target - ctx.balance_cents)} more for a "
            f"{ctx.thresholds.emergency_fund_months}-month emergency fund",
        )


@rule
def high_spending_week(ctx: AlertContext) -> Iterable[Alert]:
    weekly, average = ctx.weekly_spending_cents, ctx.avg_weekly_spending
    if weekly > 0 and weekly >= average * ctx.thresholds.spending_spike_ratio:
        above = (weekly / average - 1) * 100
        yield ctx.alert(
            "high_spending_week",
            Severity.HIGH,
            "High Spending Period",
            f"This week's {format_dollars(weekly)} is {above:.0f}% above your weekly "
            f"average of {format_dollars(round(average))}",
        )


@rule
def category_dominance(ctx: AlertContext) -> Iterable[Alert]:
    if ctx.monthly_income_cents <= 0 or not ctx.category_totals:
        return
    category, amount = max(ctx.category_totals.items(), key=lambda item: (item[1], item[0]))
    if amount > ctx.monthly_income_cents * ctx.thresholds.category_income_ratio:
        share = amount / ctx.monthly_income_cents * 100
        yield ctx.alert(
            "category_dominance",
            Severity.HIGH,
            "Category Alert",
            f"{category} consumes {share:.0f}% of income ({format_dollars(amount)}) - focus reduction here",
        )


# MEDIUM


@rule
def balance_runway(ctx: AlertContext) -> Iterable[Alert]:
    daily = ctx.avg_daily_spending
    if daily > 0 and ctx.balance_cents / daily < ctx.thresholds.runway_days:
        days_left = max(0, int(ctx.balance_cents // daily))
        yield ctx.alert(
            "balance_runway",
            Severity.MEDIUM,
            "Balance Runway",
            f"Current balance will last {days_left} days at current spending rate",
        )


@rule
def low_savings_rate(ctx: AlertContext) -> Iterable[Alert]:
    rate = ctx.savings_rate
    if rate is not None and 0 < rate < ctx.thresholds.low_savings_percent:
        yield ctx.alert(
            "low_savings_rate",
            Severity.MEDIUM,
            "Savings Rate Alert",
            f"{rate:.1f}% savings rate is below the recommended "
            f"{ctx.thresholds.low_savings_percent:.0f}-{ctx.thresholds.excellent_savings_percent:.0f}% target",
        )


@rule
def income_diversification(ctx: AlertContext) -> Iterable[Alert]:
    if len(ctx.income_sources) == 1:
        source = next(iter(ctx.income_sources))
        yield ctx.alert(
            "income_diversification",
            Severity.MEDIUM,
            "Income Diversification",
            f"All {format_dollars(ctx.monthly_income_cents)} of recent income comes from "
            f"{source} - consider adding backup income streams",
        )


@rule
def goal_behind_schedule(ctx: AlertContext) -> Iterable[Alert]:
    for goal in ctx.goals:
        if goal.deadline is None or goal.target_cents <= 0:
            continue
        months_left = max(0.0, (goal.deadline - ctx.today).days / 30)
        progress = goal.progress_percent
        if months_left < ctx.thresholds.goal_behind_months and progress < ctx.thresholds.goal_behind_progress_percent:
            remaining = goal.target_cents - goal.current_cents
            monthly_required = remaining / months_left if months_left > 0 else remaining
            yield ctx.alert(
                f"goal_behind_schedule:{goal.goal_id}",
                Severity.MEDIUM,
                "Goal Behind Schedule",
                f'"{goal.title}" is {progress:.0f}% funded and needs '
                f"{format_dollars(round(monthly_required))} per month to finish by {goal.deadline.isoformat()}",
            )


# LOW / POSITIVE


@rule
def emergency_progress(ctx: AlertContext) -> Iterable[Alert]:
    target = ctx.emergency_fund_target
    if target > 0 and target * ctx.thresholds.emergency_fund_progress_ratio <= ctx.balance_cents < target:
        progress = ctx.balance_cents / target * 100
        yield ctx.alert(
            "emergency_progress",
            Severity.LOW,
            "Emergency Fund Progress",
            f"{progress:.0f}% towards {ctx.thresholds.emergency_fund_months}-month emergency fund goal - keep going!",
        )


@rule
def excellent_savings(ctx: AlertContext) -> Iterable[Alert]:
    rate = ctx.savings_rate
    if rate is not None and rate >= ctx.thresholds.excellent_savings_percent:
        yield ctx.alert(
            "excellent_savings",
            Severity.LOW,
            "Outstanding Savings Rate",
            f"{rate:.1f}% savings rate exceeds recommendations",
        )


@rule
def controlled_spending(ctx: AlertContext) -> Iterable[Alert]:
    weekly, average = ctx.weekly_spending_cents, ctx.avg_weekly_spending
    if weekly > 0 and weekly <= average * ctx.thresholds.controlled_spending_ratio:
        below = (1 - weekly / average) * 100
        yield ctx.alert(
            "controlled_spending",
            Severity.LOW,
            "Controlled Spending",
            f"This week's {format_dollars(weekly)} is {below:.0f}% below your weekly average",
        )


@rule
def financial_health(ctx: AlertContext) -> Iterable[Alert]:
    target = ctx.emergency_fund_target
    if ctx.monthly_income_cents > ctx.monthly_expenses_cents and ctx.balance_cents > target:
        surplus = ctx.monthly_income_cents - ctx.monthly_expenses_cents
        yield ctx.alert(
            "financial_health",
            Severity.LOW,
            "Excellent Financial Health",
            f"Emergency fund complete + {format_dollars(surplus)}/mo surplus. Consider investment opportunities",
        )


@rule
def goal_almost_complete(ctx: AlertContext) -> Iterable[Alert]:
    for goal in ctx.goals:
        remaining = goal.target_cents - goal.current_cents
        if remaining > 0 and goal.progress_percent > ctx.thresholds.goal_almost_complete_percent:
            yield ctx.alert(
                f"goal_almost_complete:{goal.goal_id}",
                Severity.LOW,
                "Goal Almost Complete",
                f'You\'re {goal.progress_percent:.1f}% of the way to "{goal.title}". '
                f"Only {format_dollars(remaining)} to go!",
            )


def generate_alerts(
    balance_cents: int,
    expenses: Iterable[Transaction],
    income: Iterable[Transaction],
    upcoming_obligation_total_cents: int,
    goals: Sequence[Goal] = (),
    as_of: datetime | None = None,
    thresholds: AlertThresholds = DEFAULT_THRESHOLDS,
    rules: Sequence[AlertRule] | None = None,
) -> List[Alert]:
    """
    Main entry point: evaluate every alert rule against the current snapshot.

    Each rule is independent and stateless. Alerts are deduplicated by id and
    returned most urgent first (critical, high, medium, low), ties broken by id
    so the order never depends on which rule ran first.
    """
    as_of = as_of or datetime.now(timezone.utc)
    ctx = build_context(balance_cents, expenses, income, upcoming_obligation_total_cents, goals, as_of, thresholds)

    alerts: Dict[str, Alert] = {}
    for alert_rule in RULES if rules is None else rules:
        for alert in alert_rule(ctx):
            alerts.setdefault(alert.alert_id, alert)

    return sorted(alerts.values(), key=lambda a: (a.priority, a.alert_id))
