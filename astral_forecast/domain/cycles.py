"""Recurring obligation expansion - turns cadence definitions into dated occurrences"""

import logging
from datetime import date, timedelta
from typing import Iterable, List

from dateutil.relativedelta import relativedelta

from astral_forecast.domain.exceptions import InvalidCadenceError
from astral_forecast.domain.models import Cadence, ProjectedOccurrence, ProjectionResult, RecurringObligation

DAY_STEPS = {Cadence.WEEKLY: 7, Cadence.BIWEEKLY: 14}
MONTH_STEPS = {Cadence.MONTHLY: 1, Cadence.QUARTERLY: 3, Cadence.YEARLY: 12}

# Occurrences per month, used to normalise bills to a monthly cost
MONTHLY_FACTORS = {
    Cadence.WEEKLY: 4.33,
    Cadence.BIWEEKLY: 2.17,
    Cadence.MONTHLY: 1.0,
    Cadence.QUARTERLY: 1 / 3,
    Cadence.YEARLY: 1 / 12,
}


def parse_cadence(obligation: RecurringObligation) -> Cadence:
    """Resolve the obligation's raw cadence string, raising InvalidCadenceError if unknown"""
    try:
        return Cadence(str(obligation.cadence).strip().lower())
    except ValueError:
        raise InvalidCadenceError(obligation.obligation_id, obligation.cadence) from None


def _nth_due_date(first: date, cadence: Cadence, n: int, day_of_month: int) -> date:
    if cadence in DAY_STEPS:
        return first + timedelta(days=DAY_STEPS[cadence] * n)
    if n == 0:
        return first
    # relativedelta clamps day_of_month to the target month's last day
    return first + relativedelta(months=MONTH_STEPS[cadence] * n, day=day_of_month)


def expand_occurrences(
    obligation: RecurringObligation,
    window_start: date,
    window_end: date,
) -> List[ProjectedOccurrence]:
    """
    Expand one obligation into its due dates inside [window_start, window_end].

    The first due date is max(obligation.start_date, window_start). Later dates
    add 7/14 days for weekly/biweekly, or 1/3/12 calendar months for
    monthly/quarterly/yearly on the start_date day-of-month (clamped to the
    month's last day).

    Returns:
        Occurrences in ascending date order, empty for inactive obligations or
        when the window misses the obligation's active range

    Raises:
        InvalidCadenceError: cadence is not a supported recurrence rule
    """
    if not obligation.is_active or window_start > window_end:
        return []
    if obligation.end_date is not None and window_start > obligation.end_date:
        return []
    if window_end < obligation.start_date:
        return []

    cadence = parse_cadence(obligation)

    first = max(obligation.start_date, window_start)
    limit = window_end if obligation.end_date is None else min(window_end, obligation.end_date)

    occurrences = []
    index = 0
    previous = None

    while True:
        candidate = _nth_due_date(first, cadence, index, obligation.start_date.day)

        # Forward-progress guard
        if previous is not None and candidate <= previous:
            logging.warning(
                "Cadence did not advance, stopping expansion",
                extra={
                    "obligation_id": obligation.obligation_id,
                    "cadence": cadence.value,
                    "candidate": candidate.isoformat(),
                },
            )
            break

        if candidate > limit:
            break

        occurrences.append(
            ProjectedOccurrence(
                obligation_id=obligation.obligation_id,
                due_date=candidate,
                amount_cents=obligation.amount_cents,
            )
        )

        previous = candidate
        index += 1

    return occurrences


def project_occurrences(
    obligations: Iterable[RecurringObligation],
    window_start: date,
    window_end: date,
) -> ProjectionResult:
    """
    Expand a batch of obligations.

    Obligations with an unsupported cadence contribute no occurrences and are
    reported in `invalid_obligations` so callers can surface a configuration
    error instead of silently under-projecting bills.
    """
    result = ProjectionResult()

    for obligation in obligations:
        try:
            result.occurrences.extend(expand_occurrences(obligation, window_start, window_end))
        except InvalidCadenceError as e:
            logging.warning(str(e), extra={"obligation_id": e.obligation_id, "cadence": e.cadence})
            result.invalid_obligations.append(obligation.obligation_id)

    result.occurrences.sort(key=lambda o: (o.due_date, o.obligation_id))
    return result


def upcoming_total_cents(occurrences: Iterable[ProjectedOccurrence]) -> int:
    """Sum of occurrence amounts"""
    return sum(o.amount_cents for o in occurrences)


def monthly_equivalent_cents(obligation: RecurringObligation) -> int:
    """Normalised monthly cost of an obligation (weekly x4.33, yearly /12, ...)"""
    cadence = parse_cadence(obligation)
    return round(obligation.amount_cents * MONTHLY_FACTORS[cadence])


def monthly_total_cents(obligations: Iterable[RecurringObligation]) -> int:
    """Monthly cost of the active obligations; unsupported cadences contribute nothing"""
    total = 0
    for obligation in obligations:
        if not obligation.is_active:
            continue
        try:
            total += monthly_equivalent_cents(obligation)
        except InvalidCadenceError as e:
            logging.warning(str(e), extra={"obligation_id": e.obligation_id, "cadence": e.cadence})
    return total
