"""Bill variance tracking - history of actual vs estimated amounts per recurring obligation"""

import uuid
from datetime import date
from typing import Dict, List, Optional, Protocol, Sequence

from astral_forecast.domain.exceptions import HistoryEntryNotFoundError, ObligationNotFoundError
from astral_forecast.domain.models import BillHistoryEntry, ObligationStatistics, RecurringObligation


class BillHistoryStore(Protocol):
    """Storage the tracker reads from and writes to; atomicity is the store's concern"""

    def get_obligation(self, obligation_id: str) -> Optional[RecurringObligation]: ...

    def get_entry(self, entry_id: str) -> Optional[BillHistoryEntry]: ...

    def add_entry(self, entry: BillHistoryEntry) -> BillHistoryEntry: ...

    def update_entry(self, entry: BillHistoryEntry) -> BillHistoryEntry: ...

    def list_entries(self, obligation_id: str) -> List[BillHistoryEntry]:
        """Entries for one obligation, most recent bill_date first"""
        ...

    def save_statistics(self, statistics: ObligationStatistics) -> None: ...

    def get_statistics(self, obligation_id: str) -> Optional[ObligationStatistics]: ...


def calculate_statistics(obligation_id: str, entries: Sequence[BillHistoryEntry]) -> ObligationStatistics:
    """
    Aggregate actual amounts over a bill history.

    Empty history leaves every amount unset: zero is a valid bill amount and
    must not stand in for "no data".
    """
    if not entries:
        return ObligationStatistics(obligation_id=obligation_id)

    ordered = sorted(entries, key=lambda e: e.bill_date, reverse=True)
    amounts = [e.actual_amount_cents for e in ordered]

    return ObligationStatistics(
        obligation_id=obligation_id,
        bill_count=len(amounts),
        average_cents=round(sum(amounts) / len(amounts)),
        min_cents=min(amounts),
        max_cents=max(amounts),
        last_bill_amount_cents=amounts[0],
    )


class VarianceTracker:
    """Records bill instances and keeps obligation statistics in step with the history"""

    def __init__(self, store: BillHistoryStore):
        self.store = store

    def _require_obligation(self, obligation_id: str) -> RecurringObligation:
        obligation = self.store.get_obligation(obligation_id)
        if obligation is None:
            raise ObligationNotFoundError(obligation_id)
        return obligation

    def record_instance(
        self,
        obligation_id: str,
        actual_amount_cents: int,
        estimated_amount_cents: int,
        bill_date: date,
        is_paid: bool = False,
        paid_date: date | None = None,
        notes: str | None = None,
        payment_method: str | None = None,
        transaction_id: str | None = None,
    ) -> BillHistoryEntry:
        """
        Record one billing event and recompute the obligation's statistics.

        Raises:
            ObligationNotFoundError: obligation_id is unknown to the store
        """
        self._require_obligation(obligation_id)

        entry = self.store.add_entry(
            BillHistoryEntry(
                entry_id=str(uuid.uuid4()),
                obligation_id=obligation_id,
                actual_amount_cents=actual_amount_cents,
                estimated_amount_cents=estimated_amount_cents,
                bill_date=bill_date,
                is_paid=is_paid,
                paid_date=paid_date,
                notes=notes,
                payment_method=payment_method,
                transaction_id=transaction_id,
            )
        )
        self.recompute(obligation_id)
        return entry

    def amend_instance(self, entry_id: str, **changes) -> BillHistoryEntry:
        """
        Correct amounts or paid status of an entry and recompute statistics.

        Raises:
            HistoryEntryNotFoundError: entry_id is unknown to the store
        """
        existing = self.store.get_entry(entry_id)
        if existing is None:
            raise HistoryEntryNotFoundError(entry_id)

        updated = self.store.update_entry(existing.amend(**changes))
        self.recompute(updated.obligation_id)
        return updated

    def recompute(self, obligation_id: str) -> ObligationStatistics:
        """
        Rebuild statistics from the full history and persist them.

        Raises:
            ObligationNotFoundError: obligation_id is unknown to the store
        """
        self._require_obligation(obligation_id)
        statistics = calculate_statistics(obligation_id, self.store.list_entries(obligation_id))
        self.store.save_statistics(statistics)
        return statistics

    def get_statistics(self, obligation_id: str) -> ObligationStatistics:
        """Last computed statistics; all amounts unset when no bill was ever recorded"""
        self._require_obligation(obligation_id)
        statistics = self.store.get_statistics(obligation_id)
        return statistics or ObligationStatistics(obligation_id=obligation_id)

    def history(self, obligation_id: str) -> List[BillHistoryEntry]:
        self._require_obligation(obligation_id)
        return self.store.list_entries(obligation_id)


class InMemoryBillHistoryStore:
    """Dict-backed store for embedding the tracker without a database"""

    def __init__(self, obligations: Sequence[RecurringObligation] = ()):
        self._obligations: Dict[str, RecurringObligation] = {o.obligation_id: o for o in obligations}
        self._entries: Dict[str, BillHistoryEntry] = {}
        self._statistics: Dict[str, ObligationStatistics] = {}

    def add_obligation(self, obligation: RecurringObligation) -> None:
        self._obligations[obligation.obligation_id] = obligation

    def get_obligation(self, obligation_id: str) -> Optional[RecurringObligation]:
        return self._obligations.get(obligation_id)

    def get_entry(self, entry_id: str) -> Optional[BillHistoryEntry]:
        return self._entries.get(entry_id)

    def add_entry(self, entry: BillHistoryEntry) -> BillHistoryEntry:
        self._entries[entry.entry_id] = entry
        return entry

    def update_entry(self, entry: BillHistoryEntry) -> BillHistoryEntry:
        if entry.entry_id not in self._entries:
            raise HistoryEntryNotFoundError(entry.entry_id)
        self._entries[entry.entry_id] = entry
        return entry

    def list_entries(self, obligation_id: str) -> List[BillHistoryEntry]:
        entries = [e for e in self._entries.values() if e.obligation_id == obligation_id]
        return sorted(entries, key=lambda e: e.bill_date, reverse=True)

    def save_statistics(self, statistics: ObligationStatistics) -> None:
        self._statistics[statistics.obligation_id] = statistics

    def get_statistics(self, obligation_id: str) -> Optional[ObligationStatistics]:
        return self._statistics.get(obligation_id)
