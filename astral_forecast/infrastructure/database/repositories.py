"""Data access layer for recurring obligations and bill history"""

from datetime import datetime, timezone
from typing import List, Optional
from sqlalchemy.orm import Session
from astral_forecast.infrastructure.database.models import BillHistoryRecord, RecurringObligationRecord
from astral_forecast.domain.exceptions import HistoryEntryNotFoundError
from astral_forecast.domain.models import BillHistoryEntry, ObligationStatistics, RecurringObligation


def _to_obligation(record: RecurringObligationRecord) -> RecurringObligation:
    return RecurringObligation(
        obligation_id=record.id,
        name=record.name,
        category=record.category,
        amount_cents=record.amount_cents,
        cadence=record.cadence,
        start_date=record.start_date,
        end_date=record.end_date,
        is_active=record.is_active,
    )


def _to_entry(record: BillHistoryRecord) -> BillHistoryEntry:
    return BillHistoryEntry(
        entry_id=record.id,
        obligation_id=record.obligation_id,
        actual_amount_cents=record.actual_amount_cents,
        estimated_amount_cents=record.estimated_amount_cents,
        bill_date=record.bill_date,
        is_paid=record.is_paid,
        paid_date=record.paid_date,
        notes=record.notes,
        payment_method=record.payment_method,
        transaction_id=record.transaction_id,
    )


class BillHistoryRepository:
    """SQL-backed bill history store used by the variance tracker"""

    def __init__(self, db: Session):
        self.db = db

    def upsert_obligation(self, obligation: RecurringObligation) -> RecurringObligation:
        """Create or refresh an obligation definition, keeping its statistics"""
        record = self.db.get(RecurringObligationRecord, obligation.obligation_id)
        if record is None:
            record = RecurringObligationRecord(id=obligation.obligation_id)
            self.db.add(record)

        record.name = obligation.name
        record.category = obligation.category
        record.amount_cents = obligation.amount_cents
        record.cadence = obligation.cadence
        record.start_date = obligation.start_date
        record.end_date = obligation.end_date
        record.is_active = obligation.is_active
        self.db.flush()
        return obligation

    def get_obligation(self, obligation_id: str) -> Optional[RecurringObligation]:
        record = self.db.get(RecurringObligationRecord, obligation_id)
        return _to_obligation(record) if record else None

    def get_entry(self, entry_id: str) -> Optional[BillHistoryEntry]:
        record = self.db.get(BillHistoryRecord, entry_id)
        return _to_entry(record) if record else None

    def add_entry(self, entry: BillHistoryEntry) -> BillHistoryEntry:
        record = BillHistoryRecord(
            id=entry.entry_id,
            obligation_id=entry.obligation_id,
            actual_amount_cents=entry.actual_amount_cents,
            estimated_amount_cents=entry.estimated_amount_cents,
            bill_date=entry.bill_date,
            is_paid=entry.is_paid,
            paid_date=entry.paid_date,
            notes=entry.notes,
            payment_method=entry.payment_method,
            transaction_id=entry.transaction_id,
        )
        self.db.add(record)
        self.db.flush()  # Visible to list_entries without committing
        return _to_entry(record)

    def update_entry(self, entry: BillHistoryEntry) -> BillHistoryEntry:
        record = self.db.get(BillHistoryRecord, entry.entry_id)
        if record is None:
            raise HistoryEntryNotFoundError(entry.entry_id)

        record.actual_amount_cents = entry.actual_amount_cents
        record.estimated_amount_cents = entry.estimated_amount_cents
        record.is_paid = entry.is_paid
        record.paid_date = entry.paid_date
        record.notes = entry.notes
        record.payment_method = entry.payment_method
        self.db.flush()
        return _to_entry(record)

    def list_entries(self, obligation_id: str) -> List[BillHistoryEntry]:
        """Bill history for one obligation, most recent first"""
        records = (
            self.db.query(BillHistoryRecord)
            .filter(BillHistoryRecord.obligation_id == obligation_id)
            .order_by(BillHistoryRecord.bill_date.desc(), BillHistoryRecord.id)
            .all()
        )
        return [_to_entry(r) for r in records]

    def save_statistics(self, statistics: ObligationStatistics) -> None:
        record = self.db.get(RecurringObligationRecord, statistics.obligation_id)
        record.bill_count = statistics.bill_count
        record.average_cents = statistics.average_cents
        record.min_cents = statistics.min_cents
        record.max_cents = statistics.max_cents
        record.last_bill_amount_cents = statistics.last_bill_amount_cents
        record.statistics_updated_at = datetime.now(timezone.utc)
        self.db.flush()

    def get_statistics(self, obligation_id: str) -> Optional[ObligationStatistics]:
        record = self.db.get(RecurringObligationRecord, obligation_id)
        if record is None or record.statistics_updated_at is None:
            return None
        return ObligationStatistics(
            obligation_id=record.id,
            bill_count=record.bill_count,
            average_cents=record.average_cents,
            min_cents=record.min_cents,
            max_cents=record.max_cents,
            last_bill_amount_cents=record.last_bill_amount_cents,
        )
