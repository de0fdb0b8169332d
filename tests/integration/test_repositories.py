"""Integration tests for the SQL bill history store"""

from dataclasses import replace
from datetime import date
from sqlalchemy.orm import Session
from astral_forecast.domain.variance import VarianceTracker
from astral_forecast.infrastructure.database.repositories import BillHistoryRepository


def test_tracker_over_sql_store(db: Session, rent):
    repository = BillHistoryRepository(db)
    repository.upsert_obligation(rent)
    tracker = VarianceTracker(repository)

    assert repository.get_statistics("rent") is None
    assert tracker.get_statistics("rent").average_cents is None

    first = tracker.record_instance("rent", 150000, 150000, date(2024, 1, 1), is_paid=True)
    tracker.record_instance("rent", 156000, 150000, date(2024, 2, 1))
    db.commit()

    statistics = repository.get_statistics("rent")
    assert statistics.bill_count == 2
    assert statistics.average_cents == 153000
    assert statistics.last_bill_amount_cents == 156000

    tracker.amend_instance(first.entry_id, actual_amount_cents=144000)
    db.commit()

    assert repository.get_statistics("rent").min_cents == 144000
    assert [e.bill_date for e in repository.list_entries("rent")] == [date(2024, 2, 1), date(2024, 1, 1)]


def test_upsert_obligation_keeps_statistics(db: Session, rent):
    repository = BillHistoryRepository(db)
    repository.upsert_obligation(rent)
    VarianceTracker(repository).record_instance("rent", 150000, 150000, date(2024, 1, 1))

    repository.upsert_obligation(replace(rent, amount_cents=160000))
    db.commit()

    assert repository.get_obligation("rent").amount_cents == 160000
    assert repository.get_statistics("rent").bill_count == 1


def test_unknown_records(db: Session):
    repository = BillHistoryRepository(db)

    assert repository.get_obligation("missing") is None
    assert repository.get_entry("missing") is None
    assert repository.list_entries("missing") == []
