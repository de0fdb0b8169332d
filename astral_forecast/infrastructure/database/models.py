"""SQLAlchemy ORM models for recurring obligations and their bill history"""

import uuid
from sqlalchemy import Column, String, BigInteger, Boolean, DateTime, Date, Integer, ForeignKey, Text
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


class RecurringObligationRecord(Base):
    """Recurring bill definition mirrored from the records service, with cached statistics"""

    __tablename__ = "recurring_obligation"

    id = Column(Text, primary_key=True)
    name = Column(Text, nullable=False)
    category = Column(Text, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    cadence = Column(String(16), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    # Derived from bill_history; NULL until a bill is recorded
    bill_count = Column(Integer, nullable=False, default=0)
    average_cents = Column(BigInteger, nullable=True)
    min_cents = Column(BigInteger, nullable=True)
    max_cents = Column(BigInteger, nullable=True)
    last_bill_amount_cents = Column(BigInteger, nullable=True)
    statistics_updated_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    history = relationship("BillHistoryRecord", back_populates="obligation", cascade="all, delete-orphan")


class BillHistoryRecord(Base):
    """One billing event of a recurring obligation"""

    __tablename__ = "bill_history"

    id = Column(Text, primary_key=True, default=_new_id)
    obligation_id = Column(Text, ForeignKey("recurring_obligation.id", ondelete="CASCADE"), nullable=False, index=True)
    actual_amount_cents = Column(BigInteger, nullable=False)
    estimated_amount_cents = Column(BigInteger, nullable=False)
    bill_date = Column(Date, nullable=False, index=True)
    is_paid = Column(Boolean, nullable=False, default=False)
    paid_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    payment_method = Column(Text, nullable=True)
    transaction_id = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    obligation = relationship("RecurringObligationRecord", back_populates="history")
