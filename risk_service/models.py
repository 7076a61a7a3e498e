"""SQLAlchemy ORM models backing the SQL ledger."""
from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, Text

from risk_service.database import Base


class CustomerRecord(Base):
    """Customer profile row."""
    __tablename__ = "customer"

    id = Column(Text, primary_key=True)
    # Registration order; ids are opaque strings and do not sort meaningfully
    position = Column(Integer, nullable=False, unique=True)
    name = Column(Text, nullable=False)
    monthly_income = Column(Float, nullable=False)
    credit_limit = Column(Float, nullable=False)
    email = Column(Text)
    phone = Column(Text)
    occupation = Column(Text)
    employer = Column(Text)
    created_at = Column(DateTime(timezone=True))


class TransactionRecord(Base):
    """Append-only transaction row. Rows are inserted, never updated or deleted."""
    __tablename__ = "ledger_transaction"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(Text, ForeignKey("customer.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    type = Column(Text, nullable=False)
    category = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)
