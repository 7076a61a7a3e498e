"""
Demo customers and transactions.

The demo history was recorded in February 2024. Loading it re-anchors every
timestamp forward by whole days so the most recent demo transaction falls
within the day before the anchor. The history stays inside the scoring window
and every transaction keeps its hour-of-day.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from risk_service.domain import Customer, TransactionDraft
from risk_service.logging import get_logger
from risk_service.services.ledger import Ledger

logger = get_logger(__name__)


def _utc(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


DEMO_CUSTOMERS = [
    Customer(
        id="1",
        name="Rajesh Kumar",
        email="rajesh@example.com",
        phone="9876543210",
        occupation="Software Engineer",
        employer="Tech Solutions Ltd",
        monthly_income=75000,
        credit_limit=300000,
        created_at=_utc("2024-01-15T00:00:00"),
    ),
    Customer(
        id="2",
        name="Priya Sharma",
        email="priya@example.com",
        phone="9876543211",
        occupation="School Teacher",
        employer="Delhi Public School",
        monthly_income=45000,
        credit_limit=150000,
        created_at=_utc("2024-01-20T00:00:00"),
    ),
    Customer(
        id="3",
        name="Amit Patel",
        email="amit@example.com",
        phone="9876543212",
        occupation="Small Business Owner",
        employer="Patel & Co",
        monthly_income=120000,
        credit_limit=500000,
        created_at=_utc("2024-01-10T00:00:00"),
    ),
    Customer(
        id="4",
        name="Sneha Reddy",
        email="sneha@example.com",
        phone="9876543213",
        occupation="Doctor",
        employer="Apollo Hospitals",
        monthly_income=150000,
        credit_limit=600000,
        created_at=_utc("2024-01-05T00:00:00"),
    ),
    Customer(
        id="5",
        name="Vikram Singh",
        email="vikram@example.com",
        phone="9876543214",
        occupation="Marketing Manager",
        employer="Aditya Birla Group",
        monthly_income=85000,
        credit_limit=350000,
        created_at=_utc("2024-01-18T00:00:00"),
    ),
]

# (customer_id, amount, type, category, recorded_at)
DEMO_TRANSACTIONS = [
    # High-risk profile - night spending and cash withdrawals
    ("1", 25000, "debit", "shopping", "2024-02-15T10:30:00"),
    ("1", 15000, "debit", "shopping", "2024-02-14T14:20:00"),
    ("1", 5000, "debit", "atm_withdrawal", "2024-02-16T23:45:00"),
    ("1", 8000, "debit", "atm_withdrawal", "2024-02-17T00:15:00"),
    ("1", 12000, "debit", "entertainment", "2024-02-17T22:30:00"),
    ("1", 75000, "credit", "salary", "2024-02-01T09:00:00"),

    # Low-risk profile - small, steady spending
    ("2", 3000, "debit", "groceries", "2024-02-15T09:15:00"),
    ("2", 1500, "debit", "fuel", "2024-02-14T17:30:00"),
    ("2", 2000, "debit", "utilities", "2024-02-13T11:00:00"),
    ("2", 45000, "credit", "salary", "2024-02-01T09:00:00"),

    # Mixed signals
    ("3", 35000, "debit", "business_expense", "2024-02-15T13:00:00"),
    ("3", 5000, "debit", "dining", "2024-02-16T20:30:00"),
    ("3", 10000, "debit", "shopping", "2024-02-17T15:45:00"),
    ("3", 120000, "credit", "business_income", "2024-02-05T14:00:00"),

    ("4", 8000, "debit", "groceries", "2024-02-16T18:00:00"),
    ("4", 150000, "credit", "salary", "2024-02-01T09:00:00"),
    ("5", 12000, "debit", "shopping", "2024-02-15T16:20:00"),
    ("5", 85000, "credit", "salary", "2024-02-01T09:00:00"),
]

DEMO_REFERENCE_TIME = max(_utc(t[4]) for t in DEMO_TRANSACTIONS)


def load_demo_data(ledger: Ledger, anchor: Optional[datetime] = None) -> int:
    """
    Load the demo customers and transactions into a ledger.

    Args:
        ledger: Ledger to populate
        anchor: Time the most recent demo transaction is moved to. Shifts are
                whole days so hours-of-day are kept. None keeps the original
                2024 timestamps.

    Returns:
        Number of transactions appended
    """
    shift = None
    if anchor is not None:
        # Whole days, rounded down, so nothing lands after the anchor
        shift = timedelta(days=(anchor - DEMO_REFERENCE_TIME).days)

    for customer in DEMO_CUSTOMERS:
        ledger.add_customer(customer)

    for customer_id, amount, txn_type, category, recorded_at in DEMO_TRANSACTIONS:
        timestamp = _utc(recorded_at)
        if shift is not None:
            timestamp += shift
        ledger.append(
            customer_id,
            TransactionDraft(amount=amount, type=txn_type, category=category, timestamp=timestamp),
        )

    logger.info(
        "demo_data_loaded",
        customer_count=len(DEMO_CUSTOMERS),
        transaction_count=len(DEMO_TRANSACTIONS),
        anchored=anchor is not None,
    )
    return len(DEMO_TRANSACTIONS)
