"""
Customer and transaction storage.

The ledger is append-only: transactions can be listed and appended, never
updated or deleted. Readers always receive an immutable snapshot, so a
concurrent append can never change a list that a scorer is iterating.
"""
import itertools
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import sessionmaker

from risk_service.domain import Customer, Transaction, TransactionDraft, TransactionType
from risk_service.errors import CustomerNotFound
from risk_service.logging import get_logger
from risk_service.models import CustomerRecord, TransactionRecord

logger = get_logger(__name__)


def _as_utc(value: datetime) -> datetime:
    """Normalize to an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Ledger(ABC):
    """Customer directory plus append-only transaction store."""

    @abstractmethod
    def get_customer(self, customer_id: str) -> Customer:
        """Return the customer or raise CustomerNotFound."""

    @abstractmethod
    def list_customers(self) -> tuple[Customer, ...]:
        """Return all customers in insertion order."""

    @abstractmethod
    def add_customer(self, customer: Customer) -> Customer:
        """Register a customer profile."""

    @abstractmethod
    def list_all(self, customer_id: str) -> tuple[Transaction, ...]:
        """Return a snapshot of the customer's transactions, in any order."""

    @abstractmethod
    def append(
        self,
        customer_id: str,
        draft: TransactionDraft,
        now: Optional[datetime] = None,
    ) -> Transaction:
        """
        Append a transaction and return it with its newly assigned id.

        The draft's timestamp is used when present, otherwise `now`.
        """

    @abstractmethod
    def count_transactions(self) -> int:
        """Total number of transactions across all customers."""


class InMemoryLedger(Ledger):
    """
    Process-local ledger.

    Each customer's transactions are held in a tuple. Appending builds a new
    tuple and rebinds it under a lock, so any tuple handed to a reader is
    complete and never changes afterwards.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._customers: dict[str, Customer] = {}
        self._transactions: dict[str, tuple[Transaction, ...]] = {}
        self._ids = itertools.count(1)

    def get_customer(self, customer_id: str) -> Customer:
        customer = self._customers.get(customer_id)
        if customer is None:
            raise CustomerNotFound(customer_id)
        return customer

    def list_customers(self) -> tuple[Customer, ...]:
        with self._lock:
            return tuple(self._customers.values())

    def add_customer(self, customer: Customer) -> Customer:
        with self._lock:
            self._customers[customer.id] = customer
            self._transactions.setdefault(customer.id, ())
        logger.debug("customer_added", customer_id=customer.id)
        return customer

    def list_all(self, customer_id: str) -> tuple[Transaction, ...]:
        self.get_customer(customer_id)
        with self._lock:
            return self._transactions.get(customer_id, ())

    def append(
        self,
        customer_id: str,
        draft: TransactionDraft,
        now: Optional[datetime] = None,
    ) -> Transaction:
        self.get_customer(customer_id)
        timestamp = _as_utc(draft.timestamp or now or datetime.now(timezone.utc))

        with self._lock:
            transaction = Transaction(
                id=str(next(self._ids)),
                customer_id=customer_id,
                amount=draft.amount,
                type=draft.type,
                category=draft.category,
                timestamp=timestamp,
            )
            self._transactions[customer_id] = self._transactions.get(customer_id, ()) + (transaction,)

        logger.info(
            "transaction_appended",
            customer_id=customer_id,
            transaction_id=transaction.id,
            type=transaction.type.value,
            category=transaction.category,
        )
        return transaction

    def count_transactions(self) -> int:
        with self._lock:
            return sum(len(txns) for txns in self._transactions.values())


class SqlLedger(Ledger):
    """
    Ledger backed by SQLAlchemy.

    Each operation runs in its own session. Transaction rows are only ever
    inserted, so the database's isolation gives readers a consistent snapshot.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get_customer(self, customer_id: str) -> Customer:
        with self.session_factory() as db:
            record = db.get(CustomerRecord, customer_id)
            if record is None:
                raise CustomerNotFound(customer_id)
            return self._to_customer(record)

    def list_customers(self) -> tuple[Customer, ...]:
        with self.session_factory() as db:
            records = db.query(CustomerRecord).order_by(CustomerRecord.position).all()
            return tuple(self._to_customer(r) for r in records)

    def add_customer(self, customer: Customer) -> Customer:
        with self.session_factory() as db:
            record = db.get(CustomerRecord, customer.id)
            if record is None:
                last = db.query(func.max(CustomerRecord.position)).scalar() or 0
                record = CustomerRecord(id=customer.id, position=last + 1)
                db.add(record)

            # Re-registering a customer updates the profile and keeps its position
            record.name = customer.name
            record.monthly_income = customer.monthly_income
            record.credit_limit = customer.credit_limit
            record.email = customer.email
            record.phone = customer.phone
            record.occupation = customer.occupation
            record.employer = customer.employer
            record.created_at = customer.created_at
            db.commit()
        logger.debug("customer_added", customer_id=customer.id)
        return customer

    def list_all(self, customer_id: str) -> tuple[Transaction, ...]:
        with self.session_factory() as db:
            if db.get(CustomerRecord, customer_id) is None:
                raise CustomerNotFound(customer_id)
            records = (
                db.query(TransactionRecord)
                .filter(TransactionRecord.customer_id == customer_id)
                .order_by(TransactionRecord.id)
                .all()
            )
            return tuple(self._to_transaction(r) for r in records)

    def append(
        self,
        customer_id: str,
        draft: TransactionDraft,
        now: Optional[datetime] = None,
    ) -> Transaction:
        timestamp = _as_utc(draft.timestamp or now or datetime.now(timezone.utc))

        with self.session_factory() as db:
            if db.get(CustomerRecord, customer_id) is None:
                raise CustomerNotFound(customer_id)

            record = TransactionRecord(
                customer_id=customer_id,
                amount=draft.amount,
                type=draft.type.value,
                category=draft.category,
                timestamp=timestamp,
            )
            db.add(record)
            db.commit()
            transaction = self._to_transaction(record)

        logger.info(
            "transaction_appended",
            customer_id=customer_id,
            transaction_id=transaction.id,
            type=transaction.type.value,
            category=transaction.category,
        )
        return transaction

    def count_transactions(self) -> int:
        with self.session_factory() as db:
            return db.query(func.count(TransactionRecord.id)).scalar() or 0

    @staticmethod
    def _to_customer(record: CustomerRecord) -> Customer:
        return Customer(
            id=record.id,
            name=record.name,
            monthly_income=record.monthly_income,
            credit_limit=record.credit_limit,
            email=record.email,
            phone=record.phone,
            occupation=record.occupation,
            employer=record.employer,
            created_at=_as_utc(record.created_at) if record.created_at else None,
        )

    @staticmethod
    def _to_transaction(record: TransactionRecord) -> Transaction:
        # SQLite drops tzinfo on the way out; everything is stored as UTC
        return Transaction(
            id=str(record.id),
            customer_id=record.customer_id,
            amount=record.amount,
            type=TransactionType(record.type),
            category=record.category,
            timestamp=_as_utc(record.timestamp),
        )


def create_ledger(backend: str, database_url: str = "sqlite://") -> Ledger:
    """
    Build a ledger for the configured backend.

    Args:
        backend: "memory" or "sql"
        database_url: SQLAlchemy URL, used by the "sql" backend only
    """
    if backend == "memory":
        return InMemoryLedger()
    if backend == "sql":
        from risk_service.database import build_engine, build_session_factory

        return SqlLedger(build_session_factory(build_engine(database_url)))
    raise ValueError(f"Unknown ledger backend: {backend!r}")
