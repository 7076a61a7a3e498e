"""Domain models - immutable records for customers and their transactions."""
import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from risk_service.errors import InvalidTransaction


class TransactionType(str, Enum):
    """Direction of money movement."""
    DEBIT = "debit"    # outflow (spending)
    CREDIT = "credit"  # inflow (income)


@dataclass(frozen=True)
class Customer:
    """Customer profile, read-only input to scoring."""
    id: str
    name: str
    monthly_income: float
    credit_limit: float
    email: Optional[str] = None
    phone: Optional[str] = None
    occupation: Optional[str] = None
    employer: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Transaction:
    """A recorded transaction. Never mutated once it is in the ledger."""
    id: str
    customer_id: str
    amount: float
    type: TransactionType
    category: str
    timestamp: datetime

    @property
    def is_debit(self) -> bool:
        return self.type == TransactionType.DEBIT

    @property
    def is_credit(self) -> bool:
        return self.type == TransactionType.CREDIT


@dataclass(frozen=True)
class TransactionDraft:
    """
    Validated input for appending a transaction.

    Construction coerces and checks every field, so a draft that exists is
    always safe to append. Invalid input raises InvalidTransaction.
    """
    amount: Any
    type: Any
    category: Any
    timestamp: Optional[datetime] = field(default=None)

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", _coerce_amount(self.amount))
        object.__setattr__(self, "type", _coerce_type(self.type))
        object.__setattr__(self, "category", _coerce_category(self.category))
        if self.timestamp is not None and not isinstance(self.timestamp, datetime):
            raise InvalidTransaction("timestamp must be a datetime")


def _coerce_amount(value: Any) -> float:
    if value is None or isinstance(value, bool):
        raise InvalidTransaction("amount is required")
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise InvalidTransaction(f"amount is not a number: {value!r}")
    if not math.isfinite(amount):
        raise InvalidTransaction("amount must be finite")
    if amount < 0:
        raise InvalidTransaction("amount must be non-negative")
    return amount


def _coerce_type(value: Any) -> TransactionType:
    if value is None or value == "":
        raise InvalidTransaction("type is required")
    try:
        return TransactionType(value)
    except ValueError:
        raise InvalidTransaction(f"type must be 'debit' or 'credit', got {value!r}")


def _coerce_category(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidTransaction("category is required")
    return value.strip()
