"""Domain exceptions for the Risk Scoring Service."""
from typing import Optional


class RiskServiceError(Exception):
    """Base exception for the risk service domain."""


class CustomerNotFound(RiskServiceError):
    """Raised when a lookup or assessment is given an unknown customer."""

    def __init__(self, customer_id: Optional[str]):
        self.customer_id = customer_id
        if customer_id is None:
            super().__init__("Customer not found")
        else:
            super().__init__(f"Customer not found: {customer_id}")


class InvalidTransaction(RiskServiceError):
    """Raised when a transaction is rejected before it reaches the ledger."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid transaction: {reason}")


class InvalidCustomerProfile(RiskServiceError):
    """Raised when a customer record cannot be scored (e.g. non-positive income)."""

    def __init__(self, customer_id: str, reason: str):
        self.customer_id = customer_id
        self.reason = reason
        super().__init__(f"Invalid customer profile {customer_id}: {reason}")
