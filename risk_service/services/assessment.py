"""Assessment service: connects the ledger to the risk scorer."""
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

import structlog

from risk_service import metrics
from risk_service.domain import Customer, Transaction, TransactionDraft
from risk_service.errors import InvalidTransaction, RiskServiceError
from risk_service.logging import TimedOperation, log_assessment
from risk_service.scoring import RiskAssessment, RiskCategory, RiskScorer
from risk_service.services.ledger import Ledger

logger = structlog.get_logger()


@dataclass(frozen=True)
class CustomerRisk:
    """A customer listed with their current score, if one could be computed."""
    customer: Customer
    risk_score: Optional[float]
    risk_category: Optional[RiskCategory]


@dataclass(frozen=True)
class RiskRollup:
    """Customer counts per risk category, plus ids that could not be assessed."""
    high: int = 0
    medium: int = 0
    low: int = 0
    omitted: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ServiceStats:
    """Totals reported alongside the risk distribution."""
    total_users: int
    total_transactions: int
    distribution: RiskRollup


def _log_customer_failure(event: str, customer_id: str, error: Exception) -> None:
    """Expected service errors are warnings; anything else is malformed data and logged as an error."""
    log = logger.warning if isinstance(error, RiskServiceError) else logger.error
    log(event, customer_id=customer_id, error_type=type(error).__name__, error=str(error))


def rollup(
    customers: Iterable[Customer],
    ledger: Ledger,
    scorer: RiskScorer,
    now: datetime,
) -> RiskRollup:
    """
    Count customers into HIGH, MEDIUM and LOW buckets.

    Each customer is assessed independently at call time. A customer whose
    assessment fails (malformed profile or transaction rows, record removed
    mid-call) is listed in `omitted` and the remaining customers are still
    counted, so high + medium + low + len(omitted) always equals the number
    of customers.
    """
    counts = {RiskCategory.HIGH: 0, RiskCategory.MEDIUM: 0, RiskCategory.LOW: 0}
    omitted: list[str] = []
    failures: dict[str, int] = {}

    with TimedOperation("risk_rollup", logger=logger) as op:
        for customer in customers:
            try:
                assessment = scorer.assess(customer, ledger.list_all(customer.id), now)
            except Exception as e:
                error_type = type(e).__name__
                _log_customer_failure("rollup_customer_failed", customer.id, e)
                omitted.append(customer.id)
                failures[error_type] = failures.get(error_type, 0) + 1
                continue
            counts[assessment.risk_category] += 1

    metrics.record_rollup(op.duration_seconds, failures)

    return RiskRollup(
        high=counts[RiskCategory.HIGH],
        medium=counts[RiskCategory.MEDIUM],
        low=counts[RiskCategory.LOW],
        omitted=tuple(omitted),
    )


class AssessmentService:
    """
    Service for assessing customer risk.

    This service orchestrates:
    1. Looking up customers and snapshotting their transactions
    2. Scoring the snapshot with the risk scorer
    3. Appending new transactions and rescoring
    4. Rolling up the risk distribution across all customers

    Nothing is cached: every call scores a fresh snapshot.
    """

    def __init__(self, ledger: Ledger, scorer: Optional[RiskScorer] = None):
        """
        Initialize the assessment service.

        Args:
            ledger: Customer and transaction store
            scorer: Risk scorer (defaults to a 30-day UTC scorer)
        """
        self.ledger = ledger
        self.scorer = scorer or RiskScorer()

    def get_customer(self, customer_id: str) -> Customer:
        return self.ledger.get_customer(customer_id)

    def assess_customer(self, customer_id: str, now: datetime, trigger: str = "lookup") -> RiskAssessment:
        """
        Compute a customer's current risk assessment.

        Raises:
            CustomerNotFound: If the customer does not exist
        """
        start_time = time.perf_counter()

        customer = self.ledger.get_customer(customer_id)
        assessment = self.scorer.assess(customer, self.ledger.list_all(customer_id), now)

        metrics.record_assessment(assessment.risk_category.value, assessment.final_score)
        log_assessment(
            logger=logger,
            customer_id=customer_id,
            final_score=assessment.final_score,
            risk_category=assessment.risk_category.value,
            factor_count=len(assessment.factors),
            duration_ms=(time.perf_counter() - start_time) * 1000,
            trigger=trigger,
        )
        return assessment

    def list_transactions(self, customer_id: str) -> list[Transaction]:
        """Return the customer's transactions, newest first."""
        transactions = self.ledger.list_all(customer_id)
        return sorted(transactions, key=lambda t: t.timestamp, reverse=True)

    def add_transaction(
        self,
        customer_id: str,
        amount,
        type,
        category,
        now: datetime,
    ) -> tuple[Transaction, RiskAssessment]:
        """
        Validate and append a transaction, then rescore the customer.

        The transaction is stamped with `now`. Assessments returned before
        this call are not touched; only the returned one reflects it.

        Raises:
            CustomerNotFound: If the customer does not exist
            InvalidCustomerProfile: If the customer cannot be scored; nothing is appended
            InvalidTransaction: If the input is rejected; the ledger is unchanged
        """
        # Unknown customers and unscorable profiles are rejected before the payload is judged
        self.scorer.check_profile(self.ledger.get_customer(customer_id))

        try:
            draft = TransactionDraft(amount=amount, type=type, category=category, timestamp=now)
        except InvalidTransaction as e:
            metrics.record_transaction_rejected()
            logger.warning(
                "transaction_rejected",
                customer_id=customer_id,
                reason=e.reason,
            )
            raise

        transaction = self.ledger.append(customer_id, draft, now=now)
        metrics.record_transaction_appended(transaction.type.value)

        assessment = self.assess_customer(customer_id, now, trigger="transaction_added")
        return transaction, assessment

    def list_customers_with_risk(self, now: datetime) -> list[CustomerRisk]:
        """
        List every customer with their current score and category.

        A customer whose assessment fails is still listed, with no score.
        """
        results = []
        for customer in self.ledger.list_customers():
            try:
                assessment = self.scorer.assess(customer, self.ledger.list_all(customer.id), now)
            except Exception as e:
                _log_customer_failure("customer_assessment_failed", customer.id, e)
                results.append(CustomerRisk(customer=customer, risk_score=None, risk_category=None))
                continue
            results.append(CustomerRisk(
                customer=customer,
                risk_score=assessment.final_score,
                risk_category=assessment.risk_category,
            ))
        return results

    def stats(self, now: datetime) -> ServiceStats:
        """Totals plus the risk distribution across all customers."""
        customers = self.ledger.list_customers()
        distribution = rollup(customers, self.ledger, self.scorer, now)
        return ServiceStats(
            total_users=len(customers),
            total_transactions=self.ledger.count_transactions(),
            distribution=distribution,
        )

