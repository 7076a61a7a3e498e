"""
Risk Scorer for Behavioural Credit Risk

This module implements the rule-based risk scoring engine. A customer's
transactions from the trailing window are aggregated into a score in [0, 1],
a coarse risk category, and a ranked list of the factors that moved the score.

The engine is a pure function of (customer, transactions, now):

1. No global state. The caller supplies the customer and a snapshot of the
   transactions, so the scorer can run concurrently from many threads.
2. No implicit clock. `now` is a parameter, which makes every result
   reproducible and testable.
3. No caching. An assessment is derived state and is recomputed from scratch
   on every call.
"""
import math
import time
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from risk_service import metrics
from risk_service.domain import Customer, Transaction
from risk_service.errors import CustomerNotFound, InvalidCustomerProfile
from risk_service.logging import get_logger
from risk_service.scoring.categories import RiskCategory, score_to_category

logger = get_logger(__name__)

BASE_SCORE = 0.5
MAX_FACTORS = 5

# Every rule impact is a multiple of 0.05; rounding the accumulated score
# removes float drift so the category thresholds compare exactly.
SCORE_PRECISION = 4

CASH_CATEGORIES = frozenset({"atm_withdrawal", "cash_advance"})
SMALL_TRANSACTION_AMOUNT = 1000
NIGHT_START_HOUR = 23
NIGHT_END_HOUR = 5

NO_ACTIVITY_FACTOR_NAME = "No recent spending activity"


@dataclass(frozen=True)
class RiskFactor:
    """A named, signed contribution to the risk score."""
    name: str
    impact: float
    description: str


@dataclass(frozen=True)
class RiskAssessment:
    """Final risk assessment for a customer."""
    final_score: float  # 0-1
    risk_category: RiskCategory
    factors: tuple[RiskFactor, ...]
    default_probability: float
    anomaly_score: float
    stress_score: float
    generated_at: datetime


class RiskScorer:
    """
    Scores a customer's recent transaction behaviour.

    SCORING METHODOLOGY:
    --------------------
    Only transactions inside the trailing window (default 30 days, both ends
    inclusive) are considered. If that window holds no debit transactions the
    customer has no spending to assess and a fixed LOW assessment (0.3) is
    returned without evaluating any rule, including the income rule.

    Otherwise the score starts at 0.5 and each rule adds or subtracts:

    1. Utilization (recent debit total / monthly income)
       - > 0.8:        +0.20 "High credit utilization"
       - > 0.5 - 0.8:  +0.10 "Moderate utilization"
       - <= 0.5:       -0.10 "Low utilization"

    2. Night activity (debits at local hour >= 23 or <= 5)
       - > 3:  +0.15 "Frequent night transactions"
       - 1-3:  +0.05 "Some night activity"

    3. Cash usage (debits categorised atm_withdrawal or cash_advance)
       - > 2:  +0.15 "Frequent cash advances"
       - 1-2:  +0.05 "Some cash usage"

    4. Spending volatility (std-dev / mean of debit amounts)
       Evaluated only with more than one recent debit.
       - > 1.5:        +0.10 "High spending volatility"
       - > 1.0 - 1.5:  +0.05 "Moderate spending volatility"
       - <= 1.0:       -0.05 "Low spending volatility"

    5. Small transactions (debits under 1000)
       - > 10: +0.10 "Many small transactions"

    6. Income presence
       - no recent credits: +0.10 "No recent income"

    The sum is clamped to [0, 1]. Factors are ranked by absolute impact, with
    ties kept in rule order, and the top five are reported.
    """

    def __init__(self, window_days: int = 30, local_timezone: str = "UTC"):
        """
        Initialize the scorer.

        Args:
            window_days: Length of the trailing window of transactions to score.
            local_timezone: IANA zone used to read the hour-of-day of a
                            transaction for the night activity rule.
        """
        self.window_days = window_days
        self.tz = timezone.utc if local_timezone.upper() == "UTC" else ZoneInfo(local_timezone)

    def assess(
        self,
        customer: Optional[Customer],
        transactions: Iterable[Transaction],
        now: datetime,
    ) -> RiskAssessment:
        """
        Assess a customer's risk from their transactions.

        Args:
            customer: The customer profile; None means the lookup failed
            transactions: All of the customer's transactions, in any order
            now: Evaluation time; the window ends here

        Returns:
            RiskAssessment stamped with generated_at=now

        Raises:
            CustomerNotFound: If no customer is supplied
            InvalidCustomerProfile: If the customer's income cannot be scored
        """
        if customer is None:
            raise CustomerNotFound(None)

        income = self.check_profile(customer)

        start_time = time.perf_counter()

        now = self._localize(now)
        recent = self._recent(transactions, now)
        debits = [t for t in recent if t.is_debit]

        if not debits:
            logger.info(
                "no_recent_debits",
                customer_id=customer.id,
                window_days=self.window_days,
                recent_count=len(recent),
            )
            metrics.record_scoring_latency(time.perf_counter() - start_time)
            return self._no_activity_assessment(now)

        score = BASE_SCORE
        factors: list[RiskFactor] = []

        for factor in (
            self._utilization_factor(debits, income),
            self._night_activity_factor(debits),
            self._cash_usage_factor(debits),
            self._volatility_factor(debits),
            self._small_transactions_factor(debits),
            self._income_presence_factor(recent),
        ):
            if factor is not None:
                score += factor.impact
                factors.append(factor)

        final_score = max(0.0, min(1.0, round(score, SCORE_PRECISION)))
        category = score_to_category(final_score)

        # sorted() is stable, so equal impacts keep rule order
        ranked = sorted(factors, key=lambda f: abs(f.impact), reverse=True)[:MAX_FACTORS]

        metrics.record_scoring_latency(time.perf_counter() - start_time)

        logger.info(
            "risk_scored",
            customer_id=customer.id,
            final_score=final_score,
            risk_category=category.value,
            recent_count=len(recent),
            debit_count=len(debits),
            factor_count=len(ranked),
        )

        return RiskAssessment(
            final_score=final_score,
            risk_category=category,
            factors=tuple(ranked),
            default_probability=final_score,
            anomaly_score=round(min(final_score + 0.1, 1.0), SCORE_PRECISION),
            stress_score=round(min(final_score * 1.2, 1.0), SCORE_PRECISION),
            generated_at=now,
        )

    def check_profile(self, customer: Customer) -> float:
        """
        Return the customer's monthly income if it can be scored.

        Raises:
            InvalidCustomerProfile: If the income is missing, non-finite or not positive
        """
        income = customer.monthly_income
        if isinstance(income, bool) or not isinstance(income, (int, float)) \
                or not math.isfinite(income) or income <= 0:
            raise InvalidCustomerProfile(customer.id, f"monthly_income must be positive, got {income!r}")
        return income

    @staticmethod
    def _localize(value: datetime) -> datetime:
        """Naive datetimes are taken as UTC, the same as the ledger stores them."""
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def _recent(self, transactions: Iterable[Transaction], now: datetime) -> list[Transaction]:
        """Select transactions inside [now - window, now]."""
        cutoff = now - timedelta(days=self.window_days)
        return [t for t in transactions if cutoff <= self._localize(t.timestamp) <= now]

    def _is_night(self, txn: Transaction) -> bool:
        hour = self._localize(txn.timestamp).astimezone(self.tz).hour
        return hour >= NIGHT_START_HOUR or hour <= NIGHT_END_HOUR

    def _no_activity_assessment(self, now: datetime) -> RiskAssessment:
        """Fixed assessment for a customer with no recent spending."""
        return RiskAssessment(
            final_score=0.3,
            risk_category=RiskCategory.LOW,
            factors=(
                RiskFactor(
                    name=NO_ACTIVITY_FACTOR_NAME,
                    impact=0.0,
                    description=f"No debit transactions in the last {self.window_days} days",
                ),
            ),
            default_probability=0.3,
            anomaly_score=0.2,
            stress_score=0.3,
            generated_at=now,
        )

    def _utilization_factor(self, debits: list[Transaction], income: float) -> RiskFactor:
        """
        Score spend against monthly income.

        Utilization above 80% leaves no room to absorb a repayment; below
        half of income is treated as healthy and lowers the score.
        """
        utilization = sum(t.amount for t in debits) / income
        percent = f"{_round_half_up(utilization * 100)}%"

        if utilization > 0.8:
            return RiskFactor("High credit utilization", 0.2, f"Spent {percent} of monthly income")
        elif utilization > 0.5:
            return RiskFactor("Moderate utilization", 0.1, f"Spent {percent} of monthly income")
        else:
            return RiskFactor("Low utilization", -0.1, f"Healthy spending at {percent} of income")

    def _night_activity_factor(self, debits: list[Transaction]) -> Optional[RiskFactor]:
        """Count debits between 11 PM and 5 AM local time."""
        night_count = sum(1 for t in debits if self._is_night(t))
        description = f"{night_count} transactions between 11 PM - 5 AM"

        if night_count > 3:
            return RiskFactor("Frequent night transactions", 0.15, description)
        elif night_count >= 1:
            return RiskFactor("Some night activity", 0.05, description)
        return None

    def _cash_usage_factor(self, debits: list[Transaction]) -> Optional[RiskFactor]:
        """Count ATM withdrawals and cash advances."""
        cash_count = sum(1 for t in debits if t.category in CASH_CATEGORIES)
        description = f"{cash_count} ATM/cash withdrawals"

        if cash_count > 2:
            return RiskFactor("Frequent cash advances", 0.15, description)
        elif cash_count >= 1:
            return RiskFactor("Some cash usage", 0.05, description)
        return None

    def _volatility_factor(self, debits: list[Transaction]) -> Optional[RiskFactor]:
        """
        Score the coefficient of variation of debit amounts.

        Skipped entirely with a single debit; one amount has no spread.
        """
        if len(debits) <= 1:
            return None

        amounts = [t.amount for t in debits]
        mean = sum(amounts) / len(amounts)
        variance = sum((a - mean) ** 2 for a in amounts) / len(amounts)
        # All-zero debits have no spread to measure
        volatility = math.sqrt(variance) / mean if mean > 0 else 0.0
        description = f"Spending varies by {volatility:.2f}x the average amount"

        if volatility > 1.5:
            return RiskFactor("High spending volatility", 0.1, description)
        elif volatility > 1.0:
            return RiskFactor("Moderate spending volatility", 0.05, description)
        else:
            return RiskFactor("Low spending volatility", -0.05, description)

    def _small_transactions_factor(self, debits: list[Transaction]) -> Optional[RiskFactor]:
        small_count = sum(1 for t in debits if t.amount < SMALL_TRANSACTION_AMOUNT)
        if small_count > 10:
            return RiskFactor(
                "Many small transactions",
                0.1,
                f"{small_count} transactions under {SMALL_TRANSACTION_AMOUNT}",
            )
        return None

    def _income_presence_factor(self, recent: list[Transaction]) -> Optional[RiskFactor]:
        if not any(t.is_credit for t in recent):
            return RiskFactor(
                "No recent income",
                0.1,
                f"No credit transactions in the last {self.window_days} days",
            )
        return None


def _round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up, so 12.5 reads as 13."""
    return int(Decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))
