"""Tests for the risk scorer and risk category mapping."""
import random
from datetime import datetime, timedelta, timezone

import pytest

from risk_service.domain import Customer, Transaction, TransactionType
from risk_service.errors import CustomerNotFound, InvalidCustomerProfile
from risk_service.scoring.calculator import NO_ACTIVITY_FACTOR_NAME, RiskScorer
from risk_service.scoring.categories import RiskCategory, score_to_category


class TestScoreToCategory:
    """Test the score-to-category partition."""

    def test_category_boundaries(self):
        """Lower bounds are inclusive."""
        # LOW (< 0.4)
        assert score_to_category(0.0) == RiskCategory.LOW
        assert score_to_category(0.39999) == RiskCategory.LOW

        # MEDIUM (0.4 - 0.7)
        assert score_to_category(0.4) == RiskCategory.MEDIUM
        assert score_to_category(0.69999) == RiskCategory.MEDIUM

        # HIGH (>= 0.7)
        assert score_to_category(0.7) == RiskCategory.HIGH
        assert score_to_category(1.0) == RiskCategory.HIGH

    def test_category_values_are_uppercase_labels(self):
        """Categories serialize as HIGH/MEDIUM/LOW."""
        assert [c.value for c in RiskCategory] == ["HIGH", "MEDIUM", "LOW"]


class TestRiskScorer:
    """Test the risk scorer end to end."""

    NOW = datetime(2024, 2, 20, 12, 0, tzinfo=timezone.utc)

    def setup_method(self):
        """Set up test fixtures."""
        self.scorer = RiskScorer(window_days=30)
        self.customer = Customer(
            id="1",
            name="Rajesh Kumar",
            monthly_income=75000,
            credit_limit=300000,
        )

    def _make_transaction(
        self,
        txn_id: str,
        amount: float,
        type: str,
        category: str,
        timestamp: str,
    ) -> Transaction:
        """Helper to create a transaction from an ISO timestamp (UTC)."""
        return Transaction(
            id=txn_id,
            customer_id=self.customer.id,
            amount=amount,
            type=TransactionType(type),
            category=category,
            timestamp=datetime.fromisoformat(timestamp).replace(tzinfo=timezone.utc),
        )

    def _sample_transactions(self) -> list[Transaction]:
        """25000 shopping, 5000 late-night ATM, 12000 evening spend, one salary."""
        return [
            self._make_transaction("t1", 25000, "debit", "shopping", "2024-02-15T10:30:00"),
            self._make_transaction("t2", 5000, "debit", "atm_withdrawal", "2024-02-16T23:45:00"),
            self._make_transaction("t3", 12000, "debit", "entertainment", "2024-02-17T22:30:00"),
            self._make_transaction("t4", 75000, "credit", "salary", "2024-02-01T09:00:00"),
        ]

    def test_sample_customer_is_reproducible_from_rules(self):
        """
        Utilization 42000 / 75000 = 0.56 -> +0.10
        Night debits: only 23:45 -> +0.05
        Cash debits: 1 ATM withdrawal -> +0.05
        Volatility: std 8286.9 / mean 14000 = 0.59 -> -0.05
        Salary on Feb 1 is inside the window -> no income factor
        0.5 + 0.10 + 0.05 + 0.05 - 0.05 = 0.65
        """
        assessment = self.scorer.assess(self.customer, self._sample_transactions(), self.NOW)

        assert assessment.final_score == pytest.approx(0.65)
        assert assessment.risk_category == RiskCategory.MEDIUM
        assert [f.name for f in assessment.factors] == [
            "Moderate utilization",
            "Some night activity",
            "Some cash usage",
            "Low spending volatility",
        ]
        assert assessment.factors[0].description == "Spent 56% of monthly income"
        assert assessment.default_probability == assessment.final_score
        assert assessment.anomaly_score == pytest.approx(0.75)
        assert assessment.stress_score == pytest.approx(0.78)
        assert assessment.generated_at == self.NOW

    def test_transaction_order_does_not_change_result(self):
        """Rules aggregate over the set; input order is irrelevant."""
        transactions = self._sample_transactions()
        shuffled = list(transactions)
        random.Random(7).shuffle(shuffled)

        a = self.scorer.assess(self.customer, transactions, self.NOW)
        b = self.scorer.assess(self.customer, shuffled, self.NOW)

        assert a == b

    def test_assess_is_idempotent(self):
        """Same inputs give identical scores and factors."""
        transactions = self._sample_transactions()

        first = self.scorer.assess(self.customer, transactions, self.NOW)
        second = self.scorer.assess(self.customer, transactions, self.NOW)

        assert first.final_score == second.final_score
        assert first.factors == second.factors
        assert first == second

    def test_missing_customer_raises_not_found(self):
        """No customer is an error, never an empty assessment."""
        with pytest.raises(CustomerNotFound):
            self.scorer.assess(None, self._sample_transactions(), self.NOW)

    def test_non_positive_income_is_rejected(self):
        """Income is the utilization denominator and must be positive."""
        broke = Customer(id="x", name="No Income", monthly_income=0, credit_limit=0)

        with pytest.raises(InvalidCustomerProfile):
            self.scorer.assess(broke, self._sample_transactions(), self.NOW)


class TestNoRecentDebits:
    """The zero-recent-debit short-circuit."""

    NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def setup_method(self):
        """Set up test fixtures."""
        self.scorer = RiskScorer(window_days=30)

    def _customer(self, income: float) -> Customer:
        return Customer(id="c", name="Quiet Customer", monthly_income=income, credit_limit=1000)

    def _assert_fixed_assessment(self, assessment):
        assert assessment.final_score == 0.3
        assert assessment.risk_category == RiskCategory.LOW
        assert len(assessment.factors) == 1
        assert assessment.factors[0].name == NO_ACTIVITY_FACTOR_NAME
        assert assessment.factors[0].impact == 0.0
        assert assessment.default_probability == 0.3
        assert assessment.anomaly_score == 0.2
        assert assessment.stress_score == 0.3
        assert assessment.generated_at == self.NOW

    def test_no_transactions(self):
        """A customer with no history gets the fixed LOW assessment."""
        self._assert_fixed_assessment(self.scorer.assess(self._customer(50000), [], self.NOW))

    def test_only_old_debits(self):
        """Debits outside the window do not count, whatever their size."""
        old_spend = Transaction(
            id="old",
            customer_id="c",
            amount=10_000_000,
            type=TransactionType.DEBIT,
            category="cash_advance",
            timestamp=self.NOW - timedelta(days=31),
        )
        self._assert_fixed_assessment(self.scorer.assess(self._customer(100), [old_spend], self.NOW))

    def test_only_recent_credits_bypasses_income_rule(self):
        """Credits alone still short-circuit; no income rule runs."""
        salary = Transaction(
            id="s",
            customer_id="c",
            amount=5000,
            type=TransactionType.CREDIT,
            category="salary",
            timestamp=self.NOW - timedelta(days=1),
        )
        self._assert_fixed_assessment(self.scorer.assess(self._customer(5000), [salary], self.NOW))


class TestWindowing:
    """The trailing window is inclusive at both ends."""

    NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def setup_method(self):
        """Set up test fixtures."""
        self.scorer = RiskScorer(window_days=30)
        self.customer = Customer(id="c", name="Window", monthly_income=1000, credit_limit=1000)

    def _debit(self, timestamp: datetime) -> Transaction:
        return Transaction(
            id=timestamp.isoformat(),
            customer_id="c",
            amount=100,
            type=TransactionType.DEBIT,
            category="shopping",
            timestamp=timestamp,
        )

    def test_lower_bound_is_inclusive(self):
        """A debit exactly 30 days old is recent."""
        assessment = self.scorer.assess(self.customer, [self._debit(self.NOW - timedelta(days=30))], self.NOW)
        assert assessment.factors[0].name != NO_ACTIVITY_FACTOR_NAME

    def test_now_is_inclusive(self):
        """A debit stamped exactly at now is recent."""
        assessment = self.scorer.assess(self.customer, [self._debit(self.NOW)], self.NOW)
        assert assessment.factors[0].name != NO_ACTIVITY_FACTOR_NAME

    def test_just_outside_window_is_excluded(self):
        """One second older than the window is not recent."""
        old = self._debit(self.NOW - timedelta(days=30, seconds=1))
        assessment = self.scorer.assess(self.customer, [old], self.NOW)
        assert assessment.factors[0].name == NO_ACTIVITY_FACTOR_NAME

    def test_future_transactions_are_excluded(self):
        """Transactions after now are not part of the window."""
        future = self._debit(self.NOW + timedelta(minutes=1))
        assessment = self.scorer.assess(self.customer, [future], self.NOW)
        assert assessment.factors[0].name == NO_ACTIVITY_FACTOR_NAME


class TestScoreBoundsAndRanking:
    """Clamping, truncation and factor ordering."""

    NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def setup_method(self):
        """Set up test fixtures."""
        self.scorer = RiskScorer(window_days=30)

    def _debit(self, i: int, amount: float, category: str, hour: int) -> Transaction:
        return Transaction(
            id=f"d{i}",
            customer_id="c",
            amount=amount,
            type=TransactionType.DEBIT,
            category=category,
            timestamp=(self.NOW - timedelta(days=1)).replace(hour=hour),
        )

    def test_every_rule_firing_clamps_to_one(self):
        """
        All risk-raising rules fire: 0.5 + 0.2 + 0.15 + 0.15 + 0.1 + 0.1 + 0.1 = 1.3,
        clamped to 1.0. Six factors are emitted and the lowest-ranked is dropped.
        """
        customer = Customer(id="c", name="Maxed Out", monthly_income=1000, credit_limit=1000)
        transactions = [self._debit(i, 10, "atm_withdrawal", 23) for i in range(11)]
        transactions.append(self._debit(99, 5000, "shopping", 12))

        assessment = self.scorer.assess(customer, transactions, self.NOW)

        assert assessment.final_score == 1.0
        assert assessment.risk_category == RiskCategory.HIGH
        assert assessment.anomaly_score == 1.0
        assert assessment.stress_score == 1.0
        assert len(assessment.factors) == 5
        # Equal impacts keep rule order; "No recent income" ranks last and is cut
        assert [f.name for f in assessment.factors] == [
            "High credit utilization",
            "Frequent night transactions",
            "Frequent cash advances",
            "High spending volatility",
            "Many small transactions",
        ]

    def test_factors_sorted_by_absolute_impact(self):
        """Risk-reducing factors rank by magnitude, not sign."""
        customer = Customer(id="c", name="Careful", monthly_income=100000, credit_limit=1000)
        transactions = [
            self._debit(0, 500, "atm_withdrawal", 12),
            self._debit(1, 600, "groceries", 12),
        ]

        assessment = self.scorer.assess(customer, transactions, self.NOW)

        impacts = [abs(f.impact) for f in assessment.factors]
        assert impacts == sorted(impacts, reverse=True)
        # Low utilization (-0.10) and no income (+0.10) tie; utilization is evaluated first
        assert [f.name for f in assessment.factors][:2] == ["Low utilization", "No recent income"]

    def test_random_histories_stay_in_bounds(self):
        """For arbitrary inputs the score is in [0, 1] and matches its category."""
        rng = random.Random(42)
        categories = ["shopping", "atm_withdrawal", "cash_advance", "groceries", "salary"]

        for trial in range(200):
            customer = Customer(
                id=f"c{trial}",
                name="Random",
                monthly_income=rng.uniform(1, 200000),
                credit_limit=1000,
            )
            transactions = [
                Transaction(
                    id=f"t{trial}-{i}",
                    customer_id=customer.id,
                    amount=rng.uniform(0, 50000),
                    type=rng.choice([TransactionType.DEBIT, TransactionType.CREDIT]),
                    category=rng.choice(categories),
                    timestamp=self.NOW - timedelta(minutes=rng.randint(0, 60 * 24 * 40)),
                )
                for i in range(rng.randint(0, 25))
            ]

            assessment = self.scorer.assess(customer, transactions, self.NOW)

            assert 0.0 <= assessment.final_score <= 1.0
            assert assessment.risk_category == score_to_category(assessment.final_score)
            assert len(assessment.factors) <= 5
            impacts = [abs(f.impact) for f in assessment.factors]
            assert impacts == sorted(impacts, reverse=True)
            assert assessment.default_probability == assessment.final_score
            assert 0.0 <= assessment.anomaly_score <= 1.0
            assert 0.0 <= assessment.stress_score <= 1.0
