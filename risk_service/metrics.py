"""
Prometheus Metrics for the Risk Scoring Service.

This module defines all metrics exposed at the /metrics endpoint.
Metrics are categorized into:

1. Business Metrics - For Risk/Product teams
   - Assessment outcomes, score distribution, transaction intake

2. Technical Metrics - For Engineering/SRE teams
   - Scoring latency, rollup failures, HTTP traffic
"""
from prometheus_client import Counter, Histogram, Info

# =============================================================================
# SERVICE INFO
# =============================================================================

SERVICE_INFO = Info(
    "risk_service",
    "Service information"
)
SERVICE_INFO.info({
    "version": "0.1.0",
    "service": "risk-scoring-service",
})

# =============================================================================
# BUSINESS METRICS
# =============================================================================

# Counter: Assessments computed by category
ASSESSMENT_TOTAL = Counter(
    "risk_assessment_total",
    "Total risk assessments computed",
    ["risk_category"]  # HIGH, MEDIUM, LOW
)

# Histogram: Final score distribution
RISK_SCORE = Histogram(
    "risk_score",
    "Distribution of final risk scores",
    buckets=[0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0]
)

# Counter: Transactions accepted into the ledger
TRANSACTIONS_APPENDED = Counter(
    "risk_transactions_appended_total",
    "Transactions appended to the ledger",
    ["type"]  # debit, credit
)

# Counter: Transactions rejected before reaching the ledger
TRANSACTIONS_REJECTED = Counter(
    "risk_transactions_rejected_total",
    "Transactions rejected by validation"
)

# =============================================================================
# TECHNICAL METRICS
# =============================================================================

# Histogram: Risk scoring latency
SCORING_LATENCY = Histogram(
    "risk_scoring_latency_seconds",
    "Time to calculate a risk assessment",
    buckets=[0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1]
)

# Histogram: Rollup latency (all customers)
ROLLUP_LATENCY = Histogram(
    "risk_rollup_latency_seconds",
    "Time to compute the risk distribution across customers",
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0]
)

# Counter: Customers skipped by the rollup
ROLLUP_FAILURES = Counter(
    "risk_rollup_customer_failures_total",
    "Customers omitted from a rollup because their assessment failed",
    ["error_type"]
)

# =============================================================================
# HTTP METRICS (Standard)
# =============================================================================

HTTP_REQUESTS = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"]
)

HTTP_REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)

# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def record_assessment(risk_category: str, final_score: float) -> None:
    """
    Record metrics for a single served assessment.

    Args:
        risk_category: HIGH, MEDIUM or LOW
        final_score: The clamped final score
    """
    ASSESSMENT_TOTAL.labels(risk_category=risk_category).inc()
    RISK_SCORE.observe(final_score)


def record_scoring_latency(latency_seconds: float) -> None:
    """Record risk scoring latency."""
    SCORING_LATENCY.observe(latency_seconds)


def record_transaction_appended(transaction_type: str) -> None:
    TRANSACTIONS_APPENDED.labels(type=transaction_type).inc()


def record_transaction_rejected() -> None:
    TRANSACTIONS_REJECTED.inc()


def record_rollup(latency_seconds: float, failures: dict[str, int]) -> None:
    """Record rollup latency and any per-customer failures by error type."""
    ROLLUP_LATENCY.observe(latency_seconds)
    for error_type, count in failures.items():
        ROLLUP_FAILURES.labels(error_type=error_type).inc(count)


def record_http_request(method: str, endpoint: str, status: int, latency_seconds: float) -> None:
    """Record a completed HTTP request."""
    HTTP_REQUESTS.labels(method=method, endpoint=endpoint, status=status).inc()
    HTTP_REQUEST_LATENCY.labels(method=method, endpoint=endpoint).observe(latency_seconds)
