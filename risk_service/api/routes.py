"""API route handlers for the Risk Scoring Service."""
from datetime import datetime

from fastapi import APIRouter, Depends, Request

from risk_service.api.dependencies import get_assessment_service, get_now, get_request_id, get_settings
from risk_service.config import Settings
from risk_service.logging import get_logger, set_request_context
from risk_service.schemas import (
    CustomerSchema, CustomerWithRisk,
    RiskAssessmentSchema,
    RiskDistribution, StatsResponse,
    TransactionCreate, TransactionCreatedResponse, TransactionSchema,
)
from risk_service.services.assessment import AssessmentService

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["risk"])


@router.get("/test")
def api_test(now: datetime = Depends(get_now)):
    """Liveness check used by the dashboard."""
    return {"message": "API is working!", "status": "ok", "time": now}


@router.get("/health")
def api_health(
    now: datetime = Depends(get_now),
    app_settings: Settings = Depends(get_settings),
):
    """Health check in the shape the dashboard polls."""
    return {"status": "healthy", "timestamp": now, "environment": app_settings.environment}


@router.get("/users", response_model=list[CustomerWithRisk])
def list_users(
    service: AssessmentService = Depends(get_assessment_service),
    now: datetime = Depends(get_now),
):
    """
    List every customer with their current risk score and category.

    Scores are computed at request time. A customer that cannot be scored is
    still listed, with null risk fields.
    """
    entries = service.list_customers_with_risk(now)

    logger.info("users_listed", customer_count=len(entries))

    return [
        CustomerWithRisk(
            **CustomerSchema.model_validate(entry.customer).model_dump(),
            risk_score=entry.risk_score,
            risk_category=entry.risk_category,
        )
        for entry in entries
    ]


@router.get("/users/{customer_id}", response_model=CustomerSchema)
def get_user(
    customer_id: str,
    request: Request,
    service: AssessmentService = Depends(get_assessment_service),
):
    """Fetch a customer profile."""
    set_request_context(get_request_id(request), customer_id=customer_id)
    return CustomerSchema.model_validate(service.get_customer(customer_id))


@router.get("/users/{customer_id}/transactions", response_model=list[TransactionSchema])
def list_user_transactions(
    customer_id: str,
    request: Request,
    service: AssessmentService = Depends(get_assessment_service),
):
    """List a customer's transactions, newest first."""
    set_request_context(get_request_id(request), customer_id=customer_id)
    transactions = service.list_transactions(customer_id)

    logger.info("transactions_listed", transaction_count=len(transactions))

    return [TransactionSchema.model_validate(t) for t in transactions]


@router.get("/users/{customer_id}/risk", response_model=RiskAssessmentSchema)
def get_user_risk(
    customer_id: str,
    request: Request,
    service: AssessmentService = Depends(get_assessment_service),
    now: datetime = Depends(get_now),
):
    """
    Compute the customer's risk assessment.

    The assessment is derived from the trailing 30 days of transactions and
    recomputed on every request; nothing is cached.
    """
    set_request_context(get_request_id(request), customer_id=customer_id)
    return RiskAssessmentSchema.model_validate(service.assess_customer(customer_id, now))


@router.post(
    "/users/{customer_id}/transactions",
    response_model=TransactionCreatedResponse,
    status_code=201,
)
def add_user_transaction(
    customer_id: str,
    request_body: TransactionCreate,
    request: Request,
    service: AssessmentService = Depends(get_assessment_service),
    now: datetime = Depends(get_now),
):
    """
    Record a transaction for the customer.

    Returns the stored transaction together with the freshly recomputed
    assessment so callers do not need a second round-trip.
    """
    set_request_context(get_request_id(request), customer_id=customer_id)

    logger.info(
        "transaction_add_requested",
        amount=request_body.amount,
        type=request_body.type.value,
        category=request_body.category,
    )

    transaction, assessment = service.add_transaction(
        customer_id,
        amount=request_body.amount,
        type=request_body.type,
        category=request_body.category,
        now=now,
    )

    return TransactionCreatedResponse(
        transaction=TransactionSchema.model_validate(transaction),
        risk=RiskAssessmentSchema.model_validate(assessment),
    )


@router.get("/stats", response_model=StatsResponse)
def get_stats(
    service: AssessmentService = Depends(get_assessment_service),
    now: datetime = Depends(get_now),
):
    """
    Risk distribution across all customers.

    Every customer is scored at request time. Customers whose assessment fails
    are reported in `omitted` instead of failing the request.
    """
    stats = service.stats(now)
    distribution = stats.distribution

    logger.info(
        "stats_computed",
        total_users=stats.total_users,
        high=distribution.high,
        medium=distribution.medium,
        low=distribution.low,
        omitted=len(distribution.omitted),
    )

    return StatsResponse(
        total_users=stats.total_users,
        total_transactions=stats.total_transactions,
        risk_distribution=RiskDistribution(
            high=distribution.high,
            medium=distribution.medium,
            low=distribution.low,
        ),
        omitted=list(distribution.omitted),
    )
