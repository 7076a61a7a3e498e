"""
Risk Scoring Service

A FastAPI-based service that scores customers' behavioural credit risk from
their recent transaction history.

Scoring Model:
--------------
The score is a deterministic, rule-based aggregation over the trailing 30
days of a customer's transactions:

1. Spending relative to monthly income (utilization)
2. Late-night and cash-withdrawal activity
3. Volatility and fragmentation of spending
4. Presence of incoming funds

Assessments are derived state. They are recomputed on every request from a
snapshot of the ledger and never stored, so recording a transaction affects
only the next assessment.
"""
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from risk_service import metrics
from risk_service.api import router
from risk_service.config import Settings, settings as default_settings
from risk_service.errors import CustomerNotFound, InvalidCustomerProfile, InvalidTransaction
from risk_service.logging import (
    configure_logging,
    get_logger,
    set_request_context,
    clear_request_context,
    generate_request_id,
)
from risk_service.scoring import RiskScorer
from risk_service.seed import load_demo_data
from risk_service.services.assessment import AssessmentService
from risk_service.services.ledger import Ledger, create_ledger

logger = get_logger(__name__)


def create_app(
    app_settings: Optional[Settings] = None,
    ledger: Optional[Ledger] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        app_settings: Settings to use (defaults to environment settings)
        ledger: Pre-built ledger; when omitted one is created from settings
                and seeded with demo data if enabled
    """
    app_settings = app_settings or default_settings
    configure_logging(app_settings.log_level)

    if ledger is None:
        ledger = create_ledger(app_settings.ledger_backend, app_settings.database_url)
        if app_settings.seed_demo_data:
            load_demo_data(ledger, anchor=datetime.now(timezone.utc))

    scorer = RiskScorer(
        window_days=app_settings.analysis_window_days,
        local_timezone=app_settings.local_timezone,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info(
            "service_starting",
            service_name=app_settings.service_name,
            ledger_backend=app_settings.ledger_backend,
        )
        yield
        logger.info("service_stopping", service_name=app_settings.service_name)

    app = FastAPI(
        title="Risk Scoring Service",
        description="Behavioural credit-risk scoring from recent transaction history",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.assessment_service = AssessmentService(ledger, scorer)

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        """
        Middleware for request tracing, logging, and metrics.

        Sets up request context with:
        - request_id: Unique identifier for tracing
        - Timing for duration_ms calculation
        - Prometheus metrics collection
        """
        method = request.method
        path = request.url.path

        # Skip logging/metrics for health and metrics endpoints
        if path in ("/health", "/metrics"):
            return await call_next(request)

        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_context(request_id)

        # Store request_id in request state for access in route handlers
        request.state.request_id = request_id

        start_time = time.perf_counter()

        logger.info("request_received", method=method, path=path)

        try:
            response = await call_next(request)

            duration_ms = (time.perf_counter() - start_time) * 1000

            logger.info(
                "request_completed",
                method=method,
                path=path,
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
            )

            metrics.record_http_request(method, path, response.status_code, duration_ms / 1000)

            response.headers["X-Request-ID"] = request_id
            return response

        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000

            logger.error(
                "request_failed",
                method=method,
                path=path,
                duration_ms=round(duration_ms, 2),
                error=str(e),
            )

            metrics.record_http_request(method, path, 500, duration_ms / 1000)
            raise

        finally:
            clear_request_context()

    @app.exception_handler(CustomerNotFound)
    async def customer_not_found_handler(request: Request, exc: CustomerNotFound):
        """Unknown customers are a distinguishable 404, never an empty assessment."""
        request_id = getattr(request.state, "request_id", "unknown")

        logger.warning(
            "customer_not_found",
            customer_id=exc.customer_id,
            outcome="not_found",
        )

        return JSONResponse(
            status_code=404,
            content={"detail": str(exc)},
            headers={"X-Request-ID": request_id},
        )

    @app.exception_handler(InvalidCustomerProfile)
    async def invalid_profile_handler(request: Request, exc: InvalidCustomerProfile):
        """The customer exists but their profile cannot be scored."""
        request_id = getattr(request.state, "request_id", "unknown")

        logger.error(
            "customer_profile_invalid",
            customer_id=exc.customer_id,
            reason=exc.reason,
            outcome="unscorable",
        )

        return JSONResponse(
            status_code=409,
            content={"detail": str(exc)},
            headers={"X-Request-ID": request_id},
        )

    @app.exception_handler(InvalidTransaction)
    async def invalid_transaction_handler(request: Request, exc: InvalidTransaction):
        """Rejected transactions never reach the ledger."""
        request_id = getattr(request.state, "request_id", "unknown")

        logger.warning("transaction_invalid", reason=exc.reason, outcome="rejected")

        return JSONResponse(
            status_code=422,
            content={"detail": str(exc)},
            headers={"X-Request-ID": request_id},
        )

    app.include_router(router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint for container orchestration."""
        return {"status": "ok", "service": app_settings.service_name}

    @app.get("/metrics")
    async def metrics_endpoint():
        """Prometheus metrics endpoint."""
        return Response(
            content=generate_latest(),
            media_type=CONTENT_TYPE_LATEST
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
