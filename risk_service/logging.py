"""
Structured logging for the Risk Scoring Service.

Every entry is rendered as one JSON object. Besides the event name and an ISO
timestamp, entries may carry:
- request_id: taken from X-Request-ID or generated per request
- customer_id: the customer the request is about
- duration_ms: wall time of a timed operation
- outcome / risk_category / trigger: on assessment events

request_id and customer_id are held in contextvars, so loggers anywhere in a
request pick them up without passing them around.
"""
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Any, Optional

import structlog

from risk_service.errors import RiskServiceError

# Context variables for request-scoped data
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")
customer_id_ctx: ContextVar[str] = ContextVar("customer_id", default="")


def add_context_vars(
    logger: structlog.typing.WrappedLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Processor that adds context variables to log entries."""
    request_id = request_id_ctx.get()
    customer_id = customer_id_ctx.get()

    if request_id:
        event_dict["request_id"] = request_id
    if customer_id:
        event_dict["customer_id"] = customer_id

    return event_dict


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog with JSON output and context processors."""
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level.upper())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
            add_context_vars,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Get a configured logger instance."""
    return structlog.get_logger(name)


def set_request_context(request_id: str, customer_id: Optional[str] = None) -> None:
    """Set the request context for logging."""
    request_id_ctx.set(request_id)
    if customer_id:
        customer_id_ctx.set(customer_id)


def clear_request_context() -> None:
    """Clear the request context after request completion."""
    request_id_ctx.set("")
    customer_id_ctx.set("")


def generate_request_id() -> str:
    """Generate a unique request ID."""
    return str(uuid.uuid4())


class TimedOperation:
    """
    Time a block and log its outcome.

    Logs `<event>_started` on entry. On exit it logs `<event>_completed`, or
    `<event>_rejected` at warning level for a RiskServiceError, or
    `<event>_failed` at error level for anything else. Exceptions are never
    suppressed. `duration_ms` is available after the block for metrics.
    """

    def __init__(
        self,
        event: str,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
        **extra_fields: Any,
    ):
        self.event = event
        self.logger = logger or get_logger()
        self.extra_fields = extra_fields
        self.start_time: float = 0
        self.duration_ms: float = 0

    @property
    def duration_seconds(self) -> float:
        return self.duration_ms / 1000

    def __enter__(self) -> "TimedOperation":
        self.start_time = time.perf_counter()
        self.logger.info(f"{self.event}_started", **self.extra_fields)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.duration_ms = (time.perf_counter() - self.start_time) * 1000
        fields = dict(self.extra_fields, duration_ms=round(self.duration_ms, 2))

        if exc_type is None:
            self.logger.info(f"{self.event}_completed", **fields)
        elif issubclass(exc_type, RiskServiceError):
            self.logger.warning(
                f"{self.event}_rejected",
                error_type=exc_type.__name__,
                error=str(exc_val),
                **fields,
            )
        else:
            self.logger.error(f"{self.event}_failed", error=str(exc_val), **fields)


def log_assessment(
    logger: structlog.stdlib.BoundLogger,
    customer_id: str,
    final_score: float,
    risk_category: str,
    factor_count: int,
    duration_ms: float,
    trigger: str = "lookup",
) -> None:
    """Log a risk assessment with standard fields."""
    logger.info(
        "assessment_completed",
        customer_id=customer_id,
        outcome=risk_category.lower(),
        final_score=final_score,
        risk_category=risk_category,
        factor_count=factor_count,
        trigger=trigger,
        duration_ms=round(duration_ms, 2),
    )
