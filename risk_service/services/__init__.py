"""Service layer for the Risk Scoring Service."""
from risk_service.services.assessment import AssessmentService, rollup
from risk_service.services.ledger import InMemoryLedger, Ledger, SqlLedger, create_ledger

__all__ = ["AssessmentService", "InMemoryLedger", "Ledger", "SqlLedger", "create_ledger", "rollup"]
