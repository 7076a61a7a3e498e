"""HTTP API for the Risk Scoring Service."""
from risk_service.api.routes import router

__all__ = ["router"]
