"""Risk scoring module for behavioural credit risk."""
from risk_service.scoring.calculator import RiskAssessment, RiskFactor, RiskScorer
from risk_service.scoring.categories import RiskCategory, score_to_category

__all__ = ["RiskAssessment", "RiskCategory", "RiskFactor", "RiskScorer", "score_to_category"]
