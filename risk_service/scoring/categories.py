"""
Risk Category Mapping

Maps a final risk score in [0, 1] to one of three coarse categories.

The thresholds partition the score range without gaps or overlap:

- HIGH:   score >= 0.7
- MEDIUM: 0.4 <= score < 0.7
- LOW:    score < 0.4

Lower bounds are inclusive, so a score of exactly 0.4 is MEDIUM and exactly
0.7 is HIGH.
"""
from enum import Enum

from risk_service.logging import get_logger

logger = get_logger(__name__)


class RiskCategory(str, Enum):
    """Coarse risk label derived from the numeric score."""
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


# Score thresholds (inclusive lower bound), checked top-down
CATEGORY_THRESHOLDS = [
    (0.7, RiskCategory.HIGH),
    (0.4, RiskCategory.MEDIUM),
]


def score_to_category(score: float) -> RiskCategory:
    """
    Map a risk score to its category.

    Args:
        score: Final risk score, expected in [0, 1]

    Returns:
        The RiskCategory for the score

    Example:
        >>> score_to_category(0.7)
        <RiskCategory.HIGH: 'HIGH'>
        >>> score_to_category(0.4)
        <RiskCategory.MEDIUM: 'MEDIUM'>
        >>> score_to_category(0.39999)
        <RiskCategory.LOW: 'LOW'>
    """
    for threshold, category in CATEGORY_THRESHOLDS:
        if score >= threshold:
            logger.debug(
                "risk_category_mapped",
                score=score,
                threshold=threshold,
                category=category.value,
            )
            return category

    return RiskCategory.LOW
