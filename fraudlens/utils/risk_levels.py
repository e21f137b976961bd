"""
Risk level utilities.
Maps the 0-100 risk score onto the five named levels using configurable
thresholds. Applied identically wherever a level is derived from a score.
"""

from typing import Optional

from fraudlens.config import settings
from fraudlens.models.scan import RiskLevel


def derive_risk_from_score(
    score: float,
    low_threshold: Optional[float] = None,
    medium_threshold: Optional[float] = None,
    high_threshold: Optional[float] = None,
    critical_threshold: Optional[float] = None,
) -> RiskLevel:
    """
    Derive risk level purely from score (0-100 scale).

    Args:
        score: The risk score (0-100)
        low_threshold: Score >= this = Low (default from config)
        medium_threshold: Score >= this = Medium (default from config)
        high_threshold: Score >= this = High (default from config)
        critical_threshold: Score >= this = Critical (default from config)

    Returns:
        RiskLevel.SAFE through RiskLevel.CRITICAL
    """
    low = low_threshold if low_threshold is not None else settings.low_risk_threshold
    medium = medium_threshold if medium_threshold is not None else settings.medium_risk_threshold
    high = high_threshold if high_threshold is not None else settings.high_risk_threshold
    critical = critical_threshold if critical_threshold is not None else settings.critical_risk_threshold

    if score >= critical:
        return RiskLevel.CRITICAL
    elif score >= high:
        return RiskLevel.HIGH
    elif score >= medium:
        return RiskLevel.MEDIUM
    elif score >= low:
        return RiskLevel.LOW
    else:
        return RiskLevel.SAFE


def resolve_risk_level(score: Optional[float], reported_level: Optional[str] = None) -> str:
    """
    Prefer the level string the oracle reported; derive it from the score
    when only a score was given. With neither, the level is Undetermined.
    """
    if reported_level and reported_level.strip():
        return reported_level.strip()
    if score is None:
        return RiskLevel.UNDETERMINED.value
    return derive_risk_from_score(score).value
