"""
Risk assessment through the external oracle.

RiskOracleClient.assess() never raises: an unavailable or misbehaving oracle
yields a clearly tagged simulated assessment instead.
"""

from typing import Any, Dict, List, Optional, Protocol

from openai import RateLimitError

from fraudlens.config import settings
from fraudlens.models.scan import DegradationReason, PageSnapshot, RiskAssessment, RiskLevel
from fraudlens.schemas.oracle_schemas import MalformedReply, Ok, parse_assessment_reply
from fraudlens.utils.fallback import with_fallback
from fraudlens.utils.logging_config import StructuredLogger, log_execution_time
from fraudlens.utils.risk_levels import resolve_risk_level

logger = StructuredLogger(__name__)

SIMULATED_RISK_SCORE = 75.0


class RiskOracle(Protocol):
    async def assess(self, summary: Dict[str, Any]) -> Any:
        ...

    async def locate_regions(self, indicators: List[str], summary: Dict[str, Any]) -> Any:
        ...


def build_content_summary(snapshot: PageSnapshot, body_budget: Optional[int] = None) -> Dict[str, Any]:
    """Bounded-size view of a snapshot for oracle prompts."""
    budget = body_budget if body_budget is not None else settings.body_text_budget
    return {
        "url": snapshot.url,
        "title": snapshot.title,
        "description": snapshot.metadata.description,
        "bodyText": snapshot.body_text[:budget],
        "formCount": len(snapshot.forms),
        "formInputTypes": snapshot.form_input_types(),
        "externalLinkCount": snapshot.external_link_count(),
        "buttons": list(snapshot.buttons),
        "alerts": list(snapshot.alerts),
    }


def classify_oracle_failure(exc: Exception) -> DegradationReason:
    """QuotaExceeded for rate/quota signals from the transport, ApiError otherwise."""
    if isinstance(exc, RateLimitError):
        return DegradationReason.QUOTA_EXCEEDED
    if getattr(exc, "code", None) == "insufficient_quota":
        return DegradationReason.QUOTA_EXCEEDED
    if getattr(exc, "status_code", None) == 429:
        return DegradationReason.QUOTA_EXCEEDED
    return DegradationReason.API_ERROR


def simulated_assessment(reason: DegradationReason) -> RiskAssessment:
    """Deterministic placeholder used whenever the oracle is unusable."""
    if reason == DegradationReason.QUOTA_EXCEEDED:
        cause = "Risk analysis quota exceeded"
    else:
        cause = "Risk analysis service unavailable"

    return RiskAssessment(
        risk_score=SIMULATED_RISK_SCORE,
        risk_level=RiskLevel.SIMULATED.value,
        fraud_types=[cause, "Simulated data shown"],
        indicators=[
            f"{cause}; showing simulated analysis results",
            "The website may use inducing language",
            "Suspicious forms may request personal information",
            "No clear privacy policy",
        ],
        safety_advice=[
            "Be careful when providing personal information",
            "Check that the website uses a secure connection (HTTPS)",
            "Search for reviews and comments about the website",
            f"{cause}; please scan again later for a real assessment",
        ],
        is_simulated=True,
        degradation_reason=reason,
    )


def normalize_assessment(raw: Any) -> RiskAssessment:
    """
    Validate an oracle reply and fill every missing field with its zero value.

    Raises:
        MalformedReply: if the reply does not match the schema at all
    """
    parsed = parse_assessment_reply(raw)
    if not isinstance(parsed, Ok):
        raise MalformedReply(parsed.reason)

    reply = parsed.value
    score = max(0.0, min(100.0, reply.riskScore)) if reply.riskScore is not None else None

    return RiskAssessment(
        risk_score=score if score is not None else 0.0,
        risk_level=resolve_risk_level(score, reply.riskLevel),
        fraud_types=list(reply.fraudTypes or []),
        indicators=list(reply.indicators or []),
        safety_advice=list(reply.safetyAdvice or []),
        is_simulated=False,
        degradation_reason=DegradationReason.NONE,
    )


class RiskOracleClient:
    def __init__(self, oracle: RiskOracle, body_budget: Optional[int] = None):
        self.oracle = oracle
        self.body_budget = body_budget if body_budget is not None else settings.body_text_budget

    async def _assess_with_oracle(self, snapshot: PageSnapshot) -> RiskAssessment:
        raw = await self.oracle.assess(build_content_summary(snapshot, self.body_budget))
        return normalize_assessment(raw)

    @log_execution_time("fraudlens.oracle")
    async def assess(self, snapshot: PageSnapshot) -> RiskAssessment:
        assessment = await with_fallback(
            lambda: self._assess_with_oracle(snapshot),
            simulated_assessment,
            classify=classify_oracle_failure,
            label="Risk assessment",
        )
        if assessment.is_simulated:
            logger.warning(
                "Serving simulated assessment",
                url=snapshot.url,
                reason=assessment.degradation_reason.value,
            )
        else:
            logger.info(
                "Risk assessed",
                url=snapshot.url,
                risk_score=assessment.risk_score,
                risk_level=assessment.risk_level,
            )
        return assessment
