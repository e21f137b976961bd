"""
Suspicious-region overlays for scan screenshots.

Region annotation is decoration on top of the assessment; every failure
path here resolves to a (possibly empty) list of regions.
"""

from typing import List, Optional

from fraudlens.config import settings
from fraudlens.models.scan import PageSnapshot, RiskAssessment, SuspiciousRegion
from fraudlens.schemas.oracle_schemas import MalformedReply, Ok, parse_region_reply
from fraudlens.services.oracle_service import RiskOracle, build_content_summary
from fraudlens.utils.fallback import with_fallback
from fraudlens.utils.logging_config import StructuredLogger

logger = StructuredLogger(__name__)

MAX_SYNTHESIZED_REGIONS = 3
GENERIC_LABEL = "Suspicious content"

PLACEHOLDER_REGIONS = (
    SuspiciousRegion(top=20, left=10, width=30, height=5, label="Suspicious login form"),
    SuspiciousRegion(top=50, left=40, width=25, height=8, label="Click-bait button"),
    SuspiciousRegion(top=70, left=5, width=35, height=7, label="Suspicious offer"),
)

MALFORMED = "malformed"
UNAVAILABLE = "unavailable"


def placeholder_regions() -> List[SuspiciousRegion]:
    return list(PLACEHOLDER_REGIONS)


def synthesize_regions(indicators: List[str]) -> List[SuspiciousRegion]:
    """One region per leading indicator, at fixed offsets, at most three."""
    return [
        SuspiciousRegion(
            top=20 + 20 * i,
            left=10 + 5 * i,
            width=30,
            height=5,
            label=indicators[i] or GENERIC_LABEL,
        )
        for i in range(min(len(indicators), MAX_SYNTHESIZED_REGIONS))
    ]


def classify_region_failure(exc: Exception) -> str:
    return MALFORMED if isinstance(exc, MalformedReply) else UNAVAILABLE


class RegionLocator:
    def __init__(
        self,
        oracle: RiskOracle,
        min_score: Optional[float] = None,
        fallback_score: Optional[float] = None,
    ):
        self.oracle = oracle
        self.min_score = min_score if min_score is not None else settings.region_min_score
        self.fallback_score = fallback_score if fallback_score is not None else settings.region_fallback_score

    async def _query_oracle(self, assessment: RiskAssessment, snapshot: PageSnapshot) -> List[SuspiciousRegion]:
        summary = build_content_summary(snapshot)
        summary["buttons"] = summary["buttons"][:10]
        raw = await self.oracle.locate_regions(list(assessment.indicators), summary)

        parsed = parse_region_reply(raw)
        if not isinstance(parsed, Ok):
            raise MalformedReply(parsed.reason)

        return [
            SuspiciousRegion(
                top=region.top,
                left=region.left,
                width=region.width,
                height=region.height,
                label=region.label or GENERIC_LABEL,
            )
            for region in parsed.value
        ]

    def _fallback(self, reason: str, assessment: RiskAssessment) -> List[SuspiciousRegion]:
        if reason == MALFORMED:
            return synthesize_regions(list(assessment.indicators))
        if assessment.risk_score >= self.fallback_score:
            return [SuspiciousRegion(top=20, left=10, width=30, height=5, label=GENERIC_LABEL)]
        return []

    async def locate(self, assessment: RiskAssessment, snapshot: PageSnapshot) -> List[SuspiciousRegion]:
        if assessment.is_simulated or snapshot.screenshot is None:
            return placeholder_regions()

        if assessment.risk_score < self.min_score:
            return []

        regions = await with_fallback(
            lambda: self._query_oracle(assessment, snapshot),
            lambda reason: self._fallback(reason, assessment),
            classify=classify_region_failure,
            label="Region locating",
        )
        logger.debug("Regions located", url=snapshot.url, count=len(regions))
        return regions
