"""
Domain objects passed between the scan pipeline stages.

Snapshots, assessments and regions are created fresh per request;
ScanResult is the only object that outlives a request (via the cache).
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class RiskLevel(str, Enum):
    SAFE = "Safe"
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"
    UNDETERMINED = "Undetermined"  # oracle reply had no level
    SIMULATED = "Simulated"  # placeholder assessment


class DegradationReason(str, Enum):
    NONE = "None"
    QUOTA_EXCEEDED = "QuotaExceeded"
    API_ERROR = "ApiError"


@dataclass(frozen=True)
class InputInfo:
    type: str = ""
    name: str = ""
    placeholder: str = ""


@dataclass(frozen=True)
class FormInfo:
    action: str = ""
    method: str = ""
    inputs: List[InputInfo] = field(default_factory=list)


@dataclass(frozen=True)
class LinkInfo:
    href: str = ""
    text: str = ""
    is_external: bool = False


@dataclass(frozen=True)
class PageMetadata:
    description: Optional[str] = None
    keywords: Optional[str] = None
    author: Optional[str] = None
    site_name: Optional[str] = None


@dataclass(frozen=True)
class PageSnapshot:
    """Result of one render pass. Degraded (never absent) on failure."""
    url: str
    title: str = ""
    body_text: str = ""
    forms: List[FormInfo] = field(default_factory=list)
    links: List[LinkInfo] = field(default_factory=list)
    buttons: List[str] = field(default_factory=list)
    alerts: List[str] = field(default_factory=list)
    metadata: PageMetadata = field(default_factory=PageMetadata)
    screenshot: Optional[bytes] = None
    fetch_error: Optional[str] = None
    rendered: bool = True  # False when navigation never produced a document
    navigation_attempted: bool = True  # False when the browser failed before goto

    @classmethod
    def failed(
        cls,
        url: str,
        error: str,
        screenshot: Optional[bytes] = None,
        rendered: bool = False,
        navigation_attempted: bool = True,
    ) -> "PageSnapshot":
        return cls(
            url=url,
            title=url,
            body_text=f"Unable to retrieve page content: {error}",
            screenshot=screenshot,
            fetch_error=error,
            rendered=rendered,
            navigation_attempted=navigation_attempted,
        )

    def form_input_types(self) -> List[str]:
        return [inp.type for form in self.forms for inp in form.inputs]

    def external_link_count(self) -> int:
        return sum(1 for link in self.links if link.is_external)


@dataclass(frozen=True)
class RiskAssessment:
    risk_score: float
    risk_level: str
    fraud_types: List[str] = field(default_factory=list)
    indicators: List[str] = field(default_factory=list)
    safety_advice: List[str] = field(default_factory=list)
    is_simulated: bool = False
    degradation_reason: Optional[DegradationReason] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "riskScore": self.risk_score,
            "riskLevel": self.risk_level,
            "fraudTypes": list(self.fraud_types),
            "indicators": list(self.indicators),
            "safetyAdvice": list(self.safety_advice),
            "isSimulated": self.is_simulated,
            "degradationReason": self.degradation_reason.value if self.degradation_reason else None,
        }


def _clamp_percent(value: float) -> float:
    return max(0.0, min(100.0, float(value)))


@dataclass(frozen=True)
class SuspiciousRegion:
    """Overlay box in percentages of the rendered viewport."""
    top: float
    left: float
    width: float
    height: float
    label: str

    def __post_init__(self):
        for name in ("top", "left", "width", "height"):
            object.__setattr__(self, name, _clamp_percent(getattr(self, name)))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ScanResult:
    url: str
    screenshot: Optional[str]  # data URI
    assessment: RiskAssessment
    regions: List[SuspiciousRegion]
    scan_time: datetime
    request_id: str

    @staticmethod
    def screenshot_data_uri(screenshot: Optional[bytes]) -> Optional[str]:
        if not screenshot:
            return None
        return "data:image/jpeg;base64," + base64.b64encode(screenshot).decode("ascii")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "screenshot": self.screenshot,
            "analysis": self.assessment.to_dict(),
            "markers": [region.to_dict() for region in self.regions],
            "scanTime": self.scan_time.isoformat(),
            "requestId": self.request_id,
        }
