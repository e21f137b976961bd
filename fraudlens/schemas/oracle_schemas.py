"""
Strict schemas for the risk oracle's structured replies.

Replies are validated at the boundary and come back as a tagged result:
``Ok(value)`` or ``Malformed(reason)``. Nothing downstream looks at raw JSON.
"""

from dataclasses import dataclass
from typing import Any, Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, ValidationError

T = TypeVar("T")


class MalformedReply(ValueError):
    """The oracle answered, but not in the requested shape."""


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Malformed:
    reason: str


ParseResult = Union[Ok, Malformed]


class OracleAssessment(BaseModel):
    model_config = ConfigDict(extra="ignore")

    riskScore: Optional[float] = None
    riskLevel: Optional[str] = None
    fraudTypes: Optional[List[str]] = None
    indicators: Optional[List[str]] = None
    safetyAdvice: Optional[List[str]] = None


class OracleRegion(BaseModel):
    model_config = ConfigDict(extra="ignore")

    top: float
    left: float
    width: float
    height: float
    label: str = ""


def parse_assessment_reply(raw: Any) -> ParseResult:
    if not isinstance(raw, dict):
        return Malformed(f"expected a JSON object, got {type(raw).__name__}")
    try:
        return Ok(OracleAssessment.model_validate(raw))
    except ValidationError as e:
        return Malformed(f"{e.error_count()} invalid field(s): {e.errors()[0]['loc']}")


def parse_region_reply(raw: Any) -> ParseResult:
    """Accept a bare list or a ``{"markers": [...]}`` wrapper."""
    if isinstance(raw, dict) and "markers" in raw:
        raw = raw["markers"]
    if not isinstance(raw, list):
        return Malformed("expected a list of regions or a {markers: [...]} object")
    try:
        return Ok([OracleRegion.model_validate(item) for item in raw])
    except ValidationError as e:
        return Malformed(f"invalid region entry: {e.errors()[0]['msg']}")
