from pydantic import BaseModel
from typing import List, Optional


class ScanRequest(BaseModel):
    url: Optional[str] = None  # validated by the endpoint so errors share one shape


class AnalysisData(BaseModel):
    """Risk assessment as returned to clients."""
    riskScore: float
    riskLevel: str
    fraudTypes: List[str]
    indicators: List[str]
    safetyAdvice: List[str]
    isSimulated: bool = False  # True when the oracle was unavailable
    degradationReason: Optional[str] = None


class Marker(BaseModel):
    """Suspicious region, in percentages of the screenshot."""
    top: float
    left: float
    width: float
    height: float
    label: str


class ScanResponse(BaseModel):
    url: str
    screenshot: Optional[str] = None  # data URI
    analysis: AnalysisData
    markers: List[Marker]
    scanTime: str
    requestId: str


class ErrorResponse(BaseModel):
    error: bool = True
    message: str
    details: Optional[str] = None
    timestamp: str
    requestId: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    timestamp: str
