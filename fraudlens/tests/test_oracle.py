"""Tests for oracle-backed risk assessment and its degraded mode."""

import httpx
import pytest
from openai import RateLimitError

from fraudlens.models.scan import DegradationReason, PageSnapshot
from fraudlens.schemas.oracle_schemas import MalformedReply
from fraudlens.services.oracle_service import (
    RiskOracleClient,
    build_content_summary,
    classify_oracle_failure,
    normalize_assessment,
)
from fraudlens.services.extractor_service import build_snapshot
from fraudlens.tests.conftest import FAKE_JPEG, FakeOracle, sample_page_content


def make_snapshot(body_text=None):
    content = sample_page_content()
    if body_text is not None:
        content["bodyText"] = body_text
    return build_snapshot(content, "https://example.com", FAKE_JPEG)


def quota_error():
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    return RateLimitError("quota exceeded", response=httpx.Response(429, request=request), body=None)


class InsufficientQuota(Exception):
    code = "insufficient_quota"


class TestNormalizeAssessment:
    def test_full_reply(self):
        assessment = normalize_assessment({
            "riskScore": 42,
            "riskLevel": "Medium",
            "fraudTypes": ["Phishing"],
            "indicators": ["Login form"],
            "safetyAdvice": ["Check the domain"],
        })
        assert assessment.risk_score == 42
        assert assessment.risk_level == "Medium"
        assert assessment.is_simulated is False
        assert assessment.degradation_reason == DegradationReason.NONE

    def test_missing_fields_get_zero_values(self):
        assessment = normalize_assessment({"riskScore": 10})
        assert assessment.fraud_types == []
        assert assessment.indicators == []
        assert assessment.safety_advice == []
        assert assessment.risk_level == "Safe"

    def test_empty_reply_is_undetermined(self):
        assessment = normalize_assessment({})
        assert assessment.risk_score == 0
        assert assessment.risk_level == "Undetermined"

    def test_score_is_clamped(self):
        assert normalize_assessment({"riskScore": 140, "riskLevel": "Critical"}).risk_score == 100
        assert normalize_assessment({"riskScore": -5, "riskLevel": "Safe"}).risk_score == 0

    def test_non_object_reply_is_malformed(self):
        with pytest.raises(MalformedReply):
            normalize_assessment(["not", "an", "object"])

    def test_wrong_field_type_is_malformed(self):
        with pytest.raises(MalformedReply):
            normalize_assessment({"riskScore": "very risky"})


class TestClassifyOracleFailure:
    def test_rate_limit_is_quota(self):
        assert classify_oracle_failure(quota_error()) == DegradationReason.QUOTA_EXCEEDED

    def test_insufficient_quota_code(self):
        assert classify_oracle_failure(InsufficientQuota()) == DegradationReason.QUOTA_EXCEEDED

    def test_anything_else_is_api_error(self):
        assert classify_oracle_failure(RuntimeError("boom")) == DegradationReason.API_ERROR
        assert classify_oracle_failure(MalformedReply("bad json")) == DegradationReason.API_ERROR


def test_content_summary_truncates_body():
    snapshot = make_snapshot(body_text="x" * 5000)
    summary = build_content_summary(snapshot, body_budget=3000)
    assert len(summary["bodyText"]) == 3000
    assert summary["formCount"] == 1
    assert summary["formInputTypes"] == ["email", "password"]
    assert summary["externalLinkCount"] == 1
    assert summary["description"] == "Account verification"


@pytest.mark.asyncio
async def test_assess_uses_oracle_reply():
    oracle = FakeOracle()
    assessment = await RiskOracleClient(oracle).assess(make_snapshot())
    assert assessment.risk_score == 85
    assert assessment.risk_level == "Critical"
    assert assessment.is_simulated is False
    assert oracle.assess_calls[0]["url"] == "https://example.com/"


@pytest.mark.asyncio
async def test_oracle_error_yields_simulated_api_error():
    client = RiskOracleClient(FakeOracle(assess_error=RuntimeError("connection reset")))
    assessment = await client.assess(make_snapshot())
    assert assessment.is_simulated is True
    assert assessment.risk_score == 75
    assert assessment.risk_level == "Simulated"
    assert assessment.degradation_reason == DegradationReason.API_ERROR
    assert assessment.indicators and assessment.safety_advice


@pytest.mark.asyncio
async def test_quota_error_yields_simulated_quota_exceeded():
    client = RiskOracleClient(FakeOracle(assess_error=quota_error()))
    assessment = await client.assess(make_snapshot())
    assert assessment.is_simulated is True
    assert assessment.degradation_reason == DegradationReason.QUOTA_EXCEEDED
    assert any("quota" in advice.lower() for advice in assessment.safety_advice)


@pytest.mark.asyncio
async def test_malformed_reply_yields_simulated():
    client = RiskOracleClient(FakeOracle(assess_reply=["nope"]))
    assessment = await client.assess(make_snapshot())
    assert assessment.is_simulated is True
    assert assessment.degradation_reason == DegradationReason.API_ERROR


@pytest.mark.asyncio
async def test_degraded_snapshot_is_still_assessed():
    oracle = FakeOracle()
    snapshot = PageSnapshot.failed("https://example.com", "Execution context was destroyed", rendered=True)
    assessment = await RiskOracleClient(oracle).assess(snapshot)
    assert assessment.is_simulated is False
    assert oracle.assess_calls[0]["bodyText"].startswith("Unable to retrieve page content")
