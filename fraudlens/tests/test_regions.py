"""Tests for suspicious-region locating."""

import pytest

from fraudlens.models.scan import DegradationReason, PageSnapshot, RiskAssessment, SuspiciousRegion
from fraudlens.services.extractor_service import build_snapshot
from fraudlens.services.oracle_service import simulated_assessment
from fraudlens.services.region_service import (
    PLACEHOLDER_REGIONS,
    RegionLocator,
    synthesize_regions,
)
from fraudlens.tests.conftest import FAKE_JPEG, FakeOracle, sample_page_content


def make_assessment(score, indicators=("Fake login form", "Urgent warning")):
    return RiskAssessment(
        risk_score=score,
        risk_level="High",
        indicators=list(indicators),
        degradation_reason=DegradationReason.NONE,
    )


@pytest.fixture
def snapshot():
    return build_snapshot(sample_page_content(), "https://example.com", FAKE_JPEG)


@pytest.mark.asyncio
async def test_simulated_assessment_gets_placeholders(snapshot):
    oracle = FakeOracle()
    regions = await RegionLocator(oracle).locate(simulated_assessment(DegradationReason.API_ERROR), snapshot)
    assert regions == list(PLACEHOLDER_REGIONS)
    assert len(regions) == 3
    assert oracle.region_calls == []


@pytest.mark.asyncio
async def test_missing_screenshot_gets_placeholders():
    snapshot = PageSnapshot(url="https://example.com")
    regions = await RegionLocator(FakeOracle()).locate(make_assessment(90), snapshot)
    assert regions == list(PLACEHOLDER_REGIONS)


@pytest.mark.asyncio
async def test_low_score_skips_oracle(snapshot):
    oracle = FakeOracle()
    assert await RegionLocator(oracle).locate(make_assessment(29), snapshot) == []
    assert oracle.region_calls == []


@pytest.mark.asyncio
async def test_markers_wrapper(snapshot):
    oracle = FakeOracle()
    regions = await RegionLocator(oracle).locate(make_assessment(30), snapshot)
    assert regions == [SuspiciousRegion(top=30, left=20, width=40, height=10, label="Password form")]
    indicators, summary = oracle.region_calls[0]
    assert indicators == ["Fake login form", "Urgent warning"]
    assert summary["title"] == "Secure Account Verification"


@pytest.mark.asyncio
async def test_bare_list_reply_and_clamping(snapshot):
    oracle = FakeOracle(regions_reply=[{"top": -10, "left": 95, "width": 150, "height": 5}])
    regions = await RegionLocator(oracle).locate(make_assessment(60), snapshot)
    assert len(regions) == 1
    region = regions[0]
    assert region.top == 0
    assert region.width == 100
    assert region.label == "Suspicious content"


@pytest.mark.asyncio
async def test_buttons_are_capped(snapshot):
    content = sample_page_content()
    content["buttons"] = [f"Button {i}" for i in range(25)]
    many_buttons = build_snapshot(content, "https://example.com", FAKE_JPEG)
    oracle = FakeOracle()
    await RegionLocator(oracle).locate(make_assessment(60), many_buttons)
    assert len(oracle.region_calls[0][1]["buttons"]) == 10


@pytest.mark.asyncio
async def test_malformed_reply_synthesizes_from_indicators(snapshot):
    oracle = FakeOracle(regions_reply={"markers": [{"top": "high up"}]})
    indicators = ["a", "b", "c", "d", "e"]
    regions = await RegionLocator(oracle).locate(make_assessment(50, indicators), snapshot)
    assert [r.label for r in regions] == ["a", "b", "c"]
    assert [(r.top, r.left) for r in regions] == [(20, 10), (40, 15), (60, 20)]


@pytest.mark.asyncio
async def test_malformed_reply_with_few_indicators(snapshot):
    oracle = FakeOracle(regions_reply="not json at all")
    regions = await RegionLocator(oracle).locate(make_assessment(50, ["only one"]), snapshot)
    assert len(regions) == 1


@pytest.mark.asyncio
async def test_oracle_unavailable_high_score_gets_generic_region(snapshot):
    oracle = FakeOracle(regions_error=RuntimeError("service down"))
    regions = await RegionLocator(oracle).locate(make_assessment(70), snapshot)
    assert len(regions) == 1
    assert regions[0].label == "Suspicious content"


@pytest.mark.asyncio
async def test_oracle_unavailable_moderate_score_gets_nothing(snapshot):
    oracle = FakeOracle(regions_error=RuntimeError("service down"))
    assert await RegionLocator(oracle).locate(make_assessment(69), snapshot) == []


def test_synthesize_empty_indicators():
    assert synthesize_regions([]) == []
