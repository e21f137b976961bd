import dataclasses
import time
from datetime import datetime, timezone
from typing import Optional

from fraudlens.config import settings
from fraudlens.exceptions import GeneralScanError, classify_navigation_error
from fraudlens.models.scan import ScanResult
from fraudlens.services.browser_service import BrowserProvider, PlaywrightBrowserProvider
from fraudlens.services.cache_service import ScanCache
from fraudlens.services.extractor_service import ContentExtractor
from fraudlens.services.llm_client import LLMClient
from fraudlens.services.oracle_service import RiskOracle, RiskOracleClient
from fraudlens.services.region_service import RegionLocator
from fraudlens.services.task_queue import TaskQueue
from fraudlens.utils.logging_config import StructuredLogger, metrics
from fraudlens.utils.preprocessing import normalize_url

logger = StructuredLogger(__name__)


class ScanOrchestrator:
    """
    One scan request lifecycle:
    cache -> gate -> extract -> assess -> locate regions -> cache -> result.

    Owns the scan cache and the admission queue; one instance per app.
    Concurrent first-time scans of the same URL are not de-duplicated.
    """

    def __init__(
        self,
        extractor: ContentExtractor,
        oracle_client: RiskOracleClient,
        region_locator: RegionLocator,
        cache: ScanCache,
        gate: TaskQueue,
        provider: Optional[BrowserProvider] = None,
    ):
        self.extractor = extractor
        self.oracle_client = oracle_client
        self.region_locator = region_locator
        self.cache = cache
        self.gate = gate
        self.provider = provider

    @classmethod
    def build(
        cls,
        provider: Optional[BrowserProvider] = None,
        oracle: Optional[RiskOracle] = None,
        cache: Optional[ScanCache] = None,
        gate: Optional[TaskQueue] = None,
    ) -> "ScanOrchestrator":
        """Wire the pipeline from settings, with any collaborator overridable."""
        provider = provider or PlaywrightBrowserProvider()
        oracle = oracle or LLMClient()
        return cls(
            extractor=ContentExtractor(provider),
            oracle_client=RiskOracleClient(oracle),
            region_locator=RegionLocator(oracle),
            cache=cache or ScanCache(
                enabled=settings.enable_cache,
                ttl_seconds=settings.cache_ttl,
                max_items=settings.max_cache_items,
                sweep_interval=settings.cache_sweep_interval,
            ),
            gate=gate or TaskQueue(settings.max_concurrent_requests),
            provider=provider,
        )

    async def start(self):
        self.cache.start()

    async def shutdown(self):
        await self.cache.stop()
        close = getattr(self.provider, "close", None)
        if close is not None:
            try:
                await close()
            except Exception as e:
                logger.error("Error shutting down browser provider", error=str(e))

    def _from_cache(self, url: str, request_id: str) -> Optional[ScanResult]:
        cached = self.cache.get(url)
        if cached is None:
            return None
        metrics.increment("scan.cache.hits")
        logger.info("Serving scan from cache", url=url, original_request_id=cached.request_id)
        return dataclasses.replace(cached, request_id=request_id)

    async def scan(self, url: str, request_id: str) -> ScanResult:
        """
        Raises:
            ScanError: when the page could not be rendered at all
        """
        url = normalize_url(url)
        metrics.increment("scan.requests.total")

        cached = self._from_cache(url, request_id)
        if cached is not None:
            return cached

        if self.gate.active_count >= self.gate.limit:
            logger.info("Scan queued", url=url, pending=self.gate.pending_count + 1)
        return await self.gate.submit(lambda: self._run(url, request_id))

    async def _run(self, url: str, request_id: str) -> ScanResult:
        # A scan that finished while this one waited in the queue may have filled the cache.
        cached = self._from_cache(url, request_id)
        if cached is not None:
            return cached

        start = time.time()
        metrics.gauge("scan.active", self.gate.active_count)
        logger.info("Scan started", url=url)

        snapshot = await self.extractor.extract(url, request_id)
        if not snapshot.rendered:
            if snapshot.navigation_attempted:
                error = classify_navigation_error(snapshot.fetch_error)
            else:
                # Browser setup failed; nothing is known about the target site.
                error = GeneralScanError(details=snapshot.fetch_error)
            metrics.increment(f"scan.errors.{error.error_type}")
            logger.warning(
                "Scan aborted: page could not be rendered",
                url=url,
                error_type=error.error_type,
                error=snapshot.fetch_error,
            )
            raise error

        assessment = await self.oracle_client.assess(snapshot)
        regions = await self.region_locator.locate(assessment, snapshot)

        result = ScanResult(
            url=url,
            screenshot=ScanResult.screenshot_data_uri(snapshot.screenshot),
            assessment=assessment,
            regions=regions,
            scan_time=datetime.now(timezone.utc),
            request_id=request_id,
        )
        self.cache.put(url, result)

        duration = time.time() - start
        metrics.timing("scan.latency", duration)
        metrics.increment(f"scan.risk.{assessment.risk_level.lower()}")
        if assessment.is_simulated:
            metrics.increment("scan.simulated")
        logger.info(
            "Scan completed",
            url=url,
            risk_score=assessment.risk_score,
            simulated=assessment.is_simulated,
            regions=len(regions),
            duration_ms=round(duration * 1000, 2),
        )
        return result

    def stats(self) -> dict:
        return {
            "cache": self.cache.stats(),
            "gate": self.gate.stats(),
        }
