"""
Browser acquisition for page rendering.

The scan pipeline only needs ``acquire()``/``release()``; the Playwright
provider below keeps one Chromium process alive across scans (each scan gets
its own isolated context) unless reuse is switched off.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol

from playwright.async_api import Browser, Playwright, async_playwright

from fraudlens.config import settings

logger = logging.getLogger(__name__)


class BrowserProvider(Protocol):
    async def acquire(self) -> Browser:
        ...

    async def release(self, handle: Browser) -> None:
        ...


def _launch_args(width: int, height: int) -> List[str]:
    return [
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-dev-shm-usage",
        "--disable-accelerated-2d-canvas",
        "--disable-gpu",
        "--disable-blink-features=AutomationControlled",
        f"--window-size={width},{height}",
    ]


class PlaywrightBrowserProvider:
    """Launches (and optionally shares) a headless Chromium instance."""

    def __init__(
        self,
        headless: Optional[bool] = None,
        reuse: Optional[bool] = None,
        proxy: Optional[Dict[str, str]] = None,
        executable_path: Optional[str] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ):
        self.headless = settings.browser_headless if headless is None else headless
        self.reuse = settings.browser_reuse if reuse is None else reuse
        self.proxy = proxy if proxy is not None else settings.proxy_settings
        self.executable_path = executable_path or settings.browser_executable_path or None
        self.width = width or settings.browser_width
        self.height = height or settings.browser_height

        self._playwright: Optional[Playwright] = None
        self._shared: Optional[Browser] = None
        self._lock = asyncio.Lock()

    async def _launch(self) -> Browser:
        if self._playwright is None:
            self._playwright = await async_playwright().start()

        options: Dict[str, Any] = {
            "headless": self.headless,
            "args": _launch_args(self.width, self.height),
            "timeout": 60000,
        }
        if self.proxy:
            options["proxy"] = self.proxy
        if self.executable_path:
            options["executable_path"] = self.executable_path

        browser = await self._playwright.chromium.launch(**options)
        logger.info(f"Chromium launched (headless={self.headless}, proxy={'on' if self.proxy else 'off'})")
        return browser

    async def acquire(self) -> Browser:
        if not self.reuse:
            return await self._launch()

        async with self._lock:
            if self._shared is None or not self._shared.is_connected():
                if self._shared is not None:
                    logger.warning("Shared browser disconnected, relaunching")
                self._shared = await self._launch()
            return self._shared

    async def release(self, handle: Browser) -> None:
        if self.reuse and handle is self._shared:
            return
        await handle.close()

    async def close(self):
        """Shut down the shared browser and the Playwright driver."""
        if self._shared is not None:
            try:
                await self._shared.close()
            except Exception as e:
                logger.error(f"Error closing shared browser: {e}")
            self._shared = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
