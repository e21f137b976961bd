"""
Page rendering and content extraction.

ContentExtractor.extract() always returns a PageSnapshot. Navigation or
evaluation failures produce a degraded snapshot instead of an exception,
and browser resources are released on every exit path.
"""

from typing import Any, Dict, List, Optional

from fraudlens.config import settings
from fraudlens.models.scan import FormInfo, InputInfo, LinkInfo, PageMetadata, PageSnapshot
from fraudlens.services.browser_service import BrowserProvider
from fraudlens.utils.logging_config import StructuredLogger, log_execution_time
from fraudlens.utils.preprocessing import normalize_url

logger = StructuredLogger(__name__)

BLOCKED_RESOURCE_TYPES = {"image", "media", "font"}

# Single DOM read pass; returns plain JSON-serializable data.
EXTRACT_CONTENT_JS = """
() => {
  const text = (el) => (el && el.innerText ? el.innerText.trim() : "");
  const meta = (name) => {
    const el = document.querySelector(`meta[name="${name}"], meta[property="${name}"]`);
    return el ? el.getAttribute("content") : null;
  };
  return {
    url: window.location.href,
    title: document.title || "",
    bodyText: document.body ? document.body.innerText : "",
    forms: Array.from(document.querySelectorAll("form")).map((form) => ({
      action: form.action || "",
      method: form.method || "",
      inputs: Array.from(form.querySelectorAll("input")).map((input) => ({
        type: input.type || "",
        name: input.name || "",
        placeholder: input.placeholder || "",
      })),
    })),
    links: Array.from(document.querySelectorAll("a")).map((a) => ({
      href: a.href || "",
      text: text(a),
      isExternal: !!a.hostname && a.hostname !== window.location.hostname,
    })),
    buttons: Array.from(document.querySelectorAll("button")).map(text),
    alerts: Array.from(
      document.querySelectorAll('.alert, [role="alert"], .popup, .modal')
    ).map(text),
    metadata: {
      description: meta("description") || meta("og:description"),
      keywords: meta("keywords"),
      author: meta("author"),
      siteName: meta("og:site_name"),
    },
  };
}
"""


async def _block_non_essential(route):
    if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
        await route.abort()
    else:
        await route.continue_()


def _str(value: Any) -> str:
    return value if isinstance(value, str) else ("" if value is None else str(value))


def _optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def build_snapshot(
    content: Dict[str, Any],
    requested_url: str,
    screenshot: Optional[bytes],
) -> PageSnapshot:
    """Convert the raw DOM-read dict into a PageSnapshot, tolerating gaps."""
    forms = [
        FormInfo(
            action=_str(form.get("action")),
            method=_str(form.get("method")),
            inputs=[
                InputInfo(
                    type=_str(inp.get("type")),
                    name=_str(inp.get("name")),
                    placeholder=_str(inp.get("placeholder")),
                )
                for inp in _as_list(form.get("inputs"))
                if isinstance(inp, dict)
            ],
        )
        for form in _as_list(content.get("forms"))
        if isinstance(form, dict)
    ]
    links = [
        LinkInfo(
            href=_str(link.get("href")),
            text=_str(link.get("text")),
            is_external=bool(link.get("isExternal")),
        )
        for link in _as_list(content.get("links"))
        if isinstance(link, dict)
    ]
    meta = content.get("metadata") if isinstance(content.get("metadata"), dict) else {}

    return PageSnapshot(
        url=_str(content.get("url")) or requested_url,
        title=_str(content.get("title")),
        body_text=_str(content.get("bodyText")),
        forms=forms,
        links=links,
        buttons=[_str(b) for b in _as_list(content.get("buttons"))],
        alerts=[_str(a) for a in _as_list(content.get("alerts"))],
        metadata=PageMetadata(
            description=_optional_str(meta.get("description")),
            keywords=_optional_str(meta.get("keywords")),
            author=_optional_str(meta.get("author")),
            site_name=_optional_str(meta.get("siteName")),
        ),
        screenshot=screenshot,
    )


class ContentExtractor:
    """Drives a browser session to produce a PageSnapshot."""

    def __init__(
        self,
        provider: BrowserProvider,
        page_load_timeout: Optional[int] = None,
        settle_delay: Optional[int] = None,
        viewport: Optional[Dict[str, int]] = None,
        user_agent: Optional[str] = None,
        javascript_enabled: Optional[bool] = None,
        block_resources: Optional[bool] = None,
        full_page: Optional[bool] = None,
        screenshot_quality: Optional[int] = None,
    ):
        self.provider = provider
        self.page_load_timeout = page_load_timeout if page_load_timeout is not None else settings.page_load_timeout
        self.settle_delay = settle_delay if settle_delay is not None else settings.page_settle_delay
        self.viewport = viewport or {"width": settings.browser_width, "height": settings.browser_height}
        self.user_agent = user_agent or settings.user_agent
        self.javascript_enabled = settings.enable_javascript if javascript_enabled is None else javascript_enabled
        self.block_resources = settings.block_resources if block_resources is None else block_resources
        self.full_page = settings.full_page_screenshot if full_page is None else full_page
        self.screenshot_quality = screenshot_quality or settings.screenshot_quality

    async def _screenshot(self, page) -> bytes:
        return await page.screenshot(
            type="jpeg",
            quality=self.screenshot_quality,
            full_page=self.full_page,
        )

    @log_execution_time("fraudlens.extractor")
    async def extract(self, url: str, request_id: str) -> PageSnapshot:
        url = normalize_url(url)
        browser = None
        context = None
        page = None
        attempted = False
        navigated = False

        try:
            logger.info("Rendering page", url=url, request_id=request_id)
            browser = await self.provider.acquire()
            context = await browser.new_context(
                viewport=self.viewport,
                user_agent=self.user_agent,
                java_script_enabled=self.javascript_enabled,
            )
            page = await context.new_page()

            if self.block_resources:
                await page.route("**/*", _block_non_essential)

            attempted = True
            await page.goto(url, wait_until="domcontentloaded", timeout=self.page_load_timeout)
            navigated = True
            logger.debug("Navigation finished", url=url)

            if self.settle_delay > 0:
                await page.wait_for_timeout(self.settle_delay)

            screenshot = await self._screenshot(page)
            content = await page.evaluate(EXTRACT_CONTENT_JS)
            if not isinstance(content, dict):
                content = {}

            return build_snapshot(content, url, screenshot)

        except Exception as e:
            logger.error(
                "Page extraction failed",
                url=url,
                request_id=request_id,
                navigated=navigated,
                error=str(e),
            )
            error_shot = None
            if page is not None:
                try:
                    error_shot = await self._screenshot(page)
                except Exception as shot_error:
                    logger.warning("Error-state screenshot failed", error=str(shot_error))
            return PageSnapshot.failed(
                url,
                str(e),
                screenshot=error_shot,
                rendered=navigated,
                navigation_attempted=attempted,
            )

        finally:
            if page is not None:
                try:
                    await page.close()
                except Exception as close_error:
                    logger.error("Error closing page", error=str(close_error))
            if context is not None:
                try:
                    await context.close()
                except Exception as close_error:
                    logger.error("Error closing browser context", error=str(close_error))
            if browser is not None:
                try:
                    await self.provider.release(browser)
                except Exception as close_error:
                    logger.error("Error releasing browser", error=str(close_error))
            logger.debug("Browser resources released", url=url)
