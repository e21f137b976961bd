import pytest
from fastapi.testclient import TestClient

from fraudlens.api.security import rate_limiter
from fraudlens.api.server import create_app
from fraudlens.pipelines.scan_pipeline import ScanOrchestrator
from fraudlens.services.cache_service import ScanCache
from fraudlens.services.extractor_service import ContentExtractor
from fraudlens.services.oracle_service import RiskOracleClient
from fraudlens.services.region_service import RegionLocator
from fraudlens.services.task_queue import TaskQueue


FAKE_JPEG = b"\xff\xd8\xff\xe0fake-jpeg"


def sample_page_content(url="https://example.com/"):
    """DOM-read result for a typical phishing-looking login page."""
    return {
        "url": url,
        "title": "Secure Account Verification",
        "bodyText": "Your account has been suspended. Verify your password within 24 hours.",
        "forms": [
            {
                "action": "https://collector.example.net/submit",
                "method": "post",
                "inputs": [
                    {"type": "email", "name": "email", "placeholder": "Email"},
                    {"type": "password", "name": "pw", "placeholder": "Password"},
                ],
            }
        ],
        "links": [
            {"href": "https://example.com/help", "text": "Help", "isExternal": False},
            {"href": "https://tracker.example.org/", "text": "Partner", "isExternal": True},
        ],
        "buttons": ["Verify now"],
        "alerts": ["Your account will be closed!"],
        "metadata": {
            "description": "Account verification",
            "keywords": None,
            "author": None,
            "siteName": "Example",
        },
    }


class FakePage:
    def __init__(self, browser):
        self.browser = browser
        self.closed = False
        self.goto_calls = []
        self.routes = []

    async def route(self, pattern, handler):
        self.routes.append((pattern, handler))

    async def goto(self, url, wait_until=None, timeout=None):
        self.goto_calls.append({"url": url, "wait_until": wait_until, "timeout": timeout})
        if self.browser.goto_error is not None:
            raise self.browser.goto_error

    async def wait_for_timeout(self, ms):
        return None

    async def screenshot(self, **kwargs):
        self.browser.screenshot_calls.append(kwargs)
        if self.browser.screenshot_error is not None:
            raise self.browser.screenshot_error
        return FAKE_JPEG

    async def evaluate(self, script):
        if self.browser.evaluate_error is not None:
            raise self.browser.evaluate_error
        return self.browser.content

    async def close(self):
        self.closed = True
        if self.browser.close_error is not None:
            raise self.browser.close_error


class FakeContext:
    def __init__(self, browser, options):
        self.browser = browser
        self.options = options
        self.closed = False

    async def new_page(self):
        page = FakePage(self.browser)
        self.browser.pages.append(page)
        return page

    async def close(self):
        self.closed = True


class FakeBrowser:
    """Just enough of a Playwright Browser for the extractor."""

    def __init__(self, content=None):
        self.content = content if content is not None else sample_page_content()
        self.goto_error = None
        self.evaluate_error = None
        self.screenshot_error = None
        self.close_error = None
        self.contexts = []
        self.pages = []
        self.screenshot_calls = []

    async def new_context(self, **options):
        context = FakeContext(self, options)
        self.contexts.append(context)
        return context


class FakeBrowserProvider:
    def __init__(self, browser=None):
        self.browser = browser or FakeBrowser()
        self.acquired = 0
        self.released = 0

    async def acquire(self):
        self.acquired += 1
        return self.browser

    async def release(self, handle):
        self.released += 1


class FakeOracle:
    """Scripted risk oracle that counts its calls."""

    def __init__(
        self,
        assess_reply=None,
        assess_error=None,
        regions_reply=None,
        regions_error=None,
    ):
        self.assess_reply = assess_reply if assess_reply is not None else {
            "riskScore": 85,
            "riskLevel": "Critical",
            "fraudTypes": ["Phishing"],
            "indicators": ["Requests password", "Urgent account suspension warning"],
            "safetyAdvice": ["Do not enter credentials"],
        }
        self.assess_error = assess_error
        self.regions_reply = regions_reply if regions_reply is not None else {
            "markers": [{"top": 30, "left": 20, "width": 40, "height": 10, "label": "Password form"}]
        }
        self.regions_error = regions_error
        self.assess_calls = []
        self.region_calls = []

    async def assess(self, summary):
        self.assess_calls.append(summary)
        if self.assess_error is not None:
            raise self.assess_error
        return self.assess_reply

    async def locate_regions(self, indicators, summary):
        self.region_calls.append((indicators, summary))
        if self.regions_error is not None:
            raise self.regions_error
        return self.regions_reply


def build_orchestrator(provider=None, oracle=None, cache=None, limit=5):
    provider = provider or FakeBrowserProvider()
    oracle = oracle or FakeOracle()
    return ScanOrchestrator(
        extractor=ContentExtractor(provider, settle_delay=0),
        oracle_client=RiskOracleClient(oracle),
        region_locator=RegionLocator(oracle),
        cache=cache or ScanCache(enabled=True, ttl_seconds=3600, max_items=100),
        gate=TaskQueue(limit),
        provider=provider,
    )


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    rate_limiter.reset()
    yield
    rate_limiter.reset()


@pytest.fixture
def fake_browser():
    return FakeBrowser()


@pytest.fixture
def fake_provider(fake_browser):
    return FakeBrowserProvider(fake_browser)


@pytest.fixture
def fake_oracle():
    return FakeOracle()


@pytest.fixture
def orchestrator(fake_provider, fake_oracle):
    return build_orchestrator(fake_provider, fake_oracle)


@pytest.fixture
def client(orchestrator):
    """FastAPI test client wired to fake collaborators."""
    return TestClient(create_app(orchestrator))
