"""
Shared fixtures: in-memory stand-ins for Playwright and the static fetcher.

The fakes implement only the slice of the Playwright async API that
``BrowserManager`` touches, and record every call so tests can assert on
launches, init scripts, routes and closed contexts.
"""

import asyncio
from typing import Optional

import pytest

from web_fetch_mcp.browser_manager import BrowserManager
from web_fetch_mcp.config import BrowserConfig
from web_fetch_mcp.utils.errors import NetworkError

RENDERED_HTML = (
    "<html><head><title>Rendered</title></head><body>"
    '<a href="/rendered-1">One</a><a href="/rendered-2">Two</a>'
    "<p>Rendered text</p></body></html>"
)


class FakePage:
    def __init__(self, context: "FakeContext"):
        self.context = context
        self.goto_calls: list[tuple] = []
        self._listeners: dict[str, list] = {}

    def on(self, event, callback):
        self._listeners.setdefault(event, []).append(callback)

    def remove_listener(self, event, callback):
        self._listeners[event].remove(callback)

    def emit(self, event, payload):
        for callback in list(self._listeners.get(event, [])):
            callback(payload)

    async def goto(self, url, wait_until=None, timeout=None):
        self.goto_calls.append((url, wait_until, timeout))
        behaviour = self.context.browser.factory
        for request in behaviour.requests_on_goto:
            self.emit("request", request)
        if behaviour.goto_error is not None:
            raise behaviour.goto_error
        return None

    async def content(self):
        return self.context.browser.factory.page_html


class FakeContext:
    def __init__(self, browser: "FakeBrowser", options: dict):
        self.browser = browser
        self.options = options
        self.routes: list[tuple] = []
        self.init_scripts: list[str] = []
        self.pages: list[FakePage] = []
        self.closed = False

    async def route(self, pattern, handler):
        self.routes.append((pattern, handler))

    async def add_init_script(self, script=None, path=None):
        self.init_scripts.append(script)

    async def new_page(self):
        page = FakePage(self)
        self.pages.append(page)
        return page

    async def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, factory: "FakePlaywrightFactory", options: dict):
        self.factory = factory
        self.options = options
        self.contexts: list[FakeContext] = []
        self.connected = True

    def is_connected(self):
        return self.connected

    async def new_context(self, **options):
        context = FakeContext(self, options)
        self.contexts.append(context)
        return context

    async def close(self):
        self.connected = False


class _FakeChromium:
    def __init__(self, factory: "FakePlaywrightFactory"):
        self.factory = factory

    async def launch(self, **options):
        factory = self.factory
        factory.launch_attempts += 1
        if factory.launch_delay:
            await asyncio.sleep(factory.launch_delay)
        if factory.launch_failures > 0:
            factory.launch_failures -= 1
            raise RuntimeError("Executable doesn't exist")
        browser = FakeBrowser(factory, options)
        factory.browsers.append(browser)
        return browser


class _FakePlaywright:
    def __init__(self, factory: "FakePlaywrightFactory"):
        self.chromium = _FakeChromium(factory)
        self.stopped = False

    async def stop(self):
        self.stopped = True


class _FakeContextManager:
    def __init__(self, factory: "FakePlaywrightFactory"):
        self.factory = factory

    async def start(self):
        driver = _FakePlaywright(self.factory)
        self.factory.drivers.append(driver)
        return driver


class FakePlaywrightFactory:
    """Drop-in for ``async_playwright`` with scriptable behaviour."""

    def __init__(self):
        self.page_html = RENDERED_HTML
        self.goto_error: Optional[BaseException] = None
        self.requests_on_goto: list = []
        self.launch_delay = 0.0
        self.launch_failures = 0
        self.launch_attempts = 0
        self.browsers: list[FakeBrowser] = []
        self.drivers: list[_FakePlaywright] = []

    def __call__(self):
        return _FakeContextManager(self)

    @property
    def contexts(self) -> list[FakeContext]:
        return [c for b in self.browsers for c in b.contexts]


class FakeFetcher:
    """Serves canned bodies by URL; unknown URLs fail like a refused connection."""

    def __init__(self, pages: Optional[dict] = None):
        self.pages = dict(pages or {})
        self.calls: list[str] = []

    async def fetch_text(self, url, timeout_ms=None, raise_for_status=False):
        self.calls.append(url)
        body = self.pages.get(url)
        if isinstance(body, BaseException):
            raise body
        if body is None:
            raise NetworkError(url, "connection_refused", "Connection refused")
        return body


STEALTH_URL = "https://stealth.example/stealth.min.js"
STEALTH_JS = "/* stealth */ window.__stealth = true;"


@pytest.fixture
def playwright_factory():
    return FakePlaywrightFactory()


@pytest.fixture
def fetcher():
    return FakeFetcher({STEALTH_URL: STEALTH_JS})


@pytest.fixture
def browser_config():
    return BrowserConfig(stealth_url=STEALTH_URL, timeout=5000)


@pytest.fixture
def manager(browser_config, fetcher, playwright_factory):
    return BrowserManager(
        config=browser_config,
        fetcher=fetcher,
        playwright_factory=playwright_factory,
    )
