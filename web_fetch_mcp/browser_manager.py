"""Shared Playwright browser session with anti-detection page setup."""

from __future__ import annotations

import asyncio
import logging
import os
import random
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Mapping, Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    Route,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from web_fetch_mcp.config import WAIT_POLICIES, BrowserConfig
from web_fetch_mcp.utils.errors import (
    ConfigError,
    NetworkError,
    RenderError,
    RenderTimeoutError,
)
from web_fetch_mcp.utils.fetcher import PageFetcher

logger = logging.getLogger(__name__)

# Header profile sent with every request of a rendered page
PROFILE_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
    "Accept-Encoding": "gzip, deflate, br",
    "Connection": "close",
}

# Runs before any page script: hide the webdriver flag, fake a plugin list
_FINGERPRINT_JS = """
Object.defineProperty(navigator, 'webdriver', { get: () => false });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
"""

_LAUNCH_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
)

# networkidle0 maps to Playwright's own networkidle; networkidle2 is tracked here
_PLAYWRIGHT_WAIT = {
    "load": "load",
    "domcontentloaded": "domcontentloaded",
    "networkidle0": "networkidle",
}
_IDLE_WINDOW_MS = 500
_IDLE_MAX_INFLIGHT = 2
_IDLE_POLL_S = 0.05


def rewrite_headers(original: Mapping[str, str]) -> dict[str, str]:
    """Return ``original`` with the profile headers forced on top.

    Header names are compared case-insensitively, so an incoming
    ``accept-language`` is replaced rather than duplicated.
    """
    overridden = {name.lower() for name in PROFILE_HEADERS}
    headers = {k: v for k, v in original.items() if k.lower() not in overridden}
    headers.update(PROFILE_HEADERS)
    return headers


async def _continue_with_profile_headers(route: Route) -> None:
    await route.continue_(headers=rewrite_headers(route.request.headers))


def _find_chromium_executable() -> Optional[str]:
    """Find a Chromium executable under PLAYWRIGHT_BROWSERS_PATH."""
    browsers_path = os.environ.get("PLAYWRIGHT_BROWSERS_PATH")
    if not browsers_path or not os.path.isdir(browsers_path):
        return None
    base = Path(browsers_path)
    for pattern in [
        "chromium-*/chrome-linux/chrome",
        "chromium-*/chrome-linux64/chrome",
        "chromium-*/chrome-mac-x64/Google Chrome for Testing.app/Contents/MacOS/Google Chrome for Testing",
        "chromium-*/chrome-mac-arm64/Google Chrome for Testing.app/Contents/MacOS/Google Chrome for Testing",
        "chromium_headless_shell-*/chrome-linux/headless_shell",
        "chromium_headless_shell-*/chrome-headless-shell-mac-x64/chrome-headless-shell",
        "chromium_headless_shell-*/chrome-headless-shell-mac-arm64/chrome-headless-shell",
    ]:
        for p in sorted(base.glob(pattern)):
            if p.is_file() and os.access(p, os.X_OK):
                return str(p)
    return None


class _InflightTracker:
    """Counts a page's in-flight requests to implement networkidle2."""

    def __init__(self, page: Page):
        self._page = page
        self._inflight: set[int] = set()
        page.on("request", self._started)
        page.on("requestfinished", self._finished)
        page.on("requestfailed", self._finished)

    def _started(self, request) -> None:
        self._inflight.add(id(request))

    def _finished(self, request) -> None:
        self._inflight.discard(id(request))

    def detach(self) -> None:
        self._page.remove_listener("request", self._started)
        self._page.remove_listener("requestfinished", self._finished)
        self._page.remove_listener("requestfailed", self._finished)

    async def wait_for_idle(self, timeout_ms: float) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout_ms / 1000
        idle_since: Optional[float] = None
        while True:
            now = loop.time()
            if len(self._inflight) <= _IDLE_MAX_INFLIGHT:
                if idle_since is None:
                    idle_since = now
                if (now - idle_since) * 1000 >= _IDLE_WINDOW_MS:
                    return
            else:
                idle_since = None
            if now >= deadline:
                raise RenderTimeoutError(
                    f"network did not settle (<= {_IDLE_MAX_INFLIGHT} requests) "
                    f"within {timeout_ms:.0f}ms"
                )
            await asyncio.sleep(_IDLE_POLL_S)


async def navigate_to(
    page: Page,
    url: str,
    wait_until: str = "networkidle2",
    timeout: int = 30000,
) -> None:
    """Navigate ``page`` to ``url`` and wait for ``wait_until``.

    Raises ``RenderTimeoutError`` when the wait condition is not met in
    ``timeout`` milliseconds and ``RenderError`` for any other failure.
    """
    if wait_until not in WAIT_POLICIES:
        raise ConfigError(f"wait_until must be one of {', '.join(WAIT_POLICIES)}, got {wait_until}")

    loop = asyncio.get_running_loop()
    started = loop.time()
    try:
        if wait_until == "networkidle2":
            tracker = _InflightTracker(page)
            try:
                await page.goto(url, wait_until="domcontentloaded", timeout=timeout)
                remaining = timeout - (loop.time() - started) * 1000
                await tracker.wait_for_idle(max(remaining, 0))
            finally:
                tracker.detach()
        else:
            await page.goto(url, wait_until=_PLAYWRIGHT_WAIT[wait_until], timeout=timeout)
    except PlaywrightTimeoutError as e:
        raise RenderTimeoutError(f"navigation to {url} timed out after {timeout}ms") from e
    except PlaywrightError as e:
        raise RenderError(f"navigation to {url} failed: {e}") from e


class BrowserManager:
    """Owner of the one Chromium process shared by all extraction calls.

    The browser is launched lazily on the first ``acquire`` and relaunched
    if it disconnects.  Launches are serialized so concurrent first calls
    start a single process.  Every page lives in its own context and is
    prepared with a random user agent, the header profile, the stealth
    script and the fingerprint overrides.
    """

    _instance: Optional['BrowserManager'] = None

    def __init__(
        self,
        config: Optional[BrowserConfig] = None,
        fetcher: Optional[PageFetcher] = None,
        playwright_factory=async_playwright,
    ):
        self.config = config or BrowserConfig()
        self._fetcher = fetcher or PageFetcher()
        self._playwright_factory = playwright_factory
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._launch_lock = asyncio.Lock()
        self._stealth_lock = asyncio.Lock()
        self._stealth_script: Optional[str] = None
        self.launch_count = 0

    @classmethod
    async def get_instance(cls) -> 'BrowserManager':
        """Get or create the process-wide instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def configure(cls, manager: 'BrowserManager') -> None:
        """Install ``manager`` as the process-wide instance."""
        cls._instance = manager

    def is_running(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    # -- session ----------------------------------------------------------

    async def _ensure_browser(self, config: BrowserConfig) -> Browser:
        async with self._launch_lock:
            if self._browser is not None and self._browser.is_connected():
                return self._browser

            if self._browser is not None:
                logger.warning("Browser disconnected, relaunching")
            await self._teardown()

            launch_options: dict[str, Any] = {
                "headless": config.headless,
                "args": [f"--window-size={config.width},{config.height}", *_LAUNCH_ARGS],
            }
            executable = config.executable_path or _find_chromium_executable()
            if executable:
                launch_options["executable_path"] = executable

            try:
                self._playwright = await self._playwright_factory().start()
                self._browser = await self._playwright.chromium.launch(**launch_options)
            except Exception as e:
                await self._teardown()
                raise RenderError(f"Failed to launch browser: {e}") from e

            self.launch_count += 1
            logger.info(
                "Browser launched (%s, %dx%d)",
                "headless" if config.headless else "headed", config.width, config.height,
            )
            return self._browser

    async def _teardown(self) -> None:
        browser, playwright = self._browser, self._playwright
        self._browser = None
        self._playwright = None
        if browser is not None and browser.is_connected():
            try:
                await browser.close()
            except PlaywrightError as e:
                logger.warning("Error while closing browser: %s", e)
        if playwright is not None:
            try:
                await playwright.stop()
            except PlaywrightError as e:
                logger.warning("Error while stopping Playwright: %s", e)

    async def shutdown(self) -> dict:
        """Close the browser and cleanup resources."""
        async with self._launch_lock:
            if self._browser is None and self._playwright is None:
                return {"status": "not_running", "message": "Browser is not running."}
            await self._teardown()
        logger.info("Browser closed")
        return {"status": "closed", "message": "Browser closed successfully."}

    # -- stealth ----------------------------------------------------------

    async def _get_stealth_script(self, url: str) -> Optional[str]:
        """Fetch the stealth script once; ``None`` if it is unavailable."""
        async with self._stealth_lock:
            if self._stealth_script is None:
                try:
                    self._stealth_script = await self._fetcher.fetch_text(url, raise_for_status=True)
                except NetworkError as e:
                    logger.warning("Stealth script unavailable, continuing without it: %s", e)
                    return None
                logger.debug("Stealth script loaded (%d chars)", len(self._stealth_script))
            return self._stealth_script

    # -- pages ------------------------------------------------------------

    async def _prepare_context(self, context: BrowserContext, config: BrowserConfig) -> None:
        await context.route("**/*", _continue_with_profile_headers)
        if config.stealth:
            script = await self._get_stealth_script(config.stealth_url)
            if script:
                await context.add_init_script(script=script)
        await context.add_init_script(script=_FINGERPRINT_JS)

    async def acquire(
        self, config: Optional[BrowserConfig] = None
    ) -> tuple[Browser, Page]:
        """Return the shared browser and a fresh, prepared page.

        The caller owns the page and must hand it to ``release``.
        """
        config = config or self.config
        browser = await self._ensure_browser(config)
        try:
            context = await browser.new_context(
                viewport={"width": config.width, "height": config.height},
                user_agent=random.choice(config.user_agents),
            )
        except PlaywrightError as e:
            raise RenderError(f"Failed to open browser context: {e}") from e

        try:
            await self._prepare_context(context, config)
            page = await context.new_page()
        except PlaywrightError as e:
            await context.close()
            raise RenderError(f"Failed to prepare page: {e}") from e
        except BaseException:
            await context.close()
            raise
        return browser, page

    async def release(self, page: Page) -> None:
        """Close ``page`` together with its context."""
        try:
            await page.context.close()
        except PlaywrightError as e:
            logger.warning("Error while closing page: %s", e)

    @asynccontextmanager
    async def open_page(self, config: Optional[BrowserConfig] = None) -> AsyncIterator[Page]:
        _, page = await self.acquire(config)
        try:
            yield page
        finally:
            await self.release(page)

    async def render(
        self,
        url: str,
        wait_until: str = "networkidle2",
        timeout: Optional[int] = None,
        config: Optional[BrowserConfig] = None,
    ) -> str:
        """Navigate a fresh page to ``url`` and return the rendered HTML."""
        config = config or self.config
        timeout = timeout or config.timeout
        async with self.open_page(config) as page:
            await navigate_to(page, url, wait_until=wait_until, timeout=timeout)
            try:
                html = await page.content()
            except PlaywrightError as e:
                raise RenderError(f"could not serialize {url}: {e}") from e
        logger.info("Rendered %s (%d chars, wait_until=%s)", url, len(html), wait_until)
        return html
