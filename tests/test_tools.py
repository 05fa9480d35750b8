"""
Tests for the MCP tool functions (JSON output and error formatting).
"""

import json
import logging

import pytest

from conftest import STEALTH_JS, STEALTH_URL, FakeFetcher
from web_fetch_mcp.browser_manager import BrowserManager
from web_fetch_mcp.config import Settings
from web_fetch_mcp.orchestrator import ExtractionOrchestrator
from web_fetch_mcp.tools import extraction
from web_fetch_mcp.utils.errors import NetworkError, RenderTimeoutError, format_error

URL = "https://blog.example/post"
HTML = (
    "<html><head><title>Post</title>"
    '<meta property="og:title" content="OG Post"></head><body>'
    + "".join(f'<a href="/l{i}" title="L{i}">x</a>' for i in range(4))
    + "<p>" + "Readable text. " * 60 + "</p></body></html>"
)


@pytest.fixture
def orchestrator(browser_config, playwright_factory, monkeypatch):
    fetcher = FakeFetcher({URL: HTML, STEALTH_URL: STEALTH_JS})
    manager = BrowserManager(config=browser_config, fetcher=fetcher, playwright_factory=playwright_factory)
    orchestrator = ExtractionOrchestrator(manager, fetcher=fetcher, settings=Settings(browser=browser_config))
    monkeypatch.setattr(extraction, "_orchestrator", orchestrator)
    return orchestrator


@pytest.mark.asyncio
async def test_fetch_page_summary(orchestrator):
    payload = json.loads(await extraction.fetch_page_summary({"url": URL, "link_count": 2}))

    assert payload["title"] == "Post"
    assert payload["links"] == [{"title": "L0", "href": "/l0"}, {"title": "L1", "href": "/l1"}]
    assert payload["images"] == []


@pytest.mark.asyncio
async def test_fetch_page_metadata_omits_missing(orchestrator):
    payload = json.loads(await extraction.fetch_page_metadata({"url": URL}))

    assert payload == {"charset": "utf-8", "title": "Post", "og_title": "OG Post"}


@pytest.mark.asyncio
async def test_fetch_links(orchestrator, playwright_factory):
    payload = json.loads(await extraction.fetch_links({"url": URL, "force_headless": None}))

    assert [link["href"] for link in payload["links"]] == ["/l0", "/l1", "/l2", "/l3"]
    assert playwright_factory.launch_attempts == 0


@pytest.mark.asyncio
async def test_fetch_page_text(orchestrator):
    payload = json.loads(await extraction.fetch_page_text({"url": URL}))

    assert payload["text"].startswith("xxxxReadable text.")


@pytest.mark.asyncio
async def test_detect_page_type(orchestrator):
    payload = json.loads(await extraction.detect_page_type({"url": URL}))

    assert payload["is_dynamic"] is False
    assert "framework" not in payload


@pytest.mark.asyncio
async def test_errors_are_formatted(orchestrator):
    message = await extraction.fetch_links({"url": "https://down.example/"})

    assert message.startswith("## ❌ Error in fetch_links")
    assert "connection_refused" in message


@pytest.mark.asyncio
async def test_detect_page_type_failure_is_logged(orchestrator, caplog):
    with caplog.at_level(logging.WARNING, logger=extraction.logger.name):
        message = await extraction.detect_page_type({"url": "https://down.example/"})

    assert message.startswith("## ❌ Error in detect_page_type")
    assert "detect_page_type failed for https://down.example/" in caplog.text


@pytest.mark.asyncio
async def test_invalid_arguments_are_formatted(orchestrator):
    message = await extraction.fetch_page_summary({"url": URL, "link_count": 0})

    assert message.startswith("## ❌ Error in fetch_page_summary")


@pytest.mark.asyncio
async def test_browser_close(orchestrator):
    await orchestrator.browser_manager.acquire()

    payload = json.loads(await extraction.browser_close({}))

    assert payload["status"] == "closed"


def test_format_error_suggestions():
    timeout = format_error("fetch_links", NetworkError(URL, "timeout", "read timed out"))
    render = format_error("fetch_page_text", RenderTimeoutError("slow"))
    custom = format_error("x", ValueError("bad"), "Do this instead.")

    assert "too long to respond" in timeout
    assert "too long to render" in render
    assert custom.endswith("**Suggestion:** Do this instead.\n")
