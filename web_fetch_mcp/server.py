"""FastMCP server exposing the page extraction tools."""

from __future__ import annotations

import argparse
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastmcp import FastMCP

from web_fetch_mcp.browser_manager import BrowserManager
from web_fetch_mcp.config import load_config
from web_fetch_mcp.orchestrator import ExtractionOrchestrator
from web_fetch_mcp.tools import extraction

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(server):
    try:
        yield
    finally:
        manager = await BrowserManager.get_instance()
        await manager.shutdown()


# Create MCP server
mcp = FastMCP("web-fetch-mcp", lifespan=_lifespan)


@mcp.tool()
async def fetch_page_summary(
    url: str,
    link_count: Optional[int] = None,
    image_count: Optional[int] = None,
) -> str:
    """Fetch a web page and extract its title, links and images.

    Args:
        url: URL of the page to fetch
        link_count: Maximum number of links to return (default 10)
        image_count: Maximum number of images to return (default 10)
    """
    return await extraction.fetch_page_summary({
        "url": url,
        "link_count": link_count,
        "image_count": image_count,
    })


@mcp.tool()
async def fetch_page_metadata(url: str) -> str:
    """Extract SEO and social media metadata (Open Graph, Twitter) of a page.

    Args:
        url: URL of the page to fetch
    """
    return await extraction.fetch_page_metadata({"url": url})


@mcp.tool()
async def fetch_links(
    url: str,
    force_headless: Optional[bool] = None,
    link_count: Optional[int] = None,
) -> str:
    """Extract the title and address of the links on a page.

    JavaScript-heavy pages are rendered in a headless browser automatically.

    Args:
        url: URL of the page to fetch
        force_headless: Force (true) or skip (false) headless rendering
        link_count: Maximum number of links to return (default 10)
    """
    return await extraction.fetch_links({
        "url": url,
        "force_headless": force_headless,
        "link_count": link_count,
    })


@mcp.tool()
async def fetch_page_text(url: str, force_headless: Optional[bool] = None) -> str:
    """Extract the plain text content of a page.

    Args:
        url: URL of the page to fetch
        force_headless: Force (true) or skip (false) headless rendering
    """
    return await extraction.fetch_page_text({"url": url, "force_headless": force_headless})


@mcp.tool()
async def detect_page_type(url: str) -> str:
    """Detect whether a page is static or needs JavaScript rendering.

    Args:
        url: URL of the page to classify
    """
    return await extraction.detect_page_type({"url": url})


@mcp.tool()
async def browser_close() -> str:
    """Close the headless browser and cleanup resources."""
    return await extraction.browser_close({})


def main() -> None:
    parser = argparse.ArgumentParser(description="Web page extraction MCP server")
    parser.add_argument(
        "--config",
        default=None,
        help="path to a YAML config file (default: $WEB_FETCH_MCP_CONFIG or built-in defaults)",
    )
    args = parser.parse_args()

    settings = load_config(args.config)
    # stdout carries the stdio transport, so logs go to stderr
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    )

    manager = BrowserManager(config=settings.browser)
    BrowserManager.configure(manager)
    extraction.configure(ExtractionOrchestrator(manager, settings=settings))

    logger.info("wait_until    = %s", settings.wait_until)
    logger.info("fetch_timeout = %d ms", settings.fetch_timeout)
    logger.info("headless      = %s", settings.browser.headless)
    mcp.run()


# Run the server
if __name__ == "__main__":
    main()
