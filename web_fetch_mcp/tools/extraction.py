"""Page extraction tools.

Each tool validates its arguments, runs one extraction through the shared
orchestrator and returns JSON text.  Failures come back as a formatted
error message naming the stage that failed (fetch, render or options).
"""

from __future__ import annotations

import json
import logging
from typing import Optional

from web_fetch_mcp.browser_manager import BrowserManager
from web_fetch_mcp.config import Settings
from web_fetch_mcp.orchestrator import ExtractOptions, ExtractionOrchestrator
from web_fetch_mcp.schemas import (
    DetectPageTypeInput,
    FetchLinksInput,
    FetchMetadataInput,
    FetchSummaryInput,
    FetchTextInput,
)
from web_fetch_mcp.utils.errors import format_error
from web_fetch_mcp.utils.parser import ExtractionKind

logger = logging.getLogger(__name__)

_orchestrator: Optional[ExtractionOrchestrator] = None


def configure(orchestrator: ExtractionOrchestrator) -> None:
    global _orchestrator
    _orchestrator = orchestrator


async def get_orchestrator() -> ExtractionOrchestrator:
    """Return the configured orchestrator, building a default one lazily."""
    global _orchestrator
    if _orchestrator is None:
        manager = await BrowserManager.get_instance()
        _orchestrator = ExtractionOrchestrator(manager, settings=Settings(browser=manager.config))
    return _orchestrator


def _dump(model) -> str:
    return json.dumps(model.model_dump(exclude_none=True), indent=2, ensure_ascii=False)


async def fetch_page_summary(arguments: dict) -> str:
    """Title, links and images of a page (static fetch only)."""
    try:
        input_data = FetchSummaryInput(**arguments)
        orchestrator = await get_orchestrator()
        result = await orchestrator.extract(
            input_data.url,
            ExtractionKind.SUMMARY,
            ExtractOptions(link_cap=input_data.link_count, image_cap=input_data.image_count),
        )
        return _dump(result)

    except Exception as e:
        logger.warning("fetch_page_summary failed for %s: %s", arguments.get("url"), e)
        return format_error("fetch_page_summary", e)


async def fetch_page_metadata(arguments: dict) -> str:
    """SEO and social metadata of a page (static fetch only)."""
    try:
        input_data = FetchMetadataInput(**arguments)
        orchestrator = await get_orchestrator()
        result = await orchestrator.extract(input_data.url, ExtractionKind.METADATA)
        return _dump(result)

    except Exception as e:
        logger.warning("fetch_page_metadata failed for %s: %s", arguments.get("url"), e)
        return format_error("fetch_page_metadata", e)


async def fetch_links(arguments: dict) -> str:
    """Links of a page, rendered headlessly when the page is dynamic."""
    try:
        input_data = FetchLinksInput(**arguments)
        orchestrator = await get_orchestrator()
        result = await orchestrator.extract(
            input_data.url,
            ExtractionKind.LINKS,
            ExtractOptions(
                force_headless=input_data.force_headless,
                link_cap=input_data.link_count,
            ),
        )
        return _dump(result)

    except Exception as e:
        logger.warning("fetch_links failed for %s: %s", arguments.get("url"), e)
        return format_error("fetch_links", e)


async def fetch_page_text(arguments: dict) -> str:
    """Normalized body text, rendered headlessly when the page is dynamic."""
    try:
        input_data = FetchTextInput(**arguments)
        orchestrator = await get_orchestrator()
        result = await orchestrator.extract(
            input_data.url,
            ExtractionKind.TEXT,
            ExtractOptions(force_headless=input_data.force_headless),
        )
        return _dump(result)

    except Exception as e:
        logger.warning("fetch_page_text failed for %s: %s", arguments.get("url"), e)
        return format_error("fetch_page_text", e)


async def detect_page_type(arguments: dict) -> str:
    """Classify a page as static or dynamic from its static HTML."""
    try:
        input_data = DetectPageTypeInput(**arguments)
        orchestrator = await get_orchestrator()
        result = await orchestrator.classify_url(input_data.url)
        return _dump(result)

    except Exception as e:
        logger.warning("detect_page_type failed for %s: %s", arguments.get("url"), e)
        return format_error("detect_page_type", e)


async def browser_close(arguments: dict) -> str:
    """Close the shared browser and cleanup resources."""
    try:
        orchestrator = await get_orchestrator()
        result = await orchestrator.browser_manager.shutdown()

        return json.dumps(result, indent=2)

    except Exception as e:
        return format_error("browser_close", e)
