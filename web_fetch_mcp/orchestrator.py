"""Adaptive extraction: static fetch first, headless render only when needed."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from web_fetch_mcp.browser_manager import BrowserManager
from web_fetch_mcp.config import Settings
from web_fetch_mcp.schemas import PageTypeResult
from web_fetch_mcp.utils.classifier import classify
from web_fetch_mcp.utils.errors import ConfigError
from web_fetch_mcp.utils.fetcher import PageFetcher
from web_fetch_mcp.utils.parser import (
    ExtractionKind,
    ExtractionResult,
    extract_content,
    parse_html,
)

logger = logging.getLogger(__name__)

# Kinds that may trigger rendering; summary/metadata stay on the cheap path
_RENDERABLE_KINDS = frozenset({ExtractionKind.LINKS, ExtractionKind.TEXT})


@dataclass(frozen=True)
class ExtractOptions:
    force_headless: Optional[bool] = None
    link_cap: Optional[int] = None
    image_cap: Optional[int] = None
    wait_until: Optional[str] = None
    browser: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        for name in ("link_cap", "image_cap"):
            value = getattr(self, name)
            if value is not None and value < 1:
                raise ConfigError(f"{name} must be >= 1, got {value}")


class ExtractionOrchestrator:
    """Chains fetch → classify → (render) → extract for one URL at a time."""

    def __init__(
        self,
        browser_manager: BrowserManager,
        fetcher: Optional[PageFetcher] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or Settings()
        self.browser_manager = browser_manager
        self.fetcher = fetcher or PageFetcher(timeout_ms=self.settings.fetch_timeout)

    async def classify_url(self, url: str) -> PageTypeResult:
        html = await self.fetcher.fetch_text(url)
        return classify(html)

    async def _select_html(self, url: str, html: str, options: ExtractOptions) -> str:
        if options.force_headless is not None:
            use_headless = options.force_headless
            logger.debug("force_headless=%s for %s", use_headless, url)
        else:
            page_type = classify(html)
            use_headless = page_type.is_dynamic
            logger.info(
                "%s classified %s (confidence=%.2f, framework=%s, hints=%s)",
                url, "dynamic" if use_headless else "static",
                page_type.confidence, page_type.framework, page_type.hints,
            )

        if not use_headless:
            return html

        config = self.browser_manager.config.merged(options.browser)
        return await self.browser_manager.render(
            url,
            wait_until=options.wait_until or self.settings.wait_until,
            config=config,
        )

    async def extract(
        self,
        url: str,
        kind: Union[ExtractionKind, str],
        options: Optional[ExtractOptions] = None,
    ) -> ExtractionResult:
        """Extract ``kind`` from ``url``.

        ``NetworkError`` and ``RenderError`` propagate unchanged; there is
        no retry.
        """
        try:
            kind = ExtractionKind(kind)
        except ValueError as e:
            raise ConfigError(f"unknown extraction kind: {kind!r}") from e
        options = options or ExtractOptions()

        html = await self.fetcher.fetch_text(url)
        if kind in _RENDERABLE_KINDS:
            html = await self._select_html(url, html, options)

        return extract_content(
            parse_html(html),
            kind,
            url=url,
            link_cap=options.link_cap or self.settings.link_cap,
            image_cap=options.image_cap or self.settings.image_cap,
        )
