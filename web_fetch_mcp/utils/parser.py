"""HTML parsing and content extraction utilities.

All functions take an already parsed BeautifulSoup document and only read
from it, so one soup can serve several extractions.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Optional, Union

from bs4 import BeautifulSoup

from web_fetch_mcp.schemas import (
    Image,
    Link,
    LinkList,
    PageMetadata,
    PageSummary,
    PageText,
)

DEFAULT_LINK_CAP = 10
DEFAULT_IMAGE_CAP = 10


class ExtractionKind(str, Enum):
    SUMMARY = "summary"
    METADATA = "metadata"
    LINKS = "links"
    TEXT = "text"


ExtractionResult = Union[PageSummary, PageMetadata, LinkList, PageText]


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "lxml")


# ---------------------------------------------------------------------------
# Title / links / images
# ---------------------------------------------------------------------------

def extract_title(soup: BeautifulSoup) -> str:
    title = soup.find("title")
    return title.get_text() if title is not None else ""


def extract_links(soup: BeautifulSoup, cap: int = DEFAULT_LINK_CAP) -> list[Link]:
    """Anchors with a non-empty href, in document order, truncated to ``cap``."""
    links: list[Link] = []
    for a in soup.find_all("a"):
        if len(links) >= cap:
            break
        href = a.get("href")
        if not href:
            continue
        title = a.get("title") or a.get_text().strip()
        links.append(Link(title=title, href=href))
    return links


def extract_images(soup: BeautifulSoup, cap: int = DEFAULT_IMAGE_CAP) -> list[Image]:
    images: list[Image] = []
    for img in soup.find_all("img"):
        if len(images) >= cap:
            break
        src = img.get("src")
        if not src:
            continue
        title = img.get("alt") or img.get("title") or ""
        images.append(Image(title=title, src=src))
    return images


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------

_NAME_FIELDS = ("description", "keywords", "author", "robots")
_REL_FIELDS = ("canonical", "next", "prev", "alternate")
_PROPERTY_FIELDS = {
    "og_title": "og:title",
    "og_description": "og:description",
    "og_image": "og:image",
    "og_url": "og:url",
    "og_type": "og:type",
    "og_site_name": "og:site_name",
    "twitter_card": "twitter:card",
    "twitter_image": "twitter:image",
}


def _attr(tag, name: str) -> Optional[str]:
    if tag is None:
        return None
    return tag.get(name) or None


def _meta_by_property(soup: BeautifulSoup, prop: str) -> Optional[str]:
    tag = soup.find("meta", attrs={"property": prop})
    return _attr(tag, "content") or _attr(tag, "href")


def extract_metadata(soup: BeautifulSoup) -> PageMetadata:
    """SEO, Open Graph, Twitter and pagination metadata.

    Missing tags (or empty values) leave the field as ``None``.
    """
    fields: dict[str, Optional[str]] = {}
    for name in _NAME_FIELDS:
        fields[name] = _attr(soup.find("meta", attrs={"name": name}), "content")
    for rel in _REL_FIELDS:
        fields[rel] = _attr(soup.select_one(f'link[rel="{rel}"]'), "href")
    for field_name, prop in _PROPERTY_FIELDS.items():
        fields[field_name] = _meta_by_property(soup, prop)

    return PageMetadata(
        charset=_attr(soup.find("meta", charset=True), "charset") or "utf-8",
        title=extract_title(soup),
        **fields,
    )


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------

# window.__VP_HASH_MAP__ = JSON.parse("...");
_HYDRATION_ASSIGNMENT_RE = re.compile(
    r"""window\.__VP_[A-Z_]+__\s*=\s*JSON\.parse\((["']).*?\1\);?"""
)


def normalize_text(text: str) -> str:
    """Clean raw body text.

    Steps, in order: decode literal escape sequences, drop hydration
    variable assignments, strip blanks around newlines, collapse blank
    line runs to one empty line, collapse horizontal whitespace, trim.
    """
    text = (
        text.replace('\\"', '"')
        .replace("\\\\", "\\")
        .replace("\\n", "\n")
        .replace("\\t", "\t")
    )
    text = _HYDRATION_ASSIGNMENT_RE.sub("", text)
    text = re.sub(r"[^\S\n]*\n[^\S\n]*", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    text = re.sub(r"[^\S\n]+", " ", text)
    return text.strip()


def extract_text(soup: BeautifulSoup) -> str:
    body = soup.body
    return normalize_text(body.get_text() if body is not None else "")


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

def extract_content(
    soup: BeautifulSoup,
    kind: Union[ExtractionKind, str],
    url: str = "",
    link_cap: int = DEFAULT_LINK_CAP,
    image_cap: int = DEFAULT_IMAGE_CAP,
) -> ExtractionResult:
    """Build the result model for ``kind`` from a parsed document."""
    kind = ExtractionKind(kind)
    if kind is ExtractionKind.SUMMARY:
        return PageSummary(
            url=url,
            title=extract_title(soup),
            links=extract_links(soup, link_cap),
            images=extract_images(soup, image_cap),
        )
    if kind is ExtractionKind.METADATA:
        return extract_metadata(soup)
    if kind is ExtractionKind.LINKS:
        return LinkList(links=extract_links(soup, link_cap))
    return PageText(text=extract_text(soup))
