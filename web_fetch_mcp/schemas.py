"""Pydantic schemas for tool inputs and extraction results."""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


# Tool input schemas
class FetchSummaryInput(BaseModel):
    url: str = Field(description="URL of the page to fetch")
    link_count: Optional[int] = Field(
        default=None, ge=1, description="Maximum number of links to return (default 10)"
    )
    image_count: Optional[int] = Field(
        default=None, ge=1, description="Maximum number of images to return (default 10)"
    )


class FetchMetadataInput(BaseModel):
    url: str = Field(description="URL of the page to fetch")


class FetchLinksInput(BaseModel):
    url: str = Field(description="URL of the page to fetch")
    force_headless: Optional[bool] = Field(
        default=None,
        description="Force (true) or skip (false) headless rendering. "
        "If omitted, the page type is detected automatically."
    )
    link_count: Optional[int] = Field(
        default=None, ge=1, description="Maximum number of links to return (default 10)"
    )


class FetchTextInput(BaseModel):
    url: str = Field(description="URL of the page to fetch")
    force_headless: Optional[bool] = Field(
        default=None,
        description="Force (true) or skip (false) headless rendering. "
        "If omitted, the page type is detected automatically."
    )


class DetectPageTypeInput(BaseModel):
    url: str = Field(description="URL of the page to classify")


# Result schemas
class _Result(BaseModel):
    model_config = ConfigDict(frozen=True)


class Link(_Result):
    title: str
    href: str


class Image(_Result):
    title: str
    src: str


class PageSummary(_Result):
    url: str
    title: str
    links: list[Link] = Field(default_factory=list)
    images: list[Image] = Field(default_factory=list)


class PageMetadata(_Result):
    charset: str = "utf-8"
    title: str = ""
    description: Optional[str] = None
    keywords: Optional[str] = None
    author: Optional[str] = None
    canonical: Optional[str] = None
    robots: Optional[str] = None
    og_title: Optional[str] = None
    og_description: Optional[str] = None
    og_image: Optional[str] = None
    og_url: Optional[str] = None
    og_type: Optional[str] = None
    og_site_name: Optional[str] = None
    twitter_card: Optional[str] = None
    twitter_image: Optional[str] = None
    next: Optional[str] = None
    prev: Optional[str] = None
    alternate: Optional[str] = None


class LinkList(_Result):
    links: list[Link] = Field(default_factory=list)


class PageText(_Result):
    text: str


class PageTypeResult(_Result):
    is_dynamic: bool
    confidence: float = Field(ge=0.0, le=1.0)
    hints: list[str] = Field(default_factory=list)
    framework: Optional[str] = None
