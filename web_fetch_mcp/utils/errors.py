"""Error types and formatting utilities."""

from __future__ import annotations


class WebFetchError(Exception):
    """Base class for errors raised by the extraction pipeline."""


class NetworkError(WebFetchError):
    """Static fetch failed before a response body was available.

    ``kind`` is one of ``timeout``, ``connection_refused``, ``dns``,
    ``connection``, ``invalid_url``, ``protocol`` or ``http_status``.
    """

    def __init__(self, url: str, kind: str, message: str):
        super().__init__(f"{kind} while fetching {url}: {message}")
        self.url = url
        self.kind = kind


class RenderError(WebFetchError):
    """Browser launch, page setup or navigation failed."""


class RenderTimeoutError(RenderError):
    """Navigation did not reach its wait condition within the timeout."""


class ConfigError(WebFetchError):
    """An invalid configuration or option value was supplied."""


def format_error(tool_name: str, error: Exception, suggestion: str = "") -> str:
    """Format an error message for MCP tool response."""
    error_msg = f"## ❌ Error in {tool_name}\n\n"
    error_msg += f"**Error:** {str(error)}\n\n"

    if suggestion:
        error_msg += f"**Suggestion:** {suggestion}\n"
        return error_msg

    # Default suggestions follow the failing stage
    if isinstance(error, NetworkError):
        if error.kind == "timeout":
            error_msg += "**Suggestion:** The server took too long to respond. Try again later.\n"
        elif error.kind == "dns":
            error_msg += "**Suggestion:** The host name could not be resolved. Check the URL.\n"
        elif error.kind == "invalid_url":
            error_msg += "**Suggestion:** Pass an absolute http(s) URL.\n"
        else:
            error_msg += "**Suggestion:** Check your internet connection and try again.\n"
    elif isinstance(error, RenderTimeoutError):
        error_msg += (
            "**Suggestion:** The page took too long to render. Try a lighter wait policy "
            "or set force_headless=false.\n"
        )
    elif isinstance(error, RenderError):
        error_msg += (
            "**Suggestion:** The headless browser failed. Make sure Chromium is installed "
            "(`playwright install chromium`).\n"
        )
    elif isinstance(error, ConfigError):
        error_msg += "**Suggestion:** Fix the invalid option and retry.\n"
    else:
        error_msg += "**Suggestion:** Please check the error message and try again with different parameters.\n"

    return error_msg
