"""Heuristic static-vs-dynamic page classification.

Scores raw HTML for signs that its meaningful content is only produced by
client-side JavaScript (SPA mount points, framework hydration blobs, empty
bodies, script-heavy documents).  Each signal adds a fixed weight from
``SIGNAL_WEIGHTS``; the confidence is ``min(score / 10, 1)`` and a page is
considered dynamic at ``DYNAMIC_THRESHOLD`` or above.

Framework name precedence:
1. the ``<meta name="generator">`` match,
2. else the first hydration marker in ``_HYDRATION_PATTERNS`` order that
   names a framework (Next.js, then Nuxt, then Vue),
3. else ``None``.
"""

from __future__ import annotations

import re
from typing import Optional

from bs4 import BeautifulSoup, Tag

from web_fetch_mcp.schemas import PageTypeResult

# ---------------------------------------------------------------------------
# Weights and thresholds
# ---------------------------------------------------------------------------

SIGNAL_WEIGHTS: dict[str, int] = {
    "mount_point": 3,
    "hydration_data": 2,     # per distinct pattern
    "react_marker": 2,
    "vue_ssr_marker": 1,
    "angular_marker": 1,
    "generator_meta": 2,
    "scripts_over_text": 2,
    "script_bytes_over_text": 2,
    "noscript_prompt": 1,
    "empty_body": 3,
}

SCORE_SCALE = 10
DYNAMIC_THRESHOLD = 0.3

_SPARSE_BODY_TEXT = 100
_MIN_SCRIPTS = 3
_HEAVY_SCRIPT_BYTES = 50000
_THIN_BODY_TEXT = 500
_EMPTY_BODY_CHILDREN = 2
_EMPTY_BODY_TEXT = 50

_MOUNT_POINT_IDS = ("root", "app", "__next", "nuxt", "__nuxt", "__NEXT")

# (pattern, framework it identifies or None for generic state blobs)
_HYDRATION_PATTERNS: tuple[tuple[re.Pattern, Optional[str]], ...] = (
    (re.compile(r"__NEXT_DATA__"), "Next.js"),
    (re.compile(r"__NUXT__"), "Nuxt"),
    (re.compile(r"__INITIAL_STATE__"), None),
    (re.compile(r"__APOLLO_STATE__"), None),
    (re.compile(r"__REDUX_STATE__"), None),
    (re.compile(r"__VUE__"), "Vue"),
)

_GENERATOR_RE = re.compile(r"(Next\.js|Nuxt|Gatsby|Vite|Astro|SvelteKit|Remix)", re.IGNORECASE)


def _has_mount_point(soup: BeautifulSoup) -> bool:
    return soup.find(
        id=lambda value: bool(value) and any(mp in value for mp in _MOUNT_POINT_IDS)
    ) is not None


def _script_bytes(soup: BeautifulSoup) -> tuple[int, int]:
    scripts = soup.find_all("script")
    return len(scripts), sum(len(s.decode_contents()) for s in scripts)


def classify(html: str) -> PageTypeResult:
    """Classify raw HTML as static or dynamic (needs JS rendering)."""
    soup = BeautifulSoup(html or "", "lxml")
    hints: list[str] = []
    score = 0

    # 1. SPA mount points
    if _has_mount_point(soup):
        score += SIGNAL_WEIGHTS["mount_point"]
        hints.append("SPA mount point present")

    # 2. Hydration data blobs
    hydration_frameworks: list[Optional[str]] = [
        framework for pattern, framework in _HYDRATION_PATTERNS if pattern.search(html or "")
    ]
    if hydration_frameworks:
        score += SIGNAL_WEIGHTS["hydration_data"] * len(hydration_frameworks)
        hints.append(f"framework hydration data ({len(hydration_frameworks)} markers)")

    # 3. Framework DOM markers
    if soup.find(attrs={"data-reactroot": True}) or soup.find(attrs={"data-reactid": True}):
        score += SIGNAL_WEIGHTS["react_marker"]
        hints.append("React markers")
    if soup.find(attrs={"data-server-rendered": True}):
        score += SIGNAL_WEIGHTS["vue_ssr_marker"]
        hints.append("Vue SSR marker")
    angular = soup.find(attrs={"ng-version": True})
    if angular is not None:
        score += SIGNAL_WEIGHTS["angular_marker"]
        hints.append(f"Angular version: {angular.get('ng-version')}")

    # 4. Generator meta tag
    generator_match = None
    generator = soup.find("meta", attrs={"name": "generator"})
    if generator is not None:
        generator_match = _GENERATOR_RE.search(generator.get("content") or "")
    if generator_match:
        score += SIGNAL_WEIGHTS["generator_meta"]
        hints.append(f"generator: {generator_match.group(1)}")

    # 5. Body text vs. scripts
    body = soup.body
    body_text = body.get_text().strip() if body is not None else ""
    script_count, script_length = _script_bytes(soup)
    if len(body_text) < _SPARSE_BODY_TEXT and script_count >= _MIN_SCRIPTS:
        score += SIGNAL_WEIGHTS["scripts_over_text"]
        hints.append("little body text, many scripts")
    if script_length > _HEAVY_SCRIPT_BYTES and len(body_text) < _THIN_BODY_TEXT:
        score += SIGNAL_WEIGHTS["script_bytes_over_text"]
        hints.append("inline scripts far larger than body text")

    # 6. noscript prompt
    noscript = " ".join(n.get_text() for n in soup.find_all("noscript")).lower()
    if "javascript" in noscript and "enable" in noscript:
        score += SIGNAL_WEIGHTS["noscript_prompt"]
        hints.append("noscript asks to enable JavaScript")

    # 7. Empty or near-empty body
    children = len([c for c in body.children if isinstance(c, Tag)]) if body is not None else 0
    if children == 0 or (children <= _EMPTY_BODY_CHILDREN and len(body_text) < _EMPTY_BODY_TEXT):
        score += SIGNAL_WEIGHTS["empty_body"]
        hints.append("body is nearly empty")

    confidence = round(min(score / SCORE_SCALE, 1.0), 2)

    if generator_match:
        framework = generator_match.group(1)
    else:
        framework = next((name for name in hydration_frameworks if name), None)

    return PageTypeResult(
        is_dynamic=confidence >= DYNAMIC_THRESHOLD,
        confidence=confidence,
        hints=hints,
        framework=framework,
    )
