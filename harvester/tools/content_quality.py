"""Heuristic gates over plain text.

Each check is a small pure function so the thresholds can be exercised
directly in tests.
"""

from __future__ import annotations

import re

from harvester.config import settings
from harvester.research_core.models.interfaces import ContentExtractionError, ErrorCode
from harvester.tools.web_utils import clean_text

# Streaming-payload snippet readability
SNIPPET_MIN_LENGTH = 30
SNIPPET_MIN_WORD_COUNT = 4
SNIPPET_MAX_SYMBOL_RATIO = 0.08

# Low-quality page text
LOW_QUALITY_MIN_TOKEN_COUNT = 60
LOW_QUALITY_MIN_READABILITY_RATIO = 0.35

ASSET_PREFIXES = ("/", "data:")
ASSET_MARKERS = ("/_next/static/",)
BARE_TOKEN_RUN_RE = re.compile(r"^(?:[A-Za-z0-9_-]+\s+){6,}[A-Za-z0-9_-]+$")
CODE_SYMBOL_RE = re.compile(r"[{}\[\]<>;$]")
SNIPPET_WORD_RE = re.compile(r"[A-Za-z][A-Za-z'-]{2,}")
SYMBOL_RE = re.compile(r"[^A-Za-z0-9\s.,!?'\"():-]")

TRANSPORT_MARKER_RE = re.compile(r"\b\d+:[A-Z]\[")
RUNTIME_NOISE_MARKERS = ("__next_f", "webpackChunk")
ALPHA_WORD_RE = re.compile(r"[A-Za-z]{4,}")

JUNK_PATTERNS = [
    re.compile(r"cookie policy", re.IGNORECASE),
    re.compile(r"accept cookies", re.IGNORECASE),
    re.compile(r"privacy policy", re.IGNORECASE),
    re.compile(r"terms of service", re.IGNORECASE),
    re.compile(r"subscribe to (?:our )?newsletter", re.IGNORECASE),
    re.compile(r"follow us on", re.IGNORECASE),
    re.compile(r"share this article", re.IGNORECASE),
]


def symbol_ratio(text: str) -> float:
    if not text:
        return 0.0
    return len(SYMBOL_RE.findall(text)) / len(text)


def is_readable_snippet(value: str) -> bool:
    """Accept a decoded payload string only if it reads like prose."""
    text = clean_text(value)
    if len(text) < SNIPPET_MIN_LENGTH:
        return False
    if text.startswith(ASSET_PREFIXES) or any(marker in text for marker in ASSET_MARKERS):
        return False
    # class lists and identifier runs
    if BARE_TOKEN_RUN_RE.match(text):
        return False
    if CODE_SYMBOL_RE.search(text):
        return False
    if len(SNIPPET_WORD_RE.findall(text)) < SNIPPET_MIN_WORD_COUNT:
        return False
    return symbol_ratio(text) <= SNIPPET_MAX_SYMBOL_RATIO


def readability_ratio(text: str) -> float:
    tokens = text.split()
    if not tokens:
        return 0.0
    return len(ALPHA_WORD_RE.findall(text)) / len(tokens)


def has_runtime_noise(text: str) -> bool:
    """Bundler runtime tokens or transport-payload rows leaking into text."""
    if TRANSPORT_MARKER_RE.search(text):
        return True
    return any(marker in text for marker in RUNTIME_NOISE_MARKERS)


def is_low_quality_content(text: str) -> bool:
    if has_runtime_noise(text):
        return True
    token_count = len(text.split())
    return (
        token_count > LOW_QUALITY_MIN_TOKEN_COUNT
        and readability_ratio(text) < LOW_QUALITY_MIN_READABILITY_RATIO
    )


def remove_junk_patterns(text: str) -> str:
    cleaned = text
    for pattern in JUNK_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    return clean_text(cleaned)


def check_content_quality(text: str, *, min_length: int | None = None) -> None:
    """Raise ContentExtractionError when `text` is not usable page content."""
    floor = settings.scrape_min_content_length if min_length is None else min_length
    if len(text) < floor:
        raise ContentExtractionError(
            ErrorCode.CONTENT_TOO_SHORT,
            f"Content too short after cleaning ({len(text)} characters)",
        )
    if is_low_quality_content(text):
        raise ContentExtractionError(
            ErrorCode.QUALITY_CHECK_FAILED,
            "Extracted content failed readability checks",
        )
