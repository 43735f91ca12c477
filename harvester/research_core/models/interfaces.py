from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Union


class ErrorCode(str, Enum):
    CLIENT_ERROR = "HTTP_CLIENT_ERROR"
    SERVER_ERROR = "HTTP_SERVER_ERROR"
    TIMEOUT = "TIMEOUT"
    NOT_HTML = "NOT_HTML"
    FETCH_FAILED = "FETCH_FAILED"
    CONTENT_TOO_SHORT = "CONTENT_TOO_SHORT"
    QUALITY_CHECK_FAILED = "QUALITY_CHECK_FAILED"
    INVALID_URL = "INVALID_URL"


@dataclass(frozen=True, slots=True)
class FetchSuccess:
    html: str
    content_type: str
    ok: Literal[True] = True


@dataclass(frozen=True, slots=True)
class FetchFailure:
    error_code: ErrorCode
    message: str
    ok: Literal[False] = False


FetchResult = Union[FetchSuccess, FetchFailure]


@dataclass(frozen=True, slots=True)
class ScrapeResult:
    """Final outcome of scraping one URL.

    `error` is set only when `content` is a placeholder message rather than
    extracted page text.
    """

    title: str
    content: str
    summary: str | None = None
    needs_js_rendering: bool | None = None
    error: str | None = None
    error_code: ErrorCode | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ContentExtractionError(Exception):
    """Raised by the quality gate when extracted text is unusable."""

    def __init__(self, code: ErrorCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


@dataclass(slots=True)
class PageMetadata:
    title: str = ""
    description: str | None = None
    og_title: str | None = None
    og_description: str | None = None
    author: str | None = None
    published_date: str | None = None
    json_ld: str | None = None


@dataclass(slots=True)
class SearchResult:
    title: str
    url: str
    snippet: str
    relevance_score: float = 0.0


@dataclass(slots=True)
class ProviderError:
    provider: str
    error: str


@dataclass(slots=True)
class ProviderResult:
    """What a single search backend returns to the provider chain."""

    results: list[SearchResult] = field(default_factory=list)
    enrichment: dict[str, Any] | None = None


@dataclass(slots=True)
class ScrapeCandidate:
    url: str
    relevance_score: float | None = None


@dataclass(slots=True)
class PlannedSearchQuery:
    query: str
    reasoning: str = ""
    priority: int = 0
