from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Sequence

from loguru import logger

from harvester.research_core.models.interfaces import (
    ContentExtractionError,
    ErrorCode,
    ScrapeResult,
)
from harvester.tools.content_extractor import extract_and_clean
from harvester.tools.direct_fetch import DirectFetchStrategy
from harvester.tools.fetch_strategy import FetchStrategy
from harvester.tools.headless_render import HeadlessRenderStrategy
from harvester.tools.scrape_cache import ScrapeCache
from harvester.tools.web_utils import extract_domain, validate_scrape_url

# NOT_HTML and server errors are not worth a headless render.
ESCALATE_ON = frozenset({ErrorCode.CLIENT_ERROR, ErrorCode.TIMEOUT, ErrorCode.FETCH_FAILED})


@dataclass(frozen=True, slots=True)
class FallbackPolicy:
    escalate_on: frozenset[ErrorCode] = ESCALATE_ON

    def should_escalate(self, error_code: ErrorCode) -> bool:
        return error_code in self.escalate_on


@dataclass(slots=True)
class _ErrorTrail:
    messages: list[str] = field(default_factory=list)
    first_code: ErrorCode | None = None

    def add(self, code: ErrorCode, message: str) -> None:
        if self.first_code is None:
            self.first_code = code
        self.messages.append(message)

    def message(self) -> str:
        return "; ".join(self.messages) or "No fetch strategy configured"


def build_error_result(url: str, error_message: str, error_code: ErrorCode) -> ScrapeResult:
    hostname = extract_domain(url)
    return ScrapeResult(
        title=hostname,
        content=f"Unable to fetch content from {url}: {error_message}",
        summary=f"Content unavailable from {hostname}",
        needs_js_rendering=False,
        error=error_message,
        error_code=error_code,
    )


class ScrapeService:
    """Direct fetch first, headless render as fallback, results cached.

    `scrape()` never raises; failures come back as a ScrapeResult with
    `error` and `error_code` set.
    """

    def __init__(
        self,
        *,
        strategies: Sequence[FetchStrategy] | None = None,
        cache: ScrapeCache | None = None,
        policy: FallbackPolicy | None = None,
    ):
        self.strategies: list[FetchStrategy] = (
            list(strategies)
            if strategies is not None
            else [DirectFetchStrategy(), HeadlessRenderStrategy()]
        )
        self.cache = cache if cache is not None else ScrapeCache()
        self.policy = policy or FallbackPolicy()

    async def scrape(self, url: str) -> ScrapeResult:
        ok, validated = validate_scrape_url(url)
        if not ok:
            logger.warning(f"[CRAWL] Rejected URL {url[:100]!r}: {validated}")
            return ScrapeResult(
                title="invalid_url",
                content=f"Unable to fetch content from {url}: {validated}",
                summary=validated,
                needs_js_rendering=False,
                error=f"Invalid URL: {validated}",
                error_code=ErrorCode.INVALID_URL,
            )

        cached = self.cache.get(validated)
        if cached is not None:
            logger.debug(f"[CRAWL] Cache hit: {validated}")
            return cached

        logger.info(f"Scraping URL initiated: {validated}")
        started = time.monotonic()
        try:
            result = await self._fetch_with_fallback(validated)
        except Exception as exc:
            logger.exception(f"[ERROR] Unexpected scrape error for {validated}: {exc}")
            result = build_error_result(
                validated,
                f"Unexpected scrape error: {str(exc) or exc.__class__.__name__}",
                ErrorCode.FETCH_FAILED,
            )
        duration_ms = int((time.monotonic() - started) * 1000)

        if result.error:
            logger.error(
                f"[ERROR] Scraping failed: url={validated} code={result.error_code.value if result.error_code else None} "
                f"error={result.error} duration_ms={duration_ms}"
            )
        else:
            logger.info(
                f"[OK] Scraping completed: url={validated} content_length={len(result.content)} "
                f"duration_ms={duration_ms}"
            )

        self.cache.put(validated, result)
        return result

    async def _fetch_with_fallback(self, url: str) -> ScrapeResult:
        trail = _ErrorTrail()

        for index, strategy in enumerate(self.strategies):
            if index > 0:
                logger.info(f"[CRAWL] Falling back to {strategy.name.lower()}: {url}")

            fetched = await strategy.fetch(url)
            if fetched.ok:
                try:
                    return extract_and_clean(url, fetched.html)
                except ContentExtractionError as exc:
                    # A 200 with an unusable body (JS shell, bundler noise) still
                    # deserves the next strategy.
                    logger.info(
                        f"[CRAWL] {strategy.name} extraction failed ({exc.code.value}): {url}"
                    )
                    trail.add(exc.code, f"{strategy.name} extraction failed: {exc.message}")
                    continue

            trail.add(fetched.error_code, f"{strategy.name} failed: {fetched.message}")
            if not self.policy.should_escalate(fetched.error_code):
                break
            logger.warning(
                f"[CRAWL] {strategy.name} failed ({fetched.error_code.value}): {fetched.message}"
            )

        return build_error_result(url, trail.message(), trail.first_code or ErrorCode.FETCH_FAILED)


_default_service: ScrapeService | None = None


def get_default_service() -> ScrapeService:
    """Process-wide service so the cache stays resident across calls."""
    global _default_service
    if _default_service is None:
        _default_service = ScrapeService()
    return _default_service
