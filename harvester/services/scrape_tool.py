"""Consumer-facing `scrape_webpage` tool.

Wraps the whole fetch chain in one outer timeout and always returns a
ScrapeToolResponse, tagged with a context id the caller can cite.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from datetime import datetime, timezone

from loguru import logger

from harvester.config import settings
from harvester.models.schemas import ScrapeToolResponse
from harvester.research_core.scrape.service import ScrapeService, get_default_service
from harvester.services.logger import log_event
from harvester.tools.web_utils import extract_domain

TOOL_NAME = "scrape_webpage"
FAILURE_LABEL = "Scrape failed"


async def scrape_webpage(
    url: str,
    reasoning: str = "",
    service: ScrapeService | None = None,
    *,
    timeout_seconds: float | None = None,
) -> ScrapeToolResponse:
    service = service or get_default_service()
    timeout = timeout_seconds if timeout_seconds is not None else settings.scrape_tool_timeout_seconds
    context_id = str(uuid.uuid4())
    started = time.monotonic()

    log_event(f"{TOOL_NAME}_called", f"Scrape requested: {url}", context_id=context_id, reasoning=reasoning)

    def respond(
        *,
        title: str,
        content: str,
        summary: str,
        content_length: int,
        error_message: str | None = None,
    ) -> ScrapeToolResponse:
        return ScrapeToolResponse(
            context_id=context_id,
            url=url,
            reasoning=reasoning,
            title=title,
            content=content,
            summary=summary,
            content_length=content_length,
            scraped_at=datetime.now(timezone.utc).isoformat(),
            error=FAILURE_LABEL if error_message is not None else None,
            error_message=error_message,
            duration_ms=int((time.monotonic() - started) * 1000),
        )

    try:
        result = await asyncio.wait_for(service.scrape(url), timeout=timeout)
    except asyncio.TimeoutError:
        message = f"Scrape tool timeout after {int(timeout * 1000)}ms"
        logger.error(f"[ERROR] {TOOL_NAME} timed out: context_id={context_id} url={url}")
        hostname = extract_domain(url)
        return respond(
            title=hostname,
            content=f"Unable to fetch content from {url}",
            summary=f"Content unavailable from {hostname}",
            content_length=0,
            error_message=message,
        )

    if result.error or result.error_code:
        error_message = result.error or "Unknown scrape error"
        logger.warning(
            f"[WARN] {TOOL_NAME} reported failure: context_id={context_id} url={url} "
            f"code={result.error_code.value if result.error_code else None} error={error_message}"
        )
        return respond(
            title=result.title,
            content=result.content,
            summary=result.summary or f"Content unavailable from {result.title}",
            content_length=0,
            error_message=error_message,
        )

    logger.info(
        f"[OK] {TOOL_NAME} success: context_id={context_id} url={url} "
        f"content_length={len(result.content)}"
    )
    return respond(
        title=result.title,
        content=result.content,
        summary=result.summary or f"{result.content[: settings.scrape_summary_max_length]}...",
        content_length=len(result.content),
    )
