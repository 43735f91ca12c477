from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Sequence

from loguru import logger

from harvester.config import settings
from harvester.models.events import SSEEvent
from harvester.models.schemas import (
    HarvestedData,
    ResearchStats,
    ScrapedContent,
    SearchHit,
    SerpEnrichment,
)
from harvester.research_core.models.interfaces import PlannedSearchQuery, ScrapeCandidate
from harvester.research_core.scrape.service import ScrapeService, get_default_service
from harvester.services import streaming
from harvester.services.logger import log_research_phase
from harvester.tools import search_provider

EventListener = Callable[[SSEEvent], None]
SearchFn = Callable[..., Awaitable[search_provider.SearchResponse]]


@dataclass(slots=True)
class ParallelResearchResult:
    harvested: HarvestedData
    stats: ResearchStats
    events: list[SSEEvent] = field(default_factory=list)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def select_scrape_targets(
    results: Sequence[SearchHit | ScrapeCandidate],
    max_urls: int,
) -> list[ScrapeCandidate]:
    """Dedupe by URL, keep http(s) only, rank by relevance, cap at max_urls.

    A repeated URL keeps its first position but takes the later score. The
    sort is stable, so ties keep search order.
    """
    by_url: dict[str, ScrapeCandidate] = {}
    for item in results:
        if not item.url:
            continue
        if item.url in by_url:
            by_url[item.url].relevance_score = item.relevance_score
        else:
            by_url[item.url] = ScrapeCandidate(url=item.url, relevance_score=item.relevance_score)

    eligible = [c for c in by_url.values() if c.url.lower().startswith(("http://", "https://"))]
    eligible.sort(key=lambda c: c.relevance_score or 0.0, reverse=True)
    return eligible[: max(max_urls, 0)]


def _merge_enrichment(target: SerpEnrichment, enrichment: dict[str, Any]) -> None:
    for key in ("knowledge_graph", "answer_box", "people_also_ask", "related_searches"):
        value = enrichment.get(key)
        if value:
            setattr(target, key, value)


class ParallelResearchExecutor:
    """Run every planned query at once, then scrape the best URLs at once."""

    def __init__(
        self,
        *,
        scrape_service: ScrapeService | None = None,
        search_fn: SearchFn | None = None,
    ):
        self.scrape_service = scrape_service or get_default_service()
        self.search_fn = search_fn or search_provider.search

    async def execute(
        self,
        queries: Sequence[PlannedSearchQuery | str],
        *,
        max_scrape_urls: int | None = None,
        on_event: EventListener | None = None,
    ) -> ParallelResearchResult:
        planned = [
            q if isinstance(q, PlannedSearchQuery) else PlannedSearchQuery(query=q)
            for q in queries
        ]
        max_urls = max_scrape_urls if max_scrape_urls is not None else settings.research_max_scrape_urls

        harvested = HarvestedData()
        stats = ResearchStats(queries_executed=len(planned))
        events: list[SSEEvent] = []

        def emit(event: SSEEvent) -> None:
            events.append(event)
            if on_event is not None:
                on_event(event)

        started = time.monotonic()

        placeholder_urls: set[str] = set()
        if planned:
            placeholder_urls = await self._search_phase(planned, harvested, stats, emit)

        if harvested.search_results:
            await self._scrape_phase(harvested, stats, max_urls, emit, exclude=placeholder_urls)

        stats.total_duration_ms = _elapsed_ms(started)
        log_research_phase(
            "parallel_research",
            "completed",
            total_duration_ms=stats.total_duration_ms,
            search_results=stats.search_result_count,
            scraped=stats.scrape_success_count,
            failed=stats.scrape_fail_count,
        )
        return ParallelResearchResult(harvested=harvested, stats=stats, events=events)

    async def _search_phase(
        self,
        planned: list[PlannedSearchQuery],
        harvested: HarvestedData,
        stats: ResearchStats,
        emit: EventListener,
    ) -> set[str]:
        """Record hits and enrichment; return the URLs of placeholder hits."""
        count = len(planned)
        emit(
            streaming.progress(
                "searching",
                f"{count} {'query' if count == 1 else 'queries'} in parallel...",
                queries=[q.query for q in planned],
            )
        )
        log_research_phase("search", "started", queries=count)
        phase_started = time.monotonic()

        async def run_query(query: str) -> search_provider.SearchResponse:
            query_started = time.monotonic()
            response = await self.search_fn(
                query, max_results=settings.research_max_results_per_query
            )
            logger.info(
                f"[SEARCH] {query!r}: {len(response.results)} results via {response.provider} "
                f"({_elapsed_ms(query_started)}ms)"
            )
            return response

        responses = await asyncio.gather(
            *(run_query(q.query) for q in planned),
            return_exceptions=True,
        )
        stats.search_duration_ms = _elapsed_ms(phase_started)

        enrichment_taken = False
        placeholder_urls: set[str] = set()
        for query, response in zip(planned, responses):
            if isinstance(response, BaseException):
                logger.error(f"[SEARCH] Query failed: {query.query!r}: {response}")
                continue

            for result in response.results:
                if response.has_real_results:
                    score = result.relevance_score or settings.research_default_relevance
                else:
                    # Placeholder for a query every provider failed on.
                    score = 0.0
                    placeholder_urls.add(result.url)
                harvested.search_results.append(
                    SearchHit(
                        title=result.title,
                        url=result.url,
                        snippet=result.snippet,
                        relevance_score=score,
                    )
                )
                stats.search_result_count += 1

            if response.enrichment and not enrichment_taken:
                _merge_enrichment(harvested.serp_enrichment, response.enrichment)
                enrichment_taken = True

        log_research_phase(
            "search",
            "completed",
            duration_ms=stats.search_duration_ms,
            result_count=stats.search_result_count,
        )
        emit(streaming.search_complete(stats.search_result_count, stats.search_duration_ms))
        return placeholder_urls

    async def _scrape_phase(
        self,
        harvested: HarvestedData,
        stats: ResearchStats,
        max_urls: int,
        emit: EventListener,
        *,
        exclude: set[str] | frozenset[str] = frozenset(),
    ) -> None:
        if exclude:
            logger.info(f"[SCRAPE] Skipping {len(exclude)} placeholder result(s) from failed searches")
        candidates = select_scrape_targets(
            [hit for hit in harvested.search_results if hit.url not in exclude],
            max_urls,
        )
        emit(
            streaming.progress(
                "scraping",
                "Scraping top sources in parallel...",
                urls=[c.url for c in candidates],
            )
        )
        if not candidates:
            emit(streaming.scrape_complete(0, 0, 0))
            return

        log_research_phase("scrape", "started", urls=len(candidates))
        phase_started = time.monotonic()

        outcomes = await asyncio.gather(
            *(self._scrape_one(c) for c in candidates),
            return_exceptions=True,
        )
        stats.scrape_duration_ms = _elapsed_ms(phase_started)

        for candidate, outcome in zip(candidates, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"[SCRAPE] Scrape raised for {candidate.url}: {outcome}")
                harvested.failed_scrape_urls.add(candidate.url)
                harvested.failed_scrape_errors[candidate.url] = str(outcome) or outcome.__class__.__name__
            elif isinstance(outcome, str):
                harvested.failed_scrape_urls.add(candidate.url)
                harvested.failed_scrape_errors[candidate.url] = outcome
            else:
                harvested.scraped_content.append(outcome)

        stats.scrape_success_count = len(harvested.scraped_content)
        stats.scrape_fail_count = len(candidates) - stats.scrape_success_count
        log_research_phase(
            "scrape",
            "completed",
            duration_ms=stats.scrape_duration_ms,
            success=stats.scrape_success_count,
            total=len(candidates),
        )
        emit(
            streaming.scrape_complete(
                stats.scrape_success_count,
                stats.scrape_fail_count,
                stats.scrape_duration_ms,
            )
        )

    async def _scrape_one(self, candidate: ScrapeCandidate) -> ScrapedContent | str:
        """Return the accepted content, or the rejection reason."""
        started = time.monotonic()
        result = await self.scrape_service.scrape(candidate.url)
        duration_ms = _elapsed_ms(started)

        if result.error:
            logger.info(f"[SCRAPE] Skipped {candidate.url} ({duration_ms}ms): {result.error}")
            return result.error
        if len(result.content) < settings.research_min_scraped_content_length:
            logger.info(
                f"[SCRAPE] Skipped {candidate.url} ({duration_ms}ms): "
                f"only {len(result.content)} characters"
            )
            return f"Content too short ({len(result.content)} characters)"

        logger.info(f"[SCRAPE] {candidate.url}: {len(result.content)} characters ({duration_ms}ms)")
        return ScrapedContent(
            url=candidate.url,
            title=result.title,
            content=result.content,
            summary=result.summary or result.content[: settings.scrape_summary_max_length],
            content_length=len(result.content),
            scraped_at=datetime.now(timezone.utc).isoformat(),
            context_id=str(uuid.uuid4()),
            relevance_score=candidate.relevance_score or settings.research_scraped_page_relevance,
        )
