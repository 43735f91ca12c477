from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


# --- Harvested research data ---


class SearchHit(BaseModel):
    title: str
    url: str
    snippet: str
    relevance_score: float


class ScrapedContent(BaseModel):
    url: str
    title: str
    content: str
    summary: str
    content_length: int
    scraped_at: str
    context_id: str
    relevance_score: float


class SerpEnrichment(BaseModel):
    knowledge_graph: dict[str, Any] | None = None
    answer_box: dict[str, Any] | None = None
    people_also_ask: list[dict[str, Any]] | None = None
    related_searches: list[str] | None = None


class HarvestedData(BaseModel):
    search_results: list[SearchHit] = Field(default_factory=list)
    scraped_content: list[ScrapedContent] = Field(default_factory=list)
    failed_scrape_urls: set[str] = Field(default_factory=set)
    failed_scrape_errors: dict[str, str] = Field(default_factory=dict)
    serp_enrichment: SerpEnrichment = Field(default_factory=SerpEnrichment)


class ResearchStats(BaseModel):
    search_duration_ms: int = 0
    scrape_duration_ms: int = 0
    total_duration_ms: int = 0
    search_result_count: int = 0
    scrape_success_count: int = 0
    scrape_fail_count: int = 0
    queries_executed: int = 0


# --- Scrape tool ---


class ScrapeToolResponse(BaseModel):
    context_id: str
    url: str
    reasoning: str
    title: str
    content: str
    summary: str
    content_length: int
    scraped_at: str
    error: str | None = None
    error_message: str | None = None
    duration_ms: int
