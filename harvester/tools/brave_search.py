from __future__ import annotations

from typing import Any

import httpx

from harvester.config import settings
from harvester.research_core.models.interfaces import ProviderResult, SearchResult

BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"


async def search(query: str, *, max_results: int = 10) -> ProviderResult:
    """Execute a Brave web search and normalize results."""
    if not settings.brave_api_key:
        raise RuntimeError("BRAVE_API_KEY is not configured")

    params: dict[str, Any] = {
        "q": query,
        "count": max_results,
    }

    async with httpx.AsyncClient(timeout=settings.search_timeout_seconds) as client:
        response = await client.get(
            BRAVE_SEARCH_URL,
            params=params,
            headers={
                "Accept": "application/json",
                "X-Subscription-Token": settings.brave_api_key,
            },
        )
        response.raise_for_status()
        payload = response.json()

    raw_results = payload.get("web", {}).get("results", []) or []
    total = max(len(raw_results), 1)
    mapped: list[SearchResult] = []
    for idx, item in enumerate(raw_results[:max_results]):
        snippets = item.get("extra_snippets", []) or []
        description = item.get("description", "") or ""
        snippet = description.strip() or " ".join(snippets).strip()
        # Brave exposes no relevance score; rank position stands in for it.
        score = max(0.0, 1.0 - (idx / total))
        mapped.append(
            SearchResult(
                title=item.get("title", "") or "",
                url=item.get("url", "") or "",
                snippet=snippet,
                relevance_score=score,
            )
        )
    return ProviderResult(results=mapped)
