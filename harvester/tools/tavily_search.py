from __future__ import annotations

from tavily import AsyncTavilyClient

from harvester.config import settings
from harvester.research_core.models.interfaces import ProviderResult, SearchResult


async def search(
    query: str,
    *,
    max_results: int = 10,
    search_depth: str = "basic",
) -> ProviderResult:
    """Execute a Tavily web search and return structured results."""
    if not settings.tavily_api_key:
        raise RuntimeError("TAVILY_API_KEY is not configured")

    client = AsyncTavilyClient(api_key=settings.tavily_api_key)
    response = await client.search(
        query=query,
        search_depth=search_depth,
        max_results=max_results,
        include_answer=True,
    )

    results = [
        SearchResult(
            title=r.get("title", "") or "",
            url=r.get("url", "") or "",
            snippet=r.get("content", "") or "",
            relevance_score=float(r.get("score", 0.0) or 0.0),
        )
        for r in response.get("results", [])
    ]

    enrichment = None
    answer = response.get("answer")
    if isinstance(answer, str) and answer.strip():
        enrichment = {"answer_box": {"answer": answer.strip(), "source": "tavily"}}
    return ProviderResult(results=results, enrichment=enrichment)
