from __future__ import annotations

from typing import Any

import httpx

from harvester.config import settings
from harvester.research_core.models.interfaces import ProviderResult, SearchResult

SERPER_SEARCH_URL = "https://google.serper.dev/search"
MAX_SERPER_RESULTS = 20


def _position_score(position: int, total: int) -> float:
    return max(0.0, 1.0 - ((position - 1) / max(total, 1)))


def parse_enrichment(data: dict[str, Any]) -> dict[str, Any] | None:
    """Pull the SERP features worth keeping alongside organic results."""
    enrichment: dict[str, Any] = {}

    knowledge_graph = data.get("knowledgeGraph")
    if isinstance(knowledge_graph, dict) and knowledge_graph:
        enrichment["knowledge_graph"] = {
            "title": knowledge_graph.get("title"),
            "type": knowledge_graph.get("type"),
            "description": knowledge_graph.get("description"),
            "attributes": knowledge_graph.get("attributes") or {},
            "url": knowledge_graph.get("descriptionLink") or knowledge_graph.get("website"),
        }

    answer_box = data.get("answerBox")
    if isinstance(answer_box, dict) and answer_box:
        enrichment["answer_box"] = {
            "answer": answer_box.get("answer"),
            "snippet": answer_box.get("snippet"),
            "title": answer_box.get("title"),
            "url": answer_box.get("link"),
        }

    people_also_ask = data.get("peopleAlsoAsk")
    if isinstance(people_also_ask, list) and people_also_ask:
        enrichment["people_also_ask"] = [
            {
                "question": item.get("question", ""),
                "snippet": item.get("snippet", ""),
                "url": item.get("link"),
            }
            for item in people_also_ask
            if isinstance(item, dict)
        ]

    related = data.get("relatedSearches")
    if isinstance(related, list) and related:
        enrichment["related_searches"] = [
            item.get("query", "") for item in related if isinstance(item, dict) and item.get("query")
        ]

    return enrichment or None


async def search(query: str, *, max_results: int = 10) -> ProviderResult:
    """Google search via Serper.dev, keeping knowledge graph and answer box data."""
    if not settings.serper_api_key:
        raise RuntimeError("SERPER_API_KEY is not configured")

    async with httpx.AsyncClient(timeout=settings.search_timeout_seconds) as client:
        response = await client.post(
            SERPER_SEARCH_URL,
            json={"q": query, "num": min(max_results, MAX_SERPER_RESULTS)},
            headers={
                "X-API-KEY": settings.serper_api_key,
                "Content-Type": "application/json",
            },
        )
        response.raise_for_status()
        data = response.json()

    organic = data.get("organic", []) or []
    total = len(organic)
    results = [
        SearchResult(
            title=item.get("title", "") or "",
            url=item.get("link", "") or "",
            snippet=item.get("snippet", "") or "",
            relevance_score=_position_score(int(item.get("position") or idx), total),
        )
        for idx, item in enumerate(organic[:max_results], start=1)
    ]
    return ProviderResult(results=results, enrichment=parse_enrichment(data))
