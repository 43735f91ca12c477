from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from harvester.config import settings
from harvester.research_core.models.interfaces import ProviderResult, SearchResult
from harvester.tools import duckduckgo_search, search_provider, serper_search


def _results(*urls: str) -> ProviderResult:
    return ProviderResult(
        results=[SearchResult(title=u, url=u, snippet="s", relevance_score=0.8) for u in urls]
    )


@pytest.mark.asyncio
async def test_first_provider_with_results_wins():
    with (
        patch(
            "harvester.tools.search_provider.serper_search.search",
            new=AsyncMock(return_value=_results("https://a.com")),
        ) as serper,
        patch("harvester.tools.search_provider.brave_search.search", new=AsyncMock()) as brave,
    ):
        response = await search_provider.search("query", max_results=3, providers=["serper", "brave"])

    assert response.provider == "serper"
    assert response.has_real_results is True
    assert response.provider_errors == []
    serper.assert_awaited_once_with("query", max_results=3)
    brave.assert_not_awaited()


@pytest.mark.asyncio
async def test_failures_are_recorded_and_chain_continues():
    with (
        patch(
            "harvester.tools.search_provider.serper_search.search",
            new=AsyncMock(side_effect=RuntimeError("SERPER_API_KEY is not configured")),
        ),
        patch(
            "harvester.tools.search_provider.brave_search.search",
            new=AsyncMock(return_value=ProviderResult()),
        ),
        patch(
            "harvester.tools.search_provider.duckduckgo_search.search",
            new=AsyncMock(return_value=_results("https://b.com", "https://c.com")),
        ),
    ):
        response = await search_provider.search(
            "query", providers=["serper", "brave", "duckduckgo"]
        )

    assert response.provider == "duckduckgo"
    assert [r.url for r in response.results] == ["https://b.com", "https://c.com"]
    assert len(response.provider_errors) == 1
    assert response.provider_errors[0].provider == "serper"
    assert "SERPER_API_KEY" in response.provider_errors[0].error


@pytest.mark.asyncio
async def test_degraded_result_when_every_provider_fails():
    with (
        patch(
            "harvester.tools.search_provider.brave_search.search",
            new=AsyncMock(side_effect=httpx.ConnectError("down")),
        ),
        patch(
            "harvester.tools.search_provider.tavily_search.search",
            new=AsyncMock(return_value=ProviderResult()),
        ),
    ):
        response = await search_provider.search("solar output 2024", providers=["brave", "tavily"])

    assert response.has_real_results is False
    assert response.all_providers_failed is True
    assert response.provider == search_provider.DEGRADED_PROVIDER
    assert len(response.results) == 1
    assert "solar+output+2024" in response.results[0].url
    assert [e.provider for e in response.provider_errors] == ["brave"]


@pytest.mark.asyncio
async def test_chain_order_comes_from_settings(monkeypatch):
    monkeypatch.setattr(settings, "search_providers", "tavily, duckduckgo")
    with (
        patch(
            "harvester.tools.search_provider.tavily_search.search",
            new=AsyncMock(return_value=_results("https://t.com")),
        ) as tavily,
        patch("harvester.tools.search_provider.serper_search.search", new=AsyncMock()) as serper,
    ):
        response = await search_provider.search("query")

    assert response.provider == "tavily"
    tavily.assert_awaited_once()
    serper.assert_not_awaited()


def test_unknown_provider_rejected_when_building_chain():
    with pytest.raises(ValueError, match="bing"):
        search_provider.build_chain(["serper", "bing"])


def test_empty_provider_list_rejected():
    with pytest.raises(ValueError):
        search_provider.build_chain([])


@pytest.mark.asyncio
async def test_serper_parses_organic_results_and_enrichment(monkeypatch):
    monkeypatch.setattr(settings, "serper_api_key", "serper-key")
    captured: dict = {}

    class _FakeResponse:
        def raise_for_status(self) -> None:
            return None

        def json(self) -> dict:
            return {
                "organic": [
                    {"title": "One", "link": "https://one.com", "snippet": "first", "position": 1},
                    {"title": "Two", "link": "https://two.com", "snippet": "second", "position": 2},
                ],
                "knowledgeGraph": {"title": "Topic", "type": "Thing", "description": "About it"},
                "answerBox": {"answer": "42", "link": "https://answer.com"},
                "peopleAlsoAsk": [{"question": "Why?", "snippet": "Because", "link": "https://why.com"}],
                "relatedSearches": [{"query": "topic history"}, {"query": ""}],
            }

    async def fake_post(self, url: str, **kwargs):  # noqa: ARG001
        captured["url"] = url
        captured["headers"] = kwargs.get("headers", {})
        captured["json"] = kwargs.get("json", {})
        return _FakeResponse()

    monkeypatch.setattr(httpx.AsyncClient, "post", fake_post)

    result = await serper_search.search("topic", max_results=5)

    assert captured["url"] == serper_search.SERPER_SEARCH_URL
    assert captured["headers"]["X-API-KEY"] == "serper-key"
    assert captured["json"] == {"q": "topic", "num": 5}
    assert [r.url for r in result.results] == ["https://one.com", "https://two.com"]
    assert result.results[0].relevance_score == 1.0
    assert result.results[1].relevance_score == 0.5
    assert result.enrichment["knowledge_graph"]["title"] == "Topic"
    assert result.enrichment["answer_box"]["answer"] == "42"
    assert result.enrichment["people_also_ask"][0]["question"] == "Why?"
    assert result.enrichment["related_searches"] == ["topic history"]


@pytest.mark.asyncio
async def test_serper_requires_api_key(monkeypatch):
    monkeypatch.setattr(settings, "serper_api_key", "")
    with pytest.raises(RuntimeError, match="SERPER_API_KEY"):
        await serper_search.search("topic")


def test_duckduckgo_parses_html_results():
    html = """
    <div class="result results_links result--ad">
      <h2 class="result__title"><a class="result__a" href="https://ads.example.com">Ad</a></h2>
    </div>
    <div class="result results_links">
      <h2 class="result__title">
        <a class="result__a" href="//duckduckgo.com/l/?uddg=https%3A%2F%2Fexample.org%2Fguide&amp;rut=abc">Example Guide</a>
      </h2>
      <a class="result__snippet">A practical   guide to the topic.</a>
    </div>
    <div class="result results_links">
      <h2 class="result__title"><a class="result__a" href="https://second.example.net/">Second</a></h2>
    </div>
    """
    results = duckduckgo_search.parse_results(html, max_results=5)

    assert [r.url for r in results] == ["https://example.org/guide", "https://second.example.net/"]
    assert results[0].title == "Example Guide"
    assert results[0].snippet == "A practical guide to the topic."
    assert results[0].relevance_score > results[1].relevance_score


def test_duckduckgo_unwrap_redirect_keeps_direct_links():
    assert duckduckgo_search.unwrap_redirect("https://example.com/x") == "https://example.com/x"
