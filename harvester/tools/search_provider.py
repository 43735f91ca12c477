from __future__ import annotations

from dataclasses import dataclass, field
from types import ModuleType
from typing import Any, Awaitable, Callable, Sequence
from urllib.parse import quote_plus

from loguru import logger

from harvester.config import settings
from harvester.research_core.models.interfaces import (
    ProviderError,
    ProviderResult,
    SearchResult,
)
from harvester.tools import brave_search, duckduckgo_search, serper_search, tavily_search

SearchBackend = Callable[..., Awaitable[ProviderResult]]

# Resolved per call so each backend module stays patchable.
BACKENDS: dict[str, ModuleType] = {
    "serper": serper_search,
    "brave": brave_search,
    "tavily": tavily_search,
    "duckduckgo": duckduckgo_search,
}

DEGRADED_PROVIDER = "fallback"


@dataclass
class SearchResponse:
    results: list[SearchResult]
    provider: str
    enrichment: dict[str, Any] | None = None
    provider_errors: list[ProviderError] = field(default_factory=list)
    has_real_results: bool = True
    all_providers_failed: bool = False


def build_chain(names: Sequence[str] | None = None) -> list[tuple[str, SearchBackend]]:
    """Resolve provider names (default: settings.search_providers) to backends."""
    resolved = list(names) if names is not None else settings.search_provider_list
    unknown = [name for name in resolved if name not in BACKENDS]
    if unknown:
        raise ValueError(f"Unsupported search provider(s): {', '.join(unknown)}")
    if not resolved:
        raise ValueError("No search providers configured")
    return [(name, BACKENDS[name].search) for name in resolved]


def degraded_result(query: str) -> SearchResult:
    return SearchResult(
        title=f"Search unavailable: {query}",
        url=f"https://duckduckgo.com/?q={quote_plus(query)}",
        snippet=(
            "No search provider returned results for this query. "
            "Try rephrasing it or searching manually."
        ),
        relevance_score=0.0,
    )


async def search(
    query: str,
    *,
    max_results: int = 10,
    providers: Sequence[str] | None = None,
) -> SearchResponse:
    """Try each provider in order and return the first non-empty result set."""
    chain = build_chain(providers)
    errors: list[ProviderError] = []

    for name, backend in chain:
        try:
            response = await backend(query, max_results=max_results)
        except Exception as e:
            logger.warning(f"[SEARCH] Provider {name} failed for {query!r}: {e}")
            errors.append(ProviderError(provider=name, error=str(e) or e.__class__.__name__))
            continue

        if response.results:
            if errors:
                logger.info(
                    f"[SEARCH] {name} answered after {len(errors)} provider failure(s): "
                    f"{', '.join(err.provider for err in errors)}"
                )
            return SearchResponse(
                results=response.results,
                provider=name,
                enrichment=response.enrichment,
                provider_errors=errors,
            )
        logger.info(f"[SEARCH] Provider {name} returned no results for {query!r}")

    logger.error(f"[SEARCH] All providers failed for {query!r}; returning degraded result")
    return SearchResponse(
        results=[degraded_result(query)],
        provider=DEGRADED_PROVIDER,
        provider_errors=errors,
        has_real_results=False,
        all_providers_failed=True,
    )
