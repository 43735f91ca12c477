from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import httpx
from bs4 import BeautifulSoup

from harvester.config import settings
from harvester.research_core.models.interfaces import ProviderResult, SearchResult
from harvester.tools.direct_fetch import browser_headers
from harvester.tools.web_utils import clean_text, is_valid_url

DUCKDUCKGO_HTML_URL = "https://html.duckduckgo.com/html/"


def unwrap_redirect(href: str) -> str:
    """Return the target of a DuckDuckGo `/l/?uddg=` redirect link."""
    if href.startswith("//"):
        href = f"https:{href}"
    parsed = urlparse(href)
    if parsed.netloc.endswith("duckduckgo.com") and parsed.path.startswith("/l/"):
        target = parse_qs(parsed.query).get("uddg")
        if target:
            return target[0]
    return href


def parse_results(html: str, *, max_results: int) -> list[SearchResult]:
    soup = BeautifulSoup(html, "html.parser")
    parsed: list[tuple[str, str, str]] = []
    for block in soup.select("div.result"):
        if "result--ad" in (block.get("class") or []):
            continue
        link = block.select_one("a.result__a")
        if link is None:
            continue
        url = unwrap_redirect(str(link.get("href") or ""))
        if not is_valid_url(url):
            continue
        snippet_el = block.select_one(".result__snippet")
        parsed.append(
            (
                clean_text(link.get_text(" ", strip=True)),
                url,
                clean_text(snippet_el.get_text(" ", strip=True)) if snippet_el else "",
            )
        )
        if len(parsed) >= max_results:
            break

    total = max(len(parsed), 1)
    return [
        SearchResult(
            title=title,
            url=url,
            snippet=snippet,
            relevance_score=max(0.0, 1.0 - (idx / total)),
        )
        for idx, (title, url, snippet) in enumerate(parsed)
    ]


async def search(query: str, *, max_results: int = 10) -> ProviderResult:
    """Keyless search against the DuckDuckGo HTML endpoint."""
    async with httpx.AsyncClient(
        timeout=settings.search_timeout_seconds,
        headers=browser_headers(),
        follow_redirects=True,
    ) as client:
        response = await client.post(DUCKDUCKGO_HTML_URL, data={"q": query})
        response.raise_for_status()
        html = response.text

    return ProviderResult(results=parse_results(html, max_results=max_results))
