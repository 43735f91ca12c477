from __future__ import annotations

import httpx

from harvester.config import settings
from harvester.research_core.models.interfaces import (
    ErrorCode,
    FetchFailure,
    FetchResult,
    FetchSuccess,
)
from harvester.tools.fetch_strategy import classify_status, classify_transport_error


def browser_headers() -> dict[str, str]:
    return {
        "User-Agent": settings.direct_fetch_user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.5",
    }


class DirectFetchStrategy:
    """Fast path: plain HTTP GET with a short timeout."""

    name = "Direct fetch"

    def __init__(
        self,
        *,
        timeout_seconds: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.direct_fetch_timeout_seconds
        )
        self._http_client = http_client

    async def fetch(self, url: str) -> FetchResult:
        try:
            if self._http_client is None:
                async with httpx.AsyncClient(
                    timeout=self.timeout_seconds,
                    follow_redirects=True,
                ) as client:
                    return await self._do_request(client, url)
            return await self._do_request(self._http_client, url)
        except httpx.HTTPError as exc:
            return classify_transport_error(exc)
        except (httpx.InvalidURL, UnicodeError) as exc:
            # Bad IDNA labels surface as UnicodeError from the idna codec.
            return FetchFailure(ErrorCode.FETCH_FAILED, f"Invalid URL: {exc}")

    async def _do_request(self, client: httpx.AsyncClient, url: str) -> FetchResult:
        response = await client.get(
            url,
            headers=browser_headers(),
            timeout=self.timeout_seconds,
            follow_redirects=True,
        )

        if response.status_code >= 400:
            return FetchFailure(
                classify_status(response.status_code),
                f"HTTP {response.status_code} {response.reason_phrase}".strip(),
            )

        content_type = response.headers.get("content-type", "")
        if "text/html" not in content_type.lower():
            return FetchFailure(
                ErrorCode.NOT_HTML,
                f"Not an HTML page. Content-Type: {content_type}",
            )

        return FetchSuccess(html=response.text, content_type=content_type)
