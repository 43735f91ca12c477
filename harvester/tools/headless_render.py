"""Headless render strategy backed by the Browserless REST API.

The `/content` endpoint always answers HTTP 200 when the browser ran; the
target site's own status travels in the `X-Response-Code` header. A 403
there escalates to `/unblock`, which proxies through residential egress.

`waitUntil: networkidle2` plus a content selector plus a short settle delay
are all needed: `domcontentloaded` fires before streaming frameworks have
written any visible DOM.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

import httpx
from loguru import logger

from harvester.config import settings
from harvester.research_core.models.interfaces import (
    ErrorCode,
    FetchFailure,
    FetchResult,
    FetchSuccess,
)
from harvester.tools.fetch_strategy import classify_status

RATE_LIMIT_HTTP_STATUS = 429
BLOCKED_HTTP_STATUS = 403
SITE_STATUS_HEADER = "X-Response-Code"
UNBLOCK_PROXY = "residential"
BLOCKED_RESOURCES = ("image", "stylesheet", "font", "media")
CONTENT_SELECTOR = "main, article, [role='main'], #__next, #root, #app"


@dataclass(slots=True)
class _CallResult:
    ok: bool
    html: str = ""
    error_code: ErrorCode = ErrorCode.FETCH_FAILED
    message: str = ""
    should_retry: bool = False
    should_try_unblock: bool = False


def _describe(exc: Exception) -> str:
    return str(exc) or exc.__class__.__name__


def _call_error(
    error_code: ErrorCode,
    message: str,
    *,
    should_retry: bool = False,
    should_try_unblock: bool = False,
) -> _CallResult:
    return _CallResult(
        ok=False,
        error_code=error_code,
        message=message,
        should_retry=should_retry,
        should_try_unblock=should_try_unblock,
    )


def _classify_http_status(status: int, message: str) -> _CallResult:
    return _call_error(
        classify_status(status),
        message,
        should_retry=status == RATE_LIMIT_HTTP_STATUS or status >= 500,
        should_try_unblock=status == BLOCKED_HTTP_STATUS,
    )


def build_content_payload(url: str) -> dict[str, Any]:
    return {
        "url": url,
        "bestAttempt": True,
        "rejectResourceTypes": list(BLOCKED_RESOURCES),
        "gotoOptions": {
            "waitUntil": "networkidle2",
            "timeout": settings.headless_page_timeout_ms,
        },
        "waitForSelector": {
            "selector": CONTENT_SELECTOR,
            "timeout": settings.headless_wait_for_selector_timeout_ms,
            "visible": True,
        },
        "waitForTimeout": settings.headless_settle_delay_ms,
    }


def build_unblock_payload(url: str) -> dict[str, Any]:
    return {
        "url": url,
        "content": True,
        "cookies": False,
        "screenshot": False,
        "browserWSEndpoint": False,
        "ttl": 0,
        "bestAttempt": True,
        "gotoOptions": {
            "waitUntil": "networkidle2",
            "timeout": settings.headless_page_timeout_ms,
        },
    }


class HeadlessRenderStrategy:
    """Slow path: render the page in a remote headless browser."""

    name = "Headless render"

    def __init__(
        self,
        *,
        api_token: str | None = None,
        base_url: str | None = None,
        max_attempts: int | None = None,
        retry_base_delay_seconds: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_token = (api_token if api_token is not None else settings.browserless_api_token).strip()
        self.base_url = (base_url or settings.browserless_base_url).rstrip("/")
        self.max_attempts = max(
            int(max_attempts if max_attempts is not None else settings.headless_max_attempts), 1
        )
        self.retry_base_delay_seconds = (
            retry_base_delay_seconds
            if retry_base_delay_seconds is not None
            else settings.headless_retry_base_delay_seconds
        )
        self._http_client = http_client

    async def fetch(self, url: str) -> FetchResult:
        if not self.api_token:
            return FetchFailure(
                ErrorCode.FETCH_FAILED,
                "Browserless not configured (BROWSERLESS_API_TOKEN missing)",
            )

        if self._http_client is None:
            async with httpx.AsyncClient() as client:
                return await self._fetch_with_client(client, url)
        return await self._fetch_with_client(self._http_client, url)

    async def _fetch_with_client(self, client: httpx.AsyncClient, url: str) -> FetchResult:
        payload = build_content_payload(url)

        for attempt in range(1, self.max_attempts + 1):
            result = await self._call_content_api(client, payload)
            if result.ok:
                return FetchSuccess(html=result.html, content_type="text/html")

            if result.should_try_unblock:
                logger.info(f"[CRAWL] Site blocked headless render, trying unblock: {url}")
                unblock = await self._call_unblock_api(client, url)
                if unblock.ok:
                    return FetchSuccess(html=unblock.html, content_type="text/html")
                return FetchFailure(unblock.error_code, f"{result.message}; {unblock.message}")

            if not result.should_retry or attempt == self.max_attempts:
                return FetchFailure(result.error_code, result.message)

            backoff = self.retry_base_delay_seconds * 2 ** (attempt - 1)
            logger.warning(
                f"[CRAWL] Browserless retry after error: url={url} attempt={attempt} "
                f"backoff={backoff:.2f}s code={result.error_code.value} message={result.message}"
            )
            await asyncio.sleep(backoff)

        return FetchFailure(ErrorCode.FETCH_FAILED, "Browserless fetch failed after retries")

    async def _call_content_api(self, client: httpx.AsyncClient, payload: dict[str, Any]) -> _CallResult:
        try:
            response = await client.post(
                f"{self.base_url}/content",
                params={"token": self.api_token},
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=settings.headless_fetch_timeout_seconds,
            )
        except httpx.TimeoutException as exc:
            return _call_error(
                ErrorCode.TIMEOUT,
                f"Browserless: timeout: {_describe(exc)}",
                should_retry=True,
            )
        except httpx.HTTPError as exc:
            return _call_error(ErrorCode.FETCH_FAILED, f"Browserless: {_describe(exc)}")

        if response.status_code >= 400:
            return _classify_http_status(
                response.status_code,
                f"Browserless API error: HTTP {response.status_code} {response.reason_phrase}".strip(),
            )

        site_status_raw = response.headers.get(SITE_STATUS_HEADER)
        if site_status_raw:
            try:
                site_status = int(site_status_raw.strip())
            except ValueError:
                site_status = 0
            if site_status >= 400:
                return _classify_http_status(
                    site_status,
                    f"Target site returned {site_status} via Browserless",
                )

        html = response.text
        if not html.strip():
            return _call_error(ErrorCode.FETCH_FAILED, "Browserless returned empty HTML")
        return _CallResult(ok=True, html=html)

    async def _call_unblock_api(self, client: httpx.AsyncClient, url: str) -> _CallResult:
        try:
            response = await client.post(
                f"{self.base_url}/unblock",
                params={
                    "token": self.api_token,
                    "proxy": UNBLOCK_PROXY,
                    "timeout": settings.headless_unblock_timeout_query_ms,
                },
                json=build_unblock_payload(url),
                headers={"Content-Type": "application/json"},
                timeout=settings.headless_unblock_fetch_timeout_seconds,
            )
        except httpx.HTTPError as exc:
            return _call_error(
                ErrorCode.FETCH_FAILED,
                f"Browserless /unblock request failed: {_describe(exc)}",
            )

        if response.status_code >= 400:
            return _call_error(
                classify_status(response.status_code),
                f"Browserless /unblock error: HTTP {response.status_code} {response.reason_phrase}".strip(),
            )

        try:
            data = response.json()
        except ValueError:
            data = None
        html = data.get("content") if isinstance(data, dict) else None
        if not isinstance(html, str) or not html.strip():
            return _call_error(ErrorCode.FETCH_FAILED, "Browserless /unblock returned empty content")
        return _CallResult(ok=True, html=html)
