from __future__ import annotations

from typing import Protocol

import httpx

from harvester.research_core.models.interfaces import ErrorCode, FetchFailure, FetchResult


class FetchStrategy(Protocol):
    """Retrieve raw HTML for a URL. Implementations return failures, never raise."""

    name: str

    async def fetch(self, url: str) -> FetchResult: ...


def classify_status(status_code: int) -> ErrorCode:
    if 400 <= status_code < 500:
        return ErrorCode.CLIENT_ERROR
    return ErrorCode.SERVER_ERROR


def classify_transport_error(exc: httpx.HTTPError) -> FetchFailure:
    """Map an httpx exception to TIMEOUT or FETCH_FAILED."""
    message = str(exc) or exc.__class__.__name__
    if isinstance(exc, httpx.TimeoutException):
        return FetchFailure(ErrorCode.TIMEOUT, f"timeout: {message}")
    return FetchFailure(ErrorCode.FETCH_FAILED, message)
