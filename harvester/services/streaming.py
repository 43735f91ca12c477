from __future__ import annotations

from typing import Any

from harvester.models.events import EventType, SSEEvent


def progress(
    stage: str,
    message: str,
    *,
    queries: list[str] | None = None,
    urls: list[str] | None = None,
) -> SSEEvent:
    data: dict[str, Any] = {"stage": stage, "message": message}
    if queries is not None:
        data["queries"] = queries
    if urls is not None:
        data["urls"] = urls
    return SSEEvent(event=EventType.PROGRESS, data=data)


def search_complete(result_count: int, duration_ms: int, **kwargs: Any) -> SSEEvent:
    return SSEEvent(
        event=EventType.SEARCH_COMPLETE,
        data={"result_count": result_count, "duration_ms": duration_ms, **kwargs},
    )


def scrape_complete(success_count: int, fail_count: int, duration_ms: int) -> SSEEvent:
    return SSEEvent(
        event=EventType.SCRAPE_COMPLETE,
        data={
            "success_count": success_count,
            "fail_count": fail_count,
            "duration_ms": duration_ms,
        },
    )


def error(message: str, stage: str | None = None) -> SSEEvent:
    data: dict[str, Any] = {"message": message}
    if stage:
        data["stage"] = stage
    return SSEEvent(event=EventType.ERROR, data=data)
