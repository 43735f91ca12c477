"""Harvester - web content acquisition for research assistants

Simple CLI for scraping one page or running a parallel research pass.
"""

import argparse
import asyncio
import json

from harvester.models.events import SSEEvent
from harvester.services.logger import configure_logging
from harvester.services.research_executor import ParallelResearchExecutor
from harvester.services.scrape_tool import scrape_webpage


def print_event(event: SSEEvent) -> None:
    event_type = event.event.value
    data = event.data

    if event_type == "progress":
        print(f"\n[~] {data.get('stage', '').capitalize()}: {data.get('message', '')}")
        for item in data.get("queries") or data.get("urls") or []:
            print(f"  - {item[:100]}")

    elif event_type == "search_complete":
        print(f"  [+] {data.get('result_count')} search results in {data.get('duration_ms')}ms")

    elif event_type == "scrape_complete":
        print(
            f"  [+] Scraped {data.get('success_count')} pages "
            f"({data.get('fail_count')} failed) in {data.get('duration_ms')}ms"
        )

    elif event_type == "error":
        print(f"\n[!] Error: {data.get('message', 'Unknown error')}")


async def run_scrape(url: str, as_json: bool = False):
    """Scrape a single URL and print the result."""
    response = await scrape_webpage(url, reasoning="cli")
    if as_json:
        print(json.dumps(response.model_dump(), indent=2))
        return

    print(f"URL: {response.url}")
    print(f"Title: {response.title}")
    print(f"Length: {response.content_length} ({response.duration_ms}ms)")
    if response.error:
        print(f"[!] {response.error}: {response.error_message}")
    print("-" * 50)
    print(response.content)


async def run_research(queries: list[str], max_urls: int | None = None, as_json: bool = False):
    """Search all queries in parallel and scrape the top sources."""
    executor = ParallelResearchExecutor()
    result = await executor.execute(
        queries,
        max_scrape_urls=max_urls,
        on_event=None if as_json else print_event,
    )

    if as_json:
        print(
            json.dumps(
                {
                    "harvested": result.harvested.model_dump(mode="json"),
                    "stats": result.stats.model_dump(),
                },
                indent=2,
            )
        )
        return

    harvested = result.harvested
    print(f"\n[*] Research Complete! ({result.stats.total_duration_ms}ms)")
    for item in harvested.scraped_content:
        print(f"\n{'='*50}")
        print(f"{item.title}\n{item.url}  [{item.context_id}]")
        print(f"{'='*50}")
        print(item.summary)
    for url, reason in harvested.failed_scrape_errors.items():
        print(f"\n[!] {url}: {reason}")


def main():
    parser = argparse.ArgumentParser(description="Harvester web content tool")
    parser.add_argument("--json", action="store_true", help="Print machine-readable output")
    subparsers = parser.add_subparsers(dest="command", required=True)

    scrape_parser = subparsers.add_parser("scrape", help="Scrape one URL")
    scrape_parser.add_argument("url", help="Absolute http(s) URL")

    research_parser = subparsers.add_parser("research", help="Search and scrape in parallel")
    research_parser.add_argument("queries", nargs="+", help="Search queries")
    research_parser.add_argument("--max-urls", "-n", type=int, help="Maximum pages to scrape")

    args = parser.parse_args()
    configure_logging()

    if args.command == "scrape":
        asyncio.run(run_scrape(args.url, args.json))
    else:
        asyncio.run(run_research(args.queries, args.max_urls, args.json))


if __name__ == "__main__":
    main()
