"""HTML to bounded, readable text.

Call order matters. Metadata, the JS-rendering check and the streaming
payload decode all read <script>/<noscript> elements, and main-content
extraction removes them.
"""

from __future__ import annotations

from dataclasses import dataclass

from bs4 import BeautifulSoup, Tag
from loguru import logger

from harvester.config import settings
from harvester.research_core.models.interfaces import PageMetadata, ScrapeResult
from harvester.tools import streaming_payload
from harvester.tools.content_quality import check_content_quality, remove_junk_patterns
from harvester.tools.web_utils import clean_text, extract_domain, truncate

SPA_ROOT_SELECTOR = "#root, #__next, #app"
JUNK_SELECTORS = (
    "script, style, nav, footer, header, aside, noscript, iframe",
    '[aria-hidden="true"]',
    '[role="presentation"]',
    ".ads, .ad, .advertisement, .promo, .sidebar",
)
MAIN_CONTENT_SELECTORS = ("article", "main", '[role="main"]', ".content", ".post")
TEXT_BLOCK_SELECTOR = "p, article, section, div"


@dataclass
class ExtractedPage:
    title: str
    text: str
    needs_js_rendering: bool
    used_streaming_payload: bool
    metadata: PageMetadata


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def _meta_content(soup: BeautifulSoup, **attrs: str) -> str | None:
    tag = soup.find("meta", attrs=attrs)
    if not isinstance(tag, Tag):
        return None
    value = tag.get("content")
    return value.strip() if isinstance(value, str) and value.strip() else None


def extract_page_metadata(soup: BeautifulSoup) -> PageMetadata:
    title = clean_text(soup.title.get_text()) if soup.title else ""
    if not title:
        for heading in ("h1", "h2"):
            node = soup.find(heading)
            if node is not None and clean_text(node.get_text()):
                title = clean_text(node.get_text())
                break

    json_ld_tag = soup.find("script", attrs={"type": "application/ld+json"})
    return PageMetadata(
        title=title,
        description=_meta_content(soup, name="description"),
        og_title=_meta_content(soup, property="og:title"),
        og_description=_meta_content(soup, property="og:description"),
        author=_meta_content(soup, name="author"),
        published_date=_meta_content(soup, property="article:published_time"),
        json_ld=json_ld_tag.string if isinstance(json_ld_tag, Tag) and json_ld_tag.string else None,
    )


def body_text(soup: BeautifulSoup) -> str:
    body = soup.body or soup
    return clean_text(body.get_text(" "))


def visible_body_text(soup: BeautifulSoup) -> str:
    """Body text without script/style/noscript contents, tree left intact."""
    body = soup.body or soup
    parts = [
        str(node)
        for node in body.find_all(string=True)
        if node.parent is not None and node.parent.name not in ("script", "style", "noscript", "template")
    ]
    return clean_text(" ".join(parts))


def needs_js_rendering(soup: BeautifulSoup) -> bool:
    """Must run before strip_junk(): it inspects script and noscript elements."""
    if streaming_payload.has_streaming_payload(soup):
        return True

    if soup.select_one(SPA_ROOT_SELECTOR) is not None:
        if len(visible_body_text(soup)) < settings.spa_shell_max_body_length:
            return True

    noscript_text = " ".join(node.get_text(" ") for node in soup.find_all("noscript"))
    return "javascript" in noscript_text.lower()


def strip_junk(soup: BeautifulSoup) -> None:
    for selector in JUNK_SELECTORS:
        for node in soup.select(selector):
            node.decompose()


def extract_largest_text_block(soup: BeautifulSoup) -> str:
    best = ""
    for node in soup.select(TEXT_BLOCK_SELECTOR):
        text = clean_text(node.get_text(" "))
        if len(text) > len(best):
            best = text
    return best


def extract_main_content(soup: BeautifulSoup) -> str:
    """Destructive: removes non-content elements from `soup`."""
    strip_junk(soup)

    main = ""
    for selector in MAIN_CONTENT_SELECTORS:
        node = soup.select_one(selector)
        if node is not None:
            main = clean_text(node.get_text(" "))
            if main:
                break

    if len(main) > settings.main_content_min_length:
        return main

    largest = extract_largest_text_block(soup)
    if largest:
        return largest

    return body_text(soup)


def extract_page(html: str) -> ExtractedPage:
    """Run every extraction step in order; no quality gate."""
    soup = parse_html(html)
    metadata = extract_page_metadata(soup)
    needs_render = needs_js_rendering(soup)
    streamed = streaming_payload.extract_streaming_content(soup) if needs_render else ""
    main = extract_main_content(soup)

    used_streaming = len(streamed) > len(main)
    return ExtractedPage(
        title=metadata.title,
        text=streamed if used_streaming else main,
        needs_js_rendering=needs_render,
        used_streaming_payload=used_streaming,
        metadata=metadata,
    )


def summarize(content: str, max_length: int | None = None) -> str:
    limit = settings.scrape_summary_max_length if max_length is None else max_length
    return truncate(content, limit)


def extract_and_clean(url: str, html: str) -> ScrapeResult:
    """Parse, extract, clean and gate.

    Raises ContentExtractionError when the text is too short or unreadable.
    """
    page = extract_page(html)
    source = "streaming payload" if page.used_streaming_payload else "page markup"
    logger.debug(f"[CRAWL] Extracted {len(page.text)} characters from {source}: {url}")
    content = truncate(page.text, settings.scrape_max_content_length)
    cleaned = remove_junk_patterns(content)

    check_content_quality(cleaned)

    title = (
        page.title
        or page.metadata.og_title
        or page.metadata.description
        or extract_domain(url)
    )
    return ScrapeResult(
        title=title,
        content=cleaned,
        summary=summarize(cleaned),
        needs_js_rendering=page.needs_js_rendering,
    )
