from __future__ import annotations

import pytest
from loguru import logger

from harvester.config import settings
from harvester.research_core.models.interfaces import ContentExtractionError, ErrorCode
from harvester.tools import content_extractor

ARTICLE_TEXT = " ".join(
    [
        "The river restoration project reopened twelve kilometres of spawning habitat this spring,",
        "and early surveys counted more juvenile salmon than in any year since records began.",
    ]
    * 4
)

ARTICLE_PAGE = f"""<html>
<head>
  <title>River Restoration Results</title>
  <meta name="description" content="Survey results after the dam removal.">
  <meta property="og:title" content="River Restoration (OG)">
  <meta name="author" content="Field Team">
  <meta property="article:published_time" content="2024-05-02T10:00:00Z">
  <script type="application/ld+json">{{"@type": "NewsArticle"}}</script>
</head>
<body>
  <header>Site header links</header>
  <nav>Home | News | About</nav>
  <article><h1>Restoration</h1><p>{ARTICLE_TEXT}</p></article>
  <aside class="sidebar">Related stories you might like</aside>
  <footer>Copyright notice. Privacy policy.</footer>
</body>
</html>"""

SPA_SHELL = """<html><head><title>App</title></head>
<body><div id="root"></div><script src="/static/js/main.js"></script></body></html>"""


def test_extract_page_metadata():
    soup = content_extractor.parse_html(ARTICLE_PAGE)
    meta = content_extractor.extract_page_metadata(soup)
    assert meta.title == "River Restoration Results"
    assert meta.description == "Survey results after the dam removal."
    assert meta.og_title == "River Restoration (OG)"
    assert meta.author == "Field Team"
    assert meta.published_date == "2024-05-02T10:00:00Z"
    assert meta.json_ld is not None and "NewsArticle" in meta.json_ld


def test_metadata_title_falls_back_to_first_heading():
    soup = content_extractor.parse_html("<html><body><h2>Quarterly Report</h2><p>x</p></body></html>")
    assert content_extractor.extract_page_metadata(soup).title == "Quarterly Report"


def test_needs_js_rendering_for_spa_shell():
    assert content_extractor.needs_js_rendering(content_extractor.parse_html(SPA_SHELL)) is True


def test_needs_js_rendering_for_noscript_notice():
    html = f"<html><body><noscript>Please enable JavaScript to continue.</noscript><p>{ARTICLE_TEXT}</p></body></html>"
    assert content_extractor.needs_js_rendering(content_extractor.parse_html(html)) is True


def test_needs_js_rendering_false_for_static_article():
    assert content_extractor.needs_js_rendering(content_extractor.parse_html(ARTICLE_PAGE)) is False


def test_spa_root_with_rendered_content_is_not_a_shell():
    html = f'<html><body><div id="__next"><main>{ARTICLE_TEXT}</main></div></body></html>'
    assert content_extractor.needs_js_rendering(content_extractor.parse_html(html)) is False


def test_extract_main_content_prefers_article_and_drops_chrome():
    soup = content_extractor.parse_html(ARTICLE_PAGE)
    text = content_extractor.extract_main_content(soup)
    assert "spawning habitat" in text
    assert "Site header links" not in text
    assert "Related stories" not in text
    assert "Copyright notice" not in text


def test_extract_main_content_falls_back_to_largest_block(monkeypatch):
    monkeypatch.setattr(settings, "main_content_min_length", 300)
    html = f"""<html><body>
      <main>Short teaser.</main>
      <div><p>{ARTICLE_TEXT}</p></div>
    </body></html>"""
    text = content_extractor.extract_main_content(content_extractor.parse_html(html))
    assert text.startswith("The river restoration project")


def test_extract_and_clean_returns_bounded_content(monkeypatch):
    monkeypatch.setattr(settings, "scrape_max_content_length", 200)
    monkeypatch.setattr(settings, "scrape_summary_max_length", 50)

    result = content_extractor.extract_and_clean("https://example.com/river", ARTICLE_PAGE)

    assert result.ok
    assert result.title == "River Restoration Results"
    assert len(result.content) <= 203
    assert result.content.endswith("...")
    assert result.summary == result.content[:50] + "..."
    assert result.needs_js_rendering is False


def test_extract_and_clean_title_falls_back_to_host():
    html = f"<html><body><p>{ARTICLE_TEXT}</p></body></html>"
    result = content_extractor.extract_and_clean("https://rivers.example.org/a", html)
    assert result.title == "rivers.example.org"


def test_extract_and_clean_rejects_spa_shell():
    with pytest.raises(ContentExtractionError) as exc_info:
        content_extractor.extract_and_clean("https://app.example.com/", SPA_SHELL)
    assert exc_info.value.code == ErrorCode.CONTENT_TOO_SHORT


def test_extract_and_clean_rejects_bundler_noise():
    noise = " ".join(['11:I[563491,["static/chunks/4bd1b696.js"],"default"]'] * 10)
    html = f"<html><body><div>webpackChunk __next_f {noise}</div></body></html>"
    with pytest.raises(ContentExtractionError) as exc_info:
        content_extractor.extract_and_clean("https://noisy.example.com/", html)
    assert exc_info.value.code == ErrorCode.QUALITY_CHECK_FAILED


def test_summarize_is_a_prefix():
    assert content_extractor.summarize("abcdefgh", 4) == "abcd..."
    assert content_extractor.summarize("abc", 4) == "abc"


STREAM_PROSE = (
    "Harvester keeps a bounded cache of scraped pages, so repeated lookups within a few "
    "minutes never hit the network again. Pages that stream their content inside script "
    "payloads are decoded directly."
)
STREAMED_PAGE = (
    r"""<html><head><title>Streamed Docs</title></head><body><div id="__next"></div>"""
    r"""<script>self.__next_f.push([1,"0:[\"\$\",\"p\",null,{\"children\":\"PROSE\"}]\n"])</script>"""
    r"""</body></html>"""
).replace("PROSE", STREAM_PROSE)


@pytest.fixture
def debug_messages():
    messages: list[str] = []
    handler_id = logger.add(messages.append, level="DEBUG", format="{message}")
    yield messages
    logger.remove(handler_id)


def test_extract_and_clean_logs_streaming_payload_source(debug_messages):
    result = content_extractor.extract_and_clean("https://docs.example.com/", STREAMED_PAGE)

    assert "bounded cache of scraped pages" in result.content
    assert any("from streaming payload: https://docs.example.com/" in m for m in debug_messages)


def test_extract_and_clean_logs_markup_source(debug_messages):
    content_extractor.extract_and_clean("https://example.com/river", ARTICLE_PAGE)

    assert any("from page markup: https://example.com/river" in m for m in debug_messages)
    assert not any("streaming payload" in m for m in debug_messages)
