from __future__ import annotations

import pytest

from harvester.research_core.models.interfaces import ContentExtractionError, ErrorCode
from harvester.tools import content_quality

PROSE = (
    "The city council approved the new transit plan on Tuesday, adding three bus "
    "lines and extending weekend service hours across the northern districts."
)


def test_readable_snippet_accepts_prose():
    assert content_quality.is_readable_snippet(PROSE) is True


@pytest.mark.parametrize(
    "value",
    [
        "too short to count",
        "/_next/static/chunks/app/page-4f1c2d.js loaded fine here",
        "flex items-center justify-between px-4 py-2 text-sm font-medium",
        "const value = items.map((x) => x * 2); return value;",
        "data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAAEAAAAB",
        "12 34 56 78 90 ab cd ef 12 34 56 78 90 ab",
    ],
)
def test_readable_snippet_rejects_non_prose(value):
    assert content_quality.is_readable_snippet(value) is False


def test_runtime_noise_detects_transport_rows_and_bundler_tokens():
    assert content_quality.has_runtime_noise('11:I[563491,["static/chunks"]]') is True
    assert content_quality.has_runtime_noise("self.__next_f.push") is True
    assert content_quality.has_runtime_noise("(self.webpackChunk_N_E=[])") is True
    assert content_quality.has_runtime_noise(PROSE) is False


def test_low_quality_requires_enough_tokens_before_ratio_applies():
    short_gibberish = " ".join(["x1"] * 40)
    long_gibberish = " ".join(["x1"] * 80)
    assert content_quality.is_low_quality_content(short_gibberish) is False
    assert content_quality.is_low_quality_content(long_gibberish) is True
    assert content_quality.is_low_quality_content(" ".join([PROSE] * 5)) is False


def test_remove_junk_patterns_strips_boilerplate_phrases():
    text = "Read the article. Subscribe to our newsletter!   Accept cookies now."
    cleaned = content_quality.remove_junk_patterns(text)
    assert "newsletter" not in cleaned.lower()
    assert "accept cookies" not in cleaned.lower()
    assert cleaned.startswith("Read the article.")


def test_check_content_quality_short_text():
    with pytest.raises(ContentExtractionError) as exc_info:
        content_quality.check_content_quality("Loading...")
    assert exc_info.value.code == ErrorCode.CONTENT_TOO_SHORT
    assert "10 characters" in exc_info.value.message


def test_check_content_quality_unreadable_text():
    noisy = PROSE + " " + 'self.__next_f.push([1,"0:I[1234]"])'
    with pytest.raises(ContentExtractionError) as exc_info:
        content_quality.check_content_quality(noisy)
    assert exc_info.value.code == ErrorCode.QUALITY_CHECK_FAILED


def test_check_content_quality_is_monotonic_in_min_length():
    text = PROSE[:120]
    content_quality.check_content_quality(text, min_length=50)
    content_quality.check_content_quality(text, min_length=120)
    for floor in (121, 200, 1000):
        with pytest.raises(ContentExtractionError):
            content_quality.check_content_quality(text, min_length=floor)


def test_check_content_quality_reads_threshold_from_settings(monkeypatch):
    from harvester.config import settings

    monkeypatch.setattr(settings, "scrape_min_content_length", 500)
    with pytest.raises(ContentExtractionError):
        content_quality.check_content_quality(PROSE)
