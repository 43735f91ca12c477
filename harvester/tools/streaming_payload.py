"""Decode text shipped inside Next.js RSC streaming script payloads.

Pages built this way deliver their content as
`self.__next_f.push([1, "<json string>"])` calls, so the script tags must be
read before any junk stripping removes them.
"""

from __future__ import annotations

import json
import re

from bs4 import BeautifulSoup
from loguru import logger

from harvester.tools.content_quality import is_readable_snippet
from harvester.tools.web_utils import clean_text

PAYLOAD_MARKER = "__next_f"
PUSH_CALL_RE = re.compile(r"self\.__next_f\.push\((\[1,.+?\])\s*\)", re.DOTALL)
# React escapes its "$" sigil as \$, which is not a valid JSON escape.
SIGIL_ESCAPE_RE = re.compile(r"\\(\$)")
QUOTED_LITERAL_RE = re.compile(r'"([^"\n]{15,})"')
MAX_SNIPPETS = 120


def has_streaming_payload(soup: BeautifulSoup) -> bool:
    return any(PAYLOAD_MARKER in (script.string or "") for script in soup.find_all("script"))


def decode_payload_chunks(soup: BeautifulSoup) -> list[str]:
    """Return the string element of every parseable push call."""
    chunks: list[str] = []
    match_count = 0
    fail_count = 0
    for script in soup.find_all("script"):
        source = script.string or ""
        for match in PUSH_CALL_RE.finditer(source):
            match_count += 1
            sanitized = SIGIL_ESCAPE_RE.sub(r"\1", match.group(1))
            try:
                parsed = json.loads(sanitized)
            except json.JSONDecodeError as exc:
                fail_count += 1
                logger.warning(f"[CRAWL] Unparseable RSC chunk: {source[:80]!r} ({exc})")
                continue
            if isinstance(parsed, list) and len(parsed) > 1 and isinstance(parsed[1], str):
                chunks.append(parsed[1])

    if fail_count:
        logger.warning(f"[CRAWL] RSC extraction: {fail_count}/{match_count} chunks failed to parse")
    return chunks


def extract_streaming_content(soup: BeautifulSoup) -> str:
    chunks = decode_payload_chunks(soup)
    if not chunks:
        return ""

    combined = "\n".join(chunks)
    readable: list[str] = []
    seen: set[str] = set()
    for literal in QUOTED_LITERAL_RE.findall(combined):
        text = clean_text(literal)
        if text in seen or not is_readable_snippet(text):
            continue
        seen.add(text)
        readable.append(text)
        if len(readable) >= MAX_SNIPPETS:
            break

    return clean_text(" ".join(readable))
