from __future__ import annotations

import ipaddress
import re
from urllib.parse import urlsplit, urlunsplit

import httpx

BLOCKED_HOSTS = {"localhost", "localhost.localdomain"}


def is_valid_url(url: str) -> bool:
    """Basic URL validation."""
    try:
        result = urlsplit(url)
        return all([result.scheme in ("http", "https"), result.netloc])
    except ValueError:
        return False


def validate_scrape_url(url: str) -> tuple[bool, str]:
    """Return (True, normalized_url) or (False, reason)."""
    if not isinstance(url, str) or not url.strip():
        return False, "URL is empty"

    try:
        parsed = urlsplit(url.strip())
    except ValueError as exc:
        return False, f"Malformed URL: {exc}"

    if parsed.scheme.lower() not in ("http", "https"):
        return False, f"Unsupported scheme: {parsed.scheme or 'none'}"
    if not parsed.hostname:
        return False, "URL has no host"
    if parsed.username or parsed.password:
        return False, "URL must not embed credentials"

    # .host also decodes xn-- labels, which urlsplit never checks.
    try:
        httpx.URL(url.strip()).host
    except (httpx.InvalidURL, ValueError) as exc:
        return False, f"Invalid host or URL: {exc}"

    host = parsed.hostname.lower()
    if host in BLOCKED_HOSTS:
        return False, f"Host not allowed: {host}"
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        address = None
    if address is not None and (address.is_loopback or address.is_private or address.is_link_local):
        return False, f"Host not allowed: {host}"

    return True, normalize_url(url)


def normalize_url(url: str) -> str:
    """Lower-case scheme and host; keep path and query; drop the fragment."""
    parsed = urlsplit(url.strip())
    scheme = (parsed.scheme or "https").lower()
    netloc = parsed.netloc.lower()
    path = parsed.path or "/"
    return urlunsplit((scheme, netloc, path, parsed.query, ""))


def clean_text(text: str) -> str:
    """Collapse whitespace (including non-breaking spaces) to single spaces."""
    return re.sub(r"\s+", " ", text.replace("\xa0", " ")).strip()


def truncate(text: str, max_length: int) -> str:
    if max_length <= 0 or len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def extract_domain(url: str) -> str:
    """Extract host name from URL for display."""
    try:
        return urlsplit(url).hostname or url[:50]
    except ValueError:
        return url[:50]
