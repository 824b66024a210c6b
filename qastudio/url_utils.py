"""Shared URL utilities: normalize target URLs and derive session display names."""

from __future__ import annotations

from urllib.parse import urlparse


def normalize_url(url: str) -> str:
    """Normalize a target URL so history entries deduplicate."""
    url = url.strip()
    if "://" not in url:
        url = f"https://{url}"
    parsed = urlparse(url)
    path = parsed.path.rstrip("/")
    query = ""
    if parsed.query:
        params = sorted(parsed.query.split("&"))
        query = "?" + "&".join(params)
    return f"{parsed.scheme}://{parsed.netloc.lower()}{path}{query}"


def hostname_for(url: str) -> str:
    """Hostname of the target, or the raw input when it does not parse as a URL."""
    parsed = urlparse(url.strip())
    return parsed.hostname or url
