import logging
from typing import List, Optional
from urllib.parse import urlparse, urlunparse

logger = logging.getLogger(__name__)

DEFAULT_PORTS = {"http": 80, "https": 443}

COLLECT_HREFS_SCRIPT = """
return {
  location: window.location.href,
  hrefs: Array.from(document.querySelectorAll('a[href]')).map(a => a.href)
};
"""


def normalize_link(href: str, base_host: str, page_path: str) -> Optional[str]:
    """
    Return `origin + path + query` for a crawlable same-host link, or None.

    Args:
        href: Absolute href as resolved by the browser
        base_host: Hostname of the scan's root URL
        page_path: Path of the page the link was found on

    Returns:
        The normalized URL, or None if the link must be skipped
    """
    try:
        parsed = urlparse(href)
        hostname = parsed.hostname
        port = parsed.port
    except ValueError:
        return None

    if parsed.scheme not in ("http", "https"):
        return None
    if not hostname or hostname != base_host:
        return None
    # Same-page anchor such as "#main"
    if parsed.fragment and parsed.path == page_path:
        return None

    # Origin only: credentials and default ports are dropped
    host = f"[{hostname}]" if ":" in hostname else hostname
    if port is not None and port != DEFAULT_PORTS[parsed.scheme]:
        host = f"{host}:{port}"
    return urlunparse((parsed.scheme, host, parsed.path, "", parsed.query, ""))


def extract_links(page, base_url: str) -> List[str]:
    """
    Collect unique same-host http(s) links from a loaded page.
    Any failure yields an empty list so the page itself is still tested.
    """
    try:
        base_host = urlparse(base_url).hostname
        collected = page.evaluate(COLLECT_HREFS_SCRIPT) or {}
        page_path = urlparse(collected.get("location") or "").path

        links = []
        seen = set()
        for href in collected.get("hrefs") or []:
            if not isinstance(href, str) or not href:
                continue
            link = normalize_link(href, base_host, page_path)
            if link and link not in seen:
                seen.add(link)
                links.append(link)
        return links
    except Exception as e:
        logger.warning(f"Error extracting links from {base_url}: {e}")
        return []
