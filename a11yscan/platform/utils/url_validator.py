from typing import Tuple
from urllib.parse import urlparse, urlunparse

ALLOWED_SCHEMES = ("http", "https")


def normalize_url(url: str) -> Tuple[str, bool]:
    """
    Add `https://` when no scheme is given and drop any fragment.
    Returns the normalized URL and whether it changed.
    """
    url = url.strip()
    candidate = url if "://" in url else f"https://{url}"

    parsed = urlparse(candidate)
    normalized = urlunparse(parsed._replace(scheme=parsed.scheme.lower(), fragment=""))
    return normalized, normalized != url


def validate_url(url: str) -> Tuple[bool, str, str]:
    """Returns (is_valid, normalized_url, error_message)."""
    if not url or not url.strip():
        return False, "", "URL cannot be empty"

    normalized_url, _ = normalize_url(url)

    try:
        parsed = urlparse(normalized_url)
        hostname = parsed.hostname
    except ValueError as e:
        return False, normalized_url, f"URL parsing error: {str(e)}"

    if parsed.scheme not in ALLOWED_SCHEMES:
        return False, normalized_url, f"Invalid URL scheme: {parsed.scheme} (must be http or https)"

    if not hostname:
        return False, normalized_url, "Invalid URL format: missing domain"

    if any(ch.isspace() for ch in normalized_url):
        return False, normalized_url, "Invalid URL format: contains whitespace"

    return True, normalized_url, ""
