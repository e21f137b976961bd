import re
from urllib.parse import urlparse


def normalize_url(url: str) -> str:
    """Trim and prepend https:// when the URL carries no scheme."""
    url = (url or "").strip()
    if url and not re.match(r"^[a-zA-Z][a-zA-Z0-9+.-]*://", url):
        url = f"https://{url}"
    return url


def validate_url(url: str) -> tuple[bool, str, str]:
    """
    Returns:
        (is_valid, normalized_url, error_message)
    """
    if not url or not url.strip():
        return False, "", "URL cannot be empty"

    normalized = normalize_url(url)
    parsed = urlparse(normalized)

    if parsed.scheme not in ("http", "https"):
        return False, normalized, f"Invalid URL scheme: {parsed.scheme} (must be http or https)"

    if not parsed.hostname:
        return False, normalized, "Invalid URL format: missing domain"

    if any(ch.isspace() for ch in normalized):
        return False, normalized, "Invalid URL format: contains whitespace"

    return True, normalized, ""
