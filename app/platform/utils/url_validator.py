from typing import Tuple
from urllib.parse import urlparse


def normalize_url(url: str) -> Tuple[str, bool]:
    """
    Strip whitespace and default to https when no scheme is given.

    Returns:
        (normalized_url, was_modified)
    """
    url = url.strip()

    parsed = urlparse(url)

    if not parsed.scheme or (not parsed.netloc and "." in parsed.scheme):
        normalized = f"https://{url}"
        return normalized, True

    return url, False
