import re
from typing import Dict, List, Optional
from urllib.parse import urlsplit

from selenium import webdriver
from selenium.common.exceptions import WebDriverException

from app.features.scan.exceptions import PageInspectionError
from app.features.scan.schemas.scan import Link
from app.platform.logger import get_logger

logger = get_logger(__name__)

COLLECT_ANCHORS_SCRIPT = """
return {
    origin: window.location.origin,
    anchors: Array.from(document.querySelectorAll('a')).map(a => ({
        href: a.href,
        text: a.innerText || ''
    }))
};
"""

HOME_LABEL = "Home"
UNTITLED_LABEL = "Untitled Page"


class LinkDiscoveryService:
    """Same-origin navigation targets from the rendered page, labelled for humans."""

    def __init__(self, max_links: int = 50, max_label_length: int = 30):
        self.max_links = max_links
        self.max_label_length = max_label_length

    def discover(self, driver: webdriver.Chrome) -> List[Link]:
        try:
            payload = driver.execute_script(COLLECT_ANCHORS_SCRIPT) or {}
        except WebDriverException as e:
            raise PageInspectionError(f"Link extraction failed: {e.msg or e}") from e

        links = self.select_links(payload.get("origin") or "", payload.get("anchors") or [])
        logger.info(f"Discovered {len(links)} internal link(s)")
        return links

    def select_links(self, origin: str, anchors: List[Dict[str, str]]) -> List[Link]:
        """
        Filter, label, dedupe and cap anchors.

        Args:
            origin: Origin of the scanned page, e.g. "https://example.com"
            anchors: Dicts with the browser-resolved `href` and visible `text`,
                in document order

        Returns:
            At most `max_links` links, first occurrence of each URL kept
        """
        base = self._origin_of(origin)
        if base is None:
            return []

        links: List[Link] = []
        seen = set()
        for anchor in anchors:
            href = (anchor.get("href") or "").strip()
            if not href or "#" in href:
                continue
            if self._origin_of(href) != base:
                continue
            if href in seen:
                continue
            seen.add(href)
            links.append(Link(url=href, name=self.label_for(href, anchor.get("text") or "")))
            if len(links) >= self.max_links:
                break

        return links

    def label_for(self, url: str, text: str) -> str:
        name = text.strip()
        if name and len(name) <= self.max_label_length:
            return name

        path = urlsplit(url).path or "/"
        if path == "/":
            return HOME_LABEL

        label = re.sub(r"[/_-]+", " ", path)
        label = re.sub(r"\s+", " ", label).strip()
        return label or UNTITLED_LABEL

    @staticmethod
    def _origin_of(url: str) -> Optional[tuple]:
        """(scheme, host, port) with default ports filled in, or None."""
        try:
            parts = urlsplit(url)
            port = parts.port
        except ValueError:
            return None

        if parts.scheme not in ("http", "https") or not parts.hostname:
            return None
        if port is None:
            port = 443 if parts.scheme == "https" else 80
        return parts.scheme, parts.hostname.lower(), port
