import asyncio
from typing import Optional

from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException

from app.features.scan.exceptions import (
    BrowserAcquisitionError,
    NavigationError,
    NavigationTimeoutError,
    PageInspectionError,
)
from app.features.scan.services.rendering.provisioners import BrowserProvisioner
from app.platform.config import Settings
from app.platform.logger import get_logger

logger = get_logger(__name__)


class RenderingSession:
    """
    One browser and its single loaded page, scoped to one scan.

    Use as a context manager so the browser is released on every exit path:

        async with RenderingSession(provisioner, settings) as session:
            await asyncio.to_thread(session.navigate, url)
            ...

    The blocking Selenium calls are exposed as plain methods; the async
    context manager only wraps acquisition and teardown.
    """

    def __init__(self, provisioner: BrowserProvisioner, settings: Settings):
        self.provisioner = provisioner
        self.settings = settings
        self._driver: Optional[webdriver.Chrome] = None
        self._closed = False

    @property
    def driver(self) -> webdriver.Chrome:
        if self._driver is None:
            raise RuntimeError("Rendering session is not open")
        return self._driver

    def open(self) -> "RenderingSession":
        try:
            self._driver = self.provisioner.acquire()
        except Exception as e:
            raise BrowserAcquisitionError(f"Could not launch browser: {e}") from e

        self._driver.set_page_load_timeout(self.settings.NAVIGATION_TIMEOUT_SECONDS)
        self._driver.set_script_timeout(self.settings.AUDIT_SCRIPT_TIMEOUT_SECONDS)
        logger.info(f"Browser acquired via {self.provisioner.name}")
        return self

    def set_viewport(self) -> None:
        self.driver.execute_cdp_cmd(
            "Emulation.setDeviceMetricsOverride",
            {
                "width": self.settings.VIEWPORT_WIDTH,
                "height": self.settings.VIEWPORT_HEIGHT,
                "deviceScaleFactor": 1,
                "mobile": False,
            },
        )

    def navigate(self, url: str) -> None:
        """Load `url`, returning once the DOM is ready."""
        try:
            self.set_viewport()
            self.driver.get(url)
        except TimeoutException as e:
            raise NavigationTimeoutError(
                f"Navigation timeout of {self.settings.NAVIGATION_TIMEOUT_SECONDS * 1000} ms "
                f"exceeded for URL: {url}"
            ) from e
        except WebDriverException as e:
            raise NavigationError(f"Could not load URL {url}: {e.msg or e}") from e

    async def settle(self) -> None:
        """Fixed wait for client-rendered content after DOM-ready."""
        await asyncio.sleep(self.settings.SETTLE_DELAY_SECONDS)

    def capture_screenshot(self) -> str:
        """
        Full-page lossy screenshot.

        Returns:
            Base64 JPEG payload without a data-URI prefix.
        """
        try:
            metrics = self.driver.execute_cdp_cmd("Page.getLayoutMetrics", {})
            content = metrics.get("cssContentSize") or metrics.get("contentSize") or {}
            width = content.get("width") or self.settings.VIEWPORT_WIDTH
            height = content.get("height") or self.settings.VIEWPORT_HEIGHT

            shot = self.driver.execute_cdp_cmd(
                "Page.captureScreenshot",
                {
                    "format": "jpeg",
                    "quality": self.settings.SCREENSHOT_QUALITY,
                    "captureBeyondViewport": True,
                    "clip": {"x": 0, "y": 0, "width": width, "height": height, "scale": 1},
                },
            )
        except WebDriverException as e:
            raise PageInspectionError(f"Screenshot capture failed: {e.msg or e}") from e

        return shot["data"]

    def close(self) -> None:
        """Quit the browser. Only the first call does anything."""
        if self._closed:
            return
        self._closed = True

        if self._driver is None:
            return
        try:
            self._driver.quit()
            logger.info("Browser session closed")
        except Exception as e:
            logger.warning(f"Error while closing browser session: {e}")
        finally:
            self._driver = None

    def __enter__(self) -> "RenderingSession":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    async def __aenter__(self) -> "RenderingSession":
        opening = asyncio.ensure_future(asyncio.to_thread(self.open))
        try:
            return await asyncio.shield(opening)
        except asyncio.CancelledError:
            # The launch thread keeps running; quit the browser once it lands
            opening.add_done_callback(self._close_if_opened)
            raise

    def _close_if_opened(self, opening: "asyncio.Future") -> None:
        if not opening.cancelled() and opening.exception() is None:
            self.close()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        # Shielded so a cancelled request still tears the browser down
        await asyncio.shield(asyncio.to_thread(self.close))
