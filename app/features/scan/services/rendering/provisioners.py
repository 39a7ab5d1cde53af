"""
Browser provisioning strategies.

Two ways of getting a Chrome WebDriver:
- LocalChromeProvisioner: the Chrome installed on a developer machine.
- RemoteChromiumProvisioner: a compressed headless Chromium fetched at
  runtime for constrained production sandboxes.

The strategy is picked once at startup from settings.ENVIRONMENT.
"""
import os
import stat
import threading
import zipfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

import httpx
from selenium import webdriver
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service
from webdriver_manager.chrome import ChromeDriverManager

from app.platform.config import Settings
from app.platform.logger import get_logger

logger = get_logger(__name__)

LOCAL_CHROME_ARGS = [
    "--headless=new",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]

# Flags for single-process Chromium in serverless sandboxes
SERVERLESS_CHROMIUM_ARGS = [
    "--headless=new",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--single-process",
    "--no-zygote",
    "--no-first-run",
    "--hide-scrollbars",
    "--mute-audio",
    "--disable-extensions",
    "--disable-background-networking",
    "--ignore-certificate-errors",
]


class BrowserProvisioner(ABC):
    """Creates a fresh WebDriver for one scan. Drivers are never shared."""

    name = "browser"

    def __init__(self, settings: Settings):
        self.settings = settings

    def build_options(self, args: List[str]) -> Options:
        options = Options()
        for arg in args:
            options.add_argument(arg)
        options.add_argument(
            f"--window-size={self.settings.VIEWPORT_WIDTH},{self.settings.VIEWPORT_HEIGHT}"
        )
        # Navigation returns on DOMContentLoaded
        options.page_load_strategy = "eager"
        return options

    @abstractmethod
    def acquire(self) -> webdriver.Chrome:
        """Launch a browser and return its driver."""


class LocalChromeProvisioner(BrowserProvisioner):
    """Locally installed Chrome with sandboxing relaxed for development."""

    name = "local-chrome"

    def acquire(self) -> webdriver.Chrome:
        chrome_options = self.build_options(LOCAL_CHROME_ARGS)

        if self.settings.CHROMEDRIVER_PATH:
            driver_service = Service(executable_path=self.settings.CHROMEDRIVER_PATH)
            driver = webdriver.Chrome(service=driver_service, options=chrome_options)
        else:
            driver = webdriver.Chrome(options=chrome_options)

        return driver


class RemoteChromiumProvisioner(BrowserProvisioner):
    """
    Headless Chromium downloaded as a compressed archive on first use.

    The archive is unpacked into BROWSER_CACHE_DIR and reused by every later
    scan in the process. A matching chromedriver comes from webdriver-manager.
    """

    name = "remote-chromium"
    BINARY_NAMES = ("chrome-headless-shell", "chrome", "chromium")

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self._lock = threading.Lock()
        self._binary_path: Optional[str] = None
        self._driver_path: Optional[str] = None

    def acquire(self) -> webdriver.Chrome:
        binary_path, driver_path = self._ensure_binaries()

        chrome_options = self.build_options(SERVERLESS_CHROMIUM_ARGS)
        chrome_options.binary_location = binary_path
        chrome_options.accept_insecure_certs = True

        driver_service = Service(executable_path=driver_path)
        return webdriver.Chrome(service=driver_service, options=chrome_options)

    def _ensure_binaries(self):
        with self._lock:
            if self._binary_path is None:
                self._binary_path = self._fetch_browser()
            if self._driver_path is None:
                self._driver_path = ChromeDriverManager(
                    driver_version=self.settings.CHROMIUM_VERSION
                ).install()
            return self._binary_path, self._driver_path

    def _fetch_browser(self) -> str:
        cache_dir = Path(self.settings.BROWSER_CACHE_DIR)
        existing = self._find_binary(cache_dir)
        if existing:
            return existing

        cache_dir.mkdir(parents=True, exist_ok=True)
        archive_path = cache_dir / "chromium-pack.zip"

        logger.info(f"Downloading Chromium pack from {self.settings.CHROMIUM_PACK_URL}")
        with httpx.stream(
            "GET", self.settings.CHROMIUM_PACK_URL, follow_redirects=True, timeout=120.0
        ) as response:
            response.raise_for_status()
            with open(archive_path, "wb") as fh:
                for chunk in response.iter_bytes():
                    fh.write(chunk)

        with zipfile.ZipFile(archive_path) as archive:
            archive.extractall(cache_dir)
        archive_path.unlink()

        binary = self._find_binary(cache_dir)
        if not binary:
            raise FileNotFoundError(f"No Chromium executable found in {cache_dir}")

        mode = os.stat(binary).st_mode
        os.chmod(binary, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        logger.info(f"Chromium unpacked to {binary}")
        return binary

    @classmethod
    def _find_binary(cls, root: Path) -> Optional[str]:
        if not root.exists():
            return None
        for path in root.rglob("*"):
            if path.is_file() and path.name in cls.BINARY_NAMES:
                return str(path)
        return None


def get_browser_provisioner(settings: Settings) -> BrowserProvisioner:
    if settings.ENVIRONMENT == "production":
        provisioner = RemoteChromiumProvisioner(settings)
    else:
        provisioner = LocalChromeProvisioner(settings)
    logger.info(f"Browser provisioner: {provisioner.name} (environment={settings.ENVIRONMENT})")
    return provisioner
