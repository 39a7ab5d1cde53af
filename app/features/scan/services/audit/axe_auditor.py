import threading
from typing import List, Optional

import httpx
from pydantic import ValidationError
from selenium import webdriver
from selenium.common.exceptions import WebDriverException

from app.features.scan.exceptions import AuditEngineError
from app.features.scan.schemas.scan import Violation
from app.platform.config import Settings
from app.platform.logger import get_logger

logger = get_logger(__name__)

RUN_AXE_SCRIPT = """
const done = arguments[arguments.length - 1];
if (!window.axe || !window.axe.run) {
    return done({error: 'axe not injected'});
}
window.axe.run(document)
    .then(results => done({ok: true, violations: results.violations}))
    .catch(err => done({error: (err && err.message) || String(err)}));
"""


class AxeScriptLoader:
    """Fetches the axe-core bundle once and keeps it in memory."""

    def __init__(self, script_url: str):
        self.script_url = script_url
        self._source: Optional[str] = None
        self._lock = threading.Lock()

    def load(self) -> str:
        with self._lock:
            if self._source is None:
                logger.info(f"Fetching axe-core from {self.script_url}")
                response = httpx.get(self.script_url, timeout=20.0, follow_redirects=True)
                response.raise_for_status()
                self._source = response.text
            return self._source


class AccessibilityAuditor:
    """
    Runs axe-core against the live page and returns every violation as-is.

    Severity and categorisation stay inside axe-core; nothing is filtered
    or re-ranked here.
    """

    def __init__(self, settings: Settings, script_loader: Optional[AxeScriptLoader] = None):
        self.settings = settings
        self.script_loader = script_loader or AxeScriptLoader(settings.AXE_SCRIPT_URL)

    def audit(self, driver: webdriver.Chrome) -> List[Violation]:
        try:
            axe_source = self.script_loader.load()
        except httpx.HTTPError as e:
            raise AuditEngineError(f"Could not load axe-core: {e}") from e

        try:
            driver.execute_script(axe_source)
            result = driver.execute_async_script(RUN_AXE_SCRIPT)
        except WebDriverException as e:
            raise AuditEngineError(f"axe-core run failed: {e.msg or e}") from e

        if not isinstance(result, dict):
            raise AuditEngineError(f"Unexpected axe-core result: {result!r}")
        if result.get("error"):
            raise AuditEngineError(f"axe.run failed: {result['error']}")

        try:
            violations = [Violation.model_validate(v) for v in result.get("violations") or []]
        except ValidationError as e:
            raise AuditEngineError(f"Malformed axe-core violations: {e}") from e

        logger.info(f"axe-core reported {len(violations)} violation(s)")
        return violations
