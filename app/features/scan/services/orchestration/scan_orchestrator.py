import asyncio
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import ValidationError

from app.features.scan.exceptions import (
    AssemblyError,
    AuditEngineError,
    InvalidRequestError,
    NavigationError,
    PageInspectionError,
    RemediationServiceError,
    ScanError,
)
from app.features.scan.schemas.scan import ScanResult
from app.features.scan.services.audit.axe_auditor import AccessibilityAuditor
from app.features.scan.services.discovery.link_discovery import LinkDiscoveryService
from app.features.scan.services.remediation.remediation_generator import RemediationGenerator
from app.features.scan.services.rendering.provisioners import BrowserProvisioner
from app.features.scan.services.rendering.session import RenderingSession
from app.platform.config import Settings
from app.platform.logger import get_logger
from app.platform.utils.url_validator import normalize_url

logger = get_logger(__name__)

SCREENSHOT_DATA_URI_PREFIX = "data:image/png;base64,"


class ScanStage(str, Enum):
    IDLE = "idle"
    ACQUIRING = "acquiring"
    NAVIGATING = "navigating"
    AUDITING = "auditing"
    CAPTURING = "capturing"
    DISCOVERING = "discovering"
    GENERATING = "generating"
    ASSEMBLING = "assembling"
    ASSEMBLED = "assembled"
    FAILED = "failed"


# Error raised when a stage fails with something that isn't already a ScanError
STAGE_ERRORS = {
    ScanStage.NAVIGATING: NavigationError,
    ScanStage.AUDITING: AuditEngineError,
    ScanStage.CAPTURING: PageInspectionError,
    ScanStage.DISCOVERING: PageInspectionError,
    ScanStage.GENERATING: RemediationServiceError,
}


class ScanRun:
    """Per-scan stage tracker. One instance per request, never shared."""

    def __init__(self, url: str):
        self.url = url
        self.stage = ScanStage.IDLE
        self.started = time.monotonic()

    def advance(self, stage: ScanStage) -> None:
        logger.info(f"[{self.url}] {self.stage.value} -> {stage.value}")
        self.stage = stage

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started


class ScanOrchestrator:
    """
    Runs one accessibility scan end to end.

    Stages run strictly in sequence:
    acquire browser -> navigate -> settle -> audit -> screenshot -> links
    -> release browser -> AI remediation -> assemble result.

    The browser is released on every exit path. Any failure ends the scan;
    there are no partial results and no retries.
    """

    def __init__(
        self,
        settings: Settings,
        provisioner: BrowserProvisioner,
        auditor: Optional[AccessibilityAuditor] = None,
        link_discovery: Optional[LinkDiscoveryService] = None,
        remediation: Optional[RemediationGenerator] = None,
    ):
        self.settings = settings
        self.provisioner = provisioner
        self.auditor = auditor or AccessibilityAuditor(settings)
        self.link_discovery = link_discovery or LinkDiscoveryService(
            max_links=settings.MAX_LINKS,
            max_label_length=settings.MAX_LINK_LABEL_LENGTH,
        )
        self.remediation = remediation or RemediationGenerator(settings)

    def new_session(self) -> RenderingSession:
        return RenderingSession(self.provisioner, self.settings)

    async def run_scan(self, url: Optional[str]) -> ScanResult:
        """
        Scan a single page.

        Raises:
            InvalidRequestError: If `url` is missing or blank (no browser started)
            ScanError: Any other pipeline failure, tagged with its stage
        """
        if not url or not url.strip():
            raise InvalidRequestError("URL is required", stage=ScanStage.IDLE.value)

        target, _ = normalize_url(url)
        run = ScanRun(target)

        try:
            result = await self._execute(run)
        except ScanError as e:
            failed_at = e.stage or run.stage.value
            e.stage = failed_at
            run.advance(ScanStage.FAILED)
            logger.error(
                f"Scan of {target} failed at {failed_at} after {run.elapsed:.1f}s "
                f"[{e.error_class}]: {e.message}"
            )
            raise

        run.advance(ScanStage.ASSEMBLED)
        if run.elapsed > self.settings.SCAN_TIME_BUDGET_SECONDS:
            logger.warning(
                f"Scan of {target} took {run.elapsed:.1f}s, over the "
                f"{self.settings.SCAN_TIME_BUDGET_SECONDS}s budget"
            )
        else:
            logger.info(f"Scan of {target} completed in {run.elapsed:.1f}s")
        return result

    async def _execute(self, run: ScanRun) -> ScanResult:
        run.advance(ScanStage.ACQUIRING)
        async with self.new_session() as session:
            run.advance(ScanStage.NAVIGATING)
            await self._stage(run, asyncio.to_thread(session.navigate, run.url))
            await session.settle()

            run.advance(ScanStage.AUDITING)
            violations = await self._stage(
                run, asyncio.to_thread(self.auditor.audit, session.driver)
            )

            run.advance(ScanStage.CAPTURING)
            screenshot = await self._stage(run, asyncio.to_thread(session.capture_screenshot))

            run.advance(ScanStage.DISCOVERING)
            links = await self._stage(
                run, asyncio.to_thread(self.link_discovery.discover, session.driver)
            )

        run.advance(ScanStage.GENERATING)
        if violations:
            recommendations = await self._stage(
                run, asyncio.to_thread(self.remediation.generate, violations, screenshot)
            )
        else:
            logger.info(f"[{run.url}] no violations, skipping AI remediation")
            recommendations = []

        run.advance(ScanStage.ASSEMBLING)
        try:
            return ScanResult(
                violations=violations,
                ai_recommendations=recommendations,
                screenshot=f"{SCREENSHOT_DATA_URI_PREFIX}{screenshot}",
                links=links,
                scanned_at=datetime.now(timezone.utc),
            )
        except ValidationError as e:
            raise AssemblyError(f"Could not assemble scan result: {e}", stage=run.stage.value) from e

    async def _stage(self, run: ScanRun, work):
        try:
            return await work
        except ScanError as e:
            e.stage = e.stage or run.stage.value
            raise
        except Exception as e:
            error_cls = STAGE_ERRORS.get(run.stage, ScanError)
            raise error_cls(str(e) or e.__class__.__name__, stage=run.stage.value) from e
