from functools import lru_cache

from app.features.scan.services.orchestration.scan_orchestrator import ScanOrchestrator
from app.features.scan.services.rendering.provisioners import get_browser_provisioner
from app.platform.config import settings


@lru_cache
def get_scan_orchestrator() -> ScanOrchestrator:
    """Built once per process; the browser strategy is fixed at startup."""
    return ScanOrchestrator(settings, get_browser_provisioner(settings))
