from typing import Optional

from fastapi import APIRouter, Depends, status

from app.features.scan.dependencies import get_scan_orchestrator
from app.features.scan.exceptions import ScanError
from app.features.scan.schemas.scan import ScanErrorResponse, ScanRequest, ScanResult
from app.features.scan.services.orchestration.scan_orchestrator import ScanOrchestrator
from app.platform.exceptions import scan_error_response
from app.platform.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/scan", tags=["scan"])


@router.post(
    "",
    response_model=ScanResult,
    response_model_by_alias=True,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ScanErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ScanErrorResponse},
    },
)
async def scan_page(
    data: Optional[ScanRequest] = None,
    orchestrator: ScanOrchestrator = Depends(get_scan_orchestrator),
):
    """
    Audit one page for accessibility issues.

    This endpoint:
    - Renders the page in headless Chrome
    - Runs axe-core and captures a full-page screenshot
    - Collects up to 50 same-site links
    - Asks the AI service for one fix per violated rule

    Returns:
        ScanResult on success, {"error", "details"} otherwise
    """
    url = data.url if data else None
    try:
        return await orchestrator.run_scan(url)
    except ScanError as e:
        return scan_error_response(e)
    except Exception as e:
        logger.exception(f"Unexpected scan error for {url}: {e}")
        return scan_error_response(ScanError(str(e) or e.__class__.__name__))
