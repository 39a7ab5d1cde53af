"""
Scan pipeline errors.

Every failure raised by a pipeline stage is a ScanError. The orchestrator
records the stage the error surfaced in; the HTTP layer turns
InvalidRequestError into a 400 and everything else into the uniform 500
payload.
"""
from typing import Optional


class ScanError(Exception):
    """Base class for all scan pipeline failures."""

    error_class = "ScanError"

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage

    def __str__(self) -> str:
        return self.message


class InvalidRequestError(ScanError):
    error_class = "InvalidRequest"


class BrowserAcquisitionError(ScanError):
    error_class = "BrowserAcquisitionFailure"


class NavigationTimeoutError(ScanError):
    error_class = "NavigationTimeout"


class NavigationError(ScanError):
    error_class = "NavigationFailure"


class AuditEngineError(ScanError):
    error_class = "AuditEngineFailure"


class PageInspectionError(ScanError):
    """Screenshot capture or link extraction failed on the live page."""

    error_class = "PageInspectionFailure"


class RemediationServiceError(ScanError):
    error_class = "RemediationServiceFailure"


class AssemblyError(ScanError):
    error_class = "AssemblyFailure"
