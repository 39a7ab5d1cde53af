"""
Scan Schemas

Request and response models for the accessibility scan endpoint.
"""
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr


class ScanRequest(BaseModel):
    """Request to scan a single page. `url` is validated by the orchestrator."""
    url: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "url": "https://example.com"
            }
        }


# ============================================================================
# Audit engine output
# ============================================================================

class ViolationNode(BaseModel):
    """One DOM element flagged by a rule. Extra axe-core fields are kept."""
    model_config = ConfigDict(extra="allow", frozen=True)

    html: str = ""
    target: List[Any] = Field(default_factory=list)
    failureSummary: Optional[str] = None


class Violation(BaseModel):
    """A single axe-core rule violation with its supporting DOM evidence."""
    model_config = ConfigDict(extra="allow", frozen=True)

    id: str
    help: str = ""
    impact: Optional[str] = None
    description: Optional[str] = None
    helpUrl: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    nodes: List[ViolationNode] = Field(default_factory=list)


class ViolationSummary(BaseModel):
    """Reduced violation forwarded to the AI service."""
    id: str
    help: str
    nodes: List[str]


# ============================================================================
# Links and remediation
# ============================================================================

class Link(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    name: str


class Recommendation(BaseModel):
    """AI remediation for one violation category. Exactly four string fields."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    ruleId: StrictStr
    summary: StrictStr
    impact: StrictStr
    codeFix: StrictStr


class RecommendationList(BaseModel):
    """Envelope the AI service must return."""
    model_config = ConfigDict(extra="forbid")

    recommendations: List[Recommendation]


# ============================================================================
# Final result
# ============================================================================

class ScanResult(BaseModel):
    """Consolidated scan output, assembled once by the orchestrator."""
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "violations": [],
                "aiRecommendations": [],
                "screenshot": "data:image/png;base64,/9j/4AAQSkZJRg...",
                "links": [{"url": "https://example.com/about", "name": "About"}],
                "scannedAt": "2026-01-01T12:00:00Z",
            }
        },
    )

    violations: List[Violation]
    ai_recommendations: List[Recommendation] = Field(alias="aiRecommendations")
    screenshot: str
    links: List[Link]
    scanned_at: datetime = Field(alias="scannedAt")


class ScanErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None
