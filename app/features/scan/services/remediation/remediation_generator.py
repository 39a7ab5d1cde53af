import json
from typing import List, Optional

import httpx
from openai import OpenAI, OpenAIError
from pydantic import ValidationError

from app.features.scan.exceptions import RemediationServiceError
from app.features.scan.schemas.scan import (
    Recommendation,
    RecommendationList,
    Violation,
    ViolationSummary,
)
from app.platform.config import Settings
from app.platform.logger import get_logger

logger = get_logger(__name__)

SYSTEM_PROMPT = """You are a Senior Accessibility Engineer and WCAG 2.2 Specialist.

INPUTS:
1. A screenshot of the webpage.
2. A JSON list of axe-core violations detected in the code.

YOUR TASK:
For each violation, analyze the visual context (screenshot) and the code (JSON).
Return exactly one recommendation per violation rule.

REQUIREMENTS:
- ruleId: the axe-core rule id, copied unchanged.
- summary: cite the specific WCAG success criterion (e.g. "Contrast failure, WCAG 1.4.3").
- impact: explain why it matters for real users and how assistive technology
  (NVDA, JAWS, VoiceOver, ZoomText) behaves on this element.
- codeFix: the concrete HTML/CSS (or Tailwind) change that fixes the issue.

If the screenshot shows that a finding is a false positive (e.g. a contrast
violation on text that is not actually visible), say so in the summary.
"""

RECOMMENDATION_SCHEMA = {
    "type": "object",
    "properties": {
        "recommendations": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "ruleId": {
                        "type": "string",
                        "description": "The axe-core rule identifier.",
                    },
                    "summary": {
                        "type": "string",
                        "description": "Professional summary citing WCAG success criteria.",
                    },
                    "impact": {
                        "type": "string",
                        "description": "How assistive technologies fail on this element.",
                    },
                    "codeFix": {
                        "type": "string",
                        "description": "Semantic code snippet fixing the issue.",
                    },
                },
                "required": ["ruleId", "summary", "impact", "codeFix"],
                "additionalProperties": False,
            },
        }
    },
    "required": ["recommendations"],
    "additionalProperties": False,
}


def parse_recommendations(response_text: str) -> List[Recommendation]:
    """
    Validate the raw AI response against the recommendation schema.

    Anything that is not valid JSON of exactly the expected shape is a hard
    failure. Nothing is repaired or coerced.

    Raises:
        RemediationServiceError: If the response is empty, not JSON, or off-schema
    """
    if not response_text or not response_text.strip():
        raise RemediationServiceError("AI service returned an empty response")

    try:
        parsed = RecommendationList.model_validate_json(response_text)
    except ValidationError as e:
        raise RemediationServiceError(
            f"AI response does not match the recommendation schema: {e}"
        ) from e

    return parsed.recommendations


def build_ai_client(settings: Settings, http_client: Optional[httpx.Client] = None) -> OpenAI:
    """OpenRouter client with library retries off and a bounded request timeout."""
    if not settings.OPENROUTER_API_KEY:
        raise RemediationServiceError("OPENROUTER_API_KEY is not configured")
    return OpenAI(
        base_url=settings.OPENROUTER_BASE_URL,
        api_key=settings.OPENROUTER_API_KEY,
        max_retries=0,
        timeout=settings.AI_TIMEOUT_SECONDS,
        http_client=http_client,
    )


class RemediationGenerator:
    """
    Turns axe-core violations plus a screenshot into AI remediation records.

    Calls go through OpenRouter with the OpenAI client. There is no retry:
    any service or schema failure is raised to the caller.
    """

    def __init__(self, settings: Settings, client: Optional[OpenAI] = None):
        self.settings = settings
        self._client = client

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = build_ai_client(self.settings)
        return self._client

    def summarize(self, violations: List[Violation]) -> List[ViolationSummary]:
        limit = self.settings.MAX_SNIPPETS_PER_VIOLATION
        return [
            ViolationSummary(
                id=v.id,
                help=v.help,
                nodes=[node.html for node in v.nodes][:limit],
            )
            for v in violations
        ]

    def build_messages(self, violations: List[Violation], screenshot_b64: str) -> list:
        summary = [s.model_dump() for s in self.summarize(violations)]
        prompt = f"Analyze these violations: {json.dumps(summary)}"
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {
                        "type": "image_url",
                        "image_url": {"url": f"data:image/jpeg;base64,{screenshot_b64}"},
                    },
                ],
            },
        ]

    def generate(self, violations: List[Violation], screenshot_b64: str) -> List[Recommendation]:
        """
        Args:
            violations: Full axe-core violations for the page
            screenshot_b64: Raw base64 screenshot, no data-URI prefix

        Returns:
            One Recommendation per violation rule, or [] when there are none
        """
        if not violations:
            return []

        messages = self.build_messages(violations, screenshot_b64)
        logger.info(
            f"Requesting remediation from {self.settings.AI_MODEL}: "
            f"{len(violations)} violation(s), prompt {len(messages[1]['content'][0]['text'])} chars, "
            f"image {len(screenshot_b64)} chars"
        )

        try:
            completion = self.client.chat.completions.create(
                extra_headers={"X-Title": self.settings.APP_NAME},
                model=self.settings.AI_MODEL,
                messages=messages,
                temperature=self.settings.AI_TEMPERATURE,
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": "accessibility_recommendations",
                        "strict": True,
                        "schema": RECOMMENDATION_SCHEMA,
                    },
                },
            )
        except OpenAIError as e:
            raise RemediationServiceError(str(e)) from e

        if not completion.choices:
            raise RemediationServiceError("AI service returned no choices")

        response_text = completion.choices[0].message.content or ""
        recommendations = parse_recommendations(response_text)

        sent_ids = sorted(v.id for v in violations)
        received_ids = sorted(r.ruleId for r in recommendations)
        if received_ids != sent_ids:
            raise RemediationServiceError(
                f"AI response does not cover each violated rule once: "
                f"sent {sent_ids}, received {received_ids}"
            )

        logger.info(f"Received {len(recommendations)} recommendation(s)")
        return recommendations
