"""
Test configuration and fixtures for the A11y Scan AI API.

Browsers and the AI client are never started here: Selenium drivers are
MagicMocks driven by the fixtures below and the OpenAI client is replaced
with a mock whose completions are canned JSON strings.
"""

import json
import os
from types import SimpleNamespace
from typing import Generator
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("ENVIRONMENT", "local")

from app.features.scan.dependencies import get_scan_orchestrator
from app.features.scan.services.orchestration.scan_orchestrator import ScanOrchestrator
from app.features.scan.services.remediation.remediation_generator import RemediationGenerator
from app.platform.config import Settings

FAKE_SCREENSHOT = "ZmFrZS1qcGVn"


@pytest.fixture(scope="session")
def test_app():
    """Create FastAPI test application."""
    from app.main import app

    return app


@pytest.fixture(scope="function")
def client(test_app) -> Generator[TestClient, None, None]:
    """
    Create a test client for making HTTP requests.
    Dependency overrides are cleared after each test.
    """
    with TestClient(test_app) as test_client:
        yield test_client
    test_app.dependency_overrides.clear()


@pytest.fixture
def scan_settings() -> Settings:
    """Settings with the settle delay removed so tests run instantly."""
    return Settings(
        ENVIRONMENT="local",
        SETTLE_DELAY_SECONDS=0,
        OPENROUTER_API_KEY="test-key",
    )


@pytest.fixture
def make_driver():
    """
    Factory for a mock WebDriver.

    `anchors` feeds the link-collection script; CDP calls return a layout
    size and a fixed screenshot payload.
    """

    def _make(anchors=None, origin="https://example.com"):
        driver = MagicMock()

        def cdp(command, params):
            if command == "Page.getLayoutMetrics":
                return {"cssContentSize": {"width": 1280, "height": 2400}}
            if command == "Page.captureScreenshot":
                return {"data": FAKE_SCREENSHOT}
            return {}

        driver.execute_cdp_cmd.side_effect = cdp
        driver.execute_script.return_value = {"origin": origin, "anchors": anchors or []}
        return driver

    return _make


@pytest.fixture
def make_provisioner():
    """Provisioner double handing out a prepared driver."""

    def _make(driver):
        provisioner = MagicMock()
        provisioner.name = "fake"
        provisioner.acquire.return_value = driver
        return provisioner

    return _make


def completion_for(recommendations):
    """Shape of an OpenAI chat completion carrying `recommendations` as JSON."""
    content = json.dumps({"recommendations": recommendations})
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture
def ai_client():
    """OpenAI client double. Answers with one recommendation per violation sent."""
    client = MagicMock()

    def create(**kwargs):
        prompt = kwargs["messages"][1]["content"][0]["text"]
        sent = json.loads(prompt.split(":", 1)[1])
        return completion_for(
            [
                {
                    "ruleId": v["id"],
                    "summary": f"Fails WCAG for {v['id']}",
                    "impact": "Screen readers announce nothing useful.",
                    "codeFix": "<button aria-label=\"Close\">x</button>",
                }
                for v in sent
            ]
        )

    client.chat.completions.create.side_effect = create
    return client


@pytest.fixture
def make_orchestrator(scan_settings, make_provisioner, ai_client):
    """Real orchestrator wired to a mock driver, a stub auditor and the mock AI client."""

    def _make(driver, violations=None):
        auditor = MagicMock()
        auditor.audit.return_value = violations or []
        return ScanOrchestrator(
            scan_settings,
            make_provisioner(driver),
            auditor=auditor,
            remediation=RemediationGenerator(scan_settings, client=ai_client),
        )

    return _make


@pytest.fixture
def override_orchestrator(test_app):
    """Install an orchestrator for the /scan route."""

    def _install(orchestrator):
        test_app.dependency_overrides[get_scan_orchestrator] = lambda: orchestrator
        return orchestrator

    return _install
