"""
Tests for POST /api/v1/scan (and the /api/scan alias used by the web client).
"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from selenium.common.exceptions import TimeoutException

from app.features.scan.exceptions import AuditEngineError
from app.features.scan.schemas.scan import Violation

SCAN_PATHS = ["/api/v1/scan", "/api/scan"]


def violations(count):
    return [
        Violation.model_validate({"id": f"rule-{i}", "help": f"Rule {i}", "nodes": [{"html": "<img>"}]})
        for i in range(count)
    ]


class TestScanEndpoint:
    @pytest.mark.parametrize("path", SCAN_PATHS)
    def test_successful_scan(self, path, client, make_driver, make_orchestrator, override_orchestrator):
        anchors = [{"href": f"https://example.com/p{i}", "text": ""} for i in range(10)]
        driver = make_driver(anchors=anchors)
        override_orchestrator(make_orchestrator(driver, violations=violations(3)))

        response = client.post(path, json={"url": "https://example.com"})

        assert response.status_code == 200
        body = response.json()
        assert len(body["violations"]) == 3
        assert len(body["links"]) == 10
        assert body["links"][0] == {"url": "https://example.com/p0", "name": "p0"}
        assert len(body["aiRecommendations"]) == 3
        for rec in body["aiRecommendations"]:
            assert set(rec) == {"ruleId", "summary", "impact", "codeFix"}
            assert all(isinstance(v, str) for v in rec.values())
        assert body["screenshot"].startswith("data:image/png;base64,")
        assert "scannedAt" in body

    @pytest.mark.parametrize("payload", [{}, {"url": ""}, {"url": None}, {"url": "  "}])
    def test_missing_url_returns_400_without_browser(
        self, payload, client, make_driver, make_orchestrator, override_orchestrator
    ):
        orchestrator = override_orchestrator(make_orchestrator(make_driver()))

        response = client.post("/api/v1/scan", json=payload)

        assert response.status_code == 400
        assert response.json() == {"error": "URL is required"}
        orchestrator.provisioner.acquire.assert_not_called()

    def test_no_body_returns_400(self, client, make_driver, make_orchestrator, override_orchestrator):
        orchestrator = override_orchestrator(make_orchestrator(make_driver()))

        response = client.post("/api/v1/scan")

        assert response.status_code == 400
        assert response.json() == {"error": "URL is required"}
        orchestrator.provisioner.acquire.assert_not_called()

    def test_malformed_body_returns_400(self, client, make_driver, make_orchestrator, override_orchestrator):
        override_orchestrator(make_orchestrator(make_driver()))

        response = client.post("/api/v1/scan", json={"url": 42})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request body"

    def test_navigation_timeout_returns_uniform_500(
        self, client, make_driver, make_orchestrator, override_orchestrator
    ):
        driver = make_driver()
        driver.get.side_effect = TimeoutException("timeout")
        override_orchestrator(make_orchestrator(driver))

        response = client.post("/api/v1/scan", json={"url": "https://slow.example.com"})

        assert response.status_code == 500
        body = response.json()
        assert set(body) == {"error", "details"}
        assert body["error"] == "Failed to analyze URL"
        assert "timeout" in body["details"].lower()
        driver.quit.assert_called_once()

    def test_ai_failure_returns_500_not_partial(
        self, client, make_driver, make_orchestrator, override_orchestrator, ai_client
    ):
        ai_client.chat.completions.create.side_effect = None
        ai_client.chat.completions.create.return_value = MagicMock(
            choices=[MagicMock(message=MagicMock(content='{"recommendations": [{"ruleId": "rule-0"}]}'))]
        )
        override_orchestrator(make_orchestrator(make_driver(), violations=violations(1)))

        response = client.post("/api/v1/scan", json={"url": "https://example.com"})

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Failed to analyze URL"
        assert "violations" not in body

    def test_scan_error_maps_to_500(self, client, override_orchestrator):
        orchestrator = MagicMock()
        orchestrator.run_scan = AsyncMock(side_effect=AuditEngineError("axe.run failed: boom"))
        override_orchestrator(orchestrator)

        response = client.post("/api/v1/scan", json={"url": "https://example.com"})

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to analyze URL", "details": "axe.run failed: boom"}

    def test_unexpected_error_maps_to_500(self, client, override_orchestrator):
        orchestrator = MagicMock()
        orchestrator.run_scan = AsyncMock(side_effect=RuntimeError("kaboom"))
        override_orchestrator(orchestrator)

        response = client.post("/api/v1/scan", json={"url": "https://example.com"})

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to analyze URL", "details": "kaboom"}
