from pathlib import Path
from typing import List, Literal, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── App ─────────────────────────────────────
    APP_NAME: str = "A11y Scan AI"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    DEBUG: bool = True
    CORS_ORIGINS: List[str] = ["*"]

    # ── AI remediation (OpenRouter) ─────────────
    OPENROUTER_API_KEY: Optional[str] = None
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    AI_MODEL: str = "google/gemini-2.0-flash-001"
    AI_TEMPERATURE: float = 0.2
    AI_TIMEOUT_SECONDS: float = 30.0

    # ── Browser ─────────────────────────────────
    CHROMEDRIVER_PATH: Optional[str] = None
    CHROMIUM_VERSION: str = "131.0.6778.85"
    CHROMIUM_PACK_URL: str = (
        "https://storage.googleapis.com/chrome-for-testing-public/"
        "131.0.6778.85/linux64/chrome-headless-shell-linux64.zip"
    )
    BROWSER_CACHE_DIR: str = "/tmp/a11y-scan-chromium"

    VIEWPORT_WIDTH: int = 1280
    VIEWPORT_HEIGHT: int = 800
    NAVIGATION_TIMEOUT_SECONDS: int = 45
    SETTLE_DELAY_SECONDS: float = 5.0
    SCREENSHOT_QUALITY: int = 50

    # ── Audit engine ────────────────────────────
    AXE_SCRIPT_URL: str = "https://cdnjs.cloudflare.com/ajax/libs/axe-core/4.10.2/axe.min.js"
    AUDIT_SCRIPT_TIMEOUT_SECONDS: int = 30

    # ── Scan limits ─────────────────────────────
    SCAN_TIME_BUDGET_SECONDS: int = 60
    MAX_LINKS: int = 50
    MAX_LINK_LABEL_LENGTH: int = 30
    MAX_SNIPPETS_PER_VIOLATION: int = 3

    class Config:
        env_file = str(Path(__file__).parent.parent.parent / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
