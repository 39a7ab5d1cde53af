#!/usr/bin/env python3
"""
AI connectivity check.

Sends a one-word prompt to each candidate model through OpenRouter and
reports which ones answer for the configured OPENROUTER_API_KEY.

Run from the repository root as a module so the `app` package resolves
(or after `pip install -e .`):

    python -m scripts.check_models [model ...]
"""
import sys

from openai import OpenAIError

from app.features.scan.services.remediation.remediation_generator import build_ai_client
from app.platform.config import settings

CANDIDATES = [
    "google/gemini-2.0-flash-001",
    "google/gemini-2.0-flash-lite-001",
    "google/gemini-2.5-flash",
    "openai/gpt-4o-mini",
]


def check(models):
    key = settings.OPENROUTER_API_KEY
    if not key:
        print("❌ OPENROUTER_API_KEY is not set (env or .env)")
        return 1

    print(f"Checking models for key ending in ...{key[-4:]}")
    client = build_ai_client(settings)

    print("\n--- TESTING CONNECTIVITY ---")
    failures = 0
    for model in models:
        print(f"Testing {model}... ", end="", flush=True)
        try:
            client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": "Hello"}],
                max_tokens=5,
            )
            print("✅ AVAILABLE")
        except OpenAIError as e:
            failures += 1
            print(f"❌ ERROR: {e}")

    return 0 if failures < len(models) else 1


if __name__ == "__main__":
    sys.exit(check(sys.argv[1:] or [settings.AI_MODEL] + [m for m in CANDIDATES if m != settings.AI_MODEL]))
