#!/usr/bin/env python3
"""
Smoke test against a running server.

Usage:
    python scripts/smoke_scan.py [url] [--api http://localhost:8000/api/v1/scan]
"""
import argparse
import sys

import httpx

DEFAULT_TARGET = "https://dequeuniversity.com/demo/mars/"
DEFAULT_API = "http://localhost:8000/api/v1/scan"


def main() -> int:
    parser = argparse.ArgumentParser(description="Run one scan against a local server")
    parser.add_argument("url", nargs="?", default=DEFAULT_TARGET)
    parser.add_argument("--api", default=DEFAULT_API)
    args = parser.parse_args()

    print(f"Starting scan of {args.url} ...")
    try:
        # Navigation, settle delay and AI call together can take a minute
        response = httpx.post(args.api, json={"url": args.url}, timeout=120.0)
    except httpx.HTTPError as e:
        print(f"Request failed: {e}")
        return 1

    if response.status_code != 200:
        print(f"Scan failed with status: {response.status_code}")
        print(f"Response: {response.text}")
        return 1

    data = response.json()
    print("Scan successful!")
    print(f"Violations count: {len(data.get('violations', []))}")
    print(f"AI Recommendations count: {len(data.get('aiRecommendations', []))}")
    print(f"Links count: {len(data.get('links', []))}")
    print(f"Screenshot length: {len(data.get('screenshot', ''))}")
    for rec in data.get("aiRecommendations", [])[:3]:
        print(f"- {rec['ruleId']}: {rec['summary']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
