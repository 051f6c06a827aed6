#!/usr/bin/env python3
"""
Smoke check for a deployed Marks API.
Run after deployment to verify health and the bookmark round trip.

Usage:
    python scripts/smoke_check.py [base_url] [user_id]

    base_url: Optional, defaults to http://127.0.0.1:8888
    user_id:  Optional owner id sent in X-User-Id, defaults to "smoke-check"

Examples:
    python scripts/smoke_check.py
    python scripts/smoke_check.py http://prod-server.com:8000 ops-user
"""

import sys
import time
from datetime import datetime

import requests


DEFAULT_BASE_URL = "http://127.0.0.1:8888"
DEFAULT_USER_ID = "smoke-check"
TIMEOUT_SECONDS = 10


def check(session: requests.Session, name: str, method: str, url: str,
          expected_status: int = 200, **kwargs) -> requests.Response | None:
    """Call one endpoint and print the outcome."""
    try:
        start = time.time()
        response = session.request(method, url, timeout=TIMEOUT_SECONDS, **kwargs)
        elapsed = (time.time() - start) * 1000
    except requests.exceptions.ConnectionError:
        print(f"  ❌ {name}: Connection refused")
        return None
    except requests.exceptions.Timeout:
        print(f"  ❌ {name}: Timeout after {TIMEOUT_SECONDS}s")
        return None

    if response.status_code == expected_status:
        print(f"  ✅ {name}: {response.status_code} ({elapsed:.0f}ms)")
        return response
    print(f"  ❌ {name}: Expected {expected_status}, got {response.status_code}")
    return None


def run_checks(base_url: str, user_id: str) -> bool:
    print(f"\n{'='*60}")
    print("Marks smoke check")
    print(f"Base URL: {base_url}")
    print(f"Time: {datetime.now().isoformat()}")
    print(f"{'='*60}\n")

    session = requests.Session()
    session.headers["X-User-Id"] = user_id
    results = []

    print("Health Endpoints:")
    results.append(check(session, "Liveness", "GET", f"{base_url}/health/live") is not None)
    results.append(check(session, "Readiness", "GET", f"{base_url}/health/ready") is not None)
    results.append(check(session, "Full Health", "GET", f"{base_url}/health") is not None)
    print()

    print("Bookmarks API:")
    results.append(check(session, "List", "GET", f"{base_url}/api/bookmarks") is not None)
    created = check(
        session, "Create", "POST", f"{base_url}/api/bookmarks", expected_status=201,
        json={"url": "example.com", "title": f"smoke {datetime.now().isoformat()}"},
    )
    results.append(created is not None)
    if created is not None:
        bookmark_id = created.json().get("id", "")
        results.append(check(
            session, "Delete", "DELETE", f"{base_url}/api/bookmarks/{bookmark_id}",
            expected_status=204,
        ) is not None)
    results.append(check(
        session, "Reject invalid URL", "POST", f"{base_url}/api/bookmarks", expected_status=400,
        json={"url": "not a url", "title": "x"},
    ) is not None)
    print()

    passed = sum(results)
    total = len(results)
    print(f"{'='*60}")
    print(f"Results: {passed}/{total} passed")
    if passed == total:
        print("✅ All checks passed!")
        return True
    print(f"❌ {total - passed} check(s) failed")
    return False


def main():
    base_url = (sys.argv[1] if len(sys.argv) > 1 else DEFAULT_BASE_URL).rstrip("/")
    user_id = sys.argv[2] if len(sys.argv) > 2 else DEFAULT_USER_ID
    sys.exit(0 if run_checks(base_url, user_id) else 1)


if __name__ == "__main__":
    main()
