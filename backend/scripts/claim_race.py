"""Smoke test for concurrent ride claims against a running server.

Prerequisites:
1. `python manage.py runserver` must be running against the same database.
2. OSRM_BASE_URL must point at a reachable OSRM instance.

Run from the backend/ directory:
    python scripts/claim_race.py [number_of_drivers]

The script will:
- Ensure a demo rider and N demo drivers exist.
- Log everyone in via the REST API.
- Create one ride as the rider.
- Fire N simultaneous claims and check that exactly one driver won.
"""

from __future__ import annotations

import os
import sys
import threading
from collections import Counter
from pathlib import Path
from typing import Dict, List

import django
import requests

# Ensure the Django project root (backend/) is on sys.path so imports work
BASE_DIR = Path(__file__).resolve().parent.parent
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "app_backend.settings")
django.setup()

from accounts.models import User  # noqa: E402

BASE_URL = os.environ.get("RIDE_BASE_URL", "http://127.0.0.1:8000")
API_ROOT = f"{BASE_URL}/api"
RIDES_API = f"{API_ROOT}/rides"
AUTH_API = f"{API_ROOT}/auth"
PASSWORD = "demo1234"

RIDE_BODY = {
    "origin_latitude": 28.6139,
    "origin_longitude": 77.2090,
    "destination_latitude": 28.6129,
    "destination_longitude": 77.2295,
}


def ensure_user(username: str, role: str) -> User:
    user, created = User.objects.get_or_create(
        username=username,
        defaults={"role": role, "email": f"{username}@example.com"},
    )
    if created:
        user.set_password(PASSWORD)
        user.save()
    return user


def login(username: str) -> requests.Session:
    session = requests.Session()
    resp = session.post(
        f"{AUTH_API}/login/",
        json={"username": username, "password": PASSWORD},
        timeout=10,
    )
    resp.raise_for_status()
    token = resp.json()["tokens"]["access"]
    session.headers.update({"Authorization": f"Bearer {token}"})
    return session


def create_ride(rider_session: requests.Session) -> int:
    resp = rider_session.post(f"{RIDES_API}/", json=RIDE_BODY, timeout=30)
    resp.raise_for_status()
    data = resp.json()
    print(f"[HTTP] Ride #{data['id']} created, status={data['status']}")
    return data["id"]


def race(sessions: List[requests.Session], ride_id: int) -> List[Dict]:
    barrier = threading.Barrier(len(sessions))
    results: List[Dict] = []
    lock = threading.Lock()

    def claim(index: int, session: requests.Session) -> None:
        barrier.wait()
        resp = session.post(f"{RIDES_API}/{ride_id}/claim/", timeout=30)
        with lock:
            results.append({"driver": index, "code": resp.status_code, "body": resp.json()})

    threads = [
        threading.Thread(target=claim, args=(i, s), daemon=True)
        for i, s in enumerate(sessions)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return results


def main() -> None:
    drivers = int(sys.argv[1]) if len(sys.argv) > 1 else 8

    ensure_user("race_demo_rider", User.Role.RIDER)
    driver_names = [f"race_demo_driver_{i}" for i in range(drivers)]
    for name in driver_names:
        ensure_user(name, User.Role.DRIVER)

    print(f"[HTTP] Logging in rider + {drivers} drivers ...")
    rider_session = login("race_demo_rider")
    driver_sessions = [login(name) for name in driver_names]

    ride_id = create_ride(rider_session)
    results = race(driver_sessions, ride_id)

    codes = Counter(r["code"] for r in results)
    print(f"[RESULT] Status codes: {dict(codes)}")

    status_resp = rider_session.get(f"{RIDES_API}/{ride_id}/status/", timeout=10)
    status_resp.raise_for_status()
    print(f"[RESULT] Final status: {status_resp.json()['status']}")

    if codes.get(200) != 1 or codes.get(409, 0) != drivers - 1:
        raise SystemExit("Expected exactly one successful claim and the rest rejected with 409")

    print("[DONE] Claim race check completed.")


if __name__ == "__main__":
    main()
