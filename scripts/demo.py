from __future__ import annotations

import os
import time

import requests
from rich import print

BASE = os.getenv("API_BASE_URL", "http://127.0.0.1:8000")
GATEWAY_SECRET = os.getenv("SSO_GATEWAY_SECRET")

def _headers(jwt: str | None) -> dict[str, str]:
    headers = {"content-type": "application/json"}
    if jwt:
        headers["authorization"] = f"bearer {jwt}"
    return headers

def post(path: str, *, jwt: str | None = None, json: dict | None = None) -> requests.Response:
    return requests.post(f"{BASE}{path}", headers=_headers(jwt), json=json, timeout=10)

def patch(path: str, *, jwt: str | None = None, json: dict | None = None) -> requests.Response:
    return requests.patch(f"{BASE}{path}", headers=_headers(jwt), json=json, timeout=10)

def get(path: str, *, jwt: str | None = None, params: dict | None = None) -> requests.Response:
    return requests.get(f"{BASE}{path}", headers=_headers(jwt), params=params, timeout=10)

def login(name: str) -> str:
    # stands in for the sso gateway posting a verified profile
    headers = _headers(None)
    if GATEWAY_SECRET:
        headers["x-sso-gateway-secret"] = GATEWAY_SECRET
    r = requests.post(
        f"{BASE}/auth/sso/google/callback",
        headers=headers,
        json={"provider_id": f"demo-{name}", "email": f"{name}@example.com", "username": name},
        timeout=10,
    )
    r.raise_for_status()
    return r.json()["access_token"]

def wait_ready(timeout_s: float = 30.0) -> None:
    deadline = time.time() + timeout_s
    last_err: Exception | None = None

    while time.time() < deadline:
        try:
            r = get("/ready")
            if r.status_code == 200:
                return
        except requests.RequestException as e:
            last_err = e
        time.sleep(0.5)

    if last_err:
        raise RuntimeError(f"api not ready after {timeout_s}s (last error: {last_err})")
    raise RuntimeError(f"api not ready after {timeout_s}s")

def main() -> None:
    print("[bold]demo: sso -> org -> join code -> team -> task -> status -> activity[/bold]")

    wait_ready()
    print("[green]ready ok[/green]")

    admin_jwt = login("demo_admin")
    member_jwt = login("demo_member")
    print("users authed")

    r = post("/orgs", jwt=admin_jwt, json={"name": f"demo org {int(time.time())}"})
    r.raise_for_status()
    org_id = r.json()["id"]
    print("created org:", org_id)

    r = post(f"/orgs/{org_id}/join-codes", jwt=admin_jwt, json={"max_uses": 1})
    r.raise_for_status()
    code = r.json()["code"]
    post("/orgs/join", jwt=member_jwt, json={"code": code}).raise_for_status()
    print("member joined with code:", code)

    r = post(f"/orgs/{org_id}/teams", jwt=admin_jwt, json={"name": "demo team"})
    r.raise_for_status()
    team_id = r.json()["id"]
    print("created team:", team_id)

    member_id = get("/me", jwt=member_jwt).json()["id"]
    post(f"/teams/{team_id}/members", jwt=admin_jwt, json={"user_id": member_id}).raise_for_status()

    r = post(f"/teams/{team_id}/tasks", jwt=admin_jwt, json={"title": "demo task", "priority": "HIGH"})
    r.raise_for_status()
    task_id = r.json()["id"]
    post(f"/tasks/{task_id}/assignees", jwt=admin_jwt, json={"user_id": member_id}).raise_for_status()
    print("created + assigned task:", task_id)

    # assignee moves their own task along
    patch(f"/tasks/{task_id}", jwt=member_jwt, json={"status": "IN_PROGRESS"}).raise_for_status()
    patch(f"/tasks/{task_id}", jwt=member_jwt, json={"status": "DONE"}).raise_for_status()

    r = get(f"/teams/{team_id}/activity", jwt=admin_jwt)
    r.raise_for_status()
    for entry in r.json():
        print(f"  {entry['changed_by']['handle']}: {entry['old_status']} -> {entry['new_status']}")
    print("[bold green]demo complete[/bold green]")

if __name__ == "__main__":
    main()
