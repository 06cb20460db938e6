from __future__ import annotations

import os
import time

import requests
from rich import print

BASE = os.getenv("API_BASE_URL", "http://127.0.0.1:8000")

def _headers(jwt: str | None) -> dict[str, str]:
    headers = {"content-type": "application/json"}
    if jwt:
        headers["authorization"] = f"bearer {jwt}"
    return headers

def post(path: str, *, jwt: str | None = None, json: dict | None = None) -> requests.Response:
    return requests.post(f"{BASE}{path}", headers=_headers(jwt), json=json, timeout=10)

def get(path: str, *, jwt: str | None = None, params: dict | None = None) -> requests.Response:
    return requests.get(f"{BASE}{path}", headers=_headers(jwt), params=params, timeout=10)

def data(r: requests.Response):
    r.raise_for_status()
    return r.json()["data"]

def login(email: str) -> str:
    token = data(post("/auth/request-link", json={"email": email}))["token"]
    return data(post("/auth/redeem", json={"token": token}))["access_token"]

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
    print("[bold]demo: create org -> invite -> join -> order -> transfer ownership -> leave[/bold]")

    wait_ready()
    print("[green]ready ok[/green]")

    stamp = int(time.time())
    owner_email = f"owner+{stamp}@example.com"
    manager_email = f"manager+{stamp}@example.com"

    owner_jwt = login(owner_email)
    print("owner authed")

    org = data(post("/organization", jwt=owner_jwt, json={"name": f"demo appraisals {stamp}"}))
    org_id = org["id"]
    print("created organization:", org_id)

    invite = data(post(f"/organization/{org_id}/invite", jwt=owner_jwt, json={"email": manager_email, "role": "manager"}))
    print("invited:", manager_email)
    print("join url:", invite["join_url"])

    preview = data(get(f"/organization/{org_id}/join", params={"token": invite["token"]}))
    print(f"preview: join [cyan]{preview['organization_name']}[/cyan] as {preview['role']}")

    manager_jwt = login(manager_email)
    member = data(post(f"/organization/{org_id}/join", jwt=manager_jwt, json={"token": invite["token"]}))
    print("joined as:", member["role"])

    r = post(f"/organization/{org_id}/join", jwt=manager_jwt, json={"token": invite["token"]})
    print("replayed invite:", r.status_code, r.json()["error"]["code"])

    client = data(post(f"/organization/{org_id}/clients", jwt=manager_jwt, json={"name": "demo lender"}))
    order = data(
        post(
            f"/organization/{org_id}/orders",
            jwt=manager_jwt,
            json={
                "client_id": client["id"],
                "file_number": f"DEMO-{stamp}",
                "base_fee": "450.00",
                "property": {
                    "property_type": "condo",
                    "street": "1 Demo Way",
                    "city": "Springfield",
                    "state": "IL",
                    "zip": "62701",
                },
            },
        )
    )
    print("created order:", order["id"])

    perms = data(get(f"/organization/{org_id}/permissions", jwt=manager_jwt))
    print("manager permissions:", ", ".join(perms["permissions"]))

    transfer = data(
        post(
            f"/organization/{org_id}/transfer-ownership",
            jwt=owner_jwt,
            json={"targetUserId": member["user_id"]},
        )
    )
    print("new owner:", transfer["new_owner"]["user_id"])

    data(post(f"/organization/{org_id}/leave", jwt=owner_jwt))
    print("previous owner left")

    members = data(get(f"/organization/{org_id}/members", jwt=manager_jwt))
    print("members now:", [(m["user_id"], m["role"]) for m in members])
    print("[bold green]demo complete[/bold green]")

if __name__ == "__main__":
    main()
