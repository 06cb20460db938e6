from prizmatrack.models.enums import Role

def auth(jwt: str) -> dict[str, str]:
    return {"authorization": f"bearer {jwt}"}

ORDER = {
    "file_number": "F-100",
    "base_fee": "450.00",
    "property": {
        "property_type": "singleFamily",
        "street": "1 Main St",
        "city": "Springfield",
        "state": "IL",
        "zip": "62701",
    },
}

def test_rbac_clients_and_orders(client, add_member, owner_jwt, seeded_org):
    org_id = seeded_org.id
    manager_jwt = add_member(org_id, "manager@example.com", Role.manager)
    appraiser_jwt = add_member(org_id, "appraiser@example.com", Role.appraiser)

    # appraiser cannot create a client
    r = client.post(f"/organization/{org_id}/clients", json={"name": "Acme Lending"}, headers=auth(appraiser_jwt))
    assert r.status_code == 403

    # manager can
    r = client.post(f"/organization/{org_id}/clients", json={"name": "Acme Lending"}, headers=auth(manager_jwt))
    assert r.status_code == 201, r.text
    client_id = r.json()["data"]["id"]

    # appraiser can read clients
    r = client.get(f"/organization/{org_id}/clients/{client_id}", headers=auth(appraiser_jwt))
    assert r.status_code == 200

    # appraiser can create and edit orders
    r = client.post(
        f"/organization/{org_id}/orders",
        json={**ORDER, "client_id": client_id},
        headers=auth(appraiser_jwt),
    )
    assert r.status_code == 201, r.text
    order_id = r.json()["data"]["id"]

    r = client.patch(
        f"/organization/{org_id}/orders/{order_id}",
        json={"order_status": "closed"},
        headers=auth(appraiser_jwt),
    )
    assert r.status_code == 200, r.text

    # appraiser cannot delete an order (delete is owner/manager)
    r = client.delete(f"/organization/{org_id}/orders/{order_id}", headers=auth(appraiser_jwt))
    assert r.status_code == 403

    r = client.delete(f"/organization/{org_id}/orders/{order_id}", headers=auth(manager_jwt))
    assert r.status_code == 200

    # appraiser cannot delete the client, owner can
    r = client.delete(f"/organization/{org_id}/clients/{client_id}", headers=auth(appraiser_jwt))
    assert r.status_code == 403
    r = client.delete(f"/organization/{org_id}/clients/{client_id}", headers=auth(owner_jwt))
    assert r.status_code == 200

def test_rbac_organization_and_members(client, add_member, owner_jwt, seeded_org):
    org_id = seeded_org.id
    manager_jwt = add_member(org_id, "manager@example.com", Role.manager)
    appraiser_jwt = add_member(org_id, "appraiser@example.com", Role.appraiser)

    # everyone sees the member list
    r = client.get(f"/organization/{org_id}/members", headers=auth(appraiser_jwt))
    assert r.status_code == 200
    members = r.json()["data"]
    assert len(members) == 3
    appraiser_member = next(m for m in members if m["role"] == "appraiser")
    owner_member = next(m for m in members if m["role"] == "owner")

    r = client.get(f"/organization/{org_id}/members/me", headers=auth(appraiser_jwt))
    assert r.status_code == 200
    assert r.json()["data"]["id"] == appraiser_member["id"]

    # contact details are staff only
    r = client.get(f"/organization/{org_id}/members/{appraiser_member['id']}", headers=auth(appraiser_jwt))
    assert r.status_code == 403
    r = client.get(f"/organization/{org_id}/members/{appraiser_member['id']}", headers=auth(manager_jwt))
    assert r.status_code == 200
    assert r.json()["data"]["email"] == "appraiser@example.com"

    # organization edit is owner/manager
    r = client.patch(f"/organization/{org_id}", json={"name": "renamed"}, headers=auth(appraiser_jwt))
    assert r.status_code == 403
    r = client.patch(f"/organization/{org_id}", json={"name": "renamed"}, headers=auth(manager_jwt))
    assert r.status_code == 200
    assert r.json()["data"]["name"] == "renamed"

    # role edits are owner only
    url = f"/organization/{org_id}/members/{appraiser_member['id']}"
    r = client.patch(url, json={"role": "manager"}, headers=auth(manager_jwt))
    assert r.status_code == 403
    r = client.patch(url, json={"role": "manager"}, headers=auth(owner_jwt))
    assert r.status_code == 200, r.text
    assert r.json()["data"]["role"] == "manager"

    # ownership only moves through a transfer
    r = client.patch(url, json={"role": "owner"}, headers=auth(owner_jwt))
    assert r.status_code == 422
    r = client.patch(
        f"/organization/{org_id}/members/{owner_member['id']}",
        json={"role": "manager"},
        headers=auth(owner_jwt),
    )
    assert r.status_code == 403

    # removal
    r = client.delete(f"/organization/{org_id}/members/{owner_member['id']}", headers=auth(owner_jwt))
    assert r.status_code == 403
    r = client.delete(url, headers=auth(owner_jwt))
    assert r.status_code == 200
    r = client.get(f"/organization/{org_id}/members", headers=auth(owner_jwt))
    assert len(r.json()["data"]) == 2
