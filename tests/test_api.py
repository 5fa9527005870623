import support

import pytest
from fastapi.testclient import TestClient

from asset_tracker.db.session import get_db
from asset_tracker.main import app

ADMIN_HEADERS = {"X-API-Key": support.API_KEY}


@pytest.fixture()
def session_factory():
    return support.make_sessionmaker()


@pytest.fixture()
def reference(session_factory):
    with session_factory() as db:
        refs = support.seed_reference(db)
        return {key: value.id for key, value in refs.items()}


@pytest.fixture()
def client(session_factory, reference):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_db, None)


def _create_laptop(client, reference, serial="API-1", **extra):
    body = {
        "type": "LAPTOP",
        "serial_number": serial,
        "description": "ThinkPad T14",
        "purchase_price": "1299.99",
        "location_id": reference["store"],
    }
    body.update(extra)
    return client.post("/api/v1/assets", json=body, headers=ADMIN_HEADERS)


def _login(client, email, password):
    response = client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def test_health_is_public_and_carries_request_id(client):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert response.headers["X-Request-ID"] == "req-123"
    assert response.headers["X-Content-Type-Options"] == "nosniff"

    replaced = client.get("/health", headers={"X-Request-ID": "not safe <script>"})
    assert len(replaced.headers["X-Request-ID"]) == 32


def test_credentials_are_required(client):
    response = client.get("/api/v1/assets")
    assert response.status_code == 401
    assert response.json()["code"] == "http_error"

    response = client.get("/api/v1/assets", headers={"X-API-Key": "wrong"})
    assert response.status_code == 401


def test_create_and_walk_lifecycle(client, reference):
    created = _create_laptop(client, reference)
    assert created.status_code == 201
    asset = created.json()
    assert asset["asset_number"] == "04-00001"
    assert asset["state"] == "AVAILABLE"
    assert asset["location_name"] == "Warehouse - Main"

    transitions = client.get("/api/v1/assets/04-00001/transitions", headers=ADMIN_HEADERS).json()
    assert transitions["valid_next_states"] == ["SIGNED_OUT"]

    for state in ("SIGNED_OUT", "BUILT", "READY_TO_GO"):
        response = client.post(
            "/api/v1/assets/04-00001/transition", json={"new_state": state}, headers=ADMIN_HEADERS
        )
        assert response.status_code == 200
        assert response.json()["state"] == state

    assigned = client.post(
        "/api/v1/assets/04-00001/assign", json={"user_id": reference["user"]}, headers=ADMIN_HEADERS
    )
    assert assigned.status_code == 200
    assert assigned.json()["state"] == "ISSUED"
    assert assigned.json()["assigned_to"] == "uma@example.com"

    user_assets = client.get(f"/api/v1/users/{reference['user']}/assets", headers=ADMIN_HEADERS).json()
    assert [item["asset_number"] for item in user_assets] == ["04-00001"]

    history = client.get("/api/v1/assets/04-00001/history", headers=ADMIN_HEADERS).json()
    assert history[0]["new_state"] == "ISSUED"
    assert history[-1]["change_reason"] == "Asset created"
    assert history[-1]["changed_by_name"] == "System"


def test_invalid_transition_returns_conflict_envelope(client, reference):
    _create_laptop(client, reference)

    response = client.post(
        "/api/v1/assets/04-00001/transition", json={"new_state": "ISSUED"}, headers=ADMIN_HEADERS
    )

    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "invalid_transition"
    assert body["details"]["allowed"] == ["SIGNED_OUT"]


def _ready(client, asset_number="04-00001"):
    for state in ("SIGNED_OUT", "BUILT", "READY_TO_GO"):
        client.post(f"/api/v1/assets/{asset_number}/transition", json={"new_state": state}, headers=ADMIN_HEADERS)


def test_issue_only_through_assign(client, reference):
    _create_laptop(client, reference)
    _ready(client)

    direct = client.post("/api/v1/assets/04-00001/transition", json={"new_state": "ISSUED"}, headers=ADMIN_HEADERS)
    assert direct.status_code == 409
    assert direct.json()["code"] == "invalid_transition"
    assert direct.json()["details"]["use"] == "assign"

    bulk = client.put(
        "/api/v1/assets/bulk",
        json={"action": "state_transition", "asset_numbers": ["04-00001"], "new_state": "ISSUED"},
        headers=ADMIN_HEADERS,
    )
    assert bulk.status_code == 409

    asset = client.get("/api/v1/assets/04-00001", headers=ADMIN_HEADERS).json()
    assert asset["state"] == "READY_TO_GO"
    assert asset["assigned_to"] is None


def test_returning_issued_asset_makes_it_assignable_again(client, reference):
    _create_laptop(client, reference)
    _ready(client)
    client.post("/api/v1/assets/04-00001/assign", json={"user_id": reference["user"]}, headers=ADMIN_HEADERS)

    returned = client.post(
        "/api/v1/assets/04-00001/transition", json={"new_state": "AVAILABLE"}, headers=ADMIN_HEADERS
    )
    assert returned.status_code == 200
    assert returned.json()["assigned_to"] is None
    assert returned.json()["employee_id"] is None
    user_assets = client.get(f"/api/v1/users/{reference['user']}/assets", headers=ADMIN_HEADERS).json()
    assert user_assets == []

    _ready(client)
    available = client.get("/api/v1/assets/available", headers=ADMIN_HEADERS).json()
    assert [item["asset_number"] for item in available["LAPTOP"]] == ["04-00001"]
    again = client.post(
        "/api/v1/assets/04-00001/assign", json={"user_id": reference["user"]}, headers=ADMIN_HEADERS
    )
    assert again.status_code == 200


def test_patch_edits_details_only(client, reference):
    _create_laptop(client, reference)
    _create_laptop(client, reference, serial="API-2")

    edited = client.patch(
        "/api/v1/assets/04-00001",
        json={"description": "ThinkPad T14 Gen 4", "purchase_price": "1350.00", "location_id": reference["office"]},
        headers=ADMIN_HEADERS,
    )
    assert edited.status_code == 200
    body = edited.json()
    assert body["description"] == "ThinkPad T14 Gen 4"
    assert float(body["purchase_price"]) == 1350.0
    assert body["location_id"] == reference["office"]
    assert body["state"] == "AVAILABLE"

    history = client.get("/api/v1/assets/04-00001/history", headers=ADMIN_HEADERS).json()
    assert history[0]["change_reason"] == "Asset details updated"

    clash = client.patch("/api/v1/assets/04-00001", json={"serial_number": "API-2"}, headers=ADMIN_HEADERS)
    assert clash.status_code == 409
    free = client.patch("/api/v1/assets/04-00001", json={"purchase_price": "0"}, headers=ADMIN_HEADERS)
    assert free.status_code == 422
    state = client.patch("/api/v1/assets/04-00001", json={"state": "ISSUED"}, headers=ADMIN_HEADERS)
    assert state.status_code == 422
    assert state.json()["code"] == "validation_error"
    missing = client.patch("/api/v1/assets/04-09999", json={"description": "x"}, headers=ADMIN_HEADERS)
    assert missing.status_code == 404

    user_headers = _login(client, "uma@example.com", "Another-Secret-9?")
    forbidden = client.patch("/api/v1/assets/04-00001", json={"description": "Mine"}, headers=user_headers)
    assert forbidden.status_code == 403


def test_duplicate_serial_and_unknown_asset(client, reference):
    _create_laptop(client, reference)

    duplicate = _create_laptop(client, reference)
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == "conflict"

    missing = client.get("/api/v1/assets/04-09999", headers=ADMIN_HEADERS)
    assert missing.status_code == 404
    assert missing.json()["code"] == "not_found"


def test_next_number_preview_does_not_consume(client, reference):
    first = client.get("/api/v1/assets/next-number", params={"type": "LAPTOP"}, headers=ADMIN_HEADERS)
    second = client.get("/api/v1/assets/next-number", params={"type": "LAPTOP"}, headers=ADMIN_HEADERS)
    assert first.json()["asset_number"] == second.json()["asset_number"] == "04-00001"

    created = _create_laptop(client, reference)
    assert created.json()["asset_number"] == "04-00001"


def test_lookup_and_soft_delete(client, reference):
    _create_laptop(client, reference, serial="PF3ABC12")

    assert client.get("/api/v1/assets/lookup/0400001", headers=ADMIN_HEADERS).json()["serial_number"] == "PF3ABC12"
    assert client.get("/api/v1/assets/lookup/pf3abc12", headers=ADMIN_HEADERS).json()["asset_number"] == "04-00001"

    deleted = client.delete("/api/v1/assets/04-00001", headers=ADMIN_HEADERS)
    assert deleted.status_code == 200
    assert deleted.json()["is_deleted"] is True

    assert client.get("/api/v1/assets/04-00001", headers=ADMIN_HEADERS).status_code == 404
    listing = client.get("/api/v1/assets", headers=ADMIN_HEADERS).json()
    assert listing["pagination"]["total"] == 0
    lookup = client.get("/api/v1/assets/lookup/04-00001", headers=ADMIN_HEADERS).json()
    assert lookup["is_deleted"] is True


def test_bulk_transition_is_all_or_nothing(client, reference):
    _create_laptop(client, reference, serial="B-1")
    _create_laptop(client, reference, serial="B-2")
    client.post("/api/v1/assets/04-00002/transition", json={"new_state": "SIGNED_OUT"}, headers=ADMIN_HEADERS)

    rejected = client.put(
        "/api/v1/assets/bulk",
        json={"action": "state_transition", "asset_numbers": ["04-00001", "04-00002"], "new_state": "SIGNED_OUT"},
        headers=ADMIN_HEADERS,
    )
    assert rejected.status_code == 409
    assert client.get("/api/v1/assets/04-00001", headers=ADMIN_HEADERS).json()["state"] == "AVAILABLE"

    moved = client.put(
        "/api/v1/assets/bulk",
        json={"action": "move", "asset_numbers": ["04-00001", "04-00002"], "location_id": reference["office"]},
        headers=ADMIN_HEADERS,
    )
    assert moved.status_code == 200
    assert moved.json()["updated"] == 2

    incomplete = client.put(
        "/api/v1/assets/bulk", json={"action": "move", "asset_numbers": ["04-00001"]}, headers=ADMIN_HEADERS
    )
    assert incomplete.status_code == 422
    assert incomplete.json()["code"] == "validation_error"


def test_jwt_login_and_role_enforcement(client, reference):
    user_headers = _login(client, "uma@example.com", "Another-Secret-9?")

    assert client.get("/api/v1/assets", headers=user_headers).status_code == 200
    response = client.post(
        "/api/v1/assets",
        json={
            "type": "MONITOR",
            "serial_number": "MON-1",
            "description": "Dell U2723",
            "purchase_price": "320",
            "location_id": reference["store"],
        },
        headers=user_headers,
    )
    assert response.status_code == 403
    assert response.json()["code"] == "forbidden"

    admin_headers = _login(client, "ada@example.com", "Sup3r-Secret-Pass!")
    assert client.get("/api/v1/users/next-employee-id", headers=admin_headers).json() == {"employee_id": "EMP00003"}

    bad = client.post("/api/v1/auth/login", json={"email": "uma@example.com", "password": "nope"})
    assert bad.status_code == 401


def test_token_exchange_and_refresh(client):
    issued = client.post("/api/v1/auth/token", json={"apiKey": support.API_KEY})
    assert issued.status_code == 200
    tokens = issued.json()

    refreshed = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert refreshed.status_code == 200
    headers = {"Authorization": f"Bearer {refreshed.json()['access_token']}"}
    assert client.get("/api/v1/reports/financial-summary", headers=headers).status_code == 200

    # A refresh token is not accepted where an access token is expected.
    wrong = {"Authorization": f"Bearer {tokens['refresh_token']}"}
    assert client.get("/api/v1/assets", headers=wrong).status_code == 401


def test_reports_are_cacheable_for_configured_minutes(client, reference):
    _create_laptop(client, reference)

    response = client.get("/api/v1/reports/dashboard", headers=ADMIN_HEADERS)
    assert response.status_code == 200
    assert response.headers["Cache-Control"] == "private, max-age=1800"
    assert response.json()["total_assets"] == 1

    updated = client.put("/api/v1/settings", json={"report_cache_duration": 5}, headers=ADMIN_HEADERS)
    assert updated.status_code == 200
    response = client.get("/api/v1/reports/inventory-summary", headers=ADMIN_HEADERS)
    assert response.headers["Cache-Control"] == "private, max-age=300"

    # Non-report endpoints stay uncached.
    assert client.get("/api/v1/assets", headers=ADMIN_HEADERS).headers["Cache-Control"] == "no-store"


def test_settings_validation(client):
    response = client.put("/api/v1/settings", json={"report_cache_duration": 0}, headers=ADMIN_HEADERS)
    assert response.status_code == 422
    assert response.json()["code"] == "validation_error"

    response = client.put(
        "/api/v1/settings",
        json={"depreciation_settings": {"method": "declining", "years": 3, "declining_percents": [40, 30, 30]}},
        headers=ADMIN_HEADERS,
    )
    assert response.status_code == 200
    assert response.json()["depreciation_settings"]["method"] == "declining"


def test_search_requires_a_query(client, reference):
    _create_laptop(client, reference)

    empty = client.get("/api/v1/search", params={"q": "  "}, headers=ADMIN_HEADERS)
    assert empty.status_code == 422
    assert empty.json()["code"] == "validation_error"

    found = client.get("/api/v1/search", params={"q": "thinkpad"}, headers=ADMIN_HEADERS).json()
    assert [item["asset_number"] for item in found["assets"]] == ["04-00001"]
    assert found["users"] == []


def test_asset_export_csv_and_pdf(client, reference):
    _create_laptop(client, reference)

    csv_response = client.get("/api/v1/reports/assets/export", params={"type": "LAPTOP"}, headers=ADMIN_HEADERS)
    assert csv_response.status_code == 200
    assert csv_response.headers["content-type"].startswith("text/csv")
    assert "attachment" in csv_response.headers["content-disposition"]
    assert csv_response.text.splitlines()[1].startswith("04-00001,Laptop")

    pdf_response = client.get("/api/v1/reports/assets/export", params={"format": "pdf"}, headers=ADMIN_HEADERS)
    assert pdf_response.headers["content-type"] == "application/pdf"
    assert pdf_response.content.startswith(b"%PDF")


def test_holding_import_and_promote(client, reference):
    upload = client.post(
        "/api/v1/holding-assets/import",
        files={"file": ("delivery.csv", b"serialNumber,description\nH-1,Spare dock\n", "text/csv")},
        headers=ADMIN_HEADERS,
    )
    assert upload.status_code == 200
    assert upload.json()["imported"] == 1

    pending = client.get("/api/v1/holding-assets", headers=ADMIN_HEADERS).json()
    promoted = client.post(
        f"/api/v1/holding-assets/{pending[0]['id']}/promote",
        json={"type": "DESKTOP", "location_id": reference["store"]},
        headers=ADMIN_HEADERS,
    )
    assert promoted.status_code == 201
    assert promoted.json()["asset_number"] == "03-00001"
    assert promoted.json()["status"] == "STOCK"
    assert client.get("/api/v1/holding-assets", headers=ADMIN_HEADERS).json() == []


def test_password_reset_enforces_policy(client, reference):
    weak = client.post(
        f"/api/v1/users/{reference['user']}/reset-password",
        json={"new_password": "short"},
        headers=ADMIN_HEADERS,
    )
    assert weak.status_code == 422
    assert weak.json()["details"]["errors"]

    strong = client.post(
        f"/api/v1/users/{reference['user']}/reset-password",
        json={"new_password": "Brand-New-Pass-42!"},
        headers=ADMIN_HEADERS,
    )
    assert strong.status_code == 200
    _login(client, "uma@example.com", "Brand-New-Pass-42!")


def test_tenant_config_endpoints(client):
    tenant = client.get("/api/v1/config/tenant", headers=ADMIN_HEADERS)
    assert tenant.status_code == 200
    assert tenant.json()["company_prefix"] == "COMP"

    preview = client.get(
        "/api/v1/config/label-preview", params={"type_code": "01", "sequence": 42}, headers=ADMIN_HEADERS
    )
    assert preview.json()["label"] == "COMP-01-0042"

    states = client.get("/api/v1/config/asset-states", headers=ADMIN_HEADERS).json()
    assert [state["state_code"] for state in states][0] == "AVAILABLE"
