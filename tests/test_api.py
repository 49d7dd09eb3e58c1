"""HTTP surface: authentication, status codes and the error envelope."""
import uuid

import pytest
from httpx import AsyncClient

from aidcrm.db.enums import Role
from aidcrm.db.models import User
from aidcrm.schemas.auth import Actor
from aidcrm.services.seed_service import create_user


@pytest.fixture
def staff(http_store) -> Actor:
    return Actor.from_user(create_user(http_store, "staff@example.org", "Staff", Role.STAFF))


@pytest.fixture
def admin(http_store) -> Actor:
    return Actor.from_user(create_user(http_store, "admin@example.org", "Admin", Role.ADMIN))


@pytest.fixture
def volunteer(http_store) -> Actor:
    return Actor.from_user(create_user(http_store, "vol@example.org", "Volunteer", Role.VOLUNTEER))


NEW_BENEFICIARY = {
    "first_name": "Ahmad",
    "last_name": "Abdullah",
    "phone": "+60123456786",
    "category": "HOMELESS",
    "id_number": "850515-10-1234",
}


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/beneficiaries", "/cases", "/services", "/audit", "/dashboard/stats"])
async def test_requires_session(client: AsyncClient, path):
    response = await client.get(path)
    assert response.status_code == 401
    assert response.json()["error"]["kind"] == "unauthorized"


@pytest.mark.asyncio
async def test_garbage_token_is_unauthenticated(client: AsyncClient):
    response = await client.get("/beneficiaries", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_and_fetch_beneficiary(client: AsyncClient, staff, bearer):
    response = await client.post("/beneficiaries", json=NEW_BENEFICIARY, headers=bearer(staff))
    assert response.status_code == 201
    created = response.json()
    assert created["created_by_id"] == str(staff.user_id)
    assert created["status"] == "ACTIVE"

    response = await client.get(f"/beneficiaries/{created['id']}", headers=bearer(staff))
    assert response.status_code == 200
    assert response.json()["first_name"] == "Ahmad"


@pytest.mark.asyncio
async def test_session_cookie_is_accepted(client: AsyncClient, staff, bearer):
    token = bearer(staff)["Authorization"].split(" ", 1)[1]
    client.cookies.set("aid_session", token)
    response = await client.get("/beneficiaries")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_unauthenticated_write_is_401_before_validation(client: AsyncClient):
    response = await client.post("/beneficiaries", json={"first_name": ""})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_forbidden_write_is_403_before_validation(client: AsyncClient, volunteer, bearer):
    response = await client.post("/beneficiaries", json={"first_name": ""}, headers=bearer(volunteer))
    assert response.status_code == 403
    assert response.json()["error"]["kind"] == "forbidden"


@pytest.mark.asyncio
async def test_validation_envelope_lists_every_field(client: AsyncClient, staff, bearer):
    payload = {**NEW_BENEFICIARY, "phone": "123", "email": "not-an-email", "first_name": ""}
    response = await client.post("/beneficiaries", json=payload, headers=bearer(staff))
    assert response.status_code == 422
    error = response.json()["error"]
    assert error["kind"] == "validation_error"
    assert {e["field"] for e in error["errors"]} == {"phone", "email", "first_name"}
    assert all({"field", "message", "code"} <= set(e) for e in error["errors"])


@pytest.mark.asyncio
async def test_malformed_query_uses_same_envelope(client: AsyncClient, staff, bearer):
    response = await client.get("/beneficiaries?limit=0", headers=bearer(staff))
    assert response.status_code == 422
    assert response.json()["error"]["kind"] == "validation_error"


@pytest.mark.asyncio
async def test_duplicate_id_number_is_409(client: AsyncClient, staff, admin, bearer):
    first = await client.post("/beneficiaries", json=NEW_BENEFICIARY, headers=bearer(staff))
    assert first.status_code == 201
    response = await client.post(
        "/beneficiaries", json={**NEW_BENEFICIARY, "first_name": "Other"}, headers=bearer(admin),
    )
    assert response.status_code == 409
    error = response.json()["error"]
    assert error["kind"] == "conflict"
    assert error["errors"][0]["field"] == "id_number"


@pytest.mark.asyncio
async def test_unknown_id_is_404(client: AsyncClient, staff, bearer):
    response = await client.patch(f"/cases/{uuid.uuid4()}", json={"title": "x"}, headers=bearer(staff))
    assert response.status_code == 404
    assert response.json()["error"]["kind"] == "not_found"


@pytest.mark.asyncio
async def test_list_pagination_block(client: AsyncClient, staff, bearer):
    for i in range(3):
        response = await client.post(
            "/beneficiaries",
            json={**NEW_BENEFICIARY, "id_number": f"850515-10-123{i}"},
            headers=bearer(staff),
        )
        assert response.status_code == 201

    response = await client.get("/beneficiaries?page=1&limit=2", headers=bearer(staff))
    assert response.status_code == 200
    body = response.json()
    assert len(body["items"]) == 2
    assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "totalPages": 2}


@pytest.mark.asyncio
async def test_case_lifecycle_and_audit(client: AsyncClient, staff, admin, bearer):
    beneficiary = (await client.post("/beneficiaries", json=NEW_BENEFICIARY, headers=bearer(staff))).json()
    case = await client.post(
        "/cases",
        json={
            "beneficiary_id": beneficiary["id"],
            "title": "Emergency shelter",
            "description": "Needs temporary shelter",
            "type": "SHELTER",
        },
        headers=bearer(staff),
    )
    assert case.status_code == 201
    case_id = case.json()["id"]

    service = await client.post(
        "/services",
        json={"type": "RESCUE", "date": "2026-03-01", "beneficiary_id": beneficiary["id"], "case_id": case_id},
        headers=bearer(staff),
    )
    assert service.status_code == 201

    resolved = await client.patch(f"/cases/{case_id}", json={"status": "RESOLVED"}, headers=bearer(staff))
    assert resolved.status_code == 200
    assert resolved.json()["resolved_at"] is not None

    assert (await client.delete(f"/cases/{case_id}", headers=bearer(staff))).status_code == 403
    assert (await client.delete(f"/cases/{case_id}", headers=bearer(admin))).status_code == 204
    assert (await client.get(f"/services/{service.json()['id']}", headers=bearer(admin))).status_code == 404

    archived = await client.delete(f"/beneficiaries/{beneficiary['id']}", headers=bearer(admin))
    assert archived.status_code == 200
    assert archived.json()["status"] == "ARCHIVED"

    assert (await client.get("/audit", headers=bearer(staff))).status_code == 403
    audit = await client.get("/audit", headers=bearer(admin))
    assert audit.status_code == 200
    assert [e["action"] for e in audit.json()["items"]] == [
        "BENEFICIARY_ARCHIVED",
        "CASE_DELETED",
        "CASE_UPDATED",
        "SERVICE_CREATED",
        "CASE_CREATED",
        "BENEFICIARY_CREATED",
    ]


@pytest.mark.asyncio
async def test_dashboard_stats(client: AsyncClient, staff, bearer):
    await client.post("/beneficiaries", json=NEW_BENEFICIARY, headers=bearer(staff))
    response = await client.get("/dashboard/stats", headers=bearer(staff))
    assert response.status_code == 200
    body = response.json()
    assert body["summary"]["total_beneficiaries"] == 1
    assert body["recent_activity"][0]["first_name"] == "Ahmad"


@pytest.mark.asyncio
async def test_bumped_token_version_revokes_session(client: AsyncClient, staff, http_store, bearer, db):
    headers = bearer(staff)
    assert (await client.get("/beneficiaries", headers=headers)).status_code == 200

    user = db.get(User, staff.user_id)
    user.token_version += 1
    db.commit()

    assert (await client.get("/beneficiaries", headers=headers)).status_code == 401
    assert (await client.get("/beneficiaries", headers=bearer(staff, token_version=2))).status_code == 200


@pytest.mark.asyncio
async def test_inactive_user_is_unauthenticated(client: AsyncClient, staff, bearer, db):
    db.get(User, staff.user_id).is_active = False
    db.commit()

    response = await client.get("/beneficiaries", headers=bearer(staff))
    assert response.status_code == 401
