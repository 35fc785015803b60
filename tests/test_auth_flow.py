"""End-to-end auth flow: bootstrap tenant → use key → login → roles."""

import uuid

import pytest
from httpx import AsyncClient

from ganli.core.security import generate_api_key, hash_api_key, hash_password
from ganli.models.api_key import ApiKey
from ganli.models.tenant import Tenant, TenantStatus
from ganli.models.user import User, UserRole


async def _bootstrap(client: AsyncClient, slug: str) -> dict:
    resp = await client.post("/v1/tenants", json={
        "tenant_name": f"{slug} Co",
        "tenant_slug": slug,
        "owner_email": f"owner@{slug}.com",
        "owner_password": "testpass123",
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _member_key(session, tenant_id: uuid.UUID) -> dict:
    user = User(
        tenant_id=tenant_id,
        email=f"member-{uuid.uuid4().hex[:6]}@test.com",
        password_hash=hash_password("memberpass1"),
        role=UserRole.MEMBER,
    )
    session.add(user)
    await session.flush()
    raw_key = generate_api_key()
    session.add(ApiKey(
        tenant_id=tenant_id,
        user_id=user.id,
        name="member",
        key_hash=hash_api_key(raw_key),
        key_prefix=raw_key[:8],
    ))
    await session.commit()
    return {"Authorization": f"Bearer {raw_key}"}


@pytest.mark.asyncio
async def test_bootstrap_and_authenticate(client: AsyncClient):
    """Create a tenant, use its key, see the free plan."""
    data = await _bootstrap(client, "acme")
    assert data["tenant"]["slug"] == "acme"
    assert data["quota_total"] == 3
    raw_key = data["api_key"]
    assert raw_key.startswith("gl_")
    assert data["key_prefix"] == raw_key[:8]

    headers = {"Authorization": f"Bearer {raw_key}"}

    resp = await client.get("/v1/tenants/me", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["slug"] == "acme"

    resp = await client.get("/v1/quota", headers=headers)
    assert resp.status_code == 200
    quota = resp.json()
    assert quota["remaining"] == 3
    assert quota["used"] == 0
    assert quota["plan_type"] == "free"
    assert quota["end_date"] is not None

    resp = await client.get("/v1/quota/logs", headers=headers)
    logs = resp.json()
    assert len(logs) == 1
    assert logs[0]["operation"] == "recharge"
    assert logs[0]["quota_change"] == 3


@pytest.mark.asyncio
async def test_login_returns_working_jwt(client: AsyncClient):
    await _bootstrap(client, "login-co")

    resp = await client.post("/v1/auth/login", json={
        "email": "owner@login-co.com", "password": "testpass123",
    })
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["role"] == "owner"

    headers = {"Authorization": f"Bearer {body['access_token']}"}
    resp = await client.get("/v1/auth/me", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["tenant"]["slug"] == "login-co"
    assert resp.json()["user"]["email"] == "owner@login-co.com"


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient):
    await _bootstrap(client, "wrong-pass")
    resp = await client.post("/v1/auth/login", json={
        "email": "owner@wrong-pass.com", "password": "not-the-password",
    })
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_duplicate_slug_rejected(client: AsyncClient):
    """Registering the same slug twice returns 409."""
    payload = {
        "tenant_name": "First",
        "tenant_slug": "unique-slug",
        "owner_email": "a@b.com",
        "owner_password": "password123",
    }
    resp = await client.post("/v1/tenants", json=payload)
    assert resp.status_code == 201

    resp = await client.post("/v1/tenants", json=payload)
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_invalid_key_rejected(client: AsyncClient):
    resp = await client.get(
        "/v1/tenants/me",
        headers={"Authorization": "Bearer totally-fake-key"},
    )
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_garbage_jwt_rejected(client: AsyncClient):
    resp = await client.get(
        "/v1/auth/me",
        headers={"Authorization": "Bearer not.a.jwt"},
    )
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_missing_auth_rejected(client: AsyncClient):
    """No Authorization header → 401 or 403 depending on FastAPI version."""
    resp = await client.get("/v1/reports")
    assert resp.status_code in (401, 403)


@pytest.mark.asyncio
async def test_suspended_tenant_is_refused(client: AsyncClient, session):
    data = await _bootstrap(client, "suspended")
    headers = {"Authorization": f"Bearer {data['api_key']}"}

    tenant = await session.get(Tenant, uuid.UUID(data["tenant"]["id"]))
    tenant.status = TenantStatus.SUSPENDED
    session.add(tenant)
    await session.commit()

    resp = await client.get("/v1/quota", headers=headers)
    assert resp.status_code == 403

    resp = await client.post("/v1/auth/login", json={
        "email": "owner@suspended.com", "password": "testpass123",
    })
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_recharge_requires_admin(client: AsyncClient, session):
    data = await _bootstrap(client, "recharge")
    owner = {"Authorization": f"Bearer {data['api_key']}"}
    member = await _member_key(session, uuid.UUID(data["tenant"]["id"]))

    resp = await client.post("/v1/quota/recharge", json={"amount": 5}, headers=member)
    assert resp.status_code == 403
    assert resp.json()["code"] == "forbidden"

    # Members can still read the balance
    assert (await client.get("/v1/quota", headers=member)).json()["total"] == 3

    resp = await client.post(
        "/v1/quota/recharge", json={"amount": 5, "plan_type": "pro"}, headers=owner,
    )
    assert resp.status_code == 200, resp.text
    quota = resp.json()
    assert quota["total"] == 8
    assert quota["remaining"] == 8
    assert quota["plan_type"] == "pro"

    resp = await client.get("/v1/tenants/me", headers=owner)
    assert resp.json()["plan_type"] == "pro"

    resp = await client.post("/v1/quota/recharge", json={"amount": 0}, headers=owner)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_login_with_email_in_two_teams(client: AsyncClient):
    for slug, password in (("team-a", "password-a1"), ("team-b", "password-b2")):
        resp = await client.post("/v1/tenants", json={
            "tenant_name": slug,
            "tenant_slug": slug,
            "owner_email": "same@test.com",
            "owner_password": password,
        })
        assert resp.status_code == 201, resp.text

    # The password decides which team the session belongs to
    for slug, password in (("team-a", "password-a1"), ("team-b", "password-b2")):
        resp = await client.post("/v1/auth/login", json={
            "email": "same@test.com", "password": password,
        })
        assert resp.status_code == 200, resp.text
        assert resp.json()["tenant"]["slug"] == slug
        assert resp.json()["user"]["last_login_at"] is not None

    # Naming a team restricts the lookup to it
    resp = await client.post("/v1/auth/login", json={
        "email": "same@test.com", "password": "password-a1", "tenant_slug": "team-b",
    })
    assert resp.status_code == 401
