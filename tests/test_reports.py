"""Report listing, filters, isolation, deletion and hire marking."""

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy import update

from ganli.models.subscription import Subscription
from tests.fakes import REPORT, SOURCE_TEXT

GAN_LI = ("感理型", "感性表达", "结构化行为")
LI_LI = ("理理型", "理性表达", "结构化行为")
GAN_GAN = ("感感型", "感性表达", "灵活化行为")


async def _bootstrap(client: AsyncClient, slug: str, session, quota: int = 10) -> dict:
    resp = await client.post("/v1/tenants", json={
        "tenant_name": f"Tenant {slug}",
        "tenant_slug": slug,
        "owner_email": f"{slug}@test.com",
        "owner_password": "password1234",
    })
    data = resp.json()
    await session.execute(
        update(Subscription)
        .where(Subscription.tenant_id == uuid.UUID(data["tenant"]["id"]))
        .values(quota_total=quota)
    )
    await session.commit()
    return {"Authorization": f"Bearer {data['api_key']}"}


async def _analyse(
    client: AsyncClient, headers: dict, gateway, name: str, position: str | None,
    kind: tuple[str, str, str], risk: str,
) -> dict:
    ptype, dimension1, dimension2 = kind
    gateway.classification = {
        "type": ptype, "dimension1": dimension1, "dimension2": dimension2, "confidence": 75,
    }
    gateway.report = {**REPORT, "risk_level": risk}
    resp = await client.post("/v1/tasks", json={
        "name": name, "source_text": SOURCE_TEXT, "position": position,
    }, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _seed_three(client, headers, gateway) -> list[dict]:
    return [
        await _analyse(client, headers, gateway, "张三", "产品经理", GAN_LI, "medium"),
        await _analyse(client, headers, gateway, "李四", "工程师", LI_LI, "high"),
        await _analyse(client, headers, gateway, "张小明", "产品经理", GAN_GAN, "low"),
    ]


@pytest.mark.asyncio
async def test_list_filters_and_total(client: AsyncClient, session, gateway):
    headers = await _bootstrap(client, "filters", session)
    await _seed_three(client, headers, gateway)

    resp = await client.get("/v1/reports", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["total"] == 3

    resp = await client.get("/v1/reports", params={"position": "产品经理"}, headers=headers)
    body = resp.json()
    assert body["total"] == 2
    assert {item["candidate_name"] for item in body["items"]} == {"张三", "张小明"}

    resp = await client.get("/v1/reports", params={"risk_level": "high"}, headers=headers)
    body = resp.json()
    assert body["total"] == 1
    assert body["items"][0]["candidate_name"] == "李四"

    resp = await client.get("/v1/reports", params={"personality_type": "感感型"}, headers=headers)
    assert [item["candidate_name"] for item in resp.json()["items"]] == ["张小明"]

    resp = await client.get("/v1/reports", params={"name": "张"}, headers=headers)
    assert resp.json()["total"] == 2

    resp = await client.get(
        "/v1/reports", params={"name": "张", "risk_level": "low"}, headers=headers,
    )
    assert resp.json()["total"] == 1


@pytest.mark.asyncio
async def test_list_pagination(client: AsyncClient, session, gateway):
    headers = await _bootstrap(client, "pages", session)
    created = await _seed_three(client, headers, gateway)

    first = (await client.get("/v1/reports", params={"page": 1, "limit": 2}, headers=headers)).json()
    second = (await client.get("/v1/reports", params={"page": 2, "limit": 2}, headers=headers)).json()

    assert first["total"] == second["total"] == 3
    assert len(first["items"]) == 2
    assert len(second["items"]) == 1
    seen = {item["id"] for item in first["items"] + second["items"]}
    assert seen == {c["report_id"] for c in created}

    # Newest first
    assert first["items"][0]["candidate_name"] == "张小明"


@pytest.mark.asyncio
async def test_list_rejects_unknown_enum(client: AsyncClient, session, gateway):
    headers = await _bootstrap(client, "bad-enum", session)
    resp = await client.get("/v1/reports", params={"risk_level": "extreme"}, headers=headers)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_reports_isolated_between_tenants(client: AsyncClient, session, gateway):
    headers_a = await _bootstrap(client, "iso-a", session)
    headers_b = await _bootstrap(client, "iso-b", session)
    created = await _analyse(client, headers_a, gateway, "张三", "产品经理", GAN_LI, "medium")
    report_id = created["report_id"]

    assert (await client.get(f"/v1/reports/{report_id}", headers=headers_a)).status_code == 200

    resp = await client.get(f"/v1/reports/{report_id}", headers=headers_b)
    assert resp.status_code == 404
    assert resp.json()["code"] == "not_found"

    assert (await client.get("/v1/reports", headers=headers_b)).json()["total"] == 0
    assert (await client.post(f"/v1/reports/{report_id}/mark-hired", headers=headers_b)).status_code == 404
    assert (await client.delete(f"/v1/reports/{report_id}", headers=headers_b)).status_code == 404
    candidate_id = created["candidate_id"]
    assert (await client.get(f"/v1/candidates/{candidate_id}", headers=headers_b)).status_code == 404

    # Untouched for the owner
    resp = await client.get(f"/v1/reports/{report_id}", headers=headers_a)
    assert resp.json()["is_hired"] is False


@pytest.mark.asyncio
async def test_delete_report(client: AsyncClient, session, gateway):
    headers = await _bootstrap(client, "delete", session)
    created = await _analyse(client, headers, gateway, "张三", "产品经理", GAN_LI, "medium")

    resp = await client.delete(f"/v1/reports/{created['report_id']}", headers=headers)
    assert resp.status_code == 204

    assert (await client.get(f"/v1/reports/{created['report_id']}", headers=headers)).status_code == 404
    resp = await client.get(f"/v1/candidates/{created['candidate_id']}", headers=headers)
    assert resp.json()["report_id"] is None
    resp = await client.get(f"/v1/tasks/{created['task_id']}", headers=headers)
    assert resp.json()["report_id"] is None


@pytest.mark.asyncio
async def test_mark_hired_is_idempotent(client: AsyncClient, session, gateway):
    headers = await _bootstrap(client, "hire", session)
    created = await _analyse(client, headers, gateway, "张三", "产品经理", GAN_LI, "medium")

    first = await client.post(f"/v1/reports/{created['report_id']}/mark-hired", headers=headers)
    assert first.status_code == 200
    assert first.json()["is_hired"] is True
    assert first.json()["hired_at"] is not None

    second = await client.post(f"/v1/reports/{created['report_id']}/mark-hired", headers=headers)
    assert second.status_code == 200
    assert second.json()["is_hired"] is True
    assert second.json()["hired_at"] == first.json()["hired_at"]

    third = await client.post(f"/v1/candidates/{created['candidate_id']}/hire", headers=headers)
    assert third.json()["hired_at"] == first.json()["hired_at"]

    resp = await client.get(f"/v1/reports/{created['report_id']}", headers=headers)
    assert resp.json()["is_hired"] is True


@pytest.mark.asyncio
async def test_unknown_report_is_not_found(client: AsyncClient, session, gateway):
    headers = await _bootstrap(client, "unknown", session)
    resp = await client.get(f"/v1/reports/{uuid.uuid4()}", headers=headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_name_search_treats_wildcards_literally(client: AsyncClient, session, gateway):
    headers = await _bootstrap(client, "wildcards", session)
    await _analyse(client, headers, gateway, "张三", "产品经理", GAN_LI, "medium")
    await _analyse(client, headers, gateway, "李_四", "工程师", LI_LI, "high")
    await _analyse(client, headers, gateway, "王100%", "工程师", GAN_GAN, "low")

    resp = await client.get("/v1/reports", params={"name": "_"}, headers=headers)
    assert [item["candidate_name"] for item in resp.json()["items"]] == ["李_四"]

    resp = await client.get("/v1/reports", params={"name": "%"}, headers=headers)
    assert [item["candidate_name"] for item in resp.json()["items"]] == ["王100%"]

    resp = await client.get("/v1/reports", params={"name": "王1"}, headers=headers)
    assert resp.json()["total"] == 1
