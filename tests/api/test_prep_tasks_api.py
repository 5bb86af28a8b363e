# tests/api/test_prep_tasks_api.py
from __future__ import annotations

from decimal import Decimal

import httpx
import pytest

from tests.factories import lot_qty, order_remain, seed_basic

pytestmark = pytest.mark.asyncio


async def _seed(async_session_maker, **kw) -> dict:
    async with async_session_maker() as s:
        return await seed_basic(s, **kw)


async def _qty(async_session_maker, lot_id: int) -> Decimal:
    async with async_session_maker() as s:
        return await lot_qty(s, lot_id)


def _create_body(ids: dict, qty="4", **extra) -> dict:
    return {
        "order_id": ids["order_id"],
        "items": [
            {"order_item_id": ids["order_item_id"], "lot_id": ids["lot_id"], "quantity": qty}
        ],
        **extra,
    }


async def test_create_get_and_list(client: httpx.AsyncClient, async_session_maker):
    ids = await _seed(async_session_maker, lot_qty=10, line_qty=10)

    r = await client.post("/prep-tasks", json=_create_body(ids, supervisor_id=3, note="am shift"))
    assert r.status_code == 201, r.text
    body = r.json()
    task_id = body["id"]
    assert body["status"] == "pending"
    assert body["item_count"] == 1
    assert Decimal(body["items"][0]["requested_qty"]) == Decimal("4")
    assert await _qty(async_session_maker, ids["lot_id"]) == Decimal("6")

    r = await client.get(f"/prep-tasks/{task_id}")
    assert r.status_code == 200
    assert r.json()["note"] == "am shift"

    r = await client.get(f"/prep-tasks/{task_id}/items")
    assert r.status_code == 200
    assert len(r.json()) == 1

    r = await client.get("/prep-tasks", params={"supervisor_id": 3})
    assert r.status_code == 200
    listing = r.json()
    assert listing["pagination"]["total"] == 1
    assert listing["data"][0]["id"] == task_id


async def test_create_insufficient_stock_problem(client: httpx.AsyncClient, async_session_maker):
    ids = await _seed(async_session_maker, lot_qty=3, line_qty=10)

    r = await client.post("/prep-tasks", json=_create_body(ids, qty="4"))

    assert r.status_code == 409
    p = r.json()
    assert p["error_code"] == "insufficient_stock"
    assert p["details"][0]["type"] == "shortage"
    assert p["details"][0]["lot_id"] == ids["lot_id"]
    assert Decimal(p["details"][0]["available_qty"]) == Decimal("3")
    assert await _qty(async_session_maker, ids["lot_id"]) == Decimal("3")


async def test_create_request_validation(client: httpx.AsyncClient, async_session_maker):
    ids = await _seed(async_session_maker)

    r = await client.post("/prep-tasks", json={"order_id": ids["order_id"], "items": []})
    assert r.status_code == 422
    assert r.json()["error_code"] == "request_validation_error"

    r = await client.post("/prep-tasks", json=_create_body(ids, qty="0"))
    assert r.status_code == 422


async def test_update_status_cancel_and_delete(client: httpx.AsyncClient, async_session_maker):
    ids = await _seed(async_session_maker, lot_qty=10, line_qty=10)
    task_id = (await client.post("/prep-tasks", json=_create_body(ids))).json()["id"]

    r = await client.put(
        f"/prep-tasks/{task_id}",
        json={
            "packer_id": 8,
            "items": [
                {"order_item_id": ids["order_item_id"], "lot_id": ids["lot_id"], "quantity": "6"}
            ],
        },
    )
    assert r.status_code == 200, r.text
    assert r.json()["packer_id"] == 8
    assert await _qty(async_session_maker, ids["lot_id"]) == Decimal("4")

    r = await client.patch(f"/prep-tasks/{task_id}/status", json={"status": "in_progress"})
    assert r.status_code == 200
    assert r.json()["started_at"] is not None

    r = await client.delete(f"/prep-tasks/{task_id}")
    assert r.status_code == 409

    r = await client.post(f"/prep-tasks/{task_id}/cancel")
    assert r.status_code == 200
    assert r.json()["status"] == "cancelled"
    assert await _qty(async_session_maker, ids["lot_id"]) == Decimal("10")
    async with async_session_maker() as s:
        assert await order_remain(s, ids["order_item_id"]) == Decimal("10")

    r = await client.post(f"/prep-tasks/{task_id}/cancel")
    assert r.status_code == 409
    assert r.json()["error_code"] == "already_cancelled"

    r = await client.delete(f"/prep-tasks/{task_id}")
    assert r.status_code == 204
    r = await client.get(f"/prep-tasks/{task_id}")
    assert r.status_code == 404
    assert r.json()["error_code"] == "not_found"


async def test_put_without_items_repays_reservation(client: httpx.AsyncClient, async_session_maker):
    ids = await _seed(async_session_maker, lot_qty=10, line_qty=10)
    task_id = (await client.post("/prep-tasks", json=_create_body(ids))).json()["id"]

    r = await client.put(f"/prep-tasks/{task_id}", json={"note": "moved to dock 2"})

    assert r.status_code == 200
    assert r.json()["note"] == "moved to dock 2"
    assert r.json()["item_count"] == 0
    assert await _qty(async_session_maker, ids["lot_id"]) == Decimal("10")
    async with async_session_maker() as s:
        assert await order_remain(s, ids["order_item_id"]) == Decimal("10")


async def test_put_items_null_same_as_absent(client: httpx.AsyncClient, async_session_maker):
    ids = await _seed(async_session_maker, lot_qty=10, line_qty=10)
    task_id = (await client.post("/prep-tasks", json=_create_body(ids))).json()["id"]

    r = await client.put(f"/prep-tasks/{task_id}", json={"items": None, "packer_id": 4})

    assert r.status_code == 200, r.text
    assert r.json()["packer_id"] == 4
    assert r.json()["item_count"] == 0
    assert await _qty(async_session_maker, ids["lot_id"]) == Decimal("10")


async def test_quantity_scale_limited_to_three_decimals(
    client: httpx.AsyncClient, async_session_maker
):
    ids = await _seed(async_session_maker, lot_qty=10, line_qty=10)

    r = await client.post("/prep-tasks", json=_create_body(ids, qty="0.0004"))
    assert r.status_code == 422
    assert r.json()["error_code"] == "request_validation_error"
    assert await _qty(async_session_maker, ids["lot_id"]) == Decimal("10")

    body = (await client.post("/prep-tasks", json=_create_body(ids, qty="0.125"))).json()
    assert Decimal(body["items"][0]["requested_qty"]) == Decimal("0.125")

    r = await client.put(
        f"/prep-tasks/{body['id']}/items/{body['items'][0]['id']}",
        json={"packed_qty": "0.1255"},
    )
    assert r.status_code == 422

    r = await client.post(f"/prep-tasks/{body['id']}/cancel")
    assert r.status_code == 200
    assert await _qty(async_session_maker, ids["lot_id"]) == Decimal("10")


async def test_packer_update_and_packed_total(client: httpx.AsyncClient, async_session_maker):
    ids = await _seed(async_session_maker, lot_qty=10)
    body = (await client.post("/prep-tasks", json=_create_body(ids))).json()
    task_id, item_id = body["id"], body["items"][0]["id"]

    r = await client.put(
        f"/prep-tasks/{task_id}/items/{item_id}",
        json={"packed_qty": "4", "post_evidence": "s3://box/1.jpg"},
    )
    assert r.status_code == 200, r.text
    assert Decimal(r.json()["packed_qty"]) == Decimal("4")

    r = await client.put(f"/prep-tasks/{task_id}/items/{item_id}", json={"packed_qty": "-1"})
    assert r.status_code == 422

    r = await client.get(f"/prep-tasks/order-items/{ids['order_item_id']}/packed-qty")
    assert r.status_code == 200
    assert Decimal(r.json()["packed_qty"]) == Decimal("4")


async def test_review_flow(client: httpx.AsyncClient, async_session_maker):
    ids = await _seed(async_session_maker)
    task_id = (await client.post("/prep-tasks", json=_create_body(ids, qty="1"))).json()["id"]

    r = await client.post(f"/prep-tasks/{task_id}/review", json={"reviewer_id": 5})
    assert r.status_code == 409

    await client.patch(f"/prep-tasks/{task_id}/status", json={"status": "in_progress"})
    await client.patch(f"/prep-tasks/{task_id}/status", json={"status": "completed"})

    r = await client.post(f"/prep-tasks/{task_id}/review", json={"reviewer_id": 5})
    assert r.status_code == 200
    assert r.json()["result"] == "pending"

    r = await client.patch(f"/prep-tasks/{task_id}/review", json={"result": "confirmed"})
    assert r.status_code == 200
    assert r.json()["result"] == "confirmed"

    r = await client.get(f"/prep-tasks/{task_id}/review")
    assert r.json()["reviewer_id"] == 5


async def test_stats_endpoints(client: httpx.AsyncClient, async_session_maker):
    ids = await _seed(async_session_maker, lot_qty=10, line_qty=10)
    await client.post("/prep-tasks", json=_create_body(ids, qty="1", packer_id=21))

    r = await client.get("/prep-tasks/stats/overview")
    assert r.status_code == 200
    stats = {s["status"]: s for s in r.json()}
    assert stats["pending"]["total"] == 1

    r = await client.get("/prep-tasks/stats/by-user/21")
    assert r.status_code == 200
    assert {s["status"]: s["total"] for s in r.json()}["pending"] == 1


async def test_unknown_task_is_404(client: httpx.AsyncClient):
    r = await client.get("/prep-tasks/999")
    assert r.status_code == 404
