"""
Integration tests for the order endpoints.

Tests order placement, aggregate status views, deletion and the admin
dashboard counters.
"""

import pytest

from tracking_backend.app.models.enums import ActorRole
from tracking_backend.app.models.package_status import PackageStatus
import tracking_backend.app.core.redis_client as redis_client_module
from tracking_backend.app.core.jwt import create_access_token

ORDER_PAYLOAD = {
    "customer_id": "customer-42",
    "customer_name": "Sara",
    "shipping_address": "12 Vali Asr St, Tehran",
    "source": "taobao",
    "packages": [
        {"tracking_number": "YT123", "description": "Shoes", "weight": 1.2},
        {"tracking_number": "YT124", "description": "Jacket", "internal_tracking_code": "CN-LOG-9"},
    ],
}


async def create_order(client, auth_headers, payload=ORDER_PAYLOAD):
    response = await client.post("/v1/orders", json=payload, headers=auth_headers(ActorRole.ADMIN, "admin-1"))
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_admin_creates_order_with_packages(client, auth_headers):
    data = await create_order(client, auth_headers)

    order = data["order"]
    assert order["customer_id"] == "customer-42"
    assert order["status"] == "PURCHASED_FROM_SELLER"
    assert data["aggregate_status"] == "PURCHASED_FROM_SELLER"
    assert data["has_reported_issue"] is False
    assert len(order["packages"]) == 2
    for package in order["packages"]:
        assert package["order_id"] == order["id"]
        assert package["current_status"] == "PURCHASED_FROM_SELLER"

    # Normalized records exist too
    package_id = order["packages"][0]["id"]
    response = await client.get(f"/v1/packages/{package_id}", headers=auth_headers(ActorRole.ORIGIN_AGENT))
    assert response.status_code == 200
    assert response.json()["tracking_number"] == "YT123"


@pytest.mark.asyncio
async def test_order_can_start_further_down_the_pipeline(client, auth_headers):
    payload = {**ORDER_PAYLOAD, "initial_status": "RECEIVED_AT_ORIGIN"}
    data = await create_order(client, auth_headers, payload)

    assert data["aggregate_status"] == "RECEIVED_AT_ORIGIN"


@pytest.mark.asyncio
async def test_agent_cannot_create_order(client, auth_headers):
    response = await client.post("/v1/orders", json=ORDER_PAYLOAD, headers=auth_headers(ActorRole.HUB_AGENT))

    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_FORBIDDEN"


@pytest.mark.asyncio
async def test_order_needs_at_least_one_package(client, auth_headers):
    payload = {**ORDER_PAYLOAD, "packages": []}
    response = await client.post("/v1/orders", json=payload, headers=auth_headers(ActorRole.ADMIN))

    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION"


@pytest.mark.asyncio
async def test_request_without_token_is_rejected(client):
    response = await client.get("/v1/orders")

    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_token_with_unknown_role_is_rejected(client):
    token = create_access_token(data={"sub": "x", "user_id": "u-1", "role": "CUSTOMER"})
    response = await client.get("/v1/orders", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_garbage_token_is_rejected(client):
    response = await client.get("/v1/orders", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json()["error_code"] == "ERR_UNAUTHORIZED"


@pytest.mark.asyncio
async def test_list_orders_filtered_by_customer(client, auth_headers):
    await create_order(client, auth_headers)
    await create_order(client, auth_headers, {**ORDER_PAYLOAD, "customer_id": "customer-7"})

    response = await client.get("/v1/orders", headers=auth_headers(ActorRole.DESTINATION_AGENT))
    assert response.json()["total"] == 2

    response = await client.get(
        "/v1/orders", params={"customer_id": "customer-7"}, headers=auth_headers(ActorRole.DESTINATION_AGENT)
    )
    data = response.json()
    assert data["total"] == 1
    assert data["orders"][0]["order"]["customer_id"] == "customer-7"


@pytest.mark.asyncio
async def test_order_status_follows_least_advanced_package(client, auth_headers):
    data = await create_order(client, auth_headers)
    order_id = data["order"]["id"]
    first, second = [p["id"] for p in data["order"]["packages"]]
    origin = auth_headers(ActorRole.ORIGIN_AGENT, "agent-7")

    response = await client.post(f"/v1/packages/{first}/status", json={"status": "QC_CHECKED"}, headers=origin)
    assert response.status_code == 200

    response = await client.get(f"/v1/orders/{order_id}/status", headers=origin)
    body = response.json()
    assert body["status"] == "PURCHASED_FROM_SELLER"
    assert body["package_statuses"] == {first: "QC_CHECKED", second: "PURCHASED_FROM_SELLER"}

    await client.post(f"/v1/packages/{second}/status", json={"status": "PACKED_AT_ORIGIN"}, headers=origin)

    response = await client.get(f"/v1/orders/{order_id}", headers=origin)
    assert response.json()["order"]["status"] == "QC_CHECKED"
    assert response.json()["aggregate_status"] == "QC_CHECKED"


@pytest.mark.asyncio
async def test_order_view_exposes_masked_issue(client, auth_headers):
    data = await create_order(client, auth_headers)
    order_id = data["order"]["id"]
    first = data["order"]["packages"][0]["id"]

    response = await client.post(
        f"/v1/packages/{first}/issue",
        json={"notes": "Item missing"},
        headers=auth_headers(ActorRole.ORIGIN_AGENT),
    )
    assert response.status_code == 200

    response = await client.get(f"/v1/orders/{order_id}/status", headers=auth_headers(ActorRole.ADMIN))
    body = response.json()
    assert body["status"] == "PURCHASED_FROM_SELLER"
    assert body["has_reported_issue"] is True


@pytest.mark.asyncio
async def test_unknown_order_returns_404(client, auth_headers):
    response = await client.get("/v1/orders/nope", headers=auth_headers(ActorRole.ADMIN))

    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_ORDER_NOT_FOUND"


@pytest.mark.asyncio
async def test_delete_order_removes_packages_and_history(client, auth_headers):
    data = await create_order(client, auth_headers)
    order_id = data["order"]["id"]
    package_id = data["order"]["packages"][0]["id"]
    admin = auth_headers(ActorRole.ADMIN, "admin-1")

    await client.post(f"/v1/packages/{package_id}/status", json={"status": "RECEIVED_AT_ORIGIN"}, headers=admin)

    response = await client.delete(f"/v1/orders/{order_id}", headers=auth_headers(ActorRole.ORIGIN_AGENT))
    assert response.status_code == 403

    response = await client.delete(f"/v1/orders/{order_id}", headers=admin)
    assert response.status_code == 204

    assert (await client.get(f"/v1/orders/{order_id}", headers=admin)).status_code == 404
    response = await client.get(f"/v1/packages/{package_id}", headers=admin)
    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_PKG_NOT_FOUND"
    response = await client.get(f"/v1/packages/{package_id}/tracking", headers=admin)
    assert response.json()["events"] == []

    assert (await client.delete(f"/v1/orders/{order_id}", headers=admin)).status_code == 404


@pytest.mark.asyncio
async def test_admin_stats_are_cached_until_orders_change(client, auth_headers):
    admin = auth_headers(ActorRole.ADMIN)
    await create_order(client, auth_headers)

    response = await client.get("/v1/admin/stats", headers=admin)
    assert response.status_code == 200
    stats = response.json()
    assert stats["total_orders"] == 1
    assert stats["total_packages"] == 2
    assert stats["status_counts"] == {"PURCHASED_FROM_SELLER": 2}
    assert stats["orders_with_issues"] == 0
    assert "tracking:cache:system_stats" in redis_client_module.redis_client.store

    await create_order(client, auth_headers)
    assert "tracking:cache:system_stats" not in redis_client_module.redis_client.store

    response = await client.get("/v1/admin/stats", headers=admin)
    assert response.json()["total_orders"] == 2


@pytest.mark.asyncio
async def test_stats_are_admin_only(client, auth_headers):
    response = await client.get("/v1/admin/stats", headers=auth_headers(ActorRole.HUB_AGENT))

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_edits_order_and_package_metadata(client, auth_headers):
    data = await create_order(client, auth_headers)
    order_id = data["order"]["id"]
    package_id = data["order"]["packages"][1]["id"]
    admin = auth_headers(ActorRole.ADMIN, "admin-1")

    response = await client.patch(
        f"/v1/orders/{order_id}",
        json={"customer_phone": "+98 912 000 0000", "packages": [{"id": package_id, "weight": 0.8}]},
        headers=admin,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["order"]["customer_phone"] == "+98 912 000 0000"
    assert body["aggregate_status"] == "PURCHASED_FROM_SELLER"

    response = await client.get(f"/v1/packages/{package_id}", headers=admin)
    assert response.json()["weight"] == 0.8
    assert response.json()["internal_tracking_code"] == "CN-LOG-9"


@pytest.mark.asyncio
async def test_order_edit_is_admin_only_and_checks_packages(client, auth_headers):
    data = await create_order(client, auth_headers)
    order_id = data["order"]["id"]

    response = await client.patch(
        f"/v1/orders/{order_id}", json={"customer_name": "x"}, headers=auth_headers(ActorRole.ORIGIN_AGENT)
    )
    assert response.status_code == 403

    response = await client.patch(
        f"/v1/orders/{order_id}",
        json={"packages": [{"id": "not-in-order", "weight": 1.0}]},
        headers=auth_headers(ActorRole.ADMIN),
    )
    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_PKG_NOT_FOUND"


@pytest.mark.asyncio
async def test_reconcile_endpoint_rebuilds_packages(client, auth_headers, seed_order):
    await seed_order(order_id="legacy", statuses=[PackageStatus.REPACKING, PackageStatus.ARRIVED_HUB], mirror=False)
    admin = auth_headers(ActorRole.ADMIN)

    response = await client.post("/v1/admin/reconcile-packages", headers=auth_headers(ActorRole.HUB_AGENT))
    assert response.status_code == 403

    response = await client.post("/v1/admin/reconcile-packages", headers=admin)
    assert response.status_code == 200
    assert response.json() == {"synced": 2}

    response = await client.get("/v1/packages/workload", headers=auth_headers(ActorRole.HUB_AGENT))
    assert response.json()["total"] == 2
