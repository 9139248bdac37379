from decimal import Decimal

import pytest


@pytest.fixture
def checkout(client, auth_headers, customer, checkout_data):
    async def post(identity=None, **overrides):
        return await client.post(
            "/orders/", json=checkout_data(**overrides), headers=auth_headers(identity or customer)
        )
    return post


class TestCheckoutApi:
    async def test_requires_authentication(self, client, checkout_data):
        response = await client.post("/orders/", json=checkout_data())
        assert response.status_code == 401

    async def test_creates_pending_order(self, checkout, sender):
        response = await checkout()

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "pending"
        assert body["user_id"] == "user-1"
        assert Decimal(body["total_amount"]) == Decimal("19.98")
        assert body["delivery"]["delivery_type"] == "shipping"
        assert body["items"][0]["quantity"] == 2
        assert len(sender.messages) == 1

    async def test_pickup_order(self, checkout, pickup_delivery):
        response = await checkout(delivery=pickup_delivery())

        assert response.status_code == 201
        body = response.json()
        assert body["delivery"]["location_id"] == "loc-1"
        assert body["delivery"]["pickup_time"] == "12:00:00"
        assert body["pickup_location"]["name"] == "Main Street Shop"

    async def test_malformed_delivery_is_rejected_by_the_schema(self, checkout):
        response = await checkout(delivery={"delivery_type": "pickup", "pickup_time": "12:00"})
        assert response.status_code == 422

    async def test_empty_cart(self, checkout):
        response = await checkout(items=[])

        assert response.status_code == 422
        assert response.json()["error"] == "ValidationError"
        assert response.json()["detail"] == "Cart is empty"

    async def test_non_positive_quantity(self, checkout):
        response = await checkout(items=[{"product_id": "p1", "quantity": 0}])
        assert response.status_code == 422


class TestReadApi:
    async def test_owner_and_admin_can_read(self, client, checkout, auth_headers, customer, admin, other_customer):
        order_id = (await checkout()).json()["id"]

        assert (await client.get(f"/orders/{order_id}", headers=auth_headers(customer))).status_code == 200
        assert (await client.get(f"/orders/{order_id}", headers=auth_headers(admin))).status_code == 200
        assert (await client.get(f"/orders/{order_id}", headers=auth_headers(other_customer))).status_code == 404

    async def test_my_orders(self, client, checkout, auth_headers, customer, other_customer):
        mine = (await checkout()).json()["id"]
        await checkout(identity=other_customer)

        response = await client.get("/orders/mine", headers=auth_headers(customer))

        assert [order["id"] for order in response.json()] == [mine]

    async def test_admin_listing(self, client, checkout, auth_headers, customer, admin):
        await checkout()
        cash = (await checkout(payment_method="cash")).json()["id"]

        response = await client.get("/orders/", params={"status": "pending_cash"}, headers=auth_headers(admin))

        assert response.status_code == 200
        assert [order["id"] for order in response.json()] == [cash]
        assert (await client.get("/orders/", headers=auth_headers(customer))).status_code == 403

    async def test_pickup_locations_are_public(self, client):
        response = await client.get("/orders/pickup-locations")

        assert response.status_code == 200
        assert [location["id"] for location in response.json()] == ["loc-1"]

    async def test_delivery_settings(self, client, checkout, auth_headers, admin, customer):
        assert (await client.get("/orders/delivery-settings")).json() == {
            "shipping_enabled": True, "pickup_enabled": True,
        }

        denied = await client.put(
            "/orders/delivery-settings", json={"shipping_enabled": False, "pickup_enabled": True},
            headers=auth_headers(customer),
        )
        updated = await client.put(
            "/orders/delivery-settings", json={"shipping_enabled": False, "pickup_enabled": True},
            headers=auth_headers(admin),
        )

        assert denied.status_code == 403
        assert updated.json() == {"shipping_enabled": False, "pickup_enabled": True}
        assert (await checkout()).status_code == 422


class TestLifecycleApi:
    async def test_payment_session_and_cancel(self, client, checkout, auth_headers, customer, gateway):
        order_id = (await checkout()).json()["id"]

        session = await client.post(f"/orders/{order_id}/payment-session", headers=auth_headers(customer))
        cancelled = await client.post(f"/orders/{order_id}/cancel", headers=auth_headers(customer))

        assert session.status_code == 200
        assert session.json()["session_id"] in gateway.sessions
        assert session.json()["url"].startswith("https://checkout.fake/pay/")
        assert cancelled.json()["status"] == "cancelled"

    async def test_gateway_outage_is_a_bad_gateway(self, client, checkout, auth_headers, customer, gateway):
        order_id = (await checkout()).json()["id"]
        gateway.configure(should_succeed=False, failure_reason="Stripe is down")

        response = await client.post(f"/orders/{order_id}/payment-session", headers=auth_headers(customer))

        assert response.status_code == 502
        assert response.json()["error"] == "GatewayError"

    async def test_advance_status(self, client, checkout, auth_headers, customer, admin):
        order_id = (await checkout(payment_method="cash")).json()["id"]

        denied = await client.post(f"/orders/{order_id}/status", json={"status": "paid"}, headers=auth_headers(customer))
        paid = await client.post(f"/orders/{order_id}/status", json={"status": "paid"}, headers=auth_headers(admin))
        bogus = await client.post(f"/orders/{order_id}/status", json={"status": "teleported"}, headers=auth_headers(admin))

        assert denied.status_code == 403
        assert paid.json()["status"] == "paid"
        assert bogus.status_code == 422

    async def test_pending_online_order_conflicts(self, client, checkout, auth_headers, admin):
        order_id = (await checkout()).json()["id"]

        response = await client.post(f"/orders/{order_id}/status", json={"status": "paid"}, headers=auth_headers(admin))

        assert response.status_code == 409

    async def test_refund_without_payment(self, client, checkout, auth_headers, admin):
        order_id = (await checkout()).json()["id"]

        response = await client.post(f"/orders/{order_id}/refund", headers=auth_headers(admin))

        assert response.status_code == 412

    async def test_unknown_order(self, client, auth_headers, admin):
        response = await client.post("/orders/missing/refund", headers=auth_headers(admin))
        assert response.status_code == 404
