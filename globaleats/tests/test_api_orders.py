"""
订单API集成测试
测试订单相关的API端点
"""

import pytest

CHECKOUT_BODY = {
    "cart": {
        "groups": [
            {"brand_id": "burger", "lines": [
                {"menu_item_id": "m-burger", "quantity": 3, "unit_price_at_add_time": "50.00"},
            ]},
            {"brand_id": "pizza", "lines": [
                {"menu_item_id": "m-pizza", "quantity": 1, "unit_price_at_add_time": "120.00"},
            ]},
        ]
    },
    "payment_method": "card",
}


@pytest.fixture
def checkout(client, kitchen, token_for):
    """以顾客身份结算，返回响应数据"""
    def _checkout(**overrides):
        body = {**CHECKOUT_BODY, "address_id": kitchen.address_id, **overrides}
        response = client.post("/api/v1/orders/checkout", json=body,
                               headers=token_for(kitchen.customer))
        assert response.status_code == 201, response.text
        return response.json()
    return _checkout


class TestCheckoutAPI:
    """结算接口"""

    def test_checkout_success(self, checkout):
        data = checkout(special_instructions="放门口")

        assert len(data["orders"]) == 2
        burger, pizza = data["orders"]
        assert burger["brand_id"] == "burger"
        assert burger["outlet_id"] == "o-burger"
        assert burger["status"] == "pending"
        assert burger["total_amount"] == "182.50"
        assert burger["lines"][0]["quantity"] == 3
        assert pizza["checkout_batch_id"] == data["checkout_batch_id"]
        assert data["summary"] == {
            "total_orders": 2,
            "total_amount": "338.50",
            "total_delivery_fee": "55.00",
        }
        assert "user_id" not in burger

    def test_requires_token(self, client, kitchen):
        response = client.post("/api/v1/orders/checkout",
                               json={**CHECKOUT_BODY, "address_id": kitchen.address_id})
        assert response.status_code == 401
        data = response.json()
        assert data["success"] is False
        assert data["error_code"] == "AUTHENTICATION_REQUIRED"

    def test_rejects_bad_token(self, client, kitchen):
        response = client.post("/api/v1/orders/checkout",
                               json={**CHECKOUT_BODY, "address_id": kitchen.address_id},
                               headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_rejected_checkout_lists_failures(self, client, kitchen, token_for):
        body = {
            **CHECKOUT_BODY,
            "address_id": kitchen.address_id,
            "delivery_coordinate": {"latitude": 40.7128, "longitude": -74.0060},
        }
        response = client.post("/api/v1/orders/checkout", json=body,
                               headers=token_for(kitchen.customer))

        assert response.status_code == 422
        data = response.json()
        assert data["error_code"] == "CHECKOUT_REJECTED"
        failures = data["details"]["failures"]
        assert [f["brand_id"] for f in failures] == ["burger", "pizza"]
        assert {f["error_code"] for f in failures} == {"NO_OUTLET_IN_RANGE"}

    def test_duplicate_brand_is_validation_error(self, client, kitchen, token_for):
        group = CHECKOUT_BODY["cart"]["groups"][0]
        body = {**CHECKOUT_BODY, "address_id": kitchen.address_id,
                "cart": {"groups": [group, group]}}
        response = client.post("/api/v1/orders/checkout", json=body,
                               headers=token_for(kitchen.customer))
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_zero_quantity_is_validation_error(self, client, kitchen, token_for):
        body = {**CHECKOUT_BODY, "address_id": kitchen.address_id, "cart": {"groups": [
            {"brand_id": "burger", "lines": [
                {"menu_item_id": "m-burger", "quantity": 0, "unit_price_at_add_time": "50.00"},
            ]},
        ]}}
        response = client.post("/api/v1/orders/checkout", json=body,
                               headers=token_for(kitchen.customer))
        assert response.status_code == 422

    def test_unknown_address(self, client, kitchen, token_for):
        response = client.post("/api/v1/orders/checkout",
                               json={**CHECKOUT_BODY, "address_id": "addr-missing"},
                               headers=token_for(kitchen.customer))
        assert response.status_code == 404
        assert response.json()["error_code"] == "ADDRESS_NOT_FOUND"


class TestStatusAPI:
    """状态变更与取消接口"""

    def test_vendor_confirms(self, client, kitchen, checkout, token_for):
        order_id = checkout()["orders"][0]["id"]
        response = client.patch(f"/api/v1/orders/{order_id}/status",
                                json={"target_status": "confirmed"},
                                headers=token_for(kitchen.vendor))
        assert response.status_code == 200
        assert response.json()["status"] == "confirmed"

    def test_illegal_transition_returns_current_status(self, client, kitchen, checkout,
                                                       token_for):
        order_id = checkout()["orders"][0]["id"]
        response = client.patch(f"/api/v1/orders/{order_id}/status",
                                json={"target_status": "preparing"},
                                headers=token_for(kitchen.vendor))
        assert response.status_code == 409
        data = response.json()
        assert data["error_code"] == "ILLEGAL_TRANSITION"
        assert data["details"]["current_status"] == "pending"

    def test_customer_cannot_advance(self, client, kitchen, checkout, token_for):
        order_id = checkout()["orders"][0]["id"]
        response = client.patch(f"/api/v1/orders/{order_id}/status",
                                json={"target_status": "confirmed"},
                                headers=token_for(kitchen.customer))
        assert response.status_code == 403
        assert response.json()["error_code"] == "FORBIDDEN"

    def test_customer_cancels_prepaid_order(self, client, kitchen, checkout, token_for):
        order_id = checkout()["orders"][0]["id"]
        response = client.post(f"/api/v1/orders/{order_id}/cancel",
                               json={"reason": "下错单了"},
                               headers=token_for(kitchen.customer))
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "refunded"
        assert data["cancellation_reason"] == "下错单了"


class TestQueryAPI:
    """查询接口"""

    def test_list_my_orders(self, client, kitchen, checkout, token_for):
        checkout()
        response = client.get("/api/v1/orders", headers=token_for(kitchen.customer))
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["page"] == 1
        assert len(data["items"]) == 2

    def test_list_filters_by_status(self, client, kitchen, checkout, token_for):
        order_id = checkout()["orders"][0]["id"]
        client.post(f"/api/v1/orders/{order_id}/cancel", json={},
                    headers=token_for(kitchen.customer))

        response = client.get("/api/v1/orders", params={"status": "refunded"},
                              headers=token_for(kitchen.customer))
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["id"] == order_id

    def test_get_order(self, client, kitchen, checkout, token_for):
        order = checkout()["orders"][1]
        response = client.get(f"/api/v1/orders/{order['id']}",
                              headers=token_for(kitchen.customer))
        assert response.status_code == 200
        assert response.json()["order_number"] == order["order_number"]

    def test_get_order_of_someone_else(self, client, kitchen, checkout, token_for, seed):
        order_id = checkout()["orders"][0]["id"]
        stranger = seed.user("路人")
        response = client.get(f"/api/v1/orders/{order_id}", headers=token_for(stranger))
        assert response.status_code == 403

    def test_get_missing_order(self, client, kitchen, token_for):
        response = client.get("/api/v1/orders/99999", headers=token_for(kitchen.customer))
        assert response.status_code == 404
        assert response.json()["error_code"] == "ORDER_NOT_FOUND"

    def test_get_batch(self, client, kitchen, checkout, token_for):
        data = checkout()
        response = client.get(f"/api/v1/orders/batches/{data['checkout_batch_id']}",
                              headers=token_for(kitchen.customer))
        assert response.status_code == 200
        batch = response.json()
        assert [o["id"] for o in batch["orders"]] == [o["id"] for o in data["orders"]]
        assert batch["summary"]["total_orders"] == 2

    def test_vendor_orders(self, client, kitchen, checkout, token_for):
        checkout()
        response = client.get("/api/v1/vendor/orders", headers=token_for(kitchen.vendor))
        assert response.status_code == 200
        assert response.json()["total"] == 2

    def test_vendor_orders_requires_vendor(self, client, kitchen, token_for):
        response = client.get("/api/v1/vendor/orders", headers=token_for(kitchen.customer))
        assert response.status_code == 403


class TestServiceEndpoints:
    """健康检查"""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert "X-Request-ID" in response.headers

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["name"] == "GlobalEats API"
