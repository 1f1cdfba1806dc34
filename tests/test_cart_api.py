"""Tests for the authenticated cart endpoints."""

from models.cart import Cart


class TestCartAuth:
    def test_requires_token(self, client):
        response = client.get("/cart")
        assert response.status_code == 401
        assert response.json() == {"message": "Not authorized, no token"}

    def test_invalid_token(self, client):
        response = client.get("/cart", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401


class TestAddToCart:
    def test_empty_cart(self, client, auth_headers):
        response = client.get("/cart", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["items"] == []
        assert data["total"] == 0

    def test_add_and_merge(self, client, auth_headers, product):
        client.post("/cart", json={"product_id": product.id, "quantity": 2}, headers=auth_headers)
        response = client.post("/cart", json={"product_id": product.id}, headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert len(data["items"]) == 1
        assert data["items"][0]["quantity"] == 3
        assert data["items"][0]["kind"] == "product"
        assert data["subtotal"] == 300.0

    def test_add_package(self, client, auth_headers, package):
        response = client.post("/cart", json={"package_id": package.id, "quantity": 2}, headers=auth_headers)
        assert response.status_code == 200
        item = response.json()["items"][0]
        assert item["kind"] == "package"
        assert item["line_total"] == 240.0

    def test_client_price_is_ignored(self, client, auth_headers, product):
        response = client.post("/cart", json={"product_id": product.id, "quantity": 1, "price": 1}, headers=auth_headers)
        assert response.json()["items"][0]["unit_price"] == 100.0

    def test_merged_quantity_over_stock(self, client, auth_headers, second_product):
        client.post("/cart", json={"product_id": second_product.id, "quantity": 3}, headers=auth_headers)
        response = client.post("/cart", json={"product_id": second_product.id, "quantity": 2}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json() == {"message": "Not enough stock for Thermometer. Available: 4", "available": 4}

    def test_package_limited_by_component(self, client, auth_headers, package):
        response = client.post("/cart", json={"package_id": package.id, "quantity": 5}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["available"] == 4

    def test_both_references_rejected(self, client, auth_headers, product, package):
        response = client.post(
            "/cart", json={"product_id": product.id, "package_id": package.id}, headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Must provide productId or packageId"

    def test_unknown_product(self, client, auth_headers):
        response = client.post("/cart", json={"product_id": 42}, headers=auth_headers)
        assert response.status_code == 404


class TestUpdateCart:
    def _add(self, client, headers, product_id, quantity):
        response = client.post("/cart", json={"product_id": product_id, "quantity": quantity}, headers=headers)
        return response.json()["items"][0]["id"]

    def test_quantity_is_a_delta(self, client, auth_headers, product):
        item_id = self._add(client, auth_headers, product.id, 2)
        response = client.put(f"/cart/{item_id}", json={"quantity": 3}, headers=auth_headers)
        assert response.json()["items"][0]["quantity"] == 5

        response = client.put(f"/cart/{item_id}", json={"quantity": -4}, headers=auth_headers)
        assert response.json()["items"][0]["quantity"] == 1

    def test_cannot_go_below_one(self, client, auth_headers, product):
        item_id = self._add(client, auth_headers, product.id, 1)
        response = client.put(f"/cart/{item_id}", json={"quantity": -1}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Quantity can't go lower than one"

    def test_clamped_to_stock(self, client, auth_headers, second_product):
        item_id = self._add(client, auth_headers, second_product.id, 2)
        response = client.put(f"/cart/{item_id}", json={"quantity": 10}, headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["items"][0]["quantity"] == 4
        assert data["message"] == "Quantity updated to maximum available stock"

    def test_unknown_line(self, client, auth_headers):
        response = client.put("/cart/999", json={"quantity": 1}, headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["message"] == "Item not found in cart"

    def test_delete_line(self, client, auth_headers, product, second_product):
        item_id = self._add(client, auth_headers, product.id, 1)
        self._add(client, auth_headers, second_product.id, 1)
        response = client.delete(f"/cart/{item_id}", headers=auth_headers)
        assert [i["name"] for i in response.json()["items"]] == ["Thermometer"]

    def test_clear_keeps_coupon(self, client, auth_headers, product, coupon, db, user):
        self._add(client, auth_headers, product.id, 1)
        client.post("/cart/apply-coupon", json={"code": "HALF"}, headers=auth_headers)

        response = client.delete("/cart", headers=auth_headers)
        assert response.json() == {"message": "Cart cleared"}

        cart = db.query(Cart).filter(Cart.user_id == user.id).one()
        assert cart.items == []
        assert cart.coupon_code == "HALF"


class TestCartCoupon:
    def test_apply_coupon(self, client, auth_headers, product, coupon):
        client.post("/cart", json={"product_id": product.id, "quantity": 2}, headers=auth_headers)
        response = client.post("/cart/apply-coupon", json={"code": "half"}, headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["coupon"] == {"code": "HALF", "discount_percentage": 50.0, "discount_amount": 100.0}
        assert data["total"] == 100.0
        assert data["message"] == "Coupon applied successfully"

    def test_apply_unknown_coupon(self, client, auth_headers, product):
        client.post("/cart", json={"product_id": product.id}, headers=auth_headers)
        response = client.post("/cart/apply-coupon", json={"code": "NOPE"}, headers=auth_headers)
        assert response.status_code == 404
        assert response.json() == {"message": "Coupon not found"}

    def test_apply_not_applicable(self, client, auth_headers, product, second_product, make_coupon):
        make_coupon(code="THERMO", applicable_products=[second_product])
        client.post("/cart", json={"product_id": product.id}, headers=auth_headers)
        response = client.post("/cart/apply-coupon", json={"code": "THERMO"}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Coupon not applicable to items in cart"

    def test_stale_coupon_is_detached_on_view(self, client, auth_headers, product, coupon, db, reload):
        client.post("/cart", json={"product_id": product.id}, headers=auth_headers)
        client.post("/cart/apply-coupon", json={"code": "HALF"}, headers=auth_headers)

        reload(coupon).is_active = False
        db.commit()

        response = client.get("/cart", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["coupon"] is None
        assert data["discount_amount"] == 0
        assert data["coupon_message"] == "Coupon is not active"

        # Detached for good
        data = client.get("/cart", headers=auth_headers).json()
        assert data["coupon_message"] is None

    def test_remove_coupon(self, client, auth_headers, product, coupon):
        client.post("/cart", json={"product_id": product.id}, headers=auth_headers)
        client.post("/cart/apply-coupon", json={"code": "HALF"}, headers=auth_headers)
        response = client.post("/cart/remove-coupon", headers=auth_headers)
        assert response.json() == {"message": "Coupon removed successfully"}
        assert client.get("/cart", headers=auth_headers).json()["coupon"] is None
