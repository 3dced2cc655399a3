"""Integration tests for the cart endpoints via TestClient."""

import pytest
from protean import current_domain
from storefront.cart.cart import Cart

LINES = [{"producto_id": "P1", "cantidad": 2, "precio": 10.0, "nombre": "Arroz Costeño", "unidad": "kg"}]


@pytest.fixture(autouse=True)
def shopper(customer):
    return customer()


class TestOpenCart:
    def test_creates_pending_cart(self, client, shopper_headers):
        response = client.post("/carrito", headers=shopper_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["cliente_id"] == "ana@example.com"
        assert body["proyecto_id"] == "10"
        assert body["productos"] == []
        assert body["estado"] == "pendiente"

    def test_returns_existing_cart(self, client, shopper_headers):
        first = client.post("/carrito", headers=shopper_headers).json()
        second = client.post("/carrito", headers=shopper_headers).json()
        assert first["id"] == second["id"]

    def test_missing_identity(self, client):
        response = client.post("/carrito")

        assert response.status_code == 401
        assert response.json() == {"message": "No autenticado", "code": "not_authenticated"}

    def test_customer_without_project(self, client, customer):
        customer(email="luis@example.com", dni="11111111", project_id=None)

        response = client.post("/carrito", headers={"X-Customer-Email": "luis@example.com"})

        assert response.status_code == 403
        assert response.json()["code"] == "not_authorized"


class TestReplaceCart:
    def test_replace_contents(self, client, shopper_headers):
        client.post("/carrito", headers=shopper_headers)

        response = client.put("/carrito", headers=shopper_headers, json={"productos": LINES, "total": 20.0})

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 20.0
        assert body["productos"][0]["producto_id"] == "P1"
        assert body["productos"][0]["unidad"] == "kg"

    def test_same_payload_twice(self, client, shopper_headers):
        client.post("/carrito", headers=shopper_headers)
        payload = {"productos": LINES, "total": 20.0}

        first = client.put("/carrito", headers=shopper_headers, json=payload).json()
        second = client.put("/carrito", headers=shopper_headers, json=payload).json()

        assert first == second

    def test_get_returns_stored_cart(self, client, shopper_headers):
        client.post("/carrito", headers=shopper_headers)
        client.put("/carrito", headers=shopper_headers, json={"productos": LINES, "total": 20.0})

        response = client.get("/carrito", headers=shopper_headers)

        assert response.json()["total"] == 20.0

    @pytest.mark.parametrize(
        "payload",
        [
            {"productos": "P1", "total": 20.0},
            {"productos": LINES, "total": -1},
            {"productos": LINES, "total": "veinte"},
            {"productos": LINES},
        ],
    )
    def test_bad_shape_or_total(self, client, shopper_headers, payload):
        client.post("/carrito", headers=shopper_headers)

        response = client.put("/carrito", headers=shopper_headers, json=payload)

        assert response.status_code == 400
        assert response.json()["message"] == "Productos debe ser un array y total un número mayor o igual a 0"

    @pytest.mark.parametrize(
        "line",
        [
            {"producto_id": "P1", "cantidad": 0, "precio": 10.0},
            {"producto_id": "P1", "cantidad": 1, "precio": 0},
            {"producto_id": 7, "cantidad": 1, "precio": 10.0},
            {"cantidad": 1, "precio": 10.0},
        ],
    )
    def test_bad_line_leaves_cart_untouched(self, client, shopper_headers, line):
        client.post("/carrito", headers=shopper_headers)
        client.put("/carrito", headers=shopper_headers, json={"productos": LINES, "total": 20.0})

        response = client.put("/carrito", headers=shopper_headers, json={"productos": [line], "total": 10.0})

        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"
        cart = current_domain.repository_for(Cart).pending_for("ana@example.com", "10")
        assert cart.total == 20.0
        assert len(cart.items) == 1

    def test_replace_without_cart(self, client, shopper_headers):
        response = client.put("/carrito", headers=shopper_headers, json={"productos": [], "total": 0})

        assert response.status_code == 404
        assert response.json()["message"] == "No existe un carrito pendiente para este usuario y proyecto"
