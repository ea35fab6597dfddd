"""
Catalog API tests.

Verifies:
- Every role can browse active products; only the owner can change them
- Retired products and categories disappear from reads but keep their rows
- Stock is never set directly, only restocked
"""

import pytest

from conftest import make_product
from exhibition.models import Category, Product


# =============================================================================
# UNAUTHENTICATED ACCESS - 401
# =============================================================================


@pytest.mark.parametrize(
    "method,path",
    [
        ("GET", "/api/products"),
        ("GET", "/api/products/1"),
        ("POST", "/api/products"),
        ("PUT", "/api/products/1"),
        ("POST", "/api/products/1/restock"),
        ("DELETE", "/api/products/1"),
        ("GET", "/api/categories"),
        ("POST", "/api/categories"),
        ("DELETE", "/api/categories/1"),
    ],
)
def test_requires_auth(client, db_session, method, path):
    resp = getattr(client, method.lower())(path)
    assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"


# =============================================================================
# PRODUCT READS - ANY ROLE
# =============================================================================


class TestProductReads:

    @pytest.fixture
    def catalog(self, db_session):
        return {
            "ibuprofen": make_product(db_session, "Ibuprofen 200mg", 420, 12),
            "aspirin": make_product(db_session, "Aspirin", 300, 5),
            "retired": make_product(db_session, "Ibuprofen Old", 100, 1, status=Product.STATUS_INACTIVE),
            "percent": make_product(db_session, "Zinc 100%", 150, 2),
        }

    def test_lists_active_products_by_name(self, client, db_session, employee_headers, catalog):
        resp = client.get("/api/products", headers=employee_headers)

        assert resp.status_code == 200
        assert [p["name"] for p in resp.get_json()] == ["Aspirin", "Ibuprofen 200mg", "Zinc 100%"]

    def test_search_is_case_insensitive_substring(self, client, db_session, employee_headers, catalog):
        resp = client.get("/api/products?search=IBU", headers=employee_headers)

        assert [p["id"] for p in resp.get_json()] == [catalog["ibuprofen"].id]

    def test_search_wildcards_are_literal(self, client, db_session, employee_headers, catalog):
        resp = client.get("/api/products?search=%25", headers=employee_headers)

        assert [p["name"] for p in resp.get_json()] == ["Zinc 100%"]

    def test_get_product(self, client, db_session, employee_headers, catalog):
        resp = client.get(f"/api/products/{catalog['aspirin'].id}", headers=employee_headers)

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["price"] == "3.00"
        assert body["stock_quantity"] == 5

    def test_retired_product_is_404(self, client, db_session, employee_headers, catalog):
        resp = client.get(f"/api/products/{catalog['retired'].id}", headers=employee_headers)

        assert resp.status_code == 404
        assert resp.get_json()["kind"] == "not_found"

    @pytest.mark.parametrize("product_id", ["4242", str(2**70)])
    def test_unknown_product_is_404(self, client, db_session, employee_headers, product_id):
        assert client.get(f"/api/products/{product_id}", headers=employee_headers).status_code == 404


# =============================================================================
# PRODUCT WRITES - OWNER ONLY
# =============================================================================


class TestProductWrites:

    def test_owner_creates_product(self, client, db_session, owner_headers):
        category = client.post("/api/categories", json={"name": "Pain relief"}, headers=owner_headers)
        category_id = category.get_json()["category"]["id"]

        resp = client.post("/api/products", headers=owner_headers, json={
            "name": "Paracetamol",
            "price": "2.75",
            "stock_quantity": 40,
            "category_id": category_id,
            "dose": "500mg",
            "location_in_store": "Aisle 3",
        })

        assert resp.status_code == 201
        product = resp.get_json()["product"]
        assert (product["price"], product["stock_quantity"], product["category_id"]) == ("2.75", 40, category_id)
        assert db_session.query(Product).filter_by(name="Paracetamol").one().price_cents == 275

    @pytest.mark.parametrize(
        "payload",
        [
            {"price": "1.00"},
            {"name": "X", "price": "1.234"},
            {"name": "X", "price": "-1"},
            {"name": "X", "price": "1.00", "stock_quantity": -1},
            {"name": "X", "price": "1.00", "stock_quantity": "ten"},
            {"name": "X", "price": "1.00", "category_id": 999},
            {"name": "X", "price": "1.00", "dose": "d" * 101},
        ],
    )
    def test_invalid_product_is_400(self, client, db_session, owner_headers, payload):
        resp = client.post("/api/products", json=payload, headers=owner_headers)

        assert resp.status_code == 400
        assert resp.get_json()["kind"] == "validation"
        assert db_session.query(Product).count() == 0

    def test_employee_cannot_write(self, client, db_session, employee_headers, product_a):
        assert client.post("/api/products", json={"name": "X", "price": "1"}, headers=employee_headers).status_code == 403
        assert client.put(f"/api/products/{product_a.id}", json={"price": "1"}, headers=employee_headers).status_code == 403
        assert client.post(
            f"/api/products/{product_a.id}/restock", json={"quantity": 1}, headers=employee_headers,
        ).status_code == 403
        assert client.delete(f"/api/products/{product_a.id}", headers=employee_headers).status_code == 403

    def test_partial_update(self, client, db_session, owner_headers, product_a):
        resp = client.put(f"/api/products/{product_a.id}", headers=owner_headers, json={
            "price": "12.00",
            "notes": "Keep refrigerated",
        })

        assert resp.status_code == 200
        product = resp.get_json()["product"]
        assert (product["name"], product["price"], product["notes"]) == ("Product A", "12.00", "Keep refrigerated")
        assert product["stock_quantity"] == 10

    @pytest.mark.parametrize(
        "payload",
        [
            {"stock_quantity": 99},
            {"barcode": "123"},
            {"name": "  "},
            {},
        ],
    )
    def test_invalid_update_is_400(self, client, db_session, owner_headers, product_a, payload):
        resp = client.put(f"/api/products/{product_a.id}", json=payload, headers=owner_headers)

        assert resp.status_code == 400
        assert db_session.query(Product.stock_quantity).filter_by(id=product_a.id).scalar() == 10

    def test_update_unknown_is_404(self, client, db_session, owner_headers):
        assert client.put("/api/products/4242", json={"price": "1"}, headers=owner_headers).status_code == 404

    def test_restock(self, client, db_session, owner_headers, product_b):
        resp = client.post(f"/api/products/{product_b.id}/restock", json={"quantity": 7}, headers=owner_headers)

        assert resp.status_code == 200
        assert resp.get_json()["product"]["stock_quantity"] == 10

    @pytest.mark.parametrize("quantity", [0, -3, "5", None, 2**63])
    def test_invalid_restock_is_400(self, client, db_session, owner_headers, product_b, quantity):
        resp = client.post(f"/api/products/{product_b.id}/restock", json={"quantity": quantity}, headers=owner_headers)

        assert resp.status_code == 400
        assert db_session.query(Product.stock_quantity).filter_by(id=product_b.id).scalar() == 3

    def test_delete_retires_product(self, client, db_session, owner_headers, employee_headers, product_a):
        assert client.delete(f"/api/products/{product_a.id}", headers=owner_headers).status_code == 200

        assert client.get("/api/products", headers=employee_headers).get_json() == []
        assert db_session.get(Product, product_a.id, populate_existing=True).status == Product.STATUS_INACTIVE

        resp = client.post(
            "/api/invoices",
            json={"customer_name": "Jane", "items": [{"product_id": product_a.id, "quantity": 1}]},
            headers=employee_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["kind"] == "not_found"


# =============================================================================
# CATEGORIES
# =============================================================================


class TestCategories:

    def test_create_list_delete(self, client, db_session, owner_headers, employee_headers):
        for name in ("Vitamins", "Antibiotics"):
            assert client.post("/api/categories", json={"name": name}, headers=owner_headers).status_code == 201

        listed = client.get("/api/categories", headers=employee_headers).get_json()
        assert [c["name"] for c in listed] == ["Antibiotics", "Vitamins"]

        vitamins = next(c for c in listed if c["name"] == "Vitamins")
        assert client.delete(f"/api/categories/{vitamins['id']}", headers=owner_headers).status_code == 200
        assert [c["name"] for c in client.get("/api/categories", headers=owner_headers).get_json()] == ["Antibiotics"]
        assert db_session.get(Category, vitamins["id"], populate_existing=True).status == Category.STATUS_INACTIVE

        again = client.delete(f"/api/categories/{vitamins['id']}", headers=owner_headers)
        assert again.status_code == 404

    def test_duplicate_name_is_409(self, client, db_session, owner_headers):
        client.post("/api/categories", json={"name": "Vitamins"}, headers=owner_headers)

        resp = client.post("/api/categories", json={"name": " vitamins "}, headers=owner_headers)
        assert resp.status_code == 409
        assert resp.get_json()["kind"] == "conflict"

    def test_retired_name_can_be_reused(self, client, db_session, owner_headers):
        first = client.post("/api/categories", json={"name": "Vitamins"}, headers=owner_headers).get_json()
        client.delete(f"/api/categories/{first['category']['id']}", headers=owner_headers)

        assert client.post("/api/categories", json={"name": "Vitamins"}, headers=owner_headers).status_code == 201

    def test_name_required(self, client, db_session, owner_headers):
        resp = client.post("/api/categories", json={"name": "   "}, headers=owner_headers)
        assert resp.status_code == 400

    def test_employee_cannot_manage(self, client, db_session, employee_headers):
        assert client.post("/api/categories", json={"name": "X"}, headers=employee_headers).status_code == 403
        assert client.delete("/api/categories/1", headers=employee_headers).status_code == 403
