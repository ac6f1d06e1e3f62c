"""HTTP API tests through Flask's test client."""

import pytest
from sqlalchemy import text

from counterpos.services import customers_service, products_service
from counterpos.services.tenant_service import NAMESPACE_HEADER


@pytest.fixture
def catalog(client, db_session, profile):
    soap = client.post("/api/products", json={"name": "Savon", "price": 1000, "quantity": 5}).get_json()
    cloth = client.post("/api/products", json={
        "name": "Pagne",
        "base_price": 2000,
        "variants": [{"name": "Rouge", "quantity": 5}, {"name": "Bleu", "price_modifier": 500, "quantity": 1, "reorder_threshold": 2}],
    }).get_json()
    customer = client.post("/api/customers", json={"name": "Awa Diop", "phone": "+221770000000"}).get_json()
    return {"soap": soap, "cloth": cloth, "customer": customer}


def test_health(client, db_session):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "ok"
    assert body["checks"]["database"]["status"] == "healthy"


def test_product_crud(client, catalog):
    soap_id = catalog["soap"]["id"]
    assert catalog["soap"]["product_type"] == "simple"
    assert catalog["cloth"]["product_type"] == "variant"

    resp = client.put(f"/api/products/{soap_id}", json={"price": 1200})
    assert resp.status_code == 200
    assert resp.get_json()["price"] == 1200

    listing = client.get("/api/products?product_type=simple").get_json()
    assert [p["id"] for p in listing["items"]] == [soap_id]

    assert client.delete(f"/api/products/{soap_id}").status_code == 204
    assert client.get(f"/api/products/{soap_id}").status_code == 404
    assert client.delete(f"/api/products/{soap_id}").status_code == 404


def test_product_validation_errors(client, db_session):
    assert client.post("/api/products", json={"price": 100}).status_code == 400
    assert client.post("/api/products", json={"name": "X", "price": -1}).status_code == 400
    assert client.post("/api/products", json={"name": "X", "price": "12.5"}).status_code == 400
    assert client.post("/api/products", json={"name": "X", "price": 1, "sku": "nope"}).status_code == 400


def test_product_type_is_immutable(client, catalog):
    resp = client.put(f"/api/products/{catalog['soap']['id']}", json={"product_type": "pack"})
    assert resp.status_code == 400


def test_pack_of_packs_rejected(client, catalog):
    soap_id = catalog["soap"]["id"]
    pack = client.post("/api/products", json={
        "name": "Duo",
        "price": 1800,
        "pack_items": [{"product_id": soap_id, "quantity": 2}],
    })
    assert pack.status_code == 201
    assert pack.get_json()["product_type"] == "pack"

    resp = client.post("/api/products", json={
        "name": "Mega",
        "price": 3000,
        "pack_items": [{"product_id": pack.get_json()["id"], "quantity": 1}],
    })
    assert resp.status_code == 400

    # Soap is referenced by the pack
    assert client.delete(f"/api/products/{soap_id}").status_code == 409


def test_categories(client, db_session):
    parent = client.post("/api/categories", json={"name": "Hygiène"})
    assert parent.status_code == 201
    parent_id = parent.get_json()["id"]

    child = client.post("/api/categories", json={"name": "Savons", "parent_id": parent_id}).get_json()
    assert child["parent_id"] == parent_id

    assert client.delete(f"/api/categories/{parent_id}").status_code == 409
    assert client.put(f"/api/categories/{child['id']}", json={"name": "Savons & gels"}).get_json()["name"] == "Savons & gels"
    assert client.delete(f"/api/categories/{child['id']}").status_code == 204
    assert client.put("/api/categories/999", json={"name": "x"}).status_code == 404


def test_cart_quote(client, catalog):
    resp = client.post("/api/cart/quote", json={
        "items": [
            {"product_id": catalog["soap"]["id"], "quantity": 2},
            {"product_id": catalog["soap"]["id"], "quantity": 3},
        ],
        "discount_type": "percentage",
        "discount_value": 10,
        "apply_vat": True,
    })
    assert resp.status_code == 200
    body = resp.get_json()
    assert len(body["cart"]["lines"]) == 1
    assert body["cart"]["lines"][0]["quantity"] == 5
    assert body["totals"] == {
        "subtotal": 5000,
        "discount_amount": 500,
        "vat_amount": 810,
        "total_price": 5310,
    }


@pytest.mark.parametrize("discount", [
    {"discount_type": "percentage", "discount_value": "NaN"},
    {"discount_type": "fixed", "discount_value": "Infinity"},
])
def test_non_finite_discount_is_bad_request(client, catalog, discount):
    item = {"product_id": catalog["soap"]["id"], "quantity": 1}
    quote = client.post("/api/cart/quote", json={"items": [item], **discount})
    assert quote.status_code == 400
    assert quote.get_json()["error"] == "discount_value must be a number"

    sale = client.post("/api/sales", json={
        "customer_id": catalog["customer"]["id"], "payment_type": "CASH", "items": [item], **discount,
    })
    assert sale.status_code == 400
    assert client.get(f"/api/products/{catalog['soap']['id']}").get_json()["quantity"] == 5


def test_submit_sale_returns_invoice(client, catalog):
    blue = catalog["cloth"]["variants"][1]["id"]
    resp = client.post("/api/sales", json={
        "customer_id": catalog["customer"]["id"],
        "payment_type": "CASH",
        "items": [
            {"product_id": catalog["soap"]["id"], "quantity": 2},
            {"product_id": catalog["cloth"]["id"], "quantity": 1, "variant_id": blue},
        ],
        "user_pseudo": "caisse-1",
    })
    assert resp.status_code == 201
    invoice = resp.get_json()
    assert invoice["sale"]["invoice_id"] == "FAC-00001"
    assert invoice["sale"]["total_price"] == 2 * 1000 + 2500
    assert invoice["sale"]["user_pseudo"] == "caisse-1"
    assert invoice["customer"]["name"] == "Awa Diop"
    assert invoice["footer"] == "Merci pour votre achat !"

    soap = client.get(f"/api/products/{catalog['soap']['id']}").get_json()
    assert soap["quantity"] == 3

    fetched = client.get(f"/api/sales/{invoice['sale']['id']}").get_json()
    assert fetched["sale"]["invoice_id"] == "FAC-00001"


def test_submit_sale_insufficient_stock(client, catalog):
    resp = client.post("/api/sales", json={
        "customer_id": catalog["customer"]["id"],
        "payment_type": "CASH",
        "items": [{"product_id": catalog["soap"]["id"], "quantity": 6}],
    })
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["error"] == "Insufficient stock for Savon"
    assert body["details"]["on_hand"] == 5
    assert client.get("/api/sales").get_json()["count"] == 0


def test_submit_sale_unknown_customer(client, catalog):
    resp = client.post("/api/sales", json={
        "customer_id": 999,
        "payment_type": "CASH",
        "items": [{"product_id": catalog["soap"]["id"], "quantity": 1}],
    })
    assert resp.status_code == 404


def test_submit_sale_requires_fields(client, catalog):
    assert client.post("/api/sales", json={"payment_type": "CASH", "items": []}).status_code == 400
    resp = client.post("/api/sales", json={"customer_id": catalog["customer"]["id"], "payment_type": "CASH", "items": []})
    assert resp.status_code == 400


def test_credit_sale_and_payments(client, catalog):
    sale = client.post("/api/sales", json={
        "customer_id": catalog["customer"]["id"],
        "payment_type": "CREDIT",
        "items": [{"product_id": catalog["soap"]["id"], "quantity": 5}],
    }).get_json()["sale"]
    assert sale["status"] == "Credit"

    credit = client.get("/api/sales/credit").get_json()
    assert credit["outstanding"] == 5000

    first = client.post("/api/payments", json={"sale_id": sale["id"], "amount": 2000, "payment_type": "WAVE"})
    assert first.status_code == 201
    assert first.get_json()["remaining_balance"] == 3000

    too_much = client.post("/api/payments", json={"sale_id": sale["id"], "amount": 4000, "payment_type": "CASH"})
    assert too_much.status_code == 400

    last = client.post("/api/payments", json={"sale_id": sale["id"], "amount": 3000, "payment_type": "ORANGE_MONEY"})
    assert last.get_json()["sale_status"] == "Completed"

    listing = client.get(f"/api/payments?sale_id={sale['id']}").get_json()
    assert listing["count"] == 2
    assert client.get("/api/sales?status=Credit").get_json()["count"] == 0
    assert client.get("/api/sales?status=Bogus").status_code == 400


def test_payment_unknown_sale(client, db_session):
    resp = client.post("/api/payments", json={"sale_id": 404, "amount": 100, "payment_type": "CASH"})
    assert resp.status_code == 404


def test_deposit_and_balance_sale(client, catalog):
    customer_id = catalog["customer"]["id"]
    resp = client.post(f"/api/customers/{customer_id}/deposits", json={"amount": 1500})
    assert resp.status_code == 201
    assert resp.get_json()["customer"]["balance"] == 1500
    assert resp.get_json()["receipt_id"].startswith("DEP-")

    assert client.post(f"/api/customers/{customer_id}/deposits", json={"amount": 0}).status_code == 400
    assert client.post(f"/api/customers/{customer_id}/deposits", json={"amount": "abc"}).status_code == 400

    short = client.post("/api/sales", json={
        "customer_id": customer_id,
        "payment_type": "CUSTOMER_BALANCE",
        "items": [{"product_id": catalog["soap"]["id"], "quantity": 2}],
    })
    assert short.status_code == 400

    ok = client.post("/api/sales", json={
        "customer_id": customer_id,
        "payment_type": "CUSTOMER_BALANCE",
        "items": [{"product_id": catalog["soap"]["id"], "quantity": 1}],
    })
    assert ok.status_code == 201
    assert client.get(f"/api/customers/{customer_id}").get_json()["balance"] == 500


def test_customer_balance_not_writable(client, catalog):
    resp = client.put(f"/api/customers/{catalog['customer']['id']}", json={"balance": 100000})
    assert resp.status_code == 400


def test_timestamps_not_writable(client, catalog):
    stamp = "2020-01-01T00:00:00Z"
    resp = client.put(f"/api/customers/{catalog['customer']['id']}", json={"created_at": stamp})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Field not allowed: created_at"
    resp = client.put(f"/api/products/{catalog['soap']['id']}", json={"updated_at": stamp})
    assert resp.status_code == 400


def test_profile(client, db_session):
    profile = client.get("/api/profile").get_json()
    assert profile["invoice_prefix"] == "FAC-"
    assert profile["last_invoice_number"] == 0

    updated = client.put("/api/profile", json={"name": "Boutique Ndiaye", "invoice_prefix": "BN-"})
    assert updated.status_code == 200
    assert updated.get_json()["invoice_prefix"] == "BN-"

    assert client.put("/api/profile", json={"last_invoice_number": 99}).status_code == 400


def test_reorder_and_dashboard(client, catalog):
    client.put(f"/api/products/{catalog['soap']['id']}", json={"reorder_threshold": 5})

    reorder = client.get("/api/products/reorder").get_json()
    assert [e["name"] for e in reorder["items"]] == ["Pagne - Bleu", "Savon"]

    dashboard = client.get("/api/reports/dashboard").get_json()
    assert dashboard["products"] == 2
    assert dashboard["customers"] == 1
    assert dashboard["low_stock"] == 2

    assert client.get("/api/reports/dashboard?start=yesterday").status_code == 400


def test_namespace_header_scopes_data(client, catalog):
    other = {NAMESPACE_HEADER: "other-shop"}

    assert client.get("/api/products", headers=other).get_json()["count"] == 0
    assert client.get(f"/api/products/{catalog['soap']['id']}", headers=other).status_code == 404

    client.post("/api/products", json={"name": "Thé", "price": 300, "quantity": 1}, headers=other)
    assert client.get("/api/products", headers=other).get_json()["count"] == 1
    assert client.get("/api/products").get_json()["count"] == 2


def _bump_version(db_session, table, row_id):
    db_session.execute(
        text(f"UPDATE {table} SET version_id = version_id + 1 WHERE id = :id"),
        {"id": row_id},
    )


def test_concurrent_product_edit_is_conflict(client, catalog, db_session, monkeypatch):
    soap_id = catalog["soap"]["id"]
    apply_patch = products_service.apply_product_patch

    def racing_patch(p, patch):
        # a sale commits between the read and this edit's commit
        _bump_version(db_session, "products", p.id)
        apply_patch(p, patch)

    monkeypatch.setattr(products_service, "apply_product_patch", racing_patch)
    resp = client.put(f"/api/products/{soap_id}", json={"price": 1300})
    assert resp.status_code == 409
    assert resp.get_json()["details"]["cause"] == "StaleDataError"

    monkeypatch.undo()
    assert client.get(f"/api/products/{soap_id}").get_json()["price"] == 1000


def test_concurrent_customer_edit_is_conflict(client, catalog, db_session, monkeypatch):
    customer_id = catalog["customer"]["id"]
    apply_patch = customers_service.apply_customer_patch

    def racing_patch(c, patch):
        _bump_version(db_session, "customers", c.id)
        apply_patch(c, patch)

    monkeypatch.setattr(customers_service, "apply_customer_patch", racing_patch)
    resp = client.put(f"/api/customers/{customer_id}", json={"nickname": "Tata"})
    assert resp.status_code == 409
