from __future__ import annotations

import csv
import io
import re

import pytest

import database
import documents
from tests.conftest import create_product

PAGE_PATTERN = re.compile(rb"/Type\s*/Page(?!s)")


@pytest.fixture
def order(client, seller):
    product = create_product(client, seller["headers"], name="Cotton Saree", price=1200)
    response = client.post(
        "/api/orders",
        json={
            "customerName": "Ravi, Kumar",
            "customerEmail": "ravi@example.com",
            "customerPhone": "+91 90000 11111",
            "shippingAddress": "12 MG Road\nBengaluru",
            "products": [{"productId": product["id"], "quantity": 2}],
            "tax": 216,
        },
        headers=seller["headers"],
    )
    assert response.status_code == 201
    return response.get_json()


def test_invoice_download_with_header_or_query_token(client, seller, order):
    response = client.get(f"/api/orders/{order['id']}/invoice", headers=seller["headers"])
    assert response.status_code == 200
    assert response.mimetype == "application/pdf"
    assert response.data.startswith(b"%PDF")
    assert f"invoice-{order['id']}.pdf" in response.headers["Content-Disposition"]

    via_link = client.get(f"/api/orders/{order['id']}/invoice?token={seller['token']}")
    assert via_link.status_code == 200
    assert via_link.data.startswith(b"%PDF")


def test_invoice_access_rules(client, seller, other_seller, order):
    assert client.get(f"/api/orders/{order['id']}/invoice").status_code == 401
    assert client.get(f"/api/orders/{order['id']}/invoice?token=garbage").status_code == 401
    assert client.get(f"/api/orders/{order['id']}/invoice", headers=other_seller["headers"]).status_code == 404


def test_query_token_is_not_accepted_elsewhere(client, seller):
    assert client.get(f"/api/orders?token={seller['token']}").status_code == 401


def test_invoice_paginates_long_orders(seller):
    seller_id = seller["user"]["sellerId"]
    items = []
    for index in range(80):
        product = database.insert_product(seller_id, f"Item {index}", 10.0, stock=1)
        items.append({"product_id": product["id"], "quantity": 1})
    order = database.create_order(seller_id, customer_name="Bulk Buyer", items=items)

    pdf_bytes = documents.render_invoice_pdf(order, database.get_seller(seller_id))
    assert len(PAGE_PATTERN.findall(pdf_bytes)) >= 2


def test_invoice_renders_without_seller_profile():
    order = {
        "id": 3,
        "createdAt": "2024-05-01T10:00:00",
        "customerName": "Solo",
        "products": [{"productName": "x" * 120, "quantity": 1, "priceAtPurchase": 5}],
        "subtotal": 5,
        "tax": 0,
        "totalAmount": 5,
    }
    assert documents.render_invoice_pdf(order, None).startswith(b"%PDF")


def test_export_csv(client, seller, order):
    response = client.get(f"/api/orders/export?token={seller['token']}")
    assert response.status_code == 200
    assert response.mimetype == "text/csv"
    assert "orders-export.csv" in response.headers["Content-Disposition"]

    rows = list(csv.reader(io.StringIO(response.get_data(as_text=True))))
    assert rows[0] == list(documents.EXPORT_HEADER)
    assert len(rows) == 2
    row = dict(zip(rows[0], rows[1]))
    assert row["Order ID"] == str(order["id"])
    assert row["Customer"] == "Ravi, Kumar"
    assert row["Status"] == "PENDING"
    assert row["Payment Status"] == "UNPAID"
    assert row["Total"] == "2616.00"
    assert row["Items"] == "Cotton Saree (x2)"


def test_export_respects_status_filter_and_tenant(client, seller, other_seller, order):
    filtered = client.get("/api/orders/export?status=delivered", headers=seller["headers"])
    assert len(list(csv.reader(io.StringIO(filtered.get_data(as_text=True))))) == 1

    rival = client.get("/api/orders/export", headers=other_seller["headers"])
    assert len(list(csv.reader(io.StringIO(rival.get_data(as_text=True))))) == 1

    assert client.get("/api/orders/export").status_code == 401


def test_orders_to_csv_joins_items():
    text = documents.orders_to_csv(
        [
            {
                "id": 9,
                "createdAt": "2024-05-01T10:00:00",
                "customerName": "Anu",
                "status": "SHIPPED",
                "paymentStatus": "PAID",
                "totalAmount": 12.5,
                "products": [
                    {"productName": "Tea", "quantity": 2},
                    {"productName": "Cup", "quantity": 1},
                ],
            }
        ]
    )
    lines = text.splitlines()
    assert lines[0] == ",".join(documents.EXPORT_HEADER)
    assert lines[1] == "9,2024-05-01T10:00:00,Anu,,,SHIPPED,PAID,12.50,Tea (x2) | Cup (x1)"
