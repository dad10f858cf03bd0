from __future__ import annotations

import io

import pytest

import app as app_module
import storage
from tests.conftest import create_product

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def test_products_require_authentication(client):
    assert client.get("/api/products").status_code == 401
    assert client.post("/api/products", json={"name": "x"}).status_code == 401


def test_create_and_fetch_product(client, seller):
    product = create_product(client, seller["headers"], description="Handwoven", price="1499.999")

    assert product["name"] == "Cotton Saree"
    assert product["price"] == 1500.0
    assert product["stock"] == 5
    assert product["sellerId"] == seller["user"]["sellerId"]

    fetched = client.get(f"/api/products/{product['id']}", headers=seller["headers"]).get_json()
    assert fetched["description"] == "Handwoven"


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"name": ""}, "Product name is required"),
        ({"category": "  "}, "Category is required"),
        ({"price": 0}, "Price must be a positive number"),
        ({"price": "abc"}, "Price must be a positive number"),
        ({"stock": -1}, "Stock must be a whole number of zero or more"),
        ({"stock": 2.5}, "Stock must be a whole number of zero or more"),
        ({"price": "nan"}, "Price must be a positive number"),
        ({"price": "Infinity"}, "Price must be a positive number"),
        ({"imageUrl": "ftp://example.com/x.png"}, "Image must be a valid URL"),
    ],
)
def test_create_product_validation(client, seller, overrides, message):
    payload = {"name": "Mug", "category": "Home & Kitchen", "price": 250, "stock": 3}
    payload.update(overrides)
    response = client.post("/api/products", json=payload, headers=seller["headers"])
    assert response.status_code == 400
    assert response.get_json()["message"] == message


def test_list_products_search_filter_and_sort(client, seller):
    create_product(client, seller["headers"], name="Brass Lamp", category="Home & Kitchen", price=800, stock=2)
    create_product(client, seller["headers"], name="Silk Scarf", category="Fashion", price=450, stock=9)
    create_product(client, seller["headers"], name="Cotton Kurta", category="Fashion", price=950, stock=0)

    fashion = client.get("/api/products?category=fashion", headers=seller["headers"]).get_json()
    assert {item["name"] for item in fashion} == {"Silk Scarf", "Cotton Kurta"}

    search = client.get("/api/products?search=LAMP", headers=seller["headers"]).get_json()
    assert [item["name"] for item in search] == ["Brass Lamp"]

    by_price = client.get("/api/products?sort=price_low", headers=seller["headers"]).get_json()
    assert [item["price"] for item in by_price] == [450.0, 800.0, 950.0]

    newest = client.get("/api/products?sort=bogus", headers=seller["headers"]).get_json()
    assert [item["name"] for item in newest] == ["Cotton Kurta", "Silk Scarf", "Brass Lamp"]


def test_products_are_scoped_to_the_seller(client, seller, other_seller):
    product = create_product(client, seller["headers"])

    assert client.get("/api/products", headers=other_seller["headers"]).get_json() == []
    assert client.get(f"/api/products/{product['id']}", headers=other_seller["headers"]).status_code == 404
    assert (
        client.put(f"/api/products/{product['id']}", json={"price": 1}, headers=other_seller["headers"]).status_code
        == 404
    )
    assert client.delete(f"/api/products/{product['id']}", headers=other_seller["headers"]).status_code == 404
    assert client.get(f"/api/products/{product['id']}", headers=seller["headers"]).status_code == 200


def test_update_product_partial_fields(client, seller):
    product = create_product(client, seller["headers"])

    response = client.put(
        f"/api/products/{product['id']}",
        json={"price": 999.5, "description": "Festive edition"},
        headers=seller["headers"],
    )
    assert response.status_code == 200
    updated = response.get_json()
    assert updated["price"] == 999.5
    assert updated["description"] == "Festive edition"
    assert updated["name"] == "Cotton Saree"
    assert updated["stock"] == 5

    bad = client.put(f"/api/products/{product['id']}", json={"name": ""}, headers=seller["headers"])
    assert bad.status_code == 400


def test_stock_set_and_adjust(client, seller):
    product = create_product(client, seller["headers"], stock=5)
    url = f"/api/products/{product['id']}/stock"

    assert client.patch(url, json={"stock": 12}, headers=seller["headers"]).get_json()["stock"] == 12
    assert client.patch(url, json={"adjustment": -4}, headers=seller["headers"]).get_json()["stock"] == 8

    negative = client.patch(url, json={"adjustment": -9}, headers=seller["headers"])
    assert negative.status_code == 400
    assert negative.get_json()["message"] == "Stock cannot be negative."

    assert client.patch(url, json={}, headers=seller["headers"]).status_code == 400
    assert client.patch("/api/products/9999/stock", json={"stock": 1}, headers=seller["headers"]).status_code == 404


def test_low_stock_products(client, seller):
    create_product(client, seller["headers"], name="Plenty", stock=40)
    create_product(client, seller["headers"], name="Few", stock=3)
    create_product(client, seller["headers"], name="None Left", stock=0)

    default = client.get("/api/products/low-stock", headers=seller["headers"]).get_json()
    assert [item["name"] for item in default] == ["None Left", "Few"]

    strict = client.get("/api/products/low-stock?threshold=0", headers=seller["headers"]).get_json()
    assert [item["name"] for item in strict] == ["None Left"]

    assert client.get("/api/products/low-stock?threshold=-2", headers=seller["headers"]).status_code == 400


def test_delete_product(client, seller):
    product = create_product(client, seller["headers"])
    response = client.delete(f"/api/products/{product['id']}", headers=seller["headers"])
    assert response.status_code == 200
    assert response.get_json()["message"] == "Product deleted successfully"
    assert client.get(f"/api/products/{product['id']}", headers=seller["headers"]).status_code == 404


def test_create_product_with_multipart_image(client, seller):
    response = client.post(
        "/api/products",
        data={
            "name": "Clay Pot",
            "category": "Home & Kitchen",
            "price": "350",
            "stock": "7",
            "image": (io.BytesIO(PNG_BYTES), "pot.png", "image/png"),
        },
        content_type="multipart/form-data",
        headers=seller["headers"],
    )
    assert response.status_code == 201, response.get_json()
    product = response.get_json()
    assert product["stock"] == 7
    assert product["imageUrl"].startswith("/uploads/")
    assert product["imageUrl"].endswith(".png")

    served = client.get(product["imageUrl"])
    assert served.status_code == 200
    assert served.data == PNG_BYTES


def test_standalone_image_upload(client, seller):
    response = client.post(
        "/api/products/upload",
        data={"file": (io.BytesIO(PNG_BYTES), "photo.png", "image/png")},
        content_type="multipart/form-data",
        headers=seller["headers"],
    )
    assert response.status_code == 200
    assert response.get_json()["url"].startswith("/uploads/")


def test_upload_rejects_missing_and_non_image_files(client, seller):
    missing = client.post(
        "/api/products/upload", data={}, content_type="multipart/form-data", headers=seller["headers"]
    )
    assert missing.status_code == 400
    assert missing.get_json()["message"] == "No file uploaded"

    text_file = client.post(
        "/api/products/upload",
        data={"file": (io.BytesIO(b"hello"), "notes.txt", "text/plain")},
        content_type="multipart/form-data",
        headers=seller["headers"],
    )
    assert text_file.status_code == 400
    assert "image" in text_file.get_json()["message"].lower()


def test_upload_extension_follows_content_type_not_filename(client, seller):
    response = client.post(
        "/api/products/upload",
        data={"file": (io.BytesIO(b"<script>alert(1)</script>"), "x.html", "image/png")},
        content_type="multipart/form-data",
        headers=seller["headers"],
    )
    assert response.status_code == 200
    url = response.get_json()["url"]
    assert url.endswith(".png")

    served = client.get(url)
    assert served.status_code == 200
    assert served.mimetype == "image/png"


def test_failed_update_removes_the_new_image(client, seller, monkeypatch):
    product = create_product(client, seller["headers"])
    before = set(storage.UPLOAD_DIR.iterdir()) if storage.UPLOAD_DIR.exists() else set()
    monkeypatch.setattr(app_module, "update_product", lambda *args, **kwargs: None)

    response = client.put(
        f"/api/products/{product['id']}",
        data={"image": (io.BytesIO(PNG_BYTES), "pot.png", "image/png")},
        content_type="multipart/form-data",
        headers=seller["headers"],
    )
    assert response.status_code == 404
    assert set(storage.UPLOAD_DIR.iterdir()) == before
