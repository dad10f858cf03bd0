from __future__ import annotations

import database


def test_default_categories_are_seeded(client):
    names = [category["name"] for category in client.get("/api/categories").get_json()]
    assert names == sorted(database.DEFAULT_CATEGORIES)


def test_seeding_is_idempotent():
    database.seed_data()
    database.seed_data()
    assert len(database.fetch_categories()) == len(database.DEFAULT_CATEGORIES)


def test_create_category(client, seller):
    response = client.post("/api/categories", json={"name": "  Toys  "}, headers=seller["headers"])
    assert response.status_code == 201
    assert response.get_json()["name"] == "Toys"
    assert "Toys" in [category["name"] for category in client.get("/api/categories").get_json()]


def test_create_category_rejects_bad_input(client, seller):
    assert client.post("/api/categories", json={"name": "Toys"}).status_code == 401
    assert client.post("/api/categories", json={"name": " "}, headers=seller["headers"]).status_code == 400
    assert client.post("/api/categories", json={"name": 12}, headers=seller["headers"]).status_code == 400

    duplicate = client.post("/api/categories", json={"name": "Fashion"}, headers=seller["headers"])
    assert duplicate.status_code == 409
    assert duplicate.get_json()["message"] == "Category already exists"


def test_health(client):
    assert client.get("/api/health").get_json() == {"status": "ok"}
