from __future__ import annotations

import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["TOKEN_EXPIRY"] = "1h"
os.environ["SALT_ROUNDS"] = "4"
os.environ["SENSITIVE_DATA_KEY"] = "MDAwMDAwMDAwMDAwMDAwMDAwMDAwMDAwMDAwMDAwMDA="
os.environ["UPLOAD_MODE"] = "local"
os.environ["UPLOADS_DIR"] = tempfile.mkdtemp(prefix="seller-uploads-")
os.environ["FRONTEND_URL"] = "http://frontend.test"
os.environ.pop("GOOGLE_CLIENT_ID", None)
os.environ.pop("GOOGLE_CLIENT_SECRET", None)

import pytest  # noqa: E402

import app as app_module  # noqa: E402
import database  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_database():
    database.Base.metadata.drop_all(bind=database.engine)
    database.init_db()
    yield


@pytest.fixture
def client():
    app_module.app.config["TESTING"] = True
    with app_module.app.test_client() as test_client:
        yield test_client


def register_seller(client, email: str = "seller@example.com", **overrides) -> dict:
    payload = {
        "name": "Asha Rao",
        "email": email,
        "password": "s3cure-pass",
        "businessName": "Rao Textiles",
        "phone": "+91 98450 00000",
        "gstNumber": "29ABCDE1234F1Z5",
    }
    payload.update(overrides)
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 201, response.get_json()
    return response.get_json()


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def seller(client) -> dict:
    body = register_seller(client)
    return {"token": body["token"], "user": body["user"], "headers": auth_headers(body["token"])}


@pytest.fixture
def other_seller(client) -> dict:
    body = register_seller(client, email="rival@example.com", businessName="Rival Goods")
    return {"token": body["token"], "user": body["user"], "headers": auth_headers(body["token"])}


def create_product(client, headers, **overrides) -> dict:
    payload = {"name": "Cotton Saree", "category": "Fashion", "price": 1200, "stock": 5}
    payload.update(overrides)
    response = client.post("/api/products", json=payload, headers=headers)
    assert response.status_code == 201, response.get_json()
    return response.get_json()
