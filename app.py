"""JSON API for the multi-tenant seller backend."""

from __future__ import annotations

import logging
import math
import os
import re
from functools import wraps
from typing import Any, Callable, Mapping, Optional

import jwt
from authlib.integrations.base_client import OAuthError
from authlib.integrations.flask_client import OAuth
from dotenv import load_dotenv
from flask import Flask, Response, abort, g, jsonify, redirect, request, send_from_directory, url_for
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

# Environment files must be loaded before the data and security modules read their settings.
load_dotenv()

from database import (  # noqa: E402
    PROVIDER_GOOGLE,
    ROLE_SELLER,
    add_order_tracking,
    consume_password_reset,
    create_category,
    create_order,
    create_password_reset,
    create_user_account,
    delete_customer,
    delete_product,
    fetch_categories,
    fetch_customers,
    fetch_low_stock_products,
    fetch_orders,
    fetch_overview_analytics,
    fetch_products,
    find_customer_by_email,
    get_category_by_name,
    get_customer,
    get_or_create_oauth_user,
    get_order,
    get_order_status,
    get_product,
    get_seller,
    get_seller_id_for_user,
    get_user_by_email,
    get_user_by_id,
    init_db,
    insert_product,
    set_product_stock,
    update_customer,
    update_order_status,
    update_payment_status,
    update_product,
    update_user_profile,
)
from documents import orders_to_csv, render_invoice_pdf  # noqa: E402
from security import (  # noqa: E402
    create_access_token,
    decode_access_token,
    generate_reset_token,
    hash_password,
    verify_password,
)
from storage import MAX_FILE_SIZE, UPLOAD_DIR, StorageError, delete_local_image, save_image  # noqa: E402

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

# Ensure the database and default categories exist before serving.
init_db()

app = Flask(__name__)
app.config["SECRET_KEY"] = os.getenv("SECRET_KEY", "dev-secret-key-change-me")
app.config["MAX_CONTENT_LENGTH"] = MAX_FILE_SIZE + 1024 * 1024
app.json.sort_keys = False

FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173").rstrip("/")
CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "").split(",") if origin.strip()]
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
LOW_STOCK_THRESHOLD = int(os.getenv("LOW_STOCK_THRESHOLD", "10"))
PASSWORD_RESET_MESSAGE = "If the email exists, a reset link has been sent."
SOCIAL_LOGIN_MESSAGE = "This account uses social login. Please sign in with Google."
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
IMAGE_URL_PATTERN = re.compile(r"^(https?://\S+|/uploads/\S+)$", re.IGNORECASE)
PRODUCT_SORTS = {"newest", "oldest", "price_low", "price_high", "stock_low", "stock_high", "name_az", "name_za"}

CORS(app, supports_credentials=True, origins=CORS_ORIGINS or "*")

oauth = OAuth(app)
if GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET:
    oauth.register(
        name="google",
        client_id=GOOGLE_CLIENT_ID,
        client_secret=GOOGLE_CLIENT_SECRET,
        server_metadata_url="https://accounts.google.com/.well-known/openid-configuration",
        client_kwargs={"scope": "openid email profile"},
    )


# --------------------------------------------------------------------------------------
# Request helpers
# --------------------------------------------------------------------------------------


def _payload() -> dict[str, Any]:
    """Return the request body from JSON or multipart form fields."""

    if request.mimetype in ("multipart/form-data", "application/x-www-form-urlencoded"):
        return request.form.to_dict()
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _text(payload: Mapping[str, Any], key: str) -> Optional[str]:
    """Trim whitespace from a text field, keeping None for absent keys."""

    value = payload.get(key)
    if value is None:
        return None
    return str(value).strip()


def _strict_int(value: object) -> Optional[int]:
    """Parse whole numbers from JSON numbers or form strings; None when invalid."""

    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _strict_float(value: object) -> Optional[float]:
    """Parse finite numbers; NaN and infinities count as invalid."""

    if isinstance(value, bool) or value is None:
        return None
    try:
        parsed = float(str(value).strip()) if isinstance(value, str) else float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


def _is_valid_email(value: str) -> bool:
    """Basic validation to ensure the string resembles an email address."""
    if not value:
        return False
    return bool(EMAIL_PATTERN.match(value))


def _validate_password(email: str, password: str) -> str | None:
    """Return an error message if the password fails validation, otherwise None."""
    lowered = password.lower()
    local_part = email.split("@", 1)[0].lower()

    if len(password) < 6:
        return "Password must be at least 6 characters"
    if lowered in {"password", "password1", "letmein", "123456", "qwerty"}:
        return "Please choose a less common password."
    if local_part and lowered == local_part:
        return "Password cannot match the email address."
    return None


# --------------------------------------------------------------------------------------
# Authentication
# --------------------------------------------------------------------------------------


def _request_token(allow_query_token: bool) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header.split(" ", 1)[1].strip() or None
    if allow_query_token:
        return (request.args.get("token") or "").strip() or None
    return None


def auth_required(view: Optional[Callable] = None, *, allow_query_token: bool = False):
    """Require a valid JWT; download links may also pass it as ``?token=``."""

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapped(*args, **kwargs):
            token = _request_token(allow_query_token)
            if not token:
                abort(401, description="No token provided")
            try:
                g.auth = decode_access_token(token)
            except jwt.InvalidTokenError as exc:
                app.logger.info("Rejected token on %s: %s", request.path, exc)
                abort(401, description="Invalid or expired token")
            return func(*args, **kwargs)

        return wrapped

    if view is not None:
        return decorator(view)
    return decorator


def _current_user_id() -> int:
    return int(g.auth["id"])


def _current_seller_id(*, status_code: int = 400) -> int:
    """Resolve the seller for the token, falling back to the user row for older tokens."""

    seller_id = g.auth.get("sellerId")
    if not seller_id:
        seller_id = get_seller_id_for_user(_current_user_id())
    if not seller_id:
        abort(status_code, description="Seller account not found")
    return int(seller_id)


def _public_user(user: Mapping[str, object]) -> dict[str, object]:
    return {
        "id": user["id"],
        "name": user["name"],
        "email": user["email"],
        "role": user["role"],
        "sellerId": user["seller_id"],
        "authProvider": user["auth_provider"],
    }


def _google_client():
    client = oauth.create_client("google")
    if client is None:
        abort(404, description="Google sign-in is not configured")
    return client


# --------------------------------------------------------------------------------------
# Error handling
# --------------------------------------------------------------------------------------


@app.errorhandler(HTTPException)
def handle_http_error(exc: HTTPException):
    return jsonify({"message": exc.description}), exc.code


@app.errorhandler(Exception)
def handle_unexpected_error(exc: Exception):
    app.logger.exception("Unhandled error on %s %s", request.method, request.path)
    return jsonify({"message": "Something went wrong", "error": str(exc)}), 500


# --------------------------------------------------------------------------------------
# Health and static uploads
# --------------------------------------------------------------------------------------


@app.get("/api/health")
def health():
    return jsonify({"status": "ok"})


@app.get("/uploads/<path:filename>")
def uploaded_file(filename: str):
    """Serve locally stored product images."""
    return send_from_directory(UPLOAD_DIR, filename)


# --------------------------------------------------------------------------------------
# Auth routes
# --------------------------------------------------------------------------------------


@app.post("/api/auth/register")
def register():
    """Create a seller account and return a signed token."""
    payload = _payload()
    name = _text(payload, "name") or ""
    email = (_text(payload, "email") or "").lower()
    password = str(payload.get("password") or "")
    role = (_text(payload, "role") or ROLE_SELLER).upper()

    if not name or not email or not password:
        abort(400, description="Missing required fields")
    if not _is_valid_email(email):
        abort(400, description="Provide a valid email address")
    if role != ROLE_SELLER:
        abort(400, description="Only seller accounts can be registered")

    business_name = _text(payload, "businessName")
    phone = _text(payload, "phone")
    if not business_name or not phone:
        abort(400, description="Business name & phone required")

    password_error = _validate_password(email, password)
    if password_error:
        abort(400, description=password_error)
    if get_user_by_email(email):
        abort(409, description="Email already exists")

    user = create_user_account(
        name,
        email,
        hash_password(password),
        role=role,
        business_name=business_name,
        phone=phone,
        gst_number=_text(payload, "gstNumber") or None,
    )
    app.logger.info("Registered seller account %s", email)
    return jsonify({"token": create_access_token(user), "user": _public_user(user)}), 201


@app.post("/api/auth/login")
def login():
    """Authenticate with email and password."""
    payload = _payload()
    email = _text(payload, "email") or ""
    password = str(payload.get("password") or "")
    if not email or not password:
        abort(400, description="Email and password required")

    user = get_user_by_email(email)
    if not user:
        abort(404, description="User not found")
    if not user["password_hash"]:
        abort(400, description=SOCIAL_LOGIN_MESSAGE)
    if not verify_password(password, str(user["password_hash"])):
        abort(400, description="Incorrect password")

    return jsonify(
        {
            "message": "Login successful",
            "user": _public_user(user),
            "token": create_access_token(user),
        }
    )


@app.get("/api/auth/profile")
@auth_required
def get_profile():
    user = get_user_by_id(_current_user_id())
    if not user:
        abort(404, description="User not found")
    return jsonify(user)


@app.put("/api/auth/profile")
@auth_required
def update_profile():
    """Update the signed-in user's name, password, or seller details."""
    payload = _payload()
    user_id = _current_user_id()
    name = _text(payload, "name")
    password = payload.get("password")

    if name is not None and not name:
        abort(400, description="Name cannot be empty")

    password_hash = None
    if password:
        current = get_user_by_id(user_id)
        if not current:
            abort(404, description="User not found")
        password_error = _validate_password(str(current["email"]), str(password))
        if password_error:
            abort(400, description=password_error)
        password_hash = hash_password(str(password))

    user = update_user_profile(
        user_id,
        name=name,
        password_hash=password_hash,
        business_name=_text(payload, "businessName") or None,
        phone=_text(payload, "phone"),
        gst_number=_text(payload, "gstNumber"),
    )
    if not user:
        abort(404, description="User not found")
    return jsonify(user)


@app.post("/api/auth/logout")
@auth_required
def logout():
    """Tokens are stateless; the client discards its copy."""
    return jsonify({"message": "Logged out"})


@app.post("/api/auth/forgot-password")
def forgot_password():
    """Issue a 30 minute reset token; delivery is logged until email is wired up."""
    email = _text(_payload(), "email")
    if not email:
        abort(400, description="Email is required")

    user = get_user_by_email(email)
    if not user:
        return jsonify({"message": PASSWORD_RESET_MESSAGE})
    if not user["password_hash"]:
        return jsonify({"message": SOCIAL_LOGIN_MESSAGE})

    token = generate_reset_token()
    create_password_reset(int(user["id"]), token)
    app.logger.info("Password reset link for %s: %s/reset-password/%s", user["email"], FRONTEND_URL, token)
    return jsonify({"message": PASSWORD_RESET_MESSAGE})


@app.post("/api/auth/reset-password/<token>")
def reset_password(token: str):
    password = str(_payload().get("password") or "")
    if len(password) < 6:
        abort(400, description="Password must be at least 6 characters")
    if not consume_password_reset(token, hash_password(password)):
        abort(400, description="Invalid or expired token")
    return jsonify({"message": "Password reset successful"})


@app.get("/api/auth/google")
def google_login():
    client = _google_client()
    return client.authorize_redirect(url_for("google_callback", _external=True))


@app.get("/api/auth/google/callback")
def google_callback():
    """Finish Google sign-in and hand the JWT to the frontend."""
    client = _google_client()
    try:
        token = client.authorize_access_token()
        profile = token.get("userinfo") or client.userinfo(token=token)
    except OAuthError as exc:
        app.logger.warning("Google sign-in failed: %s", exc)
        abort(400, description="Google sign-in failed")

    email = (profile or {}).get("email")
    if not email:
        abort(400, description="Google account has no email")

    user = get_or_create_oauth_user(str(email), str(profile.get("name") or ""), provider=PROVIDER_GOOGLE)
    return redirect(f"{FRONTEND_URL}/oauth-success?token={create_access_token(user)}")


# --------------------------------------------------------------------------------------
# Categories
# --------------------------------------------------------------------------------------


@app.get("/api/categories")
def list_categories():
    return jsonify(fetch_categories())


@app.post("/api/categories")
@auth_required
def add_category():
    name = _payload().get("name")
    if not isinstance(name, str) or not name.strip():
        abort(400, description="Invalid category name")
    name = name.strip()
    if get_category_by_name(name):
        abort(409, description="Category already exists")
    return jsonify(create_category(name)), 201


# --------------------------------------------------------------------------------------
# Products
# --------------------------------------------------------------------------------------


def _parse_product_fields(payload: Mapping[str, Any], *, partial: bool) -> dict[str, Any]:
    """Validate product fields, aborting with 400 on the first problem."""

    fields: dict[str, Any] = {}

    name = _text(payload, "name")
    if name is not None or not partial:
        if not name:
            abort(400, description="Product name is required")
        fields["name"] = name

    category = _text(payload, "category")
    if category is not None or not partial:
        if not category:
            abort(400, description="Category is required")
        fields["category"] = category

    if "price" in payload or not partial:
        price = _strict_float(payload.get("price"))
        if price is None or price <= 0:
            abort(400, description="Price must be a positive number")
        fields["price"] = round(price, 2)

    if "stock" in payload:
        stock = _strict_int(payload.get("stock"))
        if stock is None or stock < 0:
            abort(400, description="Stock must be a whole number of zero or more")
        fields["stock"] = stock
    elif not partial:
        fields["stock"] = 0

    description = _text(payload, "description")
    if description is not None:
        fields["description"] = description

    image_url = _text(payload, "imageUrl") or _text(payload, "image")
    if image_url:
        if not IMAGE_URL_PATTERN.match(image_url):
            abort(400, description="Image must be a valid URL")
        fields["image_url"] = image_url

    return fields


def _uploaded_image_url() -> Optional[str]:
    try:
        return save_image(request.files.get("image"))
    except ValueError as exc:
        abort(400, description=str(exc))
    except StorageError as exc:
        abort(500, description=str(exc))


@app.get("/api/products")
@auth_required
def list_products():
    seller_id = _current_seller_id()
    sort = (request.args.get("sort") or "newest").strip()
    return jsonify(
        fetch_products(
            seller_id,
            search=(request.args.get("search") or "").strip() or None,
            category=(request.args.get("category") or "").strip() or None,
            sort=sort if sort in PRODUCT_SORTS else "newest",
        )
    )


@app.get("/api/products/low-stock")
@auth_required
def low_stock_products():
    seller_id = _current_seller_id()
    threshold = LOW_STOCK_THRESHOLD
    if request.args.get("threshold") is not None:
        parsed = _strict_int(request.args.get("threshold"))
        if parsed is None or parsed < 0:
            abort(400, description="Threshold must be a whole number of zero or more")
        threshold = parsed
    return jsonify(fetch_low_stock_products(seller_id, threshold))


@app.post("/api/products")
@auth_required
def add_product():
    """Create a product from JSON or a multipart form with an optional image."""
    seller_id = _current_seller_id()
    fields = _parse_product_fields(_payload(), partial=False)
    uploaded_url = _uploaded_image_url()
    if uploaded_url:
        fields["image_url"] = uploaded_url
    product = insert_product(seller_id, **fields)
    return jsonify(product), 201


@app.post("/api/products/upload")
@auth_required
def upload_product_image():
    """Store a standalone product image and return its URL."""
    upload = request.files.get("file")
    if not upload or not upload.filename:
        abort(400, description="No file uploaded")
    try:
        url = save_image(upload)
    except ValueError as exc:
        abort(400, description=str(exc))
    except StorageError:
        abort(500, description="Image upload failed")
    return jsonify({"url": url})


@app.get("/api/products/<int:product_id>")
@auth_required
def product_detail(product_id: int):
    product = get_product(product_id, _current_seller_id())
    if not product:
        abort(404, description="Product not found")
    return jsonify(product)


@app.put("/api/products/<int:product_id>")
@auth_required
def edit_product(product_id: int):
    seller_id = _current_seller_id()
    existing = get_product(product_id, seller_id)
    if not existing:
        abort(404, description="Product not found")

    fields = _parse_product_fields(_payload(), partial=True)
    uploaded_url = _uploaded_image_url()
    if uploaded_url:
        fields["image_url"] = uploaded_url

    product = update_product(product_id, seller_id, **fields)
    if not product:
        delete_local_image(uploaded_url)
        abort(404, description="Product not found")
    if fields.get("image_url") and existing.get("imageUrl") != fields["image_url"]:
        delete_local_image(existing.get("imageUrl"))
    return jsonify(product)


@app.patch("/api/products/<int:product_id>/stock")
@auth_required
def adjust_product_stock(product_id: int):
    """Set ``stock`` directly or apply a relative ``adjustment``."""
    seller_id = _current_seller_id()
    payload = _payload()
    stock = _strict_int(payload.get("stock")) if "stock" in payload else None
    adjustment = _strict_int(payload.get("adjustment")) if "adjustment" in payload else None
    if stock is None and adjustment is None:
        abort(400, description="Provide a whole-number stock or adjustment")

    try:
        product = set_product_stock(product_id, seller_id, stock=stock, adjustment=adjustment)
    except ValueError as exc:
        abort(400, description=str(exc))
    if not product:
        abort(404, description="Product not found")
    return jsonify(product)


@app.delete("/api/products/<int:product_id>")
@auth_required
def remove_product(product_id: int):
    removed = delete_product(product_id, _current_seller_id())
    if not removed:
        abort(404, description="Product not found")
    delete_local_image(removed.get("imageUrl"))
    return jsonify({"message": "Product deleted successfully"})


# --------------------------------------------------------------------------------------
# Orders
# --------------------------------------------------------------------------------------


@app.post("/api/orders")
@auth_required
def place_order():
    """Create an order priced from the seller's catalogue."""
    seller_id = _current_seller_id()
    payload = _payload()

    customer_name = _text(payload, "customerName")
    if not customer_name:
        abort(400, description="Customer name is required")
    customer_email = _text(payload, "customerEmail") or None
    if customer_email and not _is_valid_email(customer_email):
        abort(400, description="Provide a valid customer email")

    raw_items = payload.get("products")
    if not isinstance(raw_items, list) or not raw_items:
        abort(400, description="Products are required")
    items: list[dict[str, int]] = []
    for entry in raw_items:
        if not isinstance(entry, Mapping):
            abort(400, description="Each product needs a productId and a positive quantity")
        product_id = _strict_int(entry.get("productId"))
        quantity = _strict_int(entry.get("quantity", 1))
        if product_id is None or quantity is None or quantity <= 0:
            abort(400, description="Each product needs a productId and a positive quantity")
        items.append({"product_id": product_id, "quantity": quantity})

    tax = 0.0
    if payload.get("tax") is not None:
        parsed_tax = _strict_float(payload.get("tax"))
        if parsed_tax is None or parsed_tax < 0:
            abort(400, description="Tax must be a number of zero or more")
        tax = parsed_tax

    try:
        order = create_order(
            seller_id,
            customer_name=customer_name,
            customer_phone=_text(payload, "customerPhone") or None,
            customer_email=customer_email,
            shipping_address=_text(payload, "shippingAddress") or None,
            payment_method=_text(payload, "paymentMethod") or None,
            items=items,
            tax=tax,
        )
    except ValueError as exc:
        abort(400, description=str(exc))
    return jsonify(order), 201


@app.get("/api/orders")
@auth_required
def list_orders():
    seller_id = _current_seller_id()
    status = (request.args.get("status") or "").strip() or None
    return jsonify(fetch_orders(seller_id, status=status))


@app.get("/api/orders/export")
@auth_required(allow_query_token=True)
def export_orders():
    """Download the seller's orders as CSV."""
    seller_id = _current_seller_id(status_code=403)
    status = (request.args.get("status") or "").strip() or None
    csv_text = orders_to_csv(fetch_orders(seller_id, status=status))
    return Response(
        csv_text,
        mimetype="text/csv",
        headers={"Content-Disposition": "attachment; filename=orders-export.csv"},
    )


@app.get("/api/orders/<int:order_id>")
@auth_required
def order_detail(order_id: int):
    order = get_order(order_id, _current_seller_id())
    if not order:
        abort(404, description="Order not found")
    return jsonify(order)


@app.patch("/api/orders/<int:order_id>/status")
@auth_required
def change_order_status(order_id: int):
    payload = _payload()
    status = _text(payload, "status")
    if not status:
        abort(400, description="Invalid request")
    order = update_order_status(order_id, _current_seller_id(), status, note=_text(payload, "note") or None)
    if not order:
        abort(404, description="Order not found")
    return jsonify(order)


@app.patch("/api/orders/<int:order_id>/payment")
@auth_required
def change_payment_status(order_id: int):
    payload = _payload()
    status = _text(payload, "status")
    if not status:
        abort(400, description="Invalid request")
    order = update_payment_status(
        order_id,
        _current_seller_id(),
        status,
        method=_text(payload, "method") or None,
        note=_text(payload, "note") or None,
    )
    if not order:
        abort(404, description="Order not found")
    return jsonify(order)


@app.post("/api/orders/<int:order_id>/track")
@auth_required
def add_tracking(order_id: int):
    payload = _payload()
    tracking_number = _text(payload, "trackingNumber")
    if not tracking_number:
        abort(400, description="Invalid request")
    order = add_order_tracking(
        order_id, _current_seller_id(), tracking_number, note=_text(payload, "note") or None
    )
    if not order:
        abort(404, description="Order not found")
    return jsonify(order)


@app.get("/api/orders/<int:order_id>/status")
@auth_required
def order_status(order_id: int):
    status = get_order_status(order_id, _current_seller_id())
    if status is None:
        abort(404, description="Order not found")
    return jsonify({"status": status})


@app.get("/api/orders/<int:order_id>/invoice")
@auth_required(allow_query_token=True)
def order_invoice(order_id: int):
    """Render the invoice PDF; the token may come from the download link."""
    seller_id = _current_seller_id(status_code=403)
    order = get_order(order_id, seller_id)
    if not order:
        abort(404, description="Order not found")
    pdf_bytes = render_invoice_pdf(order, get_seller(seller_id))
    return Response(
        pdf_bytes,
        mimetype="application/pdf",
        headers={"Content-Disposition": f"attachment; filename=invoice-{order_id}.pdf"},
    )


# --------------------------------------------------------------------------------------
# Customers
# --------------------------------------------------------------------------------------


@app.get("/api/customers")
@auth_required
def list_customers():
    seller_id = _current_seller_id()
    search = (request.args.get("search") or "").strip() or None
    return jsonify(fetch_customers(seller_id, search=search))


@app.get("/api/customers/<int:customer_id>")
@auth_required
def customer_detail(customer_id: int):
    customer = get_customer(customer_id, _current_seller_id())
    if not customer:
        abort(404, description="Customer not found")
    return jsonify(customer)


@app.put("/api/customers/<int:customer_id>")
@auth_required
def edit_customer(customer_id: int):
    seller_id = _current_seller_id()
    payload = _payload()
    name = _text(payload, "name")
    email = _text(payload, "email")
    phone = _text(payload, "phone")

    if name is not None and not name:
        abort(400, description="Customer name cannot be empty")
    if email:
        if not _is_valid_email(email):
            abort(400, description="Provide a valid customer email")
        clash = find_customer_by_email(seller_id, email)
        if clash and int(clash["id"]) != customer_id:
            abort(409, description="Another customer already uses that email")

    customer = update_customer(customer_id, seller_id, name=name, email=email, phone=phone)
    if not customer:
        abort(404, description="Customer not found")
    return jsonify(customer)


@app.delete("/api/customers/<int:customer_id>")
@auth_required
def remove_customer(customer_id: int):
    if not delete_customer(customer_id, _current_seller_id()):
        abort(404, description="Customer not found")
    return jsonify({"message": "Customer deleted successfully"})


# --------------------------------------------------------------------------------------
# Analytics
# --------------------------------------------------------------------------------------


@app.get("/api/analytics/overview")
@auth_required
def analytics_overview():
    return jsonify(fetch_overview_analytics(_current_seller_id()))


if __name__ == "__main__":
    app.run(debug=True, port=int(os.getenv("PORT", "4000")))
