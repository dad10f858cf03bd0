"""SQLAlchemy-powered data layer for the seller backend."""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence

from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    and_,
    create_engine,
    delete,
    func,
    or_,
    select,
    update,
)
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    Session,
    mapped_column,
    relationship,
    selectinload,
    sessionmaker,
)
from sqlalchemy.pool import StaticPool

from security import decrypt_sensitive_value, encrypt_sensitive_value

logger = logging.getLogger(__name__)

ROLE_ADMIN = "ADMIN"
ROLE_SELLER = "SELLER"
PROVIDER_LOCAL = "LOCAL"
PROVIDER_GOOGLE = "GOOGLE"
STATUS_PENDING = "PENDING"
STATUS_SHIPPED = "SHIPPED"
STATUS_DELIVERED = "DELIVERED"
PAYMENT_UNPAID = "UNPAID"
DEFAULT_CATEGORIES = ("General", "Electronics", "Fashion", "Home & Kitchen", "Beauty", "Groceries")

# --------------------------------------------------------------------------------------
# Small coercion helpers
# --------------------------------------------------------------------------------------


def _as_int(value: object, default: int = 0) -> int:
    """Best-effort conversion to int with a fallback."""

    try:
        return int(str(value))
    except (TypeError, ValueError):
        return default


def _utcnow() -> datetime:
    """Naive UTC timestamp matching what the database stores."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _money(value: float) -> float:
    return round(float(value), 2)


# --------------------------------------------------------------------------------------
# SQLAlchemy setup
# --------------------------------------------------------------------------------------

DB_PATH = Path(__file__).with_name("store.db")
DATABASE_URL = os.getenv("DATABASE_URL") or f"sqlite:///{DB_PATH}"


def _build_engine(url: str) -> Engine:
    """Create the engine, sharing one connection for in-memory SQLite."""

    parsed = make_url(url)
    options: dict[str, Any] = {"future": True}
    if parsed.get_backend_name() == "sqlite":
        options["connect_args"] = {"check_same_thread": False}
        if parsed.database in (None, "", ":memory:"):
            options["poolclass"] = StaticPool
    return create_engine(url, **options)


engine = _build_engine(DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


class Seller(Base):
    __tablename__ = "sellers"

    id: Mapped[int] = mapped_column(primary_key=True)
    business_name: Mapped[str] = mapped_column(String, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String)
    gst_number: Mapped[Optional[str]] = mapped_column(String)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.current_timestamp())

    users: Mapped[list["User"]] = relationship("User", back_populates="seller")
    products: Mapped[list["Product"]] = relationship(
        "Product", back_populates="seller", cascade="all, delete-orphan"
    )
    customers: Mapped[list["Customer"]] = relationship(
        "Customer", back_populates="seller", cascade="all, delete-orphan"
    )
    orders: Mapped[list["Order"]] = relationship("Order", back_populates="seller", cascade="all, delete-orphan")


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False, default="", server_default="")
    email: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    password_hash: Mapped[Optional[str]] = mapped_column(String)
    auth_provider: Mapped[str] = mapped_column(
        String, nullable=False, default=PROVIDER_LOCAL, server_default=PROVIDER_LOCAL
    )
    role: Mapped[str] = mapped_column(String, nullable=False, default=ROLE_SELLER, server_default=ROLE_SELLER)
    seller_id: Mapped[Optional[int]] = mapped_column(ForeignKey("sellers.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.current_timestamp())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.current_timestamp(), onupdate=func.current_timestamp()
    )

    seller: Mapped[Optional[Seller]] = relationship("Seller", back_populates="users")
    password_resets: Mapped[list["PasswordReset"]] = relationship(
        "PasswordReset", back_populates="user", cascade="all, delete-orphan"
    )


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.current_timestamp())


class Product(Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(primary_key=True)
    seller_id: Mapped[int] = mapped_column(ForeignKey("sellers.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")
    price: Mapped[float] = mapped_column(Float, nullable=False)
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    category: Mapped[str] = mapped_column(String, nullable=False, default="General", server_default="General")
    image_url: Mapped[Optional[str]] = mapped_column(String)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.current_timestamp())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.current_timestamp(), onupdate=func.current_timestamp()
    )

    seller: Mapped[Seller] = relationship("Seller", back_populates="products")


class Customer(Base):
    __tablename__ = "customers"
    __table_args__ = (UniqueConstraint("seller_id", "email", name="uq_customer_seller_email"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    seller_id: Mapped[int] = mapped_column(ForeignKey("sellers.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String)
    phone: Mapped[Optional[str]] = mapped_column(String)
    total_orders: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    total_spent: Mapped[float] = mapped_column(Float, nullable=False, default=0, server_default="0")
    last_order_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.current_timestamp())

    seller: Mapped[Seller] = relationship("Seller", back_populates="customers")
    orders: Mapped[list["Order"]] = relationship("Order", back_populates="customer")


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True)
    seller_id: Mapped[int] = mapped_column(ForeignKey("sellers.id", ondelete="CASCADE"), nullable=False)
    customer_id: Mapped[Optional[int]] = mapped_column(ForeignKey("customers.id", ondelete="SET NULL"))
    customer_name: Mapped[str] = mapped_column(String, nullable=False, default="", server_default="")
    customer_phone: Mapped[Optional[str]] = mapped_column(String)
    customer_email: Mapped[Optional[str]] = mapped_column(String)
    shipping_address: Mapped[Optional[str]] = mapped_column(Text)
    payment_method: Mapped[Optional[str]] = mapped_column(String)
    status: Mapped[str] = mapped_column(String, nullable=False, default=STATUS_PENDING, server_default=STATUS_PENDING)
    payment_status: Mapped[str] = mapped_column(
        String, nullable=False, default=PAYMENT_UNPAID, server_default=PAYMENT_UNPAID
    )
    timeline: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    subtotal: Mapped[float] = mapped_column(Float, nullable=False, default=0, server_default="0")
    tax: Mapped[float] = mapped_column(Float, nullable=False, default=0, server_default="0")
    total_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0, server_default="0")
    tracking_number: Mapped[Optional[str]] = mapped_column(String)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.current_timestamp())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.current_timestamp(), onupdate=func.current_timestamp()
    )

    seller: Mapped[Seller] = relationship("Seller", back_populates="orders")
    customer: Mapped[Optional[Customer]] = relationship("Customer", back_populates="orders")
    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id"
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    product_id: Mapped[Optional[int]] = mapped_column(ForeignKey("products.id", ondelete="SET NULL"))
    product_name: Mapped[str] = mapped_column(String, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    price_at_purchase: Mapped[float] = mapped_column(Float, nullable=False, default=0, server_default="0")

    order: Mapped[Order] = relationship("Order", back_populates="items")


class PasswordReset(Base):
    __tablename__ = "password_resets"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.current_timestamp())

    user: Mapped[User] = relationship("User", back_populates="password_resets")


# --------------------------------------------------------------------------------------
# Session helper
# --------------------------------------------------------------------------------------


@contextmanager
def session_scope() -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# --------------------------------------------------------------------------------------
# Serialization helpers
# --------------------------------------------------------------------------------------


def _serialize_seller(seller: Optional[Seller]) -> Optional[dict[str, object]]:
    if not seller:
        return None
    return {
        "id": seller.id,
        "businessName": seller.business_name,
        "phone": seller.phone,
        "gstNumber": seller.gst_number,
        "createdAt": _isoformat(seller.created_at),
    }


def _serialize_user(user: Optional[User], *, include_seller: bool = False) -> Optional[dict[str, object]]:
    """Public representation of a user; the password hash is never included."""

    if not user:
        return None
    payload: dict[str, object] = {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "authProvider": user.auth_provider,
        "sellerId": user.seller_id,
        "createdAt": _isoformat(user.created_at),
    }
    if include_seller:
        payload["seller"] = _serialize_seller(user.seller)
    return payload


def _serialize_auth_user(user: User) -> dict[str, object]:
    """Internal representation used by login and token issuance."""

    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "seller_id": user.seller_id,
        "auth_provider": user.auth_provider,
        "password_hash": user.password_hash,
    }


def _serialize_category(category: Category) -> dict[str, object]:
    return {"id": category.id, "name": category.name, "createdAt": _isoformat(category.created_at)}


def _serialize_product(product: Product) -> dict[str, object]:
    return {
        "id": product.id,
        "sellerId": product.seller_id,
        "name": product.name,
        "description": product.description,
        "price": float(product.price),
        "stock": int(product.stock),
        "category": product.category,
        "imageUrl": product.image_url,
        "createdAt": _isoformat(product.created_at),
        "updatedAt": _isoformat(product.updated_at),
    }


def _serialize_order_item(item: OrderItem) -> dict[str, object]:
    price = float(item.price_at_purchase)
    return {
        "id": item.id,
        "productId": item.product_id,
        "productName": item.product_name,
        "quantity": int(item.quantity),
        "priceAtPurchase": price,
        "lineTotal": _money(price * int(item.quantity)),
    }


def _serialize_order(order: Order) -> dict[str, object]:
    items = [_serialize_order_item(item) for item in order.items]
    return {
        "id": order.id,
        "sellerId": order.seller_id,
        "invoiceNumber": format_invoice_number(order.id),
        "customerId": order.customer_id,
        "customerName": order.customer_name,
        "customerPhone": order.customer_phone,
        "customerEmail": order.customer_email,
        "shippingAddress": decrypt_sensitive_value(order.shipping_address),
        "paymentMethod": order.payment_method,
        "status": order.status,
        "paymentStatus": order.payment_status,
        "timeline": list(order.timeline or []),
        "subtotal": float(order.subtotal),
        "tax": float(order.tax),
        "totalAmount": float(order.total_amount),
        "trackingNumber": order.tracking_number,
        "itemCount": sum(int(item["quantity"]) for item in items),
        "products": items,
        "createdAt": _isoformat(order.created_at),
        "updatedAt": _isoformat(order.updated_at),
    }


def _serialize_customer(customer: Customer, *, orders: Optional[Sequence[Order]] = None) -> dict[str, object]:
    payload: dict[str, object] = {
        "id": customer.id,
        "sellerId": customer.seller_id,
        "name": customer.name,
        "email": customer.email,
        "phone": customer.phone,
        "totalOrders": int(customer.total_orders),
        "totalSpent": float(customer.total_spent),
        "lastOrderAt": _isoformat(customer.last_order_at),
        "createdAt": _isoformat(customer.created_at),
    }
    if orders is not None:
        payload["orders"] = [_serialize_order(order) for order in orders]
    return payload


# --------------------------------------------------------------------------------------
# Initialization and seeding
# --------------------------------------------------------------------------------------


def init_db() -> None:
    """Create tables and seed the default categories."""

    Base.metadata.create_all(bind=engine)
    seed_data()


def seed_data() -> None:
    """Make sure the shared category list is never empty."""

    with session_scope() as session:
        existing = {row[0] for row in session.execute(select(Category.name)).all()}
        for name in DEFAULT_CATEGORIES:
            if name not in existing:
                session.add(Category(name=name))


# --------------------------------------------------------------------------------------
# Users, sellers and password resets
# --------------------------------------------------------------------------------------


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user_by_email(email: str) -> Optional[dict[str, object]]:
    """Fetch the login record for an email address (case-insensitive)."""

    with session_scope() as session:
        user = session.execute(select(User).where(User.email == _normalize_email(email))).scalar_one_or_none()
        return _serialize_auth_user(user) if user else None


def get_user_by_id(user_id: int) -> Optional[dict[str, object]]:
    """Return the public profile for a user, including the seller profile."""

    with session_scope() as session:
        user = session.get(User, user_id)
        return _serialize_user(user, include_seller=True)


def get_seller_id_for_user(user_id: int) -> Optional[int]:
    with session_scope() as session:
        return session.execute(select(User.seller_id).where(User.id == user_id)).scalar_one_or_none()


def get_seller(seller_id: int) -> Optional[dict[str, object]]:
    with session_scope() as session:
        return _serialize_seller(session.get(Seller, seller_id))


def create_user_account(
    name: str,
    email: str,
    password_hash: Optional[str],
    *,
    role: str = ROLE_SELLER,
    auth_provider: str = PROVIDER_LOCAL,
    business_name: Optional[str] = None,
    phone: Optional[str] = None,
    gst_number: Optional[str] = None,
) -> dict[str, object]:
    """Insert a user, creating the seller profile first for seller accounts."""

    with session_scope() as session:
        seller = None
        if role == ROLE_SELLER:
            seller = Seller(business_name=business_name or name, phone=phone, gst_number=gst_number)
            session.add(seller)
            session.flush()
        user = User(
            name=name,
            email=_normalize_email(email),
            password_hash=password_hash,
            role=role,
            auth_provider=auth_provider,
            seller_id=seller.id if seller else None,
        )
        session.add(user)
        session.flush()
        session.refresh(user)
        return _serialize_auth_user(user)


def get_or_create_oauth_user(email: str, name: str, *, provider: str = PROVIDER_GOOGLE) -> dict[str, object]:
    """Return the account for a social sign-in, creating a seller account on first visit."""

    existing = get_user_by_email(email)
    if existing:
        return existing
    logger.info("Creating %s account for %s", provider.lower(), _normalize_email(email))
    return create_user_account(
        name or email.split("@")[0],
        email,
        None,
        role=ROLE_SELLER,
        auth_provider=provider,
        business_name=name or email.split("@")[0],
    )


def update_user_profile(
    user_id: int,
    *,
    name: Optional[str] = None,
    password_hash: Optional[str] = None,
    business_name: Optional[str] = None,
    phone: Optional[str] = None,
    gst_number: Optional[str] = None,
) -> Optional[dict[str, object]]:
    """Update the provided profile fields and return the refreshed profile."""

    with session_scope() as session:
        user = session.get(User, user_id)
        if not user:
            return None
        if name is not None:
            user.name = name
        if password_hash is not None:
            user.password_hash = password_hash
        seller = user.seller
        if seller:
            if business_name is not None:
                seller.business_name = business_name
            if phone is not None:
                seller.phone = phone
            if gst_number is not None:
                seller.gst_number = gst_number
        session.flush()
        return _serialize_user(user, include_seller=True)


def create_password_reset(user_id: int, token: str, *, lifetime: timedelta = timedelta(minutes=30)) -> datetime:
    """Persist a single-use reset token and return its expiry."""

    expires_at = _utcnow() + lifetime
    with session_scope() as session:
        session.add(PasswordReset(user_id=user_id, token=token, expires_at=expires_at))
    return expires_at


def consume_password_reset(token: str, password_hash: str) -> bool:
    """Apply a new password for a valid token and delete the token.

    Returns False when the token is unknown or expired. Expired tokens are
    removed as a side effect; a successful reset revokes every outstanding
    token for the user.
    """

    with session_scope() as session:
        record = session.execute(select(PasswordReset).where(PasswordReset.token == token)).scalar_one_or_none()
        if not record:
            return False
        if record.expires_at < _utcnow():
            session.delete(record)
            return False
        session.execute(update(User).where(User.id == record.user_id).values(password_hash=password_hash))
        session.execute(delete(PasswordReset).where(PasswordReset.user_id == record.user_id))
        return True


# --------------------------------------------------------------------------------------
# Categories
# --------------------------------------------------------------------------------------


def fetch_categories() -> list[dict[str, object]]:
    """Return categories sorted by name."""

    with session_scope() as session:
        categories = session.execute(select(Category).order_by(Category.name.asc())).scalars().all()
        return [_serialize_category(category) for category in categories]


def get_category_by_name(name: str) -> Optional[dict[str, object]]:
    with session_scope() as session:
        category = session.execute(select(Category).where(Category.name == name)).scalar_one_or_none()
        return _serialize_category(category) if category else None


def create_category(name: str) -> dict[str, object]:
    with session_scope() as session:
        category = Category(name=name)
        session.add(category)
        session.flush()
        session.refresh(category)
        return _serialize_category(category)


# --------------------------------------------------------------------------------------
# Product helpers
# --------------------------------------------------------------------------------------


def _owned_product(session: Session, product_id: int, seller_id: int) -> Optional[Product]:
    return session.execute(
        select(Product).where(Product.id == product_id, Product.seller_id == seller_id)
    ).scalar_one_or_none()


def insert_product(
    seller_id: int,
    name: str,
    price: float,
    *,
    description: str = "",
    stock: int = 0,
    category: str = "General",
    image_url: Optional[str] = None,
) -> dict[str, object]:
    """Persist a new product for the seller and return it."""

    with session_scope() as session:
        product = Product(
            seller_id=seller_id,
            name=name,
            description=description,
            price=price,
            stock=stock,
            category=category,
            image_url=image_url,
        )
        session.add(product)
        session.flush()
        session.refresh(product)
        return _serialize_product(product)


def fetch_products(
    seller_id: int,
    *,
    search: Optional[str] = None,
    category: Optional[str] = None,
    sort: str = "newest",
) -> list[dict[str, object]]:
    """Return the seller's products ordered according to the requested sort and filters."""

    stmt = select(Product).where(Product.seller_id == seller_id)

    if search:
        like_term = f"%{search.lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(Product.name).like(like_term),
                func.lower(Product.description).like(like_term),
                func.lower(Product.category).like(like_term),
            )
        )

    if category and category.lower() != "all":
        stmt = stmt.where(func.lower(Product.category) == category.lower())

    order_map = {
        "newest": [Product.created_at.desc(), Product.id.desc()],
        "oldest": [Product.created_at.asc(), Product.id.asc()],
        "price_low": [Product.price.asc(), Product.id.desc()],
        "price_high": [Product.price.desc(), Product.id.desc()],
        "stock_low": [Product.stock.asc(), Product.id.desc()],
        "stock_high": [Product.stock.desc(), Product.id.desc()],
        "name_az": [func.lower(Product.name).asc(), Product.id.desc()],
        "name_za": [func.lower(Product.name).desc(), Product.id.desc()],
    }
    stmt = stmt.order_by(*order_map.get(sort, order_map["newest"]))

    with session_scope() as session:
        return [_serialize_product(product) for product in session.execute(stmt).scalars().all()]


def fetch_low_stock_products(seller_id: int, threshold: int) -> list[dict[str, object]]:
    """Return products at or below the stock threshold, emptiest first."""

    stmt = (
        select(Product)
        .where(Product.seller_id == seller_id, Product.stock <= threshold)
        .order_by(Product.stock.asc(), Product.id.asc())
    )
    with session_scope() as session:
        return [_serialize_product(product) for product in session.execute(stmt).scalars().all()]


def get_product(product_id: int, seller_id: int) -> Optional[dict[str, object]]:
    """Return a single product owned by the seller or None when not found."""

    with session_scope() as session:
        product = _owned_product(session, product_id, seller_id)
        return _serialize_product(product) if product else None


def update_product(
    product_id: int,
    seller_id: int,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    price: Optional[float] = None,
    stock: Optional[int] = None,
    category: Optional[str] = None,
    image_url: Optional[str] = None,
) -> Optional[dict[str, object]]:
    """Update a product with provided fields."""

    with session_scope() as session:
        product = _owned_product(session, product_id, seller_id)
        if not product:
            return None
        if name is not None:
            product.name = name
        if description is not None:
            product.description = description
        if price is not None:
            product.price = price
        if stock is not None:
            product.stock = stock
        if category is not None:
            product.category = category
        if image_url is not None:
            product.image_url = image_url
        session.flush()
        session.refresh(product)
        return _serialize_product(product)


def set_product_stock(
    product_id: int,
    seller_id: int,
    *,
    stock: Optional[int] = None,
    adjustment: Optional[int] = None,
) -> Optional[dict[str, object]]:
    """Set an absolute stock level or apply a relative adjustment.

    Raises ValueError when the resulting stock would be negative.
    """

    with session_scope() as session:
        product = session.execute(
            select(Product)
            .where(Product.id == product_id, Product.seller_id == seller_id)
            .with_for_update()
        ).scalar_one_or_none()
        if not product:
            return None
        new_stock = stock if stock is not None else int(product.stock) + int(adjustment or 0)
        if new_stock < 0:
            raise ValueError("Stock cannot be negative.")
        product.stock = new_stock
        session.flush()
        session.refresh(product)
        return _serialize_product(product)


def delete_product(product_id: int, seller_id: int) -> Optional[dict[str, object]]:
    """Remove a product; order items keep their name and price snapshot."""

    with session_scope() as session:
        product = _owned_product(session, product_id, seller_id)
        if not product:
            return None
        payload = _serialize_product(product)
        session.execute(update(OrderItem).where(OrderItem.product_id == product_id).values(product_id=None))
        session.delete(product)
        return payload


# --------------------------------------------------------------------------------------
# Customer helpers
# --------------------------------------------------------------------------------------


def _upsert_customer(
    session: Session,
    seller_id: int,
    *,
    name: str,
    email: Optional[str],
    phone: Optional[str],
) -> Optional[Customer]:
    """Find the customer by (seller, email), or by phone without an email, creating it when missing."""

    if email:
        lookup = select(Customer).where(Customer.seller_id == seller_id, Customer.email == email)
    elif phone:
        lookup = select(Customer).where(
            Customer.seller_id == seller_id, Customer.email.is_(None), Customer.phone == phone
        )
    else:
        return None

    customer = session.execute(lookup).scalar_one_or_none()
    if customer:
        if name:
            customer.name = name
        if phone and not customer.phone:
            customer.phone = phone
        return customer

    customer = Customer(seller_id=seller_id, name=name or email or phone or "", email=email, phone=phone)
    session.add(customer)
    session.flush()
    return customer


def fetch_customers(seller_id: int, *, search: Optional[str] = None) -> list[dict[str, object]]:
    """Return the seller's customers, newest first."""

    stmt = select(Customer).where(Customer.seller_id == seller_id)
    if search:
        like_term = f"%{search.lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(Customer.name).like(like_term),
                func.lower(func.coalesce(Customer.email, "")).like(like_term),
                func.lower(func.coalesce(Customer.phone, "")).like(like_term),
            )
        )
    stmt = stmt.order_by(Customer.created_at.desc(), Customer.id.desc())
    with session_scope() as session:
        return [_serialize_customer(customer) for customer in session.execute(stmt).scalars().all()]


def get_customer(customer_id: int, seller_id: int) -> Optional[dict[str, object]]:
    """Return a customer with their order history."""

    with session_scope() as session:
        customer = session.execute(
            select(Customer).where(Customer.id == customer_id, Customer.seller_id == seller_id)
        ).scalar_one_or_none()
        if not customer:
            return None
        orders = (
            session.execute(
                select(Order)
                .options(selectinload(Order.items))
                .where(Order.customer_id == customer.id)
                .order_by(Order.created_at.desc(), Order.id.desc())
            )
            .scalars()
            .all()
        )
        return _serialize_customer(customer, orders=orders)


def find_customer_by_email(seller_id: int, email: str) -> Optional[dict[str, object]]:
    with session_scope() as session:
        customer = session.execute(
            select(Customer).where(Customer.seller_id == seller_id, Customer.email == _normalize_email(email))
        ).scalar_one_or_none()
        return _serialize_customer(customer) if customer else None


def update_customer(
    customer_id: int,
    seller_id: int,
    *,
    name: Optional[str] = None,
    email: Optional[str] = None,
    phone: Optional[str] = None,
) -> Optional[dict[str, object]]:
    """Update the provided customer details."""

    with session_scope() as session:
        customer = session.execute(
            select(Customer).where(Customer.id == customer_id, Customer.seller_id == seller_id)
        ).scalar_one_or_none()
        if not customer:
            return None
        if name is not None:
            customer.name = name
        if email is not None:
            customer.email = _normalize_email(email) or None
        if phone is not None:
            customer.phone = phone or None
        session.flush()
        return _serialize_customer(customer)


def delete_customer(customer_id: int, seller_id: int) -> bool:
    """Remove a customer; their orders keep the contact snapshot."""

    with session_scope() as session:
        customer = session.execute(
            select(Customer).where(Customer.id == customer_id, Customer.seller_id == seller_id)
        ).scalar_one_or_none()
        if not customer:
            return False
        session.execute(update(Order).where(Order.customer_id == customer_id).values(customer_id=None))
        session.delete(customer)
        return True


# --------------------------------------------------------------------------------------
# Order helpers
# --------------------------------------------------------------------------------------


def _timeline_entry(status: str, note: str) -> dict[str, str]:
    return {"status": status, "timestamp": datetime.now(timezone.utc).isoformat(), "note": note}


def _order_query(seller_id: int):
    return select(Order).options(selectinload(Order.items)).where(Order.seller_id == seller_id)


def format_invoice_number(order_id: int) -> str:
    """Return a human-friendly invoice number for an internal order id."""

    return f"INV-{_as_int(order_id):05d}"


def create_order(
    seller_id: int,
    *,
    customer_name: str,
    items: Iterable[Mapping[str, object]],
    customer_phone: Optional[str] = None,
    customer_email: Optional[str] = None,
    shipping_address: Optional[str] = None,
    payment_method: Optional[str] = None,
    tax: float = 0.0,
) -> dict[str, object]:
    """Insert an order priced from the seller's current catalogue.

    Each line snapshots the product name and price so later catalogue edits
    never change historical orders. The customer upsert and aggregate update
    share the order's transaction. Raises ValueError for unknown products.
    """

    requested = [(int(item["product_id"]), int(item["quantity"])) for item in items]
    if not requested:
        raise ValueError("Products are required")
    email = _normalize_email(customer_email) if customer_email else None

    with session_scope() as session:
        product_ids = {product_id for product_id, _ in requested}
        products = session.execute(
            select(Product).where(Product.seller_id == seller_id, Product.id.in_(product_ids))
        ).scalars().all()
        lookup = {product.id: product for product in products}
        missing = sorted(product_ids - set(lookup))
        if missing:
            raise ValueError(f"Unknown product ids: {', '.join(str(pid) for pid in missing)}")

        subtotal = 0.0
        order_items: list[OrderItem] = []
        for product_id, quantity in requested:
            product = lookup[product_id]
            price = float(product.price)
            subtotal += price * quantity
            order_items.append(
                OrderItem(
                    product_id=product.id,
                    product_name=product.name,
                    quantity=quantity,
                    price_at_purchase=price,
                )
            )
        subtotal = _money(subtotal)
        tax = _money(tax)
        total_amount = _money(subtotal + tax)

        customer = _upsert_customer(
            session, seller_id, name=customer_name, email=email, phone=customer_phone
        )
        order = Order(
            seller_id=seller_id,
            customer_id=customer.id if customer else None,
            customer_name=customer_name,
            customer_phone=customer_phone,
            customer_email=email,
            shipping_address=encrypt_sensitive_value(shipping_address),
            payment_method=payment_method,
            status=STATUS_PENDING,
            payment_status=PAYMENT_UNPAID,
            timeline=[_timeline_entry(STATUS_PENDING, "Order placed")],
            subtotal=subtotal,
            tax=tax,
            total_amount=total_amount,
            items=order_items,
        )
        session.add(order)

        if customer:
            session.execute(
                update(Customer)
                .where(Customer.id == customer.id)
                .values(
                    total_orders=Customer.total_orders + 1,
                    total_spent=Customer.total_spent + total_amount,
                    last_order_at=_utcnow(),
                )
            )
        session.flush()
        session.refresh(order)
        logger.info("Order %s created for seller %s (total %.2f)", order.id, seller_id, total_amount)
        return _serialize_order(order)


def fetch_orders(seller_id: int, *, status: Optional[str] = None) -> list[dict[str, object]]:
    """Return the seller's orders, newest first."""

    stmt = _order_query(seller_id)
    if status:
        stmt = stmt.where(Order.status == status.strip().upper())
    stmt = stmt.order_by(Order.created_at.desc(), Order.id.desc())
    with session_scope() as session:
        return [_serialize_order(order) for order in session.execute(stmt).scalars().all()]


def get_order(order_id: int, seller_id: int) -> Optional[dict[str, object]]:
    """Fetch a single order owned by the seller."""

    with session_scope() as session:
        order = session.execute(_order_query(seller_id).where(Order.id == order_id)).scalar_one_or_none()
        return _serialize_order(order) if order else None


def get_order_status(order_id: int, seller_id: int) -> Optional[str]:
    with session_scope() as session:
        return session.execute(
            select(Order.status).where(Order.id == order_id, Order.seller_id == seller_id)
        ).scalar_one_or_none()


def _record_order_event(
    order_id: int,
    seller_id: int,
    timeline_status: str,
    note: str,
    **changes: object,
) -> Optional[dict[str, object]]:
    """Apply column changes and prepend a timeline entry under a row lock."""

    with session_scope() as session:
        order = session.execute(
            _order_query(seller_id).where(Order.id == order_id).with_for_update()
        ).scalar_one_or_none()
        if not order:
            return None
        for column, value in changes.items():
            setattr(order, column, value)
        order.timeline = [_timeline_entry(timeline_status, note), *(order.timeline or [])]
        session.flush()
        session.refresh(order)
        logger.info("Order %s: %s (%s)", order_id, timeline_status, note)
        return _serialize_order(order)


def update_order_status(
    order_id: int, seller_id: int, status: str, *, note: Optional[str] = None
) -> Optional[dict[str, object]]:
    status = status.strip().upper()
    return _record_order_event(
        order_id, seller_id, status, note or f"Status updated to {status}", status=status
    )


def update_payment_status(
    order_id: int,
    seller_id: int,
    status: str,
    *,
    method: Optional[str] = None,
    note: Optional[str] = None,
) -> Optional[dict[str, object]]:
    status = status.strip().upper()
    changes: dict[str, object] = {"payment_status": status}
    if method:
        changes["payment_method"] = method
    return _record_order_event(
        order_id, seller_id, f"PAYMENT_{status}", note or f"Payment status changed to {status}", **changes
    )


def add_order_tracking(
    order_id: int, seller_id: int, tracking_number: str, *, note: Optional[str] = None
) -> Optional[dict[str, object]]:
    return _record_order_event(
        order_id,
        seller_id,
        STATUS_SHIPPED,
        note or f"Shipped. Tracking: {tracking_number}",
        tracking_number=tracking_number,
        status=STATUS_SHIPPED,
    )


# --------------------------------------------------------------------------------------
# Analytics
# --------------------------------------------------------------------------------------


def fetch_overview_analytics(seller_id: int, *, days: int = 7) -> dict[str, object]:
    """Summarise delivered revenue, order volume, and the best-selling product."""

    delivered = and_(Order.seller_id == seller_id, Order.status == STATUS_DELIVERED)
    since = _utcnow() - timedelta(days=days)
    day = func.date(Order.created_at)

    with session_scope() as session:
        total_sales = session.scalar(select(func.coalesce(func.sum(Order.total_amount), 0)).where(delivered))
        total_orders = session.scalar(select(func.count(Order.id)).where(Order.seller_id == seller_id))
        total_customers = session.scalar(select(func.count(Customer.id)).where(Customer.seller_id == seller_id))

        quantity_sold = func.sum(OrderItem.quantity)
        top_row = session.execute(
            select(Product.name.label("product_name"), quantity_sold.label("quantity"))
            .join(Order, OrderItem.order)
            .join(Product, Product.id == OrderItem.product_id)
            .where(delivered)
            .group_by(OrderItem.product_id, Product.name)
            .order_by(quantity_sold.desc(), OrderItem.product_id.asc())
            .limit(1)
        ).first()

        revenue_rows = session.execute(
            select(day.label("day"), func.sum(Order.total_amount).label("revenue"))
            .where(delivered, Order.created_at >= since)
            .group_by(day)
            .order_by(day.asc())
        ).all()

    return {
        "totalSales": _money(total_sales or 0),
        "totalOrders": int(total_orders or 0),
        "totalCustomers": int(total_customers or 0),
        "topProduct": top_row.product_name if top_row else None,
        "revenueByDay": [
            {"date": str(row.day), "revenue": _money(row.revenue or 0)} for row in revenue_rows
        ],
    }
