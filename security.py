"""Helper utilities for hashing passwords, issuing tokens, and encrypting order data."""

from __future__ import annotations

import os
import re
import secrets
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Mapping, Optional

import bcrypt
import jwt
from cryptography.fernet import Fernet, InvalidToken
from werkzeug.security import check_password_hash


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, ""))
    except (TypeError, ValueError):
        return default


BCRYPT_ROUNDS = _env_int("SALT_ROUNDS", 12)
JWT_SECRET = os.getenv("JWT_SECRET", "secretkey")
JWT_ALGORITHM = "HS256"
TOKEN_EXPIRY = os.getenv("TOKEN_EXPIRY", "7d")
SENSITIVE_KEY_ENV = "SENSITIVE_DATA_KEY"
SENSITIVE_KEY_FILE = Path(__file__).with_name("sensitive_key.txt")

_EXPIRY_PATTERN = re.compile(r"^(\d+)\s*([smhd])$", re.IGNORECASE)
_EXPIRY_UNITS = {"s": 1, "m": 60, "h": 60 * 60, "d": 60 * 60 * 24}

_sensitive_key_cache: Optional[bytes] = None
_sensitive_cipher: Optional[Fernet] = None


def hash_password(password: str) -> str:
    """Hash the provided password using bcrypt with a per-password salt."""

    if not isinstance(password, str):
        raise TypeError("Password must be a string.")
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, stored_hash: str | bytes | None) -> bool:
    """Validate a plaintext password against a stored bcrypt hash."""

    if not password or not stored_hash:
        return False

    stored_hash_str = stored_hash.decode("utf-8") if isinstance(stored_hash, bytes) else str(stored_hash)

    if stored_hash_str.startswith("scrypt:") or stored_hash_str.startswith("pbkdf2:"):
        return check_password_hash(stored_hash_str, password)

    try:
        return bcrypt.checkpw(password.encode("utf-8"), stored_hash_str.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def parse_expiry(value: Optional[str]) -> Optional[int]:
    """Convert "7d", "24h", "30m", "15s" or plain seconds into seconds.

    Returns None when the value is empty or not in a recognised format, which
    means issued tokens carry no expiry claim.
    """

    if not value:
        return None
    trimmed = value.strip()
    if trimmed.isdigit():
        return int(trimmed)
    match = _EXPIRY_PATTERN.match(trimmed)
    if not match:
        return None
    return int(match.group(1)) * _EXPIRY_UNITS[match.group(2).lower()]


def create_access_token(user: Mapping[str, Any], *, expires_in: Optional[int] = None) -> str:
    """Sign a JWT carrying the user id, role, and seller id."""

    payload: dict[str, Any] = {
        "id": int(user["id"]),
        "role": user.get("role"),
        "sellerId": user.get("seller_id"),
    }
    lifetime = expires_in if expires_in is not None else parse_expiry(TOKEN_EXPIRY)
    if lifetime:
        payload["exp"] = datetime.now(timezone.utc) + timedelta(seconds=lifetime)
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify a JWT and return its claims.

    Raises ``jwt.InvalidTokenError`` (or a subclass such as
    ``jwt.ExpiredSignatureError``) when the token cannot be trusted.
    """

    claims = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    if not isinstance(claims.get("id"), int):
        raise jwt.InvalidTokenError("Token payload is missing the user id.")
    return claims


def generate_reset_token() -> str:
    return secrets.token_hex(32)


def _load_sensitive_key() -> bytes:
    """Fetch or lazily generate the symmetric key used for sensitive columns."""

    global _sensitive_key_cache
    if _sensitive_key_cache:
        return _sensitive_key_cache

    env_key = os.getenv(SENSITIVE_KEY_ENV)
    if env_key:
        key_bytes = env_key.strip().encode("utf-8")
    elif SENSITIVE_KEY_FILE.exists():
        key_bytes = SENSITIVE_KEY_FILE.read_bytes().strip()
    else:
        key_bytes = Fernet.generate_key()
        SENSITIVE_KEY_FILE.write_bytes(key_bytes)

    _sensitive_key_cache = key_bytes
    return key_bytes


def _get_sensitive_cipher() -> Fernet:
    global _sensitive_cipher
    if _sensitive_cipher is None:
        _sensitive_cipher = Fernet(_load_sensitive_key())
    return _sensitive_cipher


def encrypt_sensitive_value(value: Optional[str]) -> Optional[str]:
    """Encrypt a sensitive string using the shared symmetric key."""

    if value is None:
        return None
    cipher = _get_sensitive_cipher()
    return cipher.encrypt(value.encode("utf-8")).decode("utf-8")


def decrypt_sensitive_value(value: Optional[str]) -> Optional[str]:
    """Decrypt a stored sensitive value, returning the plain text."""

    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    if not value:
        return ""

    cipher = _get_sensitive_cipher()
    try:
        return cipher.decrypt(value.encode("utf-8")).decode("utf-8")
    except (InvalidToken, ValueError, TypeError):
        # Rows written before encryption was enabled are stored in plaintext.
        return value
