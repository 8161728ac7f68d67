"""
Security helpers for password hashing and token authentication.

Tokens are compact JSON Web Tokens signed with HMAC-SHA256 and
base64url encoded.  They carry the user id as subject (``sub``) and an
expiration timestamp (``exp``), so the API can verify them without a
server-side session store.  Passwords are hashed with PBKDF2-HMAC
(SHA-256) and a random per-password salt; the stored form is
``salthex$hashhex``.
"""

import base64
import hashlib
import hmac
import json
import os
import time
from typing import Any, Dict, Optional

from fastapi.security import HTTPBearer

from .config import Settings, settings

PBKDF2_ITERATIONS = 100_000


def _b64_url_encode(data: bytes) -> str:
    """Base64-url encode bytes without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("utf-8")


def _b64_url_decode(data: str) -> bytes:
    """Decode base64-url encoded string, adding padding if necessary."""
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(message: bytes, secret: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()


def create_access_token(
    data: Dict[str, Any],
    expires_delta: Optional[int] = None,
    config: Optional[Settings] = None,
) -> str:
    """Create a signed token with the given claims.

    The payload is extended with an ``exp`` field holding the
    expiration time as a UNIX timestamp.

    Parameters
    ----------
    data : dict
        Claims to embed in the token (e.g. ``{"sub": "<user id>"}``).
    expires_delta : Optional[int]
        Lifetime of the token in seconds.  Defaults to
        ``access_token_expire_minutes * 60``.
    config : Optional[Settings]
        Settings providing the signing key; the module settings are
        used when omitted.

    Returns
    -------
    str
        A token of the form ``header.payload.signature``.
    """
    config = config or settings
    to_encode = data.copy()
    exp_seconds = expires_delta or config.access_token_expire_minutes * 60
    to_encode["exp"] = int(time.time()) + exp_seconds
    header = {"alg": "HS256", "typ": "JWT"}
    header_b64 = _b64_url_encode(json.dumps(header, separators=(",", ":")).encode("utf-8"))
    payload_b64 = _b64_url_encode(json.dumps(to_encode, separators=(",", ":")).encode("utf-8"))
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    signature_b64 = _b64_url_encode(_sign(signing_input, config.secret_key))
    return f"{header_b64}.{payload_b64}.{signature_b64}"


def decode_access_token(token: str, config: Optional[Settings] = None) -> Optional[Dict[str, Any]]:
    """Verify and decode a token.

    Returns the payload when the signature matches and the token has
    not expired, otherwise ``None``.
    """
    config = config or settings
    try:
        parts = token.split(".")
        if len(parts) != 3:
            return None
        header_b64, payload_b64, signature_b64 = parts
        signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
        expected_sig = _sign(signing_input, config.secret_key)
        if not hmac.compare_digest(expected_sig, _b64_url_decode(signature_b64)):
            return None
        data = json.loads(_b64_url_decode(payload_b64).decode("utf-8"))
        if data.get("exp") is None or int(data["exp"]) < int(time.time()):
            return None
        return data
    except (ValueError, TypeError, AttributeError):
        return None


def hash_password(password: str) -> str:
    """Hash a password using PBKDF2-HMAC with SHA-256 and a random salt."""
    salt = os.urandom(16)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return f"{salt.hex()}${dk.hex()}"


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Check a plain password against a stored ``salt$hash`` string.

    The digests are compared in constant time.
    """
    if not hashed_password:
        return False
    try:
        salt_hex, hash_hex = hashed_password.split("$", 1)
        salt = bytes.fromhex(salt_hex)
        stored_hash = bytes.fromhex(hash_hex)
    except ValueError:
        return False
    dk = hashlib.pbkdf2_hmac("sha256", plain_password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return hmac.compare_digest(dk, stored_hash)


bearer_scheme = HTTPBearer(auto_error=False)
