# Overview: Stateless HMAC-signed tokens for stores and keeper approval.

"""
Store and keeper tokens.

WIRE FORMAT: "<payload_b64>.<signature_b64>"
- payload_b64 = base64url(JSON payload), unpadded
- signature_b64 = base64url(HMAC-SHA256(AUTH_SECRET, payload_b64)), unpadded
- payload.exp is an epoch timestamp in milliseconds

Store payload:  {"storeId", "email", "exp"}   (24h by default)
Keeper payload: {"role": "keeper", "exp"}     (1h by default)

Nothing is persisted: a token is valid while its signature checks out
under the current secret and exp is in the future.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
from dataclasses import dataclass

from flask import current_app

from pores.time_utils import epoch_ms


@dataclass
class StoreTokenPayload:
    store_id: int
    email: str
    exp: int


def _secret() -> bytes:
    return str(current_app.config["AUTH_SECRET"]).encode("utf-8")


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(text: str) -> bytes:
    padding = "=" * (-len(text) % 4)
    return base64.urlsafe_b64decode(text + padding)


def _sign(payload_b64: str) -> str:
    digest = hmac.new(_secret(), payload_b64.encode("ascii"), hashlib.sha256).digest()
    return _b64encode(digest)


def _encode(payload: dict) -> str:
    payload_b64 = _b64encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
    return f"{payload_b64}.{_sign(payload_b64)}"


def _decode(token: str | None) -> dict | None:
    """Return the payload if signature and expiry check out, else None."""
    if not token or token.count(".") != 1:
        return None
    payload_b64, signature = token.split(".", 1)
    if not payload_b64 or not signature:
        return None

    if not hmac.compare_digest(signature.encode("ascii", "ignore"), _sign(payload_b64).encode("ascii")):
        return None

    try:
        payload = json.loads(_b64decode(payload_b64).decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        return None
    if not isinstance(payload, dict):
        return None

    exp = payload.get("exp")
    if not isinstance(exp, (int, float)) or exp < epoch_ms():
        return None
    return payload


def create_store_token(store_id: int, email: str) -> str:
    ttl_ms = int(current_app.config["STORE_TOKEN_TTL_SECONDS"]) * 1000
    return _encode({"storeId": store_id, "email": email, "exp": epoch_ms() + ttl_ms})


def verify_store_token(token: str | None) -> StoreTokenPayload | None:
    payload = _decode(token)
    if payload is None or "storeId" not in payload:
        return None
    try:
        store_id = int(payload["storeId"])
    except (TypeError, ValueError):
        return None
    return StoreTokenPayload(store_id=store_id, email=str(payload.get("email") or ""), exp=int(payload["exp"]))


def create_keeper_token() -> str:
    ttl_ms = int(current_app.config["KEEPER_TOKEN_TTL_SECONDS"]) * 1000
    return _encode({"role": "keeper", "exp": epoch_ms() + ttl_ms})


def verify_keeper_token(token: str | None) -> bool:
    """
    Check a keeper approval token.

    No route takes a keeper token; the merchant client holds it after
    POST /api/auth/store-keeper and checks it here before unlocking
    keeper-only screens until it expires.
    """
    payload = _decode(token)
    return payload is not None and payload.get("role") == "keeper"


def bearer_token(auth_header: str | None) -> str | None:
    """Extract the token from an 'Authorization: Bearer <token>' header."""
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header[len("Bearer "):].strip() or None


def pin_digest(store_id: int, pin: str) -> str:
    """
    Keyed digest of a worker PIN.

    PINs are short, so they are never stored or compared in plain text.
    Scoping by store_id keeps equal PINs in different stores distinct.
    """
    message = f"{store_id}:{pin}".encode("utf-8")
    return hmac.new(_secret(), message, hashlib.sha256).hexdigest()
