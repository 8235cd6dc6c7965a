# Overview: Service-layer operations for store auth; signup, login, keeper approval and PIN checks.

"""
Store Authentication Service

WHY: A store is the tenant and the login principal. Staff on the till
identify themselves with a short PIN, and sensitive actions can be
approved by the store keeper.

SECURITY NOTES:
- Passwords hashed with bcrypt (BCRYPT_ROUNDS, default 10)
- Worker PINs are stored only as a keyed digest (see token_service.pin_digest)
- Login distinguishes unknown email from bad password; merchants asked for it
"""

import logging

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import Store, Worker
from ..models.sales import KEEPER_DISPLAY_NAME
from ..validation import ValidationError, ConflictError, NotFoundError
from . import token_service

logger = logging.getLogger(__name__)

KEEPER_WORKER_ID = "keeper"
MIN_PASSWORD_LENGTH = 6
MIN_BUSINESS_NAME_LENGTH = 2


class AuthError(Exception):
    """401-level failure. `code` is a stable machine-readable reason when set."""

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.code = code


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=int(current_app.config["BCRYPT_ROUNDS"]))
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    """Returns True if password matches hash. bcrypt.checkpw is timing-safe."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash in the database
        return False


def _normalize_email(email) -> str:
    return str(email or "").strip().lower()


def signup(email, password, business_name, currency=None) -> tuple[Store, str]:
    """
    Register a new store and issue its first token.

    Raises:
        ValidationError: bad email, short password or short business name
        ConflictError: email already registered
    """
    email = _normalize_email(email)
    password = password or ""
    business_name = str(business_name or "").strip()

    if "@" not in email:
        raise ValidationError("Valid email is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(business_name) < MIN_BUSINESS_NAME_LENGTH:
        raise ValidationError(f"Business name must be at least {MIN_BUSINESS_NAME_LENGTH} characters")

    if db.session.query(Store.id).filter_by(email=email).first():
        raise ConflictError("Email already registered")

    store = Store(
        email=email,
        password_hash=hash_password(password),
        business_name=business_name,
        currency=(str(currency).strip().upper() if currency else current_app.config["DEFAULT_CURRENCY"]),
        setup_completed=False,
    )
    db.session.add(store)
    db.session.commit()

    logger.info("Store registered: store_id=%s", store.id)
    return store, token_service.create_store_token(store.id, store.email)


def login(email, password) -> tuple[Store, str]:
    email = _normalize_email(email)
    if not email or not password:
        raise ValidationError("Email and password are required")

    store = db.session.query(Store).filter_by(email=email).first()
    if store is None:
        raise AuthError("Email not found")
    if not verify_password(password, store.password_hash):
        raise AuthError("Invalid password")

    return store, token_service.create_store_token(store.id, store.email)


def get_store(store_id: int) -> Store:
    store = db.session.get(Store, store_id)
    if store is None:
        raise NotFoundError("Store not found")
    return store


def store_keeper(store_id: int, password, action: str = "verify") -> str:
    """
    Keeper approval.

    verify: checks the store's main password, returns a keeper token.
    setup:  stores password as the keeper approval password (the one
            PIN verification falls back to), returns a keeper token.
    """
    store = get_store(store_id)
    password = password or ""
    action = (action or "verify").strip().lower()

    if action == "setup":
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        store.keeper_password_hash = hash_password(password)
        db.session.commit()
        logger.info("Keeper password set: store_id=%s", store.id)
        return token_service.create_keeper_token()

    if action != "verify":
        raise ValidationError("action must be 'verify' or 'setup'")
    if not password:
        raise ValidationError("Password is required")
    if not verify_password(password, store.password_hash):
        raise AuthError("Wrong password")
    return token_service.create_keeper_token()


def verify_pin(store_id: int, pin) -> dict:
    """
    Worker PIN verification.

    Resolution order:
    1. A worker of this store whose PIN matches
    2. The store keeper's approval password
    """
    pin = str(pin or "").strip()
    if not pin:
        raise ValidationError("PIN is required")

    worker = (
        db.session.query(Worker)
        .filter_by(store_id=store_id, pin_digest=token_service.pin_digest(store_id, pin))
        .first()
    )
    if worker is not None:
        return {
            "success": True,
            "worker_id": worker.id,
            "worker_name": worker.name,
            "type": "worker",
        }

    store = db.session.get(Store, store_id)
    if store is None:
        raise NotFoundError("Store not found")

    if not store.keeper_password_hash:
        raise AuthError("No PIN has been set up for this store", code="NO_PIN_SETUP")

    if verify_password(pin, store.keeper_password_hash):
        return {
            "success": True,
            "worker_id": KEEPER_WORKER_ID,
            "worker_name": KEEPER_DISPLAY_NAME,
            "type": "keeper",
        }

    raise AuthError("Invalid PIN")


def resolve_worker(store_id: int, worker_id) -> Worker | None:
    """
    Resolve an attribution value to a Worker of this store.

    Returns None for the keeper sentinel. Raises AuthError for anything
    that is neither the keeper nor a worker of this store.
    """
    if worker_id is None or worker_id == "":
        raise AuthError("Worker verification required")
    if worker_id == KEEPER_WORKER_ID:
        return None
    if isinstance(worker_id, bool):
        raise AuthError("Invalid worker")
    try:
        worker_pk = int(worker_id)
    except (TypeError, ValueError):
        raise AuthError("Invalid worker")

    worker = db.session.get(Worker, worker_pk)
    if worker is None or worker.store_id != store_id:
        raise AuthError("Invalid worker")
    return worker
