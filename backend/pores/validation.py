from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, JSON
from sqlalchemy.orm import DeclarativeMeta


# Largest amount accepted for any price or balance (smallest currency unit).
MAX_AMOUNT = 999_999_999_999


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate email or PIN)."""


class NotFoundError(LookupError):
    """404-level: missing, or owned by another store."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Which fields a client may write for one model.

    ignore_unknown drops keys outside writable_fields instead of
    rejecting the whole payload.
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore
    ignore_unknown: bool = False


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(value: Any, field: str, *, minimum: int | None = None) -> int:
    """
    Strict integer coercion for amounts and quantities.

    Accepts ints and plain digit strings. Rejects bools, floats with a
    fractional part, scientific notation and blanks.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")

    if isinstance(value, int):
        result = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{field} must be an integer, not a decimal")
        result = int(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    if abs(result) > MAX_AMOUNT:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT}")
    return result


def coerce_bool(value: Any) -> bool:
    """JSON flag to bool. Strings count as true only for 1/true/yes/on."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(value, col.key)

    if isinstance(coltype, Boolean):
        return coerce_bool(value)

    if isinstance(coltype, JSON):
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        if not isinstance(value, (list, tuple)):
            raise ValidationError(f"{col.key} must be a list")
        return [str(v).strip() for v in value if str(v).strip()]

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Turn a client JSON body into a column patch for `model`.

    Keys outside policy.writable_fields are rejected (or dropped when
    policy.ignore_unknown). Values are coerced by column type and checked
    for nullability, blanks and String length. With partial=False every
    field in required_on_create must be present; with partial=True only
    the supplied keys are checked.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    fields = {}
    for k, v in payload.items():
        if k not in policy.writable_fields or k not in cols:
            if policy.ignore_unknown:
                continue
            raise ValidationError(f"Field not allowed: {k}")
        fields[k] = v

    patch: dict = {}

    for k, raw in fields.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules for products and catalog items that column metadata
    cannot express.
    """
    for field in ("cost_price", "selling_price", "bulk_selling_price"):
        if patch.get(field) is not None and patch[field] < 0:
            raise ValidationError(f"{field} must be >= 0")

    if patch.get("quantity") is not None and patch["quantity"] < 0:
        raise ValidationError("quantity must be >= 0")

    if patch.get("units_per_bulk") is not None and patch["units_per_bulk"] < 1:
        raise ValidationError("units_per_bulk must be >= 1")
