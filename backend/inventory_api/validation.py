# Overview: Request validation helpers and the 400/404/409 error types shared by routes and services.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text


# 9,999,999.99 in cents
MAX_AMOUNT_CENTS = 999_999_999

# 100% in basis points
MAX_DISCOUNT_BPS = 10_000


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level uniqueness clash (duplicate SKU, active name, email)."""


class NotFoundError(LookupError):
    """404-level missing record."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Which columns a client may write, and which of them a create must carry.
    Anything else in the body is rejected, not ignored.
    """
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self):
        object.__setattr__(self, "writable_fields", frozenset(self.writable_fields))
        object.__setattr__(self, "required_on_create", frozenset(self.required_on_create or ()))


def _strict_int(name: str, value: Any) -> int:
    """Accept ints and plain digit strings; bools, floats, '1.0' and '1e3' are errors."""
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{name} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        digits = text[1:] if text[:1] in ("+", "-") else text
        if digits.isdigit():
            return int(text)
    raise ValidationError(f"{name} must be an integer")


def _coerce(column, value: Any) -> Any:
    kind = column.type
    if isinstance(kind, Integer):
        return _strict_int(column.key, value)
    if isinstance(kind, Boolean):
        return value if isinstance(value, bool) else bool(value)
    if isinstance(kind, (String, Text)):
        text = str(value).strip()
        if text == "" and not column.nullable:
            raise ValidationError(f"{column.key} cannot be blank")
        limit = getattr(kind, "length", None)
        if limit and len(text) > limit:
            raise ValidationError(f"{column.key} exceeds max length {limit}")
        return text
    return value


def validate_payload(*, model, payload: dict, policy: ModelValidationPolicy, partial: bool) -> dict:
    """
    Turn a JSON body into a column patch for `model`.

    partial=False is create: every required_on_create field must be present.
    partial=True is update: only the keys sent are checked.
    Types, nullability and String lengths come from the model's columns.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(policy.required_on_create - set(payload))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    columns = {c.key: c for c in model.__mapper__.columns}
    unexpected = sorted(k for k in payload if k not in policy.writable_fields or k not in columns)
    if unexpected:
        raise ValidationError(f"Field not allowed: {', '.join(unexpected)}")

    patch: dict = {}
    for key, raw in payload.items():
        column = columns[key]
        if raw is None:
            if not column.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[key] = None
        else:
            patch[key] = _coerce(column, raw)
    return patch


def _non_negative(patch: dict, name: str, *, ceiling: int | None = None, positive: bool = False) -> None:
    value = patch.get(name)
    if value is None:
        return
    if value < 0 or (positive and value == 0):
        raise ValidationError(f"{name} must be {'>' if positive else '>='} 0")
    if ceiling is not None and value > ceiling:
        raise ValidationError(f"{name} cannot exceed {ceiling}")


def enforce_rules_product(patch: dict) -> None:
    _non_negative(patch, "price_cents", ceiling=MAX_AMOUNT_CENTS, positive=True)
    _non_negative(patch, "cost_price_cents", ceiling=MAX_AMOUNT_CENTS)
    _non_negative(patch, "stock_quantity", ceiling=MAX_AMOUNT_CENTS)
    _non_negative(patch, "min_stock_level", ceiling=MAX_AMOUNT_CENTS)


def enforce_rules_contact(patch: dict) -> None:
    email = patch.get("email")
    if email and "@" not in email:
        raise ValidationError("email is not a valid address")


def parse_int_field(
    data: dict,
    name: str,
    *,
    required: bool = True,
    default: int | None = None,
    ceiling: int = MAX_AMOUNT_CENTS,
) -> int | None:
    """Pull one strict integer out of an ad-hoc request body; its magnitude is capped at ceiling."""
    if data.get(name) is None:
        if required:
            raise ValidationError(f"{name} is required")
        return default
    value = _strict_int(name, data[name])
    if abs(value) > ceiling:
        raise ValidationError(f"{name} cannot exceed {ceiling} in magnitude")
    return value


def parse_bulk_status(data: dict, ids_field: str) -> tuple[list[int], bool]:
    """Read {"<ids_field>": [1, 2], "is_active": true} for the bulk status endpoints."""
    ids = data.get(ids_field)
    if not isinstance(ids, list) or not ids:
        raise ValidationError(f"{ids_field} must be a non-empty list")
    parsed = [_strict_int(ids_field, value) for value in ids]
    if any(value <= 0 or value > MAX_AMOUNT_CENTS for value in parsed):
        raise ValidationError(f"{ids_field} must hold positive ids")
    is_active = data.get("is_active")
    if not isinstance(is_active, bool):
        raise ValidationError("is_active must be a boolean")
    # Keep first occurrence order, drop repeats
    return list(dict.fromkeys(parsed)), is_active
