from __future__ import annotations
from datetime import datetime
from clinic.time_utils import parse_iso_datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Float, Integer, Numeric, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta


# Maximum single amount: 99,999,999.99 (9,999,999,999 cents would overflow 32-bit ints)
MAX_AMOUNT_CENTS = 999_999_999


class ValidationError(ValueError):
    """400-level input problem."""


class NotFoundError(LookupError):
    """404-level: the id does not resolve inside the caller's clinic."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        # Already an int (but not bool which is a subclass of int)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        # String input - must be plain digits (with optional leading minus)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer")
            # Reject scientific notation (e.g., "1e15", "1E10")
            if 'e' in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain integer (scientific notation not allowed)")
            # Reject decimal points (e.g., "12.5")
            if '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        # Reject floats explicitly
        if isinstance(value, float):
            raise ValidationError(f"{col.key} must be an integer, not a decimal")
        # Other types
        raise ValidationError(f"{col.key} must be an integer")

    # Rates and other fractional values
    if isinstance(coltype, (Float, Numeric)):
        if isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a number")
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{col.key} must be a number")

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be true or false")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
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

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def _check_amount(patch: dict, field: str, *, allow_negative: bool = False, allow_zero: bool = False) -> None:
    if field not in patch or patch[field] is None:
        return
    amount = patch[field]
    if not allow_negative and amount < 0:
        raise ValidationError(f"{field} must be >= 0")
    if not allow_zero and amount == 0:
        raise ValidationError(f"{field} must be non-zero")
    if abs(amount) > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_CENTS} ({MAX_AMOUNT_CENTS / 100:,.2f})")


def enforce_rules_expense(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    from clinic.models.financial import EXPENSE_CREATE_STATUSES

    _check_amount(patch, "amount_cents")
    if "status" in patch and patch["status"] not in EXPENSE_CREATE_STATUSES:
        raise ValidationError(
            f"status must be one of {', '.join(EXPENSE_CREATE_STATUSES)}"
        )


def enforce_rules_account(patch: dict) -> None:
    from clinic.models.financial import ACCOUNT_TYPES

    _check_amount(patch, "balance_cents", allow_negative=True, allow_zero=True)
    if "account_type" in patch and patch["account_type"] not in ACCOUNT_TYPES:
        raise ValidationError(f"account_type must be one of {', '.join(ACCOUNT_TYPES)}")


def enforce_rules_transaction(patch: dict) -> None:
    from clinic.models.financial import TRANSACTION_TYPES

    _check_amount(patch, "amount_cents", allow_negative=True)
    if "type" in patch and patch["type"] not in TRANSACTION_TYPES:
        raise ValidationError(f"type must be one of {', '.join(TRANSACTION_TYPES)}")

    # Reports read the sign, so it has to agree with the type
    amount = patch.get("amount_cents")
    if amount is not None:
        if patch.get("type") == "income" and amount < 0:
            raise ValidationError("income transactions must have a positive amount_cents")
        if patch.get("type") == "expense" and amount > 0:
            raise ValidationError("expense transactions must have a negative amount_cents")


def enforce_rules_budget(patch: dict) -> None:
    _check_amount(patch, "total_cents", allow_zero=True)
    if "month" in patch and not 1 <= patch["month"] <= 12:
        raise ValidationError("month must be between 1 and 12")
    if "year" in patch and not 2000 <= patch["year"] <= 2100:
        raise ValidationError("year must be between 2000 and 2100")


def enforce_rules_goal(patch: dict) -> None:
    _check_amount(patch, "target_cents")
    _check_amount(patch, "current_cents", allow_zero=True)
    start, end = patch.get("start_date"), patch.get("end_date")
    if start is not None and end is not None and end < start:
        raise ValidationError("end_date must be on or after start_date")


def enforce_rules_payment(patch: dict) -> None:
    _check_amount(patch, "amount_cents")


def enforce_rules_professional(patch: dict) -> None:
    rate = patch.get("commission_rate")
    if rate is not None and not 0 <= rate <= 1:
        raise ValidationError("commission_rate must be between 0 and 1")


def enforce_rules_appointment(patch: dict) -> None:
    start, end = patch.get("start_time"), patch.get("end_time")
    if start is not None and end is not None and end <= start:
        raise ValidationError("end_time must be after start_time")
