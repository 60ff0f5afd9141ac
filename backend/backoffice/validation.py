from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable

from sqlalchemy import Boolean, DateTime, Float, Integer, String, Text

from .errors import ValidationError
from .time_utils import parse_iso_datetime


# Upper bound for any single money amount: 9,999,999.99 (fits a 32-bit INTEGER column)
MAX_AMOUNT_CENTS = 999_999_999


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Allowlist for client-writable columns of one model.

    - writable_fields: what clients may set (security boundary)
    - required_on_create: fields that must be present on POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)


def _columns_by_key(model) -> dict[str, Any]:
    return {c.key: c for c in model.__mapper__.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if isinstance(coltype, Integer):
        # bool is an int subclass; never accept it as a number
        if isinstance(value, bool):
            raise ValidationError(f"{col.key} debe ser un entero")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped or "e" in stripped.lower() or "." in stripped:
                raise ValidationError(f"{col.key} debe ser un entero")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} debe ser un entero")
        raise ValidationError(f"{col.key} debe ser un entero")

    if isinstance(coltype, Float):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(f"{col.key} debe ser numérico")
        return float(value)

    if isinstance(coltype, Boolean):
        if not isinstance(value, bool):
            raise ValidationError(f"{col.key} debe ser booleano")
        return value

    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                dt = None
            if dt is None:
                raise ValidationError(f"{col.key} debe ser una fecha ISO-8601")
            return dt
        raise ValidationError(f"{col.key} debe ser una fecha ISO-8601")

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(*, model, payload: dict | None, policy: ModelValidationPolicy, partial: bool) -> dict:
    """
    Validate and normalize incoming JSON against column metadata and a policy.

    partial=False: create semantics (enforces required_on_create)
    partial=True: patch semantics (only provided keys)

    Returns a cleaned dict holding only writable fields.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("JSON inválido")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Faltan campos obligatorios: {', '.join(missing)}")

    cols = _columns_by_key(model)
    for key in payload:
        if key not in policy.writable_fields or key not in cols:
            raise ValidationError(f"Campo no permitido: {key}")

    patch: dict = {}
    for key, raw in payload.items():
        col = cols[key]
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{key} no puede ser nulo")
            patch[key] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable and val == "":
            raise ValidationError(f"{key} no puede estar vacío")
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{key} supera el largo máximo {col.type.length}")

        patch[key] = val

    return patch


def require_cents(value: Any, field_name: str, *, allow_zero: bool = False) -> int:
    """Integer cents, strictly positive unless allow_zero."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field_name} debe ser un entero en centavos")
    if value < 0 or (value == 0 and not allow_zero):
        qualifier = "mayor o igual a 0" if allow_zero else "mayor a 0"
        raise ValidationError(f"El monto {field_name} debe ser {qualifier}")
    if value > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field_name} excede el máximo permitido")
    return value


def optional_cents(value: Any, field_name: str) -> int | None:
    if value is None:
        return None
    return require_cents(value, field_name, allow_zero=True)


def amount_to_cents(amount: Any, field_name: str = "amount", *, allow_zero: bool = False) -> int:
    """
    Convert a decimal amount (number or string) to integer cents, half-up.

    Goes through Decimal(str(x)) so 0.1 + 0.2 style float noise never
    reaches the ledger.
    """
    if isinstance(amount, bool) or amount is None:
        raise ValidationError(f"{field_name} debe ser numérico")
    try:
        dec = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field_name} debe ser numérico")
    if not dec.is_finite():
        raise ValidationError(f"{field_name} debe ser numérico")
    cents = int((dec * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return require_cents(cents, field_name, allow_zero=allow_zero)


def cents_from_payload(data: dict, *, cents_key: str = "amount_cents", amount_key: str = "amount") -> int:
    """Read a money value sent either as integer cents or as a decimal amount."""
    if data.get(cents_key) is not None:
        return require_cents(data.get(cents_key), cents_key)
    if data.get(amount_key) is not None:
        return amount_to_cents(data.get(amount_key), amount_key)
    raise ValidationError(f"{cents_key} o {amount_key} es obligatorio")


def optional_cents_from_payload(data: dict, *, cents_key: str, amount_key: str) -> int | None:
    """Like cents_from_payload, but absent means None and zero is allowed."""
    if data.get(cents_key) is not None:
        return require_cents(data.get(cents_key), cents_key, allow_zero=True)
    if data.get(amount_key) is not None:
        return amount_to_cents(data.get(amount_key), amount_key, allow_zero=True)
    return None


def require_choice(value: Any, choices: Iterable[str], field_name: str) -> str:
    allowed = list(choices)
    if value not in allowed:
        raise ValidationError(f"{field_name} inválido: debe ser uno de {', '.join(allowed)}")
    return value


def require_text(value: Any, field_name: str, *, max_length: int | None = None) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} es obligatorio")
    text = value.strip()
    if max_length is not None and len(text) > max_length:
        raise ValidationError(f"{field_name} supera el largo máximo {max_length}")
    return text


def optional_text(value: Any, field_name: str, *, max_length: int | None = None) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} debe ser texto")
    text = value.strip()
    if not text:
        return None
    if max_length is not None and len(text) > max_length:
        raise ValidationError(f"{field_name} supera el largo máximo {max_length}")
    return text


def require_id(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} inválido")
    if isinstance(value, int) and value > 0:
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ValidationError(f"{field_name} inválido")
