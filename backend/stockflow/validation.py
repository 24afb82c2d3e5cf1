from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable

from stockflow.errors import ValidationError
from stockflow.time_utils import normalize_datetime


# Maximum price: 9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999


@dataclass(frozen=True)
class VariantLine:
    """One named variant and the quantity requested for it."""
    name: str
    quantity: int


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion for request input.

    Rejects booleans, floats, decimals in strings and scientific notation so
    that "1e3" or 2.5 units can never reach the stock tables.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def parse_quantity(value: Any, field: str = "quantity") -> int:
    if value is None:
        raise ValidationError(f"{field} is required")
    quantity = coerce_int(value, field)
    if quantity <= 0:
        raise ValidationError(f"{field} must be positive")
    return quantity


def parse_price_cents(value: Any, field: str) -> int:
    cents = coerce_int(value, field)
    if cents < 0:
        raise ValidationError(f"{field} cannot be negative")
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} exceeds maximum of {MAX_PRICE_CENTS}")
    return cents


def _line_parts(raw: Any) -> tuple[Any, Any]:
    if isinstance(raw, VariantLine):
        return raw.name, raw.quantity
    if isinstance(raw, dict):
        name = raw.get("name", raw.get("nombre"))
        quantity = raw.get("quantity", raw.get("cantidad"))
        return name, quantity
    if isinstance(raw, (tuple, list)) and len(raw) == 2:
        return raw[0], raw[1]
    raise ValidationError("variant line must be an object with name and quantity")


def parse_variant_lines(raw: Iterable[Any] | None) -> list[VariantLine] | None:
    """
    Normalize variant lines from request payloads or service callers.

    Accepts VariantLine instances, {"name", "quantity"} dicts (the legacy
    {"nombre", "cantidad"} keys too) or (name, quantity) pairs. Lines with a
    zero quantity are dropped; negative quantities and repeated names are
    rejected. Returns None when no lines were given.
    """
    if raw is None:
        return None
    if isinstance(raw, (str, bytes, dict)):
        raise ValidationError("variants must be a list")

    lines: list[VariantLine] = []
    seen: set[str] = set()
    for item in raw:
        name, quantity = _line_parts(item)
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("variant name is required")
        name = name.strip()
        qty = coerce_int(quantity, f"quantity for variant {name!r}")
        if qty < 0:
            raise ValidationError(f"quantity for variant {name!r} cannot be negative")
        if name in seen:
            raise ValidationError(f"variant {name!r} listed more than once")
        seen.add(name)
        if qty == 0:
            continue
        lines.append(VariantLine(name=name, quantity=qty))
    return lines


def parse_optional_datetime(value: Any, field: str, *, end_of_day: bool = False) -> datetime | None:
    try:
        return normalize_datetime(value, end_of_day=end_of_day)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")


def require_fields(data: dict | None, *fields: str) -> dict:
    if not isinstance(data, dict):
        raise ValidationError("JSON body required")
    missing = [f for f in fields if data.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required field(s): {', '.join(missing)}")
    return data
