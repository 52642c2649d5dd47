from __future__ import annotations

import math
from typing import Any


class ValidationError(ValueError):
    """Input problem detected before any write."""


def require_text(value: Any, field: str) -> str:
    """Trimmed non-empty string or ValidationError."""
    if value is None:
        raise ValidationError(f"{field} is required")
    s = str(value).strip()
    if not s:
        raise ValidationError(f"{field} is required")
    return s


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion.

    - ints pass through (bool is rejected even though it subclasses int)
    - strings must be plain digits with an optional leading minus
    - floats, decimals and scientific notation are rejected
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def coerce_number(value: Any, field: str, *, default: float | None = None) -> float:
    """
    Numeric coercion for quantities, rates and money.

    None (or a blank string) becomes `default` when one is given.
    NaN and infinities are rejected so they never reach a stored column.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if default is not None:
            return float(default)
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")
    if math.isnan(number) or math.isinf(number):
        raise ValidationError(f"{field} must be a finite number")
    return number


def parse_order_value(value: Any) -> float | None:
    """
    Worker "ordering" cells are free text. Returns the quantity when the
    text is a positive number, otherwise None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number) or number <= 0:
        return None
    return number


def format_quantity(value: float | int) -> str:
    """Render 4.0 as "4" and 2.5 as "2.5"."""
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return f"{number:g}"
