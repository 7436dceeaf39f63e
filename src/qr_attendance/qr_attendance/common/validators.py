from __future__ import annotations

import math
from typing import Any, Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_positive(value: Any, field_name: str) -> float:
    number = optional_float(value, field_name)
    if number is None or number <= 0:
        raise ValidationError(f"{field_name} must be greater than zero")
    return number


def optional_float(value: Any, field_name: str) -> Optional[float]:
    """Parse an optional numeric field; blank means absent."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number") from None
    if not math.isfinite(number):
        raise ValidationError(f"{field_name} must be a finite number")
    return number


def require_latitude(value: Any) -> float:
    lat = optional_float(value, "latitude")
    if lat is None or not -90.0 <= lat <= 90.0:
        raise ValidationError("latitude must be between -90 and 90")
    return lat


def require_longitude(value: Any) -> float:
    lon = optional_float(value, "longitude")
    if lon is None or not -180.0 <= lon <= 180.0:
        raise ValidationError("longitude must be between -180 and 180")
    return lon
