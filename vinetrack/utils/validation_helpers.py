from __future__ import annotations

from typing import Any, Optional

__all__ = ["clean_string", "coerce_float", "coerce_int", "FieldValidationError"]


class FieldValidationError(ValueError):
    """Raised when a boundary payload carries a malformed field."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message

    def as_errors(self) -> dict[str, list[str]]:
        return {self.field: [self.message]}


def clean_string(value: Any, *, max_length: int | None = None, field: str = "value") -> Optional[str]:
    if value is None:
        return None
    cleaned = str(value).strip()
    if not cleaned:
        return None
    if max_length is not None and len(cleaned) > max_length:
        raise FieldValidationError(field, f"must be at most {max_length} characters")
    return cleaned


def coerce_float(
    value: Any,
    *,
    field: str,
    minimum: float | None = None,
    exclusive_minimum: bool = False,
    maximum: float | None = None,
) -> Optional[float]:
    """Parse an optional real; bounds apply only when a value is present."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise FieldValidationError(field, "must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise FieldValidationError(field, "must be a number") from None
    if number != number or number in (float("inf"), float("-inf")):
        raise FieldValidationError(field, "must be a finite number")
    if minimum is not None:
        if exclusive_minimum and number <= minimum:
            raise FieldValidationError(field, f"must be greater than {minimum:g}")
        if not exclusive_minimum and number < minimum:
            raise FieldValidationError(field, f"must be at least {minimum:g}")
    if maximum is not None and number > maximum:
        raise FieldValidationError(field, f"must be at most {maximum:g}")
    return number


def coerce_int(value: Any, *, field: str, minimum: int | None = None) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise FieldValidationError(field, "must be an integer")
    if isinstance(value, float) and not value.is_integer():
        raise FieldValidationError(field, "must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise FieldValidationError(field, "must be an integer") from None
    if minimum is not None and number < minimum:
        raise FieldValidationError(field, f"must be at least {minimum}")
    return number
