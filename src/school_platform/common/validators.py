from __future__ import annotations

from typing import Any

from ..core.exceptions import ValidationError


def require_non_empty(value: Any, field_name: str) -> str:
    """Coerce an identifier to a stripped string, rejecting blanks."""
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field_name} is required")
    text = str(value).strip()
    if not text:
        raise ValidationError(f"{field_name} is required")
    return text


def require_identifier(value: Any, field_name: str) -> str:
    """Reject blank identifiers but keep the value exactly as given."""
    require_non_empty(value, field_name)
    return value if isinstance(value, str) else str(value)


def require_choice(value: str, field_name: str, enum_cls):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{field_name} must be one of: {allowed}")
