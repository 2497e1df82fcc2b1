"""Request context dependencies: family and user headers."""

from __future__ import annotations

from fastapi import Request

from eventchain.core.config import get_settings
from eventchain.core.family_validation import is_valid_family_id_format
from eventchain.domain.exceptions import ValidationException


def _required_header(request: Request, name: str) -> str:
    value = request.headers.get(name)
    if not value or not value.strip():
        raise ValidationException(f"Missing required header: {name}", field=name)
    value = value.strip()
    if not is_valid_family_id_format(value):
        raise ValidationException(
            f"Invalid {name} format (use alphanumeric, hyphen, underscore; max 64 characters)",
            field=name,
        )
    return value


async def get_family_id(request: Request) -> str:
    """Resolve the caller's family from the family header (400 when missing or malformed)."""
    return _required_header(request, get_settings().family_header_name)


async def get_user_id(request: Request) -> str:
    """Resolve the authoring user from the user header (400 when missing or malformed)."""
    return _required_header(request, get_settings().user_header_name)
