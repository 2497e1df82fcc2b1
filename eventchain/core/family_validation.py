"""Family ID format validation for the X-Family-ID header.

Families are owned by another service; only the format is checked here.
"""

import re

# CUID/UUID-style: alphanumeric, hyphen, underscore.
FAMILY_ID_MAX_LENGTH = 64
_FAMILY_ID_RE = re.compile(
    r"^[a-zA-Z0-9_-]{1," + str(FAMILY_ID_MAX_LENGTH) + r"}$"
)


def is_valid_family_id_format(value: str) -> bool:
    """Return True if value is a well-formed family (or user) identifier."""
    if not value or len(value) > FAMILY_ID_MAX_LENGTH:
        return False
    return bool(_FAMILY_ID_RE.fullmatch(value))
