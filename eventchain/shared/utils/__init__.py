"""Shared utilities: datetime and id generators."""

from eventchain.shared.utils.datetime import ensure_utc, utc_now
from eventchain.shared.utils.generators import generate_cuid, generate_uuid

__all__ = [
    "generate_cuid",
    "generate_uuid",
    "utc_now",
    "ensure_utc",
]
