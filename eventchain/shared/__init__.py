"""Shared utilities: telemetry and cross-cutting helpers.

Used by domain, application, and infrastructure. No business logic.
"""

from eventchain.shared.utils import (
    ensure_utc,
    generate_cuid,
    generate_uuid,
    utc_now,
)

__all__ = [
    "generate_cuid",
    "generate_uuid",
    "utc_now",
    "ensure_utc",
]
