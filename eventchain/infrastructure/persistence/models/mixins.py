"""SQLAlchemy mixins for common model patterns (DRY).

Provides: CuidMixin, FamilyMixin, TimestampMixin, VersionedMixin and the
combined FamilyScopedModel.
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, declared_attr, mapped_column
from sqlalchemy.sql import func

from eventchain.shared.utils.generators import generate_cuid


def status_check(column: str, values: list[str]) -> str:
    """Build a CHECK expression restricting column to the given values."""
    quoted = ", ".join("'{}'".format(v.replace("'", "''")) for v in values)
    return f"{column} IN ({quoted})"


class CuidMixin:
    """Mixin for models using CUID as primary key. Provides id with default generate_cuid."""

    @declared_attr
    def id(cls) -> Mapped[str]:
        return mapped_column(String, primary_key=True, default=generate_cuid)


class FamilyMixin:
    """Mixin for family-scoped models. The family itself lives in another service, so no FK."""

    @declared_attr
    def family_id(cls) -> Mapped[str]:
        return mapped_column(String, nullable=False, index=True)


class TimestampMixin:
    """Mixin for created_at and updated_at (server defaults, timezone-aware)."""

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        )

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        )


class VersionedMixin:
    """Mixin for optimistic locking: version integer, default 1."""

    @declared_attr
    def version(cls) -> Mapped[int]:
        return mapped_column(Integer, default=1, nullable=False)


class FamilyScopedModel(CuidMixin, FamilyMixin, TimestampMixin, VersionedMixin):
    """Combined mixin: CUID + family_id + created_at/updated_at + version."""

    __abstract__ = True
