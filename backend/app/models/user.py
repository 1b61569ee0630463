from datetime import datetime

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, TimestampMixin, UUIDMixin

ROLES = ("DIRECTION", "PLANNING", "EQUIPE", "LECTURE")

# Role groups for bulk data exchange: imports write, exports only read
IMPORT_ROLES = ("DIRECTION", "PLANNING")
EXPORT_ROLES = ("DIRECTION", "PLANNING", "LECTURE")


class User(Base, UUIDMixin, TimestampMixin):
    """Platform account; field teams (EQUIPE) only see their own planning."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(50), nullable=False)  # one of ROLES
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)  # soft delete

    @property
    def can_import(self) -> bool:
        return self.role in IMPORT_ROLES
