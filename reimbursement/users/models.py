"""Users ORM models: User.

SQLAlchemy 2.0 async-compatible models.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from reimbursement.common.constants import UserRole
from reimbursement.database import Base


class User(Base):
    """Person known to the workflow, provisioned by the external login."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    external_id: Mapped[str] = mapped_column(
        sa.String(200), unique=True, nullable=False,
    )
    display_name: Mapped[Optional[str]] = mapped_column(sa.String(200))
    picture_url: Mapped[Optional[str]] = mapped_column(sa.String(1000))
    role: Mapped[UserRole] = mapped_column(
        sa.Enum(UserRole, name="user_role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=UserRole.employee,
    )
    is_approved: Mapped[bool] = mapped_column(
        sa.Boolean, nullable=False, default=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<User {self.display_name!r} {self.role.value}>"
