"""Expenses ORM models: Expense.

SQLAlchemy 2.0 async-compatible models.
"""

from __future__ import annotations

import datetime as dt
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reimbursement.common.constants import ExpenseStatus
from reimbursement.database import Base


class Expense(Base):
    """Employee expense claim moving through the approval workflow."""

    __tablename__ = "expenses"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("users.id"),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(sa.String(500), nullable=False)
    amount: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False)
    date: Mapped[dt.date] = mapped_column(sa.Date, nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(sa.String(1000))
    status: Mapped[ExpenseStatus] = mapped_column(
        sa.Enum(ExpenseStatus, name="expense_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ExpenseStatus.pending,
    )
    approver_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True,
    )
    approval_date: Mapped[Optional[datetime]] = mapped_column(
        sa.DateTime(timezone=True),
    )
    rejection_reason: Mapped[Optional[str]] = mapped_column(sa.String(500))
    paid_date: Mapped[Optional[datetime]] = mapped_column(
        sa.DateTime(timezone=True),
    )
    paid_amount: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(12, 2))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        sa.Index("ix_expenses_user_status", "user_id", "status"),
        sa.Index("ix_expenses_status", "status"),
        sa.Index("ix_expenses_created_at", "created_at"),
    )

    # Relationships
    user = relationship(
        "User", foreign_keys=[user_id], lazy="joined",
    )
    approver = relationship(
        "User", foreign_keys=[approver_id], lazy="joined",
    )

    def __repr__(self) -> str:
        return f"<Expense {self.status.value} '{self.description[:30]}' {self.amount}>"
