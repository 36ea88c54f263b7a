"""Summaries ORM models: Summary.

SQLAlchemy 2.0 async-compatible models.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reimbursement.common.constants import SummaryTriggerType
from reimbursement.database import Base


class Summary(Base):
    """Point-in-time roll-up of one user's pending expenses.

    Rows are written once and never updated; ``expenses`` holds copies of
    the captured claims, not references.
    """

    __tablename__ = "summaries"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    start_date: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False,
    )
    end_date: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False,
    )
    total_amount: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False)
    expense_count: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    expenses: Mapped[list] = mapped_column(JSONB, nullable=False)
    trigger_type: Mapped[SummaryTriggerType] = mapped_column(
        sa.Enum(
            SummaryTriggerType,
            name="summary_trigger_type",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        sa.Index("ix_summaries_user_id", "user_id"),
        sa.Index("ix_summaries_created_at", "created_at"),
    )

    # Relationships
    user = relationship("User", lazy="joined")

    @property
    def user_name(self):
        return self.user.display_name if self.user else None

    @property
    def user_picture_url(self):
        return self.user.picture_url if self.user else None

    def __repr__(self) -> str:
        return f"<Summary {self.trigger_type.value} {self.expense_count} expenses {self.total_amount}>"
