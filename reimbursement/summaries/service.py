"""Summaries service layer — reporting windows, snapshot generation, queries.

Business logic:
  - Reporting windows run Tuesday → Friday and Friday → Tuesday
  - A summary is written only when the user has PENDING expenses in the
    window; otherwise generation is a no-op returning ``None``
  - Totals are ``Decimal`` sums; snapshots are JSON copies of the
    captured expenses and never follow later status changes
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from reimbursement.common.constants import ExpenseStatus, SummaryTriggerType
from reimbursement.common.exceptions import NotFoundException, ValidationException
from reimbursement.common.pagination import paginate
from reimbursement.config import settings
from reimbursement.expenses.models import Expense
from reimbursement.summaries.models import Summary
from reimbursement.summaries.schemas import ExpenseSnapshot
from reimbursement.users.models import User

CENT = Decimal("0.01")

# Days back from today (datetime.weekday(), Monday=0) to the start of the
# current reporting window. Cut-offs fall on Tuesday and Friday.
_DAYS_SINCE_CUTOFF: dict[int, int] = {
    0: 3,  # Monday    → last Friday
    1: 4,  # Tuesday   → last Friday
    2: 1,  # Wednesday → this Tuesday
    3: 2,  # Thursday  → this Tuesday
    4: 3,  # Friday    → this Tuesday
    5: 1,  # Saturday  → yesterday (Friday)
    6: 2,  # Sunday    → last Friday
}


def _tz() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


def _aware(value: datetime) -> datetime:
    """Interpret naive datetimes in the configured business timezone."""
    if value.tzinfo is None:
        return value.replace(tzinfo=_tz())
    return value


def get_period_start(now: datetime) -> datetime:
    """Return midnight at the start of the reporting window containing *now*.

    The result keeps the timezone of *now*.
    """
    start = now - timedelta(days=_DAYS_SINCE_CUTOFF[now.weekday()])
    return start.replace(hour=0, minute=0, second=0, microsecond=0)


class SummaryService:
    """Summary generation and retrieval."""

    # ── Generation ────────────────────────────────────────────────────

    @staticmethod
    async def generate_for_user(
        db: AsyncSession,
        user_id: uuid.UUID,
        trigger_type: SummaryTriggerType,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        *,
        now: Optional[datetime] = None,
    ) -> Optional[Summary]:
        """Snapshot *user_id*'s PENDING expenses created inside the window.

        Returns ``None`` without writing anything when the user does not
        exist or has no PENDING expense in the window.
        """
        now = _aware(now).astimezone(_tz()) if now else datetime.now(_tz())
        window_end = _aware(end_date) if end_date else now
        window_start = _aware(start_date) if start_date else get_period_start(now)

        if window_start > window_end:
            raise ValidationException(
                {"start_date": ["start_date must not be after end_date."]}
            )

        user = await db.get(User, user_id)
        if user is None:
            return None

        window_start = window_start.astimezone(timezone.utc)
        window_end = window_end.astimezone(timezone.utc)

        result = await db.execute(
            select(Expense)
            .where(
                Expense.user_id == user_id,
                Expense.status == ExpenseStatus.pending,
                Expense.created_at >= window_start,
                Expense.created_at <= window_end,
            )
            .order_by(Expense.date.desc())
        )
        expenses = list(result.unique().scalars().all())

        if not expenses:
            return None

        total = sum((e.amount for e in expenses), Decimal("0")).quantize(CENT)
        snapshots = [
            ExpenseSnapshot(
                id=e.id,
                description=e.description,
                amount=e.amount,
                date=e.date,
                status=e.status,
            ).model_dump(mode="json")
            for e in expenses
        ]

        summary = Summary(
            user_id=user_id,
            start_date=window_start,
            end_date=window_end,
            total_amount=total,
            expense_count=len(expenses),
            expenses=snapshots,
            trigger_type=trigger_type,
        )
        db.add(summary)
        await db.flush()

        return await SummaryService.get_summary(db, summary.id, refresh=True)

    @staticmethod
    async def generate_all_pending(
        db: AsyncSession,
        trigger_type: SummaryTriggerType = SummaryTriggerType.scheduled,
        *,
        now: Optional[datetime] = None,
    ) -> list[Summary]:
        """Generate one summary per user that has at least one PENDING expense.

        Users are processed sequentially; only non-empty results are kept.
        Calling this twice inside one window snapshots still-pending
        expenses again.
        """
        has_pending = (
            select(Expense.id)
            .where(
                Expense.user_id == User.id,
                Expense.status == ExpenseStatus.pending,
            )
            .exists()
        )
        user_ids = (
            await db.execute(
                select(User.id).where(has_pending).order_by(User.created_at)
            )
        ).scalars().all()

        summaries: list[Summary] = []
        for user_id in user_ids:
            summary = await SummaryService.generate_for_user(
                db, user_id, trigger_type, now=now,
            )
            if summary is not None:
                summaries.append(summary)
        return summaries

    # ── Read ──────────────────────────────────────────────────────────

    @staticmethod
    async def get_summary(
        db: AsyncSession,
        summary_id: uuid.UUID,
        *,
        refresh: bool = False,
    ) -> Summary:
        stmt = select(Summary).where(Summary.id == summary_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await db.execute(stmt)
        summary = result.unique().scalar_one_or_none()
        if not summary:
            raise NotFoundException("Summary", str(summary_id))
        return summary

    @staticmethod
    async def list_summaries(
        db: AsyncSession,
        user_id: Optional[uuid.UUID] = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[Summary], int]:
        """List summaries newest first, optionally for a single user."""
        stmt = select(Summary)
        if user_id:
            stmt = stmt.where(Summary.user_id == user_id)
        stmt = stmt.order_by(Summary.created_at.desc())
        return await paginate(db, stmt, page=page, limit=limit)
