"""Expenses service layer — submission, approval workflow, bulk approval.

Business logic:
  - Every status change is gated by ``permissions.can_transition_to``
  - Writes are conditional on the status that was checked, so a caller
    holding stale data can never apply a second transition
  - Bulk approval validates the whole batch before a single conditional
    UPDATE; the affected-row count is reported as-is
"""

from __future__ import annotations

import re
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Sequence
from zoneinfo import ZoneInfo

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from reimbursement.common.constants import (
    DESCRIPTION_MAX_LENGTH,
    REJECTION_REASON_MAX_LENGTH,
    ExpenseStatus,
    UserRole,
)
from reimbursement.common.exceptions import (
    ForbiddenException,
    IllegalTransitionException,
    InvalidRequestException,
    InvalidStateException,
    NotFoundException,
    TooManyItemsException,
    ValidationException,
)
from reimbursement.common.pagination import paginate
from reimbursement.config import settings
from reimbursement.expenses import permissions
from reimbursement.expenses.models import Expense

CENT = Decimal("0.01")

_MARKUP_RE = re.compile(r"[<>]")


def _today() -> date:
    return datetime.now(ZoneInfo(settings.TIMEZONE)).date()


def _to_money(value: Any, field: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationException({field: ["Amount must be a decimal number."]})
    if not amount.is_finite():
        raise ValidationException({field: ["Amount must be a decimal number."]})
    # Sub-cent precision is refused rather than rounded
    if amount != amount.quantize(CENT):
        raise ValidationException({field: ["Amount must have at most two decimal places."]})
    if amount <= 0:
        raise ValidationException({field: ["Amount must be a positive number."]})
    return amount.quantize(CENT)


class ExpenseService:
    """Business logic for expense operations."""

    # ── Create ────────────────────────────────────────────────────────

    @staticmethod
    async def create_expense(
        db: AsyncSession,
        user_id: uuid.UUID,
        description: str,
        amount: Decimal,
        expense_date: date,
        image_url: str | None = None,
    ) -> Expense:
        """Create a new PENDING expense owned by *user_id*."""
        errors: dict[str, list[str]] = {}

        clean_description = _MARKUP_RE.sub("", description or "").strip()
        if not clean_description:
            errors["description"] = ["Description is required."]
        elif len(clean_description) > DESCRIPTION_MAX_LENGTH:
            errors["description"] = [
                f"Description must be at most {DESCRIPTION_MAX_LENGTH} characters."
            ]

        if expense_date > _today():
            errors["date"] = ["Date cannot be in the future."]

        try:
            clean_amount = _to_money(amount, "amount")
        except ValidationException as exc:
            errors.update(exc.errors or {})

        if errors:
            raise ValidationException(errors)

        expense = Expense(
            user_id=user_id,
            description=clean_description,
            amount=clean_amount,
            date=expense_date,
            image_url=image_url,
            status=ExpenseStatus.pending,
        )
        db.add(expense)
        await db.flush()

        return await ExpenseService.get_expense(db, expense.id, refresh=True)

    # ── Read ──────────────────────────────────────────────────────────

    @staticmethod
    async def get_expense(
        db: AsyncSession,
        expense_id: uuid.UUID,
        *,
        refresh: bool = False,
    ) -> Expense:
        """Get a single expense by ID, owner and approver joined.

        ``refresh=True`` overwrites any copy already held by the session,
        which is required after a conditional UPDATE.
        """
        stmt = select(Expense).where(Expense.id == expense_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await db.execute(stmt)
        expense = result.unique().scalar_one_or_none()
        if not expense:
            raise NotFoundException("Expense", str(expense_id))
        return expense

    @staticmethod
    async def list_expenses(
        db: AsyncSession,
        user_id: Optional[uuid.UUID] = None,
        status: Optional[ExpenseStatus] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[Expense], int]:
        """List expenses with optional filters, newest expense date first."""
        stmt = select(Expense)

        if user_id:
            stmt = stmt.where(Expense.user_id == user_id)
        if status:
            stmt = stmt.where(Expense.status == status)
        if start_date:
            stmt = stmt.where(Expense.date >= start_date)
        if end_date:
            stmt = stmt.where(Expense.date <= end_date)

        stmt = stmt.order_by(Expense.date.desc(), Expense.created_at.desc())
        return await paginate(db, stmt, page=page, limit=limit)

    @staticmethod
    async def get_status_overview(db: AsyncSession) -> dict[str, Any]:
        """Counts and decimal totals per status plus the five oldest pending expenses."""
        rows = (
            await db.execute(
                select(
                    Expense.status,
                    func.count(Expense.id),
                    func.coalesce(func.sum(Expense.amount), 0),
                ).group_by(Expense.status)
            )
        ).all()

        counts = {s.name: 0 for s in ExpenseStatus}
        totals = {s.name: Decimal("0.00") for s in ExpenseStatus}
        for status, count, total in rows:
            counts[status.name] = count
            totals[status.name] = Decimal(str(total)).quantize(CENT)
        counts["total"] = sum(counts.values())
        del totals[ExpenseStatus.rejected.name]

        recent = await db.execute(
            select(Expense)
            .where(Expense.status == ExpenseStatus.pending)
            .order_by(Expense.created_at.asc())
            .limit(5)
        )

        return {
            "counts": counts,
            "totals": totals,
            "recent_pending": list(recent.unique().scalars().all()),
        }

    # ── Delete ────────────────────────────────────────────────────────

    @staticmethod
    async def delete_expense(
        db: AsyncSession,
        expense_id: uuid.UUID,
        actor_id: uuid.UUID,
        actor_role: UserRole,
    ) -> None:
        """Delete a PENDING expense. Only its owner may do so."""
        expense = await ExpenseService.get_expense(db, expense_id)
        is_owner = expense.user_id == actor_id

        if not permissions.can_delete(actor_role, is_owner, expense.status):
            if not is_owner:
                raise ForbiddenException("Only the owner can delete this expense.")
            raise ValidationException(
                {"status": [f"Cannot delete an expense with status '{expense.status.value}'."]}
            )

        result = await db.execute(
            delete(Expense)
            .where(
                Expense.id == expense_id,
                Expense.user_id == actor_id,
                Expense.status == ExpenseStatus.pending,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ValidationException(
                {"status": ["Expense is no longer pending."]}
            )
        db.expunge(expense)

    # ── Approval flow ─────────────────────────────────────────────────

    @staticmethod
    async def _transition(
        db: AsyncSession,
        expense: Expense,
        target: ExpenseStatus,
        actor_role: UserRole,
        values: dict[str, Any],
    ) -> Expense:
        """Move *expense* to *target* if the table allows it for *actor_role*.

        The UPDATE only matches while the row still holds the status that
        was checked; losing that race surfaces as an illegal transition
        from whatever status is now stored.
        """
        current = expense.status
        if not permissions.can_transition_to(current, target, actor_role):
            raise IllegalTransitionException(
                current.value, target.value, entity_id=expense.id, role=actor_role.value,
            )

        result = await db.execute(
            update(Expense)
            .where(Expense.id == expense.id, Expense.status == current)
            .values(status=target, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            latest = await ExpenseService.get_expense(db, expense.id, refresh=True)
            raise IllegalTransitionException(
                latest.status.value, target.value, entity_id=expense.id,
            )

        return await ExpenseService.get_expense(db, expense.id, refresh=True)

    @staticmethod
    async def approve_expense(
        db: AsyncSession,
        expense_id: uuid.UUID,
        actor_id: uuid.UUID,
        actor_role: UserRole,
    ) -> Expense:
        """Approve a PENDING expense."""
        expense = await ExpenseService.get_expense(db, expense_id)
        return await ExpenseService._transition(
            db,
            expense,
            ExpenseStatus.approved,
            actor_role,
            {"approver_id": actor_id, "approval_date": datetime.now(timezone.utc)},
        )

    @staticmethod
    async def reject_expense(
        db: AsyncSession,
        expense_id: uuid.UUID,
        actor_id: uuid.UUID,
        actor_role: UserRole,
        reason: str,
    ) -> Expense:
        """Reject a PENDING expense with a mandatory reason."""
        clean_reason = (reason or "").strip()
        if not clean_reason:
            raise ValidationException({"reason": ["Rejection reason is required."]})
        if len(clean_reason) > REJECTION_REASON_MAX_LENGTH:
            raise ValidationException(
                {"reason": [
                    f"Rejection reason must be at most {REJECTION_REASON_MAX_LENGTH} characters."
                ]}
            )

        expense = await ExpenseService.get_expense(db, expense_id)
        return await ExpenseService._transition(
            db,
            expense,
            ExpenseStatus.rejected,
            actor_role,
            {
                "approver_id": actor_id,
                "approval_date": datetime.now(timezone.utc),
                "rejection_reason": clean_reason,
            },
        )

    @staticmethod
    async def mark_paid(
        db: AsyncSession,
        expense_id: uuid.UUID,
        actor_id: uuid.UUID,
        actor_role: UserRole,
        paid_amount: Decimal | None = None,
        paid_date: datetime | None = None,
    ) -> Expense:
        """Mark an APPROVED expense as reimbursed.

        *paid_amount* defaults to the claimed amount and *paid_date* to now.
        """
        amount = _to_money(paid_amount, "paid_amount") if paid_amount is not None else None

        expense = await ExpenseService.get_expense(db, expense_id)
        return await ExpenseService._transition(
            db,
            expense,
            ExpenseStatus.reimbursed,
            actor_role,
            {
                "paid_amount": amount if amount is not None else expense.amount,
                "paid_date": paid_date or datetime.now(timezone.utc),
            },
        )

    # ── Bulk approval ─────────────────────────────────────────────────

    @staticmethod
    async def bulk_approve(
        db: AsyncSession,
        expense_ids: Sequence[uuid.UUID],
        actor_id: uuid.UUID,
        actor_role: UserRole,
    ) -> int:
        """Approve a batch of PENDING expenses; returns the number actually updated.

        The batch is rejected as a whole if any ID is unknown or any member
        is not PENDING. Rows that leave PENDING between validation and the
        write are skipped by the UPDATE predicate and not counted.
        """
        if not expense_ids:
            raise InvalidRequestException("ids must be a non-empty list.")
        limit = settings.BULK_APPROVE_LIMIT
        if len(expense_ids) > limit:
            raise TooManyItemsException(limit, len(expense_ids))

        if not permissions.can_transition_to(
            ExpenseStatus.pending, ExpenseStatus.approved, actor_role,
        ):
            raise IllegalTransitionException(
                ExpenseStatus.pending.value,
                ExpenseStatus.approved.value,
                role=actor_role.value,
            )

        ids = list(dict.fromkeys(expense_ids))

        rows = (
            await db.execute(
                select(Expense.id, Expense.status).where(Expense.id.in_(ids))
            )
        ).all()
        found = {row.id: row.status for row in rows}

        not_found = [i for i in ids if i not in found]
        if not_found:
            raise NotFoundException("Expense", not_found)

        not_pending = [i for i in ids if found[i] != ExpenseStatus.pending]
        if not_pending:
            raise InvalidStateException(
                not_pending,
                ExpenseStatus.pending.value,
                {i: found[i].value for i in not_pending},
            )

        result = await db.execute(
            update(Expense)
            .where(Expense.id.in_(ids), Expense.status == ExpenseStatus.pending)
            .values(
                status=ExpenseStatus.approved,
                approver_id=actor_id,
                approval_date=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
