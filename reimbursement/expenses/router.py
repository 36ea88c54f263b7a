"""Expenses router — submission, listing, approval workflow.

All endpoints require authentication; workflow transitions require the
manager role.
"""

import logging
import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from reimbursement.auth.dependencies import get_current_user, require_manager
from reimbursement.common.constants import ExpenseStatus, SummaryTriggerType
from reimbursement.common.exceptions import ForbiddenException
from reimbursement.common.pagination import PaginationParams, build_meta
from reimbursement.config import settings
from reimbursement.database import get_db
from reimbursement.expenses import permissions
from reimbursement.expenses.schemas import (
    BulkApproveRequest,
    BulkApproveResponse,
    ExpenseCreate,
    ExpenseListResponse,
    ExpenseOut,
    ExpenseOverview,
    ExpensePaymentRequest,
    ExpenseRejectRequest,
)
from reimbursement.expenses.service import ExpenseService
from reimbursement.summaries.service import SummaryService
from reimbursement.users.models import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["expenses"])


# ── POST / ───────────────────────────────────────────────────────────

@router.post("/", response_model=ExpenseOut, status_code=201)
async def create_expense(
    body: ExpenseCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Submit a new expense."""
    if not permissions.can_create(user.role):
        raise ForbiddenException()
    expense = await ExpenseService.create_expense(
        db,
        user_id=user.id,
        description=body.description,
        amount=body.amount,
        expense_date=body.date,
        image_url=body.image_url,
    )
    if settings.SUMMARY_ON_SUBMISSION:
        await SummaryService.generate_for_user(
            db, user.id, SummaryTriggerType.submission,
        )
    await db.commit()
    return ExpenseOut.model_validate(expense)


# ── GET / ────────────────────────────────────────────────────────────

@router.get("/", response_model=ExpenseListResponse)
async def list_expenses(
    status: Optional[ExpenseStatus] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    include_all: bool = Query(
        False, alias="all", description="Managers only: include every user's expenses",
    ),
    pagination: PaginationParams = Depends(),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's expenses, or everyone's for managers passing ``all=true``."""
    view_all = include_all and permissions.can_view_all(user.role)
    expenses, total = await ExpenseService.list_expenses(
        db,
        user_id=None if view_all else user.id,
        status=status,
        start_date=start_date,
        end_date=end_date,
        page=pagination.page,
        limit=pagination.limit,
    )
    return ExpenseListResponse(
        data=[ExpenseOut.model_validate(e) for e in expenses],
        meta=build_meta(total, pagination.page, pagination.limit),
    )


# ── GET /overview ────────────────────────────────────────────────────

@router.get("/overview", response_model=ExpenseOverview)
async def expense_overview(
    user: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    """Counts and totals per status for the manager dashboard."""
    overview = await ExpenseService.get_status_overview(db)
    return ExpenseOverview(
        counts=overview["counts"],
        totals=overview["totals"],
        recent_pending=[ExpenseOut.model_validate(e) for e in overview["recent_pending"]],
    )


# ── POST /bulk-approve ───────────────────────────────────────────────

@router.post("/bulk-approve", response_model=BulkApproveResponse)
async def bulk_approve(
    body: BulkApproveRequest,
    user: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    """Approve up to BULK_APPROVE_LIMIT pending expenses at once (Manager only)."""
    approved = await ExpenseService.bulk_approve(
        db, body.ids, actor_id=user.id, actor_role=user.role,
    )
    await db.commit()
    requested = len(set(body.ids))
    if approved != requested:
        logger.warning(
            "Bulk approval by %s updated %d of %d expenses", user.id, approved, requested,
        )
    return BulkApproveResponse(
        approved=approved,
        requested=requested,
        message=f"Successfully approved {approved} expense(s)",
    )


# ── GET /{expense_id} ────────────────────────────────────────────────

@router.get("/{expense_id}", response_model=ExpenseOut)
async def get_expense(
    expense_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get a specific expense."""
    expense = await ExpenseService.get_expense(db, expense_id)
    # Authorization: owner or a role that can view everything
    if expense.user_id != user.id and not permissions.can_view_all(user.role):
        raise ForbiddenException("Not authorized to view this expense.")
    return ExpenseOut.model_validate(expense)


# ── DELETE /{expense_id} ─────────────────────────────────────────────

@router.delete("/{expense_id}", status_code=204)
async def delete_expense(
    expense_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete one of the caller's pending expenses."""
    await ExpenseService.delete_expense(
        db, expense_id, actor_id=user.id, actor_role=user.role,
    )
    await db.commit()
    return Response(status_code=204)


# ── POST /{expense_id}/approve ───────────────────────────────────────

@router.post("/{expense_id}/approve", response_model=ExpenseOut)
async def approve_expense(
    expense_id: uuid.UUID,
    user: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    """Approve a pending expense (Manager only)."""
    expense = await ExpenseService.approve_expense(
        db, expense_id, actor_id=user.id, actor_role=user.role,
    )
    await db.commit()
    return ExpenseOut.model_validate(expense)


# ── POST /{expense_id}/reject ────────────────────────────────────────

@router.post("/{expense_id}/reject", response_model=ExpenseOut)
async def reject_expense(
    expense_id: uuid.UUID,
    body: ExpenseRejectRequest,
    user: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    """Reject a pending expense with a reason (Manager only)."""
    expense = await ExpenseService.reject_expense(
        db, expense_id, actor_id=user.id, actor_role=user.role, reason=body.reason,
    )
    await db.commit()
    return ExpenseOut.model_validate(expense)


# ── POST /{expense_id}/pay ───────────────────────────────────────────

@router.post("/{expense_id}/pay", response_model=ExpenseOut)
async def mark_expense_paid(
    expense_id: uuid.UUID,
    body: ExpensePaymentRequest = ExpensePaymentRequest(),
    user: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    """Mark an approved expense as reimbursed (Manager only)."""
    expense = await ExpenseService.mark_paid(
        db,
        expense_id,
        actor_id=user.id,
        actor_role=user.role,
        paid_amount=body.paid_amount,
        paid_date=body.paid_date,
    )
    await db.commit()
    return ExpenseOut.model_validate(expense)
