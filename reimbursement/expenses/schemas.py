"""Expenses Pydantic v2 schemas — request/response validation."""

import datetime as dt
import uuid
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from reimbursement.common.constants import (
    DESCRIPTION_MAX_LENGTH,
    REJECTION_REASON_MAX_LENGTH,
    ExpenseStatus,
)
from reimbursement.common.pagination import PaginationMeta
from reimbursement.users.schemas import UserBrief


# ═════════════════════════════════════════════════════════════════════
# Expense
# ═════════════════════════════════════════════════════════════════════


class ExpenseCreate(BaseModel):
    """Submit a new expense."""

    description: str = Field(..., min_length=1, max_length=DESCRIPTION_MAX_LENGTH)
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    date: dt.date
    image_url: Optional[str] = Field(None, max_length=1000)


class ExpenseOut(BaseModel):
    """Full expense representation with owner and approver joined."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    user: Optional[UserBrief] = None
    description: str
    amount: Decimal
    date: dt.date
    image_url: Optional[str] = None
    status: ExpenseStatus
    approver_id: Optional[uuid.UUID] = None
    approver: Optional[UserBrief] = None
    approval_date: Optional[dt.datetime] = None
    rejection_reason: Optional[str] = None
    paid_date: Optional[dt.datetime] = None
    paid_amount: Optional[Decimal] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class ExpenseListResponse(BaseModel):
    data: List[ExpenseOut]
    meta: PaginationMeta


# ═════════════════════════════════════════════════════════════════════
# Transitions
# ═════════════════════════════════════════════════════════════════════


class ExpenseRejectRequest(BaseModel):
    """Payload for rejecting an expense."""

    reason: str = Field(..., max_length=REJECTION_REASON_MAX_LENGTH)


class ExpensePaymentRequest(BaseModel):
    """Payload for marking an expense reimbursed. Both fields are optional."""

    paid_amount: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2)
    paid_date: Optional[dt.datetime] = None


class BulkApproveRequest(BaseModel):
    # Size limits are enforced by the service so that they map onto
    # TooManyItems / InvalidRequest rather than a generic 422.
    ids: List[uuid.UUID]


class BulkApproveResponse(BaseModel):
    approved: int
    requested: int
    message: str


# ═════════════════════════════════════════════════════════════════════
# Manager overview
# ═════════════════════════════════════════════════════════════════════


class StatusCounts(BaseModel):
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    reimbursed: int = 0
    total: int = 0


class StatusTotals(BaseModel):
    pending: Decimal = Decimal("0.00")
    approved: Decimal = Decimal("0.00")
    reimbursed: Decimal = Decimal("0.00")


class ExpenseOverview(BaseModel):
    counts: StatusCounts
    totals: StatusTotals
    recent_pending: List[ExpenseOut]
