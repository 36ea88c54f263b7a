"""Summaries Pydantic v2 schemas — snapshots and request/response validation."""

import datetime as dt
import uuid
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict

from reimbursement.common.constants import ExpenseStatus, SummaryTriggerType
from reimbursement.common.pagination import PaginationMeta


class ExpenseSnapshot(BaseModel):
    """Copy of an expense as it stood when the summary was generated."""

    id: uuid.UUID
    description: str
    amount: Decimal
    date: dt.date
    status: ExpenseStatus


class SummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    user_name: Optional[str] = None
    user_picture_url: Optional[str] = None
    start_date: dt.datetime
    end_date: dt.datetime
    total_amount: Decimal
    expense_count: int
    expenses: List[ExpenseSnapshot]
    trigger_type: SummaryTriggerType
    created_at: Optional[dt.datetime] = None


class SummaryListResponse(BaseModel):
    summaries: List[SummaryOut]
    pagination: PaginationMeta


class SummaryGenerateRequest(BaseModel):
    """Manual generation; omit ``user_id`` to cover every user with pending expenses."""

    user_id: Optional[uuid.UUID] = None
    trigger_type: Literal["MANUAL"] = "MANUAL"
    start_date: Optional[dt.datetime] = None
    end_date: Optional[dt.datetime] = None


class SummaryBatchResponse(BaseModel):
    message: str
    count: int
    summaries: List[SummaryOut]
