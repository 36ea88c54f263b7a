"""Users Pydantic v2 schemas — request/response validation."""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from reimbursement.common.constants import UserRole
from reimbursement.common.pagination import PaginationMeta


class UserBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    display_name: Optional[str] = None
    picture_url: Optional[str] = None


class UserOut(BaseModel):
    """Full user representation."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    display_name: Optional[str] = None
    picture_url: Optional[str] = None
    role: UserRole
    is_approved: bool
    created_at: Optional[datetime] = None


class UserListResponse(BaseModel):
    data: List[UserOut]
    meta: PaginationMeta


class UserActionResponse(BaseModel):
    message: str
    user: UserOut
