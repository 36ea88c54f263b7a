"""Users router — account activation for managers."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from reimbursement.auth.dependencies import get_current_user, require_manager
from reimbursement.common.pagination import PaginationParams, build_meta
from reimbursement.database import get_db
from reimbursement.users.models import User
from reimbursement.users.schemas import UserActionResponse, UserListResponse, UserOut
from reimbursement.users.service import UserService

router = APIRouter(prefix="", tags=["users"])


@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(get_current_user)):
    """The authenticated user."""
    return UserOut.model_validate(user)


@router.get("/", response_model=UserListResponse)
async def list_users(
    is_approved: Optional[bool] = Query(None),
    pagination: PaginationParams = Depends(),
    user: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    users, total = await UserService.list_users(
        db, is_approved=is_approved, page=pagination.page, limit=pagination.limit,
    )
    return UserListResponse(
        data=[UserOut.model_validate(u) for u in users],
        meta=build_meta(total, pagination.page, pagination.limit),
    )


@router.post("/{user_id}/approve", response_model=UserActionResponse)
async def approve_user(
    user_id: uuid.UUID,
    user: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    approved = await UserService.approve_user(db, user_id)
    await db.commit()
    return UserActionResponse(
        message="User approved successfully",
        user=UserOut.model_validate(approved),
    )


@router.post("/{user_id}/disable", response_model=UserActionResponse)
async def disable_user(
    user_id: uuid.UUID,
    user: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    disabled = await UserService.disable_user(db, user_id, actor_id=user.id)
    await db.commit()
    return UserActionResponse(
        message="User disabled successfully",
        user=UserOut.model_validate(disabled),
    )
