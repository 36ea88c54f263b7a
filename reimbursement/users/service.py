"""Users service layer — account activation gate for managers."""

from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from reimbursement.common.exceptions import NotFoundException, ValidationException
from reimbursement.common.pagination import paginate
from reimbursement.users.models import User


class UserService:
    """Business logic for user administration."""

    @staticmethod
    async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
        user = await db.get(User, user_id)
        if not user:
            raise NotFoundException("User", str(user_id))
        return user

    @staticmethod
    async def list_users(
        db: AsyncSession,
        is_approved: Optional[bool] = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[User], int]:
        """List users, oldest first, optionally filtered by activation."""
        stmt = select(User)
        if is_approved is not None:
            stmt = stmt.where(User.is_approved.is_(is_approved))
        stmt = stmt.order_by(User.created_at.asc())
        return await paginate(db, stmt, page=page, limit=limit)

    @staticmethod
    async def approve_user(db: AsyncSession, user_id: uuid.UUID) -> User:
        """Activate an account so it can sign in."""
        user = await UserService.get_user(db, user_id)
        user.is_approved = True
        await db.flush()
        return user

    @staticmethod
    async def disable_user(
        db: AsyncSession,
        user_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> User:
        """Deactivate an account. Managers cannot lock themselves out."""
        user = await UserService.get_user(db, user_id)
        if user.id == actor_id:
            raise ValidationException(
                {"user_id": ["Cannot disable your own account."]}
            )
        user.is_approved = False
        await db.flush()
        return user
