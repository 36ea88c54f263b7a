"""Auth dependencies — JWT validation, RBAC enforcement, scheduler secret.

Tokens are issued by the external login flow; this module only verifies
them and resolves the acting user. The role is read from the database,
not from the token, so a demotion takes effect immediately.
"""

from __future__ import annotations

import hmac
import uuid
from typing import Callable

from fastapi import Depends, Request
from fastapi.exceptions import HTTPException
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from reimbursement.common.constants import UserRole
from reimbursement.common.exceptions import AppException, ForbiddenException
from reimbursement.config import settings
from reimbursement.database import get_db
from reimbursement.users.models import User


def _extract_bearer(request: Request) -> str:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header.")
    return auth_header[7:]


# ── Core dependency ─────────────────────────────────────────────────

async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """Validate JWT and return the authenticated, approved User."""
    token = _extract_bearer(request)

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token has expired.")
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token.")

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token subject.")

    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="User account not found.")
    if not user.is_approved:
        raise ForbiddenException("Account is pending approval.")

    # Attach role to request state for downstream use
    request.state.user_role = user.role
    return user


# ── Role-based dependency ───────────────────────────────────────────

def require_role(*allowed_roles: UserRole) -> Callable:
    """Return a FastAPI dependency that enforces role membership."""

    async def _check(
        request: Request,
        user: User = Depends(get_current_user),
    ) -> User:
        user_role: UserRole = request.state.user_role
        if user_role not in allowed_roles:
            raise ForbiddenException(
                detail=f"Role '{user_role.value}' is not permitted. Required: {[r.value for r in allowed_roles]}.",
            )
        return user

    return _check


require_manager = require_role(UserRole.manager)


# ── Scheduler dependency ────────────────────────────────────────────

async def verify_cron_secret(request: Request) -> None:
    """Accept only ``Authorization: Bearer <CRON_SECRET>``."""
    if not settings.CRON_SECRET:
        raise AppException(
            status_code=500,
            error_type="server-configuration",
            title="Server Configuration Error",
            detail="CRON_SECRET is not configured.",
        )
    expected = f"Bearer {settings.CRON_SECRET}"
    provided = request.headers.get("Authorization") or ""
    if not hmac.compare_digest(provided.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Unauthorized")
