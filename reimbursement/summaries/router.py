"""Summaries router — manual generation, listing, scheduled generation.

Manual generation and listing require the manager role; the cron route
is authenticated with the shared CRON_SECRET instead of a user token.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from reimbursement.auth.dependencies import (
    get_current_user,
    require_manager,
    verify_cron_secret,
)
from reimbursement.common.constants import SummaryTriggerType
from reimbursement.common.exceptions import NotFoundException
from reimbursement.common.pagination import PaginationParams, build_meta
from reimbursement.common.rate_limit import limiter
from reimbursement.database import get_db
from reimbursement.summaries.schemas import (
    SummaryBatchResponse,
    SummaryGenerateRequest,
    SummaryListResponse,
    SummaryOut,
)
from reimbursement.summaries.service import SummaryService
from reimbursement.users.models import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["summaries"])
cron_router = APIRouter(prefix="", tags=["cron"])


# ── GET / ────────────────────────────────────────────────────────────

@router.get("/", response_model=SummaryListResponse)
async def list_summaries(
    user_id: Optional[uuid.UUID] = Query(None),
    pagination: PaginationParams = Depends(),
    user: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    """List summaries for every user, or one user (Manager only)."""
    summaries, total = await SummaryService.list_summaries(
        db, user_id=user_id, page=pagination.page, limit=pagination.limit,
    )
    return SummaryListResponse(
        summaries=[SummaryOut.model_validate(s) for s in summaries],
        pagination=build_meta(total, pagination.page, pagination.limit),
    )


# ── GET /mine ────────────────────────────────────────────────────────

@router.get("/mine", response_model=SummaryListResponse)
async def my_summaries(
    pagination: PaginationParams = Depends(),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's own summaries."""
    summaries, total = await SummaryService.list_summaries(
        db, user_id=user.id, page=pagination.page, limit=pagination.limit,
    )
    return SummaryListResponse(
        summaries=[SummaryOut.model_validate(s) for s in summaries],
        pagination=build_meta(total, pagination.page, pagination.limit),
    )


# ── POST / ───────────────────────────────────────────────────────────

@router.post("/", status_code=201)
async def generate_summaries(
    body: SummaryGenerateRequest,
    user: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    """Generate summaries on demand (Manager only).

    With ``user_id`` a single summary is produced (404 if that user has
    nothing pending); without it every user with pending expenses is
    covered.
    """
    trigger = SummaryTriggerType(body.trigger_type)

    if body.user_id:
        summary = await SummaryService.generate_for_user(
            db,
            body.user_id,
            trigger,
            start_date=body.start_date,
            end_date=body.end_date,
        )
        if summary is None:
            raise NotFoundException("Pending expenses for user", str(body.user_id))
        await db.commit()
        logger.info("Manual summary %s generated for user %s by %s", summary.id, body.user_id, user.id)
        return SummaryOut.model_validate(summary)

    summaries = await SummaryService.generate_all_pending(db, trigger)
    await db.commit()
    logger.info("Manual run by %s generated %d summaries", user.id, len(summaries))
    payload = SummaryBatchResponse(
        message=f"Generated {len(summaries)} summaries",
        count=len(summaries),
        summaries=[SummaryOut.model_validate(s) for s in summaries],
    )
    return JSONResponse(
        status_code=201 if summaries else 200,
        content=payload.model_dump(mode="json"),
    )


# ── GET /{summary_id} ────────────────────────────────────────────────

@router.get("/{summary_id}", response_model=SummaryOut)
async def get_summary(
    summary_id: uuid.UUID,
    user: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    """Get a single summary (Manager only)."""
    summary = await SummaryService.get_summary(db, summary_id)
    return SummaryOut.model_validate(summary)


# ── POST /cron/summaries ─────────────────────────────────────────────

@cron_router.post(
    "/summaries",
    response_model=SummaryBatchResponse,
    dependencies=[Depends(verify_cron_secret)],
)
@limiter.limit("10/minute")
async def scheduled_summaries(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Scheduler entry point: summarise every user with pending expenses."""
    summaries = await SummaryService.generate_all_pending(db, SummaryTriggerType.scheduled)
    await db.commit()
    logger.info("Scheduled run generated %d summaries", len(summaries))
    return SummaryBatchResponse(
        message="Summaries generated successfully",
        count=len(summaries),
        summaries=[SummaryOut.model_validate(s) for s in summaries],
    )
