"""Pagination utilities for SQLAlchemy async queries."""


import math
from typing import Any

from fastapi import Query
from pydantic import BaseModel
from sqlalchemy import Select, func
from sqlalchemy.ext.asyncio import AsyncSession

from reimbursement.common.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE


# ── FastAPI dependency ──────────────────────────────────────────────

class PaginationParams:
    """Inject via ``Depends(PaginationParams)`` on any list endpoint."""

    def __init__(
        self,
        page: int = Query(default=1, ge=1, description="Page number (1-indexed)"),
        limit: int = Query(
            default=DEFAULT_PAGE_SIZE,
            ge=1,
            le=MAX_PAGE_SIZE,
            description=f"Items per page (max {MAX_PAGE_SIZE})",
        ),
    ) -> None:
        self.page = page
        self.limit = limit


# ── Pydantic response model ────────────────────────────────────────

class PaginationMeta(BaseModel):
    """Metadata block embedded in every paginated response."""

    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


def build_meta(total: int, page: int, limit: int) -> PaginationMeta:
    total_pages = math.ceil(total / limit) if limit else 0
    return PaginationMeta(
        page=page,
        limit=limit,
        total=total,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
    )


# ── SQLAlchemy helper ───────────────────────────────────────────────

async def paginate(
    session: AsyncSession,
    query: Select,
    *,
    page: int,
    limit: int,
) -> tuple[list[Any], int]:
    """
    Execute *query* with LIMIT/OFFSET for the requested page and return
    ``(rows, total)``.

    The caller is responsible for ordering *query*; the count runs on the
    same statement with ORDER BY stripped.
    """
    count_q = query.with_only_columns(
        func.count(), maintain_column_froms=True,
    ).order_by(None)
    total: int = (await session.execute(count_q)).scalar_one()

    rows = (
        await session.execute(
            query.offset((page - 1) * limit).limit(limit)
        )
    ).unique().scalars().all()

    return list(rows), total
