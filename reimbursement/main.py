"""Expense Reimbursement — FastAPI Application Factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from reimbursement.common.exceptions import register_exception_handlers
from reimbursement.common.rate_limit import limiter
from reimbursement.config import settings
from reimbursement.database import engine
from reimbursement.expenses.router import router as expenses_router
from reimbursement.summaries.router import cron_router
from reimbursement.summaries.router import router as summaries_router
from reimbursement.users.router import router as users_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting reimbursement API (%s)", settings.ENVIRONMENT)
    yield
    await engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Expense Reimbursement",
        description="Expense submission, approval workflow and periodic summaries",
        version="1.0.0",
        docs_url="/api/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/api/redoc" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )

    # Exception handlers (RFC 7807)
    register_exception_handlers(app)

    # Rate limiting (slowapi)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check (no auth)
    @app.get("/api/v1/health", tags=["system"])
    async def health_check():
        return {
            "status": "healthy",
            "version": "1.0.0",
            "environment": settings.ENVIRONMENT,
        }

    # Register routers
    app.include_router(expenses_router, prefix="/api/v1/expenses", tags=["expenses"])
    app.include_router(summaries_router, prefix="/api/v1/summaries", tags=["summaries"])
    app.include_router(cron_router, prefix="/api/v1/cron", tags=["cron"])
    app.include_router(users_router, prefix="/api/v1/users", tags=["users"])

    return app


app = create_app()
