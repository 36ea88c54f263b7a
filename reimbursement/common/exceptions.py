"""Custom exceptions and RFC 7807 Problem Detail error handlers."""

from __future__ import annotations

from typing import Any, Optional, Sequence

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

BASE_ERROR_URI = "https://reimbursement.local/errors"


# ── Exception hierarchy ─────────────────────────────────────────────

class AppException(Exception):
    """Base for all application exceptions → RFC 7807 JSON."""

    def __init__(
        self,
        status_code: int,
        error_type: str,
        title: str,
        detail: str,
        errors: Optional[dict[str, Any]] = None,
    ) -> None:
        self.status_code = status_code
        self.error_type = error_type
        self.title = title
        self.detail = detail
        self.errors = errors
        super().__init__(detail)


class NotFoundException(AppException):
    """404 — one or more entities not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        if isinstance(entity_id, (list, tuple)):
            missing = [str(i) for i in entity_id]
            detail = f"{entity_type} not found: {', '.join(missing)}."
            errors: Optional[dict[str, Any]] = {"not_found": missing}
        else:
            detail = f"{entity_type} with id '{entity_id}' does not exist."
            errors = None
        super().__init__(
            status_code=404,
            error_type="not-found",
            title=f"{entity_type} Not Found",
            detail=detail,
            errors=errors,
        )


class ForbiddenException(AppException):
    """403 — insufficient permissions."""

    def __init__(
        self,
        detail: str = "You do not have permission to perform this action.",
    ) -> None:
        super().__init__(
            status_code=403,
            error_type="forbidden",
            title="Forbidden",
            detail=detail,
        )


class ValidationException(AppException):
    """422 — business-logic validation failures."""

    def __init__(self, errors: dict[str, list[str]]) -> None:
        super().__init__(
            status_code=422,
            error_type="validation-error",
            title="Validation Error",
            detail="One or more fields failed validation.",
            errors=errors,
        )


class IllegalTransitionException(AppException):
    """409 — status change not permitted from the current status / for the role."""

    def __init__(
        self,
        current_status: str,
        target_status: str,
        *,
        entity_id: Any = None,
        role: Optional[str] = None,
    ) -> None:
        self.current_status = current_status
        self.target_status = target_status
        subject = f"expense '{entity_id}'" if entity_id is not None else "expenses"
        detail = f"Cannot move {subject} from {current_status} to {target_status}"
        detail += f" as {role}." if role else "."
        errors: dict[str, Any] = {
            "current_status": current_status,
            "target_status": target_status,
        }
        if entity_id is not None:
            errors["expense_id"] = str(entity_id)
        if role:
            errors["role"] = role
        super().__init__(
            status_code=409,
            error_type="illegal-transition",
            title="Illegal Status Transition",
            detail=detail,
            errors=errors,
        )


class InvalidStateException(AppException):
    """409 — a batch contains members that are not in the required status."""

    def __init__(
        self,
        failed: Sequence[Any],
        required_status: str,
        current_statuses: Optional[dict[Any, str]] = None,
    ) -> None:
        self.failed = [str(i) for i in failed]
        self.current_statuses = {
            str(k): v for k, v in (current_statuses or {}).items()
        }
        errors: dict[str, Any] = {
            "failed": self.failed,
            "required_status": required_status,
        }
        if self.current_statuses:
            errors["current_status"] = self.current_statuses
        super().__init__(
            status_code=409,
            error_type="invalid-state",
            title="Invalid State",
            detail=f"Expenses must be {required_status}: {', '.join(self.failed)}.",
            errors=errors,
        )


class TooManyItemsException(AppException):
    """400 — batch size above the allowed maximum."""

    def __init__(self, limit: int, received: int) -> None:
        super().__init__(
            status_code=400,
            error_type="too-many-items",
            title="Too Many Items",
            detail=f"At most {limit} items may be processed at a time; received {received}.",
            errors={"limit": limit, "received": received},
        )


class InvalidRequestException(AppException):
    """400 — malformed batch request."""

    def __init__(self, detail: str) -> None:
        super().__init__(
            status_code=400,
            error_type="invalid-request",
            title="Invalid Request",
            detail=detail,
        )


# ── RFC 7807 builder ────────────────────────────────────────────────

def _build_problem_detail(exc: AppException, request: Request) -> dict[str, Any]:
    body: dict[str, Any] = {
        "type": f"{BASE_ERROR_URI}/{exc.error_type}",
        "title": exc.title,
        "status": exc.status_code,
        "detail": exc.detail,
        "instance": str(request.url.path),
    }
    if exc.errors:
        body["errors"] = exc.errors
    return body


# ── FastAPI handlers ────────────────────────────────────────────────

async def _handle_app_exception(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_build_problem_detail(exc, request),
        media_type="application/problem+json",
    )


async def _handle_validation_error(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    field_errors: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = err.get("loc", ())
        name = (
            ".".join(str(p) for p in loc[1:])
            if len(loc) > 1
            else str(loc[0]) if loc else "unknown"
        )
        field_errors.setdefault(name, []).append(err.get("msg", "Invalid value"))

    return JSONResponse(
        status_code=422,
        content={
            "type": f"{BASE_ERROR_URI}/validation-error",
            "title": "Validation Error",
            "status": 422,
            "detail": "Request validation failed.",
            "instance": str(request.url.path),
            "errors": field_errors,
        },
        media_type="application/problem+json",
    )


# ── Registration helper (called from main.py) ──────────────────────

def register_exception_handlers(app: FastAPI) -> None:
    """Attach all custom exception handlers to the FastAPI app."""
    app.add_exception_handler(AppException, _handle_app_exception)          # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_validation_error)  # type: ignore[arg-type]
