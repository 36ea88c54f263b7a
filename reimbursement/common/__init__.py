"""Common module — shared utilities for the reimbursement service."""

from reimbursement.common.constants import (
    DEFAULT_PAGE_SIZE,
    DESCRIPTION_MAX_LENGTH,
    MAX_PAGE_SIZE,
    REJECTION_REASON_MAX_LENGTH,
    ExpenseStatus,
    SummaryTriggerType,
    UserRole,
)
from reimbursement.common.exceptions import (
    AppException,
    ForbiddenException,
    IllegalTransitionException,
    InvalidRequestException,
    InvalidStateException,
    NotFoundException,
    TooManyItemsException,
    ValidationException,
    register_exception_handlers,
)
from reimbursement.common.pagination import (
    PaginationMeta,
    PaginationParams,
    build_meta,
    paginate,
)

__all__ = [
    # Constants / Enums
    "ExpenseStatus",
    "SummaryTriggerType",
    "UserRole",
    "DEFAULT_PAGE_SIZE",
    "DESCRIPTION_MAX_LENGTH",
    "MAX_PAGE_SIZE",
    "REJECTION_REASON_MAX_LENGTH",
    # Exceptions
    "AppException",
    "ForbiddenException",
    "IllegalTransitionException",
    "InvalidRequestException",
    "InvalidStateException",
    "NotFoundException",
    "TooManyItemsException",
    "ValidationException",
    "register_exception_handlers",
    # Pagination
    "PaginationMeta",
    "PaginationParams",
    "build_meta",
    "paginate",
]
