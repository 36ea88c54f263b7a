"""Enums and constants for the reimbursement workflow — matching PostgreSQL ENUM types."""

from __future__ import annotations

import enum


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    employee = "EMPLOYEE"
    manager = "MANAGER"


# ── Expenses ────────────────────────────────────────────────────────

class ExpenseStatus(str, enum.Enum):
    pending = "PENDING"
    approved = "APPROVED"
    rejected = "REJECTED"
    reimbursed = "REIMBURSED"


# ── Summaries ───────────────────────────────────────────────────────

class SummaryTriggerType(str, enum.Enum):
    manual = "MANUAL"
    submission = "SUBMISSION"
    scheduled = "SCHEDULED"


# ── Misc constants ──────────────────────────────────────────────────

DESCRIPTION_MAX_LENGTH = 500
REJECTION_REASON_MAX_LENGTH = 500
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20
