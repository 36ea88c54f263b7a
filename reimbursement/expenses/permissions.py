"""Expense permission policy — role predicates and the status transition table.

Every function here is pure: no I/O, no state, safe to call from any
request or task. The transition table is the single source of truth for
which status changes are legal and who may perform them; the expense
service consults it for single-item and bulk operations alike.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

from reimbursement.common.constants import ExpenseStatus, UserRole


# ── Role predicates ─────────────────────────────────────────────────

def is_manager(role: UserRole) -> bool:
    return role == UserRole.manager


def is_employee(role: UserRole) -> bool:
    return role == UserRole.employee


# ── Action permissions ──────────────────────────────────────────────

def can_create(role: UserRole) -> bool:
    return role in (UserRole.employee, UserRole.manager)


def can_view_own(role: UserRole) -> bool:
    return role in (UserRole.employee, UserRole.manager)


def can_view_all(role: UserRole) -> bool:
    return is_manager(role)


def can_approve(role: UserRole) -> bool:
    return is_manager(role)


def can_mark_paid(role: UserRole) -> bool:
    return is_manager(role)


def can_edit(role: UserRole, is_owner: bool, status: ExpenseStatus) -> bool:
    """Owner only, and only while pending. The role grants nothing extra."""
    return is_owner and status == ExpenseStatus.pending


def can_delete(role: UserRole, is_owner: bool, status: ExpenseStatus) -> bool:
    """Owner only, and only while pending. The role grants nothing extra."""
    return is_owner and status == ExpenseStatus.pending


# ── Status transitions ──────────────────────────────────────────────

@dataclass(frozen=True)
class StatusTransition:
    allowed_next_statuses: frozenset[ExpenseStatus]
    required_role: Optional[UserRole]


STATUS_TRANSITIONS: Mapping[ExpenseStatus, StatusTransition] = MappingProxyType({
    ExpenseStatus.pending: StatusTransition(
        allowed_next_statuses=frozenset({ExpenseStatus.approved, ExpenseStatus.rejected}),
        required_role=UserRole.manager,
    ),
    ExpenseStatus.approved: StatusTransition(
        allowed_next_statuses=frozenset({ExpenseStatus.reimbursed}),
        required_role=UserRole.manager,
    ),
    # Terminal
    ExpenseStatus.rejected: StatusTransition(
        allowed_next_statuses=frozenset(),
        required_role=None,
    ),
    ExpenseStatus.reimbursed: StatusTransition(
        allowed_next_statuses=frozenset(),
        required_role=None,
    ),
})


def allowed_next_statuses(status: ExpenseStatus) -> frozenset[ExpenseStatus]:
    return STATUS_TRANSITIONS[status].allowed_next_statuses


def is_terminal(status: ExpenseStatus) -> bool:
    return not STATUS_TRANSITIONS[status].allowed_next_statuses


def can_transition_to(
    current: ExpenseStatus,
    target: ExpenseStatus,
    actor_role: UserRole,
) -> bool:
    """True iff *target* is reachable from *current* and *actor_role* may make the move."""
    transition = STATUS_TRANSITIONS[current]

    if target not in transition.allowed_next_statuses:
        return False

    if transition.required_role is not None and actor_role != transition.required_role:
        return False

    return True
