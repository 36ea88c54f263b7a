"""Permission policy tests — role predicates and the transition table."""

from __future__ import annotations

import itertools

import pytest

from reimbursement.common.constants import ExpenseStatus, UserRole
from reimbursement.expenses import permissions

P = ExpenseStatus.pending
A = ExpenseStatus.approved
R = ExpenseStatus.rejected
X = ExpenseStatus.reimbursed

LEGAL_MOVES = {(P, A), (P, R), (A, X)}


# ── Transition grid ─────────────────────────────────────────────────

@pytest.mark.parametrize(
    "current,target,role",
    list(itertools.product(ExpenseStatus, ExpenseStatus, UserRole)),
)
def test_transition_grid(current, target, role):
    """Only the three workflow moves are legal, and only for managers."""
    expected = (current, target) in LEGAL_MOVES and role == UserRole.manager
    assert permissions.can_transition_to(current, target, role) is expected


@pytest.mark.parametrize("status", [R, X])
def test_terminal_statuses_have_no_exits(status):
    assert permissions.is_terminal(status)
    assert permissions.allowed_next_statuses(status) == frozenset()
    for target, role in itertools.product(ExpenseStatus, UserRole):
        assert not permissions.can_transition_to(status, target, role)


def test_non_terminal_statuses():
    assert not permissions.is_terminal(P)
    assert not permissions.is_terminal(A)
    assert permissions.allowed_next_statuses(P) == frozenset({A, R})
    assert permissions.allowed_next_statuses(A) == frozenset({X})


def test_self_transition_is_never_allowed():
    for status in ExpenseStatus:
        assert not permissions.can_transition_to(status, status, UserRole.manager)


def test_transition_table_is_read_only():
    with pytest.raises(TypeError):
        permissions.STATUS_TRANSITIONS[P] = permissions.STATUS_TRANSITIONS[A]  # type: ignore[index]


# ── Role predicates ─────────────────────────────────────────────────

def test_role_predicates():
    assert permissions.is_manager(UserRole.manager)
    assert not permissions.is_manager(UserRole.employee)
    assert permissions.is_employee(UserRole.employee)
    assert not permissions.is_employee(UserRole.manager)


@pytest.mark.parametrize("role", list(UserRole))
def test_every_role_can_create_and_view_own(role):
    assert permissions.can_create(role)
    assert permissions.can_view_own(role)


def test_manager_only_actions():
    for check in (permissions.can_view_all, permissions.can_approve, permissions.can_mark_paid):
        assert check(UserRole.manager)
        assert not check(UserRole.employee)


@pytest.mark.parametrize(
    "role,is_owner,status",
    list(itertools.product(UserRole, [True, False], ExpenseStatus)),
)
def test_edit_and_delete_require_owner_and_pending(role, is_owner, status):
    """Managers get no extra rights over other people's claims."""
    expected = is_owner and status == P
    assert permissions.can_edit(role, is_owner, status) is expected
    assert permissions.can_delete(role, is_owner, status) is expected
