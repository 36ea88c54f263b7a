"""Summaries test suite — reporting windows, snapshot generation, queries, API."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from reimbursement.common.constants import ExpenseStatus, SummaryTriggerType
from reimbursement.common.exceptions import NotFoundException, ValidationException
from reimbursement.config import settings
from reimbursement.expenses.service import ExpenseService
from reimbursement.summaries.models import Summary
from reimbursement.summaries.service import SummaryService, get_period_start
from tests.conftest import auth_headers, make_expense, make_user

UTC = timezone.utc

# Friday noon; the window opened Tuesday 2026-10-13 at midnight.
FRIDAY_NOON = datetime(2026, 10, 16, 12, 0, tzinfo=UTC)


def _at(day: int, hour: int = 10) -> datetime:
    return datetime(2026, 10, day, hour, 0, tzinfo=UTC)


async def _count_summaries(db) -> int:
    return (await db.execute(select(func.count()).select_from(Summary))).scalar_one()


# ═════════════════════════════════════════════════════════════════════
# 1. REPORTING WINDOW
# ═════════════════════════════════════════════════════════════════════


@pytest.mark.parametrize(
    "now,expected_start",
    [
        (datetime(2026, 10, 12, 9, 30, tzinfo=UTC), date(2026, 10, 9)),   # Monday
        (datetime(2026, 10, 13, 9, 30, tzinfo=UTC), date(2026, 10, 9)),   # Tuesday
        (datetime(2026, 10, 14, 9, 30, tzinfo=UTC), date(2026, 10, 13)),  # Wednesday
        (datetime(2026, 10, 15, 9, 30, tzinfo=UTC), date(2026, 10, 13)),  # Thursday
        (datetime(2026, 10, 16, 9, 30, tzinfo=UTC), date(2026, 10, 13)),  # Friday
        (datetime(2026, 10, 17, 9, 30, tzinfo=UTC), date(2026, 10, 16)),  # Saturday
        (datetime(2026, 10, 18, 9, 30, tzinfo=UTC), date(2026, 10, 16)),  # Sunday
    ],
)
def test_period_start_for_every_weekday(now, expected_start):
    start = get_period_start(now)
    assert start.date() == expected_start
    assert (start.hour, start.minute, start.second, start.microsecond) == (0, 0, 0, 0)
    assert start.tzinfo is now.tzinfo


def test_period_start_at_midnight_boundary():
    assert get_period_start(datetime(2026, 10, 14, 0, 0, tzinfo=UTC)).date() == date(2026, 10, 13)
    assert get_period_start(datetime(2026, 10, 13, 23, 59, tzinfo=UTC)).date() == date(2026, 10, 9)


# ═════════════════════════════════════════════════════════════════════
# 2. GENERATION — Service Layer
# ═════════════════════════════════════════════════════════════════════


async def test_generate_sums_pending_expenses_in_window(db, employee):
    await make_expense(
        db, employee.id, description="Hotel", amount="100.50",
        expense_date=date(2026, 10, 13), created_at=_at(14),
    )
    await make_expense(
        db, employee.id, description="Flight", amount="200.25",
        expense_date=date(2026, 10, 14), created_at=_at(15),
    )
    # Outside the window / not pending
    await make_expense(db, employee.id, amount="9.99", created_at=_at(12))
    await make_expense(
        db, employee.id, amount="7.00", created_at=_at(14),
        status=ExpenseStatus.approved,
    )

    summary = await SummaryService.generate_for_user(
        db, employee.id, SummaryTriggerType.manual, now=FRIDAY_NOON,
    )

    assert summary is not None
    assert summary.total_amount == Decimal("300.75")
    assert summary.expense_count == 2
    assert summary.trigger_type == SummaryTriggerType.manual
    assert summary.user_name == "Erin Employee"
    assert [s["description"] for s in summary.expenses] == ["Flight", "Hotel"]
    assert [s["amount"] for s in summary.expenses] == ["200.25", "100.50"]
    assert {s["status"] for s in summary.expenses} == {"PENDING"}


async def test_generate_without_pending_writes_nothing(db, employee):
    await make_expense(db, employee.id, status=ExpenseStatus.approved, created_at=_at(14))

    summary = await SummaryService.generate_for_user(
        db, employee.id, SummaryTriggerType.manual, now=FRIDAY_NOON,
    )
    assert summary is None
    assert await _count_summaries(db) == 0


async def test_generate_for_unknown_user(db):
    summary = await SummaryService.generate_for_user(
        db, uuid.uuid4(), SummaryTriggerType.manual, now=FRIDAY_NOON,
    )
    assert summary is None


async def test_generate_with_explicit_window(db, employee):
    await make_expense(db, employee.id, amount="5.00", created_at=_at(5))
    await make_expense(db, employee.id, amount="6.00", created_at=_at(14))

    summary = await SummaryService.generate_for_user(
        db,
        employee.id,
        SummaryTriggerType.manual,
        start_date=_at(1, 0),
        end_date=_at(10, 0),
        now=FRIDAY_NOON,
    )
    assert summary.expense_count == 1
    assert summary.total_amount == Decimal("5.00")


async def test_generate_rejects_inverted_window(db, employee):
    with pytest.raises(ValidationException):
        await SummaryService.generate_for_user(
            db,
            employee.id,
            SummaryTriggerType.manual,
            start_date=_at(10),
            end_date=_at(1),
        )


async def test_snapshot_does_not_follow_later_changes(db, employee, manager):
    expense = await make_expense(db, employee.id, amount="50.00", created_at=_at(14))
    summary = await SummaryService.generate_for_user(
        db, employee.id, SummaryTriggerType.manual, now=FRIDAY_NOON,
    )

    await ExpenseService.approve_expense(
        db, expense.id, actor_id=manager.id, actor_role=manager.role,
    )

    stored = await SummaryService.get_summary(db, summary.id, refresh=True)
    assert stored.expenses[0]["status"] == "PENDING"
    assert stored.expenses[0]["id"] == str(expense.id)
    assert stored.total_amount == Decimal("50.00")


async def test_generate_all_pending_one_per_user(db):
    first = await make_user(db, display_name="First", created_at=_at(1))
    second = await make_user(db, display_name="Second", created_at=_at(2))
    idle = await make_user(db, display_name="Idle", created_at=_at(3))

    await make_expense(db, second.id, amount="20.00", created_at=_at(14))
    await make_expense(db, first.id, amount="10.00", created_at=_at(14))
    await make_expense(db, first.id, amount="15.00", created_at=_at(15))
    await make_expense(db, idle.id, status=ExpenseStatus.reimbursed, created_at=_at(14))

    summaries = await SummaryService.generate_all_pending(db, now=FRIDAY_NOON)

    assert [s.user_id for s in summaries] == [first.id, second.id]
    assert [s.total_amount for s in summaries] == [Decimal("25.00"), Decimal("20.00")]
    assert {s.trigger_type for s in summaries} == {SummaryTriggerType.scheduled}


async def test_generate_all_pending_skips_users_outside_window(db, employee):
    # Pending, but created before the current window opened
    await make_expense(db, employee.id, created_at=_at(5))
    summaries = await SummaryService.generate_all_pending(db, now=FRIDAY_NOON)
    assert summaries == []
    assert await _count_summaries(db) == 0


# ═════════════════════════════════════════════════════════════════════
# 3. QUERIES — Service Layer
# ═════════════════════════════════════════════════════════════════════


async def _insert_summary(db, user_id, created_at, total="10.00"):
    summary = Summary(
        user_id=user_id,
        start_date=_at(13, 0),
        end_date=_at(16, 0),
        total_amount=Decimal(total),
        expense_count=1,
        expenses=[],
        trigger_type=SummaryTriggerType.scheduled,
        created_at=created_at,
    )
    db.add(summary)
    await db.commit()
    return summary


async def test_list_summaries_newest_first_with_pagination(db, employee, manager):
    for day in (10, 12, 11):
        await _insert_summary(db, employee.id, _at(day))
    await _insert_summary(db, manager.id, _at(13))

    rows, total = await SummaryService.list_summaries(db, page=1, limit=2)
    assert total == 4
    assert [r.created_at.day for r in rows] == [13, 12]

    rows, total = await SummaryService.list_summaries(db, user_id=employee.id, page=2, limit=2)
    assert total == 3
    assert [r.created_at.day for r in rows] == [10]


async def test_get_summary_not_found(db):
    with pytest.raises(NotFoundException):
        await SummaryService.get_summary(db, uuid.uuid4())


# ═════════════════════════════════════════════════════════════════════
# 4. API ENDPOINTS
# ═════════════════════════════════════════════════════════════════════


async def test_api_cron_refuses_without_configured_secret(client, monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", "")
    resp = await client.post(
        "/api/v1/cron/summaries", headers={"Authorization": "Bearer anything"},
    )
    assert resp.status_code == 500
    assert resp.json()["type"].endswith("/server-configuration")


async def test_api_cron_rejects_wrong_secret(client, monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")
    resp = await client.post(
        "/api/v1/cron/summaries", headers={"Authorization": "Bearer wrong"},
    )
    assert resp.status_code == 401

    resp = await client.post("/api/v1/cron/summaries")
    assert resp.status_code == 401


async def test_api_cron_generates_scheduled_summaries(client, db, employee, monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")
    await make_expense(db, employee.id, amount="12.34")

    resp = await client.post(
        "/api/v1/cron/summaries", headers={"Authorization": "Bearer s3cret"},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["count"] == 1
    assert body["summaries"][0]["trigger_type"] == "SCHEDULED"
    assert Decimal(str(body["summaries"][0]["total_amount"])) == Decimal("12.34")


async def test_api_manual_generation_for_user(client, db, employee, manager):
    await make_expense(db, employee.id, amount="30.00")

    resp = await client.post(
        "/api/v1/summaries/",
        json={"user_id": str(employee.id)},
        headers=auth_headers(manager),
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["trigger_type"] == "MANUAL"
    assert body["expense_count"] == 1
    assert body["user_name"] == "Erin Employee"


async def test_api_manual_generation_nothing_pending(client, employee, manager):
    resp = await client.post(
        "/api/v1/summaries/",
        json={"user_id": str(employee.id)},
        headers=auth_headers(manager),
    )
    assert resp.status_code == 404

    resp = await client.post("/api/v1/summaries/", json={}, headers=auth_headers(manager))
    assert resp.status_code == 200
    assert resp.json()["count"] == 0


async def test_api_manual_generation_for_everyone(client, db, employee, manager):
    await make_expense(db, employee.id)
    await make_expense(db, manager.id)

    resp = await client.post("/api/v1/summaries/", json={}, headers=auth_headers(manager))
    assert resp.status_code == 201
    assert resp.json()["count"] == 2


async def test_api_manual_generation_rejects_other_trigger(client, manager):
    resp = await client.post(
        "/api/v1/summaries/",
        json={"trigger_type": "SCHEDULED"},
        headers=auth_headers(manager),
    )
    assert resp.status_code == 422


async def test_api_summaries_visibility(client, db, employee, manager):
    await _insert_summary(db, employee.id, _at(10))
    await _insert_summary(db, manager.id, _at(11))

    resp = await client.get("/api/v1/summaries/", headers=auth_headers(employee))
    assert resp.status_code == 403

    resp = await client.get("/api/v1/summaries/", headers=auth_headers(manager))
    assert resp.status_code == 200
    assert resp.json()["pagination"]["total"] == 2

    resp = await client.get(
        f"/api/v1/summaries/?user_id={employee.id}", headers=auth_headers(manager),
    )
    assert resp.json()["pagination"]["total"] == 1

    resp = await client.get("/api/v1/summaries/mine", headers=auth_headers(employee))
    assert resp.status_code == 200
    mine = resp.json()["summaries"]
    assert len(mine) == 1
    assert mine[0]["user_id"] == str(employee.id)


async def test_api_get_summary(client, db, employee, manager):
    summary = await _insert_summary(db, employee.id, _at(10))
    resp = await client.get(f"/api/v1/summaries/{summary.id}", headers=auth_headers(manager))
    assert resp.status_code == 200
    assert resp.json()["id"] == str(summary.id)

    resp = await client.get(f"/api/v1/summaries/{uuid.uuid4()}", headers=auth_headers(manager))
    assert resp.status_code == 404


async def test_generate_reads_window_in_business_timezone(db, employee):
    """A caller's clock in another zone does not shift the reporting window."""
    # Saturday 05:00 in UTC+10 is still Friday 19:00 in UTC, so the window
    # opened on Tuesday the 13th rather than Friday the 16th.
    sydney_saturday = datetime(2026, 10, 17, 5, 0, tzinfo=timezone(timedelta(hours=10)))
    await make_expense(db, employee.id, amount="8.00", created_at=_at(14))

    summary = await SummaryService.generate_for_user(
        db, employee.id, SummaryTriggerType.manual, now=sydney_saturday,
    )
    assert summary is not None
    assert summary.expense_count == 1
    assert summary.start_date.replace(tzinfo=None) == datetime(2026, 10, 13)
