"""001 – Initial schema: users, expenses, summaries and their enums.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000+00:00
"""

from alembic import op

# Revision identifiers
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ENUM_TYPES: list[tuple[str, list[str]]] = [
    ("user_role", ["EMPLOYEE", "MANAGER"]),
    ("expense_status", ["PENDING", "APPROVED", "REJECTED", "REIMBURSED"]),
    ("summary_trigger_type", ["MANUAL", "SUBMISSION", "SCHEDULED"]),
]


def _create_enum(name: str, values: list[str]) -> None:
    vals = ", ".join(f"'{v}'" for v in values)
    op.execute(f"CREATE TYPE {name} AS ENUM ({vals})")


def _drop_enum(name: str) -> None:
    op.execute(f"DROP TYPE IF EXISTS {name}")


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    for name, values in ENUM_TYPES:
        _create_enum(name, values)

    # ── 1. users ──────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE users (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            external_id  VARCHAR(200) NOT NULL UNIQUE,
            display_name VARCHAR(200),
            picture_url  VARCHAR(1000),
            role         user_role NOT NULL DEFAULT 'EMPLOYEE',
            is_approved  BOOLEAN NOT NULL DEFAULT FALSE,
            created_at   TIMESTAMPTZ DEFAULT NOW(),
            updated_at   TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 2. expenses ───────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE expenses (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id          UUID NOT NULL REFERENCES users(id),
            description      VARCHAR(500) NOT NULL,
            amount           NUMERIC(12, 2) NOT NULL CHECK (amount > 0),
            date             DATE NOT NULL,
            image_url        TEXT,
            status           expense_status NOT NULL DEFAULT 'PENDING',
            approver_id      UUID REFERENCES users(id),
            approval_date    TIMESTAMPTZ,
            rejection_reason VARCHAR(500),
            paid_date        TIMESTAMPTZ,
            paid_amount      NUMERIC(12, 2),
            created_at       TIMESTAMPTZ DEFAULT NOW(),
            updated_at       TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_expenses_user_status ON expenses(user_id, status)")
    op.execute("CREATE INDEX ix_expenses_status ON expenses(status)")
    op.execute("CREATE INDEX ix_expenses_created_at ON expenses(created_at)")

    # ── 3. summaries ──────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE summaries (
            id            UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id       UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            start_date    TIMESTAMPTZ NOT NULL,
            end_date      TIMESTAMPTZ NOT NULL,
            total_amount  NUMERIC(12, 2) NOT NULL,
            expense_count INTEGER NOT NULL,
            expenses      JSONB NOT NULL,
            trigger_type  summary_trigger_type NOT NULL,
            created_at    TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_summaries_user_id ON summaries(user_id)")
    op.execute("CREATE INDEX ix_summaries_created_at ON summaries(created_at)")


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    for t in ("summaries", "expenses", "users"):
        op.execute(f"DROP TABLE IF EXISTS {t} CASCADE")

    for name, _ in reversed(ENUM_TYPES):
        _drop_enum(name)
