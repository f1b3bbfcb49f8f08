"""initial_registrations_schema

Revision ID: 5e1f0c2a9b10
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "5e1f0c2a9b10"
down_revision = None
branch_labels = None
depends_on = None


course_status = sa.Enum(
    "scheduled", "in_progress", "completed", "cancelled", name="course_status_enum"
)
subscription_status = sa.Enum(
    "pending", "active", "cancelled", "expired", name="subscription_status_enum"
)
registration_status = sa.Enum(
    "registered", "attended", "absent", "cancelled", name="registration_status_enum"
)
ledger_direction = sa.Enum("debit", "credit", name="ledger_direction_enum")
ledger_reason = sa.Enum(
    "booking", "cancellation_refund", name="ledger_reason_enum"
)

LIVE_ONLY = sa.text("status <> 'cancelled'")


def _uuid_pk():
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True)


def upgrade() -> None:
    op.create_table(
        "groups",
        _uuid_pk(),
        sa.Column("name", sa.String(), nullable=False, unique=True),
        sa.Column("color", sa.String(), nullable=True),
    )
    op.create_table(
        "categories",
        _uuid_pk(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column(
            "group_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("groups.id"),
            nullable=False,
        ),
    )
    op.create_index("ix_categories_group_id", "categories", ["group_id"])

    op.create_table(
        "classes",
        _uuid_pk(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column(
            "category_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("categories.id"),
            nullable=False,
        ),
    )
    op.create_index("ix_classes_category_id", "classes", ["category_id"])

    op.create_table(
        "courses",
        _uuid_pk(),
        sa.Column(
            "class_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("classes.id"),
            nullable=False,
        ),
        sa.Column("course_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("max_participants", sa.Integer(), nullable=False),
        sa.Column(
            "current_participants", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column(
            "status", course_status, nullable=False, server_default="scheduled"
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "current_participants >= 0", name="ck_course_participants_non_negative"
        ),
        sa.CheckConstraint(
            "current_participants <= max_participants",
            name="ck_course_participants_within_max",
        ),
    )
    op.create_index("ix_courses_class_id", "courses", ["class_id"])
    op.create_index("ix_courses_course_date", "courses", ["course_date"])

    op.create_table(
        "subscriptions",
        _uuid_pk(),
        sa.Column("member_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("plan_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("status", subscription_status, nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_subscriptions_member_id", "subscriptions", ["member_id"])

    op.create_table(
        "subscription_group_sessions",
        _uuid_pk(),
        sa.Column(
            "subscription_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("subscriptions.id"),
            nullable=False,
        ),
        sa.Column(
            "group_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("groups.id"),
            nullable=False,
        ),
        sa.Column("total_sessions", sa.Integer(), nullable=False),
        sa.Column("sessions_remaining", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint(
            "subscription_id", "group_id", name="uq_subscription_group_session"
        ),
        sa.CheckConstraint(
            "sessions_remaining >= 0", name="ck_group_sessions_non_negative"
        ),
        sa.CheckConstraint(
            "sessions_remaining <= total_sessions",
            name="ck_group_sessions_within_total",
        ),
    )
    op.create_index(
        "ix_subscription_group_sessions_subscription_id",
        "subscription_group_sessions",
        ["subscription_id"],
    )
    op.create_index(
        "ix_subscription_group_sessions_group_id",
        "subscription_group_sessions",
        ["group_id"],
    )

    op.create_table(
        "registrations",
        _uuid_pk(),
        sa.Column("member_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "course_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("courses.id"),
            nullable=False,
        ),
        sa.Column(
            "subscription_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("subscriptions.id"),
            nullable=False,
        ),
        sa.Column(
            "group_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("groups.id"),
            nullable=False,
        ),
        sa.Column("status", registration_status, nullable=False),
        sa.Column("qr_code", sa.String(), nullable=False, unique=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("registration_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_registrations_member_id", "registrations", ["member_id"])
    op.create_index("ix_registrations_course_id", "registrations", ["course_id"])
    op.create_index("ix_registrations_status", "registrations", ["status"])
    op.create_index(
        "uq_registrations_live_member_course",
        "registrations",
        ["member_id", "course_id"],
        unique=True,
        postgresql_where=LIVE_ONLY,
        sqlite_where=LIVE_ONLY,
    )

    op.create_table(
        "checkins",
        _uuid_pk(),
        sa.Column(
            "registration_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("registrations.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column("member_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("checkin_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("session_consumed", sa.Boolean(), nullable=False),
    )
    op.create_index("ix_checkins_member_id", "checkins", ["member_id"])

    op.create_table(
        "session_ledger_entries",
        _uuid_pk(),
        sa.Column(
            "group_session_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("subscription_group_sessions.id"),
            nullable=False,
        ),
        sa.Column(
            "registration_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("registrations.id"),
            nullable=True,
        ),
        sa.Column("direction", ledger_direction, nullable=False),
        sa.Column("reason", ledger_reason, nullable=False),
        sa.Column("requested_amount", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("balance_before", sa.Integer(), nullable=False),
        sa.Column("balance_after", sa.Integer(), nullable=False),
        sa.Column("forced", sa.Boolean(), nullable=False),
        sa.Column("initiated_by", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount >= 0", name="ck_ledger_amount_non_negative"),
    )
    op.create_index(
        "ix_session_ledger_entries_group_session_id",
        "session_ledger_entries",
        ["group_session_id"],
    )
    op.create_index(
        "ix_session_ledger_entries_registration_id",
        "session_ledger_entries",
        ["registration_id"],
    )


def downgrade() -> None:
    op.drop_table("session_ledger_entries")
    op.drop_table("checkins")
    op.drop_index("uq_registrations_live_member_course", table_name="registrations")
    op.drop_table("registrations")
    op.drop_table("subscription_group_sessions")
    op.drop_table("subscriptions")
    op.drop_table("courses")
    op.drop_table("classes")
    op.drop_table("categories")
    op.drop_table("groups")

    bind = op.get_bind()
    for enum_type in (
        ledger_reason,
        ledger_direction,
        registration_status,
        subscription_status,
        course_status,
    ):
        enum_type.drop(bind, checkfirst=True)
