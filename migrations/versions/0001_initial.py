"""Initial lesson scheduling schema"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime()),
        sa.Column("updated_at", sa.DateTime()),
    ]


def upgrade() -> None:
    op.create_table(
        "employee",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("full_name", sa.String(length=120), nullable=False),
        sa.Column("position", sa.String(length=120)),
        sa.Column("email", sa.String(length=255)),
        *_timestamps(),
    )

    op.create_table(
        "facility",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False, unique=True),
        *_timestamps(),
    )

    op.create_table(
        "room",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("facility_id", sa.Integer(), sa.ForeignKey("facility.id"), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("facility_id", "name", name="uq_room_facility_name"),
    )

    op.create_table(
        "class_group",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("class_name", sa.String(length=120), nullable=False, unique=True),
        sa.Column("program_type", sa.String(length=60)),
        sa.Column("unit", sa.String(length=10)),
        sa.Column("data", sa.JSON()),
        *_timestamps(),
    )

    op.create_table(
        "main_session",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("class_id", sa.Integer(), sa.ForeignKey("class_group.id"), nullable=False),
        sa.Column("scheduled_date", sa.Date(), nullable=False),
        sa.Column("lesson_id", sa.String(length=20)),
        sa.Column("start_time", sa.DateTime()),
        sa.Column("end_time", sa.DateTime()),
        sa.Column("total_duration_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("data", sa.JSON()),
        *_timestamps(),
    )
    op.create_index("ix_main_session_class_id", "main_session", ["class_id"])
    op.create_index("ix_main_session_scheduled_date", "main_session", ["scheduled_date"])

    op.create_table(
        "session",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("main_session_id", sa.Integer(), sa.ForeignKey("main_session.id"), nullable=False),
        sa.Column("subject_type", sa.String(length=20), nullable=False),
        sa.Column("teacher_id", sa.Integer(), sa.ForeignKey("employee.id")),
        sa.Column("teaching_assistant_id", sa.Integer(), sa.ForeignKey("employee.id")),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("room.id")),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("data", sa.JSON()),
        *_timestamps(),
        sa.CheckConstraint("end_time > start_time", name="chk_session_time_order"),
    )
    op.create_index("ix_session_main_session_id", "session", ["main_session_id"])
    op.create_index("ix_session_teacher_date", "session", ["teacher_id", "date"])

    op.create_table(
        "teacher_day_lock",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("teacher_id", sa.Integer(), sa.ForeignKey("employee.id"), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.UniqueConstraint("teacher_id", "day", name="uq_teacher_day_lock"),
    )


def downgrade() -> None:
    op.drop_table("teacher_day_lock")
    op.drop_index("ix_session_teacher_date", table_name="session")
    op.drop_index("ix_session_main_session_id", table_name="session")
    op.drop_table("session")
    op.drop_index("ix_main_session_scheduled_date", table_name="main_session")
    op.drop_index("ix_main_session_class_id", table_name="main_session")
    op.drop_table("main_session")
    op.drop_table("class_group")
    op.drop_table("room")
    op.drop_table("facility")
    op.drop_table("employee")
