"""create categories, activities and enrollments

Revision ID: a001_create_activity_tables
Revises:
Create Date: 2026-10-17 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "a001_create_activity_tables"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(64), nullable=False, unique=True),
    )

    op.create_table(
        "activities",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("cover_image_url", sa.String(), nullable=True),
        sa.Column("location", sa.String(255), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("registration_deadline", sa.DateTime(timezone=True), nullable=False),
        sa.Column("max_participants", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default="preparing"),
        sa.Column("fee_type", sa.String(32), nullable=False, server_default="free"),
        sa.Column("fee_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("organizer_id", sa.Integer(), nullable=False),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("max_participants > 0", name="ck_activities_max_participants_positive"),
    )
    op.create_index("ix_activities_status", "activities", ["status"])
    op.create_index("ix_activities_organizer_id", "activities", ["organizer_id"])

    op.create_table(
        "enrollments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "activity_id",
            sa.Integer(),
            sa.ForeignKey("activities.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="enrolled"),
        sa.Column("enroll_time", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("activity_id", "user_id", name="unique_activity_enrollment_user"),
    )
    op.create_index("ix_enrollments_activity_id", "enrollments", ["activity_id"])
    op.create_index("ix_enrollments_user_id", "enrollments", ["user_id"])

    # Partial index for the capacity count: only ENROLLED rows
    op.execute("""
        CREATE INDEX idx_enrollments_active_by_activity
        ON enrollments(activity_id)
        WHERE status = 'enrolled'
    """)


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS idx_enrollments_active_by_activity")
    op.drop_table("enrollments")
    op.drop_table("activities")
    op.drop_table("categories")
