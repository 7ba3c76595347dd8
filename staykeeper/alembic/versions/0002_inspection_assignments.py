"""inspection assignments, targeted change events

Revision ID: 0002_inspection_assignments
Revises: 0001_init
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa


revision = "0002_inspection_assignments"
down_revision = "0001_init"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "inspection_assignments",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "template_id",
            sa.String(length=36),
            sa.ForeignKey("inspection_templates.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "assigned_to",
            sa.String(length=36),
            sa.ForeignKey("app_users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "assigned_by", sa.String(length=36), sa.ForeignKey("app_users.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("template_id", "assigned_to", name="uq_inspection_assignments_template_user"),
    )

    op.add_column("change_events", sa.Column("audience", sa.String(length=36), nullable=True))
    op.add_column("change_events", sa.Column("previous_json", sa.Text(), nullable=True))
    op.create_index("ix_change_events_audience", "change_events", ["audience"])


def downgrade():
    op.drop_index("ix_change_events_audience", table_name="change_events")
    # SQLite cannot drop columns in place
    with op.batch_alter_table("change_events") as batch:
        batch.drop_column("previous_json")
        batch.drop_column("audience")
    op.drop_table("inspection_assignments")
