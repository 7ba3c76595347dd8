"""init schema

Revision ID: 0001_init
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _id():
    return sa.Column("id", sa.String(length=36), primary_key=True)


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def _user_fk(name: str):
    return sa.Column(name, sa.String(length=36), sa.ForeignKey("app_users.id", ondelete="SET NULL"), nullable=True)


def _property_fk(index: bool = True):
    return sa.Column(
        "property_id", sa.String(length=36), sa.ForeignKey("properties.id", ondelete="SET NULL"), nullable=True, index=index
    )


def upgrade():
    op.create_table(
        "app_users",
        _id(),
        sa.Column("email", sa.String(length=200), nullable=False),
        sa.Column("full_name", sa.String(length=160), nullable=False, server_default=""),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_app_users_email", "app_users", ["email"], unique=True)

    op.create_table(
        "user_roles",
        _id(),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("app_users.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),
    )

    op.create_table(
        "properties",
        _id(),
        sa.Column("name", sa.String(length=160), nullable=False, index=True),
        sa.Column("address", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("city", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("state", sa.String(length=40), nullable=False, server_default=""),
        sa.Column("zip", sa.String(length=10), nullable=False, server_default=""),
        sa.Column("image_url", sa.String(length=500), nullable=True),
        _user_fk("created_by"),
        *_timestamps(),
    )

    op.create_table(
        "property_assignments",
        _id(),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("app_users.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column(
            "property_id", sa.String(length=36), sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("user_id", "property_id", name="uq_property_assignments_user_property"),
    )

    op.create_table(
        "inventory_categories",
        _id(),
        sa.Column("name", sa.String(length=120), nullable=False, index=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_predefined", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _user_fk("created_by"),
        *_timestamps(),
    )

    op.create_table(
        "inventory_items",
        _id(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column(
            "category_id",
            sa.String(length=36),
            sa.ForeignKey("inventory_categories.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        _property_fk(),
        sa.Column("current_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("restock_threshold", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("reorder_quantity", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("unit_price", sa.Float(), nullable=True),
        sa.Column("unit", sa.String(length=40), nullable=True),
        sa.Column("units_per_package", sa.Integer(), nullable=True),
        sa.Column("cost_per_package", sa.Float(), nullable=True),
        sa.Column("supplier", sa.String(length=200), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("amazon_image_url", sa.String(length=500), nullable=True),
        sa.Column("amazon_title", sa.String(length=300), nullable=True),
        sa.Column("amazon_link", sa.String(length=500), nullable=True),
        sa.Column("asin", sa.String(length=20), nullable=True),
        sa.Column("reorder_link", sa.String(length=500), nullable=True),
        sa.Column("restock_requested", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _user_fk("created_by"),
        *_timestamps(),
    )

    op.create_table(
        "inspection_templates",
        _id(),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("items_json", sa.Text(), nullable=False, server_default="[]"),
        _property_fk(),
        sa.Column("is_predefined", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("frequency_type", sa.String(length=20), nullable=True),
        sa.Column("frequency_days", sa.Integer(), nullable=True),
        sa.Column("next_occurrence", sa.Date(), nullable=True),
        sa.Column("notifications_enabled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("notification_method", sa.String(length=20), nullable=True),
        sa.Column("notification_days_ahead", sa.Integer(), nullable=True),
        _user_fk("created_by"),
        *_timestamps(),
    )

    op.create_table(
        "inspection_records",
        _id(),
        sa.Column(
            "template_id",
            sa.String(length=36),
            sa.ForeignKey("inspection_templates.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("template_name", sa.String(length=160), nullable=False, server_default=""),
        _property_fk(index=False),
        sa.Column("inspection_date", sa.Date(), nullable=False),
        sa.Column("next_due_date", sa.Date(), nullable=True),
        sa.Column("items_json", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("performed_by", sa.String(length=160), nullable=True),
        _user_fk("entered_by"),
        *_timestamps(),
    )
    op.create_index("ix_inspection_records_property_date", "inspection_records", ["property_id", "inspection_date"])

    op.create_table(
        "damage_reports",
        _id(),
        sa.Column("title", sa.String(length=200), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("location", sa.String(length=200), nullable=False),
        sa.Column("severity", sa.String(length=20), nullable=False, server_default="minor"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="reported"),
        sa.Column("responsible_party", sa.String(length=20), nullable=False, server_default="guest"),
        sa.Column("damage_date", sa.Date(), nullable=False),
        sa.Column("estimated_value", sa.Float(), nullable=True),
        sa.Column("repair_cost", sa.Float(), nullable=True),
        sa.Column("repair_date", sa.Date(), nullable=True),
        sa.Column("repair_completed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _property_fk(),
        _user_fk("reported_by"),
        sa.Column("guest_name", sa.String(length=160), nullable=True),
        sa.Column("reservation_id", sa.String(length=80), nullable=True),
        sa.Column("booking_platform", sa.String(length=30), nullable=True),
        sa.Column("check_in_date", sa.Date(), nullable=True),
        sa.Column("check_out_date", sa.Date(), nullable=True),
        sa.Column("claim_status", sa.String(length=30), nullable=False, server_default="not_filed"),
        sa.Column("claim_reference_number", sa.String(length=80), nullable=True),
        sa.Column("claim_deadline", sa.Date(), nullable=True),
        sa.Column("resolution_sought", sa.String(length=40), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("photo_urls_json", sa.Text(), nullable=False, server_default="[]"),
        *_timestamps(),
    )

    op.create_table(
        "change_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("table_name", sa.String(length=60), nullable=False, index=True),
        sa.Column("action", sa.String(length=10), nullable=False),
        sa.Column("row_id", sa.String(length=36), nullable=False),
        sa.Column("payload_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )


def downgrade():
    for table in (
        "change_events",
        "damage_reports",
        "inspection_records",
        "inspection_templates",
        "inventory_items",
        "inventory_categories",
        "property_assignments",
        "properties",
        "user_roles",
        "app_users",
    ):
        op.drop_table(table)
