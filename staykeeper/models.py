# staykeeper/models.py
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


def _uuid() -> str:
    return str(uuid.uuid4())


# -----------------------------
# Users / roles / assignments
# -----------------------------
class AppUser(Base):
    """A profile row. Identity itself lives with the hosting platform."""

    __tablename__ = "app_users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    email: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, index=True)
    full_name: Mapped[str] = mapped_column(String(160), nullable=False, default="")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    roles: Mapped[List["UserRole"]] = relationship(back_populates="user", cascade="all, delete-orphan")
    assignments: Mapped[List["PropertyAssignment"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )


class UserRole(Base):
    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("app_users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False)  # owner|manager|inspector|cleaner
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    user: Mapped["AppUser"] = relationship(back_populates="roles")


class PropertyAssignment(Base):
    __tablename__ = "property_assignments"
    __table_args__ = (UniqueConstraint("user_id", "property_id", name="uq_property_assignments_user_property"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("app_users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    property_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    user: Mapped["AppUser"] = relationship(back_populates="assignments")


# -----------------------------
# Properties
# -----------------------------
class Property(Base):
    __tablename__ = "properties"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(160), nullable=False, index=True)
    address: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    city: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    state: Mapped[str] = mapped_column(String(40), nullable=False, default="")
    zip: Mapped[str] = mapped_column(String(10), nullable=False, default="")
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    created_by: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("app_users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )


# -----------------------------
# Inventory
# -----------------------------
class InventoryCategory(Base):
    __tablename__ = "inventory_categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_predefined: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_by: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("app_users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )


class InventoryItem(Base):
    __tablename__ = "inventory_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("inventory_categories.id", ondelete="SET NULL"), nullable=True, index=True
    )
    property_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("properties.id", ondelete="SET NULL"), nullable=True, index=True
    )

    current_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    restock_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    reorder_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=10)

    unit_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    unit: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    units_per_package: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    cost_per_package: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    supplier: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    amazon_image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    amazon_title: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    amazon_link: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    asin: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    reorder_link: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    restock_requested: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_by: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("app_users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )


# -----------------------------
# Inspections
# -----------------------------
class InspectionTemplate(Base):
    __tablename__ = "inspection_templates"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    items_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    property_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("properties.id", ondelete="SET NULL"), nullable=True, index=True
    )
    is_predefined: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    frequency_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    frequency_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    next_occurrence: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    notifications_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notification_method: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # email|sms|both
    notification_days_ahead: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_by: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("app_users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )


class InspectionAssignment(Base):
    """Who is expected to carry out a template's inspections."""

    __tablename__ = "inspection_assignments"
    __table_args__ = (UniqueConstraint("template_id", "assigned_to", name="uq_inspection_assignments_template_user"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    template_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("inspection_templates.id", ondelete="CASCADE"), nullable=False, index=True
    )
    assigned_to: Mapped[str] = mapped_column(
        String(36), ForeignKey("app_users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    assigned_by: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("app_users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class InspectionRecord(Base):
    __tablename__ = "inspection_records"
    __table_args__ = (Index("ix_inspection_records_property_date", "property_id", "inspection_date"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    template_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("inspection_templates.id", ondelete="SET NULL"), nullable=True
    )
    template_name: Mapped[str] = mapped_column(String(160), nullable=False, default="")
    property_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("properties.id", ondelete="SET NULL"), nullable=True
    )

    inspection_date: Mapped[date] = mapped_column(Date, nullable=False)
    next_due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    items_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")

    performed_by: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    entered_by: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("app_users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )


# -----------------------------
# Damage reports / claims
# -----------------------------
class DamageReport(Base):
    __tablename__ = "damage_reports"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    title: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    location: Mapped[str] = mapped_column(String(200), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False, default="minor")  # minor|moderate|severe
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="reported")
    responsible_party: Mapped[str] = mapped_column(String(20), nullable=False, default="guest")

    damage_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    estimated_value: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    repair_cost: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    repair_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    repair_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    property_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("properties.id", ondelete="SET NULL"), nullable=True, index=True
    )
    reported_by: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("app_users.id", ondelete="SET NULL"), nullable=True
    )

    guest_name: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    reservation_id: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    booking_platform: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    check_in_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    check_out_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    claim_status: Mapped[str] = mapped_column(String(30), nullable=False, default="not_filed")
    claim_reference_number: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    claim_deadline: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    resolution_sought: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    photo_urls_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )


# -----------------------------
# Change feed
# -----------------------------
class ChangeEvent(Base):
    __tablename__ = "change_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    table_name: Mapped[str] = mapped_column(String(60), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(10), nullable=False)  # INSERT|UPDATE|DELETE
    row_id: Mapped[str] = mapped_column(String(36), nullable=False)
    payload_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # only this user receives the event; null means everyone who can see the row
    audience: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    # column values before an UPDATE, where delivery depends on them
    previous_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
