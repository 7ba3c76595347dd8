# staykeeper/schemas.py
from __future__ import annotations

from datetime import date, datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# -------------------- Properties --------------------

class PropertyCreate(BaseModel):
    name: str
    address: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    image_url: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("name is required")
        return v


class PropertyUpdate(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    image_url: Optional[str] = None


class PropertyOut(PropertyCreate):
    id: str
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# -------------------- Inventory --------------------

class CategoryCreate(BaseModel):
    name: str
    description: Optional[str] = None


class CategoryOut(CategoryCreate):
    id: str
    is_predefined: bool = False
    created_by: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class InventoryItemBase(BaseModel):
    name: str
    category_id: Optional[str] = None
    property_id: Optional[str] = None
    current_quantity: int = Field(default=0, ge=0)
    restock_threshold: Optional[int] = Field(default=None, ge=0)
    reorder_quantity: Optional[int] = Field(default=None, ge=0)
    unit_price: Optional[float] = None
    unit: Optional[str] = None
    units_per_package: Optional[int] = None
    cost_per_package: Optional[float] = None
    supplier: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    amazon_image_url: Optional[str] = None
    amazon_title: Optional[str] = None
    amazon_link: Optional[str] = None
    asin: Optional[str] = None
    reorder_link: Optional[str] = None
    restock_requested: bool = False


class InventoryItemCreate(InventoryItemBase):
    pass


class InventoryItemUpdate(BaseModel):
    name: Optional[str] = None
    category_id: Optional[str] = None
    property_id: Optional[str] = None
    current_quantity: Optional[int] = Field(default=None, ge=0)
    restock_threshold: Optional[int] = Field(default=None, ge=0)
    reorder_quantity: Optional[int] = Field(default=None, ge=0)
    unit_price: Optional[float] = None
    unit: Optional[str] = None
    units_per_package: Optional[int] = None
    cost_per_package: Optional[float] = None
    supplier: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    asin: Optional[str] = None
    reorder_link: Optional[str] = None
    restock_requested: Optional[bool] = None


class InventoryItemOut(InventoryItemBase):
    id: str
    restock_threshold: int = 5
    reorder_quantity: int = 10
    status: Optional[str] = None
    created_by: Optional[str] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class StockAdjustIn(BaseModel):
    delta: int


class RestockReceiveIn(BaseModel):
    quantity: Optional[int] = Field(default=None, ge=1)


class RestockGroupOut(BaseModel):
    property_id: Optional[str] = None
    property_name: str
    items: List[InventoryItemOut] = Field(default_factory=list)


# -------------------- Inspection templates / records --------------------

class TemplateItemIn(BaseModel):
    id: Optional[str] = None
    description: str
    notes: str = ""


class TemplateItemOut(BaseModel):
    id: str
    description: str
    notes: str = ""


class ActiveItemIO(BaseModel):
    id: str
    description: str
    completed: bool = False
    notes: str = ""


class TemplateCreate(BaseModel):
    name: str
    items: List[TemplateItemIn] = Field(default_factory=list)
    property_id: Optional[str] = None
    frequency_type: Optional[str] = None
    frequency_days: Optional[int] = Field(default=None, ge=1)
    next_occurrence: Optional[date] = None
    notifications_enabled: bool = False
    notification_method: Optional[str] = None
    notification_days_ahead: Optional[int] = None


class TemplateUpdate(BaseModel):
    name: Optional[str] = None
    items: Optional[List[TemplateItemIn]] = None
    property_id: Optional[str] = None
    frequency_type: Optional[str] = None
    frequency_days: Optional[int] = Field(default=None, ge=1)
    next_occurrence: Optional[date] = None
    notifications_enabled: Optional[bool] = None
    notification_method: Optional[str] = None
    notification_days_ahead: Optional[int] = None


class TemplateOut(BaseModel):
    id: str
    name: str
    items: List[TemplateItemOut] = Field(default_factory=list)
    property_id: Optional[str] = None
    is_predefined: bool = False
    frequency_type: Optional[str] = None
    frequency_days: Optional[int] = None
    next_occurrence: Optional[date] = None
    notifications_enabled: bool = False
    notification_method: Optional[str] = None
    notification_days_ahead: Optional[int] = None
    created_by: Optional[str] = None
    updated_at: Optional[datetime] = None


class ReconcileIn(BaseModel):
    items: List[ActiveItemIO] = Field(default_factory=list)


class InspectionAssignmentIn(BaseModel):
    user_id: str


class InspectionAssignmentOut(BaseModel):
    id: str
    template_id: str
    assigned_to: str
    assigned_by: Optional[str] = None
    created_at: Optional[datetime] = None


class InspectionRecordCreate(BaseModel):
    template_id: str
    inspection_date: date
    items: List[ActiveItemIO]
    performed_by: Optional[str] = None
    next_due_date: Optional[date] = None


class InspectionRecordOut(BaseModel):
    id: str
    template_id: Optional[str] = None
    template_name: str = ""
    property_id: Optional[str] = None
    inspection_date: date
    next_due_date: Optional[date] = None
    items: List[ActiveItemIO] = Field(default_factory=list)
    performed_by: Optional[str] = None
    entered_by: Optional[str] = None
    created_at: Optional[datetime] = None


class UpcomingInspectionOut(BaseModel):
    id: str
    source: str
    property_id: str
    property_name: str
    template_id: Optional[str] = None
    template_name: str
    due_date: date
    days_until_due: int
    band: str

    model_config = ConfigDict(from_attributes=True)


# -------------------- Damage reports / claims --------------------

class DamageReportCreate(BaseModel):
    title: Optional[str] = None
    description: str
    location: str
    severity: str = "minor"
    status: str = "reported"
    responsible_party: str = "guest"
    damage_date: Optional[date] = None
    estimated_value: Optional[float] = None
    repair_cost: Optional[float] = None
    repair_date: Optional[date] = None
    repair_completed: bool = False
    property_id: Optional[str] = None
    guest_name: Optional[str] = None
    reservation_id: Optional[str] = None
    booking_platform: Optional[str] = None
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    claim_status: str = "not_filed"
    claim_reference_number: Optional[str] = None
    claim_deadline: Optional[date] = None
    resolution_sought: Optional[str] = None
    notes: Optional[str] = None
    photo_urls: List[str] = Field(default_factory=list)

    @field_validator("description", "location")
    @classmethod
    def _required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v


class DamageReportUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    severity: Optional[str] = None
    status: Optional[str] = None
    responsible_party: Optional[str] = None
    estimated_value: Optional[float] = None
    repair_cost: Optional[float] = None
    repair_date: Optional[date] = None
    repair_completed: Optional[bool] = None
    property_id: Optional[str] = None
    guest_name: Optional[str] = None
    reservation_id: Optional[str] = None
    booking_platform: Optional[str] = None
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    claim_status: Optional[str] = None
    claim_reference_number: Optional[str] = None
    claim_deadline: Optional[date] = None
    resolution_sought: Optional[str] = None
    notes: Optional[str] = None
    photo_urls: Optional[List[str]] = None


class DamageReportOut(DamageReportCreate):
    id: str
    damage_date: date
    reported_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ClaimTrackingOut(BaseModel):
    filed: bool
    status_label: str
    platform_label: str
    window_days: int
    deadline: Optional[date] = None
    days_remaining: Optional[int] = None
    band: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# -------------------- Users --------------------

class UserOut(BaseModel):
    id: str
    email: str
    full_name: str = ""
    is_active: bool = True
    roles: List[str] = Field(default_factory=list)
    property_ids: List[str] = Field(default_factory=list)


class RoleIn(BaseModel):
    role: str


class AssignmentIn(BaseModel):
    property_id: str


# -------------------- Dashboard / feed --------------------

class DashboardStatsOut(BaseModel):
    open_damage_reports: int
    upcoming_inspections: int
    low_stock_items: int


class ChangeOut(BaseModel):
    id: Optional[int] = None
    table: str
    action: str
    row_id: str
    row: Optional[dict[str, Any]] = None
    created_at: Optional[datetime] = None


class ChangePageOut(BaseModel):
    changes: List[ChangeOut] = Field(default_factory=list)
    cursor: int = 0
