"""Pydantic v2 schemas for API request/response validation."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class UserCreate(BaseModel):
    """Schema for trader self-signup."""

    email: str
    password: str = Field(min_length=8)
    name: str
    company: str | None = None
    phone: str | None = None


class UserLogin(BaseModel):
    """Schema for user login."""

    email: str
    password: str


class UserResponse(BaseModel):
    """Schema for user API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: str
    role: str
    company: str | None = None
    phone: str | None = None
    is_active: bool


class TokenResponse(BaseModel):
    """Schema for JWT token responses."""

    access_token: str
    token_type: str = "bearer"
    user: UserResponse


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str


# ---------------------------------------------------------------------------
# Inquiry
# ---------------------------------------------------------------------------


class SpaceRequestIn(BaseModel):
    space_type_id: str
    size_m2: Decimal


class InquiryCreate(BaseModel):
    """Schema for creating or replacing an inquiry."""

    start_date: datetime
    end_date: datetime
    space_requests: list[SpaceRequestIn]
    service_ids: list[str] = []
    warehouse_ids: list[str] = []
    notes: str | None = None


class InquiryStatusChange(BaseModel):
    status: str


class SpaceRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    space_type_id: str
    size_m2: float


class InquiryOut(BaseModel):
    id: str
    trader_id: str
    status: str
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    notes: Optional[str] = None
    estimated_cost_cents: Optional[int] = None
    space_requests: list[SpaceRequestOut] = []
    service_ids: list[str] = []
    warehouse_ids: list[str] = []
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    allowed_actions: list[str] = []


class StatusEventOut(BaseModel):
    id: str
    entity_type: str
    entity_id: str
    inquiry_id: str
    actor: str
    actor_id: Optional[str] = None
    from_status: Optional[str] = None
    to_status: str
    data: Optional[dict] = None
    created_at: Optional[str] = None


# ---------------------------------------------------------------------------
# Offer requests
# ---------------------------------------------------------------------------


class SpaceAllocationIn(BaseModel):
    space_id: str
    allocated_size_m2: Decimal
    price_per_m2_cents: Optional[int] = None
    is_manual_price: bool = False
    offer_total_cents: Optional[int] = None
    comments: Optional[str] = None


class ServiceAllocationIn(BaseModel):
    service_id: str
    pricing_type: str = "ask_quote"
    quantity: Optional[Decimal] = None
    price_per_hour_cents: Optional[int] = None
    price_per_unit_cents: Optional[int] = None
    unit_type: Optional[str] = None
    fixed_price_cents: Optional[int] = None
    offer_total_cents: Optional[int] = None
    comments: Optional[str] = None


class OfferTermIn(BaseModel):
    term_type: str
    description: str


class OfferDraftBase(BaseModel):
    total_cost_cents: Optional[int] = None
    valid_until: Optional[datetime] = None
    notes: Optional[str] = None
    spaces: list[SpaceAllocationIn] = []
    services: list[ServiceAllocationIn] = []
    terms: list[OfferTermIn] = []


class OfferCreate(OfferDraftBase):
    inquiry_id: str


class OfferReplace(OfferDraftBase):
    actual_offer_cents: Optional[int] = None


class ActualOfferIn(BaseModel):
    actual_offer_cents: int


class OfferResponseIn(BaseModel):
    action: str  # accept | reject | request_changes


# ---------------------------------------------------------------------------
# Offer responses, role-filtered
# ---------------------------------------------------------------------------


class OfferTermOut(BaseModel):
    term_type: str
    description: str


class SpaceAllocationTraderView(BaseModel):
    space_id: str
    allocated_size_m2: float
    price_per_m2_cents: int
    offer_total_cents: int
    comments: Optional[str] = None


class SpaceAllocationAdminView(SpaceAllocationTraderView):
    is_manual_price: bool


class ServiceAllocationOut(BaseModel):
    service_id: str
    pricing_type: str
    quantity: Optional[float] = None
    price_per_hour_cents: Optional[int] = None
    price_per_unit_cents: Optional[int] = None
    unit_type: Optional[str] = None
    fixed_price_cents: Optional[int] = None
    offer_total_cents: Optional[int] = None
    comments: Optional[str] = None


class OfferSummaryAdminView(BaseModel):
    quoted_price_cents: int
    calculated_price_cents: int
    space_total_cents: int
    services_total_cents: int
    actual_offer_cents: Optional[int] = None


class OfferTraderView(BaseModel):
    """What traders see: the headline figure, no internal price breakdown."""

    id: str
    inquiry_id: str
    status: str
    total_cost_cents: Optional[int] = None
    actual_offer_cents: Optional[int] = None
    valid_until: Optional[str] = None
    notes: Optional[str] = None
    sent_at: Optional[str] = None
    responded_at: Optional[str] = None
    spaces: list[SpaceAllocationTraderView] = []
    services: list[ServiceAllocationOut] = []
    terms: list[OfferTermOut] = []
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    allowed_actions: list[str] = []


class OfferAdminView(BaseModel):
    """Full view for administrators."""

    id: str
    inquiry_id: str
    admin_id: str
    status: str
    version: int
    total_cost_cents: Optional[int] = None
    valid_until: Optional[str] = None
    notes: Optional[str] = None
    sent_at: Optional[str] = None
    responded_at: Optional[str] = None
    spaces: list[SpaceAllocationAdminView] = []
    services: list[ServiceAllocationOut] = []
    terms: list[OfferTermOut] = []
    summary: Optional[OfferSummaryAdminView] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    allowed_actions: list[str] = []


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    category: str
    title: str
    body: str
    inquiry_id: Optional[str] = None
    is_read: bool
    created_at: Optional[datetime] = None


class UnreadCountOut(BaseModel):
    unread: int
