"""SQLAlchemy ORM models for the Warehub booking engine.

All models use SQLite-compatible types:
- String(36) for UUID primary keys
- BigInteger for money (integer cents)
- Numeric(12, 2) for sizes and quantities
- JSON for structured data (no JSONB)
"""

import uuid

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from warehub.infra.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Auth / User
# ---------------------------------------------------------------------------


class User(Base):
    """Platform user for authentication."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    company = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    role = Column(String(20), nullable=False, default="trader")  # UserRole
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), default=func.now())
    last_login_at = Column(DateTime(timezone=True), nullable=True)


# ---------------------------------------------------------------------------
# Catalog (read-only for the booking engine)
# ---------------------------------------------------------------------------


class Warehouse(Base):
    """Physical warehouse offering spaces and services."""

    __tablename__ = "warehouses"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    city = Column(String(100))
    address = Column(String(500))
    created_at = Column(DateTime(timezone=True), default=func.now())

    spaces = relationship("WarehouseSpace", back_populates="warehouse")
    services = relationship("WarehouseService", back_populates="warehouse")


class SpaceType(Base):
    """Kind of storage space, e.g. "Dry Storage" or "Cold Storage"."""

    __tablename__ = "space_types"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)


class WarehouseSpace(Base):
    """A rentable space of one type inside a warehouse, with its list price."""

    __tablename__ = "warehouse_spaces"

    id = Column(String(36), primary_key=True, default=_uuid)
    warehouse_id = Column(String(36), ForeignKey("warehouses.id"), nullable=False, index=True)
    space_type_id = Column(String(36), ForeignKey("space_types.id"), nullable=False, index=True)
    size_m2 = Column(Numeric(12, 2), nullable=False)
    price_per_m2_cents = Column(BigInteger, nullable=False)

    warehouse = relationship("Warehouse", back_populates="spaces")
    space_type = relationship("SpaceType")


class WarehouseService(Base):
    """An add-on service a warehouse can provide (handling, labelling...)."""

    __tablename__ = "warehouse_services"

    id = Column(String(36), primary_key=True, default=_uuid)
    warehouse_id = Column(String(36), ForeignKey("warehouses.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    hourly_rate_cents = Column(BigInteger, nullable=True)
    unit_rate_cents = Column(BigInteger, nullable=True)
    unit_type = Column(String(50), nullable=True)

    warehouse = relationship("Warehouse", back_populates="services")


# ---------------------------------------------------------------------------
# Inquiry
# ---------------------------------------------------------------------------


class Inquiry(Base):
    """A trader's request for warehouse space and services over a date range."""

    __tablename__ = "inquiries"

    id = Column(String(36), primary_key=True, default=_uuid)
    trader_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    notes = Column(Text, nullable=True)
    estimated_cost_cents = Column(BigInteger, nullable=True)
    status = Column(String(30), nullable=False, default="draft", index=True)  # BookingStatus
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    trader = relationship("User")
    space_requests = relationship(
        "InquirySpaceRequest", back_populates="inquiry", order_by="InquirySpaceRequest.position"
    )
    requested_services = relationship("InquiryService", back_populates="inquiry")
    selected_warehouses = relationship("InquiryWarehouse", back_populates="inquiry")
    offers = relationship("Offer", back_populates="inquiry", order_by="Offer.created_at")

    __mapper_args__ = {"version_id_col": version}


class InquirySpaceRequest(Base):
    """One requested (space type, size) pair on an inquiry."""

    __tablename__ = "inquiry_space_requests"

    id = Column(String(36), primary_key=True, default=_uuid)
    inquiry_id = Column(String(36), ForeignKey("inquiries.id"), nullable=False, index=True)
    space_type_id = Column(String(36), ForeignKey("space_types.id"), nullable=False)
    size_m2 = Column(Numeric(12, 2), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    inquiry = relationship("Inquiry", back_populates="space_requests")


class InquiryService(Base):
    """A service the trader asked for."""

    __tablename__ = "inquiry_services"
    __table_args__ = (UniqueConstraint("inquiry_id", "service_id"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    inquiry_id = Column(String(36), ForeignKey("inquiries.id"), nullable=False, index=True)
    service_id = Column(String(36), ForeignKey("warehouse_services.id"), nullable=False)

    inquiry = relationship("Inquiry", back_populates="requested_services")


class InquiryWarehouse(Base):
    """A warehouse the trader pre-selected; narrows which spaces may be offered."""

    __tablename__ = "inquiry_warehouses"
    __table_args__ = (UniqueConstraint("inquiry_id", "warehouse_id"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    inquiry_id = Column(String(36), ForeignKey("inquiries.id"), nullable=False, index=True)
    warehouse_id = Column(String(36), ForeignKey("warehouses.id"), nullable=False)

    inquiry = relationship("Inquiry", back_populates="selected_warehouses")


# ---------------------------------------------------------------------------
# Offer
# ---------------------------------------------------------------------------


class Offer(Base):
    """An administrator's priced proposal against one inquiry."""

    __tablename__ = "offers"

    id = Column(String(36), primary_key=True, default=_uuid)
    inquiry_id = Column(String(36), ForeignKey("inquiries.id"), nullable=False, index=True)
    admin_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    total_cost_cents = Column(BigInteger, nullable=True)
    valid_until = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(String(30), nullable=False, default="draft", index=True)  # BookingStatus
    version = Column(Integer, nullable=False, default=1)

    sent_at = Column(DateTime(timezone=True), nullable=True)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    inquiry = relationship("Inquiry", back_populates="offers")
    space_allocations = relationship(
        "OfferSpaceAllocation", back_populates="offer", order_by="OfferSpaceAllocation.position"
    )
    service_allocations = relationship(
        "OfferServiceAllocation", back_populates="offer", order_by="OfferServiceAllocation.position"
    )
    terms = relationship("OfferTerm", back_populates="offer", order_by="OfferTerm.position")
    summary = relationship("OfferSummary", back_populates="offer", uselist=False)

    __mapper_args__ = {"version_id_col": version}


class OfferSpaceAllocation(Base):
    """One offered space line."""

    __tablename__ = "offer_space_allocations"

    id = Column(String(36), primary_key=True, default=_uuid)
    offer_id = Column(String(36), ForeignKey("offers.id"), nullable=False, index=True)
    space_id = Column(String(36), ForeignKey("warehouse_spaces.id"), nullable=False)
    allocated_size_m2 = Column(Numeric(12, 2), nullable=False)
    price_per_m2_cents = Column(BigInteger, nullable=False)
    is_manual_price = Column(Boolean, nullable=False, default=False)
    offer_total_cents = Column(BigInteger, nullable=False)
    comments = Column(Text, nullable=True)
    position = Column(Integer, nullable=False, default=0)

    offer = relationship("Offer", back_populates="space_allocations")
    space = relationship("WarehouseSpace")


class OfferServiceAllocation(Base):
    """One offered service line."""

    __tablename__ = "offer_service_allocations"

    id = Column(String(36), primary_key=True, default=_uuid)
    offer_id = Column(String(36), ForeignKey("offers.id"), nullable=False, index=True)
    service_id = Column(String(36), ForeignKey("warehouse_services.id"), nullable=False)
    pricing_type = Column(String(20), nullable=False, default="ask_quote")  # PricingType
    quantity = Column(Numeric(12, 2), nullable=True)
    price_per_hour_cents = Column(BigInteger, nullable=True)
    price_per_unit_cents = Column(BigInteger, nullable=True)
    unit_type = Column(String(50), nullable=True)
    fixed_price_cents = Column(BigInteger, nullable=True)
    offer_total_cents = Column(BigInteger, nullable=True)  # NULL for ask_quote
    comments = Column(Text, nullable=True)
    position = Column(Integer, nullable=False, default=0)

    offer = relationship("Offer", back_populates="service_allocations")
    service = relationship("WarehouseService")


class OfferTerm(Base):
    """A free-text contractual term attached to an offer."""

    __tablename__ = "offer_terms"

    id = Column(String(36), primary_key=True, default=_uuid)
    offer_id = Column(String(36), ForeignKey("offers.id"), nullable=False, index=True)
    term_type = Column(String(50), nullable=False)
    description = Column(Text, nullable=False)
    position = Column(Integer, nullable=False, default=0)

    offer = relationship("Offer", back_populates="terms")


class OfferSummary(Base):
    """Derived totals for an offer. Overwritten on every allocation save."""

    __tablename__ = "offer_summaries"

    id = Column(String(36), primary_key=True, default=_uuid)
    offer_id = Column(String(36), ForeignKey("offers.id"), nullable=False, unique=True)
    quoted_price_cents = Column(BigInteger, nullable=False, default=0)
    calculated_price_cents = Column(BigInteger, nullable=False, default=0)
    space_total_cents = Column(BigInteger, nullable=False, default=0)
    services_total_cents = Column(BigInteger, nullable=False, default=0)
    actual_offer_cents = Column(BigInteger, nullable=True)
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    offer = relationship("Offer", back_populates="summary")


# ---------------------------------------------------------------------------
# Booking / Notification / Audit
# ---------------------------------------------------------------------------


class Booking(Base):
    """Confirmed booking created when a trader accepts an offer."""

    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=_uuid)
    inquiry_id = Column(String(36), ForeignKey("inquiries.id"), nullable=False, index=True)
    offer_id = Column(String(36), ForeignKey("offers.id"), nullable=False, unique=True)
    status = Column(String(20), nullable=False, default="confirmed")  # BookingRecordStatus
    total_cost_cents = Column(BigInteger, nullable=True)
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    offer = relationship("Offer", backref="booking")


class Notification(Base):
    """Fire-and-forget message to one recipient about a lifecycle change."""

    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    category = Column(String(50), nullable=False)  # NotificationCategory
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    inquiry_id = Column(String(36), ForeignKey("inquiries.id"), nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=func.now())


class StatusEvent(Base):
    """Immutable audit trail entry for inquiry and offer status changes."""

    __tablename__ = "status_events"

    id = Column(String(36), primary_key=True, default=_uuid)
    entity_type = Column(String(20), nullable=False)  # StatusEntity
    entity_id = Column(String(36), nullable=False, index=True)
    inquiry_id = Column(String(36), ForeignKey("inquiries.id"), nullable=False, index=True)
    actor = Column(String(20), nullable=False)  # ActorRole
    actor_id = Column(String(36), nullable=True)
    from_status = Column(String(30), nullable=True)
    to_status = Column(String(30), nullable=False)
    data = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=func.now())
