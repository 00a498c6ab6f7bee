"""Domain enumerations for the Warehub booking engine.

All enums use the (str, Enum) pattern to ensure JSON serialization compatibility.
"""

from enum import Enum


class UserRole(str, Enum):
    """Platform role of a user account."""

    ADMINISTRATOR = "administrator"
    TRADER = "trader"


class ActorRole(str, Enum):
    """Role under which a status change is performed."""

    ADMINISTRATOR = "administrator"
    TRADER = "trader"
    SYSTEM = "system"


class BookingStatus(str, Enum):
    """Unified lifecycle status shared by inquiries and offers."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    OFFER_DRAFT = "offer_draft"
    OFFER_SENT = "offer_sent"
    CHANGES_REQUESTED = "changes_requested"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class PricingType(str, Enum):
    """How a service allocation line is priced."""

    HOURLY_RATE = "hourly_rate"
    PER_UNIT = "per_unit"
    FIXED = "fixed"
    ASK_QUOTE = "ask_quote"


class OfferAction(str, Enum):
    """Trader response to a sent offer."""

    ACCEPT = "accept"
    REJECT = "reject"
    REQUEST_CHANGES = "request_changes"


class NotificationCategory(str, Enum):
    """Category of a lifecycle notification."""

    INQUIRY_SUBMITTED = "inquiry_submitted"
    OFFER_SENT = "offer_sent"
    CHANGES_REQUESTED = "changes_requested"
    OFFER_ACCEPTED = "offer_accepted"
    OFFER_REJECTED = "offer_rejected"
    OFFER_EXPIRED = "offer_expired"
    INQUIRY_CANCELLED = "inquiry_cancelled"


class StatusEntity(str, Enum):
    """Kind of record a status event refers to."""

    INQUIRY = "inquiry"
    OFFER = "offer"


class BookingRecordStatus(str, Enum):
    """Status of a booking created from an accepted offer."""

    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
