"""Allocation Calculator - line totals and offer summary for space/service allocations.

Pure functions: every input (catalog entries included) is passed in, nothing is
read from or written to the database here.

Pricing rules:
- Space line, list price:  allocated_size_m2 x list price per m2 x duration_days
- Space line, manual price: the caller-supplied offer total
- Service line: hourly_rate -> quantity x price_per_hour,
  per_unit -> quantity x price_per_unit (+ unit label), fixed -> fixed price,
  ask_quote -> no total, never counted
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Mapping, Optional, Sequence

from warehub.domain.enums import PricingType
from warehub.services.errors import ReferentialError, ValidationError

logger = logging.getLogger(__name__)

# Price field each pricing mode requires (ask_quote requires none)
REQUIRED_PRICE_FIELD: dict[PricingType, Optional[str]] = {
    PricingType.HOURLY_RATE: "price_per_hour_cents",
    PricingType.PER_UNIT: "price_per_unit_cents",
    PricingType.FIXED: "fixed_price_cents",
    PricingType.ASK_QUOTE: None,
}

_CENT = Decimal("1")
# Sizes and quantities are stored as Numeric(12, 2)
AMOUNT_STEP = Decimal("0.01")


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SpaceAllocationInput:
    """Caller-supplied space line."""

    space_id: Optional[str]
    allocated_size_m2: object = None
    price_per_m2_cents: Optional[int] = None
    is_manual_price: bool = False
    offer_total_cents: Optional[int] = None
    comments: Optional[str] = None


@dataclass(frozen=True)
class ServiceAllocationInput:
    """Caller-supplied service line."""

    service_id: Optional[str]
    pricing_type: str = PricingType.ASK_QUOTE.value
    quantity: object = None
    price_per_hour_cents: Optional[int] = None
    price_per_unit_cents: Optional[int] = None
    unit_type: Optional[str] = None
    fixed_price_cents: Optional[int] = None
    offer_total_cents: Optional[int] = None
    comments: Optional[str] = None


@dataclass(frozen=True)
class CatalogSpace:
    id: str
    warehouse_id: str
    space_type_id: str
    price_per_m2_cents: int


@dataclass(frozen=True)
class CatalogService:
    id: str
    warehouse_id: str


@dataclass(frozen=True)
class SpaceRequest:
    space_type_id: str
    size_m2: Decimal


@dataclass(frozen=True)
class PricingContext:
    """Everything about the inquiry and catalog the calculator needs."""

    start: datetime
    end: datetime
    space_requests: tuple[SpaceRequest, ...]
    spaces: Mapping[str, CatalogSpace]
    services: Mapping[str, CatalogService]
    # Empty means the trader did not narrow the search to specific warehouses
    warehouse_ids: frozenset[str] = frozenset()

    @property
    def requested_space_type_ids(self) -> set[str]:
        return {r.space_type_id for r in self.space_requests}

    @property
    def requested_size_m2(self) -> Decimal:
        return sum((r.size_m2 for r in self.space_requests), Decimal("0"))


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SpaceLine:
    space_id: str
    allocated_size_m2: Decimal
    price_per_m2_cents: int
    is_manual_price: bool
    offer_total_cents: int
    comments: Optional[str]
    position: int


@dataclass(frozen=True)
class ServiceLine:
    service_id: str
    pricing_type: PricingType
    quantity: Optional[Decimal]
    price_per_hour_cents: Optional[int]
    price_per_unit_cents: Optional[int]
    unit_type: Optional[str]
    fixed_price_cents: Optional[int]
    offer_total_cents: Optional[int]
    comments: Optional[str]
    position: int


@dataclass(frozen=True)
class AllocationResult:
    space_lines: tuple[SpaceLine, ...] = field(default_factory=tuple)
    service_lines: tuple[ServiceLine, ...] = field(default_factory=tuple)
    space_total_cents: int = 0
    services_total_cents: int = 0

    @property
    def calculated_total_cents(self) -> int:
        return self.space_total_cents + self.services_total_cents

    @property
    def allocated_size_m2(self) -> Decimal:
        return sum((line.allocated_size_m2 for line in self.space_lines), Decimal("0"))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _utc_date(value: datetime) -> date:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).date()


def duration_days(start: datetime, end: datetime) -> int:
    """Inclusive day count between two instants: both boundary days are billed.

    2025-01-01 .. 2025-01-10 is 10 days; a same-day booking is 1 day.
    """
    days = (_utc_date(end) - _utc_date(start)).days
    if days < 0:
        raise ValidationError("end_date", end.isoformat(), "must not be before start_date")
    return days + 1


def to_amount(field_name: str, value, *, required: bool = True) -> Optional[Decimal]:
    """Parse a size or quantity into a non-negative Decimal."""
    if value is None:
        if required:
            raise ValidationError(field_name, value, "is required")
        return None
    if isinstance(value, bool):
        raise ValidationError(field_name, value, "must be a number")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(field_name, value, "must be a number")
    if not amount.is_finite():
        raise ValidationError(field_name, value, "must be a finite number")
    if amount < 0:
        raise ValidationError(field_name, value, "must not be negative")
    try:
        stored = amount.quantize(AMOUNT_STEP)
    except InvalidOperation:
        raise ValidationError(field_name, value, "is too large")
    if stored != amount:
        raise ValidationError(field_name, value, "must have at most 2 decimal places")
    return stored


def to_cents(field_name: str, value, *, required: bool = True) -> Optional[int]:
    """Validate a money amount in integer cents."""
    if value is None:
        if required:
            raise ValidationError(field_name, value, "is required")
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(field_name, value, "must be an integer number of cents")
    if value < 0:
        raise ValidationError(field_name, value, "must not be negative")
    return value


def round_cents(amount: Decimal) -> int:
    return int(amount.quantize(_CENT, rounding=ROUND_HALF_UP))


def parse_pricing_type(field_name: str, value) -> PricingType:
    try:
        return PricingType(value)
    except ValueError:
        allowed = ", ".join(p.value for p in PricingType)
        raise ValidationError(field_name, value, f"must be one of {allowed}")


def missing_price_field(line) -> Optional[str]:
    """Name of the price field a non-quote line lacks, or None when complete.

    Works on ServiceLine values and persisted service allocation rows alike.
    """
    pricing_type = parse_pricing_type("pricing_type", line.pricing_type)
    required = REQUIRED_PRICE_FIELD[pricing_type]
    if required is None:
        return None
    if getattr(line, required) is None:
        return required
    if pricing_type in (PricingType.HOURLY_RATE, PricingType.PER_UNIT) and line.quantity is None:
        return "quantity"
    if pricing_type == PricingType.PER_UNIT and not line.unit_type:
        return "unit_type"
    return None


# ---------------------------------------------------------------------------
# Line totals
# ---------------------------------------------------------------------------


def space_line_total(
    allocated_size_m2: Decimal,
    list_price_per_m2_cents: int,
    days: int,
    *,
    is_manual_price: bool = False,
    offer_total_cents: Optional[int] = None,
) -> int:
    """Line total in cents for one space allocation."""
    if is_manual_price:
        return to_cents("offer_total_cents", offer_total_cents)
    return round_cents(Decimal(allocated_size_m2) * list_price_per_m2_cents * days)


def service_line_total(
    pricing_type: PricingType,
    *,
    quantity: Optional[Decimal] = None,
    price_per_hour_cents: Optional[int] = None,
    price_per_unit_cents: Optional[int] = None,
    fixed_price_cents: Optional[int] = None,
) -> Optional[int]:
    """Line total in cents for one service allocation; None for quote-only lines."""
    if pricing_type == PricingType.HOURLY_RATE:
        return round_cents(quantity * price_per_hour_cents)
    if pricing_type == PricingType.PER_UNIT:
        return round_cents(quantity * price_per_unit_cents)
    if pricing_type == PricingType.FIXED:
        return fixed_price_cents
    return None


# ---------------------------------------------------------------------------
# Validation + aggregation
# ---------------------------------------------------------------------------


def _price_space(
    index: int, item: SpaceAllocationInput, context: PricingContext, days: int
) -> SpaceLine:
    prefix = f"spaces[{index}]"
    if not item.space_id:
        raise ValidationError(f"{prefix}.space_id", item.space_id, "is required")

    catalog_space = context.spaces.get(item.space_id)
    if catalog_space is None:
        raise ReferentialError("space", item.space_id, "does not exist")
    if catalog_space.space_type_id not in context.requested_space_type_ids:
        raise ReferentialError(
            "space",
            item.space_id,
            f"space type {catalog_space.space_type_id} does not match any requested space type",
        )
    if context.warehouse_ids and catalog_space.warehouse_id not in context.warehouse_ids:
        raise ReferentialError(
            "space", item.space_id, "does not belong to a warehouse selected on the inquiry"
        )

    size = to_amount(f"{prefix}.allocated_size_m2", item.allocated_size_m2)
    is_manual = bool(item.is_manual_price)

    if is_manual:
        total = to_cents(f"{prefix}.offer_total_cents", item.offer_total_cents)
        price = to_cents(f"{prefix}.price_per_m2_cents", item.price_per_m2_cents, required=False)
        if price is None:
            price = catalog_space.price_per_m2_cents
    else:
        price = catalog_space.price_per_m2_cents
        total = space_line_total(size, price, days)

    return SpaceLine(
        space_id=item.space_id,
        allocated_size_m2=size,
        price_per_m2_cents=price,
        is_manual_price=is_manual,
        offer_total_cents=total,
        comments=item.comments,
        position=index,
    )


def _price_service(index: int, item: ServiceAllocationInput, context: PricingContext) -> ServiceLine:
    prefix = f"services[{index}]"
    if not item.service_id:
        raise ValidationError(f"{prefix}.service_id", item.service_id, "is required")

    catalog_service = context.services.get(item.service_id)
    if catalog_service is None:
        raise ReferentialError("service", item.service_id, "does not exist")
    if context.warehouse_ids and catalog_service.warehouse_id not in context.warehouse_ids:
        raise ReferentialError(
            "service", item.service_id, "does not belong to a warehouse selected on the inquiry"
        )

    pricing_type = parse_pricing_type(f"{prefix}.pricing_type", item.pricing_type)

    if pricing_type == PricingType.ASK_QUOTE:
        # Price fields on a quote-only line carry no commitment and are dropped.
        return ServiceLine(
            service_id=item.service_id,
            pricing_type=pricing_type,
            quantity=to_amount(f"{prefix}.quantity", item.quantity, required=False),
            price_per_hour_cents=None,
            price_per_unit_cents=None,
            unit_type=item.unit_type,
            fixed_price_cents=None,
            offer_total_cents=None,
            comments=item.comments,
            position=index,
        )

    quantity = None
    hourly = per_unit = fixed = None
    unit_type = None
    if pricing_type == PricingType.HOURLY_RATE:
        quantity = to_amount(f"{prefix}.quantity", item.quantity)
        hourly = to_cents(f"{prefix}.price_per_hour_cents", item.price_per_hour_cents)
    elif pricing_type == PricingType.PER_UNIT:
        quantity = to_amount(f"{prefix}.quantity", item.quantity)
        per_unit = to_cents(f"{prefix}.price_per_unit_cents", item.price_per_unit_cents)
        if not item.unit_type:
            raise ValidationError(f"{prefix}.unit_type", item.unit_type, "is required for per_unit pricing")
        unit_type = item.unit_type
    else:
        quantity = to_amount(f"{prefix}.quantity", item.quantity, required=False)
        fixed = to_cents(f"{prefix}.fixed_price_cents", item.fixed_price_cents)

    total = service_line_total(
        pricing_type,
        quantity=quantity,
        price_per_hour_cents=hourly,
        price_per_unit_cents=per_unit,
        fixed_price_cents=fixed,
    )
    return ServiceLine(
        service_id=item.service_id,
        pricing_type=pricing_type,
        quantity=quantity,
        price_per_hour_cents=hourly,
        price_per_unit_cents=per_unit,
        unit_type=unit_type,
        fixed_price_cents=fixed,
        offer_total_cents=total,
        comments=item.comments,
        position=index,
    )


def calculate_allocations(
    spaces: Sequence[SpaceAllocationInput],
    services: Sequence[ServiceAllocationInput],
    context: PricingContext,
) -> AllocationResult:
    """Validate every line and compute line totals plus the aggregate summary.

    Raises ValidationError or ReferentialError on the first bad line; nothing is
    partially returned.
    """
    days = duration_days(context.start, context.end)

    space_lines = tuple(_price_space(i, item, context, days) for i, item in enumerate(spaces))
    service_lines = tuple(_price_service(i, item, context) for i, item in enumerate(services))

    space_total = sum(line.offer_total_cents for line in space_lines)
    services_total = sum(
        line.offer_total_cents
        for line in service_lines
        if line.pricing_type != PricingType.ASK_QUOTE and line.offer_total_cents is not None
    )

    result = AllocationResult(
        space_lines=space_lines,
        service_lines=service_lines,
        space_total_cents=space_total,
        services_total_cents=services_total,
    )
    logger.debug(
        "Priced %d space / %d service lines over %d days: %d cents",
        len(space_lines), len(service_lines), days, result.calculated_total_cents,
    )
    return result


def estimate_inquiry_cost(
    space_requests: Sequence[SpaceRequest],
    candidate_spaces: Sequence[CatalogSpace],
    start: datetime,
    end: datetime,
) -> int:
    """List-price estimate shown to the trader before any offer exists.

    Each request is priced at the cheapest candidate space of its type; a
    request no candidate can serve contributes nothing.
    """
    days = duration_days(start, end)
    cheapest: dict[str, int] = {}
    for space in candidate_spaces:
        current = cheapest.get(space.space_type_id)
        if current is None or space.price_per_m2_cents < current:
            cheapest[space.space_type_id] = space.price_per_m2_cents

    total = 0
    for request in space_requests:
        price = cheapest.get(request.space_type_id)
        if price is None:
            continue
        total += space_line_total(Decimal(request.size_m2), price, days)
    return total
