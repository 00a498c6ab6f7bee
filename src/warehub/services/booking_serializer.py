"""Role-filtered serialization of inquiries, offers and status events for API responses.

Administrators get the full offer including the price breakdown; traders get
the headline figure and line items only.
"""

from datetime import datetime, timezone
from typing import Optional

from warehub.domain.enums import StatusEntity
from warehub.domain.models import Inquiry, Offer, StatusEvent
from warehub.domain.schemas import (
    InquiryOut,
    OfferAdminView,
    OfferSummaryAdminView,
    OfferTermOut,
    OfferTraderView,
    ServiceAllocationOut,
    SpaceAllocationAdminView,
    SpaceAllocationTraderView,
    SpaceRequestOut,
    StatusEventOut,
)
from warehub.services.access_guard import Actor
from warehub.services.status_machine import StatusMachine

_machine = StatusMachine()


def _dt(val) -> Optional[str]:
    """Safely convert datetime to an ISO string; naive values are UTC."""
    if val is None:
        return None
    if isinstance(val, datetime):
        if val.tzinfo is None:
            val = val.replace(tzinfo=timezone.utc)
        return val.isoformat()
    return str(val)


def _num(val) -> Optional[float]:
    """Safely convert Numeric/Decimal to float."""
    if val is None:
        return None
    return float(val)


def _services(offer: Offer) -> list[ServiceAllocationOut]:
    return [
        ServiceAllocationOut(
            service_id=s.service_id,
            pricing_type=s.pricing_type,
            quantity=_num(s.quantity),
            price_per_hour_cents=s.price_per_hour_cents,
            price_per_unit_cents=s.price_per_unit_cents,
            unit_type=s.unit_type,
            fixed_price_cents=s.fixed_price_cents,
            offer_total_cents=s.offer_total_cents,
            comments=s.comments,
        )
        for s in offer.service_allocations
    ]


def _terms(offer: Offer) -> list[OfferTermOut]:
    return [OfferTermOut(term_type=t.term_type, description=t.description) for t in offer.terms]


def serialize_offer(offer: Offer, actor: Actor) -> dict:
    """Serialize an offer (allocations, terms and summary loaded) for the actor's role."""
    allowed_actions = [
        s.value for s in _machine.get_allowed_transitions(offer.status, actor.role, StatusEntity.OFFER)
    ]
    summary = offer.summary

    if actor.is_administrator:
        return OfferAdminView(
            id=offer.id,
            inquiry_id=offer.inquiry_id,
            admin_id=offer.admin_id,
            status=offer.status,
            version=offer.version,
            total_cost_cents=offer.total_cost_cents,
            valid_until=_dt(offer.valid_until),
            notes=offer.notes,
            sent_at=_dt(offer.sent_at),
            responded_at=_dt(offer.responded_at),
            spaces=[
                SpaceAllocationAdminView(
                    space_id=a.space_id,
                    allocated_size_m2=_num(a.allocated_size_m2),
                    price_per_m2_cents=a.price_per_m2_cents,
                    is_manual_price=a.is_manual_price,
                    offer_total_cents=a.offer_total_cents,
                    comments=a.comments,
                )
                for a in offer.space_allocations
            ],
            services=_services(offer),
            terms=_terms(offer),
            summary=OfferSummaryAdminView(
                quoted_price_cents=summary.quoted_price_cents,
                calculated_price_cents=summary.calculated_price_cents,
                space_total_cents=summary.space_total_cents,
                services_total_cents=summary.services_total_cents,
                actual_offer_cents=summary.actual_offer_cents,
            ) if summary else None,
            created_at=_dt(offer.created_at),
            updated_at=_dt(offer.updated_at),
            allowed_actions=allowed_actions,
        ).model_dump()

    return OfferTraderView(
        id=offer.id,
        inquiry_id=offer.inquiry_id,
        status=offer.status,
        total_cost_cents=offer.total_cost_cents,
        actual_offer_cents=summary.actual_offer_cents if summary else None,
        valid_until=_dt(offer.valid_until),
        notes=offer.notes,
        sent_at=_dt(offer.sent_at),
        responded_at=_dt(offer.responded_at),
        spaces=[
            SpaceAllocationTraderView(
                space_id=a.space_id,
                allocated_size_m2=_num(a.allocated_size_m2),
                price_per_m2_cents=a.price_per_m2_cents,
                offer_total_cents=a.offer_total_cents,
                comments=a.comments,
            )
            for a in offer.space_allocations
        ],
        services=_services(offer),
        terms=_terms(offer),
        created_at=_dt(offer.created_at),
        updated_at=_dt(offer.updated_at),
        allowed_actions=allowed_actions,
    ).model_dump()


def serialize_inquiry(inquiry: Inquiry, actor: Actor) -> dict:
    """Serialize an inquiry with its request rows loaded."""
    allowed = _machine.get_allowed_transitions(inquiry.status, actor.role, StatusEntity.INQUIRY)
    return InquiryOut(
        id=inquiry.id,
        trader_id=inquiry.trader_id,
        status=inquiry.status,
        start_date=_dt(inquiry.start_date),
        end_date=_dt(inquiry.end_date),
        notes=inquiry.notes,
        estimated_cost_cents=inquiry.estimated_cost_cents,
        space_requests=[
            SpaceRequestOut(space_type_id=r.space_type_id, size_m2=_num(r.size_m2))
            for r in inquiry.space_requests
        ],
        service_ids=[s.service_id for s in inquiry.requested_services],
        warehouse_ids=[w.warehouse_id for w in inquiry.selected_warehouses],
        created_at=_dt(inquiry.created_at),
        updated_at=_dt(inquiry.updated_at),
        allowed_actions=[s.value for s in allowed],
    ).model_dump()


def serialize_status_event(event: StatusEvent) -> dict:
    return StatusEventOut(
        id=event.id,
        entity_type=event.entity_type,
        entity_id=event.entity_id,
        inquiry_id=event.inquiry_id,
        actor=event.actor,
        actor_id=event.actor_id,
        from_status=event.from_status,
        to_status=event.to_status,
        data=event.data,
        created_at=_dt(event.created_at),
    ).model_dump()
