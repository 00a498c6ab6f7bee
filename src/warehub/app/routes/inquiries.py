"""Inquiry API endpoints: create, edit, list, generic status moves, timeline and offers."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from warehub.app.dependencies import get_actor, get_inquiry_service, get_offer_repository
from warehub.domain.schemas import InquiryCreate, InquiryStatusChange
from warehub.services.access_guard import Actor
from warehub.services.booking_serializer import (
    serialize_inquiry,
    serialize_offer,
    serialize_status_event,
)
from warehub.services.inquiry_service import InquiryInput, InquiryService, SpaceRequestInput
from warehub.services.offer_repository import OfferRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/inquiries", tags=["inquiries"])


def _inquiry_input(body: InquiryCreate) -> InquiryInput:
    return InquiryInput(
        start_date=body.start_date,
        end_date=body.end_date,
        space_requests=[
            SpaceRequestInput(space_type_id=r.space_type_id, size_m2=r.size_m2)
            for r in body.space_requests
        ],
        service_ids=body.service_ids,
        warehouse_ids=body.warehouse_ids,
        notes=body.notes,
    )


@router.post("", status_code=201)
async def create_inquiry(
    body: InquiryCreate,
    actor: Actor = Depends(get_actor),
    service: InquiryService = Depends(get_inquiry_service),
):
    """Trader creates a draft inquiry."""
    inquiry_id = await service.create(actor, _inquiry_input(body))
    inquiry = await service.get(actor, inquiry_id)
    return serialize_inquiry(inquiry, actor)


@router.get("")
async def list_inquiries(
    actor: Actor = Depends(get_actor),
    service: InquiryService = Depends(get_inquiry_service),
    status: Optional[str] = Query(None, description="Filter by status"),
):
    """List inquiries: all for administrators, own for traders."""
    inquiries = await service.list_inquiries(actor, status)
    return [serialize_inquiry(i, actor) for i in inquiries]


@router.get("/{inquiry_id}")
async def get_inquiry(
    inquiry_id: str,
    actor: Actor = Depends(get_actor),
    service: InquiryService = Depends(get_inquiry_service),
):
    inquiry = await service.get(actor, inquiry_id)
    return serialize_inquiry(inquiry, actor)


@router.put("/{inquiry_id}")
async def update_inquiry(
    inquiry_id: str,
    body: InquiryCreate,
    actor: Actor = Depends(get_actor),
    service: InquiryService = Depends(get_inquiry_service),
):
    """Replace the inquiry's dates, requests and selections."""
    await service.update(actor, inquiry_id, _inquiry_input(body))
    inquiry = await service.get(actor, inquiry_id)
    return serialize_inquiry(inquiry, actor)


@router.post("/{inquiry_id}/status")
async def change_inquiry_status(
    inquiry_id: str,
    body: InquiryStatusChange,
    actor: Actor = Depends(get_actor),
    service: InquiryService = Depends(get_inquiry_service),
):
    """Submit, review, cancel, confirm, complete or archive an inquiry."""
    await service.transition(actor, inquiry_id, body.status)
    inquiry = await service.get(actor, inquiry_id)
    return serialize_inquiry(inquiry, actor)


@router.get("/{inquiry_id}/timeline")
async def get_inquiry_timeline(
    inquiry_id: str,
    actor: Actor = Depends(get_actor),
    service: InquiryService = Depends(get_inquiry_service),
):
    """Get the status event timeline for an inquiry and its offers."""
    events = await service.timeline(actor, inquiry_id)
    return [serialize_status_event(e) for e in events]


@router.get("/{inquiry_id}/offers")
async def list_inquiry_offers(
    inquiry_id: str,
    actor: Actor = Depends(get_actor),
    repo: OfferRepository = Depends(get_offer_repository),
):
    offers = await repo.list_offers_for_inquiry(actor, inquiry_id)
    return [serialize_offer(o, actor) for o in offers]
