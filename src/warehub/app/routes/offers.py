"""Offer lifecycle API endpoints.

Administrators draft, price and send offers; the owning trader answers them.
Every mutation goes through the OfferRepository, which validates status moves
with the StatusMachine and writes a StatusEvent audit record. Booking errors
are rendered by the handlers in ``warehub.app.http_errors``.
"""

import logging

from fastapi import APIRouter, Depends

from warehub.app.dependencies import get_actor, get_offer_repository
from warehub.domain.schemas import ActualOfferIn, OfferCreate, OfferReplace, OfferResponseIn
from warehub.services.access_guard import Actor
from warehub.services.allocation_calculator import ServiceAllocationInput, SpaceAllocationInput
from warehub.services.booking_serializer import serialize_offer
from warehub.services.offer_repository import OfferRepository, OfferTermInput

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/offers", tags=["offers"])


def _allocation_inputs(body) -> dict:
    """Convert request bodies into calculator inputs."""
    return {
        "spaces": [SpaceAllocationInput(**s.model_dump()) for s in body.spaces],
        "services": [ServiceAllocationInput(**s.model_dump()) for s in body.services],
        "terms": [OfferTermInput(**t.model_dump()) for t in body.terms],
    }


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("", status_code=201)
async def create_offer(
    body: OfferCreate,
    actor: Actor = Depends(get_actor),
    repo: OfferRepository = Depends(get_offer_repository),
):
    """Administrator drafts an offer against an inquiry."""
    offer_id = await repo.create_draft(
        actor,
        body.inquiry_id,
        total_cost_cents=body.total_cost_cents,
        valid_until=body.valid_until,
        notes=body.notes,
        **_allocation_inputs(body),
    )
    offer = await repo.get_offer_with_allocations(actor, offer_id)
    return serialize_offer(offer, actor)


# Declared before /{offer_id} routes so "expire" is not taken for an id.
@router.post("/expire")
async def expire_offers(
    actor: Actor = Depends(get_actor),
    repo: OfferRepository = Depends(get_offer_repository),
):
    """Administrator expires every sent offer whose validity window has passed."""
    expired = await repo.expire_stale_offers(actor)
    return {"expired": expired}


@router.get("/{offer_id}")
async def get_offer(
    offer_id: str,
    actor: Actor = Depends(get_actor),
    repo: OfferRepository = Depends(get_offer_repository),
):
    """Get an offer with allocations, role-filtered."""
    offer = await repo.get_offer_with_allocations(actor, offer_id)
    return serialize_offer(offer, actor)


@router.put("/{offer_id}")
async def replace_offer(
    offer_id: str,
    body: OfferReplace,
    actor: Actor = Depends(get_actor),
    repo: OfferRepository = Depends(get_offer_repository),
):
    """Administrator replaces the allocations and terms of an editable offer."""
    await repo.replace_draft(
        actor,
        offer_id,
        total_cost_cents=body.total_cost_cents,
        valid_until=body.valid_until,
        notes=body.notes,
        actual_offer_cents=body.actual_offer_cents,
        **_allocation_inputs(body),
    )
    offer = await repo.get_offer_with_allocations(actor, offer_id)
    return serialize_offer(offer, actor)


@router.post("/{offer_id}/actual")
async def set_actual_offer(
    offer_id: str,
    body: ActualOfferIn,
    actor: Actor = Depends(get_actor),
    repo: OfferRepository = Depends(get_offer_repository),
):
    """Administrator sets the headline price the trader will see."""
    await repo.set_actual_offer(actor, offer_id, body.actual_offer_cents)
    offer = await repo.get_offer_with_allocations(actor, offer_id)
    return serialize_offer(offer, actor)


@router.post("/{offer_id}/send")
async def send_offer(
    offer_id: str,
    actor: Actor = Depends(get_actor),
    repo: OfferRepository = Depends(get_offer_repository),
):
    """Administrator sends a draft offer to the trader."""
    await repo.send(actor, offer_id)
    offer = await repo.get_offer_with_allocations(actor, offer_id)
    return serialize_offer(offer, actor)


@router.post("/{offer_id}/respond")
async def respond_to_offer(
    offer_id: str,
    body: OfferResponseIn,
    actor: Actor = Depends(get_actor),
    repo: OfferRepository = Depends(get_offer_repository),
):
    """Trader accepts, rejects or requests changes on a sent offer."""
    await repo.respond(actor, offer_id, body.action)
    offer = await repo.get_offer_with_allocations(actor, offer_id)
    return serialize_offer(offer, actor)
