"""Inquiry lifecycle: creation, editing and the status moves the offer workflow does not own."""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from warehub.domain.enums import BookingStatus, StatusEntity
from warehub.domain.models import (
    Inquiry,
    InquiryService as InquiryServiceRow,
    InquirySpaceRequest,
    InquiryWarehouse,
    StatusEvent,
)
from warehub.services.access_guard import AccessGuard, Actor
from warehub.services.allocation_calculator import (
    SpaceRequest,
    duration_days,
    estimate_inquiry_cost,
    to_amount,
)
from warehub.services.catalog import CatalogLookup
from warehub.services.errors import InvalidState, NotFoundError, ReferentialError, ValidationError
from warehub.services.notifier import Notifier, PendingNotification
from warehub.services.offer_repository import OfferRepository
from warehub.services.status_events import list_status_events, record_status_change
from warehub.services.status_machine import StatusMachine, coerce_status
from warehub.services.transaction import run_with_retry

logger = logging.getLogger(__name__)

# Targets reachable through the generic status endpoint. Offer-driven moves
# (offer_draft, offer_sent, accepted, ...) go through the OfferRepository.
GENERIC_TARGETS: set[BookingStatus] = {
    BookingStatus.SUBMITTED,
    BookingStatus.UNDER_REVIEW,
    BookingStatus.CANCELLED,
    BookingStatus.CONFIRMED,
    BookingStatus.COMPLETED,
    BookingStatus.ARCHIVED,
}


@dataclass(frozen=True)
class SpaceRequestInput:
    space_type_id: str
    size_m2: object


@dataclass(frozen=True)
class InquiryInput:
    start_date: datetime
    end_date: datetime
    space_requests: Sequence[SpaceRequestInput]
    service_ids: Sequence[str] = ()
    warehouse_ids: Sequence[str] = ()
    notes: Optional[str] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InquiryService:
    def __init__(
        self,
        db: AsyncSession,
        guard: AccessGuard,
        notifier: Optional[Notifier] = None,
        machine: Optional[StatusMachine] = None,
        catalog: Optional[CatalogLookup] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.db = db
        self.guard = guard
        self.notifier = notifier
        self.machine = machine or StatusMachine()
        self.catalog = catalog or CatalogLookup(db)
        self.clock = clock or _utcnow

    async def create(self, actor: Actor, data: InquiryInput) -> str:
        """Create a draft inquiry for the calling trader."""
        await self.guard.require_trader(actor)

        async def operation():
            requests = await self._validate(data)
            now = self.clock()
            inquiry = Inquiry(
                id=str(uuid.uuid4()),
                trader_id=actor.user_id,
                start_date=data.start_date,
                end_date=data.end_date,
                notes=data.notes,
                status=BookingStatus.DRAFT.value,
                created_at=now,
                updated_at=now,
            )
            self.db.add(inquiry)
            inquiry.estimated_cost_cents = await self._estimate(requests, data)
            self._add_request_rows(inquiry.id, requests, data)
            record_status_change(
                self.db, StatusEntity.INQUIRY, inquiry.id, inquiry.id,
                None, BookingStatus.DRAFT, actor.role, actor.user_id,
            )
            await self.db.flush()
            return inquiry.id, []

        return await run_with_retry(self.db, self.notifier, "create_inquiry", operation)

    async def update(self, actor: Actor, inquiry_id: str, data: InquiryInput) -> bool:
        """Replace the inquiry's dates, notes and request rows, and refresh the estimate.

        Traders edit their own inquiry while it is a draft; administrators edit
        it while it is under review.
        """
        await self.guard.require_inquiry_access(actor, inquiry_id)

        async def operation():
            inquiry = await self._load(inquiry_id, for_update=True)
            status = coerce_status(inquiry.status)
            editable = BookingStatus.UNDER_REVIEW if actor.is_administrator else BookingStatus.DRAFT
            if status != editable:
                raise InvalidState(
                    f"Inquiry {inquiry.id} is {status.value}; "
                    f"{actor.role.value} can only edit it while {editable.value}"
                )
            requests = await self._validate(data)

            for model in (InquirySpaceRequest, InquiryServiceRow, InquiryWarehouse):
                await self.db.execute(delete(model).where(model.inquiry_id == inquiry.id))
            self._add_request_rows(inquiry.id, requests, data)

            inquiry.start_date = data.start_date
            inquiry.end_date = data.end_date
            inquiry.notes = data.notes
            inquiry.estimated_cost_cents = await self._estimate(requests, data)
            inquiry.updated_at = self.clock()
            await self.db.flush()
            return True, []

        return await run_with_retry(self.db, self.notifier, f"update_inquiry({inquiry_id})", operation)

    async def transition(self, actor: Actor, inquiry_id, target) -> BookingStatus:
        """Move an inquiry along the generic part of its lifecycle.

        Cancelling also cancels the inquiry's offers that are still being drafted.
        """
        if actor.is_administrator:
            await self.guard.require_administrator(actor)
        else:
            await self.guard.require_inquiry_owner(actor, inquiry_id)

        try:
            target = BookingStatus(target)
        except ValueError:
            raise ValidationError("status", target, "is not a known booking status")
        if target not in GENERIC_TARGETS:
            raise InvalidState(f"Status {target.value} is reached through the offer workflow")

        async def operation():
            inquiry = await self._load(inquiry_id, for_update=True)
            current = coerce_status(inquiry.status)
            effects = self.machine.validate_transition(current, target, actor.role, StatusEntity.INQUIRY)
            if not effects.changed:
                return target, []

            now = self.clock()
            inquiry.status = target.value
            inquiry.updated_at = now
            record_status_change(
                self.db, StatusEntity.INQUIRY, inquiry.id, inquiry.id,
                current, target, actor.role, actor.user_id,
            )

            if target == BookingStatus.CANCELLED:
                offers = OfferRepository(self.db, self.guard, self.notifier, self.machine, self.clock)
                await offers.cancel_open_offers(inquiry.id, actor, now)

            await self.db.flush()
            pending = [PendingNotification(inquiry.id, inquiry.trader_id, target, actor.user_id)]
            return target, pending

        return await run_with_retry(
            self.db, self.notifier, f"transition_inquiry({inquiry_id}, {target.value})", operation
        )

    async def get(self, actor: Actor, inquiry_id: str) -> Inquiry:
        await self.guard.require_inquiry_access(actor, inquiry_id)
        return await self._load(inquiry_id)

    async def list_inquiries(self, actor: Actor, status: Optional[str] = None) -> list[Inquiry]:
        """Administrators see every inquiry, traders their own."""
        query = select(Inquiry).options(*self._load_options())
        if actor.is_administrator:
            await self.guard.require_administrator(actor)
        else:
            query = query.where(Inquiry.trader_id == actor.user_id)
        if status:
            try:
                status = BookingStatus(status)
            except ValueError:
                raise ValidationError("status", status, "is not a known booking status")
            query = query.where(Inquiry.status == status.value)
        query = query.order_by(Inquiry.created_at.desc())
        result = await self.db.execute(query.execution_options(populate_existing=True))
        return list(result.scalars().all())

    async def timeline(self, actor: Actor, inquiry_id: str) -> list[StatusEvent]:
        """Status events of the inquiry and its offers, oldest first."""
        await self.guard.require_inquiry_access(actor, inquiry_id)
        await self._load(inquiry_id)
        events = await list_status_events(self.db, inquiry_id)
        if actor.is_administrator:
            return events
        # Traders do not see offers while an administrator is drafting them
        return [
            e for e in events
            if not (e.entity_type == StatusEntity.OFFER.value and e.to_status == BookingStatus.DRAFT.value)
        ]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _load_options():
        return (
            selectinload(Inquiry.space_requests),
            selectinload(Inquiry.requested_services),
            selectinload(Inquiry.selected_warehouses),
        )

    async def _load(self, inquiry_id: str, for_update: bool = False) -> Inquiry:
        query = (
            select(Inquiry)
            .where(Inquiry.id == inquiry_id)
            .options(*self._load_options())
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        inquiry = result.scalar_one_or_none()
        if inquiry is None:
            raise NotFoundError(f"Inquiry {inquiry_id} not found")
        return inquiry

    async def _validate(self, data: InquiryInput) -> list[SpaceRequest]:
        duration_days(data.start_date, data.end_date)
        if not data.space_requests:
            raise ValidationError("space_requests", [], "at least one space request is required")

        requests = []
        for i, item in enumerate(data.space_requests):
            if not item.space_type_id:
                raise ValidationError(f"space_requests[{i}].space_type_id", item.space_type_id, "is required")
            size = to_amount(f"space_requests[{i}].size_m2", item.size_m2)
            if size <= 0:
                raise ValidationError(f"space_requests[{i}].size_m2", item.size_m2, "must be positive")
            requests.append(SpaceRequest(space_type_id=item.space_type_id, size_m2=size))

        missing = await self.catalog.missing_space_types(r.space_type_id for r in requests)
        if missing:
            raise ReferentialError("space_type", min(missing), "does not exist")
        missing = await self.catalog.missing_warehouses(data.warehouse_ids)
        if missing:
            raise ReferentialError("warehouse", min(missing), "does not exist")
        missing = await self.catalog.missing_services(data.service_ids)
        if missing:
            raise ReferentialError("service", min(missing), "does not exist")
        return requests

    async def _estimate(self, requests: list[SpaceRequest], data: InquiryInput) -> int:
        candidates = await self.catalog.candidate_spaces(
            {r.space_type_id for r in requests}, data.warehouse_ids
        )
        return estimate_inquiry_cost(requests, candidates, data.start_date, data.end_date)

    def _add_request_rows(self, inquiry_id: str, requests: list[SpaceRequest], data: InquiryInput) -> None:
        for position, request in enumerate(requests):
            self.db.add(
                InquirySpaceRequest(
                    inquiry_id=inquiry_id,
                    space_type_id=request.space_type_id,
                    size_m2=Decimal(request.size_m2),
                    position=position,
                )
            )
        for service_id in dict.fromkeys(data.service_ids):
            self.db.add(InquiryServiceRow(inquiry_id=inquiry_id, service_id=service_id))
        for warehouse_id in dict.fromkeys(data.warehouse_ids):
            self.db.add(InquiryWarehouse(inquiry_id=inquiry_id, warehouse_id=warehouse_id))

