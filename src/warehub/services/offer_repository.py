"""Offer Repository: the only writer of offers, allocations, terms, summaries and bookings.

Every public operation:
1. authorizes the actor through the AccessGuard before touching anything,
2. reads the offer header ``FOR UPDATE`` and validates status moves with the
   StatusMachine before writing,
3. writes header, child rows and summary in one transaction and commits once,
4. dispatches notifications only after the commit succeeded.

A concurrent writer on the same offer bumps its ``version`` column and makes
our flush raise StaleDataError; the whole operation is then retried once with
fresh reads before surfacing ConflictError.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from warehub.domain.enums import (
    ActorRole,
    BookingRecordStatus,
    BookingStatus,
    OfferAction,
    StatusEntity,
)
from warehub.domain.models import (
    Booking,
    Inquiry,
    Offer,
    OfferServiceAllocation,
    OfferSpaceAllocation,
    OfferSummary,
    OfferTerm,
)
from warehub.services.access_guard import AccessGuard, Actor
from warehub.services.allocation_calculator import (
    AllocationResult,
    ServiceAllocationInput,
    SpaceAllocationInput,
    calculate_allocations,
    missing_price_field,
    to_cents,
)
from warehub.services.catalog import CatalogLookup
from warehub.services.errors import (
    InvalidState,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from warehub.services.notifier import Notifier, PendingNotification
from warehub.services.status_events import record_status_change
from warehub.services.status_machine import (
    DEFAULT_OFFER_VALIDITY_DAYS,
    NO_OP,
    OPEN_OFFER_STATES,
    StatusMachine,
    TransitionEffects,
    coerce_status,
)
from warehub.services.transaction import run_with_retry

logger = logging.getLogger(__name__)

RESPONSE_TARGETS: dict[OfferAction, BookingStatus] = {
    OfferAction.ACCEPT: BookingStatus.ACCEPTED,
    OfferAction.REJECT: BookingStatus.REJECTED,
    OfferAction.REQUEST_CHANGES: BookingStatus.CHANGES_REQUESTED,
}


@dataclass(frozen=True)
class OfferTermInput:
    term_type: str
    description: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _validate_terms(terms: Sequence[OfferTermInput]) -> list[OfferTermInput]:
    for i, term in enumerate(terms):
        if not term.term_type or not term.term_type.strip():
            raise ValidationError(f"terms[{i}].term_type", term.term_type, "is required")
        if not term.description or not term.description.strip():
            raise ValidationError(f"terms[{i}].description", term.description, "is required")
    return list(terms)


class OfferRepository:
    def __init__(
        self,
        db: AsyncSession,
        guard: AccessGuard,
        notifier: Notifier,
        machine: Optional[StatusMachine] = None,
        clock: Optional[Callable[[], datetime]] = None,
        offer_validity_days: int = DEFAULT_OFFER_VALIDITY_DAYS,
        catalog: Optional[CatalogLookup] = None,
    ):
        self.db = db
        self.guard = guard
        self.notifier = notifier
        self.machine = machine or StatusMachine()
        self.clock = clock or _utcnow
        self.offer_validity_days = offer_validity_days
        self.catalog = catalog or CatalogLookup(db)

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    async def create_draft(
        self,
        actor: Actor,
        inquiry_id: str,
        total_cost_cents: Optional[int] = None,
        valid_until: Optional[datetime] = None,
        notes: Optional[str] = None,
        spaces: Sequence[SpaceAllocationInput] = (),
        services: Sequence[ServiceAllocationInput] = (),
        terms: Sequence[OfferTermInput] = (),
    ) -> str:
        """Create a draft offer with its allocations, terms and a fresh summary.

        Moves the inquiry to ``offer_draft``. The summary's actual offer figure
        starts out empty and must be set before the offer can be sent.
        """
        await self.guard.require_administrator(actor)

        async def operation():
            inquiry = await self._load_inquiry(inquiry_id, for_update=True)
            inquiry_from = coerce_status(inquiry.status)
            inquiry_effects = self.machine.validate_transition(
                inquiry_from, BookingStatus.OFFER_DRAFT, actor.role, StatusEntity.INQUIRY
            )

            result = await self._calculate(inquiry, spaces, services)
            terms_checked = _validate_terms(terms)
            total = to_cents("total_cost_cents", total_cost_cents, required=False)

            now = self.clock()
            offer = Offer(
                id=str(uuid.uuid4()),
                inquiry_id=inquiry.id,
                admin_id=actor.user_id,
                total_cost_cents=total if total is not None else result.calculated_total_cents,
                valid_until=_aware(valid_until),
                notes=notes,
                status=BookingStatus.DRAFT.value,
                created_at=now,
                updated_at=now,
            )
            self.db.add(offer)
            self._add_lines(offer.id, result, terms_checked)
            self.db.add(
                OfferSummary(
                    offer_id=offer.id,
                    quoted_price_cents=inquiry.estimated_cost_cents or 0,
                    calculated_price_cents=result.calculated_total_cents,
                    space_total_cents=result.space_total_cents,
                    services_total_cents=result.services_total_cents,
                    actual_offer_cents=None,
                )
            )

            record_status_change(
                self.db, StatusEntity.OFFER, offer.id, inquiry.id,
                None, BookingStatus.DRAFT, actor.role, actor.user_id,
            )
            self._apply(
                inquiry, StatusEntity.INQUIRY, inquiry_from, BookingStatus.OFFER_DRAFT,
                inquiry_effects, actor, inquiry.id, {"offer_id": offer.id},
            )
            await self.db.flush()
            return offer.id, []

        return await self._run(f"create_draft({inquiry_id})", operation)

    async def replace_draft(
        self,
        actor: Actor,
        offer_id: str,
        total_cost_cents: Optional[int] = None,
        valid_until: Optional[datetime] = None,
        notes: Optional[str] = None,
        spaces: Sequence[SpaceAllocationInput] = (),
        services: Sequence[ServiceAllocationInput] = (),
        terms: Sequence[OfferTermInput] = (),
        actual_offer_cents: Optional[int] = None,
    ) -> bool:
        """Replace every allocation and term row of an editable offer.

        Child rows are deleted and re-inserted and the summary is overwritten in
        the same transaction. The quoted price is kept; calculated totals are
        recomputed and the actual offer figure is set to ``actual_offer_cents``
        (cleared when omitted). An offer in ``changes_requested`` is re-drafted, and
        an inquiry waiting on requested changes goes back to ``offer_draft``.
        """
        await self.guard.require_administrator(actor)

        async def operation():
            offer = await self._load_offer(offer_id, for_update=True)
            offer_from = coerce_status(offer.status)
            if offer_from not in OPEN_OFFER_STATES:
                raise InvalidState(
                    f"Offer {offer.id} is {offer_from.value}; only draft or "
                    f"changes_requested offers can be edited"
                )
            inquiry = offer.inquiry
            inquiry_from = coerce_status(inquiry.status)

            offer_effects = self.machine.validate_transition(
                offer_from, BookingStatus.DRAFT, actor.role, StatusEntity.OFFER
            )
            inquiry_effects = NO_OP
            if inquiry_from == BookingStatus.CHANGES_REQUESTED:
                inquiry_effects = self.machine.validate_transition(
                    inquiry_from, BookingStatus.OFFER_DRAFT, actor.role, StatusEntity.INQUIRY
                )

            result = await self._calculate(inquiry, spaces, services)
            terms_checked = _validate_terms(terms)
            total = to_cents("total_cost_cents", total_cost_cents, required=False)
            actual = to_cents("actual_offer_cents", actual_offer_cents, required=False)

            await self.db.execute(
                delete(OfferSpaceAllocation).where(OfferSpaceAllocation.offer_id == offer.id)
            )
            await self.db.execute(
                delete(OfferServiceAllocation).where(OfferServiceAllocation.offer_id == offer.id)
            )
            await self.db.execute(delete(OfferTerm).where(OfferTerm.offer_id == offer.id))
            self._add_lines(offer.id, result, terms_checked)

            summary = offer.summary
            if summary is None:
                summary = OfferSummary(
                    offer_id=offer.id, quoted_price_cents=inquiry.estimated_cost_cents or 0
                )
                self.db.add(summary)
            summary.calculated_price_cents = result.calculated_total_cents
            summary.space_total_cents = result.space_total_cents
            summary.services_total_cents = result.services_total_cents
            summary.actual_offer_cents = actual

            if total is not None:
                offer.total_cost_cents = total
            elif actual is not None:
                offer.total_cost_cents = actual
            else:
                offer.total_cost_cents = result.calculated_total_cents
            offer.valid_until = _aware(valid_until)
            offer.notes = notes
            offer.updated_at = self.clock()

            self._apply(
                offer, StatusEntity.OFFER, offer_from, BookingStatus.DRAFT,
                offer_effects, actor, inquiry.id,
            )
            self._apply(
                inquiry, StatusEntity.INQUIRY, inquiry_from, BookingStatus.OFFER_DRAFT,
                inquiry_effects, actor, inquiry.id, {"offer_id": offer.id},
            )
            await self.db.flush()
            return True, []

        return await self._run(f"replace_draft({offer_id})", operation)

    async def set_actual_offer(self, actor: Actor, offer_id: str, actual_offer_cents: int) -> bool:
        """Record the headline price the trader will see."""
        await self.guard.require_administrator(actor)

        async def operation():
            offer = await self._load_offer(offer_id, for_update=True)
            status = coerce_status(offer.status)
            if status != BookingStatus.DRAFT:
                raise InvalidState(
                    f"Offer {offer.id} is {status.value}; the actual offer can only be set on a draft"
                )
            actual = to_cents("actual_offer_cents", actual_offer_cents)

            summary = offer.summary
            if summary is None:
                summary = OfferSummary(
                    offer_id=offer.id,
                    quoted_price_cents=offer.inquiry.estimated_cost_cents or 0,
                )
                self.db.add(summary)
            summary.actual_offer_cents = actual
            offer.total_cost_cents = actual
            offer.updated_at = self.clock()
            await self.db.flush()
            return True, []

        return await self._run(f"set_actual_offer({offer_id})", operation)

    async def send(self, actor: Actor, offer_id: str) -> bool:
        """Send a draft offer to the trader.

        Checks, in order: actual offer set, at least one space line with a
        positive size, allocated size covers the requested size, and every
        priced service line carries its price. Then offer and inquiry move to
        ``offer_sent`` and the offer becomes valid for ``offer_validity_days``.
        Only one offer per inquiry can be out with the trader at a time.
        """
        await self.guard.require_administrator(actor)

        async def operation():
            offer = await self._load_offer(offer_id, for_update=True)
            offer_from = coerce_status(offer.status)
            if offer_from != BookingStatus.DRAFT:
                raise InvalidState(
                    f"Offer {offer.id} is {offer_from.value}; only draft offers can be sent"
                )
            inquiry = offer.inquiry
            inquiry_from = coerce_status(inquiry.status)
            if inquiry_from != BookingStatus.OFFER_DRAFT:
                raise InvalidState(
                    f"Inquiry {inquiry.id} is {inquiry_from.value}; offers can only be sent "
                    f"while it is offer_draft"
                )
            await self._check_no_live_sibling(offer)

            offer_effects = self.machine.validate_transition(
                offer_from, BookingStatus.OFFER_SENT, actor.role, StatusEntity.OFFER
            )
            self._check_sendable(offer, inquiry, offer_effects)
            inquiry_effects = self.machine.validate_transition(
                inquiry_from, BookingStatus.OFFER_SENT, actor.role, StatusEntity.INQUIRY
            )

            now = self.clock()
            self._apply(
                offer, StatusEntity.OFFER, offer_from, BookingStatus.OFFER_SENT,
                offer_effects, actor, inquiry.id,
            )
            self._apply(
                inquiry, StatusEntity.INQUIRY, inquiry_from, BookingStatus.OFFER_SENT,
                inquiry_effects, actor, inquiry.id, {"offer_id": offer.id},
            )
            if offer_effects.stamp_valid_until:
                offer.valid_until = now + timedelta(days=self.offer_validity_days)
            offer.sent_at = now
            offer.updated_at = now
            await self.db.flush()

            pending = [
                PendingNotification(inquiry.id, inquiry.trader_id, BookingStatus.OFFER_SENT, actor.user_id)
            ]
            return True, pending

        return await self._run(f"send({offer_id})", operation)

    async def respond(self, actor: Actor, offer_id: str, action) -> bool:
        """Trader accepts, rejects or asks for changes on a sent offer."""
        await self.guard.require_offer_owner(actor, offer_id)
        try:
            action = OfferAction(action)
        except ValueError:
            allowed = ", ".join(a.value for a in OfferAction)
            raise ValidationError("action", action, f"must be one of {allowed}")
        target = RESPONSE_TARGETS[action]

        async def operation():
            offer = await self._load_offer(offer_id, for_update=True)
            offer_from = coerce_status(offer.status)
            if offer_from != BookingStatus.OFFER_SENT:
                raise InvalidState(
                    f"Offer {offer.id} is {offer_from.value}; only sent offers can be answered"
                )
            now = self.clock()
            if self.machine.is_offer_expired(offer.valid_until, now):
                raise InvalidState(f"Offer {offer.id} expired at {_aware(offer.valid_until).isoformat()}")

            inquiry = offer.inquiry
            inquiry_from = coerce_status(inquiry.status)
            if inquiry_from != BookingStatus.OFFER_SENT:
                raise InvalidState(
                    f"Inquiry {inquiry.id} is {inquiry_from.value}; offers can only be answered "
                    f"while it is offer_sent"
                )
            offer_effects = self.machine.validate_transition(
                offer_from, target, actor.role, StatusEntity.OFFER
            )
            inquiry_effects = self.machine.validate_transition(
                inquiry_from, target, actor.role, StatusEntity.INQUIRY
            )

            self._apply(
                offer, StatusEntity.OFFER, offer_from, target, offer_effects, actor, inquiry.id,
                {"action": action.value},
            )
            self._apply(
                inquiry, StatusEntity.INQUIRY, inquiry_from, target, inquiry_effects, actor,
                inquiry.id, {"offer_id": offer.id, "action": action.value},
            )
            offer.responded_at = now
            offer.updated_at = now

            if offer_effects.creates_booking:
                actual = offer.summary.actual_offer_cents if offer.summary else None
                booking = Booking(
                    id=str(uuid.uuid4()),
                    inquiry_id=inquiry.id,
                    offer_id=offer.id,
                    status=BookingRecordStatus.CONFIRMED.value,
                    total_cost_cents=actual if actual is not None else offer.total_cost_cents,
                    created_at=now,
                    updated_at=now,
                )
                self.db.add(booking)
                logger.info("Booking %s created from offer %s", booking.id, offer.id)
                # Drafts still open on the inquiry can no longer be sent
                await self.cancel_open_offers(
                    inquiry.id,
                    Actor(user_id=None, role=ActorRole.SYSTEM),
                    now,
                    exclude_offer_id=offer.id,
                    extra_data={
                        "reason": "other_offer_accepted",
                        "accepted_offer_id": offer.id,
                        "triggered_by": actor.user_id,
                    },
                )

            await self.db.flush()
            return True, [PendingNotification(inquiry.id, inquiry.trader_id, target, actor.user_id)]

        return await self._run(f"respond({offer_id}, {action.value})", operation)

    async def expire_stale_offers(self, actor: Actor) -> int:
        """Expire every sent offer whose validity window has passed.

        Runs the transitions as the system actor on behalf of the calling
        administrator. Returns the number of offers expired.
        """
        await self.guard.require_administrator(actor)

        async def operation():
            now = self.clock()
            result = await self.db.execute(
                select(Offer)
                .where(Offer.status == BookingStatus.OFFER_SENT.value)
                .options(selectinload(Offer.inquiry))
                .execution_options(populate_existing=True)
                .with_for_update()
            )
            stale = [o for o in result.scalars().all() if self.machine.is_offer_expired(o.valid_until, now)]

            pending = []
            for offer in stale:
                inquiry = offer.inquiry
                offer_effects = self.machine.validate_transition(
                    BookingStatus.OFFER_SENT, BookingStatus.EXPIRED, ActorRole.SYSTEM, StatusEntity.OFFER
                )
                system = Actor(user_id=None, role=ActorRole.SYSTEM)
                extra = {"triggered_by": actor.user_id, "valid_until": _aware(offer.valid_until).isoformat()}
                self._apply(
                    offer, StatusEntity.OFFER, BookingStatus.OFFER_SENT, BookingStatus.EXPIRED,
                    offer_effects, system, inquiry.id, extra,
                )
                if offer_effects.clear_valid_until:
                    offer.valid_until = None
                offer.updated_at = now

                inquiry_from = coerce_status(inquiry.status)
                if BookingStatus.EXPIRED in self.machine.get_allowed_transitions(
                    inquiry_from, ActorRole.SYSTEM, StatusEntity.INQUIRY
                ):
                    inquiry_effects = self.machine.validate_transition(
                        inquiry_from, BookingStatus.EXPIRED, ActorRole.SYSTEM, StatusEntity.INQUIRY
                    )
                    self._apply(
                        inquiry, StatusEntity.INQUIRY, inquiry_from, BookingStatus.EXPIRED,
                        inquiry_effects, system, inquiry.id, {"offer_id": offer.id, **extra},
                    )
                pending.append(PendingNotification(inquiry.id, inquiry.trader_id, BookingStatus.EXPIRED))

            await self.db.flush()
            return len(stale), pending

        expired = await self._run("expire_stale_offers", operation)
        if expired:
            logger.info("Expired %d stale offer(s)", expired)
        return expired

    async def cancel_open_offers(
        self,
        inquiry_id: str,
        actor: Actor,
        now: datetime,
        exclude_offer_id: Optional[str] = None,
        extra_data: Optional[dict] = None,
    ) -> int:
        """Cancel the inquiry's offers that are still being drafted.

        Runs inside the caller's transaction (the inquiry being cancelled, or
        a sibling offer being accepted): no authorization, no commit.
        """
        query = (
            select(Offer)
            .where(
                Offer.inquiry_id == inquiry_id,
                Offer.status.in_([s.value for s in OPEN_OFFER_STATES]),
            )
            .execution_options(populate_existing=True)
            .with_for_update()
        )
        if exclude_offer_id is not None:
            query = query.where(Offer.id != exclude_offer_id)
        offers = (await self.db.execute(query)).scalars().all()
        data = extra_data or {"reason": "inquiry_cancelled"}
        for offer in offers:
            current = coerce_status(offer.status)
            effects = self.machine.validate_transition(
                current, BookingStatus.CANCELLED, actor.role, StatusEntity.OFFER
            )
            self._apply(
                offer, StatusEntity.OFFER, current, BookingStatus.CANCELLED,
                effects, actor, inquiry_id, data,
            )
            offer.updated_at = now
        return len(offers)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_offer_with_allocations(self, actor: Actor, offer_id: str) -> Offer:
        """Offer header with allocations, terms and summary loaded.

        Traders only ever see offers that were sent to them.
        """
        await self.guard.require_offer_access(actor, offer_id)
        offer = await self._load_offer(offer_id)
        if not actor.is_administrator and coerce_status(offer.status) == BookingStatus.DRAFT:
            raise PermissionDenied("Offer is not available")
        return offer

    async def list_offers_for_inquiry(self, actor: Actor, inquiry_id: str) -> list[Offer]:
        await self.guard.require_inquiry_access(actor, inquiry_id)
        exists = await self.db.execute(select(Inquiry.id).where(Inquiry.id == inquiry_id))
        if exists.scalar_one_or_none() is None:
            raise NotFoundError(f"Inquiry {inquiry_id} not found")

        query = (
            select(Offer)
            .where(Offer.inquiry_id == inquiry_id)
            .options(*self._offer_load_options())
            .execution_options(populate_existing=True)
            .order_by(Offer.created_at.asc())
        )
        if not actor.is_administrator:
            query = query.where(Offer.status != BookingStatus.DRAFT.value)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _run(self, label: str, operation):
        return await run_with_retry(self.db, self.notifier, label, operation)

    @staticmethod
    def _offer_load_options():
        return (
            selectinload(Offer.space_allocations),
            selectinload(Offer.service_allocations),
            selectinload(Offer.terms),
            selectinload(Offer.summary),
            selectinload(Offer.inquiry).selectinload(Inquiry.space_requests),
            selectinload(Offer.inquiry).selectinload(Inquiry.selected_warehouses),
        )

    async def _load_offer(self, offer_id: str, for_update: bool = False) -> Offer:
        query = (
            select(Offer)
            .where(Offer.id == offer_id)
            .options(*self._offer_load_options())
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        offer = result.scalar_one_or_none()
        if offer is None:
            raise NotFoundError(f"Offer {offer_id} not found")
        return offer

    async def _load_inquiry(self, inquiry_id: str, for_update: bool = False) -> Inquiry:
        query = (
            select(Inquiry)
            .where(Inquiry.id == inquiry_id)
            .options(
                selectinload(Inquiry.space_requests),
                selectinload(Inquiry.selected_warehouses),
            )
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        inquiry = result.scalar_one_or_none()
        if inquiry is None:
            raise NotFoundError(f"Inquiry {inquiry_id} not found")
        return inquiry

    async def _calculate(
        self,
        inquiry: Inquiry,
        spaces: Sequence[SpaceAllocationInput],
        services: Sequence[ServiceAllocationInput],
    ) -> AllocationResult:
        context = await self.catalog.pricing_context(
            inquiry, [s.space_id for s in spaces], [s.service_id for s in services]
        )
        return calculate_allocations(spaces, services, context)

    def _add_lines(self, offer_id: str, result: AllocationResult, terms: Sequence[OfferTermInput]) -> None:
        for line in result.space_lines:
            self.db.add(
                OfferSpaceAllocation(
                    offer_id=offer_id,
                    space_id=line.space_id,
                    allocated_size_m2=line.allocated_size_m2,
                    price_per_m2_cents=line.price_per_m2_cents,
                    is_manual_price=line.is_manual_price,
                    offer_total_cents=line.offer_total_cents,
                    comments=line.comments,
                    position=line.position,
                )
            )
        for line in result.service_lines:
            self.db.add(
                OfferServiceAllocation(
                    offer_id=offer_id,
                    service_id=line.service_id,
                    pricing_type=line.pricing_type.value,
                    quantity=line.quantity,
                    price_per_hour_cents=line.price_per_hour_cents,
                    price_per_unit_cents=line.price_per_unit_cents,
                    unit_type=line.unit_type,
                    fixed_price_cents=line.fixed_price_cents,
                    offer_total_cents=line.offer_total_cents,
                    comments=line.comments,
                    position=line.position,
                )
            )
        for position, term in enumerate(terms):
            self.db.add(
                OfferTerm(
                    offer_id=offer_id,
                    term_type=term.term_type.strip(),
                    description=term.description.strip(),
                    position=position,
                )
            )

    async def _check_no_live_sibling(self, offer: Offer) -> None:
        result = await self.db.execute(
            select(Offer.id, Offer.status).where(
                Offer.inquiry_id == offer.inquiry_id,
                Offer.id != offer.id,
                Offer.status.in_([BookingStatus.OFFER_SENT.value, BookingStatus.ACCEPTED.value]),
            )
        )
        live = result.first()
        if live is not None:
            raise InvalidState(
                f"Inquiry {offer.inquiry_id} already has offer {live.id} in {live.status}"
            )

    def _check_sendable(self, offer: Offer, inquiry: Inquiry, effects: TransitionEffects) -> None:
        summary = offer.summary
        if effects.requires_actual_offer and (summary is None or summary.actual_offer_cents is None):
            raise ValidationError("actual_offer_cents", None, "must be set before the offer is sent")

        positive = [a for a in offer.space_allocations if Decimal(a.allocated_size_m2) > 0]
        if not positive:
            raise ValidationError(
                "spaces", len(offer.space_allocations),
                "at least one space allocation with a positive size is required",
            )

        allocated = sum((Decimal(a.allocated_size_m2) for a in offer.space_allocations), Decimal("0"))
        requested = sum((Decimal(r.size_m2) for r in inquiry.space_requests), Decimal("0"))
        if allocated < requested:
            raise ValidationError(
                "allocated_size_m2", allocated, f"total allocated size is below the requested {requested} m2"
            )

        for line in offer.service_allocations:
            missing = missing_price_field(line)
            if missing:
                raise ValidationError(
                    f"services[{line.position}].{missing}", None, "is required before the offer is sent"
                )

    def _apply(
        self,
        record,
        entity: StatusEntity,
        from_status: BookingStatus,
        to_status: BookingStatus,
        effects: TransitionEffects,
        actor: Actor,
        inquiry_id: str,
        extra_data: dict | None = None,
    ) -> None:
        """Write a validated status move plus its audit event. No-ops write nothing."""
        if not effects.changed:
            return
        record.status = to_status.value
        record_status_change(
            self.db, entity, record.id, inquiry_id, from_status, to_status,
            actor.role, actor.user_id, extra_data,
        )
