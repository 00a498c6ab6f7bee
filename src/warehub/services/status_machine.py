"""Booking status machine: validates transitions and reports their side effects.

The machine is pure: it decides whether a move is legal for an actor and which
status-triggered effects apply. Callers perform the writes.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

from warehub.domain.enums import ActorRole, BookingStatus, StatusEntity
from warehub.services.errors import BookingError


class InvalidTransitionError(BookingError):
    """Raised when a status transition is not allowed."""

    status_code = 409
    code = "invalid_transition"

    def __init__(
        self,
        current_status: BookingStatus,
        target_status: BookingStatus,
        reason: str,
    ):
        self.current_status = current_status
        self.target_status = target_status
        self.reason = reason
        super().__init__(
            f"Invalid transition from {current_status.value} to {target_status.value}: {reason}"
        )


# ---------------------------------------------------------------------------
# Transition maps: from_status -> {to_status: set_of_allowed_actors}
# ---------------------------------------------------------------------------

S = BookingStatus
A = ActorRole

INQUIRY_TRANSITION_MAP: dict[BookingStatus, dict[BookingStatus, set[ActorRole]]] = {
    S.DRAFT: {
        S.SUBMITTED: {A.TRADER},
        S.CANCELLED: {A.TRADER},
    },
    S.SUBMITTED: {
        S.UNDER_REVIEW: {A.ADMINISTRATOR},
        S.CANCELLED: {A.ADMINISTRATOR},
    },
    S.UNDER_REVIEW: {
        S.OFFER_DRAFT: {A.ADMINISTRATOR},
        S.CANCELLED: {A.ADMINISTRATOR},
    },
    S.OFFER_DRAFT: {
        S.OFFER_SENT: {A.ADMINISTRATOR},
        S.CANCELLED: {A.ADMINISTRATOR},
    },
    S.OFFER_SENT: {
        S.ACCEPTED: {A.TRADER},
        S.REJECTED: {A.TRADER},
        S.CHANGES_REQUESTED: {A.TRADER},
        S.EXPIRED: {A.SYSTEM},
    },
    S.CHANGES_REQUESTED: {
        S.OFFER_DRAFT: {A.ADMINISTRATOR},
        S.CANCELLED: {A.ADMINISTRATOR},
    },
    S.ACCEPTED: {
        S.CONFIRMED: {A.ADMINISTRATOR},
        S.CANCELLED: {A.ADMINISTRATOR},
    },
    S.CONFIRMED: {
        S.COMPLETED: {A.ADMINISTRATOR},
        S.CANCELLED: {A.ADMINISTRATOR},
    },
    S.COMPLETED: {
        S.ARCHIVED: {A.ADMINISTRATOR},
    },
}

# An offer header follows the inquiry through the offer phase only.
OFFER_TRANSITION_MAP: dict[BookingStatus, dict[BookingStatus, set[ActorRole]]] = {
    S.DRAFT: {
        S.OFFER_SENT: {A.ADMINISTRATOR},
        S.CANCELLED: {A.ADMINISTRATOR, A.SYSTEM},
    },
    S.OFFER_SENT: {
        S.ACCEPTED: {A.TRADER},
        S.REJECTED: {A.TRADER},
        S.CHANGES_REQUESTED: {A.TRADER},
        S.EXPIRED: {A.SYSTEM},
    },
    S.CHANGES_REQUESTED: {
        S.DRAFT: {A.ADMINISTRATOR},
        S.CANCELLED: {A.ADMINISTRATOR, A.SYSTEM},
    },
}

TRANSITION_MAPS: dict[StatusEntity, dict[BookingStatus, dict[BookingStatus, set[ActorRole]]]] = {
    StatusEntity.INQUIRY: INQUIRY_TRANSITION_MAP,
    StatusEntity.OFFER: OFFER_TRANSITION_MAP,
}

TERMINAL_STATES: set[BookingStatus] = {
    S.REJECTED,
    S.CANCELLED,
    S.EXPIRED,
    S.ARCHIVED,
}

# Offers still being worked on by an administrator
OPEN_OFFER_STATES: set[BookingStatus] = {S.DRAFT, S.CHANGES_REQUESTED}

DEFAULT_OFFER_VALIDITY_DAYS = 7


@dataclass(frozen=True)
class TransitionEffects:
    """Side effects the caller must apply when entering the target status."""

    changed: bool = True
    stamp_valid_until: bool = False
    clear_valid_until: bool = False
    requires_actual_offer: bool = False
    creates_booking: bool = False


NO_OP = TransitionEffects(changed=False)


def coerce_status(value: Union[str, BookingStatus]) -> BookingStatus:
    """Get a BookingStatus from a model column that may hold a plain string."""
    if isinstance(value, BookingStatus):
        return value
    return BookingStatus(value)


class StatusMachine:
    """Validates booking status transitions for inquiries and offers."""

    def validate_transition(
        self,
        current_status: Union[str, BookingStatus],
        target_status: Union[str, BookingStatus],
        actor: ActorRole,
        entity: StatusEntity = StatusEntity.INQUIRY,
    ) -> TransitionEffects:
        """Return the effects of a legal transition. Raise InvalidTransitionError if not legal.

        A move to the current status is always a no-op, whoever asks.
        """
        current = coerce_status(current_status)
        target = coerce_status(target_status)

        if current == target:
            return NO_OP

        allowed_targets = TRANSITION_MAPS[entity].get(current)
        if not allowed_targets:
            raise InvalidTransitionError(
                current, target, f"No {entity.value} transitions allowed from {current.value}"
            )

        if target not in allowed_targets:
            raise InvalidTransitionError(
                current,
                target,
                f"Transition from {current.value} to {target.value} is not allowed",
            )

        allowed_actors = allowed_targets[target]
        if actor not in allowed_actors:
            raise InvalidTransitionError(
                current,
                target,
                f"Actor {actor.value} is not permitted for this transition "
                f"(allowed: {', '.join(sorted(a.value for a in allowed_actors))})",
            )

        return self._effects_for(target, entity)

    def get_allowed_transitions(
        self,
        current_status: Union[str, BookingStatus],
        actor: ActorRole,
        entity: StatusEntity = StatusEntity.INQUIRY,
    ) -> list[BookingStatus]:
        """Return valid next states for the given actor from the current status."""
        current = coerce_status(current_status)
        allowed_targets = TRANSITION_MAPS[entity].get(current, {})
        return [target for target, actors in allowed_targets.items() if actor in actors]

    def is_offer_expired(self, valid_until: Optional[datetime], now: datetime) -> bool:
        """Return True if an offer's validity window has passed.

        Returns False when no expiry is set.
        """
        if valid_until is None:
            return False
        if valid_until.tzinfo is None:
            valid_until = valid_until.replace(tzinfo=timezone.utc)
        return now > valid_until

    @staticmethod
    def _effects_for(target: BookingStatus, entity: StatusEntity) -> TransitionEffects:
        if target == S.OFFER_SENT:
            return TransitionEffects(stamp_valid_until=True, requires_actual_offer=True)
        if target == S.EXPIRED:
            return TransitionEffects(clear_valid_until=True)
        if target == S.ACCEPTED and entity == StatusEntity.OFFER:
            return TransitionEffects(creates_booking=True)
        return TransitionEffects()
