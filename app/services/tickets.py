"""Booking references and the ticket payload that is encoded into QR codes."""

import secrets
from datetime import datetime, timezone
from typing import Iterable, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import PersistenceError, ValidationError
from app.models.booking import Booking
from app.models.seat import Seat
from app.models.show import Show
from app.schemas.ticket import TicketPayload, TicketSeat
from app.services.reservation import as_utc

# No 0/O, 1/I/L: references are read aloud and typed in by door staff.
REFERENCE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
REFERENCE_SUFFIX_LENGTH = 6


def _random_reference(now: datetime) -> str:
    suffix = "".join(secrets.choice(REFERENCE_ALPHABET) for _ in range(REFERENCE_SUFFIX_LENGTH))
    return f"{settings.BOOKING_REFERENCE_PREFIX}-{now:%y%m%d}-{suffix}"


def generate_booking_reference(db: Session, now: Optional[datetime] = None) -> str:
    """
    Generate a 'TKT-YYMMDD-XXXXXX' booking reference.

    The random suffix makes collisions unlikely; the unique constraint on
    ``bookings.booking_reference`` is the real guard, and a pre-check here
    retries a bounded number of times before giving up.
    """
    now = now or datetime.now(timezone.utc)
    for _ in range(settings.BOOKING_REFERENCE_ATTEMPTS):
        reference = _random_reference(now)
        taken = (
            db.query(Booking.id)
            .filter(Booking.booking_reference == reference)
            .first()
        )
        if taken is None:
            return reference
    raise PersistenceError("Could not allocate a booking reference, please try again")


def build_ticket_payload(
    show: Show,
    seats: Iterable[Seat],
    booking_reference: str,
    customer_name: str,
    booking_id: str = "",
) -> TicketPayload:
    return TicketPayload(
        booking_id=booking_id,
        booking_reference=booking_reference,
        show_id=str(show.id),
        show_title=show.display_title,
        show_datetime=as_utc(show.show_datetime),
        customer_name=customer_name,
        seats=[TicketSeat(section=s.section, row=s.row, number=s.number) for s in seats],
    )


def encode_ticket_payload(payload: TicketPayload) -> str:
    return payload.model_dump_json()


def decode_ticket_payload(data: str) -> TicketPayload:
    """Parse QR text back into a TicketPayload; raises ValidationError on garbage."""
    try:
        return TicketPayload.model_validate_json(data)
    except PydanticValidationError:
        raise ValidationError("Ticket data could not be read")
