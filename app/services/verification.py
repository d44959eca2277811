"""Door-side ticket verification and check-in."""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.exceptions import ValidationError
from app.models.booking import Booking
from app.schemas.ticket import (
    CheckInResult,
    TicketSeat,
    VerifiedBooking,
    VerifyTicketResult,
)
from app.services.booking import load_booking
from app.services.reservation import as_utc, utcnow
from app.services.tickets import decode_ticket_payload

logger = logging.getLogger(__name__)


def normalize_reference(reference: str) -> str:
    """References are stored upper-case; staff may type them any way."""
    return reference.strip().upper()


def _find_by_reference(db: Session, reference: str) -> Optional[Booking]:
    booking = (
        db.query(Booking.id)
        .filter(Booking.booking_reference == normalize_reference(reference))
        .first()
    )
    return load_booking(db, booking.id) if booking else None


def resolve_booking(
    db: Session,
    qr_data: Optional[str] = None,
    booking_reference: Optional[str] = None,
) -> Optional[Booking]:
    """
    Map a scanned QR text or a typed reference to a booking.

    QR text that is not a ticket payload is treated as a typed reference, so a
    scanner reading a plain code still works. A payload whose booking id and
    reference disagree with the stored booking resolves to nothing.
    """
    if qr_data and qr_data.strip():
        try:
            payload = decode_ticket_payload(qr_data.strip())
        except ValidationError:
            return _find_by_reference(db, qr_data)

        if not payload.booking_id:
            return _find_by_reference(db, payload.booking_reference)
        try:
            booking_id = UUID(payload.booking_id)
        except ValueError:
            return None
        booking = load_booking(db, booking_id)
        if booking and booking.booking_reference != normalize_reference(payload.booking_reference):
            logger.warning("QR payload reference mismatch for booking %s", booking_id)
            return None
        return booking

    if booking_reference and booking_reference.strip():
        return _find_by_reference(db, booking_reference)
    return None


def _summarize(booking: Booking) -> VerifiedBooking:
    show = booking.show
    return VerifiedBooking(
        id=booking.id,
        reference=booking.booking_reference,
        customer_name=booking.customer_name,
        show_title=show.display_title if show else "",
        show_datetime=as_utc(show.show_datetime),
        seats=[
            TicketSeat(section=bs.seat.section, row=bs.seat.row, number=bs.seat.number)
            for bs in booking.seats
        ],
        special_requests=booking.special_requests,
        already_checked_in=bool(booking.checked_in),
        checked_in_at=as_utc(booking.checked_in_at),
    )


def verify_ticket(
    db: Session,
    qr_data: Optional[str] = None,
    booking_reference: Optional[str] = None,
) -> VerifyTicketResult:
    booking = resolve_booking(db, qr_data=qr_data, booking_reference=booking_reference)
    if not booking:
        return VerifyTicketResult(status="error", message="No booking found for this ticket")

    if booking.status != "confirmed":
        return VerifyTicketResult(
            status="error",
            message=f"This booking is not valid (status: {booking.status})",
            booking=_summarize(booking),
        )

    summary = _summarize(booking)
    if booking.checked_in:
        when = summary.checked_in_at.strftime("%H:%M") if summary.checked_in_at else "earlier"
        return VerifyTicketResult(
            status="warning",
            message=f"Ticket is valid but was already checked in ({when})",
            booking=summary,
        )

    return VerifyTicketResult(status="success", message="Valid ticket", booking=summary)


def check_in(db: Session, booking_id: UUID, now: Optional[datetime] = None) -> CheckInResult:
    """
    Mark a confirmed booking as checked in. Safe to call repeatedly: a booking
    that is already checked in reports success and keeps its first timestamp.
    """
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        return CheckInResult(success=False, error="Booking not found")
    if booking.status != "confirmed":
        return CheckInResult(success=False, error="Only confirmed bookings can be checked in")
    if booking.checked_in:
        return CheckInResult(success=True, checked_in_at=as_utc(booking.checked_in_at))

    now = now or utcnow()
    updated = (
        db.query(Booking)
        .filter(
            Booking.id == booking_id,
            Booking.status == "confirmed",
            Booking.checked_in == False,  # noqa: E712
        )
        .update({"checked_in": True, "checked_in_at": now}, synchronize_session=False)
    )
    db.commit()
    db.refresh(booking)
    if updated:
        logger.info("Booking %s checked in", booking_id)
    else:
        # Another door beat us to it, or the booking was cancelled meanwhile.
        logger.info("Booking %s changed concurrently during check-in", booking_id)
        if not booking.checked_in:
            return CheckInResult(success=False, error="Only confirmed bookings can be checked in")
    return CheckInResult(success=True, checked_in_at=as_utc(booking.checked_in_at))


def verify_and_check_in(
    db: Session,
    qr_data: Optional[str] = None,
    booking_reference: Optional[str] = None,
) -> VerifyTicketResult:
    """Verify, then check in a valid ticket straight away (scanner auto mode)."""
    result = verify_ticket(db, qr_data=qr_data, booking_reference=booking_reference)
    if result.status != "success" or not result.booking:
        return result

    outcome = check_in(db, result.booking.id)
    if not outcome.success:
        return VerifyTicketResult(
            status="error",
            message=outcome.error or "Could not check in",
            booking=result.booking,
        )
    booking = result.booking.model_copy(
        update={"already_checked_in": True, "checked_in_at": outcome.checked_in_at}
    )
    return VerifyTicketResult(status="success", message="Ticket checked in", booking=booking)
