import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from app.core.config import settings
from app.core.exceptions import ConflictError, PersistenceError, ValidationError
from app.models.booking import Booking, BookingSeat
from app.models.discount_code import DiscountCode
from app.models.seat import Seat
from app.models.show import Show
from app.models.user import User
from app.services.email import EmailProvider, EmailResult, send_ticket_email
from app.services.reservation import (
    AVAILABLE,
    BLOCKED,
    RESERVED,
    SOLD,
    load_bookable_show,
    normalize_status,
    utcnow,
)
from app.services.tickets import (
    build_ticket_payload,
    encode_ticket_payload,
    generate_booking_reference,
)

logger = logging.getLogger(__name__)

SELLABLE_STATUSES = (RESERVED, AVAILABLE)


@dataclass
class Customer:
    name: str
    email: str
    phone: Optional[str] = None
    special_requests: Optional[str] = None


@dataclass
class ConfirmationResult:
    booking_id: UUID
    booking_reference: str
    email_sent: bool
    email_error: Optional[str] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _unavailable_message(unavailable: List[Seat]) -> str:
    statuses = [normalize_status(s.status) for s in unavailable]
    sold = statuses.count(SOLD)
    blocked = statuses.count(BLOCKED)
    parts = []
    if sold:
        parts.append(f"{sold} of the seats are already sold")
    if blocked:
        parts.append(f"{blocked} of the seats are blocked")
    if not parts:
        return "Some of the seats are no longer available"
    return " and ".join(parts)


def _find_discount_code(db: Session, code: Optional[str]) -> Optional[DiscountCode]:
    if not code:
        return None
    return (
        db.query(DiscountCode)
        .filter(
            DiscountCode.code == code.strip(),
            DiscountCode.is_active == True,  # noqa: E712
            DiscountCode.percent_off < 100,
        )
        .first()
    )


def compute_total(seats: Sequence[Seat], discount: Optional[DiscountCode] = None) -> int:
    """Authoritative order total in minor units, from seat prices."""
    total = sum(s.price for s in seats)
    if discount and discount.percent_off:
        total -= total * discount.percent_off // 100
    return total


def _email_context(booking: Booking, show: Show, seats: Sequence[Seat]) -> dict:
    venue = show.venue
    return {
        "customer_name": booking.customer_name,
        "customer_email": booking.customer_email,
        "booking_reference": booking.booking_reference,
        "show_title": show.display_title,
        "show_datetime": show.show_datetime,
        "venue_name": venue.name if venue else "Unknown venue",
        "venue_address": (
            f"{venue.address}, {venue.postal_code} {venue.city}" if venue and venue.address else ""
        ),
        "seats": [
            {"section": s.section, "row": s.row, "number": s.number, "price": s.price}
            for s in seats
        ],
        "total_amount": booking.total_amount,
        "qr_code_data": booking.qr_code_data,
    }


def _record_ticket_sent(db: Session, booking: Booking, result: EmailResult) -> None:
    try:
        booking.ticket_sent = result.success
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Could not record ticket_sent for booking %s", booking.id)


# ---------------------------------------------------------------------------
# Confirm
# ---------------------------------------------------------------------------


def confirm_booking(
    db: Session,
    user: User,
    show_id: UUID,
    seat_ids: Sequence[UUID],
    customer: Customer,
    total_amount: int,
    email_provider: EmailProvider,
    discount_code: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ConfirmationResult:
    """
    Turn held (or still free) seats into a confirmed, paid booking.

    Everything up to the commit runs in one transaction: the booking row, the
    discount usage and the seat sale are saved together or not at all. The
    sale itself is a conditional UPDATE, so two overlapping confirmations
    cannot both mark the same seat sold. The ticket email goes out after the
    commit and its failure is only recorded.
    """
    seat_ids = list(seat_ids)
    if not seat_ids:
        raise ValidationError("No seats selected")
    if len(set(seat_ids)) != len(seat_ids):
        raise ValidationError("The same seat was selected more than once")
    if len(seat_ids) > settings.MAX_SEATS_PER_BOOKING:
        raise ValidationError(
            f"You can book at most {settings.MAX_SEATS_PER_BOOKING} seats at a time"
        )
    if not customer.name or not customer.email:
        raise ValidationError("Customer name and email are required")
    if total_amount <= 0:
        raise ValidationError("Total amount must be positive")

    now = now or utcnow()
    show = load_bookable_show(db, show_id)

    seats_by_id = {
        s.id: s
        for s in db.query(Seat).filter(Seat.id.in_(seat_ids), Seat.show_id == show_id).all()
    }
    if len(seats_by_id) != len(seat_ids):
        raise ValidationError("Some of the seats do not exist")
    seats = [seats_by_id[sid] for sid in seat_ids]

    unavailable = [s for s in seats if normalize_status(s.status) not in SELLABLE_STATUSES]
    if unavailable:
        logger.info(
            "Rejecting booking on show %s, unsellable seats: %s",
            show_id, [str(s.id) for s in unavailable],
        )
        raise ConflictError(
            _unavailable_message(unavailable),
            unavailable_seat_ids=[s.id for s in unavailable],
        )

    discount = _find_discount_code(db, discount_code)
    expected_total = compute_total(seats, discount)
    if total_amount != expected_total:
        logger.warning(
            "Total mismatch on show %s: client=%d server=%d",
            show_id, total_amount, expected_total,
        )
        raise ValidationError("The order total does not match the current seat prices")

    booking_reference = generate_booking_reference(db, now)

    if discount:
        # Plain read-modify-write; concurrent uses may undercount.
        discount.current_uses = (discount.current_uses or 0) + 1

    payload = build_ticket_payload(show, seats, booking_reference, customer.name)

    booking = Booking(
        user_id=user.id,
        show_id=show.id,
        booking_reference=booking_reference,
        total_amount=expected_total,
        customer_name=customer.name,
        customer_email=customer.email,
        customer_phone=customer.phone,
        special_requests=customer.special_requests,
        discount_code_used=discount.code if discount else None,
        status="confirmed",  # Mock payment - directly confirmed
        confirmed_at=now,
        ticket_sent=False,
        checked_in=False,
        qr_code_data=encode_ticket_payload(payload),
    )
    booking.seats = [
        BookingSeat(seat_id=seat.id, position=position)
        for position, seat in enumerate(seats)
    ]
    db.add(booking)
    try:
        db.flush()  # get booking.id
    except IntegrityError:
        db.rollback()
        logger.exception("Booking insert failed for show %s", show_id)
        raise PersistenceError("The booking could not be created, please try again")

    payload.booking_id = str(booking.id)
    booking.qr_code_data = encode_ticket_payload(payload)

    sold = (
        db.query(Seat)
        .filter(
            Seat.id.in_(seat_ids),
            Seat.show_id == show_id,
            Seat.status.in_(SELLABLE_STATUSES),
        )
        .update({"status": SOLD, "reserved_until": None}, synchronize_session=False)
    )
    if sold != len(seat_ids):
        db.rollback()
        failed = len(seat_ids) - sold
        logger.info(
            "Seat sale race on show %s: requested=%d sold=%d, booking rolled back",
            show_id, len(seat_ids), sold,
        )
        raise ConflictError(
            f"{failed} of the seats were just taken by someone else",
            failed_count=failed,
        )

    # Advisory display counter, never used to decide availability.
    if show.available_seats is not None:
        show.available_seats = max(0, show.available_seats - len(seat_ids))
        if show.available_seats == 0 and show.status in ("scheduled", "on_sale"):
            show.status = "sold_out"

    db.commit()
    db.refresh(booking)
    logger.info(
        "Booking %s (%s) confirmed for user %s, %d seat(s)",
        booking.id, booking.booking_reference, user.id, len(seat_ids),
    )

    email_result = send_ticket_email(email_provider, _email_context(booking, show, seats))
    if not email_result.success:
        logger.error("Ticket email for booking %s failed: %s", booking.id, email_result.error)
    _record_ticket_sent(db, booking, email_result)

    return ConfirmationResult(
        booking_id=booking.id,
        booking_reference=booking.booking_reference,
        email_sent=email_result.success,
        email_error=email_result.error,
    )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def load_booking(db: Session, booking_id: UUID, user_id: Optional[UUID] = None) -> Optional[Booking]:
    """Load a booking with show, venue and seats eager-loaded."""
    query = (
        db.query(Booking)
        .options(
            joinedload(Booking.show).joinedload(Show.ensemble),
            joinedload(Booking.show).joinedload(Show.venue),
            joinedload(Booking.seats).joinedload(BookingSeat.seat),
        )
        .filter(Booking.id == booking_id)
    )
    if user_id is not None:
        query = query.filter(Booking.user_id == user_id)
    return query.first()
