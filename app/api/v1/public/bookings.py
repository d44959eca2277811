from uuid import UUID
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session, joinedload

from app.core.exceptions import NotFoundError
from app.db.session import get_db
from app.api.deps import get_current_user, get_email_sender
from app.models.user import User
from app.models.booking import Booking, BookingSeat
from app.models.show import Show
from app.schemas.booking import (
    BookingCreate,
    BookingConfirmResponse,
    Booking as BookingSchema,
    BookingShowSummary,
    BookingSeatResponse,
)
from app.schemas.common import ErrorResponse, PaginatedResponse, SeatsUnavailableError
from app.services.booking import Customer, confirm_booking, load_booking
from app.services.email import EmailProvider

router = APIRouter(prefix="/bookings", tags=["Bookings"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _serialize_booking(booking: Booking) -> BookingSchema:
    """Convert a Booking ORM object to its schema representation."""
    show_summary = None
    if booking.show:
        show = booking.show
        show_summary = BookingShowSummary(
            id=show.id,
            title=show.display_title,
            show_datetime=show.show_datetime,
            venue_name=show.venue.name if show.venue else None,
        )

    seats_out = [
        BookingSeatResponse(
            id=bs.seat.id,
            section=bs.seat.section,
            row=bs.seat.row,
            number=bs.seat.number,
            price=bs.seat.price,
        )
        for bs in booking.seats
    ]

    return BookingSchema(
        id=booking.id,
        booking_reference=booking.booking_reference,
        show_id=booking.show_id,
        total_amount=booking.total_amount,
        customer_name=booking.customer_name,
        customer_email=booking.customer_email,
        customer_phone=booking.customer_phone,
        special_requests=booking.special_requests,
        discount_code_used=booking.discount_code_used,
        status=booking.status,
        confirmed_at=booking.confirmed_at,
        ticket_sent=bool(booking.ticket_sent),
        checked_in=bool(booking.checked_in),
        checked_in_at=booking.checked_in_at,
        qr_code_data=booking.qr_code_data,
        created_at=booking.created_at,
        show=show_summary,
        seats=seats_out,
    )


# ---------------------------------------------------------------------------
# POST /bookings - confirm a booking (payment is mocked)
# ---------------------------------------------------------------------------


@router.post(
    "/",
    response_model=BookingConfirmResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": SeatsUnavailableError},
    },
)
def create_booking(
    data: BookingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    email_sender: EmailProvider = Depends(get_email_sender),
):
    """
    Confirm a booking for held seats.

    - The total is recomputed from seat prices; a mismatching client total is rejected.
    - Seats that are sold or blocked reject the whole booking.
    - The ticket email is sent after the booking is saved. If it fails the
      booking still stands and `email_sent` is false.
    """
    result = confirm_booking(
        db,
        user=current_user,
        show_id=data.show_id,
        seat_ids=data.seat_ids,
        customer=Customer(
            name=data.customer_name.strip(),
            email=str(data.customer_email),
            phone=data.customer_phone,
            special_requests=data.special_requests,
        ),
        total_amount=data.total_amount,
        discount_code=data.discount_code,
        email_provider=email_sender,
    )
    return BookingConfirmResponse(
        booking_id=result.booking_id,
        booking_reference=result.booking_reference,
        email_sent=result.email_sent,
        email_error=result.email_error,
    )


# ---------------------------------------------------------------------------
# GET /bookings - list current user's bookings
# ---------------------------------------------------------------------------


@router.get("/", response_model=PaginatedResponse[BookingSchema])
def list_my_bookings(
    status: Optional[str] = Query(None, description="Filter by status: confirmed, cancelled"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Return the authenticated user's bookings, newest first."""
    query = (
        db.query(Booking)
        .options(
            joinedload(Booking.show).joinedload(Show.ensemble),
            joinedload(Booking.show).joinedload(Show.venue),
            joinedload(Booking.seats).joinedload(BookingSeat.seat),
        )
        .filter(Booking.user_id == current_user.id)
    )
    if status:
        query = query.filter(Booking.status == status)

    total = query.count()
    bookings = (
        query.order_by(Booking.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return PaginatedResponse(
        data=[_serialize_booking(b) for b in bookings],
        total=total,
        page=page,
        limit=limit,
        total_pages=-(-total // limit) if total else 0,
    )


# ---------------------------------------------------------------------------
# GET /bookings/{id} - single booking detail
# ---------------------------------------------------------------------------


@router.get("/{booking_id}", response_model=BookingSchema)
def get_booking(
    booking_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Return a single booking. Only the owning user can access it."""
    booking = load_booking(db, booking_id, user_id=current_user.id)
    if not booking:
        raise NotFoundError("Booking not found")
    return _serialize_booking(booking)
