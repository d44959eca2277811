import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.seat import Seat
from app.models.show import Show

logger = logging.getLogger(__name__)

AVAILABLE = "available"
RESERVED = "reserved"
SOLD = "sold"
BLOCKED = "blocked"


@dataclass
class ReservationResult:
    reserved_until: datetime
    seat_ids: List[UUID]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive timestamps (SQLite hands them back without tzinfo)."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def normalize_status(status: Optional[str]) -> str:
    return (status or AVAILABLE).strip().lower()


def is_hold_expired(seat: Seat, now: datetime) -> bool:
    """A reserved seat whose hold has run out (or never had an expiry)."""
    if normalize_status(seat.status) != RESERVED:
        return False
    until = as_utc(seat.reserved_until)
    return until is None or until <= now


def effective_status(seat: Seat, now: datetime) -> str:
    """Seat status as buyers should see it, with lazy expiry applied."""
    if is_hold_expired(seat, now):
        return AVAILABLE
    return normalize_status(seat.status)


def describe_seats(seats: Iterable[Seat]) -> str:
    return ", ".join(f"Row {s.row}, Seat {s.number}" for s in seats)


def load_bookable_show(db: Session, show_id: UUID) -> Show:
    show = db.query(Show).filter(Show.id == show_id).first()
    if not show:
        raise NotFoundError("Show not found")
    if show.status == "cancelled":
        raise ValidationError("This show has been cancelled")
    return show


def _holdable(now: datetime):
    """Free seats, plus reserved seats whose hold has lapsed."""
    return or_(
        Seat.status == AVAILABLE,
        and_(
            Seat.status == RESERVED,
            or_(Seat.reserved_until.is_(None), Seat.reserved_until <= now),
        ),
    )


def release_expired_holds(db: Session, seat_ids: Sequence[UUID], now: datetime) -> None:
    """
    Best-effort reset of lapsed holds back to 'available'.

    Only rows that are still reserved with an elapsed expiry are touched, so a
    hold renewed by another buyer in the meantime is left alone. Errors are
    logged and swallowed; the caller's request must not fail because of it.
    """
    if not seat_ids:
        return
    try:
        db.query(Seat).filter(
            Seat.id.in_(seat_ids),
            Seat.status == RESERVED,
            or_(Seat.reserved_until.is_(None), Seat.reserved_until <= now),
        ).update(
            {"status": AVAILABLE, "reserved_until": None},
            synchronize_session=False,
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Failed to clean up expired holds for seats %s", list(seat_ids), exc_info=True)


# ---------------------------------------------------------------------------
# Reserve
# ---------------------------------------------------------------------------


def reserve_seats(
    db: Session,
    show_id: UUID,
    seat_ids: Sequence[UUID],
    now: Optional[datetime] = None,
) -> ReservationResult:
    """
    Place a time-boxed hold on every requested seat, or on none of them.

    The conditional UPDATE (seat free, or held with a lapsed expiry) is the
    only arbiter between concurrent buyers: whoever's update matches fewer
    rows than they asked for lost the race and gets a ConflictError. Lapsed
    holds are reclaimed by that same UPDATE, so the cleanup write is optional.
    """
    seat_ids = list(seat_ids)
    if not seat_ids:
        raise ValidationError("No seats selected")
    if len(set(seat_ids)) != len(seat_ids):
        raise ValidationError("The same seat was selected more than once")
    if len(seat_ids) > settings.MAX_SEATS_PER_BOOKING:
        raise ValidationError(
            f"You can reserve at most {settings.MAX_SEATS_PER_BOOKING} seats at a time"
        )

    now = now or utcnow()
    load_bookable_show(db, show_id)

    seats = db.query(Seat).filter(Seat.id.in_(seat_ids), Seat.show_id == show_id).all()
    if len(seats) != len(seat_ids):
        logger.warning(
            "Seat count mismatch for show %s: requested=%d found=%d",
            show_id, len(seat_ids), len(seats),
        )
        raise NotFoundError("Some of the seats do not exist", status_code=400)

    expired_ids = [s.id for s in seats if is_hold_expired(s, now)]
    unavailable = [s for s in seats if effective_status(s, now) != AVAILABLE]

    if expired_ids:
        logger.info("Reclaiming %d expired hold(s) on show %s", len(expired_ids), show_id)
        release_expired_holds(db, expired_ids, now)

    if unavailable:
        logger.info(
            "Rejecting hold on show %s, unavailable seats: %s",
            show_id, [str(s.id) for s in unavailable],
        )
        raise ConflictError(
            f"The following seats are not available: {describe_seats(unavailable)}",
            unavailable_seat_ids=[s.id for s in unavailable],
        )

    reserved_until = now + timedelta(minutes=settings.SEAT_HOLD_MINUTES)
    updated = (
        db.query(Seat)
        .filter(
            Seat.id.in_(seat_ids),
            Seat.show_id == show_id,
            _holdable(now),
        )
        .update(
            {"status": RESERVED, "reserved_until": reserved_until},
            synchronize_session=False,
        )
    )

    if updated != len(seat_ids):
        # Lost a race between the read above and this write; undo our part.
        db.rollback()
        failed = len(seat_ids) - updated
        logger.info(
            "Partial hold on show %s: requested=%d updated=%d, rolled back",
            show_id, len(seat_ids), updated,
        )
        raise ConflictError(
            f"{failed} of the seats were just taken by someone else",
            failed_count=failed,
        )

    db.commit()
    logger.info("Held %d seat(s) on show %s until %s", len(seat_ids), show_id, reserved_until.isoformat())
    return ReservationResult(reserved_until=reserved_until, seat_ids=seat_ids)
