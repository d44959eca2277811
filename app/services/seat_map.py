import logging
import string
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.seat import Seat
from app.models.show import Show
from app.schemas.seat import SeatMapResponse, SeatRow, SeatSection, SeatStatus
from app.services.reservation import AVAILABLE, effective_status, utcnow

logger = logging.getLogger(__name__)

DEFAULT_SECTION = "Main hall"


def _row_label(index: int) -> str:
    letters = string.ascii_uppercase
    return letters[index] if index < len(letters) else f"R{index + 1}"


def _row_sort_key(label: str):
    """Numeric rows by value ("2" before "10"), lettered rows A..Z then R27.."""
    if label.isdigit():
        return (0, int(label), "")
    return (1, len(label), label)


def seats_from_config(config: Optional[dict]) -> List[dict]:
    """
    Expand a venue seat map config into seat positions. Two formats:

      {"sections": [{"name": ..., "rows": [{"number": ..., "seats": [1, 2, ...]}]}]}
      {"rows": 10, "seatsPerRow": 20}
    """
    if not config:
        return []

    positions = []
    if config.get("sections"):
        for section in config["sections"]:
            for row in section.get("rows", []):
                for number in row.get("seats", []):
                    positions.append({
                        "section": section["name"],
                        "row": str(row["number"]),
                        "number": int(number),
                    })
    elif config.get("rows") and config.get("seatsPerRow"):
        for r in range(int(config["rows"])):
            for number in range(1, int(config["seatsPerRow"]) + 1):
                positions.append({
                    "section": DEFAULT_SECTION,
                    "row": _row_label(r),
                    "number": number,
                })
    return positions


def materialize_seats(db: Session, show: Show) -> int:
    """
    Create the seat rows for a show from its venue's seat map, once.

    Does nothing when the show already has seats. If another request
    materializes the same show concurrently, the unique seat position
    constraint rejects our insert and theirs stands.
    Returns the number of seats created.
    """
    if db.query(Seat.id).filter(Seat.show_id == show.id).first() is not None:
        return 0

    positions = seats_from_config(show.venue.seat_map_config if show.venue else None)
    if not positions:
        return 0

    for pos in positions:
        db.add(Seat(show_id=show.id, price=show.base_price, status=AVAILABLE, **pos))
    if show.available_seats is None:
        show.available_seats = len(positions)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("Seats for show %s were created by a concurrent request", show.id)
        return 0

    logger.info("Materialized %d seats for show %s", len(positions), show.id)
    return len(positions)


def build_seat_map(db: Session, show: Show, now: Optional[datetime] = None) -> SeatMapResponse:
    """Seat map grouped by section and row, with lapsed holds shown as available."""
    now = now or utcnow()
    seats = (
        db.query(Seat)
        .filter(Seat.show_id == show.id)
        .order_by(Seat.section, Seat.row, Seat.number)
        .all()
    )

    sections: Dict[str, Dict[str, List[SeatStatus]]] = {}
    available = 0
    for seat in seats:
        status = effective_status(seat, now)
        if status == AVAILABLE:
            available += 1
        rows = sections.setdefault(seat.section, {})
        rows.setdefault(seat.row, []).append(SeatStatus(
            id=seat.id,
            number=seat.number,
            price=seat.price,
            status=status,
        ))

    return SeatMapResponse(
        show_id=show.id,
        show_status=show.status,
        available_count=available,
        sections=[
            SeatSection(
                name=name,
                rows=[
                    SeatRow(label=label, seats=rows[label])
                    for label in sorted(rows, key=_row_sort_key)
                ],
            )
            for name, rows in sections.items()
        ],
    )
