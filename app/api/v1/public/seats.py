from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import get_db
from app.schemas.common import ErrorResponse, SeatsUnavailableError
from app.schemas.seat import SeatReserveRequest, SeatReserveResponse
from app.services.reservation import reserve_seats

router = APIRouter(prefix="/seats", tags=["Seats"])


@router.post(
    "/reserve",
    response_model=SeatReserveResponse,
    status_code=status.HTTP_200_OK,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": SeatsUnavailableError},
    },
)
def reserve(body: SeatReserveRequest, db: Session = Depends(get_db)):
    """
    Hold the selected seats for checkout.
    Holds expire after SEAT_HOLD_MINUTES and cannot be extended; an expired
    hold is released the next time anyone looks at the seat.
    On conflict nothing is held and the response lists the seats to deselect.
    """
    result = reserve_seats(db, body.show_id, body.seat_ids)
    return SeatReserveResponse(
        reserved_until=result.reserved_until,
        seat_ids=result.seat_ids,
        ttl_seconds=settings.SEAT_HOLD_MINUTES * 60,
    )
