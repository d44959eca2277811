from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_current_staff_user
from app.models.user import User
from app.schemas.ticket import (
    CheckInRequest,
    CheckInResult,
    VerifyTicketRequest,
    VerifyTicketResult,
)
from app.services.verification import check_in, verify_and_check_in, verify_ticket

router = APIRouter(prefix="/admin/tickets", tags=["Admin - Tickets"])


@router.post("/verify", response_model=VerifyTicketResult)
def verify(
    body: VerifyTicketRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user),
):
    """
    Validate a scanned QR code or a typed booking reference.

    - `success`: valid and not yet checked in
    - `warning`: valid but already checked in
    - `error`: unknown or cancelled booking

    With `auto_check_in`, a valid ticket is checked in in the same call.
    """
    if body.auto_check_in:
        return verify_and_check_in(db, qr_data=body.qr_data, booking_reference=body.booking_reference)
    return verify_ticket(db, qr_data=body.qr_data, booking_reference=body.booking_reference)


@router.post("/check-in", response_model=CheckInResult)
def check_in_booking(
    body: CheckInRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user),
):
    """Check in a booking. Repeating the call is harmless."""
    return check_in(db, body.booking_id)
