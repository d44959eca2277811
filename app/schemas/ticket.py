from typing import List, Literal, Optional
from pydantic import BaseModel, UUID4, model_validator
from datetime import datetime


class TicketSeat(BaseModel):
    section: str
    row: str
    number: int


# Content of the QR code printed on a ticket.
class TicketPayload(BaseModel):
    booking_id: str = ""
    booking_reference: str
    show_id: str
    show_title: str
    show_datetime: datetime
    customer_name: str
    seats: List[TicketSeat]


# --- Door verification / check-in ---

class VerifyTicketRequest(BaseModel):
    qr_data: Optional[str] = None
    booking_reference: Optional[str] = None
    auto_check_in: bool = False

    @model_validator(mode="after")
    def require_identifier(self):
        if not (self.qr_data and self.qr_data.strip()) and not (
            self.booking_reference and self.booking_reference.strip()
        ):
            raise ValueError("Either qr_data or booking_reference is required")
        return self


class VerifiedBooking(BaseModel):
    id: UUID4
    reference: str
    customer_name: str
    show_title: str
    show_datetime: datetime
    seats: List[TicketSeat]
    special_requests: Optional[str] = None
    already_checked_in: bool
    checked_in_at: Optional[datetime] = None


class VerifyTicketResult(BaseModel):
    status: Literal["success", "warning", "error"]
    message: str
    booking: Optional[VerifiedBooking] = None


class CheckInRequest(BaseModel):
    booking_id: UUID4


class CheckInResult(BaseModel):
    success: bool
    error: Optional[str] = None
    checked_in_at: Optional[datetime] = None
