from typing import Annotated, Optional, List
from pydantic import BaseModel, EmailStr, Field, UUID4, field_validator
from datetime import datetime


# Booking - Confirm (POST /bookings)
class BookingCreate(BaseModel):
    show_id: UUID4
    seat_ids: Annotated[List[UUID4], Field(min_length=1)]
    customer_name: Annotated[str, Field(min_length=1, max_length=255)]
    customer_email: EmailStr
    customer_phone: Optional[str] = None
    special_requests: Optional[str] = None
    total_amount: Annotated[int, Field(gt=0)]
    discount_code: Optional[str] = None

    @field_validator("customer_phone", "special_requests", "discount_code", mode="before")
    @classmethod
    def parse_empty_str_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("seat_ids")
    @classmethod
    def reject_duplicates(cls, v):
        if len(set(v)) != len(v):
            raise ValueError("seat_ids must not contain duplicates")
        return v


class BookingConfirmResponse(BaseModel):
    success: bool = True
    booking_id: UUID4
    booking_reference: str
    email_sent: bool
    email_error: Optional[str] = None


# Nested response objects for booking responses
class BookingShowSummary(BaseModel):
    id: UUID4
    title: str
    show_datetime: datetime
    venue_name: Optional[str] = None


class BookingSeatResponse(BaseModel):
    id: UUID4
    section: str
    row: str
    number: int
    price: int


# Booking - Full response (GET /bookings, GET /bookings/{id})
class Booking(BaseModel):
    id: UUID4
    booking_reference: str
    show_id: UUID4
    total_amount: int
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    special_requests: Optional[str] = None
    discount_code_used: Optional[str] = None
    status: str
    confirmed_at: Optional[datetime] = None
    ticket_sent: bool
    checked_in: bool
    checked_in_at: Optional[datetime] = None
    qr_code_data: Optional[str] = None
    created_at: Optional[datetime] = None
    show: Optional[BookingShowSummary] = None
    seats: List[BookingSeatResponse] = []
