from typing import Annotated, List
from pydantic import BaseModel, Field, UUID4, field_validator
from datetime import datetime


# --- Seat Map (seat selection screen) ---

class SeatStatus(BaseModel):
    id: UUID4
    number: int
    price: int
    status: str  # available, reserved, sold, blocked


class SeatRow(BaseModel):
    label: str
    seats: List[SeatStatus]


class SeatSection(BaseModel):
    name: str
    rows: List[SeatRow]


class SeatMapResponse(BaseModel):
    show_id: UUID4
    show_status: str
    available_count: int
    sections: List[SeatSection]


# --- Seat Reservation (hold) ---

class SeatReserveRequest(BaseModel):
    show_id: UUID4
    seat_ids: Annotated[List[UUID4], Field(min_length=1)]

    @field_validator("seat_ids")
    @classmethod
    def reject_duplicates(cls, v):
        if len(set(v)) != len(v):
            raise ValueError("seat_ids must not contain duplicates")
        return v


class SeatReserveResponse(BaseModel):
    success: bool = True
    reserved_until: datetime
    seat_ids: List[UUID4]
    ttl_seconds: int
