from app.schemas.common import PaginatedResponse, ErrorResponse, SeatsUnavailableError
from app.schemas.user import TokenPayload
from app.schemas.show import Show, VenueSummary, EnsembleSummary, EnsembleDetail
from app.schemas.seat import (
    SeatMapResponse, SeatReserveRequest, SeatReserveResponse,
)
from app.schemas.booking import (
    Booking, BookingCreate, BookingConfirmResponse, BookingSeatResponse,
)
from app.schemas.ticket import (
    TicketPayload, TicketSeat, VerifyTicketRequest, VerifyTicketResult,
    VerifiedBooking, CheckInRequest, CheckInResult,
)
