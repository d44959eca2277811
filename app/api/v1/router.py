from fastapi import APIRouter

# Public - catalog and seat map
from app.api.v1.public.shows import router as shows_router, ensemble_router

# Public - seat holds
from app.api.v1.public.seats import router as seats_router

# Public - bookings
from app.api.v1.public.bookings import router as bookings_router

# Admin - door verification and check-in
from app.api.v1.admin.tickets import router as tickets_router

api_router = APIRouter()

# --- Public: catalog ---
api_router.include_router(shows_router)
api_router.include_router(ensemble_router)

# --- Public: seat holds ---
api_router.include_router(seats_router)

# --- Public: bookings ---
api_router.include_router(bookings_router)

# --- Admin ---
api_router.include_router(tickets_router)
