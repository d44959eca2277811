from app.models.user import User
from app.models.venue import Venue
from app.models.ensemble import Ensemble
from app.models.show import Show
from app.models.seat import Seat
from app.models.booking import Booking, BookingSeat
from app.models.discount_code import DiscountCode
