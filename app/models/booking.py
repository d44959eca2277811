import uuid
from sqlalchemy import Column, String, Boolean, DateTime, func, Integer, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship
from app.db.session import Base

class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    show_id = Column(Uuid(as_uuid=True), ForeignKey("shows.id"), nullable=False, index=True)
    booking_reference = Column(String(32), unique=True, nullable=False, index=True)
    total_amount = Column(Integer, nullable=False) # minor units
    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=False)
    customer_phone = Column(String(30), nullable=True)
    special_requests = Column(Text, nullable=True)
    discount_code_used = Column(String(50), nullable=True)
    status = Column(String(20), default="confirmed", index=True) # confirmed, cancelled
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    ticket_sent = Column(Boolean, default=False)
    checked_in = Column(Boolean, default=False)
    checked_in_at = Column(DateTime(timezone=True), nullable=True)
    qr_code_data = Column(Text, nullable=True) # serialized TicketPayload
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    user = relationship("User")
    show = relationship("Show", back_populates="bookings")
    seats = relationship(
        "BookingSeat",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingSeat.position",
    )

class BookingSeat(Base):
    __tablename__ = "booking_seats"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    booking_id = Column(Uuid(as_uuid=True), ForeignKey("bookings.id"), nullable=False, index=True)
    seat_id = Column(Uuid(as_uuid=True), ForeignKey("seats.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0) # order the buyer selected the seats in

    booking = relationship("Booking", back_populates="seats")
    seat = relationship("Seat")
