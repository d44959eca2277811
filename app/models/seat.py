import uuid
from sqlalchemy import Column, String, Integer, ForeignKey, DateTime, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from app.db.session import Base

class Seat(Base):
    __tablename__ = "seats"
    __table_args__ = (
        UniqueConstraint("show_id", "section", "row", "number", name="uq_seat_position"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    show_id = Column(Uuid(as_uuid=True), ForeignKey("shows.id"), nullable=False, index=True)
    section = Column(String(100), nullable=False)
    row = Column(String(10), nullable=False)
    number = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False) # minor units
    status = Column(String(20), nullable=False, default="available", index=True) # available, reserved, sold, blocked
    reserved_until = Column(DateTime(timezone=True), nullable=True, index=True) # set iff status == reserved

    show = relationship("Show", back_populates="seats")
