import uuid
from sqlalchemy import Column, String, DateTime, func, Integer, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from app.db.session import Base

class Show(Base):
    __tablename__ = "shows"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    ensemble_id = Column(Uuid(as_uuid=True), ForeignKey("ensembles.id"), nullable=False, index=True)
    venue_id = Column(Uuid(as_uuid=True), ForeignKey("venues.id"), nullable=False, index=True)
    title = Column(String(255), nullable=True) # Falls back to the ensemble title
    show_datetime = Column(DateTime(timezone=True), nullable=False, index=True)
    status = Column(String(20), default="scheduled", index=True) # scheduled, on_sale, sold_out, cancelled
    base_price = Column(Integer, nullable=False) # minor units
    available_seats = Column(Integer, nullable=True) # advisory display counter only
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    ensemble = relationship("Ensemble", back_populates="shows")
    venue = relationship("Venue", back_populates="shows")
    seats = relationship("Seat", back_populates="show")
    bookings = relationship("Booking", back_populates="show")

    @property
    def display_title(self) -> str:
        if self.title:
            return self.title
        if self.ensemble and self.ensemble.title:
            return self.ensemble.title
        return "Show"
