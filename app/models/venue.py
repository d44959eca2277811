import uuid
from sqlalchemy import Column, String, Boolean, DateTime, func, Text, JSON, Uuid
from sqlalchemy.orm import relationship
from app.db.session import Base

class Venue(Base):
    __tablename__ = "venues"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    address = Column(Text, nullable=True)
    postal_code = Column(String(10), nullable=True)
    city = Column(String(100), nullable=False, index=True)
    # {"sections": [{"name", "rows": [{"number", "seats": [..]}]}]} or {"rows": n, "seatsPerRow": m}
    seat_map_config = Column(JSON, nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    shows = relationship("Show", back_populates="venue")
