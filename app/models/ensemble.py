import uuid
from sqlalchemy import Column, String, Boolean, DateTime, func, Text, Uuid
from sqlalchemy.orm import relationship
from app.db.session import Base

class Ensemble(Base):
    __tablename__ = "ensembles"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    image_url = Column(Text, nullable=True)
    is_published = Column(Boolean, default=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    shows = relationship("Show", back_populates="ensemble")
