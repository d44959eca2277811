import uuid
from sqlalchemy import Column, String, Integer, Boolean, DateTime, func, Uuid, CheckConstraint
from app.db.session import Base

class DiscountCode(Base):
    __tablename__ = "discount_codes"
    # Booking totals must stay positive: no code takes 100% off.
    __table_args__ = (
        CheckConstraint("percent_off >= 0 AND percent_off < 100", name="ck_discount_percent_off"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String(50), unique=True, nullable=False, index=True)
    percent_off = Column(Integer, nullable=False, default=0) # 0-99
    current_uses = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
