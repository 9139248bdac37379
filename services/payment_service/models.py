from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, Numeric, String
from shared.config.database import Base

class RefundRecord(Base):
    __tablename__ = "refunds"
    __table_args__ = {"schema": "payment_schema"}

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String(36), nullable=False, index=True)
    payment_reference = Column(String(255), nullable=False)
    provider_refund_id = Column(String(255), nullable=False, unique=True)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    status = Column(String(30), nullable=False) # provider status: succeeded, pending
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
