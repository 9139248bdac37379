from sqlalchemy import Boolean, Column, Numeric, String
from shared.config.database import Base

class Product(Base):
    __tablename__ = "products"
    __table_args__ = {"schema": "product_schema"}

    id = Column(String(36), primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    price = Column(Numeric(10, 2), nullable=False) # live catalogue price, snapshotted into orders
    is_active = Column(Boolean, default=True, nullable=False)
