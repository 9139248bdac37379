from decimal import Decimal

from pydantic import BaseModel

class ProductResponse(BaseModel):
    id: str
    name: str
    price: Decimal
    is_active: bool

    class Config:
        from_attributes = True
