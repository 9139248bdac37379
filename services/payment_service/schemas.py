from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from services.order_service.schemas import OrderResponse

class VerifyPaymentRequest(BaseModel):
    session_id: str = Field(min_length=1)

class VerifyPaymentResponse(BaseModel):
    success: bool
    status: str # provider session state: paid, unpaid, expired
    message: str
    order: Optional[OrderResponse] = None

class RefundResponse(BaseModel):
    refund_id: str
    amount: Decimal
    currency: str
    status: str

class CancelAndRefundResponse(BaseModel):
    order: OrderResponse
    refund: RefundResponse

class WebhookAck(BaseModel):
    received: bool = True
    handled: bool = False
