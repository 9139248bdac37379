from sqlalchemy.ext.asyncio import AsyncSession

from shared.exceptions import NotFoundError
from shared.security import Identity

from .repository import DeliverySettingsRepository, OrderRepository, PickupLocationRepository
from .schemas import DeliverySettingsSchema


class OrderService:
    """Read side of the order store. Every mutation goes through the lifecycle orchestrator."""

    @staticmethod
    async def get_order_for(db: AsyncSession, order_id: str, identity: Identity):
        order = await OrderRepository.get(db, order_id)
        # Other customers' orders are reported as missing, not forbidden
        if order is None or not (identity.is_admin or order.user_id == identity.subject):
            raise NotFoundError(f"Order {order_id} not found")
        return order

    @staticmethod
    async def list_my_orders(db: AsyncSession, identity: Identity):
        return await OrderRepository.list_for_user(db, identity.subject)

    @staticmethod
    async def list_orders(db: AsyncSession, status: str | None = None):
        return await OrderRepository.list_all(db, status)

    @staticmethod
    async def list_pickup_locations(db: AsyncSession):
        return await PickupLocationRepository.list_active(db)

    @staticmethod
    async def get_delivery_settings(db: AsyncSession):
        return await DeliverySettingsRepository.get(db)

    @staticmethod
    async def update_delivery_settings(db: AsyncSession, data: DeliverySettingsSchema):
        return await DeliverySettingsRepository.save(
            db, shipping_enabled=data.shipping_enabled, pickup_enabled=data.pickup_enabled
        )
