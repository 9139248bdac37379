"""
Order Store.

Reads always bypass the session identity map (``populate_existing``) so callers
get the row as committed, not a stale in-memory copy. Status changes go
through ``conditional_update``: the expected current status is part of the
WHERE clause, so a replayed or racing transition matches no row instead of
being applied twice. ``conditional_update`` does not commit; the caller owns
the transaction boundary.
"""
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import DeliverySettings, Order, PickupLocation


class OrderRepository:
    @staticmethod
    async def insert(db: AsyncSession, order: Order) -> Order:
        """Persists an order and its items in one transaction; nothing is left behind on failure."""
        db.add(order)
        try:
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return order

    @staticmethod
    async def get(db: AsyncSession, order_id: str) -> Order | None:
        result = await db.execute(
            select(Order)
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def list_for_user(db: AsyncSession, user_id: str):
        result = await db.execute(
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc())
            .execution_options(populate_existing=True)
        )
        return result.scalars().all()

    @staticmethod
    async def list_all(db: AsyncSession, status: str | None = None):
        stmt = select(Order).order_by(Order.created_at.desc())
        if status:
            stmt = stmt.where(Order.status == status)
        result = await db.execute(stmt.execution_options(populate_existing=True))
        return result.scalars().all()

    @staticmethod
    async def conditional_update(
        db: AsyncSession, order_id: str, expected_statuses, values: dict, *conditions
    ) -> bool:
        """
        Applies ``values`` only if the order's status is one of ``expected_statuses``
        (and every extra SQL condition holds). Returns True if a row was updated.
        """
        expected = [getattr(s, "value", s) for s in expected_statuses]
        values = {key: getattr(value, "value", value) for key, value in values.items()}
        values["updated_at"] = datetime.now(timezone.utc)

        stmt = (
            update(Order)
            .where(Order.id == order_id, Order.status.in_(expected), *conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount == 1


class PickupLocationRepository:
    @staticmethod
    async def get(db: AsyncSession, location_id: str) -> PickupLocation | None:
        result = await db.execute(select(PickupLocation).where(PickupLocation.id == location_id))
        return result.scalars().first()

    @staticmethod
    async def list_active(db: AsyncSession):
        result = await db.execute(
            select(PickupLocation)
            .where(PickupLocation.is_active.is_(True))
            .order_by(PickupLocation.name)
        )
        return result.scalars().all()


class DeliverySettingsRepository:
    @staticmethod
    async def get(db: AsyncSession) -> DeliverySettings:
        """Returns the singleton row, or an unsaved all-enabled default if none exists yet."""
        result = await db.execute(
            select(DeliverySettings).where(DeliverySettings.id == DeliverySettings.SINGLETON_ID)
        )
        settings = result.scalars().first()
        if settings is None:
            settings = DeliverySettings(
                id=DeliverySettings.SINGLETON_ID, shipping_enabled=True, pickup_enabled=True
            )
        return settings

    @staticmethod
    async def save(db: AsyncSession, shipping_enabled: bool, pickup_enabled: bool) -> DeliverySettings:
        settings = await db.get(DeliverySettings, DeliverySettings.SINGLETON_ID)
        if settings is None:
            settings = DeliverySettings(id=DeliverySettings.SINGLETON_ID)
            db.add(settings)
        settings.shipping_enabled = shipping_enabled
        settings.pickup_enabled = pickup_enabled
        await db.commit()
        await db.refresh(settings)
        return settings
