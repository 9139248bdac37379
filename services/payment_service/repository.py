from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from .models import RefundRecord

class RefundRepository:
    @staticmethod
    def add(db: AsyncSession, refund: RefundRecord):
        """Stages the record in the caller's transaction; the caller commits."""
        db.add(refund)
        return refund

    @staticmethod
    async def list_for_order(db: AsyncSession, order_id: str):
        result = await db.execute(
            select(RefundRecord).where(RefundRecord.order_id == order_id).order_by(RefundRecord.id)
        )
        return result.scalars().all()
