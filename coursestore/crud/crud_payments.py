"""CRUD operations for the payment ledger."""
from typing import List, Optional
from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from coursestore.models import Payment


class CRUDPayments:
    """Payment ledger access. Never commits; the caller owns the transaction."""

    async def get(self, db: AsyncSession, payment_id: int) -> Optional[Payment]:
        return await db.get(Payment, payment_id)

    async def find_by_idempotency_key(
        self, db: AsyncSession, user_id: int, provider: str, provider_txn_id: str
    ) -> Optional[Payment]:
        stmt = select(Payment).where(
            Payment.user_id == user_id,
            Payment.provider == provider,
            Payment.provider_txn_id == provider_txn_id,
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_user(self, db: AsyncSession, user_id: int) -> List[Payment]:
        """Payments of a user, newest first."""
        stmt = (
            select(Payment)
            .where(Payment.user_id == user_id)
            .order_by(desc(Payment.created_at), desc(Payment.id))
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def list_all(self, db: AsyncSession) -> List[Payment]:
        result = await db.execute(select(Payment).order_by(Payment.id))
        return list(result.scalars().all())

    async def add(self, db: AsyncSession, payment: Payment) -> Payment:
        """Insert inside a savepoint.

        Raises IntegrityError on a unique conflict; the savepoint is rolled
        back and the outer transaction stays usable.
        """
        async with db.begin_nested():
            db.add(payment)
        return payment


crud_payments = CRUDPayments()
