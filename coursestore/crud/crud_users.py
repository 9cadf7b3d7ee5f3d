"""CRUD operations for users."""
from typing import Optional
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from coursestore.models import User


class CRUDUsers:
    """CRUD operations for users."""

    async def get(self, db: AsyncSession, user_id: int) -> Optional[User]:
        return await db.get(User, user_id)

    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        """Case-insensitive email lookup."""
        stmt = select(User).where(func.lower(User.email) == email.strip().lower())
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def create(
        self,
        db: AsyncSession,
        *,
        name: str,
        email: str,
        password_hash: str,
        role: str = "PARENT",
        phone: Optional[str] = None,
    ) -> User:
        db_obj = User(
            name=name,
            email=email,
            password_hash=password_hash,
            role=role,
            phone=phone,
        )
        db.add(db_obj)
        await db.flush()
        return db_obj


crud_users = CRUDUsers()
