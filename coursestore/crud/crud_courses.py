"""CRUD operations for the course catalog."""
from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coursestore.models import Course


class CRUDCourses:
    """Read-only catalog lookups."""

    async def get(self, db: AsyncSession, course_id: int) -> Optional[Course]:
        return await db.get(Course, course_id)

    async def list_active(self, db: AsyncSession) -> List[Course]:
        stmt = select(Course).where(Course.is_active.is_(True)).order_by(Course.id)
        result = await db.execute(stmt)
        return list(result.scalars().all())


crud_courses = CRUDCourses()
