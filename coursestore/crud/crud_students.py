"""CRUD operations for student profiles."""
from typing import List, Optional
from sqlalchemy import select, func, desc
from sqlalchemy.ext.asyncio import AsyncSession

from coursestore.models import StudentProfile, UserCourse


class CRUDStudents:
    """CRUD operations for student profiles."""

    async def get(self, db: AsyncSession, student_id: int) -> Optional[StudentProfile]:
        return await db.get(StudentProfile, student_id)

    async def list_by_parent(self, db: AsyncSession, parent_user_id: int) -> List[StudentProfile]:
        """Students of a parent, newest first."""
        stmt = (
            select(StudentProfile)
            .where(StudentProfile.parent_user_id == parent_user_id)
            .order_by(desc(StudentProfile.created_at), desc(StudentProfile.id))
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def count_enrollments(self, db: AsyncSession, student_id: int) -> int:
        n = (
            await db.execute(
                select(func.count(UserCourse.id)).where(UserCourse.student_id == student_id)
            )
        ).scalar_one()
        return int(n or 0)

    async def create(
        self,
        db: AsyncSession,
        *,
        parent_user_id: int,
        name: str,
        age: Optional[int] = None,
        avatar_url: Optional[str] = None,
    ) -> StudentProfile:
        db_obj = StudentProfile(
            parent_user_id=parent_user_id,
            name=name,
            age=age,
            avatar_url=avatar_url,
        )
        db.add(db_obj)
        await db.flush()
        return db_obj


crud_students = CRUDStudents()
