"""Enrollment ledger (user_courses) access."""
from dataclasses import dataclass
from typing import List, Optional
from sqlalchemy import select, exists
from sqlalchemy.ext.asyncio import AsyncSession

from coursestore.models import Course, UserCourse
from coursestore.models.user_course import PLAIN_ENROLLMENT_CONSTRAINT, STUDENT_ENROLLMENT_CONSTRAINT


@dataclass(frozen=True)
class EnrollmentKey:
    """Identity of an enrollment.

    With a student the key is (user, course, student); without one it is
    (user, course) among the rows that have no student.
    """
    user_id: int
    course_id: int
    student_id: Optional[int] = None

    @property
    def constraint(self) -> str:
        if self.student_id is None:
            return PLAIN_ENROLLMENT_CONSTRAINT
        return STUDENT_ENROLLMENT_CONSTRAINT

    def where(self):
        student_clause = (
            UserCourse.student_id.is_(None)
            if self.student_id is None
            else UserCourse.student_id == self.student_id
        )
        return (
            UserCourse.user_id == self.user_id,
            UserCourse.course_id == self.course_id,
            student_clause,
        )


class CRUDEnrollments:

    async def exists(self, db: AsyncSession, key: EnrollmentKey) -> bool:
        stmt = select(exists().where(*key.where()))
        return bool((await db.execute(stmt)).scalar())

    async def add(self, db: AsyncSession, enrollment: UserCourse) -> UserCourse:
        """Insert inside a savepoint; raises IntegrityError on conflict."""
        async with db.begin_nested():
            db.add(enrollment)
        return enrollment

    async def courses_for(
        self, db: AsyncSession, user_id: int, student_id: Optional[int] = None
    ) -> List[Course]:
        stmt = (
            select(Course)
            .join(UserCourse, UserCourse.course_id == Course.id)
            .where(UserCourse.user_id == user_id)
            .order_by(UserCourse.purchased_at, UserCourse.id)
        )
        if student_id is not None:
            stmt = stmt.where(UserCourse.student_id == student_id)
        result = await db.execute(stmt)
        return list(result.scalars().all())


crud_enrollments = CRUDEnrollments()
