# /coursestore/models/user_course.py
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, ForeignKey, DateTime, Index, UniqueConstraint, text

from coursestore.core.database import Base

# One enrollment per (user, course) when no student is given
PLAIN_ENROLLMENT_CONSTRAINT = "uq_user_courses_user_course"
# One enrollment per (user, course, student) when a student is given
STUDENT_ENROLLMENT_CONSTRAINT = "uq_user_courses_user_course_student"


class UserCourse(Base):
    """Enrollment ledger - grants a user (optionally a student) access to a course."""
    __tablename__ = "user_courses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    course_id: Mapped[int] = mapped_column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), index=True)
    payment_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("payments.id", ondelete="SET NULL"), nullable=True
    )
    student_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("student_profiles.id", ondelete="CASCADE"), nullable=True, index=True
    )
    purchased_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "course_id", "student_id", name=STUDENT_ENROLLMENT_CONSTRAINT),
        # only on dialects with partial indexes; others drop the WHERE clause
        Index(
            PLAIN_ENROLLMENT_CONSTRAINT,
            "user_id",
            "course_id",
            unique=True,
            sqlite_where=text("student_id IS NULL"),
            postgresql_where=text("student_id IS NULL"),
        ).ddl_if(dialect=("sqlite", "postgresql")),
    )
