from coursestore.models.user import User
from coursestore.models.student_profile import StudentProfile
from coursestore.models.course import Course
from coursestore.models.payment import Payment
from coursestore.models.user_course import UserCourse

__all__ = [
    "User", "StudentProfile", "Course", "Payment", "UserCourse",
]
