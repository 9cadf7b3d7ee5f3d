from coursestore.crud.crud_users import crud_users
from coursestore.crud.crud_courses import crud_courses
from coursestore.crud.crud_students import crud_students
from coursestore.crud.crud_payments import crud_payments
from coursestore.crud.crud_enrollments import crud_enrollments, EnrollmentKey

__all__ = [
    "crud_users", "crud_courses", "crud_students",
    "crud_payments", "crud_enrollments", "EnrollmentKey",
]
