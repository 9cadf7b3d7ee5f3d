"""Map an IntegrityError back to the unique key that caused it."""
import re
from typing import Dict, Optional, Tuple

from sqlalchemy.exc import IntegrityError

from coursestore.models.payment import RECEIPT_CONSTRAINT, IDEMPOTENCY_CONSTRAINT
from coursestore.models.user_course import PLAIN_ENROLLMENT_CONSTRAINT, STUDENT_ENROLLMENT_CONSTRAINT

UNIQUE_KEYS: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    RECEIPT_CONSTRAINT: ("payments", ("receipt_number",)),
    IDEMPOTENCY_CONSTRAINT: ("payments", ("user_id", "provider", "provider_txn_id")),
    PLAIN_ENROLLMENT_CONSTRAINT: ("user_courses", ("user_id", "course_id")),
    STUDENT_ENROLLMENT_CONSTRAINT: ("user_courses", ("user_id", "course_id", "student_id")),
}

# SQLite reports columns, not the constraint name
_SQLITE_UNIQUE = re.compile(r"UNIQUE constraint failed: ([\w., ]+)")


def violated_constraint(exc: IntegrityError) -> Optional[str]:
    """Return the name of the violated unique key, or None if unknown."""
    message = str(exc.orig if exc.orig is not None else exc)

    # Postgres / MySQL carry the constraint name in the message
    for name in UNIQUE_KEYS:
        if re.search(rf"\b{re.escape(name)}\b", message):
            return name

    m = _SQLITE_UNIQUE.search(message)
    if not m:
        return None
    failed = tuple(part.strip() for part in m.group(1).split(","))
    for name, (table, columns) in UNIQUE_KEYS.items():
        if failed == tuple(f"{table}.{c}" for c in columns):
            return name
    return None


def is_violation_of(exc: IntegrityError, name: str) -> bool:
    return violated_constraint(exc) == name
