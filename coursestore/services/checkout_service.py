# FILE: coursestore/services/checkout_service.py
"""Checkout: record a payment and grant course access in one transaction.

Flow:
    validate -> resolve user / student -> idempotency lookup
      hit:  enroll any missing courses against the existing payment
      miss: insert payment (fresh receipt per attempt) -> enroll courses

Every write runs inside the caller's session and is committed once at the
end; any error rolls the whole checkout back. Receipt and enrollment inserts
each run in their own SAVEPOINT so an expected unique conflict can be
absorbed without aborting the outer transaction.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from coursestore.core.config import LOG_DIR, DEFAULT_CURRENCY, DEFAULT_PAYMENT_STATUS
from coursestore.crud import crud_users, crud_students, crud_courses, crud_payments, crud_enrollments, EnrollmentKey
from coursestore.crud.conflicts import is_violation_of
from coursestore.models import Payment, UserCourse
from coursestore.models.payment import RECEIPT_CONSTRAINT, IDEMPOTENCY_CONSTRAINT
from coursestore.schemas.checkout import CheckoutRequest
from coursestore.services.errors import (
    InvalidRequest,
    InvalidUser,
    InvalidStudent,
    ReceiptGenerationExhausted,
    PersistenceConflict,
)
from coursestore.services.receipt_service import generate_receipt_candidate, retry_on_conflict, RetriesExhausted

os.makedirs(LOG_DIR, exist_ok=True)
checkout_logger = logging.getLogger("coursestore.checkout")
if not checkout_logger.handlers:
    handler = logging.FileHandler(os.path.join(LOG_DIR, "checkout.log"))
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    handler.setFormatter(formatter)
    checkout_logger.setLevel(logging.INFO)
    checkout_logger.addHandler(handler)

ZERO = Decimal("0")


@dataclass(frozen=True)
class CheckoutResult:
    payment_id: int
    receipt_number: str
    replayed: bool = False


def _requested_course_ids(course_ids: Sequence[Optional[int]]) -> List[int]:
    # drop nulls, keep first occurrence order
    seen = set()
    out: List[int] = []
    for cid in course_ids:
        if cid is None or cid in seen:
            continue
        seen.add(cid)
        out.append(cid)
    return out


def _has_idempotency_key(req: CheckoutRequest) -> bool:
    return req.provider is not None and req.provider_txn_id is not None


def build_payment(user_id: int, student_id: Optional[int], req: CheckoutRequest, receipt_number: str) -> Payment:
    """New Payment row with defaults applied. Pure apart from the clock."""
    amount = req.amount if req.amount is not None else ZERO
    tax_amount = req.tax_amount if req.tax_amount is not None else ZERO
    total = req.total_amount if req.total_amount is not None else amount + tax_amount

    return Payment(
        user_id=user_id,
        student_id=student_id,
        amount=amount,
        tax_amount=tax_amount,
        total_amount=total,
        currency=req.currency or DEFAULT_CURRENCY,
        method=req.method,
        provider=req.provider,
        provider_txn_id=req.provider_txn_id,
        status=req.status or DEFAULT_PAYMENT_STATUS,
        receipt_number=receipt_number,
        card_brand=req.card_brand,
        card_last4=req.card_last4,
        billing_name=req.billing_name,
        billing_email=req.billing_email,
        billing_address=req.billing_address,
        created_at=datetime.utcnow(),
    )


async def enroll_courses(
    db: AsyncSession,
    payment: Payment,
    user_id: int,
    student_id: Optional[int],
    course_ids: Sequence[int],
) -> int:
    """Create the missing enrollments for course_ids, linked to payment.

    Unknown course ids are skipped. Returns the number of rows created.
    """
    created = 0
    for course_id in course_ids:
        key = EnrollmentKey(user_id=user_id, course_id=course_id, student_id=student_id)
        if await crud_enrollments.exists(db, key):
            continue

        course = await crud_courses.get(db, course_id)
        if course is None:
            # TODO: product to decide whether unknown ids should fail the checkout
            checkout_logger.warning(
                "Skipping unknown course_id=%s (payment_id=%s user_id=%s)", course_id, payment.id, user_id
            )
            continue

        enrollment = UserCourse(
            user_id=user_id,
            course_id=course.id,
            payment_id=payment.id,
            student_id=student_id,
            purchased_at=datetime.utcnow(),
        )
        try:
            await crud_enrollments.add(db, enrollment)
        except IntegrityError as exc:
            if is_violation_of(exc, key.constraint):
                # concurrent checkout enrolled it first
                checkout_logger.info("Already enrolled: %s", key)
                continue
            raise PersistenceConflict(f"Enrollment for course {course_id} conflicts with existing data") from exc
        created += 1
    return created


async def _replay(
    db: AsyncSession,
    existing: Payment,
    user_id: int,
    student_id: Optional[int],
    course_ids: Sequence[int],
) -> CheckoutResult:
    created = await enroll_courses(db, existing, user_id, student_id, course_ids)
    checkout_logger.info(
        "Idempotent replay payment_id=%s receipt=%s provider=%s txn=%s (+%d enrollments)",
        existing.id, existing.receipt_number, existing.provider, existing.provider_txn_id, created,
    )
    return CheckoutResult(payment_id=existing.id, receipt_number=existing.receipt_number, replayed=True)


async def _insert_payment(db: AsyncSession, user_id: int, student_id: Optional[int], req: CheckoutRequest) -> Payment:
    async def attempt() -> Payment:
        payment = build_payment(user_id, student_id, req, generate_receipt_candidate())
        return await crud_payments.add(db, payment)

    try:
        return await retry_on_conflict(
            attempt,
            is_retryable=lambda exc: is_violation_of(exc, RECEIPT_CONSTRAINT),
        )
    except RetriesExhausted as exc:
        checkout_logger.error("Receipt generation exhausted after %d attempts for user_id=%s", exc.attempts, user_id)
        raise ReceiptGenerationExhausted() from exc.last_error


async def _process(db: AsyncSession, user_id: int, req: CheckoutRequest) -> CheckoutResult:
    if not req.course_ids:
        raise InvalidRequest()
    course_ids = _requested_course_ids(req.course_ids)

    user = await crud_users.get(db, user_id)
    if user is None:
        raise InvalidUser()

    student_id: Optional[int] = None
    if req.student_id is not None:
        student = await crud_students.get(db, req.student_id)
        if student is None or student.parent_user_id != user.id:
            raise InvalidStudent()
        student_id = student.id

    keyed = _has_idempotency_key(req)
    if keyed:
        existing = await crud_payments.find_by_idempotency_key(db, user.id, req.provider, req.provider_txn_id)
        if existing is not None:
            return await _replay(db, existing, user.id, student_id, course_ids)

    try:
        payment = await _insert_payment(db, user.id, student_id, req)
    except IntegrityError as exc:
        if keyed and is_violation_of(exc, IDEMPOTENCY_CONSTRAINT):
            # lost the race against a concurrent request with the same key
            winner = await crud_payments.find_by_idempotency_key(db, user.id, req.provider, req.provider_txn_id)
            if winner is not None:
                return await _replay(db, winner, user.id, student_id, course_ids)
        raise PersistenceConflict("Payment conflicts with existing data") from exc

    await enroll_courses(db, payment, user.id, student_id, course_ids)
    return CheckoutResult(payment_id=payment.id, receipt_number=payment.receipt_number)


async def checkout(db: AsyncSession, user_id: int, req: CheckoutRequest) -> CheckoutResult:
    """Run one checkout as a single transaction on db.

    Raises a CheckoutError subclass on failure; nothing is persisted then.
    """
    try:
        result = await _process(db, user_id, req)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    checkout_logger.info(
        "Checkout committed user_id=%s payment_id=%s receipt=%s replayed=%s",
        user_id, result.payment_id, result.receipt_number, result.replayed,
    )
    return result
