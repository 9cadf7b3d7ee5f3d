import re
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from coursestore.models import Payment, UserCourse
from coursestore.schemas.checkout import CheckoutRequest
from coursestore.services import checkout_service
from coursestore.services.checkout_service import checkout
from coursestore.services.errors import (
    InvalidRequest,
    InvalidStudent,
    InvalidUser,
    PersistenceConflict,
    ReceiptGenerationExhausted,
)

from conftest import FOREIGN_STUDENT_ID, PARENT_ID, STUDENT_ID, count_rows

RECEIPT_RE = re.compile(r"^LC-\d{8}-[0-9A-Z]{6}$")


def _receipts(*values):
    it = iter(values)
    return lambda: next(it)


async def _payment(session_factory, payment_id):
    async with session_factory() as s:
        return await s.get(Payment, payment_id)


@pytest.mark.asyncio
async def test_keyed_checkout_records_payment_and_enrollments(db, session_factory):
    req = CheckoutRequest(
        course_ids=[10, 11],
        provider="stripe",
        provider_txn_id="tx1",
        amount=Decimal("20.00"),
        tax_amount=Decimal("1.60"),
    )

    result = await checkout(db, PARENT_ID, req)

    assert RECEIPT_RE.match(result.receipt_number)
    assert result.replayed is False
    payment = await _payment(session_factory, result.payment_id)
    assert payment.total_amount == Decimal("21.60")
    assert payment.currency == "USD"
    assert payment.status == "completed"
    assert await count_rows(session_factory, Payment) == 1
    assert await count_rows(session_factory, UserCourse, UserCourse.payment_id == result.payment_id) == 2


@pytest.mark.asyncio
async def test_replay_with_same_key_returns_existing_payment(db, session_factory):
    req = CheckoutRequest(
        course_ids=[10, 11],
        provider="stripe",
        provider_txn_id="tx1",
        amount=Decimal("20.00"),
        tax_amount=Decimal("1.60"),
    )

    first = await checkout(db, PARENT_ID, req)
    second = await checkout(db, PARENT_ID, req)

    assert second.payment_id == first.payment_id
    assert second.receipt_number == first.receipt_number
    assert second.replayed is True
    assert await count_rows(session_factory, Payment) == 1
    assert await count_rows(session_factory, UserCourse) == 2


@pytest.mark.asyncio
async def test_replay_enrolls_courses_missing_from_first_attempt(db, session_factory):
    first = await checkout(db, PARENT_ID, CheckoutRequest(course_ids=[10], provider="paypal", provider_txn_id="p-7"))
    again = await checkout(db, PARENT_ID, CheckoutRequest(course_ids=[10, 11], provider="paypal", provider_txn_id="p-7"))

    assert again.payment_id == first.payment_id
    assert await count_rows(session_factory, Payment) == 1
    assert await count_rows(
        session_factory, UserCourse, UserCourse.course_id == 11, UserCourse.payment_id == first.payment_id
    ) == 1


@pytest.mark.asyncio
async def test_unknown_course_ids_are_skipped(db, session_factory):
    result = await checkout(db, PARENT_ID, CheckoutRequest(course_ids=[10, 999, None, 10]))

    assert result.payment_id
    assert await count_rows(session_factory, UserCourse) == 1
    assert await count_rows(session_factory, UserCourse, UserCourse.course_id == 999) == 0


@pytest.mark.asyncio
async def test_unkeyed_checkouts_create_separate_payments_but_one_enrollment(db, session_factory):
    req = CheckoutRequest(course_ids=[10, 11], amount=Decimal("20"))

    first = await checkout(db, PARENT_ID, req)
    second = await checkout(db, PARENT_ID, req)

    assert first.payment_id != second.payment_id
    assert first.receipt_number != second.receipt_number
    assert await count_rows(session_factory, Payment) == 2
    assert await count_rows(session_factory, UserCourse) == 2
    assert await count_rows(session_factory, UserCourse, UserCourse.payment_id == second.payment_id) == 0


@pytest.mark.asyncio
async def test_provider_without_txn_id_is_not_idempotent(db, session_factory):
    req = CheckoutRequest(course_ids=[10], provider="stripe")

    await checkout(db, PARENT_ID, req)
    await checkout(db, PARENT_ID, req)

    assert await count_rows(session_factory, Payment) == 2


@pytest.mark.asyncio
async def test_defaults_applied_to_fresh_payment(db, session_factory):
    result = await checkout(db, PARENT_ID, CheckoutRequest(course_ids=[10]))

    payment = await _payment(session_factory, result.payment_id)
    assert payment.amount == Decimal("0")
    assert payment.tax_amount == Decimal("0")
    assert payment.total_amount == Decimal("0")
    assert payment.currency == "USD"
    assert payment.status == "completed"


@pytest.mark.asyncio
async def test_explicit_total_is_kept(db, session_factory):
    req = CheckoutRequest(
        course_ids=[10],
        amount=Decimal("10.00"),
        tax_amount=Decimal("0.80"),
        total_amount=Decimal("9.00"),
        currency="EUR",
        status="pending",
        billing_address={"city": "Ghent"},
    )
    result = await checkout(db, PARENT_ID, req)

    payment = await _payment(session_factory, result.payment_id)
    assert payment.total_amount == Decimal("9.00")
    assert payment.currency == "EUR"
    assert payment.status == "pending"
    assert payment.billing_address == {"city": "Ghent"}


@pytest.mark.asyncio
@pytest.mark.parametrize("course_ids", [[], None])
async def test_empty_course_list_is_rejected(db, session_factory, course_ids):
    with pytest.raises(InvalidRequest):
        await checkout(db, PARENT_ID, CheckoutRequest(course_ids=course_ids, provider="stripe", provider_txn_id="t"))

    assert await count_rows(session_factory, Payment) == 0
    assert await count_rows(session_factory, UserCourse) == 0


@pytest.mark.asyncio
async def test_unknown_user_is_rejected(db, session_factory):
    with pytest.raises(InvalidUser):
        await checkout(db, 4242, CheckoutRequest(course_ids=[10]))

    assert await count_rows(session_factory, Payment) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("student_id", [FOREIGN_STUDENT_ID, 31337])
async def test_student_must_belong_to_user(db, session_factory, student_id):
    with pytest.raises(InvalidStudent):
        await checkout(db, PARENT_ID, CheckoutRequest(course_ids=[10], student_id=student_id))

    assert await count_rows(session_factory, Payment) == 0
    assert await count_rows(session_factory, UserCourse) == 0


@pytest.mark.asyncio
async def test_student_scoped_and_plain_enrollments_coexist(db, session_factory):
    scoped = await checkout(db, PARENT_ID, CheckoutRequest(course_ids=[10], student_id=STUDENT_ID))
    await checkout(db, PARENT_ID, CheckoutRequest(course_ids=[10]))
    await checkout(db, PARENT_ID, CheckoutRequest(course_ids=[10], student_id=STUDENT_ID))

    assert await count_rows(session_factory, UserCourse) == 2
    assert await count_rows(session_factory, UserCourse, UserCourse.student_id == STUDENT_ID) == 1
    payment = await _payment(session_factory, scoped.payment_id)
    assert payment.student_id == STUDENT_ID


@pytest.mark.asyncio
async def test_receipt_collision_is_retried(db, session_factory, monkeypatch):
    monkeypatch.setattr(checkout_service, "generate_receipt_candidate", _receipts("LC-20240101-AAAAAA"))
    await checkout(db, PARENT_ID, CheckoutRequest(course_ids=[10]))

    monkeypatch.setattr(
        checkout_service,
        "generate_receipt_candidate",
        _receipts("LC-20240101-AAAAAA", "LC-20240101-AAAAAA", "LC-20240101-BBBBBB"),
    )
    result = await checkout(db, PARENT_ID, CheckoutRequest(course_ids=[11]))

    assert result.receipt_number == "LC-20240101-BBBBBB"
    assert await count_rows(session_factory, Payment) == 2
    assert await count_rows(session_factory, UserCourse, UserCourse.course_id == 11) == 1


@pytest.mark.asyncio
async def test_receipt_generation_gives_up_after_three_collisions(db, session_factory, monkeypatch):
    monkeypatch.setattr(checkout_service, "generate_receipt_candidate", _receipts("LC-20240101-AAAAAA"))
    await checkout(db, PARENT_ID, CheckoutRequest(course_ids=[10]))

    monkeypatch.setattr(
        checkout_service,
        "generate_receipt_candidate",
        _receipts(*["LC-20240101-AAAAAA"] * 3),
    )
    with pytest.raises(ReceiptGenerationExhausted):
        await checkout(db, PARENT_ID, CheckoutRequest(course_ids=[11]))

    assert await count_rows(session_factory, Payment) == 1
    assert await count_rows(session_factory, UserCourse, UserCourse.course_id == 11) == 0


@pytest.mark.asyncio
async def test_concurrent_enrollment_conflict_is_ignored(db, session_factory, monkeypatch):
    await checkout(db, PARENT_ID, CheckoutRequest(course_ids=[10]))

    # a racing writer inserted the row after our existence check
    async def never_exists(session, key):
        return False

    monkeypatch.setattr(checkout_service.crud_enrollments, "exists", never_exists)
    result = await checkout(db, PARENT_ID, CheckoutRequest(course_ids=[10, 11]))

    assert await count_rows(session_factory, Payment) == 2
    assert await count_rows(session_factory, UserCourse, UserCourse.course_id == 10) == 1
    assert await count_rows(
        session_factory, UserCourse, UserCourse.course_id == 11, UserCourse.payment_id == result.payment_id
    ) == 1


@pytest.mark.asyncio
async def test_unexpected_enrollment_conflict_rolls_back_payment(db, session_factory, monkeypatch):
    async def broken_add(session, enrollment):
        raise IntegrityError("INSERT INTO user_courses", {}, Exception("FOREIGN KEY constraint failed"))

    monkeypatch.setattr(checkout_service.crud_enrollments, "add", broken_add)
    with pytest.raises(PersistenceConflict):
        await checkout(db, PARENT_ID, CheckoutRequest(course_ids=[10], provider="stripe", provider_txn_id="tx9"))

    assert await count_rows(session_factory, Payment) == 0
    assert await count_rows(session_factory, UserCourse) == 0


@pytest.mark.asyncio
async def test_idempotency_race_loser_replays_winner(db, session_factory, monkeypatch):
    req = CheckoutRequest(course_ids=[10, 11], provider="stripe", provider_txn_id="tx1")
    first = await checkout(db, PARENT_ID, req)

    # the winner's row is not yet visible to our lookup, only to the insert
    lookup = checkout_service.crud_payments.find_by_idempotency_key
    calls = []

    async def stale_then_fresh(session, user_id, provider, provider_txn_id):
        calls.append(provider_txn_id)
        if len(calls) == 1:
            return None
        return await lookup(session, user_id, provider, provider_txn_id)

    monkeypatch.setattr(checkout_service.crud_payments, "find_by_idempotency_key", stale_then_fresh)
    second = await checkout(db, PARENT_ID, req)

    assert len(calls) == 2
    assert second.payment_id == first.payment_id
    assert second.receipt_number == first.receipt_number
    assert second.replayed is True
    assert await count_rows(session_factory, Payment) == 1
    assert await count_rows(session_factory, UserCourse) == 2


@pytest.mark.asyncio
async def test_unexpected_payment_conflict_is_a_persistence_conflict(db, session_factory, monkeypatch):
    async def broken_add(session, payment):
        raise IntegrityError("INSERT INTO payments", {}, Exception("FOREIGN KEY constraint failed"))

    monkeypatch.setattr(checkout_service.crud_payments, "add", broken_add)
    with pytest.raises(PersistenceConflict):
        await checkout(db, PARENT_ID, CheckoutRequest(course_ids=[10], provider="stripe", provider_txn_id="tx5"))

    assert await count_rows(session_factory, Payment) == 0
    assert await count_rows(session_factory, UserCourse) == 0


@pytest.mark.asyncio
async def test_inactive_course_is_still_enrolled_by_id(db, session_factory):
    await checkout(db, PARENT_ID, CheckoutRequest(course_ids=[12]))

    assert await count_rows(session_factory, UserCourse, UserCourse.course_id == 12) == 1
