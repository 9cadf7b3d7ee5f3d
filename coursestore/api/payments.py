# FILE: coursestore/api/payments.py
"""Checkout and payment history endpoints."""

from datetime import timezone
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from coursestore.api.deps import get_user_id
from coursestore.core.database import get_db
from coursestore.crud import crud_users, crud_payments
from coursestore.models import Payment
from coursestore.schemas.checkout import CheckoutRequest, CheckoutResponse, PaymentOut
from coursestore.services.checkout_service import checkout as run_checkout

router = APIRouter(prefix="/api/payments", tags=["payments"])


def _payment_out(p: Payment) -> PaymentOut:
    return PaymentOut(
        id=p.id,
        user_id=p.user_id,
        student_id=p.student_id,
        amount=p.amount,
        tax_amount=p.tax_amount,
        total_amount=p.total_amount,
        currency=p.currency,
        method=p.method,
        provider=p.provider,
        provider_txn_id=p.provider_txn_id,
        status=p.status,
        receipt_number=p.receipt_number,
        card_brand=p.card_brand,
        card_last4=p.card_last4,
        billing_name=p.billing_name,
        billing_email=p.billing_email,
        billing_address=p.billing_address,
        created_at=p.created_at.replace(tzinfo=timezone.utc).isoformat(),
    )


@router.get("", response_model=List[PaymentOut])
async def list_all_payments(db: AsyncSession = Depends(get_db)):
    return [_payment_out(p) for p in await crud_payments.list_all(db)]


@router.post("/checkout", response_model=CheckoutResponse)
async def checkout(
        req: CheckoutRequest,
        user_id: int = Depends(get_user_id),
        db: AsyncSession = Depends(get_db),
):
    # CheckoutError subclasses are rendered by the app-level handler
    result = await run_checkout(db, user_id, req)
    return CheckoutResponse(payment_id=result.payment_id, receipt_number=result.receipt_number)


@router.get("/user/{user_id}", response_model=List[PaymentOut])
async def list_user_payments(user_id: int, db: AsyncSession = Depends(get_db)):
    if not await crud_users.get(db, user_id):
        raise HTTPException(status_code=400, detail="Invalid user")
    return [_payment_out(p) for p in await crud_payments.list_by_user(db, user_id)]


@router.get("/{payment_id}", response_model=PaymentOut)
async def get_payment(payment_id: int, db: AsyncSession = Depends(get_db)):
    p = await crud_payments.get(db, payment_id)
    if not p:
        raise HTTPException(status_code=404, detail="Payment not found")
    return _payment_out(p)
