# =========================================================
# FILE: /coursestore/schemas/checkout.py
# =========================================================

from decimal import Decimal
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CheckoutRequest(BaseModel):
    # accepts courseIds / providerTxnId as well as snake_case
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    # validated by the checkout service, not here: an empty or missing
    # list is an InvalidRequest, not a 422
    course_ids: Optional[List[Optional[int]]] = None
    student_id: Optional[int] = None

    amount: Optional[Decimal] = None
    tax_amount: Optional[Decimal] = None
    total_amount: Optional[Decimal] = None
    currency: Optional[str] = None

    method: Optional[str] = None
    provider: Optional[str] = None
    provider_txn_id: Optional[str] = None  # idempotency
    status: Optional[str] = None

    card_brand: Optional[str] = None
    card_last4: Optional[str] = None
    billing_name: Optional[str] = None
    billing_email: Optional[str] = None
    billing_address: Optional[Dict[str, Any]] = None


class CheckoutResponse(BaseModel):
    payment_id: int
    receipt_number: str


class PaymentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    student_id: Optional[int] = None
    amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    currency: str
    method: Optional[str] = None
    provider: Optional[str] = None
    provider_txn_id: Optional[str] = None
    status: str
    receipt_number: str
    card_brand: Optional[str] = None
    card_last4: Optional[str] = None
    billing_name: Optional[str] = None
    billing_email: Optional[str] = None
    billing_address: Optional[Dict[str, Any]] = None
    created_at: str
