# /coursestore/models/payment.py
from datetime import datetime
from decimal import Decimal
from typing import Optional, Any
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, ForeignKey, DateTime, JSON, Numeric, UniqueConstraint

from coursestore.core.database import Base

RECEIPT_CONSTRAINT = "uq_payments_receipt_number"
IDEMPOTENCY_CONSTRAINT = "uq_payments_idempotency"


class Payment(Base):
    """Append-only payment ledger. One row per captured checkout."""
    __tablename__ = "payments"
    __table_args__ = (
        UniqueConstraint("receipt_number", name=RECEIPT_CONSTRAINT),
        # NULL provider / provider_txn_id never collide, so the key only
        # applies when both are present.
        UniqueConstraint("user_id", "provider", "provider_txn_id", name=IDEMPOTENCY_CONSTRAINT),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True)

    # Optional student this payment was for
    student_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("student_profiles.id", ondelete="SET NULL"), nullable=True, index=True
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    currency: Mapped[str] = mapped_column(String(3), default="USD")

    # card, paypal, ...
    method: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    # Payment provider: stripe, paypal, mock, etc.
    provider: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    provider_txn_id: Mapped[Optional[str]] = mapped_column(String(190), nullable=True)

    # Status: pending, completed, failed
    status: Mapped[str] = mapped_column(String(20), default="completed")

    receipt_number: Mapped[str] = mapped_column(String(32))

    card_brand: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    card_last4: Mapped[Optional[str]] = mapped_column(String(4), nullable=True)
    billing_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    billing_email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    billing_address: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
