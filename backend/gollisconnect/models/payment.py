from sqlalchemy import Column, String, DateTime, Enum as SQLEnum, Numeric, Text, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from gollisconnect.core.database import Base
from gollisconnect.core.types import GUID, generate_uuid


class PaymentMethod(str, enum.Enum):
    """Supported mobile-money / remittance providers"""
    TELESOM_ZAAD = "telesom_zaad"
    DAHABSHIIL = "dahabshiil"


class PaymentStatus(str, enum.Enum):
    """
    pending is initial; completed and failed are terminal.
    Only verification moves a payment out of pending.
    """
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self != PaymentStatus.PENDING


class Payment(Base):
    """Tuition payment attempt"""
    __tablename__ = "payments"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    student_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    amount = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(SQLEnum(PaymentMethod), nullable=False)
    transaction_id = Column(String(64), unique=True, index=True, nullable=False)
    status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False)

    semester = Column(String(50), nullable=False)
    academic_year = Column(String(20), nullable=False)

    payment_date = Column(DateTime, nullable=True)  # set on completion
    receipt_url = Column(String(500), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    student = relationship("User")

    __table_args__ = (
        Index("ix_payments_student_term", "student_id", "semester", "academic_year"),
        CheckConstraint("amount >= 0", name="ck_payments_amount_non_negative"),
    )

    def is_valid(self) -> bool:
        return self.status == PaymentStatus.COMPLETED and self.amount > 0

    def __repr__(self):
        return f"<Payment {self.transaction_id} {self.status.value if self.status else None}>"
