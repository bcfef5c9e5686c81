from pydantic import Field, field_validator
from typing import Optional
from datetime import datetime

from gollisconnect.models.payment import PaymentMethod, PaymentStatus
from gollisconnect.schemas.base import CamelModel


class PaymentInitiateRequest(CamelModel):
    """
    Amount and method are checked by the payment service so that an
    out-of-range amount or unknown provider is a 400, like the other
    ledger rules.
    """
    amount: float
    payment_method: str
    semester: str = Field(..., min_length=1)
    academic_year: str = Field(..., min_length=1)
    notes: Optional[str] = None

    @field_validator("semester", "academic_year")
    @classmethod
    def strip_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class PaymentInitiateResponse(CamelModel):
    message: str
    payment_id: str
    transaction_id: str
    payment_url: str


class PaymentResponse(CamelModel):
    id: str
    student_id: str
    amount: float
    payment_method: PaymentMethod
    transaction_id: str
    status: PaymentStatus
    semester: str
    academic_year: str
    payment_date: Optional[datetime] = None
    receipt_url: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime


class PaymentVerifyResponse(CamelModel):
    message: str
    payment: PaymentResponse
