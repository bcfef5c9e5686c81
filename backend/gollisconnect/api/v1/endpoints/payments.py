"""
Payment API endpoints for tuition fees.

Flow:
1. POST /initiate creates a pending payment and returns the provider URL
2. The student pays on the provider's page
3. POST /verify/{transaction_id} settles it through the gateway
"""

from fastapi import APIRouter, Depends, status
from typing import List

from gollisconnect.core.exceptions import AuthorizationError
from gollisconnect.core.logging_config import logger
from gollisconnect.models.user import User, UserRole
from gollisconnect.schemas.payment import (
    PaymentInitiateRequest,
    PaymentInitiateResponse,
    PaymentResponse,
    PaymentVerifyResponse,
)
from gollisconnect.modules.auth.dependencies import (
    get_current_user,
    get_current_student,
    get_payment_service,
)
from gollisconnect.services.payment_service import PaymentService


router = APIRouter()


@router.post("/initiate", response_model=PaymentInitiateResponse, status_code=status.HTTP_201_CREATED)
async def initiate_payment(
    payment_data: PaymentInitiateRequest,
    current_user: User = Depends(get_current_student),
    service: PaymentService = Depends(get_payment_service)
):
    """Start a tuition payment for the calling student"""
    payment, payment_url = await service.initiate_payment(current_user, payment_data)
    return PaymentInitiateResponse(
        message="Payment initiated successfully",
        payment_id=payment.id,
        transaction_id=payment.transaction_id,
        payment_url=payment_url
    )


@router.post("/verify/{transaction_id}", response_model=PaymentVerifyResponse)
async def verify_payment(
    transaction_id: str,
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service)
):
    """
    Verify a pending payment with its provider.

    Students may verify only their own payments; admins may verify any.
    """
    payment = await service.get_payment(transaction_id)
    if current_user.role != UserRole.ADMIN and payment.student_id != current_user.id:
        logger.warning(f"[Payment] {current_user.email} tried to verify {transaction_id} owned by another student")
        raise AuthorizationError("Access denied")

    payment = await service.verify_payment(transaction_id)
    return PaymentVerifyResponse(
        message="Payment verified successfully",
        payment=PaymentResponse.model_validate(payment)
    )


@router.get("/history", response_model=List[PaymentResponse])
async def get_payment_history(
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service)
):
    """Payment history for the caller, most recent payment first"""
    return await service.list_payments(current_user.id)
