"""Phone number verification through Twilio Verify."""

from fastapi import APIRouter, Depends, Request

from gollisconnect.core.rate_limiter import strict_rate_limit
from gollisconnect.models.user import User
from gollisconnect.schemas.verification import (
    SendCodeRequest,
    SendCodeResponse,
    VerifyCodeRequest,
    VerifyCodeResponse,
    VerificationStatusResponse,
)
from gollisconnect.modules.auth.dependencies import get_current_user, get_user_service
from gollisconnect.services.user_service import UserService


router = APIRouter()


@router.post("/send-code", response_model=SendCodeResponse)
@strict_rate_limit()
async def send_code(
    request: Request,
    body: SendCodeRequest,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    """Text a verification code (rate limited: 3/min)"""
    result = await service.send_verification_code(current_user, body.phone_number)
    return SendCodeResponse(
        message="Verification code sent successfully",
        verification_sid=result.get("sid")
    )


@router.post("/verify-code", response_model=VerifyCodeResponse)
async def verify_code(
    body: VerifyCodeRequest,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    status = await service.verify_phone_code(current_user, body.phone_number, body.code)
    return VerifyCodeResponse(message="Phone number verified successfully", status=status)


@router.get("/status", response_model=VerificationStatusResponse)
async def get_status(current_user: User = Depends(get_current_user)):
    return VerificationStatusResponse(
        phone_number=current_user.phone_number,
        is_verified=current_user.is_phone_verified
    )
