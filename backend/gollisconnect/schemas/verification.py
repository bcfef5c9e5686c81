from pydantic import Field
from typing import Optional

from gollisconnect.schemas.base import CamelModel


class SendCodeRequest(CamelModel):
    phone_number: str = Field(..., min_length=1, max_length=20)


class SendCodeResponse(CamelModel):
    message: str
    verification_sid: Optional[str] = None


class VerifyCodeRequest(CamelModel):
    phone_number: str = Field(..., min_length=1, max_length=20)
    code: str = Field(..., min_length=1)


class VerifyCodeResponse(CamelModel):
    message: str
    status: str


class VerificationStatusResponse(CamelModel):
    phone_number: Optional[str] = None
    is_verified: bool = False
