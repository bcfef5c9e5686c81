from pydantic import EmailStr, Field, field_validator
from typing import Optional

from gollisconnect.schemas.base import CamelModel
from gollisconnect.schemas.auth import UserResponse


class ProfileUpdate(CamelModel):
    """Partial profile update; omitted or empty fields keep their value"""
    first_name: Optional[str] = Field(None, min_length=1)
    last_name: Optional[str] = Field(None, min_length=1)
    phone_number: Optional[str] = Field(None, min_length=1, max_length=20)
    email: Optional[EmailStr] = None

    @field_validator("first_name", "last_name", "phone_number")
    @classmethod
    def strip_optional(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("cannot be empty")
        return value

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: Optional[str]) -> Optional[str]:
        return value.lower() if value else value


class ProfileUpdateResponse(CamelModel):
    message: str
    user: UserResponse


class StudentListItem(CamelModel):
    id: str
    first_name: str
    last_name: str
    student_id: Optional[str] = None
    email: str
    department: str
